"""
Request/response models for the hall pass log.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UsageRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    member_id: str
    category: str
    action: str
    force_override: bool = False
    period: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('member_id')
    @classmethod
    def member_id_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('memberId cannot be empty')
        return v.strip()

    @field_validator('category')
    @classmethod
    def category_must_be_single_token(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('category cannot be empty')
        if len(v.split()) != 1:
            raise ValueError('category must be a single token')
        return v

    @field_validator('action')
    @classmethod
    def action_must_be_valid(cls, v):
        valid_actions = {'out': 'Out', 'back': 'Back'}
        normalized = valid_actions.get(v.strip().lower())
        if normalized is None:
            raise ValueError(f'action must be one of: {list(valid_actions.values())}')
        return normalized

    @field_validator('period', 'notes')
    @classmethod
    def blank_annotation_is_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None


class UsageResponse(CamelModel):
    confirmation_needed: bool
    count_before: int
    count_after: int
    member_name: str
    partition_name: str
    appended: bool
    outcome: str


class ErrorResponse(BaseModel):
    error: str


class EventModel(CamelModel):
    member_name: Optional[str] = None
    member_id: Optional[str] = None
    category: Optional[str] = None
    actor_name: Optional[str] = None
    time_out: Optional[str] = None
    time_back: Optional[str] = None
    event_date: Optional[str] = None
    period: Optional[str] = None
    notes: Optional[str] = None


class EventListResponse(BaseModel):
    name: str
    events: List[EventModel]


class MigrationResponse(BaseModel):
    success: bool
    report: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    config_issues: List[str]


class DebugResponse(BaseModel):
    message: str
    timestamp: datetime
