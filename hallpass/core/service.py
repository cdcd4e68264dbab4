"""
Request boundary for Out/Back transitions and archive migration.

`PassLogService.log_usage` is the only entry point the presentation layer needs: it
validates the request, resolves the member and caller, runs the read-count-decide-write
sequence under the store locks and inside one transaction, and converts every failure
into an ``{"error": ...}`` payload.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional, Union

from pydantic import ValidationError

from .archive import MigrationReport, migrate
from .config import (
    get_db_path,
    get_open_event_policy,
    get_timezone,
    get_unmatched_back_policy,
    is_archive_reconcile_enabled,
)
from .db import get_db, transaction
from .errors import EventAlreadyOpen, HallPassError, InvalidRequest, StorageWriteFailure, UnmatchedBack
from .identity import IdentityResolver
from .locks import STORE_ORDER, store_locks
from .matcher import find_open_event, has_open_event
from .partitions import append_event, clock_time, close_event, operating_day, select_partition
from .roster import RosterProvider, find_member
from .schema import ARCHIVE_TABLE, Event, Outcome, PartitionRef, match_key_for
from .usage import count_trips, evaluate_threshold
from ..api.schemas import UsageRequest, UsageResponse
from ..util.logging import audit_event, logger


class PassLogService:
    """Check-out/check-in log over the two working partitions and the archive."""

    def __init__(self, roster: RosterProvider, identities: IdentityResolver = None,
                 db_path: str = None, clock: Callable[[], datetime] = None):
        self.roster = roster
        self.identities = identities or IdentityResolver({})
        self.db_path = db_path
        self.clock = clock or (lambda: datetime.now(get_timezone()))

    @property
    def path(self) -> str:
        return self.db_path or get_db_path()

    def log_usage(self, data: Union[UsageRequest, Dict[str, Any]], caller_identity: str,
                  period_context: Optional[str] = None) -> Dict[str, Any]:
        """Record an Out or Back and report the outcome.

        Never raises: failures come back as ``{"error": message}``.
        """
        try:
            return self.record_usage(data, caller_identity, period_context)
        except HallPassError as e:
            return {"error": e.user_message}

    def record_usage(self, data: Union[UsageRequest, Dict[str, Any]], caller_identity: str,
                     period_context: Optional[str] = None) -> Dict[str, Any]:
        """Same as log_usage but raises.

        Raises:
            HallPassError: for every failure; unexpected errors surface as StorageWriteFailure.
        """
        try:
            request = self._parse(data)
            response = self._handle(request, caller_identity, period_context)
        except HallPassError as e:
            logger.warning(f"Usage request rejected: {type(e).__name__}: {e}")
            raise
        except Exception as e:
            logger.exception("Unexpected failure while logging usage")
            raise StorageWriteFailure() from e
        return response.model_dump(by_alias=True)

    def run_migration(self) -> Dict[str, Any]:
        """Operational trigger: migrate and report success or failure."""
        try:
            report = self.migrate()
        except HallPassError as e:
            return {"error": e.user_message}
        return {"success": True, "report": report.to_dict()}

    def migrate(self) -> MigrationReport:
        try:
            return migrate(self.path)
        except HallPassError as e:
            logger.warning(f"Migration failed: {type(e).__name__}: {e}")
            raise
        except Exception as e:
            logger.exception("Unexpected failure during migration")
            raise StorageWriteFailure() from e

    def _parse(self, data) -> UsageRequest:
        if isinstance(data, UsageRequest):
            return data
        try:
            return UsageRequest.model_validate(data or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidRequest(f"Invalid request: {problems}") from e

    def _handle(self, request: UsageRequest, caller_identity: str, period_context: Optional[str]) -> UsageResponse:
        member_name = find_member(self.roster.lookup(period_context), request.member_id)
        actor_name = self.identities.resolve(caller_identity)
        now = self.clock()
        current = select_partition(now)
        day = operating_day(now)
        key = match_key_for(member_name, request.member_id, request.category, actor_name)

        if request.action == "Out":
            response = self._check_out(request, member_name, actor_name, now, current, day, key)
        else:
            response = self._check_back(request, member_name, now, current, day, key)

        logger.log_usage_event(
            request.action, request.member_id, response.partition_name, response.outcome,
            response.count_before, response.count_after, actor_name,
        )
        return response

    def _check_out(self, request, member_name, actor_name, now, current, day, key) -> UsageResponse:
        reject_open = get_open_event_policy() == "reject" and not request.force_override
        reconcile = is_archive_reconcile_enabled()
        if reject_open:
            stores = STORE_ORDER if reconcile else [ref.table for ref in PartitionRef]
        else:
            stores = [current.table]

        with store_locks(self.path, stores):
            with get_db(self.db_path) as conn:
                with transaction(conn):
                    count_before = count_trips(conn, current, member_name, request.member_id, day)
                    decision = evaluate_threshold(count_before, request.force_override)

                    if decision.requires_confirmation:
                        return UsageResponse(
                            confirmation_needed=True,
                            count_before=count_before,
                            count_after=count_before,
                            member_name=member_name,
                            partition_name=current.value,
                            appended=False,
                            outcome=Outcome.CONFIRMATION_REQUIRED.value,
                        )

                    if reject_open and has_open_event(conn, current, key, operating_day=day,
                                                      include_archive=reconcile):
                        raise EventAlreadyOpen()

                    event = append_event(conn, current, Event(
                        member_name=member_name,
                        member_id=request.member_id,
                        category=request.category,
                        actor_name=actor_name,
                        time_out=clock_time(now),
                        event_date=day,
                        period=request.period,
                        notes=request.notes,
                    ))

        audit_event("usage.out", {"member_id": request.member_id, "partition": current.value},
                    {"time_out": event.time_out, "notes": event.notes})
        return UsageResponse(
            confirmation_needed=False,
            count_before=count_before,
            count_after=count_before + 1,
            member_name=member_name,
            partition_name=current.value,
            appended=True,
            outcome=Outcome.RECORDED.value,
        )

    def _check_back(self, request, member_name, now, current, day, key) -> UsageResponse:
        with store_locks(self.path, STORE_ORDER):
            with get_db(self.db_path) as conn:
                with transaction(conn):
                    match = find_open_event(
                        conn, current, key,
                        operating_day=day,
                        include_archive=is_archive_reconcile_enabled(),
                    )

                    if match is None:
                        count = count_trips(conn, current, member_name, request.member_id, day)
                        if get_unmatched_back_policy() == "error":
                            raise UnmatchedBack()
                        return UsageResponse(
                            confirmation_needed=False,
                            count_before=count,
                            count_after=count,
                            member_name=member_name,
                            partition_name=current.value,
                            appended=False,
                            outcome=Outcome.UNMATCHED.value,
                        )

                    count_before = count_trips(conn, match.table, member_name, request.member_id, day)
                    closed = close_event(conn, match.table, match.event, clock_time(now),
                                         period=request.period, notes=request.notes)
                    count_after = count_trips(conn, match.table, member_name, request.member_id, day)

        if match.location != current.value:
            logger.info(f"Back for member {request.member_id} closed in {match.location} (expected {current.value})")
        audit_event("usage.back", {"member_id": request.member_id, "partition": match.location},
                    {"time_out": closed.time_out, "time_back": closed.time_back, "notes": closed.notes})

        return UsageResponse(
            confirmation_needed=False,
            count_before=count_before,
            count_after=count_after,
            member_name=member_name,
            partition_name=match.location,
            appended=True,
            outcome=(Outcome.RECONCILED if match.table == ARCHIVE_TABLE else Outcome.CLOSED).value,
        )
