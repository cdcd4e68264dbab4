"""
Identity resolver - maps a caller's login identity to a display name.
"""

import json
from pathlib import Path
from typing import Dict, Optional

from .config import get_identity_map_path
from ..util.logging import logger


class IdentityResolver:
    """Static identity table.

    Entries look like ``{"Garcia": {"email": "danny.garcia@example.org", "salutation": "Mr. "}}``
    and resolve to ``salutation + key`` ("Mr. Garcia"). Unmapped identities resolve to
    themselves; resolution never fails.
    """

    def __init__(self, mapping: Optional[Dict[str, Dict[str, str]]] = None):
        self._by_email: Dict[str, str] = {}
        for key, entry in (mapping or {}).items():
            email = (entry.get("email") or "").strip().lower()
            if email:
                self._by_email.setdefault(email, f"{entry.get('salutation', '')}{key}")

    @classmethod
    def from_file(cls, path: str = None) -> "IdentityResolver":
        """Load the table from JSON; a missing file gives an empty table."""
        file_path = Path(path or get_identity_map_path())
        if not file_path.exists():
            logger.warning(f"Identity map not found at {file_path}; display names fall back to raw identities")
            return cls({})

        with open(file_path, "r", encoding="utf-8") as f:
            return cls(json.load(f))

    def resolve(self, caller_identity: str) -> str:
        identity = (caller_identity or "").strip()
        return self._by_email.get(identity.lower(), identity)

    def __len__(self) -> int:
        return len(self._by_email)
