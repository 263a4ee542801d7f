"""
Local waitlist storage, used when no remote backend is configured.
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from errors import StoreError
from models import WaitlistEntry, normalize_email, utcnow
from storage import KeyValueStorage

logger = logging.getLogger(__name__)

WAITLIST_SLOT = "waitlist"
PROTECTED_FIELDS = {"id", "created_at", "updated_at"}

# One lock per slot name, shared by every store in the process
_slot_locks: Dict[str, threading.Lock] = {}
_slot_locks_guard = threading.Lock()


def _slot_lock(slot: str) -> threading.Lock:
    with _slot_locks_guard:
        return _slot_locks.setdefault(slot, threading.Lock())


class LocalEntryStore:
    """Upsert-by-email over a single storage slot"""

    def __init__(
        self,
        storage: KeyValueStorage,
        slot: str = WAITLIST_SLOT,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.slot = slot
        self.clock = clock

    def load_entries(self) -> List[WaitlistEntry]:
        try:
            raw = self.storage.read(self.slot)
        except UnicodeDecodeError:
            logger.warning("Waitlist slot %s is not valid UTF-8, starting empty", self.slot)
            return []
        except OSError as exc:
            raise StoreError("Waitlist storage unavailable", detail=str(exc)) from exc
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Waitlist slot %s is corrupt, starting empty", self.slot)
            return []
        if not isinstance(data, list):
            return []

        entries = []
        for record in data:
            try:
                entries.append(WaitlistEntry.model_validate(record))
            except ModelValidationError:
                logger.warning("Dropping malformed waitlist record: %r", record)
        return entries

    def _save_entries(self, entries: List[WaitlistEntry]) -> None:
        try:
            payload = json.dumps([entry.model_dump(mode="json") for entry in entries], indent=2)
            self.storage.write(self.slot, payload)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreError("Failed to write waitlist storage", detail=str(exc)) from exc

    def get(self, email: str) -> Optional[WaitlistEntry]:
        key = normalize_email(email)
        return next((entry for entry in self.load_entries() if entry.email == key), None)

    def upsert(self, fields: Dict[str, Any]) -> WaitlistEntry:
        if not fields.get("email"):
            raise StoreError("Cannot store an entry without an email")
        key = normalize_email(fields["email"])
        changes = {k: v for k, v in fields.items() if k not in PROTECTED_FIELDS}
        changes["email"] = key

        with _slot_lock(self.slot):
            return self._upsert_locked(key, changes)

    def _upsert_locked(self, key: str, changes: Dict[str, Any]) -> WaitlistEntry:
        entries = self.load_entries()
        now = self.clock()
        for index, existing in enumerate(entries):
            if existing.email != key:
                continue
            # updated_at must move forward even on a coarse clock
            if now <= existing.updated_at:
                now = existing.updated_at + timedelta(microseconds=1)
            merged = existing.model_copy(update={**changes, "updated_at": now})
            entries[index] = WaitlistEntry.model_validate(merged.model_dump())
            self._save_entries(entries)
            logger.info("Updated local waitlist entry %s", merged.id)
            return entries[index]

        entry = WaitlistEntry.model_validate({**changes, "created_at": now, "updated_at": now})
        entries.append(entry)
        self._save_entries(entries)
        logger.info("Created local waitlist entry %s", entry.id)
        return entry
