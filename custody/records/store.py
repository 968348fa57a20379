from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime

from custody.access.registry import AuthorizationRegistry, Principal
from custody.domain.exceptions import (
    BusinessValidationError,
    Forbidden,
    InvalidTarget,
    NotFound,
)
from custody.events.notifications import Notification


@dataclass(frozen=True)
class PatientRecord:
    """Immutable snapshot of a record. The store swaps in a new snapshot on every change."""

    id: int
    name: str
    age: int
    sex: str
    mobile: str
    diagnosis: str
    treatment: str
    current_custodian: Principal
    created_at: datetime
    last_updated: datetime


class RecordStore:
    """Patient records with per-record custody.

    Every operation requires an authorized caller. Field edits and transfers additionally
    require the caller to be the record's current custodian. Records are never removed, so
    ids are handed out once, in commit order, starting at 1.
    """

    def __init__(self, *, registry: AuthorizationRegistry):
        self.registry = registry
        self._records: dict[int, PatientRecord] = {}
        self._ordered_ids: list[int] = []
        self._next_id = 1

    @property
    def _lock(self):
        return self.registry.lock

    def __len__(self) -> int:
        with self._lock:
            return len(self._ordered_ids)

    def _get_existing(self, record_id: int) -> PatientRecord:
        record = self._records.get(record_id)
        if record is None:
            raise NotFound(f"Record {record_id} not found.")
        return record

    def _get_custodied(self, caller: Principal, record_id: int) -> PatientRecord:
        record = self._get_existing(record_id)
        if record.current_custodian != caller:
            raise Forbidden(f"Caller is not the custodian of record {record_id}.")
        return record

    def add_record(
        self,
        caller: Principal,
        *,
        name: str,
        age: int,
        sex: str,
        mobile: str,
        diagnosis: str,
        treatment: str,
    ) -> int:
        with self._lock:
            self.registry.require_authorized(caller)
            _validate_age(age)

            now = self.registry.clock()
            record_id = self._next_id
            self._records[record_id] = PatientRecord(
                id=record_id,
                name=name,
                age=age,
                sex=sex,
                mobile=mobile,
                diagnosis=diagnosis,
                treatment=treatment,
                current_custodian=caller,
                created_at=now,
                last_updated=now,
            )
            self._ordered_ids.append(record_id)
            self._next_id += 1

            self.registry.notifications.publish(
                Notification(kind="record_added", occurred_at=now, record_id=record_id, actor=caller)
            )
            return record_id

    def update_record(
        self,
        caller: Principal,
        record_id: int,
        *,
        name: str,
        age: int,
        sex: str,
        mobile: str,
        diagnosis: str,
        treatment: str,
    ) -> PatientRecord:
        with self._lock:
            self.registry.require_authorized(caller)
            record = self._get_custodied(caller, record_id)
            _validate_age(age)

            # Keep created_at <= last_updated even if the clock steps backwards.
            now = max(self.registry.clock(), record.created_at)
            updated = dataclasses.replace(
                record,
                name=name,
                age=age,
                sex=sex,
                mobile=mobile,
                diagnosis=diagnosis,
                treatment=treatment,
                last_updated=now,
            )
            self._records[record_id] = updated

            self.registry.notifications.publish(
                Notification(
                    kind="record_updated", occurred_at=now, record_id=record_id, actor=caller
                )
            )
            return updated

    def transfer_record(self, caller: Principal, record_id: int, to: Principal) -> PatientRecord:
        with self._lock:
            self.registry.require_authorized(caller)
            record = self._get_custodied(caller, record_id)
            if not self.registry.is_authorized(to):
                raise InvalidTarget("Transfer target is not an authorized provider.")

            transferred = dataclasses.replace(record, current_custodian=to)
            self._records[record_id] = transferred

            self.registry.notifications.publish(
                Notification(
                    kind="record_transferred",
                    occurred_at=self.registry.clock(),
                    record_id=record_id,
                    actor=caller,
                    subject=to,
                )
            )
            return transferred

    def get_record(self, caller: Principal, record_id: int) -> PatientRecord:
        with self._lock:
            self.registry.require_authorized(caller)
            return self._get_existing(record_id)

    def list_all_ids(self, caller: Principal) -> list[int]:
        with self._lock:
            self.registry.require_authorized(caller)
            return list(self._ordered_ids)

    def list_ids_by_custodian(self, caller: Principal, principal: Principal) -> list[int]:
        with self._lock:
            self.registry.require_authorized(caller)
            return [
                record_id
                for record_id in self._ordered_ids
                if self._records[record_id].current_custodian == principal
            ]


def _validate_age(age: int) -> None:
    if isinstance(age, bool) or not isinstance(age, int) or age < 0:
        raise BusinessValidationError("age must be a non-negative integer.")
