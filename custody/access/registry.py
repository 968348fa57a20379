from __future__ import annotations

import re
import threading
from collections.abc import Callable
from datetime import UTC, datetime

from custody.domain.exceptions import Unauthorized
from custody.events.notifications import Notification, NotificationChannel

Principal = str
Clock = Callable[[], datetime]

_SAFE_PRINCIPAL_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._:@-]{0,127}$")


def is_valid_principal(value: str) -> bool:
    return bool(_SAFE_PRINCIPAL_PATTERN.fullmatch(value))


def utc_now() -> datetime:
    return datetime.now(UTC)


class AuthorizationRegistry:
    """Owner principal plus the set of principals currently allowed to act.

    The owner is fixed at construction and is authorized from the start. The registry's
    lock is shared with the record store so a check made here and a commit made there are
    one atomic step.
    """

    def __init__(
        self,
        *,
        owner: Principal,
        notifications: NotificationChannel | None = None,
        clock: Clock = utc_now,
    ):
        self._owner = owner
        self._authorized: set[Principal] = {owner}
        self.notifications = notifications or NotificationChannel()
        self.clock = clock
        self.lock = threading.RLock()

    @property
    def owner(self) -> Principal:
        return self._owner

    def is_authorized(self, principal: Principal) -> bool:
        with self.lock:
            return principal in self._authorized

    def authorized_principals(self) -> frozenset[Principal]:
        with self.lock:
            return frozenset(self._authorized)

    def require_owner(self, caller: Principal) -> None:
        if caller != self._owner:
            raise Unauthorized("Only the registry owner may perform this operation.")

    def require_authorized(self, caller: Principal) -> None:
        if not self.is_authorized(caller):
            raise Unauthorized("Caller is not an authorized provider.")

    def authorize(self, caller: Principal, target: Principal) -> None:
        with self.lock:
            self.require_owner(caller)
            self._authorized.add(target)
            self.notifications.publish(
                Notification(
                    kind="authorized", occurred_at=self.clock(), actor=caller, subject=target
                )
            )

    def revoke(self, caller: Principal, target: Principal) -> None:
        # Revoking the owner is a no-op on ownership: the owner stays the owner and keeps
        # owner-only rights, only its provider membership is dropped.
        with self.lock:
            self.require_owner(caller)
            self._authorized.discard(target)
            self.notifications.publish(
                Notification(kind="revoked", occurred_at=self.clock(), actor=caller, subject=target)
            )
