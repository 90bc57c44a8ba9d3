"""
nftmarket.access.gate
=====================

Role checks, allow-list and deny-list consumed by the marketplace.

The engine only depends on the narrow `AccessGate` protocol:

- ``has_role(role, account) -> bool``
- ``is_allowed(account) -> bool``
- ``is_denied(account) -> bool``

`ControlCenter` is the in-memory implementation used on devnets and in tests.

Design notes
------------
- The deploying account receives every role (admin, operator, treasurer,
  moderator) at construction.
- Only admins grant or revoke roles. Membership of the allow-list and the
  deny-list is managed by moderators, one account at a time or in batches.
  Batch calls reject an empty input with ``EMPTY_ARRAY``.
- Granting an existing role or adding an existing member is a no-op.
- State is journaled (`snapshot`/`restore`) so it rolls back with the call
  that changed it.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, List, Protocol, Set, runtime_checkable

from ..chain.address import normalize_address
from ..errors import AuthorizationError, Reason, ValidationError

log = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "admin"
    OPERATOR = "operator"
    TREASURER = "treasurer"
    MODERATOR = "moderator"


_ROLE_REASONS = {
    Role.ADMIN: Reason.ADMIN_ONLY,
    Role.OPERATOR: Reason.OPERATOR_ONLY,
    Role.TREASURER: Reason.TREASURER_ONLY,
    Role.MODERATOR: Reason.MODERATOR_ONLY,
}


def role_reason(role: Role) -> Reason:
    """Reason code reported when a caller lacks `role`."""
    return _ROLE_REASONS[Role(role)]


@runtime_checkable
class AccessGate(Protocol):
    def has_role(self, role: Role, account: str) -> bool: ...
    def is_allowed(self, account: str) -> bool: ...
    def is_denied(self, account: str) -> bool: ...


class ControlCenter:
    """In-memory roles + allow-list + deny-list."""

    def __init__(self, owner: str) -> None:
        owner = normalize_address(owner, field="owner")
        self._members: Dict[Role, Set[str]] = {r: {owner} for r in Role}
        self._allowed: Set[str] = set()
        self._denied: Set[str] = set()

    # ---- Queries -----------------------------------------------------------

    def has_role(self, role: Role, account: str) -> bool:
        return account.lower() in self._members[Role(role)]

    def members(self, role: Role) -> List[str]:
        return sorted(self._members[Role(role)])

    def is_allowed(self, account: str) -> bool:
        return account.lower() in self._allowed

    def is_denied(self, account: str) -> bool:
        return account.lower() in self._denied

    def require_role(self, role: Role, account: str) -> None:
        if not self.has_role(role, account):
            raise AuthorizationError(role_reason(role), details={"account": account, "role": Role(role).value})

    # ---- Roles (admin) -----------------------------------------------------

    def grant_role(self, caller: str, role: Role, account: str) -> bool:
        self.require_role(Role.ADMIN, caller)
        account = normalize_address(account, field="account")
        members = self._members[Role(role)]
        if account in members:
            return False
        members.add(account)
        log.info("role granted role=%s account=%s by=%s", Role(role).value, account, caller)
        return True

    def revoke_role(self, caller: str, role: Role, account: str) -> bool:
        self.require_role(Role.ADMIN, caller)
        account = normalize_address(account, field="account")
        members = self._members[Role(role)]
        if account not in members:
            return False
        members.discard(account)
        log.info("role revoked role=%s account=%s by=%s", Role(role).value, account, caller)
        return True

    # ---- Allow-list / deny-list (moderator) --------------------------------

    def add_to_allow_list(self, caller: str, account: str) -> None:
        self.add_many_to_allow_list(caller, [account])

    def remove_from_allow_list(self, caller: str, account: str) -> None:
        self.remove_many_from_allow_list(caller, [account])

    def add_many_to_allow_list(self, caller: str, accounts: Iterable[str]) -> int:
        return self._update(caller, self._allowed, accounts, add=True, label="allow")

    def remove_many_from_allow_list(self, caller: str, accounts: Iterable[str]) -> int:
        return self._update(caller, self._allowed, accounts, add=False, label="allow")

    def add_to_deny_list(self, caller: str, account: str) -> None:
        self.add_many_to_deny_list(caller, [account])

    def remove_from_deny_list(self, caller: str, account: str) -> None:
        self.remove_many_from_deny_list(caller, [account])

    def add_many_to_deny_list(self, caller: str, accounts: Iterable[str]) -> int:
        return self._update(caller, self._denied, accounts, add=True, label="deny")

    def remove_many_from_deny_list(self, caller: str, accounts: Iterable[str]) -> int:
        return self._update(caller, self._denied, accounts, add=False, label="deny")

    def _update(self, caller: str, target: Set[str], accounts: Iterable[str], *, add: bool, label: str) -> int:
        self.require_role(Role.MODERATOR, caller)
        normalized = [normalize_address(a, field="account") for a in accounts]
        if not normalized:
            raise ValidationError(Reason.EMPTY_ARRAY, f"{label}-list batch is empty")
        before = len(target)
        if add:
            target.update(normalized)
        else:
            target.difference_update(normalized)
        changed = abs(len(target) - before)
        log.info("%s-list %s count=%d changed=%d by=%s",
                 label, "add" if add else "remove", len(normalized), changed, caller)
        return changed

    # ---- Journal -----------------------------------------------------------

    def snapshot(self):
        return {r: set(m) for r, m in self._members.items()}, set(self._allowed), set(self._denied)

    def restore(self, state) -> None:
        members, allowed, denied = state
        self._members = {r: set(m) for r, m in members.items()}
        self._allowed, self._denied = set(allowed), set(denied)


__all__ = ["Role", "role_reason", "AccessGate", "ControlCenter"]
