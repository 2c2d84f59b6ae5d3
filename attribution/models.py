from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Iterable, Mapping

ATTRIBUTION_INVITE = "invite"
ATTRIBUTION_VANITY = "vanity"
ATTRIBUTION_UNKNOWN = "unknown"

LOOKUP_FOUND = "found"
LOOKUP_NOT_FOUND = "not_found"
LOOKUP_FORBIDDEN = "forbidden"
LOOKUP_TIMEOUT = "timeout"
LOOKUP_ERROR = "error"


@dataclass(frozen=True, slots=True)
class InviteRecord:
    code: str
    uses: int = 0
    inviter_id: str | None = None
    inviter_name: str | None = None


@dataclass(frozen=True, slots=True)
class InviteSnapshot:
    """code -> cumulative uses, in the order the provider listed them."""

    uses_by_code: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "uses_by_code", MappingProxyType(dict(self.uses_by_code)))

    @classmethod
    def empty(cls) -> "InviteSnapshot":
        return cls({})

    @classmethod
    def from_invites(cls, invites: Iterable[InviteRecord]) -> "InviteSnapshot":
        return cls({inv.code: int(inv.uses or 0) for inv in invites})

    def uses(self, code: str) -> int | None:
        return self.uses_by_code.get(code)

    def codes(self) -> list[str]:
        return list(self.uses_by_code.keys())

    def __contains__(self, code: object) -> bool:
        return code in self.uses_by_code

    def __len__(self) -> int:
        return len(self.uses_by_code)


@dataclass(frozen=True, slots=True)
class InviteAttribution:
    kind: str
    code: str | None = None
    inviter_id: str | None = None
    inviter_name: str | None = None
    uses: int | None = None
    permission_denied: bool = False

    @classmethod
    def from_invite(cls, invite: InviteRecord) -> "InviteAttribution":
        return cls(
            kind=ATTRIBUTION_INVITE,
            code=invite.code,
            inviter_id=invite.inviter_id,
            inviter_name=invite.inviter_name,
            uses=int(invite.uses or 0),
        )

    @classmethod
    def vanity(cls, code: str) -> "InviteAttribution":
        return cls(kind=ATTRIBUTION_VANITY, code=code)

    @classmethod
    def unknown(cls, *, permission_denied: bool = False) -> "InviteAttribution":
        return cls(kind=ATTRIBUTION_UNKNOWN, permission_denied=permission_denied)

    @property
    def is_unknown(self) -> bool:
        return self.kind == ATTRIBUTION_UNKNOWN


@dataclass(frozen=True, slots=True)
class AuditEntry:
    action: str
    target_id: str | None
    executor_id: str | None = None
    executor_name: str | None = None
    reason: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AuditLookup:
    status: str
    entry: AuditEntry | None = None

    @property
    def found(self) -> bool:
        return self.status == LOOKUP_FOUND and self.entry is not None

    @property
    def degraded(self) -> bool:
        return self.status in {LOOKUP_FORBIDDEN, LOOKUP_TIMEOUT, LOOKUP_ERROR}
