"""Data models for the link store."""

import enum
from dataclasses import dataclass, field
from typing import Tuple
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ShortLink:
    """A key to target URL mapping owned by one session."""

    key: str
    target: str
    owner: str
    removed: bool = False
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "target": self.target,
            "owner": self.owner,
            "removed": self.removed,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShortLink":
        """Create from dictionary."""
        created_at = data.get("created_at")
        if created_at is None:
            created_at = _utcnow()
        elif not isinstance(created_at, datetime):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            key=data["key"],
            target=data["target"],
            owner=data["owner"],
            removed=bool(data.get("removed", False)),
            created_at=created_at,
        )


class CreateOutcome(enum.Enum):
    """Whether a create call allocated a new key or found an existing one."""

    CREATED = "created"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class CreateResult:
    """Key returned by a create call and how it was obtained."""

    key: str
    outcome: CreateOutcome

    @property
    def created(self) -> bool:
        return self.outcome is CreateOutcome.CREATED


@dataclass(frozen=True)
class BatchItem:
    """One URL of a batch create, tagged by the caller's correlation id."""

    correlation_id: str
    original_url: str


@dataclass(frozen=True)
class ResultItem:
    """Key allocated (or found) for one batch item."""

    correlation_id: str
    key: str
    outcome: CreateOutcome = CreateOutcome.CREATED


@dataclass(frozen=True)
class DeleteReport:
    """Summary of a bulk delete."""

    requested: int
    deleted: int
    skipped: int
    removed_keys: Tuple[str, ...] = ()

    @property
    def all_deleted(self) -> bool:
        return self.skipped == 0

