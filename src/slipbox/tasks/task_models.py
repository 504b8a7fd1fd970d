# src/slipbox/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum

from ..core.errors import InvalidArgumentError


class StartDateKind(StrEnum):
    INBOX = "inbox"
    SPECIFIC_DATE = "specific_date"

    @classmethod
    def parse(cls, raw: str) -> StartDateKind:
        try:
            return cls(raw)
        except ValueError:
            raise InvalidArgumentError(
                "invalid start_date_kind: must be 'inbox' or 'specific_date'"
            ) from None


@dataclass(frozen=True, slots=True)
class StartDate:
    """
    Start-date classification: inbox (no date) or scheduled on a calendar date.

    kind and on are always consistent; construction rejects any other combination.
    """

    kind: StartDateKind = StartDateKind.INBOX
    on: date | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.kind, StartDateKind):
            raise InvalidArgumentError("invalid start_date_kind: must be 'inbox' or 'specific_date'")
        if self.kind is StartDateKind.SPECIFIC_DATE and self.on is None:
            raise InvalidArgumentError("start_date is required when start_date_kind is specific_date")
        if self.kind is StartDateKind.INBOX and self.on is not None:
            raise InvalidArgumentError("start_date must be empty when start_date_kind is inbox")

    @classmethod
    def inbox(cls) -> StartDate:
        return cls(StartDateKind.INBOX, None)

    @classmethod
    def scheduled(cls, on: date) -> StartDate:
        return cls(StartDateKind.SPECIFIC_DATE, on)

    @classmethod
    def from_optional(cls, on: date | None) -> StartDate:
        return cls.inbox() if on is None else cls.scheduled(on)

    @property
    def is_inbox(self) -> bool:
        return self.kind is StartDateKind.INBOX


class ArchiveFilter(StrEnum):
    """Which tasks a listing shows, by archive state."""

    ACTIVE_ONLY = "active_only"
    INCLUDE_ARCHIVED = "include_archived"
    ARCHIVED_ONLY = "archived_only"

    @classmethod
    def from_flags(cls, *, include_archived: bool, archived_only: bool) -> ArchiveFilter:
        """archived_only wins when both flags are set."""
        if archived_only:
            return cls.ARCHIVED_ONLY
        if include_archived:
            return cls.INCLUDE_ARCHIVED
        return cls.ACTIVE_ONLY


@dataclass(slots=True)
class ChecklistItem:
    id: str
    task_id: str
    content: str
    completed: bool
    sort_order: int
    created_at: float
    updated_at: float


@dataclass(slots=True)
class Task:
    id: str
    title: str
    notes: str
    owner_id: str
    created_at: float
    updated_at: float
    archived_at: float | None = None
    start_date: StartDate = field(default_factory=StartDate.inbox)
    tag_ids: list[str] = field(default_factory=list)
    checklist: list[ChecklistItem] = field(default_factory=list)

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None
