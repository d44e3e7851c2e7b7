"""Data model shared by the query, classification and picker layers."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Scope(Enum):
    """Which refs a branch listing covers."""

    LOCAL = "local"
    REMOTE = "remote"


class Category(Enum):
    """Cleanup category of a branch, in menu order."""

    MERGED = "merged"
    STALE = "stale"
    RECENT = "recent"

    @property
    def label(self) -> str:
        return f"[{self.name}]"


CATEGORY_ORDER = (Category.MERGED, Category.STALE, Category.RECENT)


class Action(Enum):
    """How the user left the picker."""

    ACCEPT = "accept"
    DELETE_KEY = "delete-key"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class BranchRecord:
    """A branch as seen by one invocation.

    ``last_commit_epoch`` is None when the tip commit could not be resolved.
    """

    name: str
    last_commit_epoch: Optional[int]
    last_commit_relative: str = ""
    author_name: str = ""
    author_email: str = ""
    has_remote_counterpart: bool = False
    had_configured_upstream: bool = False
    is_current: bool = False

    def to_json(self) -> dict:
        """Structured-output shape; field names and order are relied on by scripts."""
        return {
            "last_change_timestamp": self.last_commit_epoch or 0,
            "author_email": self.author_email,
            "author_name": self.author_name,
            "name": self.name,
            "last_change_relative": self.last_commit_relative,
        }


@dataclass(frozen=True)
class MenuRow:
    """One selectable line of a picker menu."""

    key: str
    display: str
    item: Any = None
    category: Optional[Category] = None
    preselected: bool = False

    @property
    def selectable(self) -> bool:
        return self.item is not None


@dataclass
class SelectionResult:
    """What came back from the picker."""

    action: Action
    chosen: list = field(default_factory=list)
    query: str = ""

    @property
    def cancelled(self) -> bool:
        return self.action is Action.CANCELLED


class StagingState(Enum):
    """Where a changed file sits relative to the index."""

    STAGED = "STAGED"
    UNSTAGED = "UNSTAGED"
    UNTRACKED = "UNTRACKED"

    @property
    def label(self) -> str:
        return f"[{self.value}]"


@dataclass(frozen=True)
class StatusEntry:
    """A line of ``git status --short``."""

    path: str
    code: str
    state: StagingState
