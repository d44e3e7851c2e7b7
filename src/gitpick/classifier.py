"""Branch classification into cleanup categories."""

import calendar
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from gitpick.models import CATEGORY_ORDER, BranchRecord, Category


def days_ago(days: int, now: Optional[datetime] = None) -> int:
    """Epoch seconds ``days`` days before ``now``."""
    now = now or datetime.now(timezone.utc)
    return int((now - timedelta(days=days)).timestamp())


def months_ago(months: int, now: Optional[datetime] = None) -> int:
    """Epoch seconds ``months`` calendar months before ``now``.

    The day of month is clamped to the length of the target month, so
    ``months_ago(1)`` on March 31st lands on the last day of February.
    """
    now = now or datetime.now(timezone.utc)
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return int(now.replace(year=year, month=month, day=day).timestamp())


def categorize(record: BranchRecord, threshold_epoch: int) -> Category:
    """Category of a single branch.

    A branch that was pushed once (it has an upstream configured) but whose
    remote branch is gone is MERGED, regardless of its age. A branch whose
    tip could not be resolved counts as STALE.
    """
    if record.had_configured_upstream and not record.has_remote_counterpart:
        return Category.MERGED
    if record.last_commit_epoch is None or record.last_commit_epoch < threshold_epoch:
        return Category.STALE
    return Category.RECENT


def classify(
    records: Iterable[BranchRecord],
    threshold_epoch: int,
    base_branch: Optional[str],
) -> dict[Category, list[BranchRecord]]:
    """Partition branches by category, most recent commit first in each group.

    The base branch is left out. Every category key is present, possibly
    with an empty list. Ties keep input order.
    """
    groups: dict[Category, list[BranchRecord]] = {category: [] for category in CATEGORY_ORDER}
    for record in records:
        if base_branch and record.name == base_branch:
            continue
        groups[categorize(record, threshold_epoch)].append(record)

    for category in CATEGORY_ORDER:
        # sorted() is stable; unresolved timestamps go last
        groups[category] = sorted(
            groups[category],
            key=lambda record: -(record.last_commit_epoch if record.last_commit_epoch is not None else -1),
        )
    return groups


def flatten(groups: dict[Category, list[BranchRecord]]) -> list[BranchRecord]:
    """All records of a classification, in category order."""
    return [record for category in CATEGORY_ORDER for record in groups.get(category, [])]
