"""
Commit activity aggregation for the timeline and contributor charts.

Everything here is a pure function of (commits, window, now): no I/O and no
hidden state, so the shell can recompute from scratch whenever either input
changes. Days are bucketed on UTC calendar dates.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from backend.core.exceptions import InvalidSelection, MalformedRecord
from backend.models.schemas import (
    ActivityReport,
    CommitRecord,
    ContributorSummary,
    DailyCount,
    TimeWindow,
)

logger = logging.getLogger(__name__)


def _as_utc(dt: datetime) -> datetime:
    # naive timestamps are taken to be UTC already
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _author_date(commit: CommitRecord) -> datetime:
    author_date = getattr(commit, "author_date", None)
    if author_date is None:
        raise MalformedRecord(getattr(commit, "sha", None), "author_date")
    return _as_utc(author_date)


def _coerce_window(selection: Union[TimeWindow, str]) -> TimeWindow:
    try:
        return TimeWindow(selection)
    except ValueError as exc:
        raise InvalidSelection(selection) from exc


def _day_range(start: datetime, end: datetime) -> List[date]:
    """
    Every UTC calendar day from start to end inclusive.
    An inverted window collapses to the single day of `end`.
    """
    first = _as_utc(start).date()
    last = _as_utc(end).date()
    if last < first:
        return [last]
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def resolve_window(
    selection: Union[TimeWindow, str],
    commits: Sequence[CommitRecord],
    now: datetime,
) -> Tuple[datetime, datetime]:
    window = _coerce_window(selection)
    end = _as_utc(now)
    midnight = end.replace(hour=0, minute=0, second=0, microsecond=0)

    if window is TimeWindow.THIS_WEEK:
        # ISO week starts on Monday (weekday() == 0)
        start = midnight - timedelta(days=midnight.weekday())
    elif window is TimeWindow.THIS_MONTH:
        start = midnight.replace(day=1)
    else:
        dates = [_author_date(c) for c in commits]
        start = min(dates) if dates else end
    return start, end


def build_daily_series(
    commits: Iterable[CommitRecord],
    start: datetime,
    end: datetime,
) -> List[DailyCount]:
    """
    Count commits per day over [start, end], emitting a zero for quiet days.
    """
    buckets: Dict[str, int] = {day.isoformat(): 0 for day in _day_range(start, end)}
    first = _as_utc(start).date()
    last = _as_utc(end).date()

    for commit in commits:
        day = _author_date(commit).date()
        if first <= day <= last:
            buckets[day.isoformat()] += 1

    return [DailyCount(date=key, count=count) for key, count in buckets.items()]


def build_contributor_summaries(
    commits: Iterable[CommitRecord],
    start: datetime,
    end: datetime,
) -> List[ContributorSummary]:
    """
    Per-login totals over the whole list plus a window-scoped daily series.

    Commits without a login are skipped here but still show up in the global
    daily series. Name and avatar come from the last commit seen for a login.
    """
    by_login: Dict[str, List[CommitRecord]] = defaultdict(list)
    identity: Dict[str, Tuple[str, Optional[str]]] = {}

    for commit in commits:
        _author_date(commit)
        login = commit.author_login
        if not login:
            continue
        by_login[login].append(commit)
        identity[login] = (commit.author_display_name, commit.author_avatar_url)

    results: List[ContributorSummary] = []
    for login, own_commits in by_login.items():
        if not own_commits:
            continue
        display_name, avatar_url = identity[login]
        results.append(
            ContributorSummary(
                login=login,
                display_name=display_name,
                avatar_url=avatar_url,
                total_commits=len(own_commits),
                daily_series=build_daily_series(own_commits, start, end),
            )
        )

    # commit 수 내림차순, 동률이면 login 오름차순
    results.sort(key=lambda c: (-c.total_commits, c.login))
    return results


def aggregate_activity(
    commits: Iterable[CommitRecord],
    selection: Union[TimeWindow, str] = TimeWindow.ALL_TIME,
    now: Optional[datetime] = None,
) -> ActivityReport:
    items = list(commits)
    window = _coerce_window(selection)
    if now is None:
        now = datetime.now(timezone.utc)

    start, end = resolve_window(window, items, now)
    daily_series = build_daily_series(items, start, end)
    contributors = build_contributor_summaries(items, start, end)

    logger.debug(
        "Aggregated %d commits over %s (%d days, %d contributors)",
        len(items),
        window.value,
        len(daily_series),
        len(contributors),
    )
    return ActivityReport(
        window=window,
        start=start,
        end=end,
        total_commits=len(items),
        daily_series=daily_series,
        contributors=contributors,
    )
