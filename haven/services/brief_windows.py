"""
Org-local date boundaries and date labels for the daily brief.

Every "yesterday", "last 7 days" and "next N days" in the brief means the
organisation's own calendar, never the calendar of the worker running the job.
Date columns are compared against the local dates; timestamp columns are
compared against the UTC instant at which the local day starts.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from haven.core.exceptions import ConfigurationException

EXPIRY_HORIZON_DAYS = 30
TREND_WINDOW_DAYS = 7

# Shown where a date or time is missing
NO_DATE_LABEL = "—"


def load_timezone(name: str) -> ZoneInfo:
    """Resolve an IANA zone name or raise ConfigurationException."""
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, TypeError):
        raise ConfigurationException(
            f"Unknown timezone: {name}", details={"timezone": name}
        )


def ensure_utc(value: datetime) -> datetime:
    """Treat naive timestamps from the store as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class DateWindow:
    """A range of local calendar days."""
    start: date
    end: date
    end_inclusive: bool = True

    @property
    def end_exclusive(self) -> date:
        """First local day after the window."""
        return self.end + timedelta(days=1) if self.end_inclusive else self.end

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end_exclusive


@dataclass(frozen=True)
class BriefWindows:
    """All date boundaries used by one brief invocation."""
    timezone: str
    now: datetime
    today: date
    yesterday_start: date
    yesterday_end: date
    future_end: date
    seven_days_ago: date
    fourteen_days_ago: date
    thirty_days_out: date

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def yesterday(self) -> DateWindow:
        return DateWindow(self.yesterday_start, self.yesterday_end)

    @property
    def last_seven_days(self) -> DateWindow:
        return DateWindow(self.seven_days_ago, self.yesterday_end)

    @property
    def prior_seven_days(self) -> DateWindow:
        # Ends where the last window starts, so the two never overlap
        return DateWindow(self.fourteen_days_ago, self.seven_days_ago, end_inclusive=False)

    @property
    def outlook(self) -> DateWindow:
        return DateWindow(self.today, self.future_end)

    @property
    def expiry(self) -> DateWindow:
        return DateWindow(self.today, self.thirty_days_out)

    def local_midnight(self, day: date) -> datetime:
        """The instant a local day starts, in UTC."""
        return datetime.combine(day, time.min, tzinfo=self.tz).astimezone(timezone.utc)

    def utc_bounds(self, window: DateWindow) -> Tuple[datetime, datetime]:
        """Half-open UTC instant range covering a local date window."""
        return self.local_midnight(window.start), self.local_midnight(window.end_exclusive)

    def to_local(self, value: datetime) -> datetime:
        return ensure_utc(value).astimezone(self.tz)

    def as_strings(self) -> Dict[str, str]:
        return {
            "today": self.today.isoformat(),
            "yesterday_start": self.yesterday_start.isoformat(),
            "yesterday_end": self.yesterday_end.isoformat(),
            "future_end": self.future_end.isoformat(),
            "seven_days_ago": self.seven_days_ago.isoformat(),
            "fourteen_days_ago": self.fourteen_days_ago.isoformat(),
            "thirty_days_out": self.thirty_days_out.isoformat(),
        }


def resolve_windows(
    timezone_name: str,
    now: Optional[datetime] = None,
    lookback_days: int = 1,
    forward_days: int = 7,
) -> BriefWindows:
    """
    Compute the brief's date boundaries in the organisation's calendar.

    Args:
        timezone_name: IANA timezone of the organisation
        now: Current instant (defaults to the wall clock); naive values are UTC
        lookback_days: How many days back the "yesterday" window starts
        forward_days: Length of the outlook window

    Returns:
        BriefWindows: Local calendar boundaries for this invocation
    """
    if lookback_days < 1 or forward_days < 1:
        raise ConfigurationException(
            "Brief windows must span at least one day",
            details={"lookback_days": lookback_days, "forward_days": forward_days},
        )

    tz = load_timezone(timezone_name)
    now_utc = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    today = now_utc.astimezone(tz).date()

    return BriefWindows(
        timezone=timezone_name,
        now=now_utc,
        today=today,
        yesterday_start=today - timedelta(days=lookback_days),
        yesterday_end=today - timedelta(days=1),
        future_end=today + timedelta(days=forward_days),
        seven_days_ago=today - timedelta(days=TREND_WINDOW_DAYS),
        fourteen_days_ago=today - timedelta(days=TREND_WINDOW_DAYS * 2),
        thirty_days_out=today + timedelta(days=EXPIRY_HORIZON_DAYS),
    )


def format_long_date(day: date) -> str:
    """e.g. 'Monday 24 February 2026'."""
    return f"{day.strftime('%A')} {day.day} {day.strftime('%B %Y')}"


def format_day_month(day: date) -> str:
    """e.g. '24 Feb'."""
    return f"{day.day} {day.strftime('%b')}"


def format_short_date(day: date) -> str:
    """e.g. '1 Mar 2026'."""
    return f"{day.day} {day.strftime('%b %Y')}"


def format_clock_time(value: datetime) -> str:
    """e.g. '9:15:02 am'."""
    hour = value.strftime("%I").lstrip("0")
    return f"{hour}:{value.strftime('%M:%S %p').lower()}"
