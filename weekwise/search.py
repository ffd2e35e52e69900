"""Search criteria for filtered event searches."""

from dataclasses import dataclass
from datetime import date, datetime, time as dt_time
from typing import Optional

from .timezone_utils import now_local_naive
from .validation import parse_date_token, parse_time_token


END_OF_DAY = dt_time(23, 59, 59)


@dataclass
class SearchCriteria:
    """
    Raw search form fields.

    Dates accept 'YYYY-MM-DD', 'YYYYMMDD' or the 't'/'today' shorthand;
    times accept 'HH:MM'. Any field may be empty.
    """
    query: str = ""
    start_date: str = ""
    start_time: str = ""
    end_date: str = ""
    end_time: str = ""

    def is_empty(self) -> bool:
        return not any(f.strip() for f in (
            self.query, self.start_date, self.start_time, self.end_date, self.end_time,
        ))

    def resolve_range(self, today: Optional[date] = None) -> tuple[Optional[datetime], Optional[datetime]]:
        """
        Turn the date/time fields into naive local bounds (inclusive).

        A missing start time means the start of the day, a missing end time
        the end of the day; a time without a date applies to today.
        """
        today = today or now_local_naive().date()
        start = self._combine(self.start_date, self.start_time, dt_time.min, today)
        end = self._combine(self.end_date, self.end_time, END_OF_DAY, today)
        return start, end

    @staticmethod
    def _combine(date_text: str, time_text: str, default_time: dt_time, today: date) -> Optional[datetime]:
        day = parse_date_token(date_text, today)
        clock = parse_time_token(time_text)
        if day is None and clock is None:
            return None
        return datetime.combine(day or today, clock or default_time)
