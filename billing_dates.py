# billing_dates.py
import calendar
from datetime import date, datetime
from typing import Optional, Union

from errors import CorruptScheduleError

# ~100 years of monthly cycles
MAX_CYCLES = 1200

DateLike = Union[date, datetime, str]


def as_date(value: DateLike) -> date:
  """Date part of a date, datetime or ISO string. Time of day is dropped."""
  if isinstance(value, datetime):
    return value.date()
  if isinstance(value, date):
    return value
  return datetime.fromisoformat(str(value).strip()).date()


def last_day_of_month(year: int, month: int) -> int:
  return calendar.monthrange(year, month)[1]


def add_months_keep_day(value: DateLike, months: int) -> date:
  """Add months keeping the day, clamped to the target month (Jan 31 + 1 -> Feb 28/29)."""
  d = as_date(value)
  target = d.month - 1 + months
  year = d.year + target // 12
  month = target % 12 + 1
  return date(year, month, min(d.day, last_day_of_month(year, month)))


def months_elapsed_since(due: DateLike, today: DateLike) -> int:
  """Monthly cycles started from `due` up to and including `today`."""
  cursor = as_date(due)
  today = as_date(today)
  count = 0
  while cursor <= today:
    if count >= MAX_CYCLES:
      raise CorruptScheduleError(
        f"more than {MAX_CYCLES} cycles between {as_date(due)} and {today}"
      )
    count += 1
    cursor = add_months_keep_day(cursor, 1)
  return count


def with_billing_day(value: DateLike, billing_day: Optional[int]) -> date:
  d = as_date(value)
  if not billing_day:
    return d
  return d.replace(day=min(billing_day, last_day_of_month(d.year, d.month)))


def next_cycle_date(
  current_due: Optional[DateLike],
  billing_day: Optional[int],
  today: DateLike,
) -> date:
  # never billed: the first cycle counts from today
  base = as_date(current_due) if current_due is not None else as_date(today)
  return with_billing_day(add_months_keep_day(base, 1), billing_day)


def first_due_date(billing_day: Optional[int], today: DateLike) -> Optional[date]:
  """This month's billing day if not passed yet, else next month's."""
  if not billing_day or billing_day < 1 or billing_day > 31:
    return None
  today = as_date(today)
  month_start = today.replace(day=1)
  if today.day > billing_day:
    month_start = add_months_keep_day(month_start, 1)
  return with_billing_day(month_start, billing_day)
