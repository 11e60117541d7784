"""
Shift alignment - Lift raw rows to timed shifts and assign per-day sequence numbers.

Multi-shift days are aligned by position: rows are sorted by date, employee and
in-time, grouped by employee and date, and numbered 1..N. The Nth-earliest
scheduled shift is then assumed to pair with the Nth-earliest worked shift. This
is a heuristic; an employee who swaps the order of their shifts will be
mismatched. Strategies implement AlignmentStrategy so the pairing rule can be
replaced without touching the delta calculator.
"""

import re
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Tuple

import numpy as np
import pandas as pd

from config.constants import ISO_DATE_FORMAT
from shift_reconciliation.models.data_models import ParsedShift, RawShiftRow
from shift_reconciliation.utils.error_handlers import InvalidDateFormatError, InvalidTimeFormatError


logger = logging.getLogger(__name__)

# "10:00AM", " 3:00 pm", "09:15 Am " - surrounding whitespace is stripped first
CLOCK_TIME_PATTERN = re.compile(r'^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$')
ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

SORT_COLUMNS = ['date', 'employee_id', 'in_timestamp']
GROUP_COLUMNS = ['employee_id', 'date']


def parse_shift_date(date_str: str) -> datetime:
    """
    Parse a YYYY-MM-DD shift date.

    Raises:
        InvalidDateFormatError: If the value is not a real ISO calendar date
    """
    value = date_str.strip()
    if not ISO_DATE_PATTERN.match(value):
        raise InvalidDateFormatError(date_str)

    try:
        return datetime.strptime(value, ISO_DATE_FORMAT)
    except ValueError:
        raise InvalidDateFormatError(date_str)


def parse_clock_time(time_str: str, date_str: str) -> datetime:
    """
    Parse a 12-hour clock time and anchor it to the shift date.

    Args:
        time_str: e.g. "10:00AM ", " 3:00PM", "10:00 am"
        date_str: Shift date as YYYY-MM-DD

    Returns:
        Naive datetime on the shift date

    Raises:
        InvalidTimeFormatError: If the time is not H:MM/HH:MM followed by AM or PM
        InvalidDateFormatError: If the date is not YYYY-MM-DD
    """
    match = CLOCK_TIME_PATTERN.match(time_str.strip())
    if not match:
        raise InvalidTimeFormatError(time_str)

    hours = int(match.group(1))
    minutes = int(match.group(2))
    period = match.group(3).upper()

    if hours > 12 or minutes > 59:
        raise InvalidTimeFormatError(time_str)

    # Convert to 24-hour
    if period == 'PM' and hours != 12:
        hours += 12
    elif period == 'AM' and hours == 12:
        hours = 0

    return parse_shift_date(date_str).replace(hour=hours, minute=minutes)


def validate_shift_times(rows: List[RawShiftRow]) -> None:
    """Parse every in and out time, raising on the first invalid one in row order."""
    for row in rows:
        parse_clock_time(row.in_time, row.date)
        parse_clock_time(row.out_time, row.date)


def align_shifts(rows: List[RawShiftRow]) -> List[ParsedShift]:
    """
    Convert raw rows to parsed shifts with sequence numbers and match keys.

    Args:
        rows: Rows from one export (scheduled or worked)

    Returns:
        Shifts ordered by date, employee id and in-time; match keys are unique

    Raises:
        InvalidTimeFormatError: If any in or out time cannot be parsed
        InvalidDateFormatError: If any date cannot be parsed
    """
    if not rows:
        logger.debug("No rows to align")
        return []

    in_times = [parse_clock_time(row.in_time, row.date) for row in rows]
    out_times = [parse_clock_time(row.out_time, row.date) for row in rows]

    shifts_df = pd.DataFrame([row.model_dump() for row in rows])
    shifts_df['in_timestamp'] = pd.to_datetime(pd.Series(in_times, index=shifts_df.index))
    shifts_df['out_timestamp'] = pd.to_datetime(pd.Series(out_times, index=shifts_df.index))

    # Stable multi-key sort: the same input always yields the same sequence numbers
    shifts_df = shifts_df.sort_values(SORT_COLUMNS, kind='mergesort')
    shifts_df['sequence'] = shifts_df.groupby(GROUP_COLUMNS, sort=False).cumcount() + 1

    # Not clamped: out-before-in (overnight) shifts surface as negative durations
    shifts_df['scheduled_minutes'] = (
        (shifts_df['out_timestamp'] - shifts_df['in_timestamp']) / np.timedelta64(1, 'm')
    )
    shifts_df['employee_name'] = (shifts_df['first_name'] + ' ' + shifts_df['last_name']).str.strip()
    shifts_df['match_key'] = (
        shifts_df['employee_id'] + '-'
        + shifts_df['date'].str.replace('-', '', regex=False) + '-'
        + shifts_df['sequence'].astype(str)
    )

    negative = int((shifts_df['scheduled_minutes'] < 0).sum())
    if negative:
        logger.warning(f"{negative} shifts end before they start - durations left negative for review")

    multi_shift_days = int((shifts_df['sequence'] > 1).sum())
    if multi_shift_days:
        logger.debug(f"{multi_shift_days} shifts aligned as second-or-later shifts of the day")

    shifts = []
    for position, record in zip(shifts_df.index, shifts_df.to_dict('records')):
        shifts.append(ParsedShift(
            employee_id=record['employee_id'],
            employee_name=record['employee_name'],
            date=record['date'],
            in_time=in_times[position],
            out_time=out_times[position],
            role=record['role'],
            scheduled_minutes=float(record['scheduled_minutes']),
            sequence=int(record['sequence']),
            match_key=record['match_key'],
        ))

    logger.info(f"Aligned {len(shifts)} shifts for {shifts_df['employee_id'].nunique()} employees")
    return shifts


class AlignmentStrategy(ABC):
    """Pairs scheduled and worked rows by giving corresponding shifts the same match key."""

    name = "base"

    @abstractmethod
    def align_pair(self, scheduled_rows: List[RawShiftRow],
                   worked_rows: List[RawShiftRow]) -> Tuple[List[ParsedShift], List[ParsedShift]]:
        """Return (scheduled shifts, worked shifts); each side's match keys must be unique."""


class SequenceAlignmentStrategy(AlignmentStrategy):
    """Ordinal pairing: each side is aligned independently by per-day sequence number."""

    name = "sequence"

    def align_pair(self, scheduled_rows: List[RawShiftRow],
                   worked_rows: List[RawShiftRow]) -> Tuple[List[ParsedShift], List[ParsedShift]]:
        return align_shifts(scheduled_rows), align_shifts(worked_rows)
