"""
Delta calculation - Join scheduled and worked shifts on their match keys and compute variances.

Every match key present on either side yields exactly one delta:
  - both sides   -> matched, with start/end variances and classified events
  - scheduled only -> no_show, one no_call_no_show event
  - worked only  -> unscheduled, one unscheduled_worked event
"""

import csv
import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd

from config.constants import DeltaStatus, EventType, EVENT_POINT_VALUES
from shift_reconciliation.analysis.event_classifier import detect_events
from shift_reconciliation.analysis.shift_aligner import (
    AlignmentStrategy,
    SequenceAlignmentStrategy,
    validate_shift_times,
)
from shift_reconciliation.ingestion.column_mapper import (
    auto_map_columns,
    detect_platform,
    ensure_mapping_success,
    normalize_csv,
)
from shift_reconciliation.ingestion.shift_parser import parse_shifts_csv
from shift_reconciliation.models.data_models import (
    DEFAULT_THRESHOLDS,
    ColumnMapping,
    DateRange,
    DetectedEvent,
    ImportResult,
    ParsedShift,
    PointThresholds,
    RawShiftRow,
    ShiftDelta,
)
from shift_reconciliation.utils.error_handlers import DataValidationError, ReconciliationError


logger = logging.getLogger(__name__)

# pd.merge indicator values -> delta status
MERGE_STATUS: Dict[str, DeltaStatus] = {
    'both': DeltaStatus.MATCHED,
    'left_only': DeltaStatus.NO_SHOW,
    'right_only': DeltaStatus.UNSCHEDULED,
}

# Failures that abort a side without computing any deltas
PARSE_ERRORS = (ReconciliationError, csv.Error, ValueError)


def format_clock_time(value: datetime) -> str:
    """Display a timestamp as "9:00 AM" / "12:30 PM"."""
    hour = value.hour % 12 or 12
    period = 'AM' if value.hour < 12 else 'PM'
    return f"{hour}:{value.minute:02d} {period}"


def minutes_between(start: datetime, end: datetime) -> float:
    """Signed difference end - start, in minutes."""
    return (end - start).total_seconds() / 60


def _parse_side(csv_text: str, side: str, errors: List[str]) -> List[RawShiftRow]:
    """Parse and time-check one export, recording a failure instead of raising."""
    try:
        rows = parse_shifts_csv(csv_text)
        validate_shift_times(rows)
        return rows
    except PARSE_ERRORS as e:
        logger.error(f"Error parsing {side} CSV: {e}")
        errors.append(f"Error parsing {side} CSV: {e}")
        return []


def _key_frame(shifts: List[ParsedShift], side: str) -> pd.DataFrame:
    """One row per shift: its match key and its position in the aligned list."""
    keys_df = pd.DataFrame({
        'match_key': pd.Series([shift.match_key for shift in shifts], dtype=object),
        'position': pd.Series(range(len(shifts)), dtype='int64'),
    })

    duplicated = keys_df['match_key'].duplicated()
    if duplicated.any():
        raise DataValidationError(
            f"Alignment produced duplicate {side} match keys",
            invalid_value=", ".join(keys_df.loc[duplicated, 'match_key'])
        )
    return keys_df


def no_show_event(shift: ParsedShift) -> DetectedEvent:
    return DetectedEvent(
        type=EventType.NO_CALL_NO_SHOW,
        description=f"Scheduled {format_clock_time(shift.in_time)} - "
                    f"{format_clock_time(shift.out_time)}, did not clock in",
        suggested_points=EVENT_POINT_VALUES[EventType.NO_CALL_NO_SHOW.value],
        auto_detected=True,
    )


def unscheduled_event(shift: ParsedShift) -> DetectedEvent:
    return DetectedEvent(
        type=EventType.UNSCHEDULED_WORKED,
        description=f"Worked {format_clock_time(shift.in_time)} - "
                    f"{format_clock_time(shift.out_time)} without being scheduled",
        suggested_points=EVENT_POINT_VALUES[EventType.UNSCHEDULED_WORKED.value],
        auto_detected=True,
    )


def build_delta(match_key: str, scheduled: Optional[ParsedShift], worked: Optional[ParsedShift],
                thresholds: PointThresholds) -> ShiftDelta:
    """
    Build the delta for one match key.

    Identity fields come from the scheduled side when it has a non-empty value,
    otherwise from the worked side.
    """
    sides = [shift for shift in (scheduled, worked) if shift is not None]

    if scheduled and worked:
        status = DeltaStatus.MATCHED
    elif scheduled:
        status = DeltaStatus.NO_SHOW
    else:
        status = DeltaStatus.UNSCHEDULED

    def first_value(attribute: str) -> str:
        for shift in sides:
            value = getattr(shift, attribute)
            if value:
                return value
        return ''

    delta = ShiftDelta(
        match_key=match_key,
        employee_id=first_value('employee_id'),
        employee_name=first_value('employee_name'),
        date=first_value('date'),
        role=first_value('role'),
        scheduled_in=scheduled.in_time if scheduled else None,
        scheduled_out=scheduled.out_time if scheduled else None,
        scheduled_minutes=scheduled.scheduled_minutes if scheduled else None,
        worked_in=worked.in_time if worked else None,
        worked_out=worked.out_time if worked else None,
        worked_minutes=worked.scheduled_minutes if worked else None,
        status=status,
    )

    if status == DeltaStatus.MATCHED:
        # Positive start variance = late, negative end variance = left early
        delta.start_variance = minutes_between(scheduled.in_time, worked.in_time)
        delta.end_variance = minutes_between(scheduled.out_time, worked.out_time)
        delta.events = detect_events(delta, thresholds)
    elif status == DeltaStatus.NO_SHOW:
        delta.events = [no_show_event(scheduled)]
    else:
        delta.events = [unscheduled_event(worked)]

    return delta


def join_shifts(scheduled: List[ParsedShift], worked: List[ParsedShift],
                thresholds: PointThresholds) -> List[ShiftDelta]:
    """
    Outer-join both aligned sets on match key and build one delta per key.

    Returns:
        Deltas ordered by date, employee name, employee id and sequence
    """
    if not scheduled and not worked:
        return []

    merged = pd.merge(
        _key_frame(scheduled, 'scheduled'),
        _key_frame(worked, 'worked'),
        on='match_key',
        how='outer',
        suffixes=('_scheduled', '_worked'),
        indicator=True,
    )

    deltas: List[Tuple[Tuple[str, str, str, int], ShiftDelta]] = []
    for record in merged.to_dict('records'):
        status = MERGE_STATUS[str(record['_merge'])]
        scheduled_shift = None if status == DeltaStatus.UNSCHEDULED else scheduled[int(record['position_scheduled'])]
        worked_shift = None if status == DeltaStatus.NO_SHOW else worked[int(record['position_worked'])]

        delta = build_delta(record['match_key'], scheduled_shift, worked_shift, thresholds)
        sequence = (scheduled_shift or worked_shift).sequence
        deltas.append(((delta.date, delta.employee_name, delta.employee_id, sequence), delta))

    deltas.sort(key=lambda item: item[0])
    return [delta for _, delta in deltas]


def calculate_date_range(scheduled: List[ParsedShift], worked: List[ParsedShift]) -> DateRange:
    """Earliest and latest shift date across both sides; empty strings when there are none."""
    dates = pd.Series([shift.date for shift in scheduled + worked], dtype=object)
    if dates.empty:
        return DateRange()
    return DateRange(start=str(dates.min()), end=str(dates.max()))


def calculate_deltas(scheduled_csv: str, worked_csv: str,
                     thresholds: PointThresholds = DEFAULT_THRESHOLDS,
                     strategy: Optional[AlignmentStrategy] = None) -> ImportResult:
    """
    Reconcile a canonical-header scheduled export against a worked export.

    Args:
        scheduled_csv: Normalized scheduled-hours CSV text
        worked_csv: Normalized worked-hours CSV text
        thresholds: Classification thresholds
        strategy: Alignment strategy; sequence alignment by default

    Returns:
        ImportResult. When either side fails to parse, errors lists every failure
        and the result carries no deltas and zero counts.
    """
    strategy = strategy or SequenceAlignmentStrategy()
    errors: List[str] = []

    scheduled_rows = _parse_side(scheduled_csv, 'scheduled', errors)
    worked_rows = _parse_side(worked_csv, 'worked', errors)

    if errors:
        return ImportResult(errors=errors)

    try:
        scheduled, worked = strategy.align_pair(scheduled_rows, worked_rows)
        deltas = join_shifts(scheduled, worked, thresholds)
    except PARSE_ERRORS as e:
        logger.error(f"Error aligning shifts ({strategy.name} alignment): {e}")
        return ImportResult(errors=[f"Error aligning shifts: {e}"])

    result = ImportResult(
        scheduled_count=len(scheduled),
        worked_count=len(worked),
        matched_count=sum(1 for delta in deltas if delta.status == DeltaStatus.MATCHED),
        no_show_count=sum(1 for delta in deltas if delta.status == DeltaStatus.NO_SHOW),
        unscheduled_count=sum(1 for delta in deltas if delta.status == DeltaStatus.UNSCHEDULED),
        deltas=deltas,
        errors=[],
        date_range=calculate_date_range(scheduled, worked),
    )

    logger.info(f"Reconciled {result.scheduled_count} scheduled and {result.worked_count} worked shifts "
                f"({strategy.name} alignment): {result.matched_count} matched, "
                f"{result.no_show_count} no-shows, {result.unscheduled_count} unscheduled")
    return result


def resolve_mapping(csv_text: str, mapping: Union[ColumnMapping, Dict[str, int], None],
                    side: str) -> Union[ColumnMapping, Dict[str, int]]:
    """Use the given mapping, or auto-map with platform detection when there is none."""
    if mapping is not None:
        return mapping

    platform = detect_platform(csv_text)
    return ensure_mapping_success(auto_map_columns(csv_text, platform=platform), side)


def reconcile_exports(scheduled_csv: str, worked_csv: str,
                      thresholds: PointThresholds = DEFAULT_THRESHOLDS,
                      scheduled_mapping: Union[ColumnMapping, Dict[str, int], None] = None,
                      worked_mapping: Union[ColumnMapping, Dict[str, int], None] = None,
                      strategy: Optional[AlignmentStrategy] = None) -> ImportResult:
    """
    Normalize two raw platform exports and reconcile them.

    Args:
        scheduled_csv: Raw scheduled-hours export
        worked_csv: Raw worked-hours export
        thresholds: Classification thresholds
        scheduled_mapping: Mapping for the scheduled export; auto-mapped when None
        worked_mapping: Mapping for the worked export; auto-mapped when None
        strategy: Alignment strategy

    Raises:
        ColumnMappingError: If an auto-mapping leaves a required field unmapped
    """
    scheduled_mapping = resolve_mapping(scheduled_csv, scheduled_mapping, 'scheduled')
    worked_mapping = resolve_mapping(worked_csv, worked_mapping, 'worked')

    return calculate_deltas(
        normalize_csv(scheduled_csv, scheduled_mapping),
        normalize_csv(worked_csv, worked_mapping),
        thresholds=thresholds,
        strategy=strategy,
    )
