"""
Reconciliation reporting - Tabulate deltas, summarize suggested events and export results.
"""

import os
import logging
from typing import Dict, List

import pandas as pd

from config.constants import EventType, DeltaStatus
from shift_reconciliation.analysis.delta_calculator import format_clock_time
from shift_reconciliation.analysis.event_classifier import format_variance
from shift_reconciliation.models.data_models import ImportResult


logger = logging.getLogger(__name__)

DELTA_COLUMNS = [
    'match_key', 'employee_id', 'employee_name', 'date', 'role', 'status',
    'scheduled_in', 'scheduled_out', 'worked_in', 'worked_out',
    'scheduled_minutes', 'worked_minutes', 'start_variance', 'end_variance',
    'start_variance_display', 'end_variance_display', 'event_types', 'suggested_points',
]

EVENT_SUMMARY_COLUMNS = ['event_type', 'count', 'total_points']

RESULT_JSON_FILENAME = 'reconciliation_result.json'
DELTAS_CSV_FILENAME = 'shift_deltas.csv'
EVENTS_CSV_FILENAME = 'event_summary.csv'


def _clock(value) -> str:
    return format_clock_time(value) if value is not None else ''


def deltas_to_dataframe(result: ImportResult) -> pd.DataFrame:
    """
    Flatten deltas into one row each, in result order.

    Args:
        result: Reconciliation result

    Returns:
        DataFrame with DELTA_COLUMNS; event types are joined with "; " and
        suggested_points is the sum over the delta's events
    """
    records = []
    for delta in result.deltas:
        matched = delta.status == DeltaStatus.MATCHED
        records.append({
            'match_key': delta.match_key,
            'employee_id': delta.employee_id,
            'employee_name': delta.employee_name,
            'date': delta.date,
            'role': delta.role,
            'status': delta.status.value,
            'scheduled_in': _clock(delta.scheduled_in),
            'scheduled_out': _clock(delta.scheduled_out),
            'worked_in': _clock(delta.worked_in),
            'worked_out': _clock(delta.worked_out),
            'scheduled_minutes': delta.scheduled_minutes,
            'worked_minutes': delta.worked_minutes,
            'start_variance': delta.start_variance,
            'end_variance': delta.end_variance,
            'start_variance_display': format_variance(delta.start_variance) if matched else '',
            'end_variance_display': format_variance(delta.end_variance) if matched else '',
            'event_types': '; '.join(event.type.value for event in delta.events),
            'suggested_points': sum(event.suggested_points for event in delta.events),
        })

    return pd.DataFrame(records, columns=DELTA_COLUMNS)


def summarize_events(result: ImportResult) -> pd.DataFrame:
    """
    Count suggested events and total their points per event type.

    Returns:
        DataFrame with EVENT_SUMMARY_COLUMNS, one row per event type that
        occurs, in EventType declaration order
    """
    events_df = pd.DataFrame(
        [(event.type.value, event.suggested_points) for delta in result.deltas for event in delta.events],
        columns=['event_type', 'suggested_points'],
    )

    if events_df.empty:
        return pd.DataFrame(columns=EVENT_SUMMARY_COLUMNS)

    summary_df = events_df.groupby('event_type', sort=False).agg(
        count=('suggested_points', 'size'),
        total_points=('suggested_points', 'sum'),
    ).reset_index()

    type_order = {event_type.value: index for index, event_type in enumerate(EventType)}
    summary_df['order'] = summary_df['event_type'].map(type_order)
    summary_df = summary_df.sort_values('order').drop(columns='order').reset_index(drop=True)

    summary_df['count'] = summary_df['count'].astype(int)
    summary_df['total_points'] = summary_df['total_points'].astype(int)
    return summary_df[EVENT_SUMMARY_COLUMNS]


def display_import_summary(result: ImportResult, max_rows: int = 20) -> None:
    """
    Display a formatted summary of a reconciliation result.

    Args:
        result: Reconciliation result
        max_rows: Maximum number of flagged deltas to list
    """
    print("\n" + "=" * 100)
    print("SHIFT RECONCILIATION SUMMARY")
    print("=" * 100)

    if result.errors:
        print("Import failed:")
        for error in result.errors:
            print(f"  - {error}")
        print("=" * 100 + "\n")
        return

    if result.date_range.start:
        print(f"Date Range: {result.date_range.start} to {result.date_range.end}")
    print(f"Scheduled Shifts: {result.scheduled_count}")
    print(f"Worked Shifts: {result.worked_count}")
    print(f"Matched: {result.matched_count}   No-shows: {result.no_show_count}   "
          f"Unscheduled: {result.unscheduled_count}")
    print()

    summary_df = summarize_events(result)
    if summary_df.empty:
        print("No attendance events detected.")
        print("=" * 100 + "\n")
        return

    print("Suggested Events:")
    for _, row in summary_df.iterrows():
        print(f"  {row['event_type'].replace('_', ' ').title():<20} {row['count']:>5}   points {row['total_points']:+d}")
    print()

    flagged = [delta for delta in result.deltas if delta.events]
    print(f"Flagged Shifts ({len(flagged)}):")
    print("-" * 100)
    print(f"{'Date':<12} {'Employee':<24} {'Status':<12} {'Start':<10} {'End':<10} {'Events':<30}")
    print("-" * 100)

    for delta in flagged[:max_rows]:
        matched = delta.status == DeltaStatus.MATCHED
        start = format_variance(delta.start_variance) if matched else '-'
        end = format_variance(delta.end_variance) if matched else '-'
        events = ', '.join(event.type.value for event in delta.events)
        print(f"{delta.date:<12} {delta.employee_name[:23]:<24} {delta.status.value:<12} "
              f"{start:<10} {end:<10} {events:<30}")

    if len(flagged) > max_rows:
        print(f"  ... and {len(flagged) - max_rows} more flagged shifts")

    print("=" * 100 + "\n")


def export_result(result: ImportResult, output_dir: str, export_csv: bool = False) -> Dict[str, str]:
    """
    Write the result as JSON and, optionally, the delta and event tables as CSV.

    Args:
        result: Reconciliation result
        output_dir: Directory for output files (created when missing)
        export_csv: Also write shift_deltas.csv and event_summary.csv

    Returns:
        Mapping of output kind ('json', 'deltas_csv', 'events_csv') to file path
    """
    os.makedirs(output_dir, exist_ok=True)
    written: Dict[str, str] = {}

    json_path = os.path.join(output_dir, RESULT_JSON_FILENAME)
    with open(json_path, 'w', encoding='utf-8') as handle:
        handle.write(result.model_dump_json(indent=2))
    written['json'] = json_path
    logger.info(f"Exported reconciliation result to {json_path}")

    if export_csv:
        tables: List = [
            ('deltas_csv', DELTAS_CSV_FILENAME, deltas_to_dataframe(result)),
            ('events_csv', EVENTS_CSV_FILENAME, summarize_events(result)),
        ]
        for kind, filename, table in tables:
            path = os.path.join(output_dir, filename)
            try:
                table.to_csv(path, index=False)
            except OSError as e:
                logger.error(f"Error exporting {filename}: {str(e)}")
                raise
            written[kind] = path
            logger.info(f"Exported {len(table)} rows to {path}")

    return written
