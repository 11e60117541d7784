"""
Main CLI entry point for the Shift Reconciliation Engine.
Reconciles a scheduled-hours export against a worked-hours export and suggests attendance events.
"""

import argparse
import sys
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

# Load environment variables early
load_dotenv()

from config.settings import get_settings, ensure_directories
from config.constants import DEFAULT_SCHEDULED_DATA_PATH, DEFAULT_WORKED_DATA_PATH, OTHER_PLATFORM
from config.platforms import PLATFORM_IDS
from shift_reconciliation.utils.logging_config import setup_logging, configure_third_party_loggers, TimedOperation
from shift_reconciliation.utils.error_handlers import (
    handle_exceptions,
    ConfigurationError,
    ExitCode,
    ReconciliationError,
)
from shift_reconciliation.ingestion.column_mapper import (
    auto_map_columns,
    detect_platform,
    ensure_mapping_success,
    generate_mapping_preview,
)
from shift_reconciliation.ingestion.shift_parser import load_shifts_file
from shift_reconciliation.analysis.delta_calculator import reconcile_exports
from shift_reconciliation.analysis.event_classifier import check_threshold_ordering, configure_thresholds
from shift_reconciliation.reporting.summary import display_import_summary, export_result
from shift_reconciliation.models.data_models import ColumnMapping, SavedColumnMapping


VERSION = "Shift Reconciliation Engine 1.0.0"

# Threshold flags, by argparse destination
THRESHOLD_ARGUMENTS = [
    'tardiness_minor_min',
    'tardiness_major_min',
    'early_departure_min',
    'stayed_late_min',
    'arrived_early_min',
]


def get_env_default(env_var: str, default_value, value_type=str):
    """
    Get environment variable with type conversion and fallback to default.

    Args:
        env_var: Environment variable name
        default_value: Default value if env var not set
        value_type: Type to convert to (str, int, float, bool)

    Returns:
        Converted value or default
    """
    env_value = os.getenv(env_var)
    if env_value is None:
        return default_value

    try:
        if value_type == bool:
            return env_value.lower() in ('true', '1', 'yes', 'on')
        elif value_type == int:
            return int(env_value)
        elif value_type == float:
            return float(env_value)
        else:
            return str(env_value)
    except (ValueError, TypeError):
        return default_value


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list; sys.argv[1:] when None

    Returns:
        Parsed arguments namespace
    """
    platform_choices = PLATFORM_IDS + [OTHER_PLATFORM]

    parser = argparse.ArgumentParser(
        description="Shift Reconciliation Engine - Compare scheduled and worked shifts and suggest attendance events",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --debug                                          # Quick start with sample data
  python main.py --scheduled scheduled.csv --worked worked.csv
  python main.py --scheduled s.csv --worked w.csv --platform 7shifts --export-csv
  python main.py --scheduled s.csv --worked w.csv --saved-mapping my_mapping.json
  python main.py --scheduled s.csv --worked w.csv --tardiness-major-min 10

Note: All arguments can be set via environment variables in .env file.
Environment variables: SCHEDULED_DATA_PATH, WORKED_DATA_PATH, SCHEDULING_PLATFORM,
TARDINESS_MINOR_MIN, TARDINESS_MAJOR_MIN, EARLY_DEPARTURE_MIN, STAYED_LATE_MIN,
ARRIVED_EARLY_MIN, OUTPUT_DIR, EXPORT_CSV, LOG_LEVEL, LOGS_DIR, QUIET, DEBUG_MODE.
        """
    )

    # Input arguments
    parser.add_argument(
        '--scheduled',
        required=False,
        default=get_env_default('SCHEDULED_DATA_PATH', None),
        help='Path to the scheduled-hours CSV export'
    )

    parser.add_argument(
        '--worked',
        required=False,
        default=get_env_default('WORKED_DATA_PATH', None),
        help='Path to the worked-hours CSV export'
    )

    # Column mapping arguments
    parser.add_argument(
        '--platform',
        choices=platform_choices,
        default=get_env_default('SCHEDULING_PLATFORM', None),
        help='Scheduling platform of both exports (auto-detected when omitted)'
    )

    parser.add_argument(
        '--scheduled-platform',
        choices=platform_choices,
        default=None,
        help='Scheduling platform of the scheduled export (overrides --platform)'
    )

    parser.add_argument(
        '--worked-platform',
        choices=platform_choices,
        default=None,
        help='Scheduling platform of the worked export (overrides --platform)'
    )

    parser.add_argument(
        '--saved-mapping',
        default=get_env_default('SAVED_MAPPING_PATH', None),
        help='JSON file with a saved column mapping to try before platform aliases'
    )

    # Threshold arguments
    parser.add_argument(
        '--tardiness-minor-min',
        type=float,
        default=None,
        help='Minutes late before minor tardiness is suggested (overrides config)'
    )

    parser.add_argument(
        '--tardiness-major-min',
        type=float,
        default=None,
        help='Minutes late before major tardiness is suggested (overrides config)'
    )

    parser.add_argument(
        '--early-departure-min',
        type=float,
        default=None,
        help='Minutes early that count as an early departure (overrides config)'
    )

    parser.add_argument(
        '--stayed-late-min',
        type=float,
        default=None,
        help='Minutes past scheduled out time that earn a stayed-late credit (overrides config)'
    )

    parser.add_argument(
        '--arrived-early-min',
        type=float,
        default=None,
        help='Minutes before scheduled in time that earn an arrived-early credit (overrides config)'
    )

    # Debug mode argument
    parser.add_argument(
        '--debug',
        action='store_true',
        default=get_env_default('DEBUG_MODE', False, bool),
        help='Enable debug mode with default sample data files and enhanced logging'
    )

    # Output arguments
    parser.add_argument(
        '--output-dir',
        default=get_env_default('OUTPUT_DIR', 'output'),
        help='Directory for the reconciliation result (default: output)'
    )

    parser.add_argument(
        '--export-csv',
        action='store_true',
        default=get_env_default('EXPORT_CSV', False, bool),
        help='Also export shift deltas and the event summary to CSV files'
    )

    # Logging and debugging
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        default=get_env_default('LOG_LEVEL', 'INFO'),
        help='Set logging level (default: INFO)'
    )

    parser.add_argument(
        '--log-dir',
        default=get_env_default('LOGS_DIR', 'logs'),
        help='Directory for log files (default: logs)'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        default=get_env_default('QUIET', False, bool),
        help='Suppress console output (logs only to file)'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=VERSION
    )

    return parser.parse_args(argv)


def load_saved_mapping(file_path: str) -> SavedColumnMapping:
    """
    Load a saved column mapping from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationError: If the file is not a valid saved mapping
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"Saved mapping file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as handle:
        content = handle.read()

    try:
        return SavedColumnMapping.model_validate_json(content)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid saved mapping file: {file_path}",
            config_key='saved_mapping',
            errors=e.error_count()
        )


def resolve_platform(csv_text: str, side_platform: Optional[str], platform: Optional[str], logger) -> Optional[str]:
    """Pick the explicit platform for a side, else the shared one, else auto-detect."""
    chosen = side_platform or platform
    if chosen:
        return chosen

    detected = detect_platform(csv_text)
    if detected is None:
        logger.info("Platform not detected - using combined aliases of all platforms")
    return detected


def map_export(csv_text: str, side: str, platform: Optional[str],
               saved_mapping: Optional[SavedColumnMapping], logger) -> ColumnMapping:
    """
    Map one export's columns, failing with the unmapped required fields.

    Raises:
        ColumnMappingError: If a required field cannot be mapped
    """
    mapping = auto_map_columns(csv_text, platform=platform, saved_mapping=saved_mapping)

    logger.info(f"{side.title()} columns: " + ", ".join(
        f"{field}='{label}'" for field, label in mapping.mapping_labels.items()
    ))
    if mapping.unmapped_fields:
        logger.info(f"{side.title()} unmapped fields: {mapping.unmapped_fields}")

    ensure_mapping_success(mapping, side)

    for row in generate_mapping_preview(csv_text, mapping):
        logger.debug(f"{side.title()} preview: {row}")

    return mapping


@handle_exceptions(exit_on_error=True, log_traceback=True)
def main(argv: Optional[List[str]] = None):
    """
    Main application entry point.
    """
    # Parse command line arguments
    args = parse_arguments(argv)

    # Handle debug mode and default file paths
    if args.debug:
        # Enable debug logging if debug mode is set
        if args.log_level == 'INFO':  # Only override if not explicitly set
            args.log_level = 'DEBUG'

        # Use default file paths if not provided
        if not args.scheduled:
            args.scheduled = DEFAULT_SCHEDULED_DATA_PATH
        if not args.worked:
            args.worked = DEFAULT_WORKED_DATA_PATH

        print("DEBUG MODE ENABLED")
        print(f"Using scheduled data: {args.scheduled}")
        print(f"Using worked data: {args.worked}")
        print(f"Log level: {args.log_level}")
        print()

    # Validate that data files are provided (either explicitly or via debug mode)
    if not args.scheduled or not args.worked:
        print("Error: Scheduled and worked data files are required.")
        print("Either provide both --scheduled and --worked arguments,")
        print("or use --debug flag to use default sample data files.")
        print()
        print("Examples:")
        print("  python main.py --debug                                    # Use sample data")
        print("  python main.py --scheduled s.csv --worked w.csv           # Use custom data")
        sys.exit(ExitCode.GENERAL_ERROR.value)

    # Load and update settings
    settings = get_settings()

    # Override settings with command line arguments
    for name in THRESHOLD_ARGUMENTS:
        value = getattr(args, name)
        if value is not None:
            setattr(settings.thresholds, name, value)

    # Update directory settings
    settings.directories.output_dir = args.output_dir
    settings.directories.logs_dir = args.log_dir

    # Ensure directories exist
    ensure_directories(settings)

    # Setup logging
    logger = setup_logging(
        log_level=args.log_level,
        log_dir=args.log_dir,
        console_output=not args.quiet
    )
    configure_third_party_loggers()

    thresholds = configure_thresholds(settings.thresholds.model_dump())

    logger.info("=" * 80)
    logger.info("SHIFT RECONCILIATION - STARTING")
    logger.info("=" * 80)
    logger.info(f"Scheduled Data: {args.scheduled}")
    logger.info(f"Worked Data: {args.worked}")
    logger.info(f"Output Directory: {args.output_dir}")
    logger.info(f"Thresholds: minor_late={thresholds.tardiness_minor_min:g}, "
                f"major_late={thresholds.tardiness_major_min:g}, "
                f"early_departure={thresholds.early_departure_min:g}, "
                f"stayed_late={thresholds.stayed_late_min:g}, "
                f"arrived_early={thresholds.arrived_early_min:g}")

    for warning in check_threshold_ordering(thresholds):
        logger.warning(f"Threshold configuration: {warning}")

    saved_mapping = load_saved_mapping(args.saved_mapping) if args.saved_mapping else None
    shared_platform = args.platform or settings.scheduling_platform

    # Step 1: Load exports
    logger.info("Step 1: Loading Exports")

    with TimedOperation(logger, "Export Loading"):
        scheduled_csv = load_shifts_file(args.scheduled)
        worked_csv = load_shifts_file(args.worked)

    # Step 2: Column mapping
    logger.info("Step 2: Column Mapping")

    with TimedOperation(logger, "Column Mapping"):
        scheduled_mapping = map_export(
            scheduled_csv, 'scheduled',
            resolve_platform(scheduled_csv, args.scheduled_platform, shared_platform, logger),
            saved_mapping, logger
        )
        worked_mapping = map_export(
            worked_csv, 'worked',
            resolve_platform(worked_csv, args.worked_platform, shared_platform, logger),
            saved_mapping, logger
        )

    # Step 3: Reconciliation
    logger.info("Step 3: Reconciliation")

    with TimedOperation(logger, "Shift Reconciliation"):
        result = reconcile_exports(
            scheduled_csv,
            worked_csv,
            thresholds=thresholds,
            scheduled_mapping=scheduled_mapping,
            worked_mapping=worked_mapping,
        )

    display_import_summary(result)

    if result.errors:
        raise ReconciliationError(
            "Reconciliation failed: " + "; ".join(result.errors),
            ExitCode.DATA_ERROR
        )

    # Step 4: Export
    logger.info("Step 4: Exporting Results")

    written = export_result(result, args.output_dir, export_csv=args.export_csv)

    # Final Summary
    logger.info("=" * 80)
    logger.info("RECONCILIATION COMPLETE - SUMMARY")
    logger.info("=" * 80)
    logger.info(f"Date Range: {result.date_range.start} to {result.date_range.end}")
    logger.info(f"Matched: {result.matched_count}, No-shows: {result.no_show_count}, "
                f"Unscheduled: {result.unscheduled_count}")
    logger.info(f"Suggested events: {sum(len(delta.events) for delta in result.deltas)}")
    for kind, path in written.items():
        logger.info(f"Output ({kind}): {path}")
    logger.info("=" * 80)

    sys.exit(ExitCode.SUCCESS.value)


if __name__ == "__main__":
    main()
