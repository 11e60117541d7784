"""
Constants and column mappings for the shift reconciliation engine.
Canonical header names, event types and the compiled-in point values.
"""

from enum import Enum
from typing import Dict, List


class CanonicalColumns:
    """Exact header strings the row parser consumes after normalization"""

    EMPLOYEE_ID = "Employee ID"
    DATE = "Date"
    FIRST = "First"
    LAST = "Last"
    IN_TIME = "In Time"
    OUT_TIME = "Out Time"
    ROLE = "Role"
    LOCATION = "Location"

    # Optional hours columns carried by some exports (7shifts Hours & Wages)
    REGULAR_HOURS = "Regular Hours"
    OT_HOURS = "OT Hours"


class ShiftField(str, Enum):
    """Logical fields a source CSV column can be mapped to"""
    EMPLOYEE_ID = "employee_id"
    DATE = "date"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    IN_TIME = "in_time"
    OUT_TIME = "out_time"
    ROLE = "role"
    LOCATION = "location"


class DeltaStatus(str, Enum):
    """Outcome of joining a scheduled and a worked shift on their match key"""
    MATCHED = "matched"          # Present on both sides
    NO_SHOW = "no_show"          # Scheduled only
    UNSCHEDULED = "unscheduled"  # Worked only


class EventType(str, Enum):
    """Attendance events the classifier can suggest"""
    NO_CALL_NO_SHOW = "no_call_no_show"
    TARDINESS_MAJOR = "tardiness_major"
    TARDINESS_MINOR = "tardiness_minor"
    EARLY_DEPARTURE = "early_departure"
    STAYED_LATE = "stayed_late"
    ARRIVED_EARLY = "arrived_early"
    UNSCHEDULED_WORKED = "unscheduled_worked"


# Field -> canonical header written back by the column normalizer
CANONICAL_HEADERS: Dict[str, str] = {
    ShiftField.EMPLOYEE_ID.value: CanonicalColumns.EMPLOYEE_ID,
    ShiftField.DATE.value: CanonicalColumns.DATE,
    ShiftField.FIRST_NAME.value: CanonicalColumns.FIRST,
    ShiftField.LAST_NAME.value: CanonicalColumns.LAST,
    ShiftField.IN_TIME.value: CanonicalColumns.IN_TIME,
    ShiftField.OUT_TIME.value: CanonicalColumns.OUT_TIME,
    ShiftField.ROLE.value: CanonicalColumns.ROLE,
    ShiftField.LOCATION.value: CanonicalColumns.LOCATION,
}

# Required fields for validation
REQUIRED_FIELDS: List[str] = [
    ShiftField.EMPLOYEE_ID.value,
    ShiftField.DATE.value,
    ShiftField.FIRST_NAME.value,
    ShiftField.LAST_NAME.value,
    ShiftField.IN_TIME.value,
    ShiftField.OUT_TIME.value,
]

OPTIONAL_FIELDS: List[str] = [
    ShiftField.ROLE.value,
    ShiftField.LOCATION.value,
]

ALL_FIELDS: List[str] = REQUIRED_FIELDS + OPTIONAL_FIELDS

# Lower-cased canonical columns the row parser requires, in reporting order
PARSER_REQUIRED_COLUMNS: List[str] = [
    CanonicalColumns.EMPLOYEE_ID.lower(),
    CanonicalColumns.DATE.lower(),
    CanonicalColumns.FIRST.lower(),
    CanonicalColumns.LAST.lower(),
    CanonicalColumns.IN_TIME.lower(),
    CanonicalColumns.OUT_TIME.lower(),
]

# Suggested points per event type (positive = demerit, negative = credit)
EVENT_POINT_VALUES: Dict[str, int] = {
    EventType.NO_CALL_NO_SHOW.value: 6,
    EventType.TARDINESS_MAJOR.value: 2,
    EventType.TARDINESS_MINOR.value: 1,
    EventType.EARLY_DEPARTURE.value: 2,
    EventType.ARRIVED_EARLY.value: -1,
    EventType.STAYED_LATE.value: -1,
    EventType.UNSCHEDULED_WORKED.value: 0,
}

# Default classification thresholds in minutes
DEFAULT_TARDINESS_MINOR_MIN = 5
DEFAULT_TARDINESS_MINOR_MAX = 15
DEFAULT_TARDINESS_MAJOR_MIN = 15
DEFAULT_EARLY_DEPARTURE_MIN = 30
DEFAULT_STAYED_LATE_MIN = 60
DEFAULT_ARRIVED_EARLY_MIN = 30

# Platform auto-detection needs this many of the 8 fields to match
PLATFORM_DETECTION_MIN_SCORE = 5

# Platform id used when the export source is not one of the known templates
OTHER_PLATFORM = "other"

# Shift dates are ISO calendar dates
ISO_DATE_FORMAT = "%Y-%m-%d"

# File path patterns - default paths for debug mode
DEFAULT_SCHEDULED_DATA_PATH = "examples/SampleScheduledHours.csv"
DEFAULT_WORKED_DATA_PATH = "examples/SampleWorkedHours.csv"

# Logging constants
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
