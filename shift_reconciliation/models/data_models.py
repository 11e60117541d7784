"""
Pydantic data models for the shift reconciliation engine.
Provides type safety and data validation for every entity passed between pipeline stages.
"""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field, field_validator

from config.constants import (
    ALL_FIELDS,
    DeltaStatus,
    EventType,
    DEFAULT_TARDINESS_MINOR_MIN,
    DEFAULT_TARDINESS_MINOR_MAX,
    DEFAULT_TARDINESS_MAJOR_MIN,
    DEFAULT_EARLY_DEPARTURE_MIN,
    DEFAULT_STAYED_LATE_MIN,
    DEFAULT_ARRIVED_EARLY_MIN,
)


def _validate_field_names(fields) -> None:
    unknown = [field for field in fields if field not in ALL_FIELDS]
    if unknown:
        raise ValueError(f'Unknown shift fields: {unknown}')


class ColumnMapping(BaseModel):
    """Resolved assignment of logical shift fields to source CSV column indices"""

    success: bool = Field(description="True when every required field is mapped")
    mapping: Dict[str, int] = Field(default_factory=dict, description="Field -> zero-based column index")
    mapping_labels: Dict[str, str] = Field(default_factory=dict, description="Field -> original header text")
    unmapped_fields: List[str] = Field(default_factory=list, description="Fields that could not be mapped")
    original_headers: List[str] = Field(default_factory=list, description="Source CSV headers, cleaned")
    template_used: Optional[str] = Field(default=None, description="Platform template used, None for saved/manual/other")

    @field_validator('mapping')
    @classmethod
    def validate_unique_columns(cls, v):
        _validate_field_names(v)
        seen: Dict[int, str] = {}
        for field, index in v.items():
            if index < 0:
                raise ValueError(f'Column index for {field} cannot be negative')
            if index in seen:
                raise ValueError(f'Fields {seen[index]} and {field} both map to column {index}')
            seen[index] = field
        return v


class SavedColumnMapping(BaseModel):
    """A previously confirmed mapping, recorded by header text rather than position"""

    name: str = Field(description="User-friendly name, e.g. 'My POS Export Format'")
    header_map: Dict[str, str] = Field(description="Field -> recorded header string (matched case-insensitively)")
    platform: str = Field(default="other", description="Platform the mapping was created for")
    last_used_at: Optional[str] = Field(default=None, description="When this mapping was last used")

    @field_validator('header_map')
    @classmethod
    def validate_header_map(cls, v):
        _validate_field_names(v)
        return v


class RawShiftRow(BaseModel):
    """One data row of a canonical-header shift CSV, before time parsing"""

    employee_id: str = Field(description="Employee identifier", min_length=1)
    date: str = Field(description="Shift date as YYYY-MM-DD")
    first_name: str = Field(default="", description="Employee first name")
    last_name: str = Field(default="", description="Employee last name")
    location: str = Field(default="", description="Location name")
    in_time: str = Field(description="Clock-in time as exported, e.g. '10:00AM '")
    out_time: str = Field(description="Clock-out time as exported")
    role: str = Field(default="", description="Role or position")
    regular_hours: float = Field(default=0.0, description="Regular hours reported by the export")
    ot_hours: float = Field(default=0.0, description="Overtime hours reported by the export")


class ParsedShift(BaseModel):
    """A shift with absolute times, its per-day sequence and its match key"""

    employee_id: str = Field(description="Employee identifier")
    employee_name: str = Field(description="First and last name")
    date: str = Field(description="Shift date as YYYY-MM-DD")
    in_time: datetime = Field(description="Clock-in timestamp on the shift date")
    out_time: datetime = Field(description="Clock-out timestamp on the shift date")
    role: str = Field(default="", description="Role or position")
    scheduled_minutes: float = Field(description="Out minus in, in minutes; negative values are kept as-is")
    sequence: int = Field(description="1-based position among the employee's shifts that day", ge=1)
    match_key: str = Field(description="employeeId-YYYYMMDD-sequence")


class DetectedEvent(BaseModel):
    """An attendance event suggested for human review"""

    type: EventType = Field(description="Event type")
    description: str = Field(description="Human-readable description")
    suggested_points: int = Field(description="Positive = demerit, negative = credit, zero = informational")
    auto_detected: bool = Field(default=True, description="Always True for engine-detected events")


class ShiftDelta(BaseModel):
    """Join of a scheduled and/or worked shift sharing a match key"""

    match_key: str = Field(description="Shared match key")
    employee_id: str = Field(description="Employee identifier")
    employee_name: str = Field(description="Employee name")
    date: str = Field(description="Shift date as YYYY-MM-DD")
    role: str = Field(default="", description="Role, scheduled side preferred")

    scheduled_in: Optional[datetime] = Field(default=None, description="Scheduled in time")
    scheduled_out: Optional[datetime] = Field(default=None, description="Scheduled out time")
    scheduled_minutes: Optional[float] = Field(default=None, description="Scheduled duration in minutes")

    worked_in: Optional[datetime] = Field(default=None, description="Worked in time")
    worked_out: Optional[datetime] = Field(default=None, description="Worked out time")
    worked_minutes: Optional[float] = Field(default=None, description="Worked duration in minutes")

    # Positive start variance = late, negative end variance = left early
    start_variance: float = Field(default=0.0, description="Worked in minus scheduled in, minutes")
    end_variance: float = Field(default=0.0, description="Worked out minus scheduled out, minutes")

    status: DeltaStatus = Field(description="matched, no_show or unscheduled")
    events: List[DetectedEvent] = Field(default_factory=list, description="Detected events in rule order")


class PointThresholds(BaseModel):
    """Immutable classification thresholds, in minutes"""

    model_config = ConfigDict(frozen=True)

    tardiness_minor_min: float = Field(default=DEFAULT_TARDINESS_MINOR_MIN, description="Minor tardiness lower bound")
    tardiness_minor_max: float = Field(default=DEFAULT_TARDINESS_MINOR_MAX, description="Minor tardiness upper bound (informational)")
    tardiness_major_min: float = Field(default=DEFAULT_TARDINESS_MAJOR_MIN, description="Major tardiness lower bound")
    early_departure_min: float = Field(default=DEFAULT_EARLY_DEPARTURE_MIN, description="Minutes early for early departure")
    stayed_late_min: float = Field(default=DEFAULT_STAYED_LATE_MIN, description="Minutes over for a stayed-late credit")
    arrived_early_min: float = Field(default=DEFAULT_ARRIVED_EARLY_MIN, description="Minutes early for an arrived-early credit")


class DateRange(BaseModel):
    """Inclusive span of shift dates, empty strings when there are no shifts"""

    start: str = Field(default="", description="Earliest shift date")
    end: str = Field(default="", description="Latest shift date")


class ImportResult(BaseModel):
    """Complete reconciliation result for one pair of exports"""

    scheduled_count: int = Field(default=0, description="Scheduled shifts after alignment", ge=0)
    worked_count: int = Field(default=0, description="Worked shifts after alignment", ge=0)
    matched_count: int = Field(default=0, description="Deltas with status matched", ge=0)
    no_show_count: int = Field(default=0, description="Deltas with status no_show", ge=0)
    unscheduled_count: int = Field(default=0, description="Deltas with status unscheduled", ge=0)
    deltas: List[ShiftDelta] = Field(default_factory=list, description="One delta per distinct match key")
    errors: List[str] = Field(default_factory=list, description="Parse errors; non-empty means no deltas were computed")
    date_range: DateRange = Field(default_factory=DateRange, description="Span of all shift dates")


# Compiled-in defaults used when no organization thresholds are supplied
DEFAULT_THRESHOLDS = PointThresholds()
