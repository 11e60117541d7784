"""
Event classification - Turn start/end variances of a matched shift into suggested attendance events.
Events are suggestions for human review; nothing here records points against an employee.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from config.constants import EventType, EVENT_POINT_VALUES
from shift_reconciliation.models.data_models import (
    DEFAULT_THRESHOLDS,
    DetectedEvent,
    PointThresholds,
    ShiftDelta,
)


logger = logging.getLogger(__name__)

# Organization config keys accepted by configure_thresholds
THRESHOLD_CONFIG_KEYS = [
    'tardiness_minor_min',
    'tardiness_major_min',
    'early_departure_min',
    'arrived_early_min',
    'stayed_late_min',
]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity (2.5 -> 3, -2.5 -> -2)."""
    return int(np.floor(value + 0.5))


def _event(event_type: EventType, description: str) -> DetectedEvent:
    return DetectedEvent(
        type=event_type,
        description=description,
        suggested_points=EVENT_POINT_VALUES[event_type.value],
        auto_detected=True,
    )


def detect_events(delta: ShiftDelta, thresholds: PointThresholds = DEFAULT_THRESHOLDS) -> List[DetectedEvent]:
    """
    Classify a matched delta's variances into attendance events.

    Rules are evaluated in this order and each contributes at most one event:
      1. start variance >= tardiness_major_min  -> tardiness_major (+2)
      2. else start variance >= tardiness_minor_min -> tardiness_minor (+1)
      3. end variance <= -early_departure_min -> early_departure (+2)
      4. start variance <= -arrived_early_min -> arrived_early (-1)
      5. end variance >= stayed_late_min -> stayed_late (-1)

    Args:
        delta: Matched delta with start_variance and end_variance in minutes
        thresholds: Classification thresholds

    Returns:
        Events in rule order; an empty list for an on-time shift
    """
    events: List[DetectedEvent] = []
    start_variance = delta.start_variance
    end_variance = delta.end_variance

    # Late arrival - major is checked first so a shift is never both
    if start_variance >= thresholds.tardiness_major_min:
        events.append(_event(EventType.TARDINESS_MAJOR,
                             f"Arrived {round_half_up(abs(start_variance))} min late"))
    elif start_variance >= thresholds.tardiness_minor_min:
        events.append(_event(EventType.TARDINESS_MINOR,
                             f"Arrived {round_half_up(abs(start_variance))} min late"))

    if end_variance <= -thresholds.early_departure_min:
        events.append(_event(EventType.EARLY_DEPARTURE,
                             f"Left {round_half_up(abs(end_variance))} min early"))

    # Credits
    if start_variance <= -thresholds.arrived_early_min:
        events.append(_event(EventType.ARRIVED_EARLY,
                             f"Arrived {round_half_up(abs(start_variance))} min early"))

    if end_variance >= thresholds.stayed_late_min:
        events.append(_event(EventType.STAYED_LATE,
                             f"Stayed {round_half_up(abs(end_variance))} min late"))

    if events:
        logger.debug(f"{delta.match_key}: {[event.type.value for event in events]}")

    return events


def configure_thresholds(config: Optional[Dict[str, Any]] = None) -> PointThresholds:
    """
    Build thresholds from an organization's stored configuration.

    Missing or None values fall back to the compiled-in defaults. The minor
    tardiness upper bound has no key of its own and follows tardiness_major_min.

    Args:
        config: Mapping with snake_case keys such as 'tardiness_minor_min'

    Returns:
        PointThresholds
    """
    if not config:
        return DEFAULT_THRESHOLDS

    unknown = [key for key in config if key not in THRESHOLD_CONFIG_KEYS]
    if unknown:
        logger.debug(f"Ignoring unrecognized threshold keys: {unknown}")

    def pick(key: str, default: float) -> float:
        value = config.get(key)
        return float(value) if value is not None else default

    return PointThresholds(
        tardiness_minor_min=pick('tardiness_minor_min', DEFAULT_THRESHOLDS.tardiness_minor_min),
        tardiness_minor_max=pick('tardiness_major_min', DEFAULT_THRESHOLDS.tardiness_minor_max),
        tardiness_major_min=pick('tardiness_major_min', DEFAULT_THRESHOLDS.tardiness_major_min),
        early_departure_min=pick('early_departure_min', DEFAULT_THRESHOLDS.early_departure_min),
        stayed_late_min=pick('stayed_late_min', DEFAULT_THRESHOLDS.stayed_late_min),
        arrived_early_min=pick('arrived_early_min', DEFAULT_THRESHOLDS.arrived_early_min),
    )


def check_threshold_ordering(thresholds: PointThresholds) -> List[str]:
    """
    List threshold combinations that make some classification rule unreachable.

    The engine accepts any ordering; callers decide whether to surface these.
    """
    warnings: List[str] = []

    if thresholds.tardiness_minor_min > thresholds.tardiness_major_min:
        warnings.append(
            f"tardiness_minor_min ({thresholds.tardiness_minor_min:g}) is greater than "
            f"tardiness_major_min ({thresholds.tardiness_major_min:g}); minor tardiness can never be suggested"
        )

    for name in ['tardiness_minor_min', 'early_departure_min', 'stayed_late_min', 'arrived_early_min']:
        value = getattr(thresholds, name)
        if value < 0:
            warnings.append(f"{name} ({value:g}) is negative")

    return warnings


def format_variance(minutes: float) -> str:
    """
    Format a variance for display: "+1h 5m", "-20m", "On time".

    The magnitude is rounded half-up before splitting into hours and minutes;
    the sign comes from the unrounded value.
    """
    absolute = abs(round_half_up(minutes))
    hours, mins = divmod(absolute, 60)

    text = f"{hours}h {mins}m" if hours > 0 else f"{mins}m"

    if minutes > 0:
        return f"+{text}"
    if minutes < 0:
        return f"-{text}"
    return "On time"
