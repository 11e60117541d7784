"""
Unit tests for the pydantic data models.
"""

import pytest
from pydantic import ValidationError

from config.constants import DeltaStatus, EventType
from shift_reconciliation.models.data_models import (
    DEFAULT_THRESHOLDS,
    ColumnMapping,
    DetectedEvent,
    ImportResult,
    RawShiftRow,
    SavedColumnMapping,
    ShiftDelta,
)


class TestColumnMapping:
    """Test column mapping validation."""

    def test_valid_mapping(self):
        mapping = ColumnMapping(success=True, mapping={'employee_id': 0, 'date': 1})
        assert mapping.template_used is None
        assert mapping.unmapped_fields == []

    def test_shared_column_rejected(self):
        with pytest.raises(ValidationError):
            ColumnMapping(success=True, mapping={'in_time': 3, 'out_time': 3})

    def test_negative_index_rejected(self):
        with pytest.raises(ValidationError):
            ColumnMapping(success=True, mapping={'employee_id': -1})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ColumnMapping(success=True, mapping={'favorite_color': 0})


class TestSavedColumnMapping:
    """Test saved mapping validation."""

    def test_defaults(self):
        saved = SavedColumnMapping(name='POS', header_map={'employee_id': 'Staff #'})
        assert saved.platform == 'other'
        assert saved.last_used_at is None

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            SavedColumnMapping(name='POS', header_map={'shoe_size': 'Size'})

    def test_json_round_trip(self):
        saved = SavedColumnMapping(name='POS', header_map={'date': 'Day'}, platform='deputy')
        assert SavedColumnMapping.model_validate_json(saved.model_dump_json()) == saved


class TestShiftModels:
    """Test row, delta and result models."""

    def test_raw_row_requires_employee_id(self):
        with pytest.raises(ValidationError):
            RawShiftRow(employee_id='', date='2025-01-06', in_time='9:00AM', out_time='5:00PM')

    def test_raw_row_defaults(self):
        row = RawShiftRow(employee_id='1', date='2025-01-06', in_time='9:00AM', out_time='5:00PM')
        assert row.regular_hours == 0.0
        assert row.role == ''

    def test_delta_defaults(self):
        delta = ShiftDelta(match_key='1-20250106-1', employee_id='1', employee_name='A B',
                           date='2025-01-06', status=DeltaStatus.NO_SHOW)
        assert delta.start_variance == 0.0
        assert delta.events == []
        assert delta.worked_in is None

    def test_event_serializes_type_value(self):
        event = DetectedEvent(type=EventType.STAYED_LATE, description='Stayed 60 min late', suggested_points=-1)
        assert event.model_dump(mode='json')['type'] == 'stayed_late'
        assert event.auto_detected is True

    def test_empty_import_result(self):
        result = ImportResult()
        assert result.deltas == []
        assert result.errors == []
        assert result.date_range.start == ''
        assert result.matched_count == 0

    def test_default_thresholds(self):
        assert DEFAULT_THRESHOLDS.tardiness_minor_min == 5
        assert DEFAULT_THRESHOLDS.tardiness_minor_max == 15
        assert DEFAULT_THRESHOLDS.tardiness_major_min == 15
        assert DEFAULT_THRESHOLDS.early_departure_min == 30
        assert DEFAULT_THRESHOLDS.stayed_late_min == 60
        assert DEFAULT_THRESHOLDS.arrived_early_min == 30
