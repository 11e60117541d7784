"""
Unit tests for column_mapper.py module.

Tests cover:
- Header extraction (quoted cells, blank leading lines, byte-order mark)
- Platform template, combined alias and saved mapping resolution
- Manual mapping conflicts
- Platform auto-detection
- Header-only normalization write-back
"""

import pytest

from shift_reconciliation.ingestion.column_mapper import (
    apply_manual_mapping,
    auto_map_columns,
    detect_platform,
    ensure_mapping_success,
    extract_csv_headers,
    generate_mapping_preview,
    normalize_csv,
)
from shift_reconciliation.models.data_models import ColumnMapping, SavedColumnMapping
from shift_reconciliation.utils.error_handlers import ColumnMappingError
from config.platforms import build_mega_alias_map, get_csv_template


SEVEN_SHIFTS_CSV = (
    "Employee ID,Date,First,Last,Location,In Time,Out Time,Role,Regular Hours,OT Hours\n"
    "1001,2025-01-06,Maria,Lopez,Downtown,9:00AM ,5:00PM ,Server,8.00,0.00\n"
    "1002,2025-01-06,James,Carter,Downtown,10:00AM ,6:00PM ,Line Cook,8.00,0.00\n"
)

HOTSCHEDULES_CSV = (
    "Emp #,Shift Date,First Name,Last Name,Start,End,Job,Location\n"
    "1001,2025-01-06,Maria,Lopez,9:00AM,5:00PM,Server,Downtown\n"
)

CUSTOM_CSV = (
    "Staff Number,Shift Day,Given,Family,Punch Start,Punch Stop\n"
    "1001,2025-01-06,Maria,Lopez,9:00AM,5:00PM\n"
)


class TestExtractCsvHeaders:
    """Test header row extraction."""

    def test_simple_headers(self):
        assert extract_csv_headers("A,B,C\n1,2,3\n") == ['A', 'B', 'C']

    def test_quoted_header_with_comma(self):
        headers = extract_csv_headers('"Name, Full",Date\nx,y\n')
        assert headers == ['Name, Full', 'Date']

    def test_skips_leading_blank_lines_and_trims(self):
        headers = extract_csv_headers("\n   \n Employee ID , Date \n1,2\n")
        assert headers == ['Employee ID', 'Date']

    def test_strips_byte_order_mark(self):
        headers = extract_csv_headers("\ufeffEmployee ID,Date\n1,2\n")
        assert headers[0] == 'Employee ID'

    def test_empty_csv(self):
        assert extract_csv_headers("") == []
        assert extract_csv_headers("\n\n") == []


class TestAutoMapColumns:
    """Test automatic column mapping."""

    def test_known_platform_maps_all_fields(self):
        mapping = auto_map_columns(SEVEN_SHIFTS_CSV, platform='7shifts')

        assert mapping.success
        assert mapping.template_used == '7shifts'
        assert mapping.unmapped_fields == []
        assert mapping.mapping == {
            'employee_id': 0, 'date': 1, 'first_name': 2, 'last_name': 3,
            'in_time': 5, 'out_time': 6, 'role': 7, 'location': 4,
        }
        assert mapping.mapping_labels['in_time'] == 'In Time'

    def test_optional_fields_may_stay_unmapped(self):
        """Role and location absent from the export is still a successful mapping."""
        csv_text = "Employee ID,Date,First,Last,In Time,Out Time\n1,2025-01-06,A,B,9:00AM,5:00PM\n"
        mapping = auto_map_columns(csv_text, platform='7shifts')

        assert mapping.success
        assert mapping.unmapped_fields == ['role', 'location']

    def test_missing_required_field_fails(self):
        csv_text = "Employee ID,Date,First,Last,In Time\n1,2025-01-06,A,B,9:00AM\n"
        mapping = auto_map_columns(csv_text, platform='7shifts')

        assert not mapping.success
        assert 'out_time' in mapping.unmapped_fields

    def test_unknown_platform_uses_combined_aliases(self):
        mapping = auto_map_columns(HOTSCHEDULES_CSV, platform=None)

        assert mapping.success
        assert mapping.template_used is None
        assert mapping.mapping['employee_id'] == 0
        assert mapping.mapping['in_time'] == 4
        assert mapping.mapping['out_time'] == 5
        assert mapping.mapping['role'] == 6

    def test_other_platform_behaves_like_unknown(self):
        assert auto_map_columns(HOTSCHEDULES_CSV, platform='other') == auto_map_columns(HOTSCHEDULES_CSV)

    def test_first_alias_wins_and_columns_are_claimed_once(self):
        """Duplicate headers: the first unclaimed match is taken."""
        csv_text = "Employee ID,Employee ID,Date,First,Last,In Time,Out Time\n"
        mapping = auto_map_columns(csv_text, platform='7shifts')

        assert mapping.mapping['employee_id'] == 0
        assert len(set(mapping.mapping.values())) == len(mapping.mapping)

    def test_case_insensitive_header_match(self):
        csv_text = "EMPLOYEE ID,date,FIRST,last,in time,OUT TIME\n"
        assert auto_map_columns(csv_text, platform='7shifts').success

    def test_saved_mapping_takes_priority(self):
        saved = SavedColumnMapping(
            name='Custom POS',
            header_map={
                'employee_id': 'staff number', 'date': 'SHIFT DAY', 'first_name': 'Given',
                'last_name': 'Family', 'in_time': 'Punch Start', 'out_time': 'Punch Stop',
            },
        )
        mapping = auto_map_columns(CUSTOM_CSV, platform='7shifts', saved_mapping=saved)

        assert mapping.success
        assert mapping.template_used is None
        assert mapping.mapping['in_time'] == 4
        assert mapping.unmapped_fields == ['role', 'location']

    def test_stale_saved_mapping_falls_back_to_platform(self):
        saved = SavedColumnMapping(name='Old', header_map={'employee_id': 'Worker'})
        mapping = auto_map_columns(SEVEN_SHIFTS_CSV, platform='7shifts', saved_mapping=saved)

        assert mapping.success
        assert mapping.template_used == '7shifts'


class TestApplyManualMapping:
    """Test human-supplied mappings."""

    def test_manual_mapping_success(self):
        headers = extract_csv_headers(CUSTOM_CSV)
        mapping = apply_manual_mapping(headers, {
            'employee_id': 0, 'date': 1, 'first_name': 2, 'last_name': 3, 'in_time': 4, 'out_time': 5,
        })

        assert mapping.success
        assert mapping.template_used is None
        assert mapping.mapping_labels['out_time'] == 'Punch Stop'

    def test_out_of_range_index_is_unmapped(self):
        headers = extract_csv_headers(CUSTOM_CSV)
        mapping = apply_manual_mapping(headers, {
            'employee_id': 0, 'date': 1, 'first_name': 2, 'last_name': 3, 'in_time': 4, 'out_time': 99,
        })

        assert not mapping.success
        assert 'out_time' in mapping.unmapped_fields

    def test_duplicate_column_raises(self):
        headers = extract_csv_headers(CUSTOM_CSV)
        with pytest.raises(ColumnMappingError):
            apply_manual_mapping(headers, {'in_time': 4, 'out_time': 4})

    def test_unknown_field_raises(self):
        with pytest.raises(ColumnMappingError):
            apply_manual_mapping(['A'], {'shoe_size': 0})


class TestDetectPlatform:
    """Test platform fingerprinting."""

    def test_detects_seven_shifts(self):
        assert detect_platform(SEVEN_SHIFTS_CSV) == '7shifts'

    def test_detects_hotschedules(self):
        assert detect_platform(HOTSCHEDULES_CSV) == 'hotschedules'

    def test_low_confidence_returns_none(self):
        assert detect_platform("Foo,Bar,Date\n1,2,3\n") is None
        assert detect_platform("") is None


class TestNormalizeCsv:
    """Test header-only write-back."""

    def test_rewrites_header_only(self):
        mapping = auto_map_columns(HOTSCHEDULES_CSV)
        normalized = normalize_csv(HOTSCHEDULES_CSV, mapping)
        lines = normalized.split('\n')

        assert lines[0] == "Employee ID,Date,First,Last,In Time,Out Time,Role,Location"
        assert lines[1:] == HOTSCHEDULES_CSV.split('\n')[1:]

    def test_preserves_crlf_and_data_bytes(self):
        csv_text = "Emp #,Shift Date,First Name,Last Name,Start,End\r\n1, 2025-01-06 ,\"Lopez, Jr.\",X,9:00AM,5:00PM\r\n"
        mapping = auto_map_columns(csv_text)
        normalized = normalize_csv(csv_text, mapping)

        assert normalized.endswith("1, 2025-01-06 ,\"Lopez, Jr.\",X,9:00AM,5:00PM\r\n")
        assert normalized.startswith("Employee ID,Date,First,Last,In Time,Out Time\r\n")

    def test_unmapped_header_with_comma_is_requoted(self):
        csv_text = '"Notes, Misc",Employee ID,Date,First,Last,In Time,Out Time\n'
        normalized = normalize_csv(csv_text, auto_map_columns(csv_text))
        assert normalized.startswith('"Notes, Misc",Employee ID,')

    def test_accepts_plain_dict_mapping(self):
        normalized = normalize_csv("a,b\n1,2\n", {'employee_id': 1})
        assert normalized == "a,Employee ID\n1,2\n"

    def test_unmapped_column_with_canonical_name_is_renamed(self, caplog):
        csv_text = "Employee,Employee ID,Date\n1001,E-77,2025-01-06\n"
        normalized = normalize_csv(csv_text, {'employee_id': 0, 'date': 2})

        assert normalized == "Employee ID,Employee ID (unmapped),Date\n1001,E-77,2025-01-06\n"
        assert normalize_csv(normalized, {'employee_id': 0, 'date': 2}) == normalized
        assert "Unmapped column 'Employee ID' collides" in caplog.text

    def test_idempotent(self):
        mapping = auto_map_columns(HOTSCHEDULES_CSV)
        once = normalize_csv(HOTSCHEDULES_CSV, mapping)
        assert normalize_csv(once, mapping) == once

    def test_blank_csv_passes_through(self):
        assert normalize_csv("\n", {'employee_id': 0}) == "\n"


class TestMappingHelpers:
    """Test preview and success checks."""

    def test_generate_mapping_preview(self):
        mapping = auto_map_columns(SEVEN_SHIFTS_CSV, platform='7shifts')
        preview = generate_mapping_preview(SEVEN_SHIFTS_CSV, mapping, max_rows=1)

        assert len(preview) == 1
        assert preview[0]['employee_id'] == '1001'
        assert preview[0]['in_time'] == '9:00AM'

    def test_ensure_mapping_success_raises_with_missing_fields(self):
        mapping = auto_map_columns("Foo,Bar\n1,2\n")
        with pytest.raises(ColumnMappingError) as exc_info:
            ensure_mapping_success(mapping, 'worked')

        assert 'employee_id' in exc_info.value.unmapped_fields
        assert 'role' not in exc_info.value.unmapped_fields

    def test_ensure_mapping_success_returns_mapping(self):
        mapping = auto_map_columns(SEVEN_SHIFTS_CSV, platform='7shifts')
        assert isinstance(ensure_mapping_success(mapping, 'scheduled'), ColumnMapping)


class TestPlatformTemplates:
    """Test template lookup helpers."""

    def test_get_csv_template(self):
        assert get_csv_template('deputy')['label'] == 'Deputy'
        assert get_csv_template('other') is None
        assert get_csv_template(None) is None
        assert get_csv_template('unknown-platform') is None

    def test_mega_alias_map_is_deduplicated(self):
        mega = build_mega_alias_map()
        for aliases in mega.values():
            assert len(aliases) == len(set(aliases))
        assert mega['employee_id'][0] == 'employee id'
        assert 'emp #' in mega['employee_id']
