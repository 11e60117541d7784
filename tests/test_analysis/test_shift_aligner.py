"""
Unit tests for shift_aligner.py module.
Tests clock-time parsing, sequence assignment and match keys.
"""

import pytest
from datetime import datetime

from shift_reconciliation.analysis.shift_aligner import (
    SequenceAlignmentStrategy,
    align_shifts,
    parse_clock_time,
    parse_shift_date,
    validate_shift_times,
)
from shift_reconciliation.models.data_models import RawShiftRow
from shift_reconciliation.utils.error_handlers import InvalidDateFormatError, InvalidTimeFormatError


def make_row(employee_id='1001', date='2025-01-06', in_time='9:00AM', out_time='5:00PM',
             first_name='Maria', last_name='Lopez', role='Server'):
    return RawShiftRow(
        employee_id=employee_id, date=date, first_name=first_name, last_name=last_name,
        in_time=in_time, out_time=out_time, role=role,
    )


class TestParseClockTime:
    """Test 12-hour clock parsing."""

    @pytest.mark.parametrize('time_str, expected', [
        ('10:00AM ', (10, 0)),
        (' 3:00PM', (15, 0)),
        ('10:00 am', (10, 0)),
        ('09:15 Pm', (21, 15)),
        ('12:00AM', (0, 0)),
        ('12:30PM', (12, 30)),
        ('0:45AM', (0, 45)),
    ])
    def test_valid_times(self, time_str, expected):
        parsed = parse_clock_time(time_str, '2025-01-06')
        assert parsed == datetime(2025, 1, 6, expected[0], expected[1])

    @pytest.mark.parametrize('time_str', ['13:00PM', '9:60AM', '9:00', '17:00', 'noon', '', '9:5AM', 'x9:00AM'])
    def test_invalid_times_raise(self, time_str):
        with pytest.raises(InvalidTimeFormatError):
            parse_clock_time(time_str, '2025-01-06')

    def test_error_message_names_value(self):
        with pytest.raises(InvalidTimeFormatError) as exc_info:
            parse_clock_time('25:00PM', '2025-01-06')
        assert str(exc_info.value) == 'Invalid time format: 25:00PM'

    @pytest.mark.parametrize('date_str', ['01/06/2025', '2025-02-30', '2025-1-6', ''])
    def test_invalid_dates_raise(self, date_str):
        with pytest.raises(InvalidDateFormatError):
            parse_clock_time('9:00AM', date_str)

    def test_parse_shift_date(self):
        assert parse_shift_date('2025-01-06') == datetime(2025, 1, 6)


class TestAlignShifts:
    """Test sequence numbering and match keys."""

    def test_single_shift(self):
        shifts = align_shifts([make_row()])

        assert len(shifts) == 1
        shift = shifts[0]
        assert shift.sequence == 1
        assert shift.match_key == '1001-20250106-1'
        assert shift.employee_name == 'Maria Lopez'
        assert shift.scheduled_minutes == 480.0
        assert shift.in_time == datetime(2025, 1, 6, 9, 0)
        assert shift.out_time == datetime(2025, 1, 6, 17, 0)

    def test_multi_shift_day_ordered_by_in_time(self):
        rows = [
            make_row(in_time='1:00PM', out_time='5:00PM'),
            make_row(in_time='8:00AM', out_time='12:00PM'),
        ]
        shifts = align_shifts(rows)

        assert [shift.sequence for shift in shifts] == [1, 2]
        assert shifts[0].in_time.hour == 8
        assert shifts[1].in_time.hour == 13
        assert shifts[1].match_key == '1001-20250106-2'

    def test_ordering_by_date_then_employee(self):
        rows = [
            make_row(employee_id='2000', date='2025-01-07'),
            make_row(employee_id='1001', date='2025-01-07'),
            make_row(employee_id='2000', date='2025-01-06'),
        ]
        shifts = align_shifts(rows)

        assert [shift.match_key for shift in shifts] == [
            '2000-20250106-1', '1001-20250107-1', '2000-20250107-1',
        ]

    def test_sequences_restart_per_employee_and_date(self):
        rows = [
            make_row(employee_id='1001', in_time='8:00AM', out_time='10:00AM'),
            make_row(employee_id='1001', in_time='11:00AM', out_time='1:00PM'),
            make_row(employee_id='1002', in_time='9:00AM', out_time='11:00AM'),
            make_row(employee_id='1001', date='2025-01-07', in_time='8:00AM', out_time='10:00AM'),
        ]
        shifts = align_shifts(rows)
        keys = {shift.match_key for shift in shifts}

        assert keys == {'1001-20250106-1', '1001-20250106-2', '1002-20250106-1', '1001-20250107-1'}
        assert len(keys) == len(shifts)

    def test_equal_in_times_keep_input_order(self):
        rows = [
            make_row(in_time='9:00AM', out_time='10:00AM', role='First'),
            make_row(in_time='9:00AM', out_time='11:00AM', role='Second'),
        ]
        shifts = align_shifts(rows)

        assert [shift.role for shift in shifts] == ['First', 'Second']

    def test_negative_duration_passes_through(self):
        shifts = align_shifts([make_row(in_time='11:00PM', out_time='7:00AM')])
        assert shifts[0].scheduled_minutes == -960.0

    def test_name_is_trimmed(self):
        shifts = align_shifts([make_row(first_name='Cher', last_name='')])
        assert shifts[0].employee_name == 'Cher'

    def test_empty_input(self):
        assert align_shifts([]) == []

    def test_invalid_time_raises(self):
        with pytest.raises(InvalidTimeFormatError):
            align_shifts([make_row(out_time='5 PM')])

    def test_same_input_same_output(self):
        rows = [make_row(in_time='1:00PM', out_time='5:00PM'), make_row(in_time='8:00AM', out_time='12:00PM')]
        assert align_shifts(rows) == align_shifts(list(rows))


class TestAlignmentStrategy:
    """Test the default alignment strategy."""

    def test_sequence_strategy_aligns_each_side(self):
        strategy = SequenceAlignmentStrategy()
        scheduled, worked = strategy.align_pair(
            [make_row(in_time='8:00AM', out_time='12:00PM'), make_row(in_time='1:00PM', out_time='5:00PM')],
            [make_row(in_time='1:02PM', out_time='5:10PM'), make_row(in_time='8:05AM', out_time='12:00PM')],
        )

        assert [shift.match_key for shift in scheduled] == [shift.match_key for shift in worked]
        assert worked[0].in_time.hour == 8

    def test_validate_shift_times(self):
        validate_shift_times([make_row()])
        with pytest.raises(InvalidTimeFormatError):
            validate_shift_times([make_row(), make_row(in_time='later')])
