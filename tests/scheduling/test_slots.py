"""
Tests for the slot availability engine (pure business logic).
Appointments are plain snapshots; no database involved.
"""
import math
import pytest
from datetime import date, datetime, timezone

from workshop.scheduling.config import ShopCalendarConfig
from workshop.scheduling.errors import InvalidDuration
from workshop.scheduling.slots import (
    Slot,
    compute_slots,
    count_overlaps,
    day_intervals,
    group_slots_by_period,
    slot_rejection_reason,
    validate_duration,
)
from workshop.scheduling.snapshots import AppointmentSnapshot


MONDAY = date(2024, 5, 6)
SATURDAY = date(2024, 5, 11)


def make_appointment(appointment_id, job_id, iso_utc):
    start = datetime.fromisoformat(iso_utc).replace(tzinfo=timezone.utc)
    return AppointmentSnapshot(id=appointment_id, job_id=job_id, date_time=start)


def slot_times(availability):
    return [slot.time for slot in availability.slots]


@pytest.fixture
def config():
    return ShopCalendarConfig.from_settings(
        operating_hours={'start': '08:00', 'end': '17:00'},
        open_weekdays=['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday'],
        bay_count=2,
    )


@pytest.fixture
def two_bays_busy_at_nine():
    """Both bays taken 09:00-11:00 on Monday."""
    appointments = [
        make_appointment(1, 10, "2024-05-06T09:00"),
        make_appointment(2, 11, "2024-05-06T09:00"),
    ]
    durations = {10: 2.0, 11: 2.0}
    return appointments, durations


# ==============================================================================
# DURATION VALIDATION TESTS
# ==============================================================================

class TestValidateDuration:

    def test_accepts_positive_numbers(self):
        assert validate_duration(1) == 1.0
        assert validate_duration(0.25) == 0.25

    @pytest.mark.parametrize("duration", [0, -1, -0.5, None, "2", True, math.nan, math.inf])
    def test_rejects_invalid(self, duration):
        with pytest.raises(InvalidDuration):
            validate_duration(duration)

    def test_compute_slots_rejects_zero_duration(self, config):
        with pytest.raises(InvalidDuration):
            compute_slots(MONDAY, 0, config, [], {})

    @pytest.mark.parametrize("duration", [0, -2, None])
    def test_closed_day_wins_over_invalid_duration(self, config, duration):
        result = compute_slots(SATURDAY, duration, config, [], {})

        assert result.shop_closed is True
        assert result.slots == ()

    def test_rejection_reason_closed_day_wins_over_invalid_duration(self, config):
        assert slot_rejection_reason(SATURDAY, 600, 0, config, [], {}) == 'shop_closed'


# ==============================================================================
# COMPUTE SLOTS TESTS
# ==============================================================================

class TestComputeSlots:

    def test_closed_day_reports_shop_closed(self, config):
        result = compute_slots(SATURDAY, 1, config, [], {})

        assert result.shop_closed is True
        assert result.slots == ()

    def test_empty_day_steps_every_fifteen_minutes(self, config):
        result = compute_slots(MONDAY, 1, config, [], {})
        times = slot_times(result)

        assert result.shop_closed is False
        assert len(times) == 33
        assert times[0] == "08:00"
        assert times[1] == "08:15"
        assert times[-1] == "16:00"

    def test_job_filling_the_whole_day_has_one_slot(self, config):
        assert slot_times(compute_slots(MONDAY, 9, config, [], {})) == ["08:00"]

    def test_job_longer_than_the_day_has_no_slots(self, config):
        result = compute_slots(MONDAY, 9.25, config, [], {})

        assert result.slots == ()
        assert result.shop_closed is False

    def test_full_bays_block_overlapping_candidates(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        times = slot_times(compute_slots(MONDAY, 1, config, appointments, durations))

        # Ends exactly when the busy period starts: no overlap
        assert "08:00" in times
        assert "08:15" not in times
        assert "10:45" not in times
        # Starts exactly when the busy period ends
        assert "11:00" in times
        assert len(times) == 22

    def test_free_bay_keeps_slots_open(self, config):
        appointments = [make_appointment(1, 10, "2024-05-06T09:00")]
        times = slot_times(compute_slots(MONDAY, 1, config, appointments, {10: 2.0}))

        assert len(times) == 33

    def test_single_bay_shop(self):
        config = ShopCalendarConfig.from_settings(
            operating_hours={'start': '08:00', 'end': '12:00'},
            open_weekdays=['Monday'],
            bay_count=1,
        )
        appointments = [make_appointment(1, 10, "2024-05-06T09:00")]
        times = slot_times(compute_slots(MONDAY, 1, config, appointments, {10: 1.0}))

        assert times == ["08:00", "10:00", "10:15", "10:30", "10:45", "11:00"]

    def test_appointments_on_other_days_are_ignored(self, config):
        appointments = [
            make_appointment(1, 10, "2024-05-07T09:00"),
            make_appointment(2, 11, "2024-05-07T09:00"),
        ]
        times = slot_times(compute_slots(MONDAY, 1, config, appointments, {10: 2.0, 11: 2.0}))

        assert len(times) == 33

    def test_unresolved_jobs_are_skipped(self, config):
        appointments = [
            make_appointment(1, 98, "2024-05-06T09:00"),
            make_appointment(2, 99, "2024-05-06T09:00"),
        ]
        times = slot_times(compute_slots(MONDAY, 1, config, appointments, {}))

        assert len(times) == 33

    def test_excluded_appointment_frees_its_bay(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        times = slot_times(compute_slots(
            MONDAY, 1, config, appointments, durations, exclude_appointment_id=1
        ))

        assert "09:00" in times
        assert len(times) == 33

    def test_every_slot_respects_capacity_and_hours(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        intervals = day_intervals(MONDAY, appointments, durations, config.tzinfo)

        for slot in compute_slots(MONDAY, 1.5, config, appointments, durations).slots:
            assert slot.start_minutes >= 480
            assert slot.start_minutes + 90 <= 1020
            assert count_overlaps(slot.start_minutes, slot.start_minutes + 90, intervals) < config.bay_count

    def test_identical_inputs_give_identical_output(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine

        first = compute_slots(MONDAY, 1, config, appointments, durations)
        second = compute_slots(MONDAY, 1, config, appointments, durations)

        assert first == second

    def test_to_dict(self, config):
        result = compute_slots(MONDAY, 9, config, [], {})

        assert result.to_dict() == {'slots': [{'time': '08:00'}], 'shopClosed': False}

    def test_days_are_evaluated_in_shop_timezone(self):
        config = ShopCalendarConfig.from_settings(
            operating_hours={'start': '08:00', 'end': '17:00'},
            open_weekdays=['Monday'],
            bay_count=1,
            timezone="Europe/London",
        )
        # 08:00 UTC is 09:00 BST on 1 July 2024
        appointments = [make_appointment(1, 10, "2024-07-01T08:00")]
        times = slot_times(compute_slots(date(2024, 7, 1), 1, config, appointments, {10: 1.0}))

        assert "08:00" in times
        assert "09:00" not in times
        assert "10:00" in times


# ==============================================================================
# SINGLE START VALIDATION TESTS
# ==============================================================================

class TestSlotRejectionReason:

    def test_open_slot_is_accepted(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        assert slot_rejection_reason(MONDAY, 480, 1, config, appointments, durations) is None

    def test_off_grid_start_is_accepted(self, config):
        assert slot_rejection_reason(MONDAY, 665, 1, config, [], {}) is None

    def test_closed_day(self, config):
        assert slot_rejection_reason(SATURDAY, 600, 1, config, [], {}) == 'shop_closed'

    def test_outside_hours(self, config):
        assert slot_rejection_reason(MONDAY, 990, 1, config, [], {}) == 'outside_hours'
        assert slot_rejection_reason(MONDAY, 420, 1, config, [], {}) == 'outside_hours'

    def test_over_capacity(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        assert slot_rejection_reason(MONDAY, 570, 1, config, appointments, durations) == 'over_capacity'

    def test_exclusion_applies(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        reason = slot_rejection_reason(
            MONDAY, 570, 1, config, appointments, durations, exclude_appointment_id=2
        )
        assert reason is None


# ==============================================================================
# PRESENTATION HELPERS TESTS
# ==============================================================================

class TestGroupSlotsByPeriod:

    def test_noon_starts_the_afternoon(self):
        grouped = group_slots_by_period([Slot(705), Slot(720), Slot(900)])

        assert grouped == {
            'morning': [{'time': '11:45'}],
            'afternoon': [{'time': '12:00'}, {'time': '15:00'}],
        }

    def test_empty(self):
        assert group_slots_by_period([]) == {'morning': [], 'afternoon': []}


# ==============================================================================
# SCENARIO TESTS
# ==============================================================================

class TestScenarios:

    @pytest.mark.parametrize("duration_hours", [0.25, 0.5, 1, 1.5, 2.75, 8.5, 9.5])
    def test_empty_day_slot_count(self, duration_hours):
        config = ShopCalendarConfig.from_settings(
            operating_hours={'start': '08:00', 'end': '17:30'},
            open_weekdays=['Monday'],
            bay_count=3,
        )
        duration_minutes = duration_hours * 60
        window = 1050 - 480
        expected = int((window - duration_minutes) // 15) + 1 if duration_minutes <= window else 0

        assert len(compute_slots(MONDAY, duration_hours, config, [], {}).slots) == expected

    def test_closed_day_ignores_bookings_and_duration(self, config, two_bays_busy_at_nine):
        appointments, durations = two_bays_busy_at_nine
        for duration in (0.5, 3, 12):
            result = compute_slots(SATURDAY, duration, config, appointments, durations)
            assert result.to_dict() == {'slots': [], 'shopClosed': True}

    def test_two_bay_shop_with_one_long_job(self):
        config = ShopCalendarConfig.from_settings(
            operating_hours={'start': '08:00', 'end': '17:30'},
            open_weekdays=['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday'],
            bay_count=2,
        )
        appointments = [make_appointment(1, 10, "2024-05-06T10:00")]

        times = slot_times(compute_slots(MONDAY, 1.5, config, appointments, {10: 2.0}))

        assert "08:00" in times
        assert "10:30" in times
        assert "16:00" in times
        assert "16:15" not in times
