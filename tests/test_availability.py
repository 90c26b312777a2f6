"""Tests for availability marking and consecutive-day spans."""

from datetime import date, timedelta
from types import SimpleNamespace

from conftest import make_slot

from swimslot.domain.slots.availability import find_conflict, mark_availability
from swimslot.domain.slots.service import SlotService
from swimslot.domain.slots.windows import generate_time_windows
from swimslot.models import Booking, SlotException, User

D = date(2030, 6, 10)


def booking(day=D, start="09:00", status="booked", slot_id="slot-1", booking_id="b-1"):
    return SimpleNamespace(id=booking_id, booking_date=day, start_time=start, status=status, slot_id=slot_id)


def windows():
    slot = SimpleNamespace(id="slot-1", start_time="09:00", end_time="11:00", slot_duration=60, is_holiday=False)
    return generate_time_windows(slot, D)


def add_booking(db, slot, day, start="10:00", end="11:00", status="booked"):
    user = db.query(User).filter(User.email == "taken@example.com").first()
    if user is None:
        user = User(name="Taken", email="taken@example.com")
        db.add(user)
        db.commit()
    db.add(
        Booking(
            user_id=user.id,
            slot_id=slot.id,
            booking_date=day,
            start_time=start,
            end_time=end,
            status=status,
        )
    )
    db.commit()


class TestMarkAvailability:
    def test_booked_window_is_unavailable(self):
        marked = mark_availability(windows(), [booking(start="09:00")])
        assert [(w.start_time, w.is_available) for w in marked] == [("09:00", False), ("10:00", True)]

    def test_no_bookings_leaves_everything_available(self):
        assert all(w.is_available for w in mark_availability(windows(), []))

    def test_booking_times_are_normalized(self):
        marked = mark_availability(windows(), [booking(start="9:00:00")])
        assert marked[0].is_available is False

    def test_cancelled_booking_does_not_block(self):
        marked = mark_availability(windows(), [booking(status="cancelled")])
        assert marked[0].is_available is True

    def test_booking_on_other_date_does_not_block(self):
        marked = mark_availability(windows(), [booking(day=D + timedelta(days=1))])
        assert all(w.is_available for w in marked)

    def test_slot_id_mismatch_still_matches(self):
        marked = mark_availability(windows(), [booking(slot_id="another-slot")])
        assert marked[0].is_available is False

    def test_find_conflict_ignores_excluded_booking(self):
        existing = [booking(booking_id="keep")]
        assert find_conflict(existing, D, "09:00").id == "keep"
        assert find_conflict(existing, D, "09:00", exclude_id="keep") is None


class TestDayAvailability:
    def test_day_without_slot_is_unavailable(self, db):
        day = SlotService(db).get_day_availability(D)
        assert day.has_slot is False
        assert day.is_available is False
        assert day.windows == []

    def test_recurring_slot_covers_its_range(self, db):
        make_slot(db, D, end_date=D + timedelta(days=4))
        service = SlotService(db)
        assert service.get_day_availability(D + timedelta(days=4)).is_available
        assert not service.get_day_availability(D + timedelta(days=5)).has_slot

    def test_fully_booked_day_is_unavailable(self, db):
        slot = make_slot(db, D)
        add_booking(db, slot, D, "09:00", "10:00")
        add_booking(db, slot, D, "10:00", "11:00")
        day = SlotService(db).get_day_availability(D)
        assert day.has_slot is True
        assert day.is_available is False

    def test_exception_applies_to_its_date(self, db):
        slot = make_slot(db, D, end_date=D + timedelta(days=2))
        db.add(SlotException(slot_id=slot.id, date=D + timedelta(days=1), is_holiday=True))
        db.commit()
        assert SlotService(db).get_day_availability(D + timedelta(days=1)).windows == []


class TestSpanAvailability:
    """A span is bookable only when every day has a slot with a free window."""

    def test_three_covered_days_are_bookable(self, db):
        make_slot(db, D, end_date=D + timedelta(days=2))
        span = SlotService(db).check_span(D, "10:00")
        assert span.is_bookable is True
        assert [day.date for day in span.days] == ["2030-06-10", "2030-06-11", "2030-06-12"]

    def test_missing_slot_on_one_day_flips_span(self, db):
        make_slot(db, D)
        make_slot(db, D + timedelta(days=2))
        span = SlotService(db).check_span(D)
        assert span.is_bookable is False
        assert span.days[1].has_slot is False

    def test_removing_a_slot_flips_span(self, db):
        for offset in range(3):
            make_slot(db, D + timedelta(days=offset))
        service = SlotService(db)
        assert service.check_span(D).is_bookable is True

        middle = service.get_slot_for_date(D + timedelta(days=1))
        service.delete_slot(middle.id)
        assert service.check_span(D).is_bookable is False

    def test_requested_time_must_be_free_every_day(self, db):
        slot = make_slot(db, D, end_date=D + timedelta(days=2))
        add_booking(db, slot, D + timedelta(days=2), "10:00", "11:00")
        service = SlotService(db)
        assert service.check_span(D, "10:00").is_bookable is False
        assert service.check_span(D, "09:00").is_bookable is True
        assert service.check_span(D).is_bookable is True

    def test_common_times_lists_times_free_on_all_days(self, db):
        slot = make_slot(db, D, end_date=D + timedelta(days=2))
        add_booking(db, slot, D + timedelta(days=1), "09:00", "10:00")
        span = SlotService(db).check_span(D)
        assert span.common_times == ["10:00"]
        assert span.to_dict()["common_times"] == ["10:00"]

    def test_unknown_time_is_not_bookable(self, db):
        make_slot(db, D, end_date=D + timedelta(days=2))
        assert SlotService(db).check_span(D, "15:00").is_bookable is False
