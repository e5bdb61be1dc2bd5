"""
Repository tests for the overlap query, guarded inserts and deletes,
atomic booking transitions and the partial unique index on active bookings.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import RepositoryException
from app.models.booking import Booking, BookingStatus
from app.models.coaching_session import (
    CoachingSession,
    SessionStatus,
    SessionVisibility,
    SessionWhitelistEntry,
)
from app.repositories.booking_repository import BookingRepository
from app.repositories.session_repository import SessionRepository

TEN = datetime(2025, 1, 6, 10, 0)
ELEVEN = datetime(2025, 1, 6, 11, 0)


@pytest.fixture
def session_repo(db):
    return SessionRepository(db)


@pytest.fixture
def booking_repo(db):
    return BookingRepository(db)


class TestFindOverlappingSession:
    @pytest.mark.parametrize(
        "start,end,overlaps",
        [
            (ELEVEN, ELEVEN + timedelta(hours=1), False),
            (TEN - timedelta(hours=1), TEN, False),
            (TEN + timedelta(minutes=59), ELEVEN + timedelta(minutes=30), True),
            (TEN - timedelta(minutes=30), TEN + timedelta(minutes=1), True),
            (TEN + timedelta(minutes=15), TEN + timedelta(minutes=45), True),
            (TEN - timedelta(hours=1), ELEVEN + timedelta(hours=1), True),
        ],
    )
    def test_half_open_windows(self, session_repo, make_session, coach, start, end, overlaps):
        existing = make_session(coach, TEN, ELEVEN)

        clash = session_repo.find_overlapping_session(coach.id, start, end)

        assert (clash is not None) is overlaps
        if overlaps:
            assert clash.id == existing.id

    def test_cancelled_sessions_ignored(self, session_repo, make_session, coach):
        make_session(coach, TEN, ELEVEN, status=SessionStatus.CANCELLED)

        assert session_repo.find_overlapping_session(coach.id, TEN, ELEVEN) is None

    def test_other_coaches_ignored(self, session_repo, make_session, coach, other_coach):
        make_session(other_coach, TEN, ELEVEN)

        assert session_repo.find_overlapping_session(coach.id, TEN, ELEVEN) is None


class TestConfirmIfCapacity:
    def test_confirms_while_seats_remain(self, booking_repo, make_session, make_booking, coach, student, db):
        session = make_session(coach, TEN, max_students=1)
        booking = make_booking(session, student, BookingStatus.PENDING)

        assert booking_repo.confirm_if_capacity(booking.id, session.id) is True
        db.commit()
        db.expire_all()
        assert db.get(Booking, booking.id).status == BookingStatus.CONFIRMED.value

    def test_refuses_when_confirmed_seats_full(
        self, booking_repo, make_session, make_booking, coach, student, other_student, db
    ):
        session = make_session(coach, TEN, max_students=1)
        make_booking(session, student, BookingStatus.CONFIRMED)
        waiting = make_booking(session, other_student, BookingStatus.PENDING)

        assert booking_repo.confirm_if_capacity(waiting.id, session.id) is False

    def test_refuses_non_pending(self, booking_repo, make_session, make_booking, coach, student):
        session = make_session(coach, TEN, max_students=3)
        cancelled = make_booking(session, student, BookingStatus.CANCELLED)

        assert booking_repo.confirm_if_capacity(cancelled.id, session.id) is False


class TestTransitionStatus:
    def test_moves_only_from_allowed_states(
        self, booking_repo, make_session, make_booking, coach, student
    ):
        session = make_session(coach, TEN, max_students=2)
        booking = make_booking(session, student, BookingStatus.CONFIRMED)

        assert (
            booking_repo.transition_status(booking.id, ["pending"], "cancelled") is False
        )
        assert (
            booking_repo.transition_status(booking.id, ["pending", "confirmed"], "cancelled")
            is True
        )


class TestActiveBookingIndex:
    def test_second_active_booking_violates_index(
        self, make_session, make_booking, coach, student, db
    ):
        session = make_session(coach, TEN, max_students=3)
        make_booking(session, student, BookingStatus.PENDING)

        db.add(Booking(session_id=session.id, student_id=student.id, status=BookingStatus.PENDING))
        with pytest.raises(IntegrityError):
            db.commit()
        db.rollback()

    def test_cancelled_rows_do_not_count(self, make_session, make_booking, coach, student, db):
        session = make_session(coach, TEN, max_students=3)
        make_booking(session, student, BookingStatus.CANCELLED)
        make_booking(session, student, BookingStatus.CANCELLED)

        fresh = make_booking(session, student, BookingStatus.PENDING)

        assert fresh.status == BookingStatus.PENDING.value


class TestListSessionsWithCounts:
    def test_counts_split_confirmed_and_held(
        self, session_repo, make_session, make_booking, coach, student, other_student
    ):
        session = make_session(coach, TEN, max_students=3)
        make_booking(session, student, BookingStatus.CONFIRMED)
        make_booking(session, other_student, BookingStatus.PENDING)

        ((row_session, coach_name, booked, held),) = session_repo.list_sessions_with_counts(
            coach_id=coach.id
        )

        assert row_session.id == session.id
        assert coach_name == "Carla Coach"
        assert (booked, held) == (1, 2)


class TestCreateIfFree:
    def test_inserts_into_free_window(self, session_repo, coach, db):
        created = session_repo.create_if_free(
            coach_id=coach.id,
            title="Algebra",
            start_time=TEN,
            end_time=ELEVEN,
            max_students=2,
            price=Decimal("10.00"),
            visibility=SessionVisibility.PUBLIC,
        )
        db.commit()

        assert created is not None
        assert created.status == SessionStatus.AVAILABLE.value
        assert created.visibility == SessionVisibility.PUBLIC.value
        assert created.created_at is not None

    def test_refuses_overlapping_window(self, session_repo, make_session, coach, db):
        make_session(coach, TEN, ELEVEN)

        created = session_repo.create_if_free(
            coach_id=coach.id,
            title="Clash",
            start_time=TEN + timedelta(minutes=30),
            end_time=ELEVEN + timedelta(minutes=30),
            max_students=1,
            price=Decimal("0"),
            visibility=SessionVisibility.PUBLIC.value,
        )

        assert created is None
        assert db.query(CoachingSession).filter(CoachingSession.coach_id == coach.id).count() == 1

    def test_adjacent_and_cancelled_windows_are_free(self, session_repo, make_session, coach):
        make_session(coach, TEN - timedelta(hours=1), TEN)
        make_session(coach, TEN, ELEVEN, status=SessionStatus.CANCELLED)

        created = session_repo.create_if_free(
            coach_id=coach.id,
            title="Fits",
            start_time=TEN,
            end_time=ELEVEN,
            max_students=1,
            price=Decimal("0"),
            visibility=SessionVisibility.PUBLIC.value,
        )

        assert created is not None


class TestCreateIfCapacity:
    def test_inserts_pending_while_seat_free(self, booking_repo, make_session, coach, student):
        session = make_session(coach, TEN, max_students=1)

        booking = booking_repo.create_if_capacity(session.id, student.id)

        assert booking is not None
        assert booking.status == BookingStatus.PENDING.value

    def test_pending_requests_fill_seats(
        self, booking_repo, make_session, make_booking, coach, student, other_student, db
    ):
        session = make_session(coach, TEN, max_students=1)
        make_booking(session, student, BookingStatus.PENDING)

        assert booking_repo.create_if_capacity(session.id, other_student.id) is None
        assert db.query(Booking).filter(Booking.student_id == other_student.id).count() == 0

    def test_closed_session_refused(self, booking_repo, make_session, coach, student):
        session = make_session(coach, TEN, max_students=3, status=SessionStatus.CANCELLED)

        assert booking_repo.create_if_capacity(session.id, student.id) is None

    def test_duplicate_active_request_chains_integrity_error(
        self, booking_repo, make_session, make_booking, coach, student
    ):
        session = make_session(coach, TEN, max_students=3)
        make_booking(session, student, BookingStatus.PENDING)

        with pytest.raises(RepositoryException) as exc_info:
            booking_repo.create_if_capacity(session.id, student.id)

        assert isinstance(exc_info.value.__cause__, IntegrityError)


class TestDeleteIfUnconfirmed:
    def test_removes_session_bookings_and_whitelist(
        self, session_repo, make_session, make_booking, coach, student, other_student, db
    ):
        session = make_session(coach, TEN, max_students=3)
        make_booking(session, student, BookingStatus.PENDING)
        make_booking(session, other_student, BookingStatus.CANCELLED)
        session_repo.add_whitelist_entries(session.id, [student.id])
        db.commit()
        session_id = session.id

        removed = session_repo.delete_if_unconfirmed(session)
        db.commit()

        assert removed == 2
        assert db.get(CoachingSession, session_id) is None
        assert db.query(SessionWhitelistEntry).count() == 0

    def test_confirmed_booking_blocks_and_keeps_rows(
        self, session_repo, make_session, make_booking, coach, student, db
    ):
        session = make_session(coach, TEN)
        confirmed = make_booking(session, student, BookingStatus.CONFIRMED)

        assert session_repo.delete_if_unconfirmed(session) is None
        db.rollback()
        db.expire_all()
        assert db.get(CoachingSession, session.id) is not None
        assert db.get(Booking, confirmed.id).status == BookingStatus.CONFIRMED.value


class TestExpertiseFilter:
    def test_matches_tag_case_insensitively(
        self, session_repo, make_session, coach, other_coach, db
    ):
        coach.expertise = ["Calculus", "Linear Algebra"]
        other_coach.expertise = ["Chemistry"]
        db.commit()
        mine = make_session(coach, TEN)
        make_session(other_coach, TEN)

        rows = session_repo.list_sessions_with_counts(expertise="linear algebra")

        assert [row[0].id for row in rows] == [mine.id]

    def test_partial_tag_does_not_match(self, session_repo, make_session, coach, db):
        coach.expertise = ["Calculus"]
        db.commit()
        make_session(coach, TEN)

        assert session_repo.list_sessions_with_counts(expertise="calc") == []

    def test_wildcards_are_literal(self, session_repo, make_session, coach, db):
        coach.expertise = ["Calculus"]
        db.commit()
        make_session(coach, TEN)

        assert session_repo.list_sessions_with_counts(expertise="%") == []
