"""
Service tests for booking, cancellation, payments, reviews and the
notifications and chats that session changes produce.
"""

from datetime import datetime

import pytest

from edubro.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
)
from edubro.services import chats, notifications, payments, reviews, sessions, tutors
from edubro.store import crud

from tests.conftest import make_user

DAY = "2030-01-15"


@pytest.fixture
def open_day(db, tutor):
    return tutors.add_availability_slot(db, tutor.id, DAY, "09:00", "13:00")


def _book(db, student, tutor, start="10:00", end="12:00", subject="mathematics"):
    return sessions.book_session(db, student, tutor.id, DAY, start, end, subject)


class TestBooking:
    def test_book_marks_slots_and_prices_by_hours(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)

        assert session.status == "confirmed"
        assert session.payment_status == "pending"
        assert session.hours == 2
        assert session.total_amount == 80.0
        assert session.end_time == "12:00"

        booked = {s["start_time"]: s for s in open_day.slots}
        assert booked["10:00"]["is_booked"] and booked["10:00"]["session_id"] == session.id
        assert booked["11:00"]["is_booked"]
        assert not booked["09:00"]["is_booked"]
        assert not booked["12:00"]["is_booked"]

    def test_booking_notifies_both_sides(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        for user_id in (student.id, tutor.id):
            items = notifications.get_user_notifications(db, user_id)
            assert [n.type for n in items] == ["session_booked"]
            assert items[0].related_id == session.id

    def test_double_booking_is_refused(self, db, student, tutor, open_day):
        _book(db, student, tutor)
        with pytest.raises(ConflictError):
            _book(db, student, tutor, start="11:00", end="13:00")

    def test_range_outside_availability(self, db, student, tutor, open_day):
        with pytest.raises(ConflictError):
            _book(db, student, tutor, start="12:00", end="14:00")

    def test_no_availability_that_day(self, db, student, tutor):
        with pytest.raises(NotFoundError):
            _book(db, student, tutor)

    def test_subject_must_be_taught(self, db, student, tutor, open_day):
        with pytest.raises(ValidationFailedError):
            _book(db, student, tutor, subject="history")

    def test_partial_hours_are_refused(self, db, student, tutor, open_day):
        with pytest.raises(ValidationFailedError, match="on the hour"):
            _book(db, student, tutor, start="10:45", end="12:00")
        assert crud.list_sessions(db, tutor_id=tutor.id) == []
        assert not any(s["is_booked"] for s in open_day.slots)


class TestCancellation:
    def test_student_cancels_in_time(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        sessions.cancel_session(db, session.id, student, now=datetime(2030, 1, 15, 4, 59))

        assert session.status == "cancelled"
        assert not any(s["is_booked"] for s in open_day.slots)
        assert all(s["session_id"] is None for s in open_day.slots)

    def test_paid_session_is_refunded(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        payments.process_payment(db, session.id, student)

        sessions.cancel_session(db, session.id, student, now=datetime(2030, 1, 1))

        assert session.status == "cancelled"
        assert session.payment_status == "refunded"

    def test_unpaid_session_stays_pending(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        sessions.cancel_session(db, session.id, student, now=datetime(2030, 1, 1))
        assert session.payment_status == "pending"

    def test_too_close_to_start(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        with pytest.raises(ConflictError, match="5 hours"):
            sessions.cancel_session(db, session.id, student, now=datetime(2030, 1, 15, 5, 30))
        assert session.status == "confirmed"

    def test_only_the_booking_student(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        other = make_user(db, "student")
        with pytest.raises(PermissionDeniedError):
            sessions.cancel_session(db, session.id, other, now=datetime(2030, 1, 1))

    def test_cannot_cancel_twice(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        sessions.cancel_session(db, session.id, student, now=datetime(2030, 1, 1))
        with pytest.raises(ConflictError):
            sessions.cancel_session(db, session.id, student, now=datetime(2030, 1, 1))


class TestTutorDecision:
    def test_decline_refunds_and_frees_slots(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        payments.process_payment(db, session.id, student)

        sessions.update_session_status(db, session.id, tutor, "cancelled")

        assert session.status == "cancelled"
        assert session.payment_status == "refunded"
        assert not any(s["is_booked"] for s in open_day.slots)

    def test_accept_opens_chat_once(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        sessions.update_session_status(db, session.id, tutor, "confirmed")
        chat = crud.get_chat(db, session.id)
        assert chat is not None
        assert chat.session_details["subject"] == "mathematics"
        assert chats.create_chat(db, session) is chat

    def test_tutor_cannot_complete(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        with pytest.raises(ValidationFailedError):
            sessions.update_session_status(db, session.id, tutor, "completed")

    def test_other_tutor_is_refused(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        other = make_user(db, "tutor")
        with pytest.raises(PermissionDeniedError):
            sessions.update_session_status(db, session.id, other, "cancelled")


class TestPaymentsAndCompletion:
    def test_payment_id_is_simulated(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        payments.process_payment(db, session.id, student)
        assert session.payment_status == "paid"
        assert session.payment_id.startswith("sim_")
        with pytest.raises(ConflictError):
            payments.process_payment(db, session.id, student)

    def test_refund_requires_paid(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        with pytest.raises(ConflictError):
            payments.process_refund(db, session.id)

    def test_complete(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        payments.complete_session_and_release_payment(db, session.id, student)
        assert session.status == "completed"
        assert session.completed_at is not None
        types = [n.type for n in notifications.get_user_notifications(db, tutor.id)]
        assert "session_completed" in types
        with pytest.raises(ConflictError):
            payments.complete_session_and_release_payment(db, session.id, student)


class TestReviews:
    @pytest.fixture
    def completed(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        payments.complete_session_and_release_payment(db, session.id, student)
        return session

    def test_rating_is_a_running_average(self, db, student, tutor, completed):
        tutor.rating, tutor.total_reviews = 4.0, 3
        reviews.submit_review(db, completed.id, student, 5, "great")
        assert tutor.total_reviews == 4
        assert tutor.rating == pytest.approx(4.25)

    def test_one_review_per_session(self, db, student, completed):
        reviews.submit_review(db, completed.id, student, 4)
        with pytest.raises(ConflictError):
            reviews.submit_review(db, completed.id, student, 5)

    def test_only_completed_sessions(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        with pytest.raises(ConflictError):
            reviews.submit_review(db, session.id, student, 5)

    def test_rating_bounds_and_reviewer(self, db, student, completed):
        with pytest.raises(ValidationFailedError):
            reviews.submit_review(db, completed.id, student, 6)
        with pytest.raises(PermissionDeniedError):
            reviews.submit_review(db, completed.id, make_user(db, "student"), 5)


class TestChats:
    @pytest.fixture
    def chat(self, db, student, tutor, open_day):
        session = _book(db, student, tutor)
        sessions.update_session_status(db, session.id, tutor, "confirmed")
        return crud.get_chat(db, session.id)

    def test_messages_and_read_marks(self, db, student, tutor, chat):
        chats.send_message(db, chat.id, student, "Hi!")
        chats.send_message(db, chat.id, tutor, "Hello")
        assert chat.last_message == "Hello"
        assert chats.mark_messages_as_read(db, chat.id, tutor) == 1
        assert [m.content for m in chats.get_chat_messages(db, chat.id, student)] == ["Hi!", "Hello"]

    def test_outsider_and_empty_message(self, db, student, chat):
        with pytest.raises(PermissionDeniedError):
            chats.send_message(db, chat.id, make_user(db, "student"), "hey")
        with pytest.raises(ValidationFailedError):
            chats.send_message(db, chat.id, student, "   ")

    def test_typing_indicator(self, db, student, tutor, chat):
        chats.update_typing_status(db, chat.id, student, True)
        assert chat.typing[student.id] is not None
        assert tutor.id not in chat.typing

        chats.send_message(db, chat.id, student, "Question about homework")
        assert chat.typing[student.id] is None

        with pytest.raises(PermissionDeniedError):
            chats.update_typing_status(db, chat.id, make_user(db, "student"), True)

    def test_typing_after_end(self, db, student, tutor, chat):
        chats.end_chat_session(db, chat.id, tutor)
        with pytest.raises(ConflictError):
            chats.update_typing_status(db, chat.id, student, True)
        chats.update_typing_status(db, chat.id, student, False)
        assert chat.typing == {student.id: None}

    def test_end_and_delete(self, db, student, tutor, chat):
        with pytest.raises(ConflictError):
            chats.delete_chat(db, chat.id, student)
        with pytest.raises(PermissionDeniedError):
            chats.end_chat_session(db, chat.id, student)

        chats.end_chat_session(db, chat.id, tutor)
        with pytest.raises(ConflictError):
            chats.send_message(db, chat.id, student, "still there?")

        chats.delete_chat(db, chat.id, student)
        assert chats.get_user_chats(db, student) == []
        assert [c.id for c in chats.get_user_chats(db, tutor)] == [chat.id]
