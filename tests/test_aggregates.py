"""
Unit tests for the admin dashboard, admin user stats and tutor income.
"""

from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from edubro.core.errors import ConflictError
from edubro.services import analytics, income, sessions, users
from edubro.store import crud

from tests.conftest import make_user

NOW = datetime(2024, 6, 20, 12, 0)  # Thursday


def _session(day, status="completed", amount=50.0, subject="mathematics",
             student_id="s1", completed_at=None):
    return SimpleNamespace(
        date=day,
        status=status,
        total_amount=amount,
        subject=subject,
        student_id=student_id,
        completed_at=completed_at,
    )


class TestWeeklyCounts:
    def test_oldest_week_first(self):
        today = date(2024, 6, 21)
        values = [date(2024, 6, 20), date(2024, 6, 14), date(2024, 6, 13), date(2024, 5, 1)]
        assert analytics.weekly_counts(values, today, 3) == [0, 1, 2]

    def test_future_values_are_ignored(self):
        assert analytics.weekly_counts([date(2024, 7, 1)], date(2024, 6, 21), 7) == [0] * 7


class TestDashboardParts:
    def test_session_counts(self):
        sessions = [
            _session("2024-06-20", "confirmed"),
            _session("2024-06-20", "pending"),
            _session("2024-06-18", "completed"),
            _session("2024-06-22", "cancelled"),
        ]
        counts = analytics.session_counts(sessions, NOW.date())
        assert counts["total"] == 4
        assert counts["upcoming"] == 2
        assert counts["completed"] == 1
        assert counts["cancelled"] == 1
        assert counts["today"] == 2
        assert counts["trends"][-1] == 3
        assert len(counts["trends"]) == 7

    def test_popular_subjects_skip_cancelled(self):
        sessions = (
            [_session("2024-06-01", subject="physics")] * 3
            + [_session("2024-06-01", subject="mathematics")] * 2
            + [_session("2024-06-01", "cancelled", subject="history")] * 5
        )
        assert analytics.popular_subjects(sessions, 5) == [
            {"subject": "physics", "count": 3},
            {"subject": "mathematics", "count": 2},
        ]

    def test_financials_use_completed_at(self):
        sessions = [
            _session("2024-06-01", amount=100, completed_at=datetime(2024, 6, 2)),
            _session("2024-05-01", amount=60, completed_at=datetime(2024, 5, 3)),
            _session("2023-10-01", amount=40, completed_at=datetime(2023, 10, 1)),
            _session("2024-06-03", "confirmed", amount=999),
        ]
        money = analytics.financials(sessions, NOW)
        assert money["total_revenue"] == 200
        assert money["this_month_revenue"] == 100
        assert money["average_session_price"] == pytest.approx(200 / 3)
        assert money["monthly_revenue"] == [0, 0, 0, 0, 60, 100]
        assert money["month_labels"] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]

    def test_issue_counts(self):
        issues = [SimpleNamespace(status=s) for s in ("pending", "in_progress", "resolved", "rejected")]
        counts = analytics.issue_counts(issues)
        assert counts == {"total": 4, "pending": 2, "resolved": 1, "pending_ratio": 0.5}
        assert analytics.issue_counts([])["pending_ratio"] == 0.0

    def test_dashboard_on_empty_db(self, db):
        board = analytics.dashboard(db, NOW)
        assert board["users"]["total"] == 0
        assert board["sessions"]["trends"] == [0] * 7
        assert board["financials"]["monthly_revenue"] == [0.0] * 6


class TestTutorIncome:
    def test_summary(self):
        today = date(2024, 6, 20)
        completed = [
            _session("2024-06-10", amount=100, subject="physics", student_id="a"),
            _session("2024-06-01", amount=50, subject="mathematics", student_id="b"),
            _session("2024-05-15", amount=75, subject="physics", student_id="a"),
            _session("2023-12-01", amount=20, subject="mathematics", student_id="c"),
        ]
        confirmed = [_session("2024-06-25", "confirmed", amount=30)]

        summary = income.summarize_income(completed, confirmed, today)

        assert summary["total_income"] == 245
        assert summary["upcoming_income"] == 30
        assert summary["unique_student_count"] == 3
        assert summary["current_month_income"] == 150
        assert summary["previous_month_income"] == 75
        assert summary["monthly_growth"] == pytest.approx(100.0)
        assert summary["recent_income"] == 150
        assert [(m["year"], m["month"]) for m in summary["monthly_income"]] == [
            (2024, "June"), (2024, "May"), (2023, "December"),
        ]
        assert summary["subject_income"][0] == {
            "subject": "physics", "amount": 175, "session_count": 2,
        }

    def test_growth_is_100_without_previous_month(self):
        summary = income.summarize_income([_session("2024-01-05", amount=10)], [], date(2024, 1, 20))
        assert summary["previous_month_income"] == 0
        assert summary["monthly_growth"] == 100.0


class TestUserStats:
    def test_counts_and_windows(self, db):
        make_user(db, "student", created_at=NOW - timedelta(days=2), last_login_at=NOW)
        make_user(db, "student", created_at=NOW - timedelta(days=10),
                  last_login_at=NOW - timedelta(days=40))
        make_user(db, "tutor", created_at=NOW - timedelta(days=30))
        crud.upsert_application(db, "someone", status="pending")

        stats = users.user_stats(db, NOW)

        assert stats["total_users"] == 3
        assert stats["students"] == 2
        assert stats["tutors"] == 1
        assert stats["pending_applications"] == 1
        assert stats["active_users"] == 1
        assert stats["new_users_this_week"] == 1
        assert stats["new_users_last_week"] == 1

    def test_signups_by_weekday_starts_monday(self):
        people = [
            SimpleNamespace(created_at=datetime(2024, 6, 17)),  # Monday
            SimpleNamespace(created_at=datetime(2024, 6, 23)),  # Sunday
            SimpleNamespace(created_at=datetime(2024, 6, 23)),
        ]
        assert users.signups_by_weekday(people) == [1, 0, 0, 0, 0, 0, 2]

    def test_toggle_active(self, db, student):
        admin = make_user(db, "admin")
        assert users.toggle_user_active(db, student.id, admin).is_active is False
        assert users.toggle_user_active(db, student.id, admin).is_active is True
        with pytest.raises(ConflictError):
            users.toggle_user_active(db, admin.id, admin)


class TestDefaultClock:
    """Dashboard, user stats and the session tabs share the local wall clock."""

    def test_today_agrees_everywhere(self, db, student, tutor):
        today = date.today().isoformat()
        crud.create_session(
            db,
            tutor_id=tutor.id,
            student_id=student.id,
            subject="mathematics",
            date=today,
            start_time="23:00",
            end_time="24:00",
            status="confirmed",
        )

        board = analytics.dashboard(db)
        upcoming, _ = sessions.get_sessions_by_tab(db, student)

        assert board["sessions"]["today"] == 1
        assert [s.date for s in upcoming] == [today]

    def test_fresh_records_fall_inside_the_current_week(self, db, student):
        assert student.created_at <= datetime.now()
        stats = users.user_stats(db)
        assert stats["new_users_this_week"] == 1
        assert analytics.dashboard(db)["users"]["new_this_week"] == 1
