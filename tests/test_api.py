"""
End-to-end API tests: registration, role gating and the booking lifecycle
driven through the HTTP routers.
"""

from dataclasses import replace

import pytest

from edubro.core.config import MediaConfig, app_config
from edubro.services import auth
from tests.conftest import TEST_PASSWORD, auth_headers

DAY = "2030-01-15"

TUTOR_FORM = {
    "email": "noa@example.com",
    "password": TEST_PASSWORD,
    "full_name": "Noa Tutor",
    "role": "tutor",
    "phone_number": "050-123-4567",
    "subjects": ["mathematics", "physics"],
    "hourly_rate": 45,
    "gpa": 3.9,
}


def _register(client, **payload):
    return client.post("/auth/register", json=payload)


@pytest.fixture
def student_headers(client):
    response = _register(
        client, email="dana@example.com", password=TEST_PASSWORD, full_name="Dana Student"
    )
    assert response.status_code == 201, response.text
    return auth_headers(client, "dana@example.com")


@pytest.fixture
def tutor_headers(client):
    response = _register(client, **TUTOR_FORM)
    assert response.status_code == 201, response.text
    return auth_headers(client, TUTOR_FORM["email"])


def _tutor_id(client, headers):
    return client.get("/auth/me", headers=headers).json()["id"]


class TestHealthAndAuth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_register_and_me(self, client, student_headers):
        me = client.get("/auth/me", headers=student_headers)
        assert me.status_code == 200
        assert me.json()["role"] == "student"
        assert me.json()["email"] == "dana@example.com"

    def test_tutor_registration_creates_pending_application(
        self, client, tutor_headers, admin_headers
    ):
        me = client.get("/auth/me", headers=tutor_headers).json()
        assert me["role"] == "tutor"
        assert me["is_verified"] is False
        assert me["rating"] == 0.0

        apps = client.get("/admin/applications?status=pending", headers=admin_headers).json()
        assert [a["id"] for a in apps] == [me["id"]]

    def test_incomplete_tutor_registration(self, client):
        response = _register(client, **{**TUTOR_FORM, "gpa": 3.1, "subjects": []})
        assert response.status_code == 422
        assert set(response.json()["errors"]) == {"gpa", "subjects"}

    def test_duplicate_email(self, client, student_headers):
        response = _register(
            client, email="DANA@example.com", password=TEST_PASSWORD, full_name="Again"
        )
        assert response.status_code == 409

    def test_admin_cannot_self_register(self, client):
        response = _register(
            client, email="x@example.com", password=TEST_PASSWORD, full_name="X", role="admin"
        )
        assert response.status_code == 422

    def test_bad_credentials_and_missing_token(self, client, student_headers):
        bad = client.post("/auth/login", json={"email": "dana@example.com", "password": "nope!!"})
        assert bad.status_code == 401
        assert client.get("/auth/me").status_code == 401
        assert client.get("/auth/me", headers={"Authorization": "Bearer nope"}).status_code == 401

    def test_logout_revokes_token(self, client, student_headers):
        assert client.post("/auth/logout", headers=student_headers).status_code == 200
        assert client.get("/auth/me", headers=student_headers).status_code == 401

    def test_profile_update_and_reset(self, client, student_headers):
        response = client.patch(
            "/auth/me",
            json={"bio": "Loves physics", "photo_url": "ftp://nope"},
            headers=student_headers,
        )
        assert response.json()["bio"] == "Loves physics"
        assert client.get("/auth/me/photo", headers=student_headers).json() == {"photo_url": None}

        client.post(
            "/auth/reset-password",
            json={"email": "dana@example.com", "new_password": "brand-new"},
        )
        assert auth_headers(client, "dana@example.com", "brand-new")
        assert client.get("/auth/exists?email=dana@example.com").json() == {"exists": True}

    def test_profile_picture_upload(self, client, student_headers, monkeypatch, tmp_path):
        media = MediaConfig(media_dir=str(tmp_path), base_url="http://testserver/media")
        monkeypatch.setattr(auth, "app_config", replace(app_config, media=media))

        uploaded = client.post(
            "/auth/me/photo",
            files={"file": ("me.png", b"\x89PNG\r\n\x1a\nimage", "image/png")},
            headers=student_headers,
        )
        assert uploaded.status_code == 200, uploaded.text
        photo_url = uploaded.json()["photo_url"]
        assert photo_url.startswith("http://testserver/media/profile_pictures/profile_")
        assert client.get("/auth/me/photo", headers=student_headers).json() == {
            "photo_url": photo_url
        }

        rejected = client.post(
            "/auth/me/photo",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=student_headers,
        )
        assert rejected.status_code == 422

    def test_disabled_account_cannot_login(self, client, student_headers, admin_headers):
        user_id = client.get("/auth/me", headers=student_headers).json()["id"]
        client.post(f"/admin/users/{user_id}/toggle-active", headers=admin_headers)
        response = client.post(
            "/auth/login", json={"email": "dana@example.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 401


class TestRoleGating:
    def test_student_cannot_use_admin_routes(self, client, student_headers):
        assert client.get("/admin/users", headers=student_headers).status_code == 403
        assert client.get("/admin/analytics", headers=student_headers).status_code == 403

    def test_student_cannot_publish_availability(self, client, student_headers):
        response = client.post(
            "/tutors/me/availability",
            json={"date": DAY, "start_time": "10:00"},
            headers=student_headers,
        )
        assert response.status_code == 403

    def test_tutor_cannot_book(self, client, tutor_headers):
        response = client.post(
            "/sessions",
            json={"tutor_id": "x", "date": DAY, "start_time": "10:00",
                  "end_time": "11:00", "subject": "mathematics"},
            headers=tutor_headers,
        )
        assert response.status_code == 403

    def test_tutor_edits_only_own_profile(self, client, tutor_headers, admin_headers):
        admin_id = client.get("/auth/me", headers=admin_headers).json()["id"]
        response = client.put(
            f"/tutors/{admin_id}/hourly-rate", json={"hourly_rate": 10}, headers=tutor_headers
        )
        assert response.status_code == 403


class TestApplicationsApi:
    def test_student_applies_and_admin_approves(self, client, student_headers, admin_headers):
        response = client.post(
            "/applications",
            json={"phone_number": "0501234567", "subjects": ["english"], "hourly_rate": 30},
            headers=student_headers,
        )
        assert response.status_code == 201
        user_id = response.json()["id"]

        approved = client.post(f"/admin/applications/{user_id}/approve", headers=admin_headers)
        assert approved.json()["status"] == "approved"

        me = client.get("/auth/me", headers=student_headers).json()
        assert me["role"] == "tutor"
        assert me["is_verified"] is True
        assert me["subjects"] == ["english"]

        again = client.post(f"/admin/applications/{user_id}/reject", headers=admin_headers)
        assert again.status_code == 409


class TestBookingLifecycle:
    def test_full_lifecycle(self, client, student_headers, tutor_headers, admin_headers):
        tutor_id = _tutor_id(client, tutor_headers)

        added = client.post(
            "/tutors/me/availability",
            json={"date": DAY, "start_time": "10:00", "end_time": "12:00"},
            headers=tutor_headers,
        )
        assert added.status_code == 201
        assert len(added.json()["slots"]) == 2

        found = client.get(
            f"/tutors?subject=physics&available_on={DAY}", headers=student_headers
        ).json()
        assert [t["id"] for t in found] == [tutor_id]

        booked = client.post(
            "/sessions",
            json={"tutor_id": tutor_id, "date": DAY, "start_time": "10:00",
                  "end_time": "12:00", "subject": "physics"},
            headers=student_headers,
        )
        assert booked.status_code == 201, booked.text
        session = booked.json()
        assert session["total_amount"] == 90.0
        assert session["status"] == "confirmed"

        again = client.post(
            "/sessions",
            json={"tutor_id": tutor_id, "date": DAY, "start_time": "11:00",
                  "end_time": "12:00", "subject": "physics"},
            headers=student_headers,
        )
        assert again.status_code == 409

        slots = client.get(
            f"/tutors/{tutor_id}/availability?start_date={DAY}&end_date={DAY}",
            headers=student_headers,
        ).json()[0]["slots"]
        assert all(s["is_booked"] for s in slots)

        paid = client.post(f"/sessions/{session['id']}/pay", headers=student_headers)
        assert paid.json()["payment_status"] == "paid"

        accepted = client.put(
            f"/sessions/{session['id']}/status", json={"status": "confirmed"}, headers=tutor_headers
        )
        assert accepted.status_code == 200
        sent = client.post(
            f"/chats/{session['id']}/messages", json={"content": "See you!"}, headers=tutor_headers
        )
        assert sent.status_code == 201
        assert [c["last_message"] for c in client.get("/chats", headers=student_headers).json()] == [
            "See you!"
        ]

        tabs = client.get("/sessions/tabs", headers=student_headers).json()
        assert [s["id"] for s in tabs["upcoming"]] == [session["id"]]

        completed = client.post(f"/sessions/{session['id']}/complete", headers=student_headers)
        assert completed.json()["status"] == "completed"

        review = client.post(
            f"/sessions/{session['id']}/review",
            json={"rating": 5, "comment": "Great"},
            headers=student_headers,
        )
        assert review.status_code == 201
        reviewed = client.get("/reviews/mine/sessions", headers=student_headers).json()
        assert reviewed == [session["id"]]
        profile = client.get(f"/tutors/{tutor_id}", headers=student_headers).json()
        assert profile["rating"] == 5.0
        assert profile["total_reviews"] == 1

        income = client.get("/income/me", headers=tutor_headers).json()
        assert income["total_income"] == 90.0
        assert income["unique_student_count"] == 1

        board = client.get("/admin/analytics", headers=admin_headers).json()
        assert board["sessions"]["completed"] == 1
        assert board["financials"]["total_revenue"] == 90.0
        assert board["subjects"] == [{"subject": "physics", "count": 1}]

        kinds = [n["type"] for n in client.get("/notifications", headers=tutor_headers).json()]
        assert kinds == ["session_completed", "session_booked"]

    def test_cancel_frees_the_slot(self, client, student_headers, tutor_headers):
        tutor_id = _tutor_id(client, tutor_headers)
        client.post(
            "/tutors/me/availability",
            json={"date": DAY, "start_time": "10:00"},
            headers=tutor_headers,
        )
        session = client.post(
            "/sessions",
            json={"tutor_id": tutor_id, "date": DAY, "start_time": "10:00",
                  "end_time": "11:00", "subject": "mathematics"},
            headers=student_headers,
        ).json()

        cancelled = client.post(f"/sessions/{session['id']}/cancel", headers=student_headers)
        assert cancelled.json()["status"] == "cancelled"

        removed = client.delete(f"/tutors/me/availability/{DAY}/10:00", headers=tutor_headers)
        assert removed.status_code == 200

    def test_paid_cancellation_is_refunded(self, client, student_headers, tutor_headers):
        tutor_id = _tutor_id(client, tutor_headers)
        client.post(
            "/tutors/me/availability",
            json={"date": DAY, "start_time": "10:00"},
            headers=tutor_headers,
        )
        session = client.post(
            "/sessions",
            json={"tutor_id": tutor_id, "date": DAY, "start_time": "10:00",
                  "end_time": "11:00", "subject": "mathematics"},
            headers=student_headers,
        ).json()
        client.post(f"/sessions/{session['id']}/pay", headers=student_headers)

        cancelled = client.post(f"/sessions/{session['id']}/cancel", headers=student_headers)
        assert cancelled.json()["status"] == "cancelled"
        assert cancelled.json()["payment_status"] == "refunded"

    def test_typing_indicator(self, client, student_headers, tutor_headers):
        tutor_id = _tutor_id(client, tutor_headers)
        client.post(
            "/tutors/me/availability",
            json={"date": DAY, "start_time": "10:00"},
            headers=tutor_headers,
        )
        session = client.post(
            "/sessions",
            json={"tutor_id": tutor_id, "date": DAY, "start_time": "10:00",
                  "end_time": "11:00", "subject": "mathematics"},
            headers=student_headers,
        ).json()
        client.put(
            f"/sessions/{session['id']}/status", json={"status": "confirmed"}, headers=tutor_headers
        )

        typing = client.post(
            f"/chats/{session['id']}/typing", json={"is_typing": True}, headers=tutor_headers
        )
        assert typing.status_code == 200
        assert typing.json()["typing"][tutor_id] is not None

        stopped = client.post(
            f"/chats/{session['id']}/typing", json={"is_typing": False}, headers=tutor_headers
        )
        assert stopped.json()["typing"] == {tutor_id: None}


class TestIssuesAndAdminApi:
    def test_issue_flow(self, client, student_headers, admin_headers):
        created = client.post(
            "/issues", json={"title": "Crash", "description": "On login"}, headers=student_headers
        )
        assert created.status_code == 201
        issue_id = created.json()["id"]

        blank = client.post(
            "/issues", json={"title": " ", "description": "x"}, headers=student_headers
        )
        assert blank.status_code == 422

        assert client.get("/issues", headers=student_headers).status_code == 403
        listing = client.get("/issues?query=crash", headers=admin_headers).json()
        assert listing["stats"]["pending"] == 1
        assert [i["id"] for i in listing["issues"]] == [issue_id]

        client.put(f"/issues/{issue_id}/status", json={"status": "in_progress"}, headers=admin_headers)
        client.post(f"/issues/{issue_id}/notes", json={"text": "On it"}, headers=admin_headers)

        detail = client.get(f"/issues/{issue_id}", headers=student_headers).json()
        assert detail["issue"]["status"] == "in_progress"
        assert detail["issue"]["has_admin_notes"] is True
        assert [n["text"] for n in detail["notes"]] == ["On it"]

    def test_user_admin(self, client, student_headers, tutor_headers, admin_headers):
        users = client.get("/admin/users?role=tutor", headers=admin_headers).json()
        assert [u["email"] for u in users] == [TUTOR_FORM["email"]]

        found = client.get("/admin/users?query=dana", headers=admin_headers).json()
        assert [u["full_name"] for u in found] == ["Dana Student"]

        stats = client.get("/admin/users/stats", headers=admin_headers).json()
        assert stats["stats"]["total_users"] == 3
        assert stats["stats"]["pending_applications"] == 1
        assert sum(stats["signups_by_weekday"]) == 3
        assert stats["weekday_labels"][0] == "Mon"

    def test_subjects_are_seeded(self, client):
        subjects = client.get("/subjects").json()
        assert len(subjects) == 10
        assert "computer-science" in {s["id"] for s in subjects}
