"""
Tests for the notification inbox in jobpulse/notifications.py
"""

import pytest

from jobpulse.notifications import notification_target


def ok(**data):
    return {"success": True, "data": data}


def notification(notification_id="n1", **fields):
    data = {"_id": notification_id, "title": "Application received", "message": "Ann applied", "isRead": False}
    data.update(fields)
    return data


class TestInbox:

    def test_lists_notifications(self, client, backend, login_as):
        login_as("user")
        backend.on("GET", "/notifications", 200, ok(
            notifications=[notification(title="Interview scheduled")],
            pagination={"page": 1, "pages": 1},
        ))

        response = client.get("/notifications")

        assert response.status_code == 200
        assert b"Interview scheduled" in response.data
        assert backend.called("GET", "/notifications")[0][2]["params"] == {"page": 1, "limit": 20}

    def test_unread_filter(self, client, backend, login_as):
        login_as("user")
        backend.on("GET", "/notifications", 200, ok(notifications=[]))

        response = client.get("/notifications?filter=unread")

        assert b"No unread notifications" in response.data
        assert backend.called("GET", "/notifications")[0][2]["params"]["unreadOnly"] == "true"

    def test_falls_back_to_legacy_inbox(self, client, backend, login_as):
        login_as("user")
        backend.on("GET", "/notifications", 500, {"success": False})
        backend.on("GET", "/users/notifications", 200, ok(notifications=[
            notification("n1", title="Old unread"),
            notification("n2", title="Old read", isRead=True),
        ]))

        response = client.get("/notifications?filter=unread")

        assert b"Old unread" in response.data
        assert b"Old read" not in response.data

    def test_both_endpoints_down(self, client, backend, login_as):
        login_as("user")
        backend.on("GET", "/notifications", 500, {"success": False})
        backend.on("GET", "/users/notifications", 500, {"success": False})

        response = client.get("/notifications")

        assert response.status_code == 200
        assert b"Failed to load notifications" in response.data

    def test_default_preferences_when_unavailable(self, client, backend, login_as):
        login_as("user")
        backend.on("GET", "/notifications", 200, ok(notifications=[]))

        response = client.get("/notifications")

        assert response.data.count(b"checked") == 2

    def test_employer_inbox(self, client, backend, login_as):
        login_as("employer")
        backend.on("GET", "/notifications", 200, ok(notifications=[notification(title="New applicant")]))

        response = client.get("/employer/notifications")

        assert b"New applicant" in response.data
        assert b'value="/employer/notifications"' in response.data

    def test_unverified_sees_gate(self, client, backend, login_as):
        login_as("user", isVerified=False)

        response = client.get("/notifications")

        assert b"Please verify your email" in response.data
        assert backend.called("GET", "/notifications") == []

    def test_admin_refused(self, client, backend, login_as):
        login_as("admin")

        response = client.get("/notifications")

        assert response.status_code == 302
        assert backend.called("GET", "/notifications") == []


class TestActions:

    def test_mark_read(self, client, backend, login_as):
        login_as("user")
        backend.on("PUT", "/notifications/n1/read", 200, {"success": True})

        response = client.post("/notifications/n1/read")

        assert response.headers["Location"].endswith("/notifications")
        assert backend.called("PUT", "/notifications/n1/read")

    def test_employer_actions_return_to_employer_inbox(self, client, backend, login_as):
        login_as("employer")
        backend.on("DELETE", "/notifications/n1", 200, {"success": True})

        response = client.post("/notifications/n1/delete")

        assert response.headers["Location"].endswith("/employer/notifications")

    def test_mark_all_and_clear(self, client, backend, login_as):
        login_as("user")
        backend.on("PUT", "/notifications/read-all", 200, {"success": True})
        backend.on("DELETE", "/notifications/all", 200, {"success": True})

        client.post("/notifications/read-all")
        client.post("/notifications/clear")

        assert backend.called("PUT", "/notifications/read-all")
        assert backend.called("DELETE", "/notifications/all")

    def test_failed_action_is_flashed(self, client, backend, login_as):
        login_as("user")
        backend.on("GET", "/notifications", 200, ok(notifications=[]))
        backend.on("DELETE", "/notifications/n1", 404, {"success": False, "error": "Notification not found"})

        response = client.post("/notifications/n1/delete", follow_redirects=True)

        assert b"Failed to delete notification" in response.data

    def test_save_preferences(self, client, backend, login_as):
        login_as("user")
        backend.on("PUT", "/notifications/preferences", 200, {"success": True})

        client.post("/notifications/preferences", data={"email": "on"})

        assert backend.called("PUT", "/notifications/preferences")[0][2]["json"] == {
            "preferences": {"email": True, "push": False},
        }

    def test_open_follows_link(self, client, backend, login_as):
        login_as("user")
        backend.on("PUT", "/notifications/n1/read", 200, {"success": True})

        response = client.post("/notifications/n1/open", data={"link": "/jobs/j7"})

        assert response.headers["Location"].endswith("/jobs/j7")
        assert backend.called("PUT", "/notifications/n1/read")


class TestNotificationTarget:

    @pytest.mark.parametrize("item,expected", [
        ({"link": "/user/applications"}, "/user/applications"),
        ({"actionUrl": "/jobs/j3"}, "/jobs/j3"),
        ({"type": "job_alert", "metadata": {"jobId": "j5"}}, "/jobs/j5"),
        ({"type": "application_received"}, "/employer/applications"),
        ({"type": "application_status_changed"}, "/user/dashboard"),
        ({"link": "https://evil.example.com"}, "/notifications"),
        ({"link": "//evil.example.com"}, "/notifications"),
        ({"type": "system_announcement"}, "/notifications"),
    ])
    def test_targets(self, app, item, expected):
        with app.test_request_context("/notifications/n1/open", method="POST"):
            assert notification_target(item) == expected
