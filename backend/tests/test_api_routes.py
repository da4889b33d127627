from __future__ import annotations

from datetime import datetime, timedelta, timezone

from backend.app.models import Notification, Profile, Transaction
from backend.app.services import notification_service


CRON_SECRET = "test-cron-secret"


def _create_profile(db_session, email: str = "api@example.com") -> Profile:
    profile = Profile(email=email, name="Api")
    db_session.add(profile)
    db_session.commit()
    return profile


def _headers(profile: Profile) -> dict:
    return {"X-User-Id": profile.id}


def _seed_notifications(db_session, profile: Profile, count: int = 3):
    rows = [
        notification_service.write_notification(
            db_session,
            profile.id,
            "info",
            f"Note {i}",
            "hello",
            {"kind": "test"},
            created_at=datetime(2026, 6, 1, 12, i, tzinfo=timezone.utc),
        )
        for i in range(count)
    ]
    db_session.commit()
    return rows


def test_health(api_client):
    resp = api_client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_user_routes_require_identity(api_client, db_session):
    assert api_client.post("/api/analyze-patterns").status_code == 401
    assert api_client.get("/api/notifications", headers={"X-User-Id": "nobody"}).status_code == 401


def test_analyze_patterns_endpoint_handles_sparse_history(api_client, db_session):
    profile = _create_profile(db_session)

    resp = api_client.post("/api/analyze-patterns", headers=_headers(profile))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["insufficient_data"] is True
    assert body["patterns"] == []
    assert "detector_results" not in body


def test_analyze_patterns_debug_lists_detectors(api_client, db_session):
    profile = _create_profile(db_session)
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    for i in range(12):
        db_session.add(
            Transaction(
                user_id=profile.id,
                type="expense",
                amount=150 + i,
                category="Food",
                description=f"Cafe {i}",
                created_at=now - timedelta(days=i + 1),
            )
        )
    db_session.commit()

    resp = api_client.post("/api/analyze-patterns?debug=true", headers=_headers(profile))

    assert resp.status_code == 200
    body = resp.json()
    assert body["insufficient_data"] is False
    assert len(body["detector_results"]) == 4
    assert all(row["ran"] for row in body["detector_results"])


def test_run_notification_checks_endpoint_throttles(api_client, db_session):
    profile = _create_profile(db_session)
    db_session.add(
        Transaction(
            user_id=profile.id,
            type="expense",
            amount=9500,
            category="Food",
            description="Groceries",
            created_at=datetime.now(timezone.utc).replace(tzinfo=None),
        )
    )
    db_session.commit()

    first = api_client.post("/api/run-notification-checks", headers=_headers(profile))
    second = api_client.post("/api/run-notification-checks", headers=_headers(profile))
    forced = api_client.post("/api/run-notification-checks?force=true", headers=_headers(profile))

    assert first.status_code == 200
    assert first.json()["ran"] is True
    assert first.json()["notifications_created"] == 1
    assert second.json()["ran"] is False
    assert second.json()["last_run_at"] == first.json()["last_run_at"]
    assert forced.json()["ran"] is True


def test_run_notification_checks_endpoint_reports_failure(api_client, db_session, monkeypatch):
    profile = _create_profile(db_session)

    def _broken(db, user_id):
        raise RuntimeError("db unavailable")

    monkeypatch.setattr("backend.app.services.throttle_service.read_throttle_state", _broken)

    resp = api_client.post("/api/run-notification-checks", headers=_headers(profile))

    assert resp.status_code == 500
    assert resp.json()["detail"] == {"error": "Failed to run notification checks", "details": "db unavailable"}


def test_generate_weekly_summary_endpoint(api_client, db_session):
    profile = _create_profile(db_session)

    resp = api_client.post("/api/generate-weekly-summary", headers=_headers(profile))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["stats"]["transaction_count"] == 0
    assert db_session.get(Notification, body["notification_id"]) is not None


def test_notification_read_state_lifecycle(api_client, db_session):
    profile = _create_profile(db_session)
    rows = _seed_notifications(db_session, profile)

    listed = api_client.get("/api/notifications", headers=_headers(profile)).json()
    assert listed["unread_count"] == 3
    assert [item["title"] for item in listed["items"]] == ["Note 2", "Note 1", "Note 0"]

    read = api_client.post(f"/api/notifications/{rows[0].id}/read", headers=_headers(profile))
    assert read.status_code == 200
    assert read.json()["read"] is True

    unread_only = api_client.get("/api/notifications?unread_only=true", headers=_headers(profile)).json()
    assert unread_only["unread_count"] == 2
    assert {item["title"] for item in unread_only["items"]} == {"Note 1", "Note 2"}

    back = api_client.post(f"/api/notifications/{rows[0].id}/unread", headers=_headers(profile))
    assert back.json()["read"] is False

    all_read = api_client.post("/api/notifications/read-all", headers=_headers(profile))
    assert all_read.json() == {"updated": 3}
    assert api_client.get("/api/notifications", headers=_headers(profile)).json()["unread_count"] == 0


def test_notification_of_other_user_is_not_found(api_client, db_session):
    owner = _create_profile(db_session, "owner@example.com")
    other = _create_profile(db_session, "other@example.com")
    rows = _seed_notifications(db_session, owner, count=1)

    resp = api_client.post(f"/api/notifications/{rows[0].id}/read", headers=_headers(other))

    assert resp.status_code == 404


def test_cron_routes_require_secret(api_client, db_session):
    assert api_client.get("/api/cron/daily-notifications").status_code == 401
    assert (
        api_client.get(
            "/api/cron/weekly-summary",
            headers={"Authorization": "Bearer wrong"},
        ).status_code
        == 401
    )


def test_cron_routes_run_batches(api_client, db_session):
    _create_profile(db_session, "a@example.com")
    _create_profile(db_session, "b@example.com")
    auth = {"Authorization": f"Bearer {CRON_SECRET}"}

    daily = api_client.get("/api/cron/daily-notifications", headers=auth)
    weekly = api_client.get("/api/cron/weekly-summary", headers=auth)

    assert daily.status_code == 200
    assert daily.json() == {
        "success": True,
        "stats": {"total_users": 2, "successful": 2, "failed": 0, "skipped": 0},
    }
    assert weekly.status_code == 200
    assert weekly.json()["stats"]["successful"] == 2


def test_weekly_summary_stats_endpoint_writes_nothing(api_client, db_session):
    profile = _create_profile(db_session)
    db_session.add(
        Transaction(
            user_id=profile.id,
            type="expense",
            amount=250,
            category="Transport",
            description="Taxi",
            created_at=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=1),
        )
    )
    db_session.commit()

    resp = api_client.post("/api/weekly-summary", headers=_headers(profile))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["stats"]["expenses"] == 250.0
    assert body["stats"]["top_category"] == "Transport"
    assert api_client.get("/api/notifications", headers=_headers(profile)).json()["items"] == []
