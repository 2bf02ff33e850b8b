"""Admin users — profiles, soft deletion, scheduling, restoration, history.

Tests cover:
    - Create/update profiles; duplicate email → 409
    - Immediate soft delete: deleted_at + deletion_count, email, history row
    - A deactivated user's token is refused (403)
    - Self-deletion → 400, deleting twice → 409
    - Scheduled deletion only sets the date; cancel clears it; a past date deletes now
    - Restore closes history rows; limit reached → 400; non-deleted → 400
    - Detail aggregates enrollments, payments and refunds
"""

from datetime import timedelta

from sqlalchemy import select

from courseportal.core.clock import utc_now
from courseportal.models.profile import Profile
from courseportal.models.user_deletion_history import UserDeletionHistory
from courseportal.services.persistence_helpers import get_or_404
from tests.services.fakes import future


async def _delete(client, admin_headers, user_id, **body):
    return await client.post(
        f"/api/v1/admin/users/{user_id}/delete", json=body, headers=admin_headers,
    )


async def _history(test_db, user_id) -> list[UserDeletionHistory]:
    result = await test_db.execute(
        select(UserDeletionHistory)
        .where(UserDeletionHistory.user_id == user_id)
        .execution_options(populate_existing=True),
    )
    return list(result.scalars().all())


# ─── Profiles ────────────────────────────────────────────────────

async def test_create_and_update_user(client, admin_headers):
    created = await client.post(
        "/api/v1/admin/users",
        json={"full_name": "Gita Shah", "email": "Gita@Example.com"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    user = created.json()
    assert user["email"] == "gita@example.com"
    assert user["role"] == "authenticated"
    assert user["deletion_count"] == 0

    dup = await client.post(
        "/api/v1/admin/users",
        json={"full_name": "Gita Again", "email": "gita@example.com"},
        headers=admin_headers,
    )
    assert dup.status_code == 409

    promoted = await client.patch(
        f"/api/v1/admin/users/{user['id']}", json={"role": "service_role"},
        headers=admin_headers,
    )
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "service_role"

    bad_role = await client.patch(
        f"/api/v1/admin/users/{user['id']}", json={"role": "root"},
        headers=admin_headers,
    )
    assert bad_role.status_code == 400


async def test_list_filters_by_role(client, admin_headers, student):
    everyone = await client.get("/api/v1/admin/users", headers=admin_headers)
    assert everyone.json()["total"] == 2

    admins = await client.get(
        "/api/v1/admin/users", params={"role": "service_role"}, headers=admin_headers,
    )
    assert [u["email"] for u in admins.json()["data"]] == ["admin@example.com"]


async def test_detail_aggregates_activity(client, admin_headers, student, intake):
    await client.post(
        "/api/v1/admin/enrollments",
        json={
            "user_id": str(student.id), "intake_id": str(intake.id),
            "status": "enrolled", "notify": False,
        },
        headers=admin_headers,
    )

    res = await client.get(f"/api/v1/admin/users/{student.id}", headers=admin_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["profile"]["email"] == "asha@example.com"
    assert len(body["enrollments"]) == 1
    assert body["enrollments"][0]["course_title"] == "Basic Plumbing"
    assert body["payments"][0]["status"] == "completed"
    assert body["refunds"] == []


# ─── Soft delete ─────────────────────────────────────────────────

async def test_soft_delete_now(
    client, test_db, admin, admin_headers, student, student_headers, email_outbox,
):
    res = await _delete(client, admin_headers, student.id, reason="Duplicate account")
    assert res.status_code == 200
    body = res.json()
    assert body["deleted_at"] is not None
    assert body["deletion_count"] == 1

    assert email_outbox.subjects() == ["Your account has been deactivated"]
    assert "Duplicate account" in email_outbox.sent[0]["html"]

    history = await _history(test_db, student.id)
    assert len(history) == 1
    assert history[0].deleted_by == admin.id
    assert history[0].deletion_reason == "Duplicate account"
    assert history[0].email_notification_sent is True

    me = await client.get("/api/v1/me", headers=student_headers)
    assert me.status_code == 403

    visible = await client.get("/api/v1/admin/users", headers=admin_headers)
    assert str(student.id) not in [u["id"] for u in visible.json()["data"]]
    deleted = await client.get("/api/v1/admin/users/deleted", headers=admin_headers)
    assert [u["id"] for u in deleted.json()["data"]] == [str(student.id)]
    everyone = await client.get(
        "/api/v1/admin/users", params={"include_deleted": "true"},
        headers=admin_headers,
    )
    assert everyone.json()["total"] == 2


async def test_delete_without_notification(
    client, test_db, admin_headers, student, email_outbox,
):
    res = await _delete(client, admin_headers, student.id, notify=False)
    assert res.status_code == 200
    assert email_outbox.sent == []
    history = await _history(test_db, student.id)
    assert history[0].email_notification_sent is False


async def test_cannot_delete_self(client, admin, admin_headers):
    res = await _delete(client, admin_headers, admin.id)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "CANNOT_DELETE_SELF"


async def test_cannot_delete_twice(client, admin_headers, student):
    await _delete(client, admin_headers, student.id)
    res = await _delete(client, admin_headers, student.id)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "USER_ALREADY_DELETED"


# ─── Scheduled deletion ──────────────────────────────────────────

async def test_schedule_and_cancel_deletion(
    client, test_db, admin_headers, student, email_outbox,
):
    when = future(7)
    res = await _delete(
        client, admin_headers, student.id,
        reason="Requested by user", scheduled_for=when.isoformat(),
    )
    assert res.status_code == 200
    assert res.json()["deleted_at"] is None
    assert res.json()["deletion_scheduled_for"] is not None
    assert res.json()["deletion_count"] == 0
    assert email_outbox.subjects() == ["Your account is scheduled for deactivation"]

    history = await _history(test_db, student.id)
    assert history[0].scheduled_deletion_date is not None

    cancelled = await client.post(
        f"/api/v1/admin/users/{student.id}/cancel-deletion", headers=admin_headers,
    )
    assert cancelled.status_code == 200
    assert cancelled.json()["deletion_scheduled_for"] is None

    again = await client.post(
        f"/api/v1/admin/users/{student.id}/cancel-deletion", headers=admin_headers,
    )
    assert again.status_code == 400
    assert again.json()["error"]["code"] == "NO_SCHEDULED_DELETION"


async def test_schedule_in_the_past_deletes_now(
    client, test_db, admin_headers, student, email_outbox,
):
    past = utc_now() - timedelta(days=1)
    res = await _delete(
        client, admin_headers, student.id, scheduled_for=past.isoformat(),
    )
    assert res.status_code == 200
    body = res.json()
    assert body["deleted_at"] is not None
    assert body["deletion_scheduled_for"] is None
    assert body["deletion_count"] == 1
    assert email_outbox.subjects() == ["Your account has been deactivated"]

    history = await _history(test_db, student.id)
    assert history[0].scheduled_deletion_date is None


# ─── Restore ─────────────────────────────────────────────────────

async def test_restore(client, test_db, admin, admin_headers, student, email_outbox):
    await _delete(client, admin_headers, student.id, notify=False)

    res = await client.post(
        f"/api/v1/admin/users/{student.id}/restore", headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["deleted_at"] is None
    assert res.json()["deletion_count"] == 1
    assert email_outbox.subjects() == ["Your account has been restored"]

    history = await _history(test_db, student.id)
    assert history[0].restored_at is not None
    assert history[0].restored_by == admin.id
    assert history[0].restoration_count == 1

    listed = await client.get(
        f"/api/v1/admin/users/{student.id}/deletion-history", headers=admin_headers,
    )
    assert listed.status_code == 200
    assert len(listed.json()) == 1


async def test_restore_active_user_is_refused(client, admin_headers, student):
    res = await client.post(
        f"/api/v1/admin/users/{student.id}/restore", headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "USER_NOT_DELETED"


async def test_restoration_limit(client, test_db, admin_headers, student):
    profile = await get_or_404(test_db, Profile, student.id, "User")
    profile.deleted_at = utc_now()
    profile.deletion_count = 3
    await test_db.commit()

    res = await client.post(
        f"/api/v1/admin/users/{student.id}/restore", headers=admin_headers,
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "RESTORATION_LIMIT_REACHED"
    assert error["details"] == {"deletion_count": 3, "max_restorations": 3}
