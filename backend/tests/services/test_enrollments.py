"""Enrollments — seat accounting, duplicates, transitions, payment sync, emails.

Tests cover:
    - Student self-enrollment reserves a seat and emails student + admins
    - Duplicate enrollment → 409 ALREADY_ENROLLED, seat count unchanged
    - A duplicate that slips past the pre-check hits the unique constraint: 409 and
      the reserved seat is rolled back
    - Full and closed intakes → 409, unknown intake → 404
    - Admin create adds a pending payment for the course price
    - Status transitions sync the payment and send confirm/cancel emails
    - Cancelling releases the seat; re-opening reserves it again
    - Invalid transitions and deleting completed enrollments → 400
    - Moving to another intake moves the seat
    - Bulk status change reports per-row failures
    - Email provider failure never fails the request (logged as failed)
"""

from uuid import UUID, uuid4

from sqlalchemy import select

from courseportal.models.email_log import EmailLog
from courseportal.models.enrollment import Enrollment
from courseportal.models.intake import Intake
from courseportal.models.payment import Payment
from courseportal.services.handle_enrollments import EnrollmentHandlers
from courseportal.services.persistence_helpers import get_or_404
from tests.services.fakes import auth_headers, future, make_student


async def _seats(test_db, intake_id) -> int:
    intake = await get_or_404(test_db, Intake, intake_id, "Intake")
    return intake.total_registered


async def _admin_enroll(client, admin_headers, user_id, intake_id, **extra):
    body = {"user_id": str(user_id), "intake_id": str(intake_id), **extra}
    return await client.post(
        "/api/v1/admin/enrollments", json=body, headers=admin_headers,
    )


async def _set_status(client, admin_headers, enrollment_id, status, **extra):
    return await client.patch(
        f"/api/v1/admin/enrollments/{enrollment_id}/status",
        json={"status": status, **extra}, headers=admin_headers,
    )


# ─── Self-enrollment ─────────────────────────────────────────────

async def test_student_enrollment_reserves_seat(
    client, test_db, admin, student, student_headers, intake, email_outbox,
):
    res = await client.post(
        "/api/v1/me/enrollments",
        json={"intake_id": str(intake.id), "notes": "Weekend batch please"},
        headers=student_headers,
    )
    assert res.status_code == 201
    data = res.json()
    assert data["status"] == "requested"
    assert data["user_id"] == str(student.id)
    assert await _seats(test_db, intake.id) == 1

    assert "Enrollment Request Received" in email_outbox.subjects()
    assert "New Enrollment Request" in email_outbox.subjects()
    assert "admin@example.com" in email_outbox.recipients()


async def test_duplicate_enrollment_is_conflict(
    client, test_db, student_headers, intake,
):
    body = {"intake_id": str(intake.id)}
    first = await client.post("/api/v1/me/enrollments", json=body, headers=student_headers)
    assert first.status_code == 201

    second = await client.post("/api/v1/me/enrollments", json=body, headers=student_headers)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_ENROLLED"
    assert await _seats(test_db, intake.id) == 1


async def test_duplicate_caught_by_unique_constraint(
    client, test_db, student_headers, intake, monkeypatch,
):
    body = {"intake_id": str(intake.id)}
    first = await client.post("/api/v1/me/enrollments", json=body, headers=student_headers)
    assert first.status_code == 201

    # A concurrent request that passed the pre-check before the first insert landed
    async def no_precheck(self, user_id, intake_id):
        return None

    monkeypatch.setattr(EnrollmentHandlers, "_ensure_not_enrolled", no_precheck)

    second = await client.post("/api/v1/me/enrollments", json=body, headers=student_headers)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_ENROLLED"
    assert await _seats(test_db, intake.id) == 1
    rows = (await test_db.execute(select(Enrollment))).scalars().all()
    assert len(rows) == 1


async def test_full_intake_is_conflict(client, test_db, intake):
    for i in range(2):
        other = await make_student(test_db, f"s{i}@example.com")
        res = await client.post(
            "/api/v1/me/enrollments", json={"intake_id": str(intake.id)},
            headers=auth_headers(other),
        )
        assert res.status_code == 201

    late = await make_student(test_db, "late@example.com")
    res = await client.post(
        "/api/v1/me/enrollments", json={"intake_id": str(intake.id)},
        headers=auth_headers(late),
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INTAKE_FULL"
    assert await _seats(test_db, intake.id) == 2

    rows = await test_db.execute(
        select(Enrollment).where(Enrollment.user_id == late.id),
    )
    assert rows.scalars().all() == []


async def test_closed_intake_is_conflict(client, test_db, student_headers, intake):
    intake.is_open = False
    await test_db.commit()

    res = await client.post(
        "/api/v1/me/enrollments", json={"intake_id": str(intake.id)},
        headers=student_headers,
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INTAKE_CLOSED"
    assert await _seats(test_db, intake.id) == 0


async def test_unknown_intake_is_404(client, student_headers):
    res = await client.post(
        "/api/v1/me/enrollments", json={"intake_id": str(uuid4())},
        headers=student_headers,
    )
    assert res.status_code == 404


async def test_my_enrollments_lists_course(client, student_headers, intake, course):
    await client.post(
        "/api/v1/me/enrollments", json={"intake_id": str(intake.id)},
        headers=student_headers,
    )
    res = await client.get("/api/v1/me/enrollments", headers=student_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    assert body["data"][0]["course_title"] == course.title
    assert body["data"][0]["course_slug"] == course.slug


async def test_enrollment_requires_token(client, intake):
    res = await client.post(
        "/api/v1/me/enrollments", json={"intake_id": str(intake.id)},
    )
    assert res.status_code == 401


# ─── Admin create + payment ──────────────────────────────────────

async def test_admin_create_adds_pending_payment(
    client, test_db, admin_headers, student, intake,
):
    res = await _admin_enroll(client, admin_headers, student.id, intake.id)
    assert res.status_code == 201
    enrollment_id = res.json()["id"]

    payments = (await test_db.execute(
        select(Payment).where(Payment.enrollment_id == UUID(enrollment_id)),
    )).scalars().all()
    assert len(payments) == 1
    assert payments[0].status == "pending"
    assert float(payments[0].amount) == 1500.0
    assert await _seats(test_db, intake.id) == 1


async def test_admin_create_for_free_course_has_no_payment(
    client, test_db, admin_headers, student, intake, course,
):
    course.price = 0
    await test_db.commit()

    res = await _admin_enroll(client, admin_headers, student.id, intake.id)
    assert res.status_code == 201
    payments = (await test_db.execute(
        select(Payment).where(Payment.enrollment_id == UUID(res.json()["id"])),
    )).scalars().all()
    assert payments == []


async def test_admin_create_unknown_user_is_404(client, admin_headers, intake):
    res = await _admin_enroll(client, admin_headers, uuid4(), intake.id)
    assert res.status_code == 404


async def test_student_cannot_use_admin_routes(client, student_headers, student, intake):
    res = await _admin_enroll(client, student_headers, student.id, intake.id)
    assert res.status_code == 403


# ─── Status transitions ──────────────────────────────────────────

async def test_confirm_completes_payment_and_emails(
    client, test_db, admin_headers, student, intake, email_outbox,
):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    enrollment_id = created.json()["id"]

    res = await _set_status(client, admin_headers, enrollment_id, "enrolled")
    assert res.status_code == 200
    assert res.json()["status"] == "enrolled"

    payment = (await test_db.execute(
        select(Payment)
        .where(Payment.enrollment_id == UUID(enrollment_id))
        .execution_options(populate_existing=True),
    )).scalar_one()
    assert payment.status == "completed"
    assert payment.paid_at is not None
    assert email_outbox.subjects() == ["Enrollment Confirmed"]
    assert await _seats(test_db, intake.id) == 1


async def test_cancel_releases_seat_and_cancels_payment(
    client, test_db, admin_headers, student, intake, email_outbox,
):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    enrollment_id = created.json()["id"]
    assert await _seats(test_db, intake.id) == 1

    res = await _set_status(
        client, admin_headers, enrollment_id, "cancelled",
        cancelled_reason="Schedule conflict",
    )
    assert res.status_code == 200
    assert res.json()["cancelled_reason"] == "Schedule conflict"
    assert await _seats(test_db, intake.id) == 0

    payment = (await test_db.execute(
        select(Payment)
        .where(Payment.enrollment_id == UUID(enrollment_id))
        .execution_options(populate_existing=True),
    )).scalar_one()
    assert payment.status == "cancelled"
    assert email_outbox.subjects() == ["Enrollment Cancelled"]
    assert "Schedule conflict" in email_outbox.sent[0]["html"]


async def test_reopen_cancelled_reserves_seat_again(
    client, test_db, admin_headers, student, intake,
):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    enrollment_id = created.json()["id"]
    await _set_status(client, admin_headers, enrollment_id, "cancelled", notify=False)

    res = await _set_status(client, admin_headers, enrollment_id, "requested")
    assert res.status_code == 200
    assert res.json()["cancelled_reason"] is None
    assert await _seats(test_db, intake.id) == 1


async def test_reopen_into_full_intake_is_refused(
    client, test_db, admin_headers, student, intake,
):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    enrollment_id = created.json()["id"]
    await _set_status(client, admin_headers, enrollment_id, "cancelled", notify=False)
    for i in range(2):
        other = await make_student(test_db, f"fill{i}@example.com")
        await _admin_enroll(client, admin_headers, other.id, intake.id, notify=False)

    res = await _set_status(client, admin_headers, enrollment_id, "requested")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "INTAKE_FULL"
    enrollment = await get_or_404(test_db, Enrollment, UUID(enrollment_id), "Enrollment")
    assert enrollment.status == "cancelled"
    assert await _seats(test_db, intake.id) == 2


async def test_invalid_transition_is_400(client, admin_headers, student, intake):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    res = await _set_status(client, admin_headers, created.json()["id"], "completed")
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "INVALID_STATUS_TRANSITION"
    assert error["details"]["allowed"] == ["cancelled", "enrolled"]


async def test_same_status_is_noop_without_email(
    client, admin_headers, student, intake, email_outbox,
):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    res = await _set_status(client, admin_headers, created.json()["id"], "requested")
    assert res.status_code == 200
    assert email_outbox.sent == []


# ─── Update / delete ─────────────────────────────────────────────

async def test_move_to_other_intake_moves_seat(
    client, test_db, admin_headers, student, intake, course,
):
    other = Intake(
        course_id=course.id, start_date=future(60), end_date=future(150),
        capacity=5, is_open=True,
    )
    test_db.add(other)
    await test_db.commit()
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )

    res = await client.patch(
        f"/api/v1/admin/enrollments/{created.json()['id']}",
        json={"intake_id": str(other.id), "notes": "Moved on request"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["intake_id"] == str(other.id)
    assert res.json()["notes"] == "Moved on request"
    assert await _seats(test_db, intake.id) == 0
    assert await _seats(test_db, other.id) == 1


async def test_delete_releases_seat(client, test_db, admin_headers, student, intake):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    enrollment_id = created.json()["id"]

    res = await client.delete(
        f"/api/v1/admin/enrollments/{enrollment_id}", headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json() == {"id": enrollment_id, "deleted": True}
    assert await _seats(test_db, intake.id) == 0
    payments = (await test_db.execute(
        select(Payment).where(Payment.enrollment_id == UUID(enrollment_id)),
    )).scalars().all()
    assert payments == []


async def test_delete_completed_is_refused(client, admin_headers, student, intake):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    enrollment_id = created.json()["id"]
    await _set_status(client, admin_headers, enrollment_id, "enrolled", notify=False)
    await _set_status(client, admin_headers, enrollment_id, "completed")

    res = await client.delete(
        f"/api/v1/admin/enrollments/{enrollment_id}", headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "CANNOT_DELETE_COMPLETED"


# ─── Bulk + lists ────────────────────────────────────────────────

async def test_bulk_status_reports_failures(
    client, test_db, admin_headers, student, intake,
):
    ok = await _admin_enroll(client, admin_headers, student.id, intake.id, notify=False)
    missing = str(uuid4())

    res = await client.post(
        "/api/v1/admin/enrollments/bulk-status",
        json={"ids": [ok.json()["id"], missing], "status": "enrolled", "notify": False},
        headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["succeeded"] == [ok.json()["id"]]
    assert body["failed"][0]["id"] == missing
    assert body["failed"][0]["code"] == "RESOURCE_NOT_FOUND"


async def test_admin_list_filters_by_status(
    client, test_db, admin_headers, student, intake,
):
    await _admin_enroll(client, admin_headers, student.id, intake.id, notify=False)
    other = await make_student(test_db, "b@example.com", "Bikash")
    created = await _admin_enroll(client, admin_headers, other.id, intake.id, notify=False)
    await _set_status(client, admin_headers, created.json()["id"], "enrolled", notify=False)

    res = await client.get(
        "/api/v1/admin/enrollments", params={"status": "enrolled"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    assert body["data"][0]["user_name"] == "Bikash"
    assert body["data"][0]["payment_status"] == "completed"


async def test_admin_detail_includes_payment(client, admin_headers, student, intake):
    created = await _admin_enroll(
        client, admin_headers, student.id, intake.id, notify=False,
    )
    res = await client.get(
        f"/api/v1/admin/enrollments/{created.json()['id']}", headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["user"]["email"] == "asha@example.com"
    assert body["course"]["title"] == "Basic Plumbing"
    assert body["payment"]["amount"] == 1500.0
    assert body["intake"]["available_seats"] == 1


# ─── Notification failures ───────────────────────────────────────

async def test_email_failure_does_not_fail_enrollment(
    client, test_db, student_headers, intake, email_outbox,
):
    email_outbox.fail_all = True
    res = await client.post(
        "/api/v1/me/enrollments", json={"intake_id": str(intake.id)},
        headers=student_headers,
    )
    assert res.status_code == 201

    logs = (await test_db.execute(select(EmailLog))).scalars().all()
    assert len(logs) == 1
    assert logs[0].status == "failed"
    assert logs[0].email_type == "enrollment_requested"
    assert "Simulated provider failure" in logs[0].error_message
