"""Customer contact — public form, rate limit, replies, batch replies.

Tests cover:
    - Submission stores a pending request and alerts the contact inbox
    - Invalid email / blank message → 400; acknowledgement failure never fails it
    - Sixth submission in a window → 429 with Retry-After
    - Reply sent → reply "sent", request resolved, subject prefixed once with "Re: "
    - Reply failure → reply "failed" with error, request stays pending
    - Batch reply: de-duplicated ids, missing ids and failing recipients reported,
      one batch_id shared by the stored replies
    - Request detail embeds replies; deleting a request removes its replies
"""

from uuid import UUID, uuid4

from sqlalchemy import select

from courseportal.models.contact_reply import ContactReply
from courseportal.models.contact_request import ContactRequest
from courseportal.models.email_log import EmailLog
from courseportal.services.persistence_helpers import get_or_404


async def _submit(client, name="Bina Thapa", email="bina@example.com", **extra):
    return await client.post(
        "/api/v1/public/contact-requests",
        json={"name": name, "email": email, "message": "Do you run evening classes?",
              **extra},
    )


async def _reply(client, admin_headers, request_id, subject="Evening classes"):
    return await client.post(
        f"/api/v1/admin/contact-requests/{request_id}/replies",
        json={"subject": subject, "message": "Yes, from next month."},
        headers=admin_headers,
    )


# ─── Public form ─────────────────────────────────────────────────

async def test_submit_stores_request_and_alerts_inbox(client, email_outbox):
    res = await _submit(client, email="Bina@Example.com", phone="9811111111")
    assert res.status_code == 201
    body = res.json()
    assert body["status"] == "pending"
    assert body["email"] == "bina@example.com"

    assert email_outbox.recipients() == ["info@example.com"]
    assert email_outbox.sent[0]["reply_to"] == "bina@example.com"
    assert email_outbox.subjects() == ["New contact request from Bina Thapa"]


async def test_submit_validation(client):
    bad_email = await _submit(client, email="not-an-email")
    assert bad_email.status_code == 400
    assert bad_email.json()["error"]["code"] == "VALIDATION_ERROR"

    blank = await client.post(
        "/api/v1/public/contact-requests",
        json={"name": "Bina", "email": "bina@example.com", "message": "   "},
    )
    assert blank.status_code == 400


async def test_acknowledgement_failure_keeps_submission(
    client, test_db, email_outbox,
):
    email_outbox.fail_all = True
    res = await _submit(client)
    assert res.status_code == 201

    stored = await get_or_404(
        test_db, ContactRequest, UUID(res.json()["id"]), "Contact request",
    )
    assert stored.status == "pending"
    log = (await test_db.execute(select(EmailLog))).scalar_one()
    assert log.status == "failed"
    assert log.email_type == "contact_received"


async def test_submit_is_rate_limited(client):
    for _ in range(5):
        assert (await _submit(client)).status_code == 201

    res = await _submit(client)
    assert res.status_code == 429
    assert res.json()["error"]["code"] == "RATE_LIMIT_EXCEEDED"
    assert int(res.headers["Retry-After"]) > 0


async def test_rate_limit_is_per_client(client):
    for _ in range(5):
        await _submit(client)

    res = await client.post(
        "/api/v1/public/contact-requests",
        json={"name": "Other", "email": "o@example.com", "message": "Hello"},
        headers={"X-Forwarded-For": "203.0.113.7"},
    )
    assert res.status_code == 201


# ─── Replies ─────────────────────────────────────────────────────

async def test_reply_resolves_request(client, test_db, admin_headers, email_outbox):
    request_id = (await _submit(client)).json()["id"]
    email_outbox.sent.clear()

    res = await _reply(client, admin_headers, request_id, subject="Re: Evening classes")
    assert res.status_code == 201
    reply = res.json()
    assert reply["email_status"] == "sent"
    assert reply["provider_email_id"] == "msg_1"
    assert reply["subject"] == "Re: Evening classes"
    assert reply["admin_email"] == "admin@example.com"
    assert reply["reply_to_email"] == "info@example.com"

    assert email_outbox.subjects() == ["Re: Evening classes"]
    assert email_outbox.recipients() == ["bina@example.com"]

    stored = await get_or_404(test_db, ContactRequest, UUID(request_id), "Contact request")
    assert stored.status == "resolved"


async def test_reply_subject_is_stored_prefixed(client, test_db, admin_headers, email_outbox):
    request_id = (await _submit(client)).json()["id"]
    email_outbox.sent.clear()

    res = await _reply(client, admin_headers, request_id, subject="Evening classes")
    assert res.json()["subject"] == "Re: Evening classes"
    stored = await get_or_404(
        test_db, ContactReply, UUID(res.json()["id"]), "Contact reply",
    )
    assert stored.subject == "Re: Evening classes"
    assert email_outbox.subjects() == ["Re: Evening classes"]


async def test_failed_reply_keeps_request_pending(
    client, test_db, admin_headers, email_outbox,
):
    request_id = (await _submit(client)).json()["id"]
    email_outbox.fail_for.add("bina@example.com")

    res = await _reply(client, admin_headers, request_id)
    assert res.status_code == 201
    assert res.json()["email_status"] == "failed"
    assert "Simulated provider failure" in res.json()["error_message"]

    stored = await get_or_404(test_db, ContactRequest, UUID(request_id), "Contact request")
    assert stored.status == "pending"


async def test_reply_to_unknown_request_is_404(client, admin_headers):
    res = await _reply(client, admin_headers, uuid4())
    assert res.status_code == 404


async def test_detail_embeds_replies_and_list_filters(client, admin_headers):
    request_id = (await _submit(client)).json()["id"]
    other_id = (await _submit(client, name="Ram", email="ram@example.com")).json()["id"]
    await _reply(client, admin_headers, request_id)
    await _reply(client, admin_headers, other_id)

    detail = await client.get(
        f"/api/v1/admin/contact-requests/{request_id}", headers=admin_headers,
    )
    assert detail.status_code == 200
    assert len(detail.json()["replies"]) == 1

    replies = await client.get(
        "/api/v1/admin/contact-replies", params={"request_id": request_id},
        headers=admin_headers,
    )
    assert replies.json()["total"] == 1
    assert replies.json()["data"][0]["request_email"] == "bina@example.com"

    resolved = await client.get(
        "/api/v1/admin/contact-requests", params={"status": "resolved"},
        headers=admin_headers,
    )
    assert resolved.json()["total"] == 2


async def test_status_update_and_delete(client, test_db, admin_headers):
    request_id = (await _submit(client)).json()["id"]
    await _reply(client, admin_headers, request_id)

    closed = await client.patch(
        f"/api/v1/admin/contact-requests/{request_id}/status",
        json={"status": "closed"}, headers=admin_headers,
    )
    assert closed.status_code == 200
    assert closed.json()["status"] == "closed"

    deleted = await client.delete(
        f"/api/v1/admin/contact-requests/{request_id}", headers=admin_headers,
    )
    assert deleted.status_code == 200
    replies = (await test_db.execute(
        select(ContactReply).where(ContactReply.contact_request_id == UUID(request_id)),
    )).scalars().all()
    assert replies == []


# ─── Batch replies ───────────────────────────────────────────────

async def test_batch_reply(client, test_db, admin_headers, email_outbox):
    first = (await _submit(client)).json()["id"]
    second = (await _submit(client, name="Ram", email="ram@example.com")).json()["id"]
    third = (await _submit(client, name="Sita", email="sita@example.com")).json()["id"]
    missing = str(uuid4())
    email_outbox.sent.clear()
    email_outbox.fail_for.add("sita@example.com")

    res = await client.post(
        "/api/v1/admin/contact-requests/batch-reply",
        json={
            "contact_request_ids": [first, second, first, third, missing],
            "subject": "Schedule update", "message": "Classes start Monday.",
        },
        headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 4
    assert body["sent"] == 2
    assert body["failed"] == 2
    assert {f["contact_request_id"] for f in body["failures"]} == {third, missing}
    assert email_outbox.subjects() == ["Re: Schedule update", "Re: Schedule update"]

    stored = (await test_db.execute(select(ContactReply))).scalars().all()
    assert len(stored) == 2
    assert {r.batch_id for r in stored} == {UUID(body["batch_id"])}
    assert all(r.is_batch_reply for r in stored)

    pending = await get_or_404(test_db, ContactRequest, UUID(third), "Contact request")
    assert pending.status == "pending"
