"""Public catalog — course browsing, filters, next intake, related and upcoming.

Tests cover:
    - Course list carries the earliest future intake and its free seats
    - Filters: title substring, category id, duration, intake_date inside an intake
    - Invalid filters JSON → 400 VALIDATION_ERROR; unknown sort key falls back
    - Slug detail lists current intakes; unknown slug → 404
    - Related courses share the category and exclude the course itself
    - Upcoming/open intakes exclude closed and past intakes
    - No authentication required
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

from courseportal.models.course import Course
from courseportal.models.intake import Intake
from tests.services.fakes import future


async def _list(client, **params):
    if "filters" in params:
        params["filters"] = json.dumps(params["filters"])
    res = await client.get("/api/v1/public/courses", params=params)
    assert res.status_code == 200, res.text
    return res.json()


async def _add_course(test_db, title, slug, category=None, duration=1):
    course = Course(
        title=title, slug=slug, category_id=category.id if category else None,
        duration_type="month", duration_value=duration, price=Decimal("900"),
    )
    test_db.add(course)
    await test_db.commit()
    return course


# ─── Course list ─────────────────────────────────────────────────

async def test_list_includes_next_intake(client, test_db, course, intake):
    later = Intake(
        course_id=course.id, start_date=future(200), end_date=future(260),
        capacity=8, is_open=True,
    )
    test_db.add(later)
    await test_db.commit()

    body = await _list(client)
    assert body["total"] == 1
    item = body["data"][0]
    assert item["next_intake_id"] == str(intake.id)
    assert item["available_seats"] == 2
    assert item["category_name"] == "Construction"


async def test_next_intake_ignores_open_flag(client, test_db, course, intake):
    intake.is_open = False
    await test_db.commit()

    body = await _list(client)
    assert body["data"][0]["next_intake_id"] == str(intake.id)


async def test_course_without_future_intake(client, course):
    body = await _list(client)
    assert body["data"][0]["next_intake_id"] is None
    assert body["data"][0]["available_seats"] is None


async def test_filters(client, test_db, category, course, intake):
    await _add_course(test_db, "Arc Welding", "arc-welding", duration=6)

    assert (await _list(client, filters={"title": "plumb"}))["total"] == 1
    assert (await _list(client, filters={"title": "carpentry"}))["total"] == 0
    assert (await _list(client, filters={"category": str(category.id)}))["total"] == 1
    assert (await _list(client, filters={"duration": 6}))["total"] == 1

    inside = await _list(client, filters={"intake_date": future(60).isoformat()})
    assert [c["slug"] for c in inside["data"]] == ["basic-plumbing"]
    outside = await _list(client, filters={"intake_date": future(400).isoformat()})
    assert outside["total"] == 0


async def test_sort_and_paging(client, test_db, course):
    await _add_course(test_db, "Arc Welding", "arc-welding")
    await _add_course(test_db, "Carpentry", "carpentry")

    body = await _list(client, sort_by="name", order="asc", page_size=2)
    assert body["total"] == 3
    assert [c["title"] for c in body["data"]] == ["Arc Welding", "Basic Plumbing"]

    second = await _list(client, sort_by="name", order="asc", page_size=2, page=2)
    assert [c["title"] for c in second["data"]] == ["Carpentry"]

    fallback = await _list(client, sort_by="no_such_column")
    assert fallback["total"] == 3


async def test_invalid_filters_json_is_400(client):
    res = await client.get("/api/v1/public/courses", params={"filters": "{not json"})
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


# ─── Course detail ───────────────────────────────────────────────

async def test_course_by_slug(client, test_db, course, intake):
    past = Intake(
        course_id=course.id, start_date=future(-90), end_date=future(-30),
        capacity=5, is_open=False,
    )
    test_db.add(past)
    await test_db.commit()

    res = await client.get("/api/v1/public/courses/slug/basic-plumbing")
    assert res.status_code == 200
    body = res.json()
    assert body["id"] == str(course.id)
    assert [i["id"] for i in body["intakes"]] == [str(intake.id)]

    missing = await client.get("/api/v1/public/courses/slug/no-such-course")
    assert missing.status_code == 404


async def test_course_intakes_by_slug_and_year(client, test_db, course):
    test_db.add(Intake(
        course_id=course.id,
        start_date=datetime(2030, 4, 1, tzinfo=timezone.utc),
        end_date=datetime(2030, 4, 28, tzinfo=timezone.utc),
        capacity=10,
    ))
    await test_db.commit()

    res = await client.get(
        "/api/v1/public/courses/slug/basic-plumbing/intakes", params={"year": 2030},
    )
    assert res.status_code == 200
    assert len(res.json()) == 1

    res = await client.get(
        "/api/v1/public/courses/slug/basic-plumbing/intakes", params={"year": 2031},
    )
    assert res.json() == []


async def test_related_courses(client, test_db, category, course):
    sibling = await _add_course(test_db, "Pipe Fitting", "pipe-fitting", category)
    await _add_course(test_db, "Hair Styling", "hair-styling")

    res = await client.get(f"/api/v1/public/courses/{course.id}/related")
    assert res.status_code == 200
    assert [c["id"] for c in res.json()] == [str(sibling.id)]


async def test_new_courses_and_categories(client, test_db, category, course):
    await _add_course(test_db, "Arc Welding", "arc-welding")

    newest = await client.get("/api/v1/public/courses/new")
    assert newest.status_code == 200
    assert len(newest.json()) == 2

    categories = await client.get("/api/v1/public/categories")
    assert [c["name"] for c in categories.json()] == ["Construction"]


# ─── Intakes ─────────────────────────────────────────────────────

async def test_upcoming_excludes_closed_and_past(client, test_db, course, intake):
    test_db.add_all([
        Intake(
            course_id=course.id, start_date=future(10), end_date=future(40),
            capacity=5, is_open=False,
        ),
        Intake(
            course_id=course.id, start_date=future(-40), end_date=future(-10),
            capacity=5, is_open=True,
        ),
    ])
    await test_db.commit()

    upcoming = await client.get("/api/v1/public/intakes/upcoming")
    assert upcoming.status_code == 200
    assert [i["id"] for i in upcoming.json()] == [str(intake.id)]
    assert upcoming.json()[0]["course_title"] == "Basic Plumbing"

    per_course = await client.get(f"/api/v1/public/courses/{course.id}/intakes")
    assert [i["id"] for i in per_course.json()] == [str(intake.id)]


async def test_public_intake_detail(client, intake):
    res = await client.get(f"/api/v1/public/intakes/{intake.id}")
    assert res.status_code == 200
    assert res.json()["course_slug"] == "basic-plumbing"
    assert res.json()["available_seats"] == 2
