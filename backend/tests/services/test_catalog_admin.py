"""Admin catalog — courses, categories, affiliations and course images.

Tests cover:
    - Course create generates a slug from the title; duplicate slug → 409
    - Field rules (title, slug, price) → 400 with specific codes
    - Unknown category reference → 404
    - Partial update keeps untouched fields; blank slug keeps the old one
    - Delete blocked while intakes exist (constraints endpoint agrees)
    - Category/affiliation CRUD, duplicate names, delete blocked while referenced
    - Image upload stores the file, replacement removes the previous file,
      non-images and SVG are refused
    - Stored extension comes from the content type, never the client filename
    - Empty and oversized uploads are refused
"""

from pathlib import Path
from uuid import uuid4

from courseportal.config import get_settings
from courseportal.models.course import Course
from courseportal.services.persistence_helpers import get_or_404


def _stored_path(url: str) -> Path:
    return Path(get_settings().upload_dir) / url.rsplit("/", 1)[1]


# ─── Courses ─────────────────────────────────────────────────────

async def test_create_course_generates_slug(client, admin_headers, category):
    res = await client.post(
        "/api/v1/admin/courses",
        json={
            "title": "  Électricité Basics  ", "category_id": str(category.id),
            "price": "2500", "duration_type": "week", "duration_value": 6,
        },
        headers=admin_headers,
    )
    assert res.status_code == 201
    body = res.json()
    assert body["title"] == "Électricité Basics"
    assert body["slug"] == "electricite-basics"
    assert body["category_name"] == "Construction"
    assert body["price"] == 2500.0
    assert body["level"] == 1


async def test_duplicate_slug_is_conflict(client, admin_headers, course):
    res = await client.post(
        "/api/v1/admin/courses",
        json={"title": "Plumbing Again", "slug": "basic-plumbing"},
        headers=admin_headers,
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "UNIQUE_CONSTRAINT_VIOLATION"


async def test_course_field_rules(client, admin_headers):
    cases = [
        ({"title": "ab"}, "INVALID_TITLE"),
        ({"title": "Welding", "slug": "Bad Slug"}, "INVALID_SLUG"),
        ({"title": "!!!"}, "INVALID_SLUG"),
        ({"title": "Welding", "price": "-1"}, "INVALID_PRICE"),
        ({"title": "Welding", "duration_value": 0}, "INVALID_DURATION"),
    ]
    for body, code in cases:
        res = await client.post("/api/v1/admin/courses", json=body, headers=admin_headers)
        assert res.status_code == 400, body
        assert res.json()["error"]["code"] == code


async def test_unknown_category_is_404(client, admin_headers):
    res = await client.post(
        "/api/v1/admin/courses",
        json={"title": "Welding", "category_id": str(uuid4())},
        headers=admin_headers,
    )
    assert res.status_code == 404


async def test_partial_update(client, admin_headers, course):
    res = await client.patch(
        f"/api/v1/admin/courses/{course.id}",
        json={"price": "1800", "slug": "", "course_overview": "Hands-on pipe work"},
        headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["price"] == 1800.0
    assert body["slug"] == "basic-plumbing"
    assert body["title"] == "Basic Plumbing"
    assert body["course_overview"] == "Hands-on pipe work"


async def test_course_detail_lists_intakes(client, admin_headers, course, intake):
    res = await client.get(f"/api/v1/admin/courses/{course.id}", headers=admin_headers)
    assert res.status_code == 200
    intakes = res.json()["intakes"]
    assert [i["id"] for i in intakes] == [str(intake.id)]
    assert intakes[0]["available_seats"] == 2


async def test_admin_list_counts_intakes(client, admin_headers, course, intake):
    res = await client.get(
        "/api/v1/admin/courses", params={"search": "plumb"}, headers=admin_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    assert body["data"][0]["intake_count"] == 1
    assert body["data"][0]["enrollment_count"] == 0


async def test_delete_blocked_by_intakes(client, admin_headers, course, intake):
    check = await client.get(
        f"/api/v1/admin/courses/{course.id}/constraints", headers=admin_headers,
    )
    assert check.status_code == 200
    assert check.json()["can_delete"] is False
    assert check.json()["counts"] == {"intakes": 1, "enrollments": 0}

    res = await client.delete(f"/api/v1/admin/courses/{course.id}", headers=admin_headers)
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "CONSTRAINT_VIOLATION"
    assert res.json()["error"]["details"]["intakes"] == 1


async def test_delete_unreferenced_course(client, admin_headers, course):
    res = await client.delete(f"/api/v1/admin/courses/{course.id}", headers=admin_headers)
    assert res.status_code == 200

    missing = await client.get(f"/api/v1/admin/courses/{course.id}", headers=admin_headers)
    assert missing.status_code == 404


# ─── Categories & affiliations ───────────────────────────────────

async def test_category_crud(client, admin_headers):
    created = await client.post(
        "/api/v1/admin/categories",
        json={"name": "  Hospitality ", "description": "Hotel and kitchen"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    category_id = created.json()["id"]
    assert created.json()["name"] == "Hospitality"

    dup = await client.post(
        "/api/v1/admin/categories", json={"name": "Hospitality"},
        headers=admin_headers,
    )
    assert dup.status_code == 409

    updated = await client.patch(
        f"/api/v1/admin/categories/{category_id}",
        json={"description": "Hotel, kitchen and front office"},
        headers=admin_headers,
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Hospitality"

    all_rows = await client.get("/api/v1/admin/categories/all", headers=admin_headers)
    assert [c["name"] for c in all_rows.json()] == ["Hospitality"]

    deleted = await client.delete(
        f"/api/v1/admin/categories/{category_id}", headers=admin_headers,
    )
    assert deleted.status_code == 200


async def test_category_in_use_cannot_be_deleted(
    client, admin_headers, category, course,
):
    detail = await client.get(
        f"/api/v1/admin/categories/{category.id}", headers=admin_headers,
    )
    assert detail.json()["course_count"] == 1

    res = await client.delete(
        f"/api/v1/admin/categories/{category.id}", headers=admin_headers,
    )
    assert res.status_code == 409
    assert res.json()["error"]["details"] == {"courses": 1}


async def test_blank_category_name_is_400(client, admin_headers):
    res = await client.post(
        "/api/v1/admin/categories", json={"name": "   "}, headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_affiliation_crud_and_constraints(client, admin_headers, course):
    created = await client.post(
        "/api/v1/admin/affiliations",
        json={"name": "CTEVT", "type": "Government"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    affiliation_id = created.json()["id"]

    linked = await client.patch(
        f"/api/v1/admin/courses/{course.id}",
        json={"affiliation_id": affiliation_id}, headers=admin_headers,
    )
    assert linked.json()["affiliation_name"] == "CTEVT"

    listing = await client.get("/api/v1/admin/affiliations", headers=admin_headers)
    assert listing.status_code == 200
    assert listing.json()["data"][0]["course_count"] == 1

    check = await client.get(
        f"/api/v1/admin/affiliations/{affiliation_id}/constraints",
        headers=admin_headers,
    )
    assert check.json()["can_delete"] is False

    res = await client.delete(
        f"/api/v1/admin/affiliations/{affiliation_id}", headers=admin_headers,
    )
    assert res.status_code == 409


# ─── Images ──────────────────────────────────────────────────────

async def test_image_upload_replace_and_delete(client, test_db, admin_headers, course):
    url = f"/api/v1/admin/courses/{course.id}/image"
    first = await client.post(
        url, files={"file": ("cover.png", b"\x89PNG first", "image/png")},
        headers=admin_headers,
    )
    assert first.status_code == 201
    first_url = first.json()["url"]
    assert first_url.startswith("/uploads/") and first_url.endswith(".png")
    assert _stored_path(first_url).read_bytes() == b"\x89PNG first"
    served = await client.get(first_url)
    assert served.status_code == 200
    assert served.content == b"\x89PNG first"

    second = await client.post(
        url, files={"file": ("cover.jpg", b"jpeg bytes", "image/jpeg")},
        headers=admin_headers,
    )
    second_url = second.json()["url"]
    assert not _stored_path(first_url).exists()
    stored = await get_or_404(test_db, Course, course.id, "Course")
    assert stored.image_url == second_url

    removed = await client.delete(url, headers=admin_headers)
    assert removed.status_code == 200
    assert removed.json()["image_url"] is None
    assert not _stored_path(second_url).exists()


async def test_non_image_upload_is_refused(client, admin_headers, course):
    res = await client.post(
        f"/api/v1/admin/courses/{course.id}/image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_FILE_TYPE"


async def test_svg_upload_is_refused(client, admin_headers, course):
    res = await client.post(
        f"/api/v1/admin/courses/{course.id}/image",
        files={"file": ("logo.svg", b"<svg onload='x()'/>", "image/svg+xml")},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "INVALID_FILE_TYPE"


async def test_extension_follows_content_type(client, admin_headers, course):
    url = f"/api/v1/admin/courses/{course.id}/image"
    bare = await client.post(
        url, files={"file": ("cover", b"\x89PNG", "image/png")},
        headers=admin_headers,
    )
    assert bare.json()["url"].endswith(".png")

    mislabelled = await client.post(
        url, files={"file": ("photo.html", b"jpeg bytes", "image/jpeg")},
        headers=admin_headers,
    )
    assert mislabelled.json()["url"].endswith(".jpg")


async def test_empty_and_oversized_uploads_are_refused(client, admin_headers, course):
    url = f"/api/v1/admin/courses/{course.id}/image"
    empty = await client.post(
        url, files={"file": ("cover.png", b"", "image/png")},
        headers=admin_headers,
    )
    assert empty.status_code == 400
    assert empty.json()["error"]["code"] == "EMPTY_FILE"

    oversized = await client.post(
        url, files={"file": ("cover.png", b"x" * (5 * 1024 * 1024 + 1), "image/png")},
        headers=admin_headers,
    )
    assert oversized.status_code == 400
    assert oversized.json()["error"]["code"] == "FILE_TOO_LARGE"
