"""Admin Course Routes — course CRUD, delete checks and course images.

Invariants:
    - Every route depends on require_admin
    - Image uploads are multipart/form-data, image/* only, size-capped by settings
"""

from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import get_storage, list_params, require_admin
from courseportal.infrastructure.database import get_db
from courseportal.infrastructure.storage import LocalImageStorage
from courseportal.schemas.catalog import (
    CourseAdminListItem, CourseCreate, CourseDetail, CourseRead, CourseUpdate,
    ImageUploadResponse,
)
from courseportal.schemas.common import ConstraintCheck, DeleteResponse, ListParams, Page
from courseportal.services.handle_courses import CourseHandlers

router = APIRouter(
    prefix="/api/v1/admin/courses", tags=["admin: courses"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=Page[CourseAdminListItem])
async def list_courses(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
):
    return await CourseHandlers(db).admin_list(params)


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
async def create_course(body: CourseCreate, db: AsyncSession = Depends(get_db)):
    return await CourseHandlers(db).create(body)


@router.get("/{course_id}", response_model=CourseDetail)
async def get_course(course_id: UUID, db: AsyncSession = Depends(get_db)):
    return await CourseHandlers(db).get_detail(course_id)


@router.patch("/{course_id}", response_model=CourseRead)
async def update_course(
    course_id: UUID, body: CourseUpdate, db: AsyncSession = Depends(get_db),
):
    return await CourseHandlers(db).update(course_id, body)


@router.get("/{course_id}/constraints", response_model=ConstraintCheck)
async def check_course_constraints(
    course_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await CourseHandlers(db).constraint_check(course_id)


@router.delete("/{course_id}", response_model=DeleteResponse)
async def delete_course(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
):
    await CourseHandlers(db, storage).delete(course_id)
    return DeleteResponse(id=course_id)


@router.post(
    "/{course_id}/image", response_model=ImageUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_course_image(
    course_id: UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
):
    # one byte past the cap is enough to detect an oversized file
    data = await file.read(storage.max_bytes + 1)
    url = await CourseHandlers(db, storage).upload_image(
        course_id, file.content_type, data,
    )
    return ImageUploadResponse(url=url)


@router.delete("/{course_id}/image", response_model=CourseRead)
async def delete_course_image(
    course_id: UUID,
    db: AsyncSession = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
):
    return await CourseHandlers(db, storage).delete_image(course_id)
