"""Admin Category Routes — course category CRUD and delete checks."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import list_params, require_admin
from courseportal.infrastructure.database import get_db
from courseportal.schemas.catalog import (
    CategoryCreate, CategoryListItem, CategoryRead, CategoryUpdate,
)
from courseportal.schemas.common import ConstraintCheck, DeleteResponse, ListParams, Page
from courseportal.services.handle_taxonomy import TaxonomyHandlers

router = APIRouter(
    prefix="/api/v1/admin/categories", tags=["admin: categories"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=Page[CategoryListItem])
async def list_categories(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
):
    page = await TaxonomyHandlers.categories(db).list_page(params)
    return Page[CategoryListItem](
        data=[
            CategoryListItem(
                **CategoryRead.model_validate(category).model_dump(),
                course_count=count or 0,
            )
            for category, count in page.rows
        ],
        total=page.total, page=page.page, page_size=page.page_size,
    )


@router.get("/all", response_model=list[CategoryRead])
async def list_all_categories(db: AsyncSession = Depends(get_db)):
    return await TaxonomyHandlers.categories(db).list_all()


@router.post("", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(body: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await TaxonomyHandlers.categories(db).create(**body.model_dump())


@router.get("/{category_id}", response_model=CategoryListItem)
async def get_category(category_id: UUID, db: AsyncSession = Depends(get_db)):
    handlers = TaxonomyHandlers.categories(db)
    category = await handlers.get(category_id)
    return CategoryListItem(
        **CategoryRead.model_validate(category).model_dump(),
        course_count=await handlers.course_count(category_id),
    )


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: UUID, body: CategoryUpdate, db: AsyncSession = Depends(get_db),
):
    return await TaxonomyHandlers.categories(db).update(
        category_id, **body.model_dump(exclude_unset=True, exclude_none=True),
    )


@router.get("/{category_id}/constraints", response_model=ConstraintCheck)
async def check_category_constraints(
    category_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await TaxonomyHandlers.categories(db).constraint_check(category_id)


@router.delete("/{category_id}", response_model=DeleteResponse)
async def delete_category(category_id: UUID, db: AsyncSession = Depends(get_db)):
    await TaxonomyHandlers.categories(db).delete(category_id)
    return DeleteResponse(id=category_id)
