"""Admin Affiliation Routes — affiliation CRUD and delete checks."""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from courseportal.api.dependencies import list_params, require_admin
from courseportal.infrastructure.database import get_db
from courseportal.schemas.catalog import (
    AffiliationCreate, AffiliationListItem, AffiliationRead, AffiliationUpdate,
)
from courseportal.schemas.common import ConstraintCheck, DeleteResponse, ListParams, Page
from courseportal.services.handle_taxonomy import TaxonomyHandlers

router = APIRouter(
    prefix="/api/v1/admin/affiliations", tags=["admin: affiliations"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=Page[AffiliationListItem])
async def list_affiliations(
    params: ListParams = Depends(list_params),
    db: AsyncSession = Depends(get_db),
):
    page = await TaxonomyHandlers.affiliations(db).list_page(params)
    return Page[AffiliationListItem](
        data=[
            AffiliationListItem(
                **AffiliationRead.model_validate(affiliation).model_dump(),
                course_count=count or 0,
            )
            for affiliation, count in page.rows
        ],
        total=page.total, page=page.page, page_size=page.page_size,
    )


@router.get("/all", response_model=list[AffiliationRead])
async def list_all_affiliations(db: AsyncSession = Depends(get_db)):
    return await TaxonomyHandlers.affiliations(db).list_all()


@router.post("", response_model=AffiliationRead, status_code=status.HTTP_201_CREATED)
async def create_affiliation(body: AffiliationCreate, db: AsyncSession = Depends(get_db)):
    return await TaxonomyHandlers.affiliations(db).create(**body.model_dump())


@router.get("/{affiliation_id}", response_model=AffiliationListItem)
async def get_affiliation(affiliation_id: UUID, db: AsyncSession = Depends(get_db)):
    handlers = TaxonomyHandlers.affiliations(db)
    affiliation = await handlers.get(affiliation_id)
    return AffiliationListItem(
        **AffiliationRead.model_validate(affiliation).model_dump(),
        course_count=await handlers.course_count(affiliation_id),
    )


@router.patch("/{affiliation_id}", response_model=AffiliationRead)
async def update_affiliation(
    affiliation_id: UUID, body: AffiliationUpdate, db: AsyncSession = Depends(get_db),
):
    return await TaxonomyHandlers.affiliations(db).update(
        affiliation_id, **body.model_dump(exclude_unset=True, exclude_none=True),
    )


@router.get("/{affiliation_id}/constraints", response_model=ConstraintCheck)
async def check_affiliation_constraints(
    affiliation_id: UUID, db: AsyncSession = Depends(get_db),
):
    return await TaxonomyHandlers.affiliations(db).constraint_check(affiliation_id)


@router.delete("/{affiliation_id}", response_model=DeleteResponse)
async def delete_affiliation(affiliation_id: UUID, db: AsyncSession = Depends(get_db)):
    await TaxonomyHandlers.affiliations(db).delete(affiliation_id)
    return DeleteResponse(id=affiliation_id)
