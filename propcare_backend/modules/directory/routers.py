"""Directory API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ...database import get_db
from ..auth.dependencies import CurrentActor
from ..auth.role_gate import Action, require
from ..commons import BaseResponse, PaginatedResponse
from . import crud, services
from .schemas import (
    ContractorCreate,
    ContractorResponse,
    PropertyCreate,
    PropertyResponse,
)

properties_router = APIRouter(prefix="/properties", tags=["Properties"])
contractors_router = APIRouter(prefix="/contractors", tags=["Contractors"])


# ----- Properties -----


@properties_router.get(
    "", response_model=BaseResponse[PaginatedResponse[PropertyResponse]]
)
async def list_properties(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    search: str | None = Query(None),
):
    """List properties visible to the actor."""
    skip = (page - 1) * page_size
    properties, total = await services.list_properties(
        db, actor, skip=skip, limit=page_size, search=search
    )

    return BaseResponse(
        success=True,
        data=PaginatedResponse.from_items(
            items=[PropertyResponse.model_validate(p) for p in properties],
            total=total,
            page=page,
            page_size=page_size,
        ),
    )


@properties_router.post("", response_model=BaseResponse[PropertyResponse])
async def create_property(
    data: PropertyCreate,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Register a property owned by the acting landlord."""
    prop = await services.create_property(db, actor, data)

    return BaseResponse(
        success=True,
        message="Property created successfully",
        data=PropertyResponse.model_validate(prop),
    )


# ----- Contractors -----


@contractors_router.get("", response_model=BaseResponse[list[ContractorResponse]])
async def list_contractors(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    search: str | None = Query(None),
):
    """List the contractor directory, ordered by name."""
    require(actor, Action.ASSIGN_CONTRACTOR)
    contractors = await crud.get_contractors(db, search=search)

    return BaseResponse(
        success=True,
        data=[ContractorResponse.model_validate(c) for c in contractors],
    )


@contractors_router.post("", response_model=BaseResponse[ContractorResponse])
async def create_contractor(
    data: ContractorCreate,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Add a contractor to the directory."""
    contractor = await services.create_contractor(db, actor, data)

    return BaseResponse(
        success=True,
        message="Contractor created successfully",
        data=ContractorResponse.model_validate(contractor),
    )
