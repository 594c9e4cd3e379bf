"""CRUD operations for the directory module."""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ...core.utils import bounded
from .models import Contractor, Property

# ----- Property CRUD -----


async def get_property_by_id(db: AsyncSession, property_id: uuid.UUID) -> Property | None:
    """Get a property by ID."""
    result = await bounded(
        db.execute(select(Property).where(Property.id == property_id)),
        "load property",
    )
    return result.scalar_one_or_none()


async def get_properties(
    db: AsyncSession,
    owner_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 100,
    search: str | None = None,
) -> tuple[list[Property], int]:
    """Get properties, optionally restricted to one owner."""
    filters = []
    if owner_id:
        filters.append(Property.owner_id == owner_id)
    if search:
        search_filter = f"%{search}%"
        filters.append(
            Property.name.ilike(search_filter) | Property.address.ilike(search_filter)
        )

    total_result = await bounded(
        db.execute(select(func.count(Property.id)).where(*filters)), "count properties"
    )
    total = total_result.scalar_one()

    data_query = (
        select(Property)
        .where(*filters)
        .order_by(Property.name.asc())
        .offset(skip)
        .limit(limit)
    )
    result = await bounded(db.execute(data_query), "list properties")
    return list(result.scalars().all()), total


async def create_property(
    db: AsyncSession,
    owner_id: uuid.UUID,
    name: str,
    address: str | None = None,
) -> Property:
    """Create a new property."""
    prop = Property(owner_id=owner_id, name=name, address=address)
    db.add(prop)
    await bounded(db.flush(), "create property")
    return prop


# ----- Contractor CRUD -----


async def get_contractor_by_id(
    db: AsyncSession, contractor_id: uuid.UUID
) -> Contractor | None:
    """Get a contractor by ID."""
    result = await bounded(
        db.execute(select(Contractor).where(Contractor.id == contractor_id)),
        "load contractor",
    )
    return result.scalar_one_or_none()


async def get_contractor_by_profile(
    db: AsyncSession, profile_id: uuid.UUID
) -> Contractor | None:
    """Get the directory entry linked to a contractor login."""
    result = await bounded(
        db.execute(select(Contractor).where(Contractor.profile_id == profile_id)),
        "load contractor",
    )
    return result.scalar_one_or_none()


async def get_contractors(
    db: AsyncSession, search: str | None = None
) -> list[Contractor]:
    """Get all contractors ordered by name."""
    query = select(Contractor)
    if search:
        search_filter = f"%{search}%"
        query = query.where(
            Contractor.full_name.ilike(search_filter)
            | Contractor.services_provided.ilike(search_filter)
        )
    result = await bounded(
        db.execute(query.order_by(Contractor.full_name.asc())), "list contractors"
    )
    return list(result.scalars().all())


async def create_contractor(db: AsyncSession, **kwargs) -> Contractor:
    """Create a new contractor entry."""
    contractor = Contractor(**kwargs)
    db.add(contractor)
    await bounded(db.flush(), "create contractor")
    return contractor
