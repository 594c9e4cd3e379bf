"""Directory business logic services."""

from sqlalchemy.ext.asyncio import AsyncSession

from ...core.exceptions import ValidationError
from ...core.logging import get_logger
from ...core.utils import bounded
from ..auth import crud as auth_crud
from ..auth.models import RoleSlug
from ..auth.role_gate import Action, require
from ..auth.schemas import AuthenticatedUser
from . import crud
from .models import Contractor, Property
from .schemas import ContractorCreate, PropertyCreate

logger = get_logger(__name__)


async def create_property(
    db: AsyncSession, actor: AuthenticatedUser, data: PropertyCreate
) -> Property:
    """Register a property owned by the acting landlord."""
    require(actor, Action.MANAGE_PROPERTIES)
    prop = await crud.create_property(
        db, owner_id=actor.id, name=data.name.strip(), address=data.address
    )
    await bounded(db.commit(), "create property")
    return prop


async def list_properties(
    db: AsyncSession,
    actor: AuthenticatedUser,
    skip: int = 0,
    limit: int = 100,
    search: str | None = None,
) -> tuple[list[Property], int]:
    """Landlords see their own properties; everyone else sees all of them.

    Tenants need the full list to pick the property they are reporting on.
    """
    owner_id = actor.id if actor.role == RoleSlug.LANDLORD else None
    return await crud.get_properties(
        db, owner_id=owner_id, skip=skip, limit=limit, search=search
    )


async def create_contractor(
    db: AsyncSession, actor: AuthenticatedUser, data: ContractorCreate
) -> Contractor:
    """Add a contractor to the directory, optionally linked to a login."""
    require(actor, Action.MANAGE_CONTRACTORS)

    if data.profile_id is not None:
        profile = await auth_crud.get_profile_by_id(db, data.profile_id)
        if profile is None or profile.role != RoleSlug.CONTRACTOR:
            raise ValidationError(
                "must reference a contractor profile", field="profile_id"
            )
        if await crud.get_contractor_by_profile(db, data.profile_id):
            raise ValidationError(
                "profile is already linked to a contractor", field="profile_id"
            )

    contractor = await crud.create_contractor(
        db,
        profile_id=data.profile_id,
        full_name=data.full_name.strip(),
        email=data.email.lower() if data.email else None,
        phone=data.phone,
        services_provided=data.services_provided,
    )
    await bounded(db.commit(), "create contractor")

    logger.info(
        "Contractor added",
        extra={"contractor_id": str(contractor.id), "linked": bool(data.profile_id)},
    )
    return contractor
