"""Directory schemas for PropCare."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

# ----- Property Schemas -----


class PropertyCreate(BaseModel):
    """Schema for creating a property. The owner is the acting landlord."""

    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)


class PropertyResponse(BaseModel):
    """Schema for property response."""

    id: UUID
    owner_id: UUID
    name: str
    address: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True


# ----- Contractor Schemas -----


class ContractorCreate(BaseModel):
    """Schema for adding a contractor to the directory."""

    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    services_provided: str | None = None
    profile_id: UUID | None = Field(
        None, description="Contractor login to link this entry to"
    )


class ContractorResponse(BaseModel):
    """Schema for contractor response."""

    id: UUID
    profile_id: UUID | None = None
    full_name: str
    email: str | None = None
    phone: str | None = None
    services_provided: str | None = None

    class Config:
        from_attributes = True
