"""Directory module for PropCare: properties and contractors."""

from .models import Contractor, Property
from .routers import contractors_router, properties_router

__all__ = [
    # Models
    "Property",
    "Contractor",
    # Routers
    "properties_router",
    "contractors_router",
]
