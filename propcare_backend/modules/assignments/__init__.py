"""Assignment state machine module for PropCare."""

from .models import (
    Assignment,
    AssignmentStatus,
    ContractorFinalReport,
    ContractorResponse,
    ResponseDecision,
)
from .routers import report_assign_router, router
from .state_machine import TRANSITIONS

__all__ = [
    # Models
    "Assignment",
    "ContractorResponse",
    "ContractorFinalReport",
    # Enums
    "AssignmentStatus",
    "ResponseDecision",
    "TRANSITIONS",
    # Routers
    "router",
    "report_assign_router",
]
