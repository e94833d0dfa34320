# backend/therasoul/routes/admin.py
"""Admin routes: platform overview."""

from fastapi import APIRouter, Depends

from ..api.dependencies import get_admin_service, get_current_actor
from ..core.exceptions import DomainException
from ..principal import ActorPrincipal
from ..schemas.admin import AdminOverviewResponse
from ..services.admin_service import AdminService
from .sessions import handle_domain_exception

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/overview", response_model=AdminOverviewResponse)
def admin_overview(
    actor: ActorPrincipal = Depends(get_current_actor),
    admin_service: AdminService = Depends(get_admin_service),
):
    """Session counts, earnings, clients, therapists and ratings across the platform."""
    try:
        return AdminOverviewResponse(**admin_service.overview(actor))
    except DomainException as e:
        handle_domain_exception(e)
