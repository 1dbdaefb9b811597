"""Dashboard endpoints."""

from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends

from caseops.core.deps import get_current_session, get_event_repository, get_gateways, get_timezone
from caseops.schemas.auth import UserSession
from caseops.schemas.dashboard import DashboardStats
from caseops.services import dashboard_service
from caseops.services.event_repository import EventRepository
from caseops.services.gateways import Gateways

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    tz: ZoneInfo = Depends(get_timezone),
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
    repository: EventRepository = Depends(get_event_repository),
):
    return await dashboard_service.get_dashboard_stats(gateways, repository, session, tz)
