"""Activity log API endpoints."""

from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Response, status

from caseops.core.deps import get_current_session, get_gateways, get_timezone, require_csrf_header
from caseops.schemas.activity import ActivityListResponse
from caseops.schemas.auth import UserSession
from caseops.schemas.query import ActivityQuery
from caseops.services import activity_service
from caseops.services.activity_service import ActivityNotFoundError
from caseops.services.gateways import Gateways
from caseops.utils.pagination import Page, PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=ActivityListResponse)
async def list_activity_logs(
    query: ActivityQuery = Depends(),
    pagination: PaginationParams = Depends(get_pagination),
    tz: ZoneInfo = Depends(get_timezone),
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    """Activity log, newest first, within a time window (default: last week)."""
    entries = await activity_service.list_activity_logs(gateways, session, query, tz)
    return ActivityListResponse.model_validate(Page.create(entries, pagination), from_attributes=True)


@router.delete(
    "/{activity_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
async def delete_activity_log(
    activity_id: str,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        await activity_service.delete_activity_log(gateways, session, activity_id)
    except ActivityNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
