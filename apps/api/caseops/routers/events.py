"""Event API endpoints."""

from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Response, status

from caseops.core.deps import (
    get_current_session,
    get_event_repository,
    get_gateways,
    get_timezone,
    require_csrf_header,
)
from caseops.schemas.auth import UserSession
from caseops.schemas.event import (
    EnrichedEvent,
    EventArchiveUpdate,
    EventCreate,
    EventListResponse,
    EventStatusUpdate,
    EventUpdate,
)
from caseops.schemas.query import EventQuery
from caseops.services import event_service
from caseops.services.event_repository import EventRepository
from caseops.services.event_service import (
    EventCaseNotFoundError,
    EventNotArchivedError,
    EventNotFoundError,
)
from caseops.services.gateways import Gateways
from caseops.utils.pagination import Page, PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=EventListResponse)
async def list_events(
    query: EventQuery = Depends(),
    pagination: PaginationParams = Depends(get_pagination),
    tz: ZoneInfo = Depends(get_timezone),
    session: UserSession = Depends(get_current_session),
    repository: EventRepository = Depends(get_event_repository),
):
    """Active or archived events, filtered by local date range and search."""
    events = await event_service.list_events(repository, session, query, tz)
    return EventListResponse.model_validate(Page.create(events, pagination), from_attributes=True)


@router.get("/upcoming", response_model=list[EnrichedEvent])
async def list_upcoming(
    tz: ZoneInfo = Depends(get_timezone),
    session: UserSession = Depends(get_current_session),
    repository: EventRepository = Depends(get_event_repository),
):
    """Events from today onward, soonest first."""
    return await event_service.list_upcoming(repository, session, tz)


@router.get("/{event_id}", response_model=EnrichedEvent)
async def get_event(
    event_id: str,
    session: UserSession = Depends(get_current_session),
    repository: EventRepository = Depends(get_event_repository),
):
    try:
        return await event_service.get_event(repository, session, event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "",
    response_model=EnrichedEvent,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
async def create_event(
    data: EventCreate,
    tz: ZoneInfo = Depends(get_timezone),
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
    repository: EventRepository = Depends(get_event_repository),
):
    try:
        return await event_service.create_event(gateways, repository, session, data, tz)
    except EventCaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{event_id}",
    response_model=EnrichedEvent | None,
    dependencies=[Depends(require_csrf_header)],
)
async def update_event(
    event_id: str,
    data: EventUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
    repository: EventRepository = Depends(get_event_repository),
):
    try:
        return await event_service.update_event(gateways, repository, session, event_id, data)
    except (EventNotFoundError, EventCaseNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{event_id}/status",
    response_model=EnrichedEvent | None,
    dependencies=[Depends(require_csrf_header)],
)
async def update_event_status(
    event_id: str,
    data: EventStatusUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
    repository: EventRepository = Depends(get_event_repository),
):
    try:
        return await event_service.update_event_status(
            gateways, repository, session, event_id, data.status
        )
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{event_id}/archive",
    response_model=EnrichedEvent | None,
    dependencies=[Depends(require_csrf_header)],
)
async def set_event_archived(
    event_id: str,
    data: EventArchiveUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
    repository: EventRepository = Depends(get_event_repository),
):
    try:
        return await event_service.set_event_archived(
            gateways, repository, session, event_id, data.archived
        )
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete(
    "/{event_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
async def delete_event(
    event_id: str,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
    repository: EventRepository = Depends(get_event_repository),
):
    """Delete an archived event (privileged)."""
    try:
        await event_service.delete_event(gateways, repository, session, event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except EventNotArchivedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
