"""Case API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from caseops.core.deps import get_current_session, get_gateways, require_csrf_header
from caseops.schemas.auth import UserSession
from caseops.schemas.case import (
    CaseAssignUpdate,
    CaseCreate,
    CaseCreateResponse,
    CaseDetail,
    CaseListResponse,
    CaseRecord,
    CaseStatusUpdate,
    PatientSearchResult,
)
from caseops.schemas.query import CaseQuery
from caseops.services import case_service
from caseops.services.case_service import CaseCreationError, CaseNotFoundError, CaseServiceError
from caseops.services.gateways import Gateways
from caseops.utils.pagination import PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=CaseListResponse)
async def list_cases(
    query: CaseQuery = Depends(),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    """Visible cases, newest first, with patient names joined in."""
    page = await case_service.list_cases(gateways, session, query, pagination)
    return CaseListResponse.model_validate(page, from_attributes=True)


@router.get("/patient-search", response_model=list[PatientSearchResult])
async def search_patients(
    q: str = Query("", max_length=200),
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    """Patient lookup used when scheduling an event."""
    return await case_service.search_patients(gateways, session, q)


@router.get("/{case_id}", response_model=CaseDetail)
async def get_case(
    case_id: str,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        return await case_service.get_case_detail(gateways, session, case_id)
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "",
    response_model=CaseCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_csrf_header)],
)
async def create_case(
    data: CaseCreate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        case_id = await case_service.create_case(gateways, session, data)
    except CaseCreationError as e:
        raise HTTPException(
            status_code=502,
            detail={"message": f"{e} Please try again.", "case_id": e.case_id},
        )
    return CaseCreateResponse(case_id=case_id)


@router.patch(
    "/{case_id}/status",
    response_model=CaseRecord,
    dependencies=[Depends(require_csrf_header)],
)
async def update_case_status(
    case_id: str,
    data: CaseStatusUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        return await case_service.update_case_status(gateways, session, case_id, data.status)
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{case_id}/assigned-admins",
    response_model=CaseRecord,
    dependencies=[Depends(require_csrf_header)],
)
async def update_assigned_admins(
    case_id: str,
    data: CaseAssignUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        return await case_service.update_assigned_admins(
            gateways, session, case_id, data.assigned_admins
        )
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except CaseServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{case_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
async def delete_case(
    case_id: str,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    """Delete the case document (privileged). PII and activity entries are kept."""
    try:
        await case_service.delete_case(gateways, session, case_id)
    except CaseNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
