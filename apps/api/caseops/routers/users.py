"""User management API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from caseops.core.deps import get_current_session, get_gateways, require_csrf_header
from caseops.schemas.auth import UserSession
from caseops.schemas.query import UserQuery
from caseops.schemas.user import TwoFactorUpdate, UserListResponse, UserRecord, UserUpdate
from caseops.services import user_service
from caseops.services.gateways import Gateways
from caseops.services.user_service import UserNotFoundError, UserServiceError
from caseops.utils.pagination import Page, PaginationParams, get_pagination

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    query: UserQuery = Depends(),
    pagination: PaginationParams = Depends(get_pagination),
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    """List console users (privileged)."""
    users = await user_service.list_users(gateways, session, query)
    return UserListResponse.model_validate(Page.create(users, pagination), from_attributes=True)


@router.get("/{user_id}", response_model=UserRecord)
async def get_user(
    user_id: str,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        return await user_service.get_user(gateways, session, user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch(
    "/{user_id}",
    response_model=UserRecord,
    dependencies=[Depends(require_csrf_header)],
)
async def update_user(
    user_id: str,
    data: UserUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    """Change name, email, role or status (active/blocked/restricted)."""
    try:
        return await user_service.update_user(gateways, session, user_id, data)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put(
    "/{user_id}/two-factor",
    response_model=UserRecord,
    dependencies=[Depends(require_csrf_header)],
)
async def set_two_factor(
    user_id: str,
    data: TwoFactorUpdate,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        return await user_service.set_two_factor(gateways, session, user_id, data.enabled)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_csrf_header)],
)
async def delete_user(
    user_id: str,
    session: UserSession = Depends(get_current_session),
    gateways: Gateways = Depends(get_gateways),
):
    try:
        await user_service.delete_user(gateways, session, user_id)
    except UserNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except UserServiceError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
