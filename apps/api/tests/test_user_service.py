import pytest
from fastapi import HTTPException

from caseops.db.enums import Role, UserStatus, UserStatusFilter
from caseops.schemas.query import UserQuery
from caseops.schemas.user import UserUpdate
from caseops.services import user_service
from caseops.services.user_service import UserNotFoundError, UserServiceError

from conftest import ADMIN_ID, OTHER_ADMIN_ID, SUPER_ADMIN_ID


@pytest.mark.asyncio
async def test_list_users_is_privileged_and_sorted(gateways, admin_session, super_session):
    with pytest.raises(HTTPException) as exc:
        await user_service.list_users(gateways, admin_session, UserQuery())
    assert exc.value.status_code == 403

    users = await user_service.list_users(gateways, super_session, UserQuery())
    assert [u.name for u in users] == ["Ada Admin", "Otto Other", "Sam Super"]


@pytest.mark.asyncio
async def test_status_filters(gateways, super_session, store):
    store.put("users", "uid-b", name="Bo Blocked", email="bo@example.com", blocked=True)
    store.put("users", "uid-r", name="Ru Restricted", email="ru@example.com", restricted=True)

    async def names(status, search=""):
        users = await user_service.list_users(gateways, super_session, UserQuery(status=status, search=search))
        return [u.name for u in users]

    assert "Bo Blocked" not in await names(UserStatusFilter.ACTIVE)
    assert await names(UserStatusFilter.BLOCKED) == ["Bo Blocked", "Ru Restricted"]
    assert await names(UserStatusFilter.RESTRICTED) == ["Ru Restricted"]
    assert len(await names(UserStatusFilter.ALL)) == 5
    assert await names(UserStatusFilter.ALL, search="OTTO@") == ["Otto Other"]


@pytest.mark.asyncio
async def test_update_sets_exclusive_flags(gateways, super_session, store):
    blocked = await user_service.update_user(
        gateways, super_session, ADMIN_ID, UserUpdate(status=UserStatus.BLOCKED, blocked_reason="left")
    )
    assert (blocked.blocked, blocked.restricted, blocked.blocked_reason) == (True, False, "left")

    restricted = await user_service.update_user(
        gateways, super_session, ADMIN_ID, UserUpdate(status=UserStatus.RESTRICTED)
    )
    assert (restricted.blocked, restricted.restricted) == (False, True)

    active = await user_service.update_user(
        gateways, super_session, ADMIN_ID, UserUpdate(status=UserStatus.ACTIVE, blocked_reason="ignored")
    )
    assert (active.blocked, active.restricted, active.blocked_reason) == (False, False, "")


@pytest.mark.asyncio
async def test_update_role_and_profile(gateways, super_session):
    user = await user_service.update_user(
        gateways, super_session, OTHER_ADMIN_ID,
        UserUpdate(role=Role.TEAM_MANAGER, name="Otto O."),
    )
    assert user.role == "team_manager"
    assert user.name == "Otto O."


@pytest.mark.asyncio
async def test_update_missing_user(gateways, super_session):
    with pytest.raises(UserNotFoundError):
        await user_service.update_user(gateways, super_session, "uid-nobody", UserUpdate(name="x"))


@pytest.mark.asyncio
async def test_delete_rules(gateways, super_session, admin_session, store):
    with pytest.raises(HTTPException):
        await user_service.delete_user(gateways, admin_session, OTHER_ADMIN_ID)
    with pytest.raises(UserServiceError):
        await user_service.delete_user(gateways, super_session, SUPER_ADMIN_ID)

    await user_service.delete_user(gateways, super_session, OTHER_ADMIN_ID)
    assert OTHER_ADMIN_ID not in {d["id"] for d in store.docs("users")}

    with pytest.raises(UserNotFoundError):
        await user_service.delete_user(gateways, super_session, OTHER_ADMIN_ID)


@pytest.mark.asyncio
async def test_two_factor_self_or_privileged(gateways, admin_session, super_session, store):
    user = await user_service.set_two_factor(gateways, admin_session, ADMIN_ID, True)
    assert user.two_factor_enabled is True
    doc = next(d for d in store.docs("users") if d["id"] == ADMIN_ID)
    assert "two_factor_enabled_at" in doc

    with pytest.raises(HTTPException):
        await user_service.set_two_factor(gateways, admin_session, OTHER_ADMIN_ID, True)

    user = await user_service.set_two_factor(gateways, super_session, ADMIN_ID, False)
    assert user.two_factor_enabled is False


@pytest.mark.asyncio
async def test_get_user_self_or_privileged(gateways, admin_session, super_session):
    assert (await user_service.get_user(gateways, admin_session, ADMIN_ID)).email == "ada@example.com"
    assert (await user_service.get_user(gateways, super_session, ADMIN_ID)).user_id == ADMIN_ID
    with pytest.raises(HTTPException):
        await user_service.get_user(gateways, admin_session, OTHER_ADMIN_ID)
