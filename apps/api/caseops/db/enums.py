"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Console roles.

    - SUPER_ADMIN: privileged, sees every record and may delete
    - ADMIN: standard, sees only records they created or are assigned to
    - DEPARTMENT_MANAGER / PROGRAM_MANAGER / TEAM_MANAGER / INSTRUCTOR:
      specialized sub-roles, scoped like ADMIN
    - BLOCKED: legacy role value written before the blocked flag existed
    """
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    DEPARTMENT_MANAGER = "department_manager"
    PROGRAM_MANAGER = "program_manager"
    TEAM_MANAGER = "team_manager"
    INSTRUCTOR = "instructor"
    BLOCKED = "blocked"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


PRIVILEGED_ROLES = frozenset({Role.SUPER_ADMIN})


class CaseStatus(str, Enum):
    """
    Case status. Transitions are unconstrained:

        new ⇄ active ⇄ inactive
    """
    NEW = "new"
    ACTIVE = "active"
    INACTIVE = "inactive"


class EventStatus(str, Enum):
    """Event status. Archive is a separate boolean, not a status."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def active_aliases(cls) -> frozenset[str]:
        """Stored values that count as active (legacy events used "new")."""
        return frozenset({cls.ACTIVE.value, "new"})


class ActivityAction(str, Enum):
    """Action tags written to the activity log."""
    CASE_CREATED = "case_created"
    CASE_DELETED = "case_deleted"
    STATUS_UPDATED = "status_updated"
    ASSIGNMENT_UPDATED = "assignment_updated"
    EVENT_STATUS_UPDATED = "event_status_updated"
    EVENT_ARCHIVED = "event_archived"
    EVENT_UNARCHIVED = "event_unarchived"
    EVENT_UPDATED = "event_updated"
    EVENT_DELETED = "event_deleted"
    MEETING = "meeting"


class EventBucket(str, Enum):
    """Event list views. Exactly one is requested at a time."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class UserStatus(str, Enum):
    """User account state as edited in user management."""
    ACTIVE = "active"
    BLOCKED = "blocked"
    RESTRICTED = "restricted"


class UserStatusFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"  # neither blocked nor restricted
    BLOCKED = "blocked"  # blocked or restricted
    RESTRICTED = "restricted"


class ActivityWindow(str, Enum):
    """Time windows for the activity log view."""
    ALL = "all"
    TODAY = "today"
    LAST_WEEK = "last_week"
    LAST_MONTH = "last_month"


class Collection(str, Enum):
    """Document store collections."""
    USERS = "users"
    PATIENTS = "patients"
    EVENTS = "events"
    ACTIVITIES = "activities"
    TASKS = "tasks"  # no service reads or writes it yet
