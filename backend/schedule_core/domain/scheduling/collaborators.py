"""
External collaborators of the scheduling core.

The core asks two questions of the outside world: which time zone a tenant
lives in, and whether a set of user ids names real assignees. Holiday dates
come from a ``HolidayCalendar`` value object.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from zoneinfo import ZoneInfo

from ..shared.exceptions import UnknownAssigneeError


class TenantTimeZoneProvider(ABC):
    """Resolves the time zone wall-clock times of a tenant are expressed in."""

    @abstractmethod
    def time_zone_for(self, tenant_id: str) -> ZoneInfo:
        pass


class StaticTimeZoneProvider(TenantTimeZoneProvider):
    """Per-tenant overrides on top of a default zone."""

    def __init__(
        self, default: str = "UTC", overrides: Mapping[str, str] | None = None
    ) -> None:
        self._default = ZoneInfo(default)
        self._overrides = {
            tenant: ZoneInfo(zone) for tenant, zone in (overrides or {}).items()
        }

    def time_zone_for(self, tenant_id: str) -> ZoneInfo:
        return self._overrides.get(tenant_id, self._default)


class AssigneeDirectory(ABC):
    """Knows which user ids are valid assignees of a tenant."""

    @abstractmethod
    def unknown_user_ids(self, tenant_id: str, user_ids: Iterable[str]) -> list[str]:
        """Return the ids from ``user_ids`` that are not known, in input order."""

    def ensure_known(self, tenant_id: str, user_ids: Iterable[str]) -> None:
        unknown = self.unknown_user_ids(tenant_id, user_ids)
        if unknown:
            raise UnknownAssigneeError(unknown)


class OpenAssigneeDirectory(AssigneeDirectory):
    """Accepts every user id."""

    def unknown_user_ids(self, tenant_id: str, user_ids: Iterable[str]) -> list[str]:
        return []


class StaticAssigneeDirectory(AssigneeDirectory):
    """Directory backed by an in-memory mapping of tenant to user ids."""

    def __init__(self, users_by_tenant: Mapping[str, Iterable[str]]) -> None:
        self._users = {
            tenant: frozenset(users) for tenant, users in users_by_tenant.items()
        }

    def unknown_user_ids(self, tenant_id: str, user_ids: Iterable[str]) -> list[str]:
        known = self._users.get(tenant_id, frozenset())
        return [user_id for user_id in user_ids if user_id not in known]
