# Overview: Location classification and per-user location scope.

"""
Location classification and accessible-location sets.

Everything here except load_location_classifier() is pure: it works on
location records and session users handed in by the caller and never reads
the database or the request.

ACCESSIBLE LOCATIONS:
- super_admin -> ALL_LOCATIONS sentinel (never materialized, so locations
  added later are covered automatically)
- admin -> the explicit location grants
- sales_manager / user -> {assigned_location_id}, or empty if unassigned
- anything else -> empty
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Iterable

from flask import current_app

from ..errors import ConfigurationError, NotFoundError
from ..extensions import db
from ..models import Location, LOCATION_TYPE_WAREHOUSE, LOCATION_TYPE_SHOWROOM, LOCATION_TYPES
from ..permissions import Role, SINGLE_LOCATION_ROLES


UNKNOWN_POLICY_ERROR = "error"
UNKNOWN_POLICY_DENY = "deny"
UNKNOWN_POLICIES = (UNKNOWN_POLICY_ERROR, UNKNOWN_POLICY_DENY)


class AllLocations:
    """Universal set: every location, including ones created later."""
    is_all = True

    def contains(self, location_id) -> bool:
        return True

    def filter_ids(self, location_ids: Iterable[int]) -> list[int]:
        return list(location_ids)

    def __repr__(self) -> str:
        return "AllLocations()"


ALL_LOCATIONS = AllLocations()


@dataclass(frozen=True)
class SpecificLocations:
    """An enumerated set of location ids (possibly empty)."""
    location_ids: frozenset = frozenset()
    is_all: ClassVar[bool] = False

    def contains(self, location_id) -> bool:
        return location_id in self.location_ids

    def filter_ids(self, location_ids: Iterable[int]) -> list[int]:
        return [location_id for location_id in location_ids if location_id in self.location_ids]

    def __iter__(self):
        return iter(sorted(self.location_ids))

    def __len__(self) -> int:
        return len(self.location_ids)


NO_LOCATIONS = SpecificLocations()


def accessible_locations(user) -> AllLocations | SpecificLocations:
    """Locations the session user may act on, derived from role and grants."""
    if user is None:
        return NO_LOCATIONS

    if user.role == Role.SUPER_ADMIN:
        return ALL_LOCATIONS

    if user.role == Role.ADMIN:
        return SpecificLocations(frozenset(user.location_ids))

    if user.role in SINGLE_LOCATION_ROLES:
        if user.assigned_location_id is None:
            return NO_LOCATIONS
        return SpecificLocations(frozenset({user.assigned_location_id}))

    return NO_LOCATIONS


class LocationClassifier:
    """
    Read-only view over location reference data keyed by id.

    unknown_policy decides what an id missing from the reference data means:
    "error" raises NotFoundError, "deny" classifies it as neither kind.
    """

    def __init__(self, location_types: dict[int, str], unknown_policy: str = UNKNOWN_POLICY_ERROR):
        if unknown_policy not in UNKNOWN_POLICIES:
            raise ConfigurationError(f"Unknown location policy: {unknown_policy!r}")
        for location_id, location_type in location_types.items():
            if location_type not in LOCATION_TYPES:
                raise ConfigurationError(
                    f"Location {location_id} has unclassifiable type {location_type!r}"
                )
        self._types = dict(location_types)
        self.unknown_policy = unknown_policy

    @classmethod
    def from_records(cls, records: Iterable, unknown_policy: str = UNKNOWN_POLICY_ERROR) -> "LocationClassifier":
        """Build from Location rows or any objects with `id` and `type`."""
        return cls({record.id: record.type for record in records}, unknown_policy=unknown_policy)

    def knows(self, location_id) -> bool:
        return location_id in self._types

    def type_of(self, location_id) -> str | None:
        location_type = self._types.get(location_id)
        if location_type is None and self.unknown_policy == UNKNOWN_POLICY_ERROR:
            raise NotFoundError(f"Location {location_id} not found")
        return location_type

    def is_warehouse(self, location_id) -> bool:
        return self.type_of(location_id) == LOCATION_TYPE_WAREHOUSE

    def is_showroom(self, location_id) -> bool:
        return self.type_of(location_id) == LOCATION_TYPE_SHOWROOM

    def ids_of_type(self, location_type: str) -> list[int]:
        return sorted(location_id for location_id, kind in self._types.items() if kind == location_type)

    def warehouses(self) -> list[int]:
        return self.ids_of_type(LOCATION_TYPE_WAREHOUSE)

    def showrooms(self) -> list[int]:
        return self.ids_of_type(LOCATION_TYPE_SHOWROOM)

    def accessible_locations(self, user) -> AllLocations | SpecificLocations:
        return accessible_locations(user)

    def any_of_type(self, accessible, location_type: str) -> bool:
        """
        True if the accessible set holds at least one location of the type.

        Granted ids missing from reference data (e.g. deactivated locations)
        cannot be classified and never count.
        """
        candidates = self._types if accessible.is_all else accessible.location_ids
        return any(self._types.get(location_id) == location_type for location_id in candidates)


def get_location(location_id: int) -> Location:
    location = db.session.query(Location).filter_by(id=location_id).first()
    if not location:
        raise NotFoundError(f"Location {location_id} not found")
    return location


def load_location_classifier(unknown_policy: str | None = None) -> LocationClassifier:
    """Classifier over active locations, using the app's unknown-location policy."""
    if unknown_policy is None:
        unknown_policy = current_app.config.get("UNKNOWN_LOCATION_POLICY", UNKNOWN_POLICY_ERROR)
    records = db.session.query(Location).filter_by(status="active").all()
    return LocationClassifier.from_records(records, unknown_policy=unknown_policy)
