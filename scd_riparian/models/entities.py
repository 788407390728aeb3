"""Typed models for the farm entities the service reads and writes.

- ``Term``:  a taxonomy term (unit, material type, log category)
- ``User``:  an account with roles and a preferred timezone
- ``Asset``: a land asset (imported site or segment)

All models are frozen dataclasses with ``to_dict`` / ``from_dict`` so
that storage backends and HTTP responses share one serialised shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from scd_riparian.core.constants import (
    ADMIN_USER_ID,
    ASSET_STATUS_ACTIVE,
    ASSET_TYPE_LAND,
    ROLE_PERMISSIONS,
)
from scd_riparian.core.exceptions import RiparianError, ValidationError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        RiparianError.__init__(self, formatted)


def _check_not_empty(model: str, field_name: str, value: str) -> None:
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Term:
    """A taxonomy term.

    Attributes:
        id: Storage identifier.
        name: Human-readable term name (e.g. ``"mph"``).
        vocabulary: Vocabulary machine name (e.g. ``"unit"``).
    """

    id: str
    name: str
    vocabulary: str

    def __post_init__(self) -> None:
        _check_not_empty("Term", "name", self.name)
        _check_not_empty("Term", "vocabulary", self.vocabulary)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "vocabulary": self.vocabulary}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Term:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            vocabulary=str(data.get("vocabulary", "")),
        )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class User:
    """A user account.

    Attributes:
        id: Storage identifier. ``"1"`` is the site administrator.
        name: Account / display name.
        roles: Role machine names (see ``ROLE_PERMISSIONS``).
        active: Whether the account is enabled.
        timezone: IANA timezone name; empty means "use the service default".
    """

    id: str
    name: str
    roles: frozenset[str] = field(default_factory=frozenset)
    active: bool = True
    timezone: str = ""

    @property
    def is_admin(self) -> bool:
        return self.id == ADMIN_USER_ID

    @property
    def permissions(self) -> frozenset[str]:
        """Union of the permissions granted by every role."""
        granted: set[str] = set()
        for role in self.roles:
            granted |= ROLE_PERMISSIONS.get(role, frozenset())
        return frozenset(granted)

    def has_permission(self, permission: str) -> bool:
        """Return ``True`` if the user holds *permission* (admins hold all)."""
        if not self.active:
            return False
        return self.is_admin or permission in self.permissions

    def zone(self, default: ZoneInfo) -> ZoneInfo:
        """Return the user's timezone, falling back to *default*."""
        if not self.timezone:
            return default
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            return default

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "roles": sorted(self.roles),
            "active": self.active,
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> User:
        roles_raw = data.get("roles", [])
        if not isinstance(roles_raw, list | tuple | set | frozenset):
            msg = f"roles must be a list, got {type(roles_raw).__name__}"
            raise TypeError(msg)
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            roles=frozenset(str(r) for r in roles_raw),
            active=bool(data.get("active", True)),
            timezone=str(data.get("timezone", "") or ""),
        )


# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Asset:
    """A land asset.

    Attributes:
        name: Asset label.
        land_type: Land type bundle (``scd_site``, ``scd_segment``, ...).
        id: Storage identifier; empty until the asset has been saved.
        asset_type: Asset bundle; always ``"land"`` here.
        status: ``"active"`` or ``"archived"``.
        is_location: Whether logs may reference the asset as a location.
        is_fixed: Whether the asset has a fixed (intrinsic) geometry.
        intrinsic_geometry: WKT geometry, or ``None``.
        notes: Free-text notes.
        parent_id: Identifier of the parent asset, or ``None``.
    """

    name: str
    land_type: str
    id: str = ""
    asset_type: str = ASSET_TYPE_LAND
    status: str = ASSET_STATUS_ACTIVE
    is_location: bool = True
    is_fixed: bool = True
    intrinsic_geometry: str | None = None
    notes: str | None = None
    parent_id: str | None = None

    def __post_init__(self) -> None:
        _check_not_empty("Asset", "name", self.name)
        _check_not_empty("Asset", "land_type", self.land_type)

    @property
    def label(self) -> str:
        return self.name

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "asset_type": self.asset_type,
            "land_type": self.land_type,
            "status": self.status,
            "is_location": self.is_location,
            "is_fixed": self.is_fixed,
            "intrinsic_geometry": self.intrinsic_geometry,
            "notes": self.notes,
            "parent_id": self.parent_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> Asset:
        geometry = data.get("intrinsic_geometry")
        notes = data.get("notes")
        parent_id = data.get("parent_id")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            asset_type=str(data.get("asset_type", ASSET_TYPE_LAND)),
            land_type=str(data.get("land_type", "")),
            status=str(data.get("status", ASSET_STATUS_ACTIVE)),
            is_location=bool(data.get("is_location", True)),
            is_fixed=bool(data.get("is_fixed", True)),
            intrinsic_geometry=str(geometry) if geometry is not None else None,
            notes=str(notes) if notes is not None else None,
            parent_id=str(parent_id) if parent_id is not None else None,
        )
