"""Shared constants: single source of truth.

Centralises entity bundle names, statuses, roles and vocabularies that
are used by the importer, the quick forms and the storage backends.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Log types and statuses
# ---------------------------------------------------------------------------

LOG_TYPE_ACTIVITY: str = "activity"
LOG_TYPE_INPUT: str = "input"

LOG_STATUS_PENDING: str = "pending"
LOG_STATUS_DONE: str = "done"

# ---------------------------------------------------------------------------
# Assets
# ---------------------------------------------------------------------------

ASSET_TYPE_LAND: str = "land"

LAND_TYPE_SITE: str = "scd_site"
"""Land type of the parent asset created for each imported KML folder."""

LAND_TYPE_SEGMENT: str = "scd_segment"
"""Land type of the child assets created for each imported placemark."""

ASSET_STATUS_ACTIVE: str = "active"
ASSET_STATUS_ARCHIVED: str = "archived"

# ---------------------------------------------------------------------------
# Quantities
# ---------------------------------------------------------------------------

QUANTITY_TYPE_STANDARD: str = "standard"
QUANTITY_TYPE_MATERIAL: str = "material"

# ---------------------------------------------------------------------------
# Taxonomy vocabularies
# ---------------------------------------------------------------------------

VOCABULARY_UNIT: str = "unit"
VOCABULARY_MATERIAL_TYPE: str = "material_type"
VOCABULARY_LOG_CATEGORY: str = "log_category"

# ---------------------------------------------------------------------------
# Users, roles and permissions
# ---------------------------------------------------------------------------

ADMIN_USER_ID: str = "1"
"""The site administrator account, never offered as a crew lead."""

ROLE_FARM_MANAGER: str = "farm_manager"
ROLE_FARM_WORKER: str = "farm_worker"
ROLE_FARM_VIEWER: str = "farm_viewer"

CREW_LEAD_ROLES: tuple[str, ...] = (ROLE_FARM_MANAGER, ROLE_FARM_WORKER)

PERMISSION_CREATE_LAND_ASSET: str = "create land asset"
PERMISSION_ADMINISTER_QUICK_FORMS: str = "administer quick forms"


def create_log_permission(log_type: str) -> str:
    """Return the permission name required to create a log of *log_type*."""
    return f"create {log_type} log"


ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    ROLE_FARM_MANAGER: frozenset(
        {
            create_log_permission(LOG_TYPE_ACTIVITY),
            create_log_permission(LOG_TYPE_INPUT),
            PERMISSION_CREATE_LAND_ASSET,
            PERMISSION_ADMINISTER_QUICK_FORMS,
        }
    ),
    ROLE_FARM_WORKER: frozenset(
        {
            create_log_permission(LOG_TYPE_ACTIVITY),
            create_log_permission(LOG_TYPE_INPUT),
        }
    ),
    ROLE_FARM_VIEWER: frozenset(),
}

# ---------------------------------------------------------------------------
# Blob containers
# ---------------------------------------------------------------------------

DEFAULT_KML_UPLOAD_CONTAINER: str = "kml"
"""Private container that keeps every uploaded KML/KMZ file."""

DEFAULT_QUICK_FORM_CONFIG_CONTAINER: str = "quick-form-config"
"""Container holding one JSON configuration document per quick form."""
