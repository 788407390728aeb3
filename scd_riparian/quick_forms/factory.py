"""Quick form factory: looks up the riparian quick forms by id.

The factory maintains a registry of known forms.  New forms are
registered with ``register_quick_form``.

Usage::

    from scd_riparian.quick_forms.factory import get_quick_form

    form = get_quick_form("riparian_mowing", repository, user)
    result = form.submit(body)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from scd_riparian.core.exceptions import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from scd_riparian.core.config import RiparianConfig
    from scd_riparian.models.entities import User
    from scd_riparian.quick_forms.base import RiparianMaintenanceForm
    from scd_riparian.storage.base import FarmRepository

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Form id constants
# ---------------------------------------------------------------------------

RIPARIAN_HERBICIDE = "riparian_herbicide"
RIPARIAN_MOWING = "riparian_mowing"
RIPARIAN_WATERING = "riparian_watering"

# ---------------------------------------------------------------------------
# Lazy-import form registry
# ---------------------------------------------------------------------------

# Each entry maps a form id to a callable that returns the form *class*.

_FORM_REGISTRY: dict[str, Callable[[], type[RiparianMaintenanceForm]]] = {}


def _register_builtin_forms() -> None:
    def _herbicide() -> type[RiparianMaintenanceForm]:
        from scd_riparian.quick_forms.herbicide import Herbicide

        return Herbicide

    def _mowing() -> type[RiparianMaintenanceForm]:
        from scd_riparian.quick_forms.mowing import Mowing

        return Mowing

    def _watering() -> type[RiparianMaintenanceForm]:
        from scd_riparian.quick_forms.watering import Watering

        return Watering

    _FORM_REGISTRY[RIPARIAN_HERBICIDE] = _herbicide
    _FORM_REGISTRY[RIPARIAN_MOWING] = _mowing
    _FORM_REGISTRY[RIPARIAN_WATERING] = _watering


def _ensure_registry() -> None:
    """Initialise the form registry once (idempotent)."""
    if not _FORM_REGISTRY:
        _register_builtin_forms()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_quick_form(
    form_id: str,
    loader: Callable[[], type[RiparianMaintenanceForm]],
) -> None:
    """Register a custom quick form.

    Raises:
        ValueError: If the form id is empty.
    """
    if not form_id:
        msg = "Quick form id must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _FORM_REGISTRY[form_id] = loader
    logger.debug("Registered quick form: %s", form_id)


def get_quick_form_class(form_id: str) -> type[RiparianMaintenanceForm]:
    """Return the class registered under *form_id*.

    Raises:
        NotFoundError: If the form id is not registered.
    """
    _ensure_registry()

    loader = _FORM_REGISTRY.get(form_id)
    if loader is None:
        available = ", ".join(sorted(_FORM_REGISTRY))
        msg = f"Unknown quick form: {form_id!r}. Available: {available}"
        raise NotFoundError(msg, stage="quick_form")
    return loader()


def get_quick_form(
    form_id: str,
    repository: FarmRepository,
    current_user: User,
    *,
    configuration: Mapping[str, Any] | None = None,
    settings: RiparianConfig | None = None,
) -> RiparianMaintenanceForm:
    """Create the quick form registered under *form_id*.

    Raises:
        NotFoundError: If the form id is not registered.
    """
    form_cls = get_quick_form_class(form_id)
    return form_cls(repository, current_user, configuration=configuration, settings=settings)


def list_quick_forms() -> list[str]:
    """Return the ids of all registered quick forms."""
    _ensure_registry()
    return sorted(_FORM_REGISTRY)
