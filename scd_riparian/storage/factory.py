"""Repository factory: selects the farm storage backend by name.

The factory maintains a registry of known backends.  New backends are
registered with ``register_repository``.

Usage::

    from scd_riparian.storage.factory import get_repository

    repository = get_repository(RiparianConfig.from_env())
    site = repository.load_asset("12")

The backend name is read from the ``RIPARIAN_BACKEND`` environment
variable via ``RiparianConfig.backend``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from scd_riparian.core.config import BACKEND_FARMOS, BACKEND_MEMORY
from scd_riparian.storage.base import RepositoryError

if TYPE_CHECKING:
    from collections.abc import Callable

    from scd_riparian.core.config import RiparianConfig
    from scd_riparian.storage.base import FarmRepository

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Lazy-import backend registry
# ---------------------------------------------------------------------------

# Each entry maps a backend name to a callable that builds the repository
# from the service configuration.  Imports are lazy so that httpx is only
# loaded when the farmOS backend is selected.

_BACKEND_REGISTRY: dict[str, Callable[[RiparianConfig], FarmRepository]] = {}


def _register_builtin_backends() -> None:
    def _memory(config: RiparianConfig) -> FarmRepository:
        from scd_riparian.storage.memory import InMemoryFarmRepository

        return InMemoryFarmRepository()

    def _farmos(config: RiparianConfig) -> FarmRepository:
        from scd_riparian.storage.farmos import FarmOSRepository

        return FarmOSRepository(
            config.farmos_base_url,
            access_token=config.farmos_access_token,
            timeout=config.http_timeout_s,
        )

    _BACKEND_REGISTRY[BACKEND_MEMORY] = _memory
    _BACKEND_REGISTRY[BACKEND_FARMOS] = _farmos


def _ensure_registry() -> None:
    """Initialise the backend registry once (idempotent)."""
    if not _BACKEND_REGISTRY:
        _register_builtin_backends()


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def register_repository(
    name: str,
    loader: Callable[[RiparianConfig], FarmRepository],
) -> None:
    """Register a custom storage backend.

    Args:
        name: Backend name (e.g. ``"sqlite"``).
        loader: Callable building the repository from a ``RiparianConfig``.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Backend name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _BACKEND_REGISTRY[name] = loader
    logger.debug("Registered storage backend: %s", name)


def get_repository(config: RiparianConfig) -> FarmRepository:
    """Create the repository selected by ``config.backend``.

    Raises:
        RepositoryError: If the backend is not registered.
    """
    _ensure_registry()

    loader = _BACKEND_REGISTRY.get(config.backend)
    if loader is None:
        available = ", ".join(sorted(_BACKEND_REGISTRY))
        msg = f"Unknown storage backend: {config.backend!r}. Available: {available}"
        raise RepositoryError(config.backend, msg)

    logger.info("Creating farm repository: %s", config.backend)
    return loader(config)


def list_repositories() -> list[str]:
    """Return the names of all registered storage backends."""
    _ensure_registry()
    return sorted(_BACKEND_REGISTRY)
