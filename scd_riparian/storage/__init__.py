"""Farm storage backends.

Implements the repository pattern behind the importer and quick forms:
- FarmRepository: Abstract base class defining the interface
- InMemoryFarmRepository: Process-local dicts (local dev and tests)
- FarmOSRepository: farmOS JSON:API over httpx (production)

Quick form configuration is kept separately by a ``ConfigurationStore``
(in memory, or one JSON blob per form in Azure Blob Storage).

The active backend is selected via ``RIPARIAN_BACKEND``.
"""

from scd_riparian.storage.base import (
    FarmRepository,
    RepositoryAuthError,
    RepositoryError,
    RepositoryReadError,
    RepositoryWriteError,
)
from scd_riparian.storage.configuration import (
    BlobConfigurationStore,
    ConfigurationStore,
    InMemoryConfigurationStore,
)
from scd_riparian.storage.factory import (
    get_repository,
    list_repositories,
    register_repository,
)

__all__ = [
    "BlobConfigurationStore",
    "ConfigurationStore",
    "FarmRepository",
    "InMemoryConfigurationStore",
    "RepositoryAuthError",
    "RepositoryError",
    "RepositoryReadError",
    "RepositoryWriteError",
    "get_repository",
    "list_repositories",
    "register_repository",
]
