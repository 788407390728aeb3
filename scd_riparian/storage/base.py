"""FarmRepository abstract base class.

Defines the storage contract the importer and the quick forms depend
on.  Callers interact exclusively with this interface and never know
which backend sits behind it.

Every backend implements:
    - logs:   ``create_log``
    - assets: ``create_asset``, ``load_asset``, ``query_assets``, ``asset_url``
    - users:  ``load_user``, ``query_users``
    - terms:  ``load_term``, ``load_terms``, ``create_or_load_term``

``InMemoryFarmRepository`` (local dev and tests) and ``FarmOSRepository``
(farmOS JSON:API over httpx) are the two built-in backends.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from scd_riparian.core.exceptions import RiparianError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from scd_riparian.models.entities import Asset, Term, User
    from scd_riparian.models.log import LogTemplate


class FarmRepository(abc.ABC):
    """Abstract base class for farm storage backends."""

    #: Backend name used in logs and error messages.
    name: str = ""

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def create_log(self, log: LogTemplate) -> str:
        """Persist one log (with its quantities) and return its id.

        Raises:
            RepositoryError: On storage failures.
        """

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def create_asset(self, asset: Asset) -> Asset:
        """Persist a new asset and return it with its id populated."""

    @abc.abstractmethod
    def load_asset(self, asset_id: str) -> Asset | None:
        """Return the asset with *asset_id*, or ``None`` if unknown."""

    @abc.abstractmethod
    def query_assets(
        self,
        *,
        parent_id: str | None = None,
        asset_type: str | None = None,
        land_type: str | None = None,
        exclude_status: str | None = None,
    ) -> list[Asset]:
        """Return matching assets sorted by id.

        Every argument that is not ``None`` narrows the result.
        """

    @abc.abstractmethod
    def asset_url(self, asset: Asset) -> str:
        """Return an absolute URL (or URI) identifying *asset*."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def load_user(self, user_id: str) -> User | None:
        """Return the user with *user_id*, or ``None`` if unknown."""

    @abc.abstractmethod
    def query_users(self, roles: Iterable[str] = ()) -> list[User]:
        """Return active users, excluding the administrator.

        When *roles* is non-empty only users holding at least one of
        them are returned.
        """

    # ------------------------------------------------------------------
    # Taxonomy terms
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def load_term(self, term_id: str, vocabulary: str) -> Term | None:
        """Return the term with *term_id* in *vocabulary*, or ``None`` if unknown."""

    @abc.abstractmethod
    def load_terms(self, vocabulary: str) -> list[Term]:
        """Return every term of *vocabulary* in storage order."""

    @abc.abstractmethod
    def create_or_load_term(self, name: str, vocabulary: str) -> Term:
        """Return the term named *name* in *vocabulary*, creating it if missing."""

    def close(self) -> None:  # noqa: B027
        """Release backend resources (no-op by default)."""

    def __enter__(self) -> FarmRepository:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Repository exceptions
# ---------------------------------------------------------------------------


class RepositoryError(RiparianError):
    """Base exception for storage backend errors.

    Attributes:
        backend: Name of the backend that raised the error.
        message: Human-readable error description.
        retryable: Whether the caller may retry the operation.
    """

    default_stage = "repository"
    default_code = "REPOSITORY_ERROR"

    def __init__(
        self,
        backend: str,
        message: str,
        *,
        retryable: bool = False,
    ) -> None:
        self.backend = backend
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.backend}] {self.message}"


class RepositoryAuthError(RepositoryError):
    """Authentication or authorisation failure with the backend."""

    default_code = "REPOSITORY_AUTH_FAILED"

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(backend, message, retryable=False)


class RepositoryWriteError(RepositoryError):
    """A create request was rejected or failed."""

    default_code = "REPOSITORY_WRITE_FAILED"


class RepositoryReadError(RepositoryError):
    """A load or query request failed."""

    default_code = "REPOSITORY_READ_FAILED"
