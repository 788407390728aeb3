"""In-memory farm repository.

Keeps every entity in process-local dicts with per-entity-type numeric
id sequences.  Used for local development and as the test double for
the importer and quick forms.  Nothing survives a worker restart.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from scd_riparian.core.constants import ADMIN_USER_ID
from scd_riparian.models.entities import Asset, Term, User
from scd_riparian.storage.base import FarmRepository

if TYPE_CHECKING:
    from collections.abc import Iterable

    from scd_riparian.models.log import LogTemplate

logger = logging.getLogger("scd_riparian.storage.memory")


def _id_sort_key(entity_id: str) -> tuple[int, int | str]:
    """Sort numeric ids numerically, anything else after them lexically."""
    return (0, int(entity_id)) if entity_id.isdigit() else (1, entity_id)


class InMemoryFarmRepository(FarmRepository):
    """Dict-backed ``FarmRepository``.

    Args:
        users: Accounts to seed (ids are kept as given).
        terms: Taxonomy terms to seed (ids are kept as given).
        base_url: Prefix used by ``asset_url``.
    """

    name = "memory"

    def __init__(
        self,
        *,
        users: Iterable[User] = (),
        terms: Iterable[Term] = (),
        base_url: str = "memory://farm",
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._users: dict[str, User] = {u.id: u for u in users}
        self._terms: dict[str, Term] = {t.id: t for t in terms}
        self._assets: dict[str, Asset] = {}
        self._logs: dict[str, LogTemplate] = {}
        self._sequences: dict[str, itertools.count[int]] = {}

    def _next_id(self, entity_type: str, existing: dict[str, object]) -> str:
        sequence = self._sequences.setdefault(entity_type, itertools.count(1))
        while True:
            candidate = str(next(sequence))
            if candidate not in existing:
                return candidate

    # ------------------------------------------------------------------
    # Inspection helpers (not part of the FarmRepository contract)
    # ------------------------------------------------------------------

    @property
    def logs(self) -> dict[str, LogTemplate]:
        """Created logs keyed by id, in creation order."""
        return dict(self._logs)

    @property
    def assets(self) -> dict[str, Asset]:
        """Stored assets keyed by id, in creation order."""
        return dict(self._assets)

    def add_user(self, user: User) -> None:
        """Store *user*, replacing any user with the same id."""
        self._users[user.id] = user

    def add_asset(self, asset: Asset) -> Asset:
        """Store *asset* as-is when it has an id, else assign one."""
        if asset.id:
            self._assets[asset.id] = asset
            return asset
        return self.create_asset(asset)

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def create_log(self, log: LogTemplate) -> str:
        log_id = self._next_id("log", self._logs)  # type: ignore[arg-type]
        self._logs[log_id] = log
        logger.debug("Stored log | id=%s | type=%s | name=%s", log_id, log.log_type, log.name)
        return log_id

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def create_asset(self, asset: Asset) -> Asset:
        asset_id = self._next_id("asset", self._assets)  # type: ignore[arg-type]
        stored = replace(asset, id=asset_id)
        self._assets[asset_id] = stored
        logger.debug(
            "Stored asset | id=%s | land_type=%s | name=%s", asset_id, asset.land_type, asset.name
        )
        return stored

    def load_asset(self, asset_id: str) -> Asset | None:
        return self._assets.get(str(asset_id))

    def query_assets(
        self,
        *,
        parent_id: str | None = None,
        asset_type: str | None = None,
        land_type: str | None = None,
        exclude_status: str | None = None,
    ) -> list[Asset]:
        matches = [
            a
            for a in self._assets.values()
            if (parent_id is None or a.parent_id == str(parent_id))
            and (asset_type is None or a.asset_type == asset_type)
            and (land_type is None or a.land_type == land_type)
            and (exclude_status is None or a.status != exclude_status)
        ]
        return sorted(matches, key=lambda a: _id_sort_key(a.id))

    def asset_url(self, asset: Asset) -> str:
        return f"{self._base_url}/asset/{asset.id}"

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def load_user(self, user_id: str) -> User | None:
        return self._users.get(str(user_id))

    def query_users(self, roles: Iterable[str] = ()) -> list[User]:
        wanted = frozenset(roles)
        matches = [
            u
            for u in self._users.values()
            if u.active and u.id != ADMIN_USER_ID and (not wanted or u.roles & wanted)
        ]
        return sorted(matches, key=lambda u: _id_sort_key(u.id))

    # ------------------------------------------------------------------
    # Taxonomy terms
    # ------------------------------------------------------------------

    def load_term(self, term_id: str, vocabulary: str) -> Term | None:
        term = self._terms.get(str(term_id))
        if term is None or term.vocabulary != vocabulary:
            return None
        return term

    def load_terms(self, vocabulary: str) -> list[Term]:
        return [t for t in self._terms.values() if t.vocabulary == vocabulary]

    def create_or_load_term(self, name: str, vocabulary: str) -> Term:
        for term in self._terms.values():
            if term.vocabulary == vocabulary and term.name == name:
                return term
        term = Term(id=self._next_id("term", self._terms), name=name, vocabulary=vocabulary)  # type: ignore[arg-type]
        self._terms[term.id] = term
        logger.debug("Created term | id=%s | vocabulary=%s | name=%s", term.id, vocabulary, name)
        return term
