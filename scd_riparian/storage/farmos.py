"""farmOS JSON:API repository.

Production backend that stores logs, quantities and land assets in a
farmOS 2.x/3.x instance through its JSON:API, using ``httpx``.

Resource mapping:
    log       → ``/api/log/{log_type}``
    quantity  → ``/api/quantity/{standard|material}`` (created before the log)
    asset     → ``/api/asset/{asset_type}``
    user      → ``/api/user/user``
    term      → ``/api/taxonomy_term/{vocabulary}``

Entity ids are farmOS UUIDs.  Collection reads follow ``links.next``
pagination.  HTTP failures map onto ``RepositoryError`` subclasses:
401/403 → ``RepositoryAuthError``; 429 / 5xx / network errors are
retryable.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from scd_riparian.core.constants import ASSET_TYPE_LAND, VOCABULARY_UNIT
from scd_riparian.models.entities import Asset, Term, User
from scd_riparian.storage.base import (
    FarmRepository,
    RepositoryAuthError,
    RepositoryError,
    RepositoryReadError,
    RepositoryWriteError,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from scd_riparian.models.log import LogTemplate, QuantityEntry

logger = logging.getLogger("scd_riparian.storage.farmos")

JSONAPI_MEDIA_TYPE = "application/vnd.api+json"

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})
_AUTH_STATUS = frozenset({401, 403})


class FarmOSRepository(FarmRepository):
    """``FarmRepository`` backed by the farmOS JSON:API.

    Args:
        base_url: farmOS site root (e.g. ``https://farm.example.org``).
        access_token: OAuth2 bearer token; empty sends no Authorization header.
        timeout: Request timeout in seconds.
        transport: Optional ``httpx`` transport (used by tests).
    """

    name = "farmos"

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str = "",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url:
            msg = "farmOS base URL must be non-empty"
            raise RepositoryError(self.name, msg)
        self._base_url = base_url.rstrip("/")
        headers = {"Accept": JSONAPI_MEDIA_TYPE, "Content-Type": JSONAPI_MEDIA_TYPE}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        self._client = httpx.Client(
            base_url=f"{self._base_url}/api",
            headers=headers,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )
        # uuid → drupal_internal__id, for human-facing asset URLs
        self._internal_ids: dict[str, str] = {}

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        *,
        error_cls: type[RepositoryError],
        allow_404: bool = False,
        **kwargs: Any,
    ) -> dict[str, Any] | None:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            msg = f"{method} {url} failed: {exc}"
            raise error_cls(self.name, msg, retryable=True) from exc

        if allow_404 and response.status_code == 404:
            return None
        if response.status_code in _AUTH_STATUS:
            msg = f"{method} {url} rejected with HTTP {response.status_code}"
            raise RepositoryAuthError(self.name, msg)
        if response.is_error:
            msg = f"{method} {url} failed with HTTP {response.status_code}: {response.text[:500]}"
            raise error_cls(
                self.name, msg, retryable=response.status_code in _RETRYABLE_STATUS
            )

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as exc:
            msg = f"{method} {url} returned a non-JSON body"
            raise error_cls(self.name, msg) from exc
        if not isinstance(body, dict):
            msg = f"{method} {url} returned {type(body).__name__}, expected a JSON:API document"
            raise error_cls(self.name, msg)
        return body

    def _get_resource(self, url: str) -> dict[str, Any] | None:
        body = self._request("GET", url, error_cls=RepositoryReadError, allow_404=True)
        if body is None:
            return None
        data = body.get("data")
        return data if isinstance(data, dict) else None

    def _iter_collection(
        self, url: str, params: dict[str, str] | None = None
    ) -> Iterator[dict[str, Any]]:
        next_url: str | None = url
        next_params = params
        while next_url:
            body = self._request(
                "GET", next_url, error_cls=RepositoryReadError, params=next_params
            ) or {}
            for resource in body.get("data", []) or []:
                if isinstance(resource, dict):
                    yield resource
            links = body.get("links") or {}
            next_link = links.get("next")
            next_url = next_link.get("href") if isinstance(next_link, dict) else None
            # The next link already carries the query string
            next_params = None

    def _post(self, url: str, resource: dict[str, Any]) -> dict[str, Any]:
        body = self._request(
            "POST", url, error_cls=RepositoryWriteError, json={"data": resource}
        ) or {}
        data = body.get("data")
        if not isinstance(data, dict) or not data.get("id"):
            msg = f"POST {url} returned no resource id"
            raise RepositoryWriteError(self.name, msg)
        return data

    # ------------------------------------------------------------------
    # Logs
    # ------------------------------------------------------------------

    def create_log(self, log: LogTemplate) -> str:
        quantity_refs = [self._create_quantity(q) for q in log.quantities]

        attributes: dict[str, Any] = {
            "name": log.name,
            "status": log.status,
        }
        if log.timestamp is not None:
            attributes["timestamp"] = log.timestamp.isoformat()
        if log.notes:
            attributes["notes"] = {"value": log.notes, "format": "default"}
        if log.revision_log_message:
            attributes["revision_log_message"] = log.revision_log_message

        relationships: dict[str, Any] = {
            "location": {"data": [{"type": "asset--land", "id": a} for a in log.location]},
            "quantity": {"data": quantity_refs},
        }
        if log.owner:
            relationships["owner"] = {"data": [{"type": "user--user", "id": log.owner}]}
        if log.category:
            relationships["category"] = {
                "data": [{"type": "taxonomy_term--log_category", "id": log.category}]
            }

        created = self._post(
            f"/log/{log.log_type}",
            {
                "type": f"log--{log.log_type}",
                "attributes": attributes,
                "relationships": relationships,
            },
        )
        logger.info(
            "farmOS log created | id=%s | type=%s | name=%s | quantities=%d",
            created["id"],
            log.log_type,
            log.name,
            len(quantity_refs),
        )
        return str(created["id"])

    def _create_quantity(self, quantity: QuantityEntry) -> dict[str, str]:
        attributes: dict[str, Any] = {"label": quantity.label}
        if quantity.measure:
            attributes["measure"] = quantity.measure
        if quantity.value is not None:
            attributes["value"] = {"decimal": str(quantity.value)}

        relationships: dict[str, Any] = {}
        if quantity.units is not None:
            relationships["units"] = {
                "data": {"type": f"taxonomy_term--{VOCABULARY_UNIT}", "id": quantity.units.id}
            }
        if quantity.material_type is not None:
            relationships["material_type"] = {
                "data": [
                    {
                        "type": f"taxonomy_term--{quantity.material_type.vocabulary}",
                        "id": quantity.material_type.id,
                    }
                ]
            }

        bundle = quantity.quantity_type
        resource: dict[str, Any] = {"type": f"quantity--{bundle}", "attributes": attributes}
        if relationships:
            resource["relationships"] = relationships
        created = self._post(f"/quantity/{bundle}", resource)
        return {"type": f"quantity--{bundle}", "id": str(created["id"])}

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def create_asset(self, asset: Asset) -> Asset:
        attributes: dict[str, Any] = {
            "name": asset.name,
            "status": asset.status,
            "land_type": asset.land_type,
            "is_location": asset.is_location,
            "is_fixed": asset.is_fixed,
        }
        if asset.intrinsic_geometry:
            attributes["intrinsic_geometry"] = {"value": asset.intrinsic_geometry}
        if asset.notes:
            attributes["notes"] = {"value": asset.notes, "format": "default"}

        resource: dict[str, Any] = {"type": f"asset--{asset.asset_type}", "attributes": attributes}
        if asset.parent_id:
            resource["relationships"] = {
                "parent": {"data": [{"type": f"asset--{asset.asset_type}", "id": asset.parent_id}]}
            }

        created = self._post(f"/asset/{asset.asset_type}", resource)
        stored = self._asset_from_resource(created, fallback=asset)
        logger.info(
            "farmOS asset created | id=%s | land_type=%s | name=%s",
            stored.id,
            stored.land_type,
            stored.name,
        )
        return stored

    def load_asset(self, asset_id: str) -> Asset | None:
        resource = self._get_resource(f"/asset/{ASSET_TYPE_LAND}/{asset_id}")
        return self._asset_from_resource(resource) if resource else None

    def query_assets(
        self,
        *,
        parent_id: str | None = None,
        asset_type: str | None = None,
        land_type: str | None = None,
        exclude_status: str | None = None,
    ) -> list[Asset]:
        params: dict[str, str] = {"sort": "drupal_internal__id"}
        if parent_id is not None:
            params["filter[parent.id]"] = str(parent_id)
        if land_type is not None:
            params["filter[land_type]"] = land_type
        if exclude_status is not None:
            params["filter[status_ne][condition][path]"] = "status"
            params["filter[status_ne][condition][operator]"] = "<>"
            params["filter[status_ne][condition][value]"] = exclude_status

        bundle = asset_type or ASSET_TYPE_LAND
        return [
            self._asset_from_resource(r) for r in self._iter_collection(f"/asset/{bundle}", params)
        ]

    def asset_url(self, asset: Asset) -> str:
        internal_id = self._internal_ids.get(asset.id)
        if internal_id:
            return f"{self._base_url}/asset/{internal_id}"
        return f"{self._base_url}/api/asset/{asset.asset_type}/{asset.id}"

    def _asset_from_resource(
        self, resource: dict[str, Any], *, fallback: Asset | None = None
    ) -> Asset:
        attributes = resource.get("attributes") or {}
        relationships = resource.get("relationships") or {}
        asset_id = str(resource.get("id", ""))

        internal_id = attributes.get("drupal_internal__id")
        if internal_id is not None:
            self._internal_ids[asset_id] = str(internal_id)

        geometry = attributes.get("intrinsic_geometry")
        if isinstance(geometry, dict):
            geometry = geometry.get("value")
        notes = attributes.get("notes")
        if isinstance(notes, dict):
            notes = notes.get("value")

        parent_data = (relationships.get("parent") or {}).get("data") or []
        parent_id = str(parent_data[0]["id"]) if parent_data else None

        resource_type = str(resource.get("type", ""))
        asset_type = resource_type.split("--", 1)[1] if "--" in resource_type else ASSET_TYPE_LAND

        if fallback is not None:
            geometry = geometry if geometry is not None else fallback.intrinsic_geometry
            notes = notes if notes is not None else fallback.notes
            parent_id = parent_id or fallback.parent_id

        return Asset(
            id=asset_id,
            name=str(attributes.get("name") or (fallback.name if fallback else "")),
            asset_type=asset_type,
            land_type=str(
                attributes.get("land_type") or (fallback.land_type if fallback else "")
            ),
            status=str(attributes.get("status") or "active"),
            is_location=bool(attributes.get("is_location", True)),
            is_fixed=bool(attributes.get("is_fixed", True)),
            intrinsic_geometry=geometry,
            notes=notes,
            parent_id=parent_id,
        )

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def load_user(self, user_id: str) -> User | None:
        resource = self._get_resource(f"/user/user/{user_id}")
        return self._user_from_resource(resource) if resource else None

    def query_users(self, roles: Iterable[str] = ()) -> list[User]:
        wanted = frozenset(roles)
        params = {
            "filter[status]": "1",
            "filter[uid][condition][path]": "drupal_internal__uid",
            "filter[uid][condition][operator]": ">",
            "filter[uid][condition][value]": "1",
            "sort": "drupal_internal__uid",
        }
        users = [self._user_from_resource(r) for r in self._iter_collection("/user/user", params)]
        return [u for u in users if u.active and (not wanted or u.roles & wanted)]

    @staticmethod
    def _user_from_resource(resource: dict[str, Any]) -> User:
        attributes = resource.get("attributes") or {}
        relationships = resource.get("relationships") or {}
        roles: set[str] = set()
        for role in (relationships.get("roles") or {}).get("data") or []:
            meta = role.get("meta") or {}
            role_name = meta.get("drupal_internal__target_id")
            if role_name:
                roles.add(str(role_name))
        return User(
            id=str(resource.get("id", "")),
            name=str(attributes.get("display_name") or attributes.get("name") or ""),
            roles=frozenset(roles),
            active=bool(attributes.get("status", True)),
            timezone=str(attributes.get("timezone") or ""),
        )

    # ------------------------------------------------------------------
    # Taxonomy terms
    # ------------------------------------------------------------------

    def load_term(self, term_id: str, vocabulary: str) -> Term | None:
        resource = self._get_resource(f"/taxonomy_term/{vocabulary}/{term_id}")
        return self._term_from_resource(resource, vocabulary) if resource else None

    def load_terms(self, vocabulary: str) -> list[Term]:
        params = {"sort": "weight,name"}
        return [
            self._term_from_resource(r, vocabulary)
            for r in self._iter_collection(f"/taxonomy_term/{vocabulary}", params)
        ]

    def create_or_load_term(self, name: str, vocabulary: str) -> Term:
        params = {"filter[name]": name}
        for resource in self._iter_collection(f"/taxonomy_term/{vocabulary}", params):
            return self._term_from_resource(resource, vocabulary)

        created = self._post(
            f"/taxonomy_term/{vocabulary}",
            {"type": f"taxonomy_term--{vocabulary}", "attributes": {"name": name}},
        )
        logger.info("farmOS term created | vocabulary=%s | name=%s", vocabulary, name)
        return self._term_from_resource(created, vocabulary)

    @staticmethod
    def _term_from_resource(resource: dict[str, Any], vocabulary: str) -> Term:
        attributes = resource.get("attributes") or {}
        return Term(
            id=str(resource.get("id", "")),
            name=str(attributes.get("name", "")),
            vocabulary=vocabulary,
        )
