"""Tests for the farmOS JSON:API repository.

All HTTP traffic goes through ``httpx.MockTransport``.

Covers:
- Client headers and base URL
- Log creation with quantities, relationships and revision message
- Asset creation, loading, filtered queries and URLs
- Users: roles from relationship metadata, status filtering
- Terms: lookup, sorted listing, create-or-load
- links.next pagination
- HTTP error mapping (auth, retryable, permanent, transport, bad body)
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx
import pytest

from scd_riparian.models.entities import Asset, Term
from scd_riparian.models.log import LogTemplate, QuantityEntry
from scd_riparian.storage.base import (
    RepositoryAuthError,
    RepositoryError,
    RepositoryReadError,
    RepositoryWriteError,
)
from scd_riparian.storage.farmos import JSONAPI_MEDIA_TYPE, FarmOSRepository

BASE_URL = "https://farm.example.org"


class FakeFarmOS:
    """Records requests and answers them from a route table."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Any] = {}
        self._created = 0

    def route(self, method: str, path: str, response: Any) -> None:
        self.routes[(method, path)] = response

    def posted(self, path: str) -> list[dict[str, Any]]:
        return [
            json.loads(r.content)["data"]
            for r in self.requests
            if r.method == "POST" and r.url.path == path
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if callable(handler):
            return handler(request)
        if handler is not None:
            return httpx.Response(200, json=handler)
        if request.method == "POST":
            self._created += 1
            resource = json.loads(request.content)["data"]
            resource["id"] = f"uuid-{self._created}"
            return httpx.Response(201, json={"data": resource})
        return httpx.Response(404, json={"errors": [{"title": "Not Found"}]})


@pytest.fixture()
def farm() -> FakeFarmOS:
    return FakeFarmOS()


@pytest.fixture()
def repository(farm: FakeFarmOS) -> Iterator[FarmOSRepository]:
    repo = FarmOSRepository(
        BASE_URL + "/", access_token="token-123", transport=httpx.MockTransport(farm)
    )
    yield repo
    repo.close()


def _user(uuid: str, name: str, roles: list[str], *, status: bool = True) -> dict[str, Any]:
    return {
        "type": "user--user",
        "id": uuid,
        "attributes": {"display_name": name, "status": status, "timezone": "America/Denver"},
        "relationships": {
            "roles": {
                "data": [
                    {"type": "user_role--user_role", "id": f"r-{r}", "meta": {"drupal_internal__target_id": r}}
                    for r in roles
                ]
            }
        },
    }


class TestClient:
    def test_headers_and_base_url(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route("GET", "/api/asset/land/a1", {"data": {"id": "a1", "type": "asset--land", "attributes": {"name": "x", "land_type": "scd_site"}}})
        repository.load_asset("a1")

        request = farm.requests[0]
        assert str(request.url) == f"{BASE_URL}/api/asset/land/a1"
        assert request.headers["Authorization"] == "Bearer token-123"
        assert request.headers["Accept"] == JSONAPI_MEDIA_TYPE

    def test_no_token_no_authorization(self, farm: FakeFarmOS) -> None:
        repo = FarmOSRepository(BASE_URL, transport=httpx.MockTransport(farm))
        repo.load_asset("missing")
        assert "Authorization" not in farm.requests[0].headers
        repo.close()

    def test_empty_base_url_rejected(self) -> None:
        with pytest.raises(RepositoryError, match="non-empty"):
            FarmOSRepository("")


class TestCreateLog:
    LOG = LogTemplate(
        log_type="input",
        name="Cedar Creek herbicide",
        status="done",
        owner="user-3",
        category="cat-1",
        location=("seg-1", "seg-2"),
        notes="Wind direction: North\n\n",
        quantities=(
            QuantityEntry(
                label="Wind speed",
                value=4.0,
                units=Term(id="unit-mph", name="mph", vocabulary="unit"),
                measure="speed",
            ),
            QuantityEntry(
                label="Total product applied",
                value=1.5,
                units=Term(id="unit-qts", name="qts", vocabulary="unit"),
                measure="volume",
                quantity_type="material",
                material_type=Term(id="mat-1", name="Glyphosate", vocabulary="material_type"),
            ),
            QuantityEntry(label="Number of technicians", measure="count"),
        ),
        timestamp=datetime(2025, 5, 1, tzinfo=ZoneInfo("America/Los_Angeles")),
        revision_log_message="Scheduled by Maria",
    )

    def test_quantities_created_first(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        log_id = repository.create_log(self.LOG)

        assert log_id == "uuid-4"
        assert [r.url.path for r in farm.requests] == [
            "/api/quantity/standard",
            "/api/quantity/material",
            "/api/quantity/standard",
            "/api/log/input",
        ]

    def test_quantity_payloads(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        repository.create_log(self.LOG)
        wind, technicians = farm.posted("/api/quantity/standard")
        (product,) = farm.posted("/api/quantity/material")

        assert wind["attributes"] == {
            "label": "Wind speed",
            "measure": "speed",
            "value": {"decimal": "4.0"},
        }
        assert wind["relationships"]["units"]["data"] == {
            "type": "taxonomy_term--unit",
            "id": "unit-mph",
        }
        assert product["type"] == "quantity--material"
        assert product["relationships"]["material_type"]["data"] == [
            {"type": "taxonomy_term--material_type", "id": "mat-1"}
        ]
        assert "value" not in technicians["attributes"]
        assert "relationships" not in technicians

    def test_log_payload(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        repository.create_log(self.LOG)
        (log,) = farm.posted("/api/log/input")

        assert log["type"] == "log--input"
        assert log["attributes"] == {
            "name": "Cedar Creek herbicide",
            "status": "done",
            "timestamp": "2025-05-01T00:00:00-07:00",
            "notes": {"value": "Wind direction: North\n\n", "format": "default"},
            "revision_log_message": "Scheduled by Maria",
        }
        relationships = log["relationships"]
        assert relationships["location"]["data"] == [
            {"type": "asset--land", "id": "seg-1"},
            {"type": "asset--land", "id": "seg-2"},
        ]
        assert [q["id"] for q in relationships["quantity"]["data"]] == [
            "uuid-1",
            "uuid-2",
            "uuid-3",
        ]
        assert relationships["owner"]["data"] == [{"type": "user--user", "id": "user-3"}]
        assert relationships["category"]["data"] == [
            {"type": "taxonomy_term--log_category", "id": "cat-1"}
        ]

    def test_minimal_log(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        repository.create_log(LogTemplate(log_type="activity", name="n"))
        (log,) = farm.posted("/api/log/activity")
        assert log["attributes"] == {"name": "n", "status": "pending"}
        assert set(log["relationships"]) == {"location", "quantity"}

    def test_rejected_write(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route("POST", "/api/log/activity", lambda r: httpx.Response(422, text="bad"))
        with pytest.raises(RepositoryWriteError) as exc:
            repository.create_log(LogTemplate(log_type="activity", name="n"))
        assert exc.value.retryable is False
        assert "422" in str(exc.value)

    def test_response_without_id(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route(
            "POST", "/api/log/activity", lambda r: httpx.Response(201, json={"data": {}})
        )
        with pytest.raises(RepositoryWriteError, match="no resource id"):
            repository.create_log(LogTemplate(log_type="activity", name="n"))


class TestAssets:
    def test_create_asset(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        asset = repository.create_asset(
            Asset(
                name="Upper bank",
                land_type="scd_segment",
                intrinsic_geometry="POINT (1 2)",
                notes="steep",
                parent_id="site-uuid",
            )
        )
        (posted,) = farm.posted("/api/asset/land")

        assert posted["attributes"] == {
            "name": "Upper bank",
            "status": "active",
            "land_type": "scd_segment",
            "is_location": True,
            "is_fixed": True,
            "intrinsic_geometry": {"value": "POINT (1 2)"},
            "notes": {"value": "steep", "format": "default"},
        }
        assert posted["relationships"]["parent"]["data"] == [
            {"type": "asset--land", "id": "site-uuid"}
        ]
        assert asset.id == "uuid-1"
        assert asset.parent_id == "site-uuid"
        assert asset.intrinsic_geometry == "POINT (1 2)"

    def test_load_missing_asset(self, repository: FarmOSRepository) -> None:
        assert repository.load_asset("nope") is None

    def test_query_assets_filters(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route(
            "GET",
            "/api/asset/land",
            {
                "data": [
                    {
                        "type": "asset--land",
                        "id": "seg-1",
                        "attributes": {
                            "name": "Upper bank",
                            "land_type": "scd_segment",
                            "status": "active",
                            "drupal_internal__id": 17,
                            "intrinsic_geometry": {"value": "POINT (1 2)"},
                        },
                        "relationships": {"parent": {"data": [{"type": "asset--land", "id": "site-1"}]}},
                    }
                ]
            },
        )
        (asset,) = repository.query_assets(
            parent_id="site-1", land_type="scd_segment", exclude_status="archived"
        )

        params = farm.requests[0].url.params
        assert params["filter[parent.id]"] == "site-1"
        assert params["filter[land_type]"] == "scd_segment"
        assert params["filter[status_ne][condition][operator]"] == "<>"
        assert params["filter[status_ne][condition][value]"] == "archived"
        assert params["sort"] == "drupal_internal__id"
        assert asset.parent_id == "site-1"
        assert asset.intrinsic_geometry == "POINT (1 2)"
        assert repository.asset_url(asset) == f"{BASE_URL}/asset/17"

    def test_asset_url_without_internal_id(self, repository: FarmOSRepository) -> None:
        asset = Asset(id="abc", name="a", land_type="scd_site")
        assert repository.asset_url(asset) == f"{BASE_URL}/api/asset/land/abc"

    def test_pagination(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        def page(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("page[offset]") == "50":
                return httpx.Response(
                    200,
                    json={"data": [{"type": "asset--land", "id": "b", "attributes": {"name": "B", "land_type": "scd_segment"}}]},
                )
            return httpx.Response(
                200,
                json={
                    "data": [{"type": "asset--land", "id": "a", "attributes": {"name": "A", "land_type": "scd_segment"}}],
                    "links": {"next": {"href": f"{BASE_URL}/api/asset/land?page[offset]=50"}},
                },
            )

        farm.route("GET", "/api/asset/land", page)
        assert [a.id for a in repository.query_assets()] == ["a", "b"]
        assert len(farm.requests) == 2


class TestUsers:
    def test_query_users(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route(
            "GET",
            "/api/user/user",
            {
                "data": [
                    _user("u-2", "Maria", ["farm_manager"]),
                    _user("u-3", "crew 10", ["farm_worker"]),
                    _user("u-5", "Vic", ["farm_viewer"]),
                    _user("u-6", "Ina", ["farm_worker"], status=False),
                ]
            },
        )
        users = repository.query_users(["farm_manager", "farm_worker"])

        assert [u.name for u in users] == ["Maria", "crew 10"]
        assert users[0].roles == frozenset({"farm_manager"})
        assert users[0].timezone == "America/Denver"
        params = farm.requests[0].url.params
        assert params["filter[status]"] == "1"
        assert params["filter[uid][condition][operator]"] == ">"

    def test_load_user(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route("GET", "/api/user/user/u-2", {"data": _user("u-2", "Maria", ["farm_manager"])})
        user = repository.load_user("u-2")
        assert user is not None
        assert user.id == "u-2"
        assert repository.load_user("u-404") is None


class TestTerms:
    def test_load_term(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route(
            "GET",
            "/api/taxonomy_term/log_category/cat-1",
            {"data": {"id": "cat-1", "attributes": {"name": "Maintenance"}}},
        )
        assert repository.load_term("cat-1", "log_category") == Term(
            id="cat-1", name="Maintenance", vocabulary="log_category"
        )
        assert repository.load_term("cat-2", "log_category") is None

    def test_load_terms_sorted(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route(
            "GET",
            "/api/taxonomy_term/material_type",
            {"data": [{"id": "m1", "attributes": {"name": "Glyphosate"}}]},
        )
        assert [t.name for t in repository.load_terms("material_type")] == ["Glyphosate"]
        assert farm.requests[0].url.params["sort"] == "weight,name"

    def test_existing_term_loaded(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route(
            "GET", "/api/taxonomy_term/unit", {"data": [{"id": "u1", "attributes": {"name": "mph"}}]}
        )
        assert repository.create_or_load_term("mph", "unit").id == "u1"
        assert farm.requests[0].url.params["filter[name]"] == "mph"
        assert farm.posted("/api/taxonomy_term/unit") == []

    def test_missing_term_created(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        farm.route("GET", "/api/taxonomy_term/unit", {"data": []})
        term = repository.create_or_load_term("oz/gal", "unit")
        assert term == Term(id="uuid-1", name="oz/gal", vocabulary="unit")
        (posted,) = farm.posted("/api/taxonomy_term/unit")
        assert posted["attributes"] == {"name": "oz/gal"}


class TestErrorMapping:
    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_errors(self, farm: FakeFarmOS, repository: FarmOSRepository, status: int) -> None:
        farm.route("GET", "/api/taxonomy_term/unit", lambda r: httpx.Response(status))
        with pytest.raises(RepositoryAuthError):
            repository.load_terms("unit")

    @pytest.mark.parametrize(("status", "retryable"), [(429, True), (503, True), (400, False)])
    def test_read_errors(
        self, farm: FakeFarmOS, repository: FarmOSRepository, status: int, retryable: bool
    ) -> None:
        farm.route("GET", "/api/taxonomy_term/unit", lambda r: httpx.Response(status, text="x"))
        with pytest.raises(RepositoryReadError) as exc:
            repository.load_terms("unit")
        assert exc.value.retryable is retryable

    def test_transport_error_is_retryable(self, farm: FakeFarmOS, repository: FarmOSRepository) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        farm.route("GET", "/api/taxonomy_term/unit", fail)
        with pytest.raises(RepositoryReadError) as exc:
            repository.load_terms("unit")
        assert exc.value.retryable is True

    @pytest.mark.parametrize("body", [b"<html>", b"[1]"])
    def test_unexpected_body(
        self, farm: FakeFarmOS, repository: FarmOSRepository, body: bytes
    ) -> None:
        farm.route("GET", "/api/taxonomy_term/unit", lambda r: httpx.Response(200, content=body))
        with pytest.raises(RepositoryReadError):
            repository.load_terms("unit")
