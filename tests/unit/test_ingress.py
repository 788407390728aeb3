"""Tests for the HTTP ingress helpers.

Covers:
- JSON body deserialisation (bytes, str, dict) and its failure codes
- Error category → HTTP status mapping and the error response body
- Caller resolution from the App Service principal header
- Blob service client factory fail-fast behaviour
"""

from __future__ import annotations

import json
import os
from unittest.mock import MagicMock, patch

import pytest

from scd_riparian.core.exceptions import (
    AccessDeniedError,
    ContractError,
    NotFoundError,
    PermanentError,
    TransientError,
    ValidationError,
)
from scd_riparian.core.ingress import (
    CLIENT_PRINCIPAL_HEADER,
    deserialize_json_body,
    error_response,
    get_blob_service_client,
    json_response,
    resolve_current_user,
    status_for_error,
)
from scd_riparian.storage.memory import InMemoryFarmRepository
from tests.conftest import INACTIVE, MANAGER


class TestDeserializeJsonBody:
    """deserialize_json_body normalises request bodies."""

    def test_bytes(self) -> None:
        assert deserialize_json_body(b'{"a": 1}') == {"a": 1}

    def test_str(self) -> None:
        assert deserialize_json_body('{"a": "b"}') == {"a": "b"}

    def test_dict_passthrough(self) -> None:
        body = {"a": 1}
        assert deserialize_json_body(body) is body

    @pytest.mark.parametrize("raw", [b"", "   ", None])
    def test_empty_body(self, raw: bytes | str | None) -> None:
        with pytest.raises(ContractError) as exc:
            deserialize_json_body(raw)
        assert exc.value.code == "EMPTY_BODY"

    def test_invalid_json(self) -> None:
        with pytest.raises(ContractError) as exc:
            deserialize_json_body(b"{not json")
        assert exc.value.code == "INVALID_JSON"

    def test_non_utf8(self) -> None:
        with pytest.raises(ContractError) as exc:
            deserialize_json_body(b"\xff\xfe{}")
        assert exc.value.code == "INVALID_JSON"

    def test_json_array_rejected(self) -> None:
        with pytest.raises(ContractError) as exc:
            deserialize_json_body(b"[1, 2]")
        assert exc.value.code == "INVALID_INPUT_TYPE"
        assert "list" in str(exc.value)


class TestResponses:
    """json_response and error_response build HttpResponse objects."""

    def test_json_response(self) -> None:
        resp = json_response({"ok": True}, status_code=201)
        assert resp.status_code == 201
        assert resp.mimetype == "application/json"
        assert json.loads(resp.get_body()) == {"ok": True}

    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (ValidationError("x"), 422),
            (ContractError("x"), 400),
            (AccessDeniedError("x"), 403),
            (NotFoundError("x"), 404),
            (TransientError("x"), 503),
            (PermanentError("x"), 500),
        ],
    )
    def test_status_for_error(self, exc: Exception, status: int) -> None:
        assert status_for_error(exc) == status  # type: ignore[arg-type]

    def test_error_response_body(self) -> None:
        resp = error_response(NotFoundError("Site 9 not found", stage="quick_form"))
        assert resp.status_code == 404
        body = json.loads(resp.get_body())
        assert body["error"]["category"] == "not_found"
        assert body["error"]["message"] == "Site 9 not found"
        assert body["error"]["stage"] == "quick_form"

    def test_server_errors_logged_as_error(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING", logger="scd_riparian.core.ingress"):
            error_response(TransientError("down"))
        assert caplog.records[-1].levelname == "ERROR"

    def test_client_errors_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING", logger="scd_riparian.core.ingress"):
            error_response(ValidationError("bad"))
        assert caplog.records[-1].levelname == "WARNING"


class TestResolveCurrentUser:
    """resolve_current_user loads the calling account."""

    def test_known_user(self, repository: InMemoryFarmRepository) -> None:
        user = resolve_current_user({CLIENT_PRINCIPAL_HEADER: " 2 "}, repository)
        assert user == MANAGER

    def test_missing_header(self, repository: InMemoryFarmRepository) -> None:
        with pytest.raises(AccessDeniedError) as exc:
            resolve_current_user({}, repository)
        assert exc.value.code == "UNAUTHENTICATED"

    def test_unknown_user(self, repository: InMemoryFarmRepository) -> None:
        with pytest.raises(AccessDeniedError) as exc:
            resolve_current_user({CLIENT_PRINCIPAL_HEADER: "404"}, repository)
        assert exc.value.code == "UNKNOWN_ACCOUNT"

    def test_inactive_user(self, repository: InMemoryFarmRepository) -> None:
        with pytest.raises(AccessDeniedError) as exc:
            resolve_current_user({CLIENT_PRINCIPAL_HEADER: INACTIVE.id}, repository)
        assert exc.value.code == "UNKNOWN_ACCOUNT"


class TestGetBlobServiceClient:
    """get_blob_service_client fails fast without a connection string."""

    def test_missing_connection_string(self) -> None:
        with patch.dict(os.environ, {}, clear=True), pytest.raises(ContractError) as exc:
            get_blob_service_client()
        assert exc.value.code == "MISSING_CONNECTION_STRING"

    def test_creates_client_from_connection_string(self) -> None:
        sentinel = MagicMock()
        with (
            patch.dict(os.environ, {"AzureWebJobsStorage": "UseDevelopmentStorage=true"}),
            patch(
                "azure.storage.blob.BlobServiceClient.from_connection_string",
                return_value=sentinel,
            ) as factory,
        ):
            assert get_blob_service_client() is sentinel
        factory.assert_called_once_with("UseDevelopmentStorage=true")
