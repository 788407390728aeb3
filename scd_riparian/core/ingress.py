"""Thin ingress boundary helpers for the Azure Functions HTTP routes.

Centralises the cross-cutting transport concerns so that the route
handlers contain only request handoff:

- **deserialize_json_body**: parses a request body into a JSON object,
  raising ``ContractError`` for anything else.
- **json_response** / **error_response**: build ``func.HttpResponse``
  objects; ``RiparianError`` categories map onto HTTP status codes.
- **resolve_current_user**: loads the calling account named by the App
  Service authentication header.
- **get_blob_service_client**: creates an ``azure.storage.blob`` client
  from the ``AzureWebJobsStorage`` environment variable, failing fast
  with a structured error if unconfigured.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

import azure.functions as func

from scd_riparian.core.exceptions import AccessDeniedError, ContractError, RiparianError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from azure.storage.blob import BlobServiceClient

    from scd_riparian.models.entities import User
    from scd_riparian.storage.base import FarmRepository

logger = logging.getLogger("scd_riparian.core.ingress")

CLIENT_PRINCIPAL_HEADER = "x-ms-client-principal-id"
JSON_MIMETYPE = "application/json"

STATUS_BY_CATEGORY: dict[str, int] = {
    "validation": 422,
    "contract": 400,
    "access": 403,
    "not_found": 404,
    "transient": 503,
    "permanent": 500,
}


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------


def deserialize_json_body(raw: bytes | str | dict[str, Any] | None) -> dict[str, Any]:
    """Normalise a request body to a plain dict.

    Raises:
        ContractError: If the body is empty, not JSON, or not a JSON object.
    """
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Request body is not UTF-8: {exc}"
            raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
    if not raw or not raw.strip():
        msg = "Request body is empty; expected a JSON object"
        raise ContractError(msg, stage="ingress", code="EMPTY_BODY")
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        msg = f"Request body is not valid JSON: {exc}"
        raise ContractError(msg, stage="ingress", code="INVALID_JSON") from exc
    if not isinstance(parsed, dict):
        msg = f"Request body JSON must be an object, got {type(parsed).__name__}"
        raise ContractError(msg, stage="ingress", code="INVALID_INPUT_TYPE")
    return parsed


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def json_response(payload: Any, *, status_code: int = 200) -> func.HttpResponse:
    """Serialise *payload* as a JSON ``HttpResponse``."""
    return func.HttpResponse(
        json.dumps(payload, default=str),
        status_code=status_code,
        mimetype=JSON_MIMETYPE,
    )


def status_for_error(exc: RiparianError) -> int:
    """Return the HTTP status code for *exc*'s category."""
    return STATUS_BY_CATEGORY.get(exc.category, 500)


def error_response(exc: RiparianError) -> func.HttpResponse:
    """Build the structured JSON error response for *exc*."""
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(
            "Request failed | category=%s | code=%s | stage=%s | error=%s",
            exc.category,
            exc.code,
            exc.stage,
            exc,
        )
    else:
        logger.warning(
            "Request rejected | category=%s | code=%s | stage=%s | error=%s",
            exc.category,
            exc.code,
            exc.stage,
            exc,
        )
    return json_response({"error": exc.to_error_dict()}, status_code=status_code)


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------


def resolve_current_user(headers: Mapping[str, str], repository: FarmRepository) -> User:
    """Load the account named by the ``x-ms-client-principal-id`` header.

    Raises:
        AccessDeniedError: If the header is missing or names no active account.
    """
    principal_id = (headers.get(CLIENT_PRINCIPAL_HEADER) or "").strip()
    if not principal_id:
        msg = f"Missing {CLIENT_PRINCIPAL_HEADER} header"
        raise AccessDeniedError(msg, stage="ingress", code="UNAUTHENTICATED")

    user = repository.load_user(principal_id)
    if user is None or not user.active:
        msg = f"Unknown or inactive account {principal_id!r}"
        raise AccessDeniedError(msg, stage="ingress", code="UNKNOWN_ACCOUNT")
    return user


# ---------------------------------------------------------------------------
# Blob service client factory
# ---------------------------------------------------------------------------


def get_blob_service_client() -> BlobServiceClient:
    """Create a ``BlobServiceClient`` from the ``AzureWebJobsStorage`` env var.

    Raises:
        ContractError: If the environment variable is not set.
    """
    from azure.storage.blob import BlobServiceClient

    connection_string = os.environ.get("AzureWebJobsStorage", "")  # noqa: SIM112
    if not connection_string:
        msg = "AzureWebJobsStorage environment variable is not set"
        raise ContractError(msg, stage="ingress", code="MISSING_CONNECTION_STRING")

    return BlobServiceClient.from_connection_string(connection_string)
