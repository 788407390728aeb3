"""HTTP route handlers.

Each handler takes the ``func.HttpRequest`` and the worker's
``ServiceContext`` and returns a ``func.HttpResponse``.
``function_app.py`` only binds routes to these handlers, so they can be
exercised in tests with an in-memory context.

Every ``RiparianError`` raised by a handler is turned into a structured
JSON error response by ``dispatch``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from scd_riparian.activities.import_sites import (
    ImportValidationError,
    archive_kml_upload,
    build_import_preview,
    import_site,
    validate_upload_filename,
)
from scd_riparian.activities.parse_kml import parse_kml_bytes
from scd_riparian.core.constants import (
    PERMISSION_ADMINISTER_QUICK_FORMS,
    PERMISSION_CREATE_LAND_ASSET,
)
from scd_riparian.core.exceptions import AccessDeniedError, ContractError, RiparianError
from scd_riparian.core.ingress import (
    deserialize_json_body,
    error_response,
    get_blob_service_client,
    json_response,
    resolve_current_user,
)
from scd_riparian.models.payloads import (
    QuickFormSubmissionInput,
    SiteImportInput,
    validate_payload,
)
from scd_riparian.models.submissions import SiteImportSubmission, format_validation_errors
from scd_riparian.quick_forms import get_quick_form, list_quick_forms
from scd_riparian.storage.configuration import (
    BlobConfigurationStore,
    InMemoryConfigurationStore,
)
from scd_riparian.storage.factory import get_repository

if TYPE_CHECKING:
    from collections.abc import Callable

    import azure.functions as func
    from azure.storage.blob import BlobServiceClient

    from scd_riparian.core.config import RiparianConfig
    from scd_riparian.models.entities import User
    from scd_riparian.models.payloads import (
        ConfigurationOutput,
        ImportPreviewOutput,
        QuickFormSummary,
    )
    from scd_riparian.quick_forms.base import RiparianMaintenanceForm
    from scd_riparian.storage.base import FarmRepository
    from scd_riparian.storage.configuration import ConfigurationStore

logger = logging.getLogger("scd_riparian.api")


@dataclass(slots=True)
class ServiceContext:
    """Per-worker services shared by the route handlers.

    Attributes:
        settings: Service configuration.
        repository: Farm storage backend.
        configuration_store: Quick form configuration store.
        blob_service_client: Blob client for upload archiving, or ``None``
            when storage is not configured.
    """

    settings: RiparianConfig
    repository: FarmRepository
    configuration_store: ConfigurationStore
    blob_service_client: BlobServiceClient | None = None

    @classmethod
    def from_config(cls, settings: RiparianConfig) -> ServiceContext:
        """Build the services selected by *settings*.

        Without ``AzureWebJobsStorage`` uploads are not archived and
        quick form configuration is kept in memory.
        """
        try:
            blob_service_client: BlobServiceClient | None = get_blob_service_client()
        except ContractError as exc:
            logger.warning("Blob storage unavailable, using in-memory fallbacks | error=%s", exc)
            blob_service_client = None

        configuration_store: ConfigurationStore
        if blob_service_client is not None:
            configuration_store = BlobConfigurationStore(
                blob_service_client, settings.quick_form_config_container
            )
        else:
            configuration_store = InMemoryConfigurationStore()

        return cls(
            settings=settings,
            repository=get_repository(settings),
            configuration_store=configuration_store,
            blob_service_client=blob_service_client,
        )


def dispatch(
    handler: Callable[[func.HttpRequest, ServiceContext], func.HttpResponse],
    req: func.HttpRequest,
    context: ServiceContext,
) -> func.HttpResponse:
    """Run *handler*, mapping ``RiparianError`` to a JSON error response."""
    try:
        return handler(req, context)
    except RiparianError as exc:
        return error_response(exc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_form(form_id: str, user: User, context: ServiceContext) -> RiparianMaintenanceForm:
    return get_quick_form(
        form_id,
        context.repository,
        user,
        configuration=context.configuration_store.load(form_id),
        settings=context.settings,
    )


def _require_form_access(form: RiparianMaintenanceForm) -> None:
    if not form.access():
        msg = f"User {form.current_user.name!r} may not use quick form {form.form_id!r}"
        raise AccessDeniedError(msg, stage="quick_form")


def _require_permission(user: User, permission: str) -> None:
    if not user.has_permission(permission):
        msg = f"User {user.name!r} lacks permission {permission!r}"
        raise AccessDeniedError(msg, stage="ingress")


# ---------------------------------------------------------------------------
# Quick forms
# ---------------------------------------------------------------------------


def list_forms(req: func.HttpRequest, context: ServiceContext) -> func.HttpResponse:
    """``GET quick``: the quick forms the caller may use."""
    user = resolve_current_user(req.headers, context.repository)
    summaries: list[QuickFormSummary] = []
    for form_id in list_quick_forms():
        form = _load_form(form_id, user, context)
        if form.access():
            summaries.append(
                {
                    "id": form.form_id,
                    "label": form.label,
                    "description": form.description,
                    "help_text": form.help_text,
                    "log_type": form.log_type,
                }
            )
    return json_response({"quick_forms": summaries})


def form_schema(req: func.HttpRequest, context: ServiceContext) -> func.HttpResponse:
    """``GET quick/{form_id}/form?parent=``: the form schema."""
    user = resolve_current_user(req.headers, context.repository)
    form = _load_form(req.route_params.get("form_id", ""), user, context)
    _require_form_access(form)
    parent = req.params.get("parent") or None
    return json_response(form.build_form(parent))


def submit_form(req: func.HttpRequest, context: ServiceContext) -> func.HttpResponse:
    """``POST quick/{form_id}``: validate and persist a submission."""
    user = resolve_current_user(req.headers, context.repository)
    form = _load_form(req.route_params.get("form_id", ""), user, context)

    body = deserialize_json_body(req.get_body())
    validate_payload(body, QuickFormSubmissionInput, route="quick")

    logger.info(
        "Quick form submission started | form=%s | user=%s | mode=%s",
        form.form_id,
        user.id,
        body.get("schedule", "schedule"),
    )
    result = form.submit(body)
    return json_response(result.to_dict(), status_code=201)


def form_configuration(req: func.HttpRequest, context: ServiceContext) -> func.HttpResponse:
    """``GET/POST quick/{form_id}/configuration``: read or update the configuration."""
    user = resolve_current_user(req.headers, context.repository)
    form = _load_form(req.route_params.get("form_id", ""), user, context)
    _require_permission(user, PERMISSION_ADMINISTER_QUICK_FORMS)

    if req.method.upper() == "POST":
        body = deserialize_json_body(req.get_body())
        configuration = form.submit_configuration(body)
        context.configuration_store.save(form.form_id, configuration)
        payload: ConfigurationOutput = {"form_id": form.form_id, "configuration": configuration}
        return json_response(payload)

    response: dict[str, Any] = {
        "form_id": form.form_id,
        "configuration": dict(form.configuration),
        "form": form.build_configuration_form(),
    }
    return json_response(response)


# ---------------------------------------------------------------------------
# Site import
# ---------------------------------------------------------------------------


def parse_site(req: func.HttpRequest, context: ServiceContext) -> func.HttpResponse:
    """``POST sites/parse?filename=``: parse an uploaded KML/KMZ into a preview."""
    user = resolve_current_user(req.headers, context.repository)
    _require_permission(user, PERMISSION_CREATE_LAND_ASSET)

    filename = req.params.get("filename", "")
    validate_upload_filename(filename)
    data = req.get_body()

    document = parse_kml_bytes(
        data,
        source_filename=filename,
        content_type=req.headers.get("content-type", ""),
    )
    preview: ImportPreviewOutput = build_import_preview(document)

    if context.blob_service_client is not None and context.settings.kml_upload_container:
        preview["archive_path"] = archive_kml_upload(
            data,
            filename,
            document.site_name,
            blob_service_client=context.blob_service_client,
            container=context.settings.kml_upload_container,
        )

    return json_response(preview)


def create_site(req: func.HttpRequest, context: ServiceContext) -> func.HttpResponse:
    """``POST sites``: create the site and its confirmed segments."""
    user = resolve_current_user(req.headers, context.repository)

    body = deserialize_json_body(req.get_body())
    validate_payload(body, SiteImportInput, route="sites")
    try:
        submission = SiteImportSubmission.model_validate(body)
    except PydanticValidationError as exc:
        raise ImportValidationError(format_validation_errors(exc)) from exc

    result = import_site(submission, context.repository, account=user)
    return json_response(result.to_dict(), status_code=201)
