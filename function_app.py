"""Azure Functions entry point: riparian site and maintenance-log service.

This module registers the HTTP routes using the Python v2 programming
model.

All business logic lives in the scd_riparian package. This file is purely
the wiring layer between Azure Functions bindings and application code.
"""

from __future__ import annotations

import functools
import logging

import azure.functions as func

from scd_riparian import api
from scd_riparian.core.config import RiparianConfig

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)

logger = logging.getLogger("scd_riparian.function_app")


@functools.lru_cache(maxsize=1)
def _service_context() -> api.ServiceContext:
    """Build the worker's services once, on first request."""
    settings = RiparianConfig.from_env()
    logger.info(
        "Service context created | backend=%s | timezone=%s",
        settings.backend,
        settings.default_timezone,
    )
    return api.ServiceContext.from_config(settings)


# ---------------------------------------------------------------------------
# HTTP: Quick forms
# ---------------------------------------------------------------------------


@app.function_name("list_quick_forms")
@app.route(route="quick", methods=["GET"])
def list_quick_forms(req: func.HttpRequest) -> func.HttpResponse:
    """List the quick forms the caller may use."""
    return api.dispatch(api.list_forms, req, _service_context())


@app.function_name("quick_form_schema")
@app.route(route="quick/{form_id}/form", methods=["GET"])
def quick_form_schema(req: func.HttpRequest) -> func.HttpResponse:
    """Return a quick form schema; ``?parent=`` adds the sub-site options."""
    return api.dispatch(api.form_schema, req, _service_context())


@app.function_name("submit_quick_form")
@app.route(route="quick/{form_id}", methods=["POST"])
def submit_quick_form(req: func.HttpRequest) -> func.HttpResponse:
    """Schedule or record maintenance logs."""
    return api.dispatch(api.submit_form, req, _service_context())


@app.function_name("quick_form_configuration")
@app.route(route="quick/{form_id}/configuration", methods=["GET", "POST"])
def quick_form_configuration(req: func.HttpRequest) -> func.HttpResponse:
    """Read or update a quick form's configuration."""
    return api.dispatch(api.form_configuration, req, _service_context())


# ---------------------------------------------------------------------------
# HTTP: Site import
# ---------------------------------------------------------------------------


@app.function_name("parse_site_upload")
@app.route(route="sites/parse", methods=["POST"])
def parse_site_upload(req: func.HttpRequest) -> func.HttpResponse:
    """Parse an uploaded KML/KMZ body into an editable import preview."""
    return api.dispatch(api.parse_site, req, _service_context())


@app.function_name("create_site")
@app.route(route="sites", methods=["POST"])
def create_site(req: func.HttpRequest) -> func.HttpResponse:
    """Create a site and its confirmed segments."""
    return api.dispatch(api.create_site, req, _service_context())
