"""Quick form configuration stores.

Each quick form keeps a small JSON configuration document (currently
just its ``log_category``).  ``BlobConfigurationStore`` persists one
blob per form, ``{form_id}.json``, in the configured container so that
every Functions worker sees the same values.
"""

from __future__ import annotations

import abc
import json
import logging
from typing import TYPE_CHECKING, Any

from scd_riparian.core.exceptions import ContractError, TransientError

if TYPE_CHECKING:
    from azure.storage.blob import BlobServiceClient

logger = logging.getLogger("scd_riparian.storage.configuration")


class ConfigurationStore(abc.ABC):
    """Abstract store of per-form configuration dicts."""

    @abc.abstractmethod
    def load(self, form_id: str) -> dict[str, Any] | None:
        """Return the stored configuration of *form_id*, or ``None``."""

    @abc.abstractmethod
    def save(self, form_id: str, configuration: dict[str, Any]) -> None:
        """Replace the stored configuration of *form_id*."""


class InMemoryConfigurationStore(ConfigurationStore):
    """Process-local configuration store."""

    def __init__(self, initial: dict[str, dict[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            k: dict(v) for k, v in (initial or {}).items()
        }

    def load(self, form_id: str) -> dict[str, Any] | None:
        document = self._documents.get(form_id)
        return dict(document) if document is not None else None

    def save(self, form_id: str, configuration: dict[str, Any]) -> None:
        self._documents[form_id] = dict(configuration)


class BlobConfigurationStore(ConfigurationStore):
    """Configuration store backed by Azure Blob Storage.

    Args:
        blob_service_client: An Azure ``BlobServiceClient`` instance.
        container: Container holding one ``{form_id}.json`` blob per form.
    """

    def __init__(self, blob_service_client: BlobServiceClient, container: str) -> None:
        self._blob_service_client = blob_service_client
        self._container = container

    @staticmethod
    def blob_name(form_id: str) -> str:
        return f"{form_id}.json"

    def load(self, form_id: str) -> dict[str, Any] | None:
        from azure.core.exceptions import AzureError, ResourceNotFoundError

        blob_client = self._blob_service_client.get_blob_client(
            container=self._container, blob=self.blob_name(form_id)
        )
        try:
            data = blob_client.download_blob().readall()
        except ResourceNotFoundError:
            return None
        except AzureError as exc:
            msg = f"Failed to read configuration of quick form {form_id!r}: {exc}"
            raise TransientError(msg, stage="configuration", code="CONFIG_READ_FAILED") from exc

        try:
            document = json.loads(data)
        except ValueError as exc:
            msg = f"Configuration of quick form {form_id!r} is not valid JSON: {exc}"
            raise ContractError(msg, stage="configuration", code="CONFIG_INVALID_JSON") from exc
        if not isinstance(document, dict):
            msg = f"Configuration of quick form {form_id!r} must be a JSON object"
            raise ContractError(msg, stage="configuration", code="CONFIG_INVALID_JSON")
        return document

    def save(self, form_id: str, configuration: dict[str, Any]) -> None:
        from azure.core.exceptions import AzureError, ResourceExistsError

        container_client = self._blob_service_client.get_container_client(self._container)
        try:
            container_client.create_container()
        except ResourceExistsError:
            pass
        except AzureError as exc:
            msg = f"Failed to create container {self._container!r}: {exc}"
            raise TransientError(msg, stage="configuration", code="CONFIG_WRITE_FAILED") from exc

        blob_client = self._blob_service_client.get_blob_client(
            container=self._container, blob=self.blob_name(form_id)
        )
        try:
            blob_client.upload_blob(
                json.dumps(configuration, sort_keys=True).encode("utf-8"),
                overwrite=True,
            )
        except AzureError as exc:
            msg = f"Failed to write configuration of quick form {form_id!r}: {exc}"
            raise TransientError(msg, stage="configuration", code="CONFIG_WRITE_FAILED") from exc

        logger.info(
            "Quick form configuration saved | form=%s | container=%s",
            form_id,
            self._container,
        )
