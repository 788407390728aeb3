"""Error taxonomy for the riparian service.

``RiparianError`` is the root of every domain exception.  Besides the
message it records where the failure happened (``stage``), a stable
machine code (``code``), whether retrying can help (``retryable``) and
an optional ``correlation_id``.

The HTTP layer only looks at ``category``:

=============== =========================================== =========
Class           Meaning                                     Retryable
=============== =========================================== =========
ValidationError submitted values are unusable               no
ContractError   request body has the wrong shape            no
TransientError  storage or network hiccup                   yes
PermanentError  cannot succeed as asked                     no
=============== =========================================== =========

``AccessDeniedError`` and ``NotFoundError`` narrow ``PermanentError``
into their own categories.  Subclasses that pick no category (e.g. the
repository errors) fall back to ``transient`` / ``permanent`` according
to ``retryable``.
"""

from __future__ import annotations

from typing import ClassVar


class RiparianError(Exception):
    """Base exception for all riparian-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Area where the error occurred
            (e.g. ``"parse_kml"``, ``"quick_form"``).
        code: Machine-readable error code (e.g. ``"KML_PARSE_FAILED"``).
        retryable: Whether the caller may retry the operation.
        correlation_id: Request correlation identifier.
    """

    default_stage: ClassVar[str] = ""
    default_code: ClassVar[str] = ""
    default_retryable: ClassVar[bool] = False
    #: Fixed category; ``None`` derives it from ``retryable``.
    category_name: ClassVar[str | None] = None

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool | None = None,
        correlation_id: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = self.default_retryable if retryable is None else retryable
        self.correlation_id = correlation_id

    @property
    def category(self) -> str:
        if self.category_name:
            return self.category_name
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Structured error body used by HTTP responses and logs."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }


class ValidationError(RiparianError):
    """Submitted values are unusable."""

    category_name = "validation"


class ContractError(RiparianError):
    """The request body is missing, not JSON, or lacks required keys."""

    category_name = "contract"


class TransientError(RiparianError):
    """A temporary failure; the same request may succeed later."""

    category_name = "transient"
    default_retryable = True


class PermanentError(RiparianError):
    """The request cannot succeed as asked."""

    category_name = "permanent"


class AccessDeniedError(PermanentError):
    """The current account may not perform the requested operation."""

    category_name = "access"
    default_code = "ACCESS_DENIED"


class NotFoundError(PermanentError):
    """A referenced entity or quick form does not exist."""

    category_name = "not_found"
    default_code = "NOT_FOUND"
