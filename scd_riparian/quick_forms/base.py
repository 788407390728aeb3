"""Riparian maintenance quick form base class.

A quick form records one kind of riparian maintenance (herbicide,
mowing, watering) against the sub-sites of an imported site.  Two
modes are offered:

- **schedule**: one ``pending`` log every *N* weeks between a start and
  an end date, via the recurring log scheduler;
- **record**: a single log with completion status, date, notes and
  time / crew / coverage quantities.

Subclasses set the class attributes (``form_id``, ``log_type``,
``maintenance_label``, ...) and may extend ``build_form`` and
``prepare_log``.  The form schema is returned as JSON-friendly dicts;
rendering is left to the client.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, time
from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from scd_riparian.activities.schedule_logs import create_scheduled_logs
from scd_riparian.core.config import RiparianConfig
from scd_riparian.core.constants import (
    ASSET_STATUS_ARCHIVED,
    ASSET_TYPE_LAND,
    CREW_LEAD_ROLES,
    LAND_TYPE_SITE,
    LOG_STATUS_DONE,
    LOG_STATUS_PENDING,
    PERMISSION_ADMINISTER_QUICK_FORMS,
    VOCABULARY_LOG_CATEGORY,
    create_log_permission,
)
from scd_riparian.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from scd_riparian.models.log import LogTemplate
from scd_riparian.models.schedule import ScheduleWindow
from scd_riparian.models.submissions import (
    RECORD_MODE,
    SCHEDULE_MODE,
    MaintenanceSubmission,
    QuickFormConfiguration,
    format_validation_errors,
)
from scd_riparian.quick_forms._quantity import build_quantity, quantity_field
from scd_riparian.utils.helpers import localize, natural_sort_key

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from zoneinfo import ZoneInfo

    from scd_riparian.models.entities import User
    from scd_riparian.models.log import QuantityEntry
    from scd_riparian.models.payloads import SubmissionResultOutput
    from scd_riparian.storage.base import FarmRepository

logger = logging.getLogger("scd_riparian.quick_forms")

_SCHEDULE_DEFAULT_TIME = time(12, 0)

# Errors that mean the schedule dates themselves are unusable
_DATE_ERROR_FIELDS = frozenset({"start_date", "end_date"})


class InvalidSubmissionError(ValidationError):
    """Raised when a quick form submission fails validation."""

    default_stage = "quick_form"
    default_code = "INVALID_SUBMISSION"


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of one quick form submission.

    Attributes:
        form_id: The quick form that handled the submission.
        mode: ``"schedule"`` or ``"record"``.
        log_ids: Ids of the created logs, in creation order.
        message: User-facing status message.
    """

    form_id: str
    mode: str
    log_ids: list[str] = field(default_factory=list)
    message: str = ""

    @property
    def count(self) -> int:
        return len(self.log_ids)

    def to_dict(self) -> SubmissionResultOutput:
        return {
            "form_id": self.form_id,
            "mode": self.mode,
            "count": self.count,
            "log_ids": list(self.log_ids),
            "message": self.message,
        }


def _is_date_error(exc: PydanticValidationError) -> bool:
    for error in exc.errors():
        loc = error.get("loc", ())
        if error.get("type") == "schedule_data_missing":
            return True
        if loc and loc[0] == "schedule_data" and (len(loc) == 1 or loc[1] in _DATE_ERROR_FIELDS):
            return True
    return False


class RiparianMaintenanceForm:
    """Base class of the riparian maintenance quick forms.

    Args:
        repository: Storage backend used for lookups and log creation.
        current_user: The account using the form.
        configuration: Stored form configuration (see ``default_configuration``).
        settings: Service configuration; defaults to ``RiparianConfig()``.
    """

    form_id: ClassVar[str] = ""
    label: ClassVar[str] = ""
    description: ClassVar[str] = ""
    help_text: ClassVar[str] = ""
    log_type: ClassVar[str] = ""
    maintenance_label: ClassVar[str] = ""
    submission_model: ClassVar[type[MaintenanceSubmission]] = MaintenanceSubmission

    def __init__(
        self,
        repository: FarmRepository,
        current_user: User,
        configuration: Mapping[str, Any] | None = None,
        settings: RiparianConfig | None = None,
    ) -> None:
        self.repository = repository
        self.current_user = current_user
        self.settings = settings or RiparianConfig()
        self.configuration: dict[str, Any] = {
            **self.default_configuration(),
            **dict(configuration or {}),
        }

    # ------------------------------------------------------------------
    # Access and configuration
    # ------------------------------------------------------------------

    def access(self, account: User | None = None) -> bool:
        """Whether *account* (default: the current user) may create this form's logs."""
        account = account or self.current_user
        return account.has_permission(create_log_permission(self.log_type))

    def default_configuration(self) -> dict[str, Any]:
        return {"log_category": None}

    @property
    def timezone(self) -> ZoneInfo:
        """The current user's timezone, or the service default."""
        return self.current_user.zone(self.settings.timezone)

    # ------------------------------------------------------------------
    # Form schema
    # ------------------------------------------------------------------

    def build_form(self, parent: str | None = None, *, now: datetime | None = None) -> dict[str, Any]:
        """Return the form schema.

        When *parent* is given, the ``asset`` field lists the sub-sites
        of that site, all selected by default.
        """
        now = (now or datetime.now(self.timezone)).astimezone(self.timezone)
        today_noon = datetime.combine(now.date(), _SCHEDULE_DEFAULT_TIME, tzinfo=self.timezone)
        midnight = datetime.combine(now.date(), time(0, 0), tzinfo=self.timezone)
        label = self.maintenance_label

        fields: dict[str, Any] = {
            "parent": {
                "type": "entity_autocomplete",
                "title": "Site name",
                "target_type": ASSET_TYPE_LAND,
                "land_type": LAND_TYPE_SITE,
                "required": True,
                "default_value": parent,
            },
        }

        if parent:
            options = self.sub_site_options(parent)
            fields["asset"] = {
                "type": "checkboxes",
                "title": "Sub-sites",
                "description": "Select sub-sites of the selected site.",
                "options": [{"value": k, "label": v} for k, v in options],
                "default_value": [k for k, _ in options],
                "required": True,
            }

        fields["owner"] = {
            "type": "select",
            "title": "Crew lead",
            "options": [{"value": k, "label": v} for k, v in self.user_options(CREW_LEAD_ROLES)],
            "required": True,
        }
        fields["schedule"] = {
            "type": "radios",
            "title": "Scheduling",
            "options": [
                {"value": SCHEDULE_MODE, "label": f"Schedule {label}"},
                {"value": RECORD_MODE, "label": f"Record single {label}"},
            ],
            "default_value": SCHEDULE_MODE,
        }
        fields["schedule_data"] = {
            "type": "details",
            "title": "Scheduling",
            "visible_when": {"schedule": SCHEDULE_MODE},
            "fields": {
                "start_date": {
                    "type": "datetime",
                    "title": "Start",
                    "default_value": today_noon.isoformat(),
                },
                "end_date": {
                    "type": "datetime",
                    "title": "End",
                    "default_value": today_noon.isoformat(),
                },
                "week_interval": {
                    "type": "number",
                    "title": "Weeks",
                    "description": f"Number of weeks to schedule between each {label} activity.",
                    "min": 1,
                    "default_value": self.settings.default_week_interval,
                },
            },
        }
        fields["record_data"] = {
            "type": "details",
            "title": "Details",
            "visible_when": {"schedule": RECORD_MODE},
            "fields": {
                "done": {"type": "checkbox", "title": "Completed", "default_value": True},
                "timestamp": {
                    "type": "datetime",
                    "title": "Date",
                    "default_value": midnight.isoformat(),
                },
                "time_taken": quantity_field(
                    "Time taken", measure="time", units="hours", step=0.25
                ),
                "number_of_technicians": quantity_field(
                    "Number of technicians", measure="count", units=None, step=1, default_value=1
                ),
                "percent_of_site": quantity_field(
                    "Percent of site", measure="ratio", units="%", step=5, default_value=100
                ),
                "notes": {"type": "textarea", "title": "Notes"},
            },
        }

        return {
            "form_id": self.form_id,
            "label": self.label,
            "description": self.description,
            "help_text": self.help_text,
            "fields": fields,
        }

    def sub_site_options(self, parent_id: str) -> list[tuple[str, str]]:
        """Return ``(id, label)`` of the non-archived sub-sites of *parent_id*, by id."""
        assets = self.repository.query_assets(
            parent_id=str(parent_id),
            asset_type=ASSET_TYPE_LAND,
            land_type=self.settings.sub_site_land_type,
            exclude_status=ASSET_STATUS_ARCHIVED,
        )
        return [(a.id, a.label) for a in assets]

    def user_options(self, roles: Iterable[str] = ()) -> list[tuple[str, str]]:
        """Return ``(id, name)`` of active non-admin users in *roles*, naturally sorted."""
        users = self.repository.query_users(roles)
        options = [(u.id, u.name) for u in users if not u.is_admin]
        return sorted(options, key=lambda option: natural_sort_key(option[1]))

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def parse_submission(self, raw: Mapping[str, Any] | BaseModel) -> MaintenanceSubmission:
        """Validate a raw submission with ``submission_model``.

        Raises:
            InvalidSubmissionError: ``"Invalid date selection."`` when the
                schedule dates are missing or malformed, otherwise a
                summary of the failing fields.
        """
        if isinstance(raw, self.submission_model):
            return raw
        data = raw.model_dump() if isinstance(raw, BaseModel) else dict(raw)
        try:
            return self.submission_model.model_validate(data)
        except PydanticValidationError as exc:
            if _is_date_error(exc):
                msg = "Invalid date selection."
                raise InvalidSubmissionError(msg, code="INVALID_DATE_SELECTION") from exc
            raise InvalidSubmissionError(format_validation_errors(exc)) from exc

    def validate_choices(self, submission: MaintenanceSubmission) -> None:
        """Check the sub-sites and crew lead against the options the form offers.

        Raises:
            NotFoundError: If the parent site does not exist.
            InvalidSubmissionError: ``ILLEGAL_CHOICE`` when a sub-site is
                not an active sub-site of the parent, or the owner is not
                an active crew lead.
        """
        if self.repository.load_asset(submission.parent) is None:
            msg = f"Site {submission.parent} not found"
            raise NotFoundError(msg, stage="quick_form")

        sub_sites = {asset_id for asset_id, _ in self.sub_site_options(submission.parent)}
        illegal = [asset_id for asset_id in submission.asset if asset_id not in sub_sites]
        if illegal:
            msg = (
                "An illegal choice has been detected: "
                f"sub-site(s) {', '.join(illegal)} of site {submission.parent}"
            )
            raise InvalidSubmissionError(msg, code="ILLEGAL_CHOICE")

        crew_leads = {user_id for user_id, _ in self.user_options(CREW_LEAD_ROLES)}
        if submission.owner not in crew_leads:
            msg = f"An illegal choice has been detected: {submission.owner} is not a crew lead"
            raise InvalidSubmissionError(msg, code="ILLEGAL_CHOICE")

    def prepare_log(self, submission: MaintenanceSubmission) -> LogTemplate:
        """Build the log template shared by every log of *submission*.

        Raises:
            NotFoundError: If the parent site does not exist.
        """
        parent = self.repository.load_asset(submission.parent)
        if parent is None:
            msg = f"Site {submission.parent} not found"
            raise NotFoundError(msg, stage="quick_form")

        template = LogTemplate(
            log_type=self.log_type,
            name=f"{parent.label} {self.maintenance_label}",
            status=LOG_STATUS_PENDING,
            owner=submission.owner,
            category=self.configuration.get("log_category"),
            location=tuple(submission.asset),
        )
        if submission.is_scheduled:
            return template

        timestamp = submission.timestamp or datetime.combine(
            datetime.now(self.timezone).date(), time(0, 0), tzinfo=self.timezone
        )
        return replace(
            template,
            status=LOG_STATUS_DONE if submission.done else LOG_STATUS_PENDING,
            notes=submission.notes,
            quantities=tuple(self.record_quantities(submission)),
            timestamp=localize(timestamp, self.timezone),
        )

    def record_quantities(self, submission: MaintenanceSubmission) -> list[QuantityEntry]:
        """Quantities of a single-record log: time, crew size and coverage."""
        return [
            build_quantity(
                self.repository,
                "Time taken",
                submission.time_taken,
                measure="time",
                unit_name="hours",
            ),
            build_quantity(
                self.repository,
                "Number of technicians",
                submission.number_of_technicians,
                measure="count",
            ),
            build_quantity(
                self.repository,
                "Percent of site",
                submission.percent_of_site,
                measure="ratio",
                unit_name="%",
            ),
        ]

    def submit(self, raw: Mapping[str, Any] | BaseModel) -> SubmissionResult:
        """Validate and persist a submission.

        Schedule mode creates one ``pending`` log per occurrence; record
        mode creates a single log.

        Raises:
            AccessDeniedError: If the current user may not create this log type.
            InvalidSubmissionError: If the submission is invalid or picks a
                sub-site or crew lead the form does not offer.
            NotFoundError: If the parent site does not exist.
            RepositoryError: If a log cannot be created; logs created
                before the failure are kept.
        """
        if not self.access():
            msg = f"User {self.current_user.name!r} may not create {self.log_type} logs"
            raise AccessDeniedError(msg, stage="quick_form")

        submission = self.parse_submission(raw)
        self.validate_choices(submission)
        template = self.prepare_log(submission)

        if submission.is_scheduled:
            schedule = submission.schedule_data
            if schedule is None:
                msg = "Invalid date selection."
                raise InvalidSubmissionError(msg, code="INVALID_DATE_SELECTION")
            window = ScheduleWindow(
                start=localize(schedule.start_date, self.timezone),
                end=localize(schedule.end_date, self.timezone),
                week_interval=schedule.week_interval,
            )
            log_ids = create_scheduled_logs(
                template,
                window,
                create_log=self.repository.create_log,
                revision_log_message=f"Scheduled by {self.current_user.name}",
            )
            result = SubmissionResult(
                form_id=self.form_id,
                mode=SCHEDULE_MODE,
                log_ids=list(log_ids),
                message=f"Created {len(log_ids)} scheduled maintenance logs.",
            )
        else:
            log_id = self.repository.create_log(template)
            result = SubmissionResult(
                form_id=self.form_id,
                mode=RECORD_MODE,
                log_ids=[log_id],
                message=f"Created log: {template.name}",
            )

        logger.info(
            "Quick form submitted | form=%s | mode=%s | logs=%d | user=%s",
            self.form_id,
            result.mode,
            result.count,
            self.current_user.id,
        )
        return result

    # ------------------------------------------------------------------
    # Configuration form
    # ------------------------------------------------------------------

    def build_configuration_form(self) -> dict[str, Any]:
        """Return the configuration form schema with the current values."""
        category = self.configuration.get("log_category")
        term = self.repository.load_term(category, VOCABULARY_LOG_CATEGORY) if category else None
        return {
            "form_id": self.form_id,
            "fields": {
                "log_category": {
                    "type": "entity_autocomplete",
                    "title": "Log category",
                    "target_type": "taxonomy_term",
                    "target_bundles": [VOCABULARY_LOG_CATEGORY],
                    "options": [
                        {"value": t.id, "label": t.name}
                        for t in self.repository.load_terms(VOCABULARY_LOG_CATEGORY)
                    ],
                    "default_value": term.to_dict() if term else None,
                },
            },
        }

    def submit_configuration(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """Update and return the form configuration.

        ``log_category`` is kept only when it names an existing
        ``log_category`` term; anything else resets it to ``None``.

        Raises:
            AccessDeniedError: If the current user may not administer quick forms.
            InvalidSubmissionError: If *values* is malformed.
        """
        if not self.current_user.has_permission(PERMISSION_ADMINISTER_QUICK_FORMS):
            msg = f"User {self.current_user.name!r} may not configure quick forms"
            raise AccessDeniedError(msg, stage="quick_form")

        try:
            parsed = QuickFormConfiguration.model_validate(dict(values))
        except PydanticValidationError as exc:
            raise InvalidSubmissionError(format_validation_errors(exc)) from exc

        term = None
        if parsed.log_category:
            term = self.repository.load_term(parsed.log_category, VOCABULARY_LOG_CATEGORY)
        self.configuration["log_category"] = term.id if term else None

        logger.info(
            "Quick form configured | form=%s | log_category=%s",
            self.form_id,
            self.configuration["log_category"],
        )
        return dict(self.configuration)
