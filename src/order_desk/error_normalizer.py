"""
Uniform handling of backend failures.

The orders backend reports problems in three shapes: a flat list of
``{key, errorMessage, severity}`` records, a map of field name to
messages, or a single message. ErrorNormalizer converts all of them into
FormValidationError records, delivers what it can to the active form, and
shows the rest through the notification sink.

Notifications are deduplicated process-wide: while a ToastRecord for a
``key-message`` pair is alive, identical notifications are suppressed.
Records expire after a cooldown driven by an injectable scheduler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .errors import ApiError
from .models import ApiValidationError, FieldError, FormValidationError, NotificationKind, Severity
from .scheduling import LoopScheduler, Scheduler
from .utils import error_message, pluralize

logger = logging.getLogger(__name__)

NotificationSink = Callable[[str, NotificationKind], Any]
FormFieldSink = Callable[[str, FieldError], Any]

# Key given to failures that carry only a top-level message.
GENERAL_KEY = ""

DEFAULT_FALLBACK = "An unexpected error occurred"


@dataclass
class ToastRecord:
    dedupe_key: str
    expires_at: float


@dataclass
class ErrorReport:
    """
    Outcome of handling one failure.

    Attributes:
        form_errors: Every normalized error, mapped or not
        unmapped: Errors no form field accepted
        mapped_to_fields: How many errors a form field accepted
        message: Single user-facing message describing the failure
    """

    form_errors: List[FormValidationError] = field(default_factory=list)
    unmapped: List[FormValidationError] = field(default_factory=list)
    mapped_to_fields: int = 0
    message: str = ""

    @property
    def total_errors(self) -> int:
        return len(self.form_errors)


RawErrors = Union[ApiError, BaseException, str, Mapping[str, Any], Sequence[Any], ApiValidationError, None]


class ErrorNormalizer:
    """
    Converts, routes and deduplicates backend errors.

    One instance is shared by every view in the process, since notifications
    go to a single global channel.

    Attributes:
        cooldown: How long a notification suppresses identical ones
        field_mapping: Default backend key to form field translation
    """

    def __init__(
        self,
        notification_sink: Optional[NotificationSink] = None,
        scheduler: Optional[Scheduler] = None,
        cooldown: float = 5.0,
        field_mapping: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.cooldown = cooldown
        self.field_mapping: Dict[str, str] = dict(field_mapping or {})
        self._sink = notification_sink
        self._scheduler = scheduler or LoopScheduler()
        self._toasts: Dict[str, ToastRecord] = {}

    @property
    def active_toasts(self) -> List[ToastRecord]:
        now = self._scheduler.now()
        return [record for record in self._toasts.values() if record.expires_at > now]

    def extract(self, raw: RawErrors) -> List[ApiValidationError]:
        """
        Detect which failure shape ``raw`` uses and flatten it.

        Args:
            raw: An ApiError, any exception, a decoded error body, a list of
                validation records, a field to messages map, or a string

        Returns:
            Validation records; message-only failures yield one record keyed
            by GENERAL_KEY
        """
        if raw is None:
            return []
        if isinstance(raw, ApiValidationError):
            return [raw]
        if isinstance(raw, ApiError):
            if raw.validation_errors:
                return self._from_list(raw.validation_errors)
            if raw.errors:
                return self._from_field_map(raw.errors)
            return self._from_message(raw.message or str(raw))
        if isinstance(raw, BaseException):
            return self._from_message(error_message(raw, DEFAULT_FALLBACK))
        if isinstance(raw, str):
            return self._from_message(raw)
        if isinstance(raw, Mapping):
            validation_errors = raw.get("validationErrors")
            if isinstance(validation_errors, list) and validation_errors:
                return self._from_list(validation_errors)
            errors = raw.get("errors")
            if isinstance(errors, Mapping):
                return self._from_field_map(errors)
            if isinstance(raw.get("message"), str):
                return self._from_message(raw["message"])
            return self._from_field_map(raw)
        return self._from_list(raw)

    def normalize(self, raw: RawErrors, field_mapping: Optional[Mapping[str, str]] = None) -> List[FormValidationError]:
        mapping = {**self.field_mapping, **(field_mapping or {})}
        return [
            FormValidationError(
                key=error.key,
                field=mapping.get(error.key, error.key),
                message=error.error_message,
                severity="warning" if error.severity == Severity.WARNING else "error",
            )
            for error in self.extract(raw)
        ]

    def route(
        self,
        form_errors: Iterable[FormValidationError],
        form_sink: Optional[FormFieldSink] = None,
    ) -> List[FormValidationError]:
        """
        Deliver errors to form fields.

        Args:
            form_errors: Normalized errors
            form_sink: Callable that shows an error on a form field; raising
                means the field is not part of the active form

        Returns:
            The errors that no form field accepted
        """
        unmapped: List[FormValidationError] = []
        for error in form_errors:
            if form_sink is None:
                unmapped.append(error)
                continue
            try:
                form_sink(error.field, FieldError(type=error.type, message=error.message))
            except Exception as exc:
                logger.debug(f"Form rejected field {error.field!r}: {exc}")
                unmapped.append(error)
        return unmapped

    def notify(self, errors: Iterable[FormValidationError]) -> int:
        """
        Show errors through the notification sink, suppressing duplicates.

        Returns:
            The number of notifications actually emitted
        """
        if self._sink is None:
            logger.warning("Notification sink not configured; errors will not be shown")
            return 0

        emitted = 0
        now = self._scheduler.now()
        for error in errors:
            dedupe_key = f"{error.key}-{error.message}"
            record = self._toasts.get(dedupe_key)
            if record is not None and record.expires_at > now:
                logger.debug(f"Suppressing duplicate notification {dedupe_key!r}")
                continue

            record = ToastRecord(dedupe_key=dedupe_key, expires_at=now + self.cooldown)
            self._toasts[dedupe_key] = record
            kind = NotificationKind.WARNING if error.severity == "warning" else NotificationKind.ERROR
            self._sink(error.message, kind)
            self._scheduler.call_later(self.cooldown, self._expire, record)
            emitted += 1
        return emitted

    def summarize(self, errors: Iterable[Union[FormValidationError, ApiValidationError]]) -> str:
        error_count = 0
        warning_count = 0
        for error in errors:
            if _is_warning(error):
                warning_count += 1
            else:
                error_count += 1

        parts = []
        if error_count:
            parts.append(pluralize(error_count, "error"))
        if warning_count:
            parts.append(pluralize(warning_count, "warning"))
        return " and ".join(parts)

    def describe(self, failure: RawErrors, fallback: str = DEFAULT_FALLBACK) -> str:
        """Reduce a failure to the one message a view shows in its error slot."""
        if isinstance(failure, ApiError) and failure.message:
            return failure.message
        if isinstance(failure, (ApiError, Mapping, list, tuple)):
            records = self.extract(failure)
            if len(records) == 1:
                return records[0].error_message or fallback
            if records:
                return f"Validation failed: {self.summarize(records)}"
            return fallback
        return error_message(failure, fallback)

    def handle(
        self,
        failure: RawErrors,
        form_sink: Optional[FormFieldSink] = None,
        field_mapping: Optional[Mapping[str, str]] = None,
        surface_when_mapped: bool = True,
        fallback: str = DEFAULT_FALLBACK,
    ) -> ErrorReport:
        """
        Normalize, route and surface a failure in one step.

        Unmapped errors are notified. When every error was accepted by a
        form field, all of them are notified anyway unless
        ``surface_when_mapped`` is False.
        """
        form_errors = self.normalize(failure, field_mapping)
        unmapped = self.route(form_errors, form_sink)

        if unmapped:
            self.notify(unmapped)
        elif form_errors and surface_when_mapped:
            self.notify(form_errors)

        return ErrorReport(
            form_errors=form_errors,
            unmapped=unmapped,
            mapped_to_fields=len(form_errors) - len(unmapped),
            message=self.describe(failure, fallback),
        )

    def clear_active_toasts(self) -> None:
        self._toasts.clear()

    def _expire(self, record: ToastRecord) -> None:
        if self._toasts.get(record.dedupe_key) is record:
            del self._toasts[record.dedupe_key]

    @staticmethod
    def _from_list(items: Iterable[Any]) -> List[ApiValidationError]:
        return [_coerce_record(item) for item in items]

    @staticmethod
    def _from_field_map(errors: Mapping[str, Any]) -> List[ApiValidationError]:
        records = []
        for key, messages in errors.items():
            if isinstance(messages, str):
                messages = [messages]
            for message in messages:
                records.append(ApiValidationError(key=key, error_message=message, severity=Severity.ERROR))
        return records

    @staticmethod
    def _from_message(message: str) -> List[ApiValidationError]:
        return [ApiValidationError(key=GENERAL_KEY, error_message=message or DEFAULT_FALLBACK)]


def _is_warning(error: Union[FormValidationError, ApiValidationError]) -> bool:
    if isinstance(error, ApiValidationError):
        return error.severity == Severity.WARNING
    return error.severity == "warning"


def _coerce_record(item: Any) -> ApiValidationError:
    """
    Read one validation record without trusting its shape.

    Severity 0 (or missing) is an error and any other value a warning.
    Records that are not objects become a general message.
    """
    if isinstance(item, ApiValidationError):
        return item
    if not isinstance(item, Mapping):
        return ApiValidationError(key=GENERAL_KEY, error_message=str(item) or DEFAULT_FALLBACK)

    key = item.get("key")
    message = item.get("errorMessage", item.get("error_message", item.get("message")))
    severity = item.get("severity")
    return ApiValidationError(
        key=GENERAL_KEY if key is None else str(key),
        error_message=str(message) if message else DEFAULT_FALLBACK,
        severity=Severity.ERROR if severity in (None, 0, Severity.ERROR) else Severity.WARNING,
    )
