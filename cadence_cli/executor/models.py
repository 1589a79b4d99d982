"""Data model for documents and the schedules embedded in them.

A document body is an arbitrary JSON object. The executor only models the
parts of each entry under ``schedules`` that it needs to decide whether a
schedule is due and to record how its execution went; every other key is
carried through untouched so a re-serialized body loses nothing.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union


JsonValue = Union[None, bool, int, float, str, List[Any], Dict[str, Any]]

DEFAULT_TIMEZONE = "UTC"
DOCUMENT_KIND = "agent"


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision.

    Produces the ``2024-01-02T00:00:00.000Z`` form used throughout
    stored document bodies.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp into an aware UTC datetime.

    Returns None when the value is unset. Naive timestamps are assumed
    to be UTC.

    Raises:
        ValueError: If the value is set but is not a valid timestamp
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be a string, got {type(value).__name__}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _coerce_flag(value: Any) -> bool:
    """Read a stored on/off switch; strings and numbers are accepted."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return False


def _coerce_count(value: Any) -> int:
    """Read a stored error counter, treating junk as zero."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float) and value.is_integer():
        return max(int(value), 0)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return 0


@dataclass
class ScheduleInterval:
    """Timing rule of a schedule.

    Attributes:
        pattern: 5-field cron expression
        timezone: IANA timezone the pattern is evaluated in
        active: Whether the schedule is switched on
    """

    pattern: Any = None
    timezone: str = DEFAULT_TIMEZONE
    active: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleInterval":
        tz = data.get("timezone")
        return cls(
            pattern=data.get("pattern"),
            timezone=tz if isinstance(tz, str) and tz else DEFAULT_TIMEZONE,
            active=_coerce_flag(data.get("active")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "timezone": self.timezone,
            "active": self.active,
        }


@dataclass
class SavedInputs:
    """Payload handed to every execution of a schedule."""

    input_parameters: Any = field(default_factory=dict)
    env_vars: Any = field(default_factory=dict)
    last_updated: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SavedInputs":
        return cls(
            input_parameters=data.get("inputParameters", {}),
            env_vars=data.get("envVars", {}),
            last_updated=data.get("lastUpdated"),
        )


@dataclass
class ScheduleExecute:
    """What a schedule runs. Only ``code`` is executable."""

    type: Any = None
    script: Any = None
    env_var_specs: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleExecute":
        code = data.get("code")
        script = None
        specs: List[Dict[str, Any]] = []
        if isinstance(code, dict):
            script = code.get("script")
            raw_specs = code.get("envVars")
            if isinstance(raw_specs, list):
                specs = [s for s in raw_specs if isinstance(s, dict)]
        return cls(type=data.get("type"), script=script, env_var_specs=specs)


@dataclass
class Schedule:
    """A user-authored automation embedded in a document body.

    Timestamps are kept exactly as stored (strings) so a malformed
    value can be reported and recovered from at decision time instead
    of failing the parse of the whole document.

    Attributes:
        id: Identifier, unique within the owning document
        name: Human-readable name
        interval: Timing rule, None when missing or malformed
        last_processed_at: Watermark of the most recent attempt
        error_count: Consecutive failure counter
        last_error: Message of the most recent failure
        last_error_at: When the most recent failure happened
        saved_inputs: Payload passed to each execution
        execute: Executable definition, None when missing
        raw: The stored JSON object, including unmodeled keys
    """

    id: Any = None
    name: str = ""
    interval: Optional[ScheduleInterval] = None
    last_processed_at: Optional[str] = None
    error_count: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[str] = None
    saved_inputs: SavedInputs = field(default_factory=SavedInputs)
    execute: Optional[ScheduleExecute] = None
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Schedule":
        interval = data.get("interval")
        saved_inputs = data.get("savedInputs")
        execute = data.get("execute")
        name = data.get("name")
        return cls(
            id=data.get("id"),
            name=name if isinstance(name, str) else "",
            interval=ScheduleInterval.from_dict(interval) if isinstance(interval, dict) else None,
            last_processed_at=data.get("lastProcessedAt"),
            error_count=_coerce_count(data.get("errorCount")),
            last_error=data.get("lastError"),
            last_error_at=data.get("lastErrorAt"),
            saved_inputs=(
                SavedInputs.from_dict(saved_inputs)
                if isinstance(saved_inputs, dict)
                else SavedInputs()
            ),
            execute=ScheduleExecute.from_dict(execute) if isinstance(execute, dict) else None,
            raw=dict(data),
        )

    @property
    def label(self) -> str:
        """Identifier used in log lines."""
        return f"{self.id} ({self.name})" if self.name else str(self.id)

    def mark_processed(self, now: datetime) -> None:
        """Advance the watermark to ``now``."""
        self.last_processed_at = format_timestamp(now)

    def record_success(self) -> None:
        """Clear the failure state after a successful execution."""
        self.error_count = 0
        self.last_error = None
        self.last_error_at = None

    def record_failure(self, message: str, now: datetime) -> None:
        """Count one more consecutive failure."""
        self.error_count += 1
        self.last_error = message
        self.last_error_at = format_timestamp(now)

    def reset_errors(self) -> bool:
        """Clear the failure state by hand.

        Returns:
            True if there was anything to reset
        """
        if self.error_count <= 0:
            return False
        self.record_success()
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the stored form, preserving unmodeled keys."""
        data = dict(self.raw)

        if self.last_processed_at is not None:
            data["lastProcessedAt"] = self.last_processed_at

        if "errorCount" in data or self.error_count:
            data["errorCount"] = self.error_count

        if self.last_error is not None:
            data["lastError"] = self.last_error
        else:
            data.pop("lastError", None)

        if self.last_error_at is not None:
            data["lastErrorAt"] = self.last_error_at
        else:
            data.pop("lastErrorAt", None)

        return data


@dataclass
class Document:
    """A stored document as returned by the document store.

    Attributes:
        id: Document identifier
        content: JSON text of the body, may be None for empty documents
        user_id: Owner of the document
        title: Display title
        kind: Document kind
        metadata: Free-form metadata
    """

    id: str
    content: Optional[str] = None
    user_id: str = ""
    title: str = ""
    kind: str = DOCUMENT_KIND
    metadata: Dict[str, Any] = field(default_factory=dict)


class DocumentParseError(ValueError):
    """Raised when a document body is not a JSON object."""


@dataclass
class ParsedDocument:
    """A document together with its decoded body and schedules.

    ``entries`` is aligned with ``body["schedules"]``: malformed entries
    that are not JSON objects are kept as None so their slots survive
    re-serialization unchanged.
    """

    document: Document
    body: Dict[str, Any]
    entries: List[Optional[Schedule]] = field(default_factory=list)

    @classmethod
    def parse(cls, document: Document) -> Optional["ParsedDocument"]:
        """Decode a document body.

        Returns:
            The parsed document, or None when the document carries no
            content at all

        Raises:
            DocumentParseError: If the content is not a JSON object
        """
        if not document.content:
            return None

        try:
            body = json.loads(document.content)
        except (TypeError, ValueError) as e:
            raise DocumentParseError(f"Invalid JSON: {e}") from e

        if not isinstance(body, dict):
            raise DocumentParseError(
                f"Document body must be a JSON object, got {type(body).__name__}"
            )

        raw_schedules = body.get("schedules")
        entries: List[Optional[Schedule]] = []
        if isinstance(raw_schedules, list):
            entries = [
                Schedule.from_dict(entry) if isinstance(entry, dict) else None
                for entry in raw_schedules
            ]

        return cls(document=document, body=body, entries=entries)

    @property
    def has_schedules(self) -> bool:
        return isinstance(self.body.get("schedules"), list)

    @property
    def schedules(self) -> List[Schedule]:
        """Well-formed schedules of this document."""
        return [s for s in self.entries if s is not None]

    def serialize(self) -> str:
        """Render the full body, with schedule state written back."""
        body = dict(self.body)
        if self.has_schedules:
            original = body["schedules"]
            body["schedules"] = [
                entry.to_dict() if entry is not None else original[index]
                for index, entry in enumerate(self.entries)
            ]
        return json.dumps(body, indent=2)


@dataclass
class ScheduleItem:
    """A schedule selected for execution in this invocation."""

    document_id: str
    schedule: Schedule
    parsed: ParsedDocument

    @property
    def schedule_id(self) -> str:
        return str(self.schedule.id)
