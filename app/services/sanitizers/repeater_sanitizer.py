"""
Sanitizer for repeater field values.

A repeater value is a collection of rows (object keyed by row id, or an array
as stored by the repeater control); each row maps subfield ids to values.

Rules:
- String input is percent-decoded then parsed as JSON (DecodeError on failure)
- Empty schema: the decoded value is returned unchanged
- Rows that are not objects become {}
- Subfields missing from the schema are dropped
- Subfields without a type are kept unchanged
- A sanitize callback fully replaces the type rule
- Otherwise the rule registered for the declared type applies

Value-safe: counts are logged, never values.
"""
import copy
import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import unquote

from app.core.config import get_settings
from app.core.logging import get_safe_logger
from app.schemas.repeater import FieldSchema, SubfieldDefinition, SubfieldType, coerce_field_schema
from app.services.exceptions import DecodeError
from app.services.sanitizers.color import sanitize_color
from app.services.sanitizers.text import (
    esc_url_raw,
    is_numeric,
    kses_post,
    sanitize_email,
    sanitize_text_field,
    to_bool,
    to_int,
)

logger = get_safe_logger(__name__)

RepeaterValue = Any
SubfieldRule = Callable[[Any, SubfieldDefinition], Any]


@dataclass
class SanitizeReport:
    """Counts collected during one sanitize call (no values)."""
    rows: int = 0
    dropped_rows: int = 0
    dropped_subfields: int = 0


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def _as_collection(value: Any) -> Union[List[Any], Dict[Any, Any]]:
    # Mappings keep their keys
    if value is None:
        return []
    if isinstance(value, dict):
        return value
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class RepeaterSanitizer:
    """
    Cleans repeater values subfield by subfield according to a FieldSchema.

    Stateless apart from configuration; safe to share across threads.

    Usage:
        sanitizer = get_repeater_sanitizer()
        clean = sanitizer.sanitize(raw_value, {"title": {"type": "text"}})
    """

    def __init__(
        self,
        allowed_protocols: Optional[Iterable[str]] = None,
        max_value_bytes: Optional[int] = None,
    ):
        settings = get_settings()
        self.allowed_protocols = frozenset(
            p.lower() for p in (allowed_protocols if allowed_protocols is not None else settings.allowed_url_protocols)
        )
        self.max_value_bytes = max_value_bytes if max_value_bytes is not None else settings.max_value_bytes

        self._rules: Dict[SubfieldType, SubfieldRule] = {
            SubfieldType.IMAGE: self._sanitize_upload,
            SubfieldType.CROPPED_IMAGE: self._sanitize_upload,
            SubfieldType.UPLOAD: self._sanitize_upload,
            SubfieldType.DROPDOWN_PAGES: lambda value, _: to_int(value),
            SubfieldType.COLOR: lambda value, _: sanitize_color(value),
            SubfieldType.TEXT: lambda value, _: sanitize_text_field(value),
            SubfieldType.TEL: lambda value, _: sanitize_text_field(value),
            SubfieldType.RADIO: lambda value, _: sanitize_text_field(value),
            SubfieldType.RADIO_IMAGE: lambda value, _: sanitize_text_field(value),
            SubfieldType.URL: self._sanitize_url,
            SubfieldType.LINK: self._sanitize_url,
            SubfieldType.EMAIL: lambda value, _: sanitize_email(value),
            SubfieldType.CHECKBOX: lambda value, _: to_bool(value),
            SubfieldType.SELECT: self._sanitize_select,
            SubfieldType.TEXTAREA: self._sanitize_textarea,
        }

    # === Type rules ===

    def _sanitize_upload(self, value: Any, definition: SubfieldDefinition) -> Any:
        # Numeric values are attachment ids
        if isinstance(value, str) and not is_numeric(value):
            return esc_url_raw(value, self.allowed_protocols)
        return value

    def _sanitize_url(self, value: Any, definition: SubfieldDefinition) -> str:
        return esc_url_raw(value, self.allowed_protocols)

    def _sanitize_select(self, value: Any, definition: SubfieldDefinition) -> Any:
        multiple = definition.multiple
        if multiple is None:
            return value

        multiplicity = 2 if multiple is True else int(multiple)
        if multiplicity > 1:
            items = _as_collection(value)
            if isinstance(items, dict):
                return {key: sanitize_text_field(item) for key, item in items.items()}
            return [sanitize_text_field(item) for item in items]
        return sanitize_text_field(value)

    def _sanitize_textarea(self, value: Any, definition: SubfieldDefinition) -> str:
        return kses_post(value, self.allowed_protocols)

    # === Pipeline ===

    def normalize(self, value: Any) -> RepeaterValue:
        """
        Turn raw input into a fresh structured value.

        Strings are percent-decoded ('+' stays '+') and parsed as JSON.
        Blank strings and None become {}. Mappings and lists are deep-copied.

        Raises:
            DecodeError: If the input is not valid encoded JSON rows
        """
        if value is None:
            return {}

        if isinstance(value, str):
            if len(value.encode("utf-8")) > self.max_value_bytes:
                raise DecodeError("Value exceeds maximum size")
            decoded = unquote(value)
            if not decoded.strip():
                return {}
            try:
                parsed = json.loads(decoded, parse_constant=_reject_constant)
            except ValueError as e:
                raise DecodeError("Value is not valid JSON") from e
            if not isinstance(parsed, (dict, list)):
                raise DecodeError("Value does not decode to a collection of rows")
            return parsed

        if isinstance(value, Mapping):
            return copy.deepcopy(dict(value))
        if isinstance(value, (list, tuple)):
            return copy.deepcopy(list(value))

        raise DecodeError("Value is not a collection of rows")

    def sanitize_subfield(self, value: Any, definition: SubfieldDefinition) -> Any:
        """Apply the callback or type rule of one subfield to its value."""
        if definition.type is None:
            return value

        if definition.sanitize_callback is not None:
            return definition.sanitize_callback(value)

        rule = self._rules.get(SubfieldType.parse(definition.type))
        if rule is None:
            return value
        return rule(value, definition)

    def _sanitize_row(self, row: Dict[str, Any], schema: FieldSchema, report: SanitizeReport) -> Dict[str, Any]:
        cleaned: Dict[str, Any] = {}
        for subfield_id, subfield_value in row.items():
            definition = schema.get(subfield_id)
            if definition is None:
                report.dropped_subfields += 1
                continue
            cleaned[subfield_id] = self.sanitize_subfield(subfield_value, definition)
        return cleaned

    def sanitize_with_report(
        self,
        value: Any,
        schema: Optional[Mapping[str, Any]],
    ) -> Tuple[RepeaterValue, SanitizeReport]:
        """
        Sanitize a repeater value and report what was discarded.

        Args:
            value: Encoded JSON string, mapping of rows or list of rows
            schema: Subfield id -> SubfieldDefinition (or plain dict)

        Returns:
            (sanitized value, SanitizeReport)

        Raises:
            DecodeError: If a string value cannot be decoded
        """
        report = SanitizeReport()
        result = self.normalize(value)
        field_schema = coerce_field_schema(schema)

        # Nothing to sanitize without subfield definitions
        if not field_schema:
            return result, report

        row_ids = list(result.keys()) if isinstance(result, dict) else list(range(len(result)))
        for row_id in row_ids:
            report.rows += 1
            row = result[row_id]
            if not isinstance(row, dict):
                result[row_id] = {}
                report.dropped_rows += 1
                continue
            result[row_id] = self._sanitize_row(row, field_schema, report)

        logger.debug(
            "Repeater value sanitized",
            rows=report.rows,
            dropped_rows=report.dropped_rows,
            dropped_subfields=report.dropped_subfields,
        )
        return result, report

    def sanitize(self, value: Any, schema: Optional[Mapping[str, Any]]) -> RepeaterValue:
        """
        Sanitize a repeater value against a field schema.

        Returns a new structured value; the input is never mutated.

        Raises:
            DecodeError: If a string value cannot be decoded
        """
        result, _ = self.sanitize_with_report(value, schema)
        return result


@lru_cache()
def get_repeater_sanitizer() -> RepeaterSanitizer:
    """Get cached sanitizer configured from settings."""
    return RepeaterSanitizer()


def sanitize_repeater_value(value: Any, schema: Optional[Mapping[str, Any]]) -> RepeaterValue:
    """Sanitize with the settings-configured sanitizer."""
    return get_repeater_sanitizer().sanitize(value, schema)
