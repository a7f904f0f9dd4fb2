"""
Repeater field schemas.

FieldSchema maps subfield ids to SubfieldDefinition. Definitions are frozen:
they come from field configuration and are never mutated while sanitizing.

Value note: request/response payloads carry user content - NEVER log them.
"""
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from app.services.sanitizers.callbacks import resolve_callback


class SubfieldType(str, Enum):
    """Subfield types with a built-in sanitize rule."""
    IMAGE = "image"
    CROPPED_IMAGE = "cropped_image"
    UPLOAD = "upload"
    DROPDOWN_PAGES = "dropdown-pages"
    COLOR = "color"
    TEXT = "text"
    TEL = "tel"
    RADIO = "radio"
    RADIO_IMAGE = "radio-image"
    URL = "url"
    LINK = "link"
    EMAIL = "email"
    CHECKBOX = "checkbox"
    SELECT = "select"
    TEXTAREA = "textarea"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["SubfieldType"]:
        """Return the member for a type string, or None for unknown types."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class SubfieldDefinition(BaseModel):
    """
    Definition of one subfield inside a repeater row.

    Extra keys (label, default, choices, ...) are kept but not used
    by the sanitizer.
    """
    type: Optional[str] = Field(
        default=None,
        description="Declared subfield type; unknown types leave values unchanged"
    )
    sanitize_callback: Optional[Callable[[Any], Any]] = Field(
        default=None,
        alias="sanitizeCallback",
        description="Callable (or registered callback name) replacing the type rule"
    )
    multiple: Optional[Union[bool, int]] = Field(
        default=None,
        description="Select multiplicity: true or an integer greater than 1 means a list"
    )

    @field_validator("sanitize_callback", mode="before")
    @classmethod
    def resolve_named_callback(cls, v: Any) -> Any:
        """Resolve callback names through the registry (UnknownCallbackError if missing)."""
        if v is None or v == "":
            return None
        if isinstance(v, str):
            return resolve_callback(v)
        return v

    class Config:
        populate_by_name = True
        frozen = True
        extra = "allow"


FieldSchema = Dict[str, SubfieldDefinition]


def coerce_field_schema(schema: Optional[Mapping[str, Any]]) -> FieldSchema:
    """
    Build a FieldSchema from definitions or plain dicts, preserving order.

    Raises:
        pydantic.ValidationError: If a definition is malformed
        UnknownCallbackError: If a named callback is not registered
    """
    if not schema:
        return {}
    result: FieldSchema = {}
    for subfield_id, definition in schema.items():
        if isinstance(definition, SubfieldDefinition):
            result[str(subfield_id)] = definition
        else:
            result[str(subfield_id)] = SubfieldDefinition.model_validate(definition)
    return result


# === API request / response models ===

class SubfieldConfig(BaseModel):
    """JSON form of a SubfieldDefinition; callbacks are referenced by name."""
    type: Optional[str] = Field(default=None, description="Declared subfield type")
    sanitize_callback: Optional[str] = Field(
        default=None,
        alias="sanitizeCallback",
        description="Name of a registered sanitize callback"
    )
    multiple: Optional[Union[bool, int]] = Field(default=None, description="Select multiplicity")

    class Config:
        populate_by_name = True
        extra = "allow"

    def to_definition(self) -> SubfieldDefinition:
        return SubfieldDefinition.model_validate(self.model_dump(by_alias=True, exclude_none=True))


class SanitizeRequest(BaseModel):
    """Request model for /v1/repeater/sanitize."""
    value: Any = Field(
        default=None,
        description="Repeater value: percent-encoded JSON string, object or array of rows",
        examples=[{"0": {"title": "<b>Hello</b>", "link": "example.com"}}]
    )
    fields: Dict[str, SubfieldConfig] = Field(
        default_factory=dict,
        description="Field schema: subfield id -> definition",
        examples=[{"title": {"type": "text"}, "link": {"type": "url"}}]
    )

    class Config:
        populate_by_name = True

    def field_schema(self) -> FieldSchema:
        return {subfield_id: cfg.to_definition() for subfield_id, cfg in self.fields.items()}


class SanitizeMetadata(BaseModel):
    """Metadata for sanitize responses. Counts only, no values."""
    request_id: str = Field(..., alias="requestId", description="Request ID for tracing")
    sanitize_ms: int = Field(..., alias="sanitizeMs", description="Sanitization time in ms")
    rows: int = Field(default=0, description="Rows processed")
    dropped_rows: int = Field(default=0, alias="droppedRows", description="Malformed rows replaced by {}")
    dropped_subfields: int = Field(
        default=0,
        alias="droppedSubfields",
        description="Subfields removed because the schema does not declare them"
    )

    class Config:
        populate_by_name = True


class SanitizeResponse(BaseModel):
    """Successful sanitize response."""
    success: bool = True
    data: Any = Field(..., description="Sanitized repeater value")
    metadata: SanitizeMetadata

    class Config:
        populate_by_name = True
