"""
Repeater field definition.

Holds the configuration of one repeater field instance and contributes the
arguments the host customization framework needs when it registers the
field's setting and control:
- setting args get this field's sanitize method unless a callback is set
- control args get the repeater control type and the field's UI options
"""
from typing import Any, Dict, Mapping, Optional

from app.schemas.repeater import FieldSchema, coerce_field_schema
from app.services.sanitizers.repeater_sanitizer import (
    RepeaterSanitizer,
    RepeaterValue,
    get_repeater_sanitizer,
)

CONTROL_TYPE = "kirki-repeater"

# Field options forwarded to the control when the caller did not set them
_CONTROL_OPTIONS = ("label", "description", "section", "priority", "row_label", "button_label", "limit")


class RepeaterField:
    """
    One repeater field: a setting id plus the schema of its row subfields.

    Args:
        settings: Setting id the field stores its value under
        fields: Subfield id -> definition (SubfieldDefinition or dict)
        sanitizer: Sanitizer to use (defaults to the settings-configured one)
        **args: Remaining field options (label, section, default, row_label, ...)
    """

    def __init__(
        self,
        settings: str,
        fields: Optional[Mapping[str, Any]] = None,
        sanitizer: Optional[RepeaterSanitizer] = None,
        **args: Any,
    ):
        if not settings:
            raise ValueError("Repeater field requires a settings id")
        self.settings = settings
        self.fields: FieldSchema = coerce_field_schema(fields)
        self.args: Dict[str, Any] = {"settings": settings, **args}
        self._sanitizer = sanitizer

    @property
    def sanitizer(self) -> RepeaterSanitizer:
        return self._sanitizer or get_repeater_sanitizer()

    def _owns(self, args: Mapping[str, Any]) -> bool:
        return args.get("settings") == self.settings

    def filter_setting_args(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """Set this field's sanitize method as the setting's callback if none is defined."""
        result = dict(args)
        if not self._owns(args):
            return result

        if not result.get("sanitize_callback"):
            result["sanitize_callback"] = self.sanitize
        return result

    def filter_control_args(self, args: Mapping[str, Any]) -> Dict[str, Any]:
        """Mark the control as a repeater control and pass the field's UI options."""
        result = dict(args)
        if not self._owns(args):
            return result

        for option in _CONTROL_OPTIONS:
            if option in self.args and option not in result:
                result[option] = self.args[option]
        if "fields" not in result:
            result["fields"] = {
                subfield_id: definition.model_dump(
                    by_alias=True,
                    exclude_none=True,
                    exclude={"sanitize_callback"},
                )
                for subfield_id, definition in self.fields.items()
            }
        result["type"] = CONTROL_TYPE
        return result

    def sanitize(self, value: Any) -> RepeaterValue:
        """Sanitize a stored or submitted value against this field's subfields."""
        return self.sanitizer.sanitize(value, self.fields)
