"""
Sanitizers module.
Contains the per-type rules and named callbacks used by the repeater sanitizer
(app.services.sanitizers.repeater_sanitizer).
"""
from app.services.sanitizers.callbacks import (
    list_callbacks,
    register_callback,
    resolve_callback,
)
from app.services.sanitizers.color import parse_color, sanitize_color
from app.services.sanitizers.text import (
    esc_url_raw,
    kses_post,
    sanitize_email,
    sanitize_text_field,
)

__all__ = [
    "list_callbacks",
    "register_callback",
    "resolve_callback",
    "parse_color",
    "sanitize_color",
    "esc_url_raw",
    "kses_post",
    "sanitize_email",
    "sanitize_text_field",
]
