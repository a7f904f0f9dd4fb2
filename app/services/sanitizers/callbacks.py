"""
Registry of named sanitize callbacks.

A subfield may override its type rule with `sanitizeCallback`. Python callers
pass a callable; HTTP callers name one of the callbacks registered here.
"""
import re
import threading
from typing import Any, Callable, Dict, List

from app.services.exceptions import UnknownCallbackError
from app.services.sanitizers.color import parse_color
from app.services.sanitizers.text import (
    esc_url_raw,
    kses_post,
    sanitize_email,
    sanitize_text_field,
    scalar_text,
    to_bool,
    to_int,
)

SanitizeCallback = Callable[[Any], Any]

_HEX_COLOR_REGEX = re.compile(r"^#(?:[A-Fa-f0-9]{3}){1,2}$")
_KEY_DISALLOWED_REGEX = re.compile(r"[^a-z0-9_\-]")


def absint(value: Any) -> int:
    """Non-negative integer."""
    return abs(to_int(value))


def sanitize_hex_color(value: Any) -> str:
    """Keep a 3 or 6 digit '#' hex color, lowercased; anything else becomes ""."""
    text = scalar_text(value).strip()
    if not _HEX_COLOR_REGEX.match(text):
        return ""
    color = parse_color(text)
    return color.to_css() if color is not None else ""


def sanitize_key(value: Any) -> str:
    """Lowercase slug of [a-z0-9_-]."""
    return _KEY_DISALLOWED_REGEX.sub("", scalar_text(value).lower())


_BUILTIN_CALLBACKS: Dict[str, SanitizeCallback] = {
    "sanitize_text_field": sanitize_text_field,
    "esc_url_raw": esc_url_raw,
    "sanitize_email": sanitize_email,
    "wp_kses_post": kses_post,
    "absint": absint,
    "intval": to_int,
    "boolval": to_bool,
    "sanitize_hex_color": sanitize_hex_color,
    "sanitize_key": sanitize_key,
}

_registry: Dict[str, SanitizeCallback] = dict(_BUILTIN_CALLBACKS)
_registry_lock = threading.Lock()


def register_callback(name: str, callback: SanitizeCallback) -> None:
    """
    Register (or replace) a named sanitize callback.

    Raises:
        TypeError: If callback is not callable
        ValueError: If name is empty
    """
    if not callable(callback):
        raise TypeError("Sanitize callback must be callable")
    if not name or not name.strip():
        raise ValueError("Sanitize callback name must not be empty")
    with _registry_lock:
        _registry[name.strip()] = callback


def unregister_callback(name: str) -> None:
    """Remove a registered callback; built-ins are restored rather than removed."""
    with _registry_lock:
        if name in _BUILTIN_CALLBACKS:
            _registry[name] = _BUILTIN_CALLBACKS[name]
        else:
            _registry.pop(name, None)


def resolve_callback(name: str) -> SanitizeCallback:
    """
    Look up a named callback.

    Raises:
        UnknownCallbackError: If no callback is registered under name
    """
    with _registry_lock:
        callback = _registry.get(name.strip())
    if callback is None:
        raise UnknownCallbackError(name)
    return callback


def list_callbacks() -> List[str]:
    """Sorted names of all registered callbacks."""
    with _registry_lock:
        return sorted(_registry)
