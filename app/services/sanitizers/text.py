"""
Scalar sanitization rules for repeater subfields.

Each rule takes one raw subfield value and returns a cleaned value:
- Plain text: tags stripped, whitespace collapsed, percent octets removed
- URL: unsafe characters removed, disallowed schemes emptied
- Email: only characters legal in an address are kept
- Rich text: post-content tag allow-list, entities decoded
- Integer / boolean coercion with loose, form-friendly semantics

Value-safe: no logging of field values.
"""
import html
import math
import re
from typing import Any, Iterable, Optional

import bleach

from app.core.config import DEFAULT_ALLOWED_PROTOCOLS


# <script>/<style> blocks are dropped together with their contents
_SCRIPT_STYLE_REGEX = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)

# Line breaks, tabs and space runs collapse into a single space
_WHITESPACE_REGEX = re.compile(r"[\r\n\t ]+")
_SPACE_RUN_REGEX = re.compile(r" +")

# bleach leaves "&" and ">" as entities; plain text keeps them literal
_ESCAPED_REGEX = re.compile(r"&(amp|gt);")

# Percent-encoded octets (e.g. %3C) are removed from plain text
_OCTET_REGEX = re.compile(r"%[a-f0-9]{2}", re.IGNORECASE)

# Characters allowed to survive in a URL (non-ASCII is kept as-is)
_URL_DISALLOWED_REGEX = re.compile(
    r"[^a-z0-9\-~+_.?#=!&;,/:%@$|*'()\[\]\u0080-\U0010ffff]",
    re.IGNORECASE
)
_URL_NEWLINE_ESCAPE_REGEX = re.compile(r"%0[da]", re.IGNORECASE)
_PHP_FILE_REGEX = re.compile(r"^[a-z0-9-]+?\.php", re.IGNORECASE)
# Scheme-less "host:port" prefix ("localhost:8080/x", "example.com:8080")
_HOST_PORT_REGEX = re.compile(r"^([a-z0-9][a-z0-9.-]*):\d+(?:[/?#]|$)", re.IGNORECASE)

# Scheme prefix, including entity-encoded colons ("javascript&#58;")
_SCHEME_REGEX = re.compile(
    r"^((?:&[^;]*;|[\sA-Za-z0-9])*)(?::|&#0*58;|&#x0*3a;)",
    re.IGNORECASE
)
_NON_EMAIL_REGEX = re.compile(r"[^A-Za-z0-9!#$%&'*+\-=?^_`{|}~@.\[\]]")

_NUMERIC_REGEX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?\s*$")
_NUMERIC_PREFIX_REGEX = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_INTEGER_REGEX = re.compile(r"^[+-]?\d+$")

# Tags and attributes allowed in rich text (links and basic formatting)
POST_ALLOWED_TAGS = frozenset({
    "a", "abbr", "acronym", "b", "blockquote", "br", "cite", "code",
    "dd", "del", "div", "dl", "dt", "em", "figcaption", "figure",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "ins",
    "li", "ol", "p", "pre", "q", "s", "span", "strike", "strong",
    "sub", "sup", "table", "tbody", "td", "th", "thead", "tr", "u", "ul",
})

POST_ALLOWED_ATTRIBUTES = {
    "*": ["class", "title"],
    "a": ["href", "rel", "target", "title"],
    "abbr": ["title"],
    "acronym": ["title"],
    "blockquote": ["cite"],
    "q": ["cite"],
    "img": ["src", "alt", "title", "width", "height"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
}


def scalar_text(value: Any) -> str:
    """
    Cast a raw value to text the way form input is cast.

    None, False and containers become "", True becomes "1",
    numbers are stringified.
    """
    if value is None or isinstance(value, (dict, list, tuple)):
        return ""
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, str):
        return value
    return str(value)


def _unescape_text(text: str) -> str:
    while _ESCAPED_REGEX.search(text):
        text = _ESCAPED_REGEX.sub(lambda m: "&" if m.group(1) == "amp" else ">", text)
    return text


def strip_all_tags(text: str) -> str:
    """
    Remove every tag, dropping <script>/<style> contents entirely.

    "&" and ">" come back literal; a "<" that does not open a tag stays "&lt;".
    """
    text = _SCRIPT_STYLE_REGEX.sub("", text)
    return _unescape_text(bleach.clean(text, tags=set(), attributes={}, strip=True, strip_comments=True))


def sanitize_text_field(value: Any) -> str:
    """
    Collapse a value into a safe single-line plain-text string.

    Rules:
    1. Cast to text (containers and None become "")
    2. Strip all tags; a stray "<" is kept as "&lt;", "&" and ">" stay literal
    3. Collapse line breaks, tabs and space runs to one space, then trim
    4. Remove percent-encoded octets

    Args:
        value: Raw subfield value

    Returns:
        Sanitized string (possibly empty)
    """
    text = scalar_text(value)
    if not text:
        return ""

    text = strip_all_tags(text)
    text = _WHITESPACE_REGEX.sub(" ", text).strip()

    found = False
    match = _OCTET_REGEX.search(text)
    while match:
        text = text.replace(match.group(0), "")
        found = True
        match = _OCTET_REGEX.search(text)
    if found:
        text = _SPACE_RUN_REGEX.sub(" ", text).strip()

    return text


def _has_allowed_protocol(url: str, protocols: Iterable[str]) -> bool:
    match = _SCHEME_REGEX.match(url)
    if match is None:
        return True
    scheme = re.sub(r"\s", "", html.unescape(match.group(1))).replace("\x00", "").lower()
    return scheme in protocols


def esc_url_raw(value: Any, protocols: Optional[Iterable[str]] = None) -> str:
    """
    Clean a URL for storage.

    Removes characters that are not URL-safe, strips CR/LF escapes,
    prefixes scheme-less hosts with http:// and empties the value when
    its scheme is not an allowed protocol ("javascript:alert(1)" -> "").

    Args:
        value: Raw URL value
        protocols: Allowed schemes (defaults to DEFAULT_ALLOWED_PROTOCOLS)

    Returns:
        Sanitized URL or "" when unsafe
    """
    allowed = {p.lower() for p in (protocols if protocols is not None else DEFAULT_ALLOWED_PROTOCOLS)}

    url = scalar_text(value).lstrip()
    if not url:
        return ""

    url = url.replace(" ", "%20")
    url = _URL_DISALLOWED_REGEX.sub("", url)
    if not url:
        return ""

    if not url.lower().startswith("mailto:"):
        while _URL_NEWLINE_ESCAPE_REGEX.search(url):
            url = _URL_NEWLINE_ESCAPE_REGEX.sub("", url)
        if not url:
            return ""

    url = url.replace(";//", "://")

    # Bare hosts such as "example.com/page" or "localhost:8080" are treated as http links
    if url[0] not in "/#?" and not _PHP_FILE_REGEX.match(url):
        host_port = _HOST_PORT_REGEX.match(url)
        if ":" not in url or (host_port and host_port.group(1).lower() not in allowed):
            url = "http://" + url

    if not _has_allowed_protocol(url, allowed):
        return ""

    return url


def sanitize_email(value: Any) -> str:
    """Keep only letters, digits and the punctuation legal in an email address."""
    return _NON_EMAIL_REGEX.sub("", scalar_text(value))


def kses_post(value: Any, protocols: Optional[Iterable[str]] = None) -> str:
    """
    Strip all tags except the post-content allow-list, then decode entities.

    Link and image URLs are restricted to the allowed protocols.
    """
    text = scalar_text(value)
    if not text:
        return ""

    allowed = protocols if protocols is not None else DEFAULT_ALLOWED_PROTOCOLS
    text = _SCRIPT_STYLE_REGEX.sub("", text)
    cleaned = bleach.clean(
        text,
        tags=POST_ALLOWED_TAGS,
        attributes=POST_ALLOWED_ATTRIBUTES,
        protocols=set(allowed),
        strip=True,
        strip_comments=True,
    )
    return html.unescape(cleaned)


def is_numeric(value: Any) -> bool:
    """True for numbers and numeric strings ("42", " 4.2", "1e3"); never for bools."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return _NUMERIC_REGEX.match(value) is not None
    return False


def to_int(value: Any) -> int:
    """
    Coerce a value to an integer.

    Strings use their leading numeric prefix ("42abc" -> 42, "abc" -> 0),
    floats are truncated, containers are 0 when empty and 1 otherwise.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, (dict, list, tuple)):
        return 1 if value else 0

    match = _NUMERIC_PREFIX_REGEX.match(str(value))
    if match is None:
        return 0
    number = match.group(1)
    if _INTEGER_REGEX.match(number):
        return int(number)
    parsed = float(number)
    return int(parsed) if math.isfinite(parsed) else 0


def to_bool(value: Any) -> bool:
    """Coerce a value to a boolean; "" and "0" are false, other strings true."""
    if isinstance(value, str):
        return value not in ("", "0")
    return bool(value)
