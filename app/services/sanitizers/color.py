"""
Color parsing and canonical re-emission.

A color keeps the textual mode it was written in (hex, rgb, rgba, hsl, hsla)
and is re-emitted in that mode with channels clamped:
    "#ABC"                  -> "#aabbcc"
    "rgb( 300, 0 , 10 )"    -> "rgb(255,0,10)"
    "hsla(400, 50%, 10%, .5)" -> "hsla(40,50%,10%,0.5)"
Named colors ("Red") become hex. Unparseable input yields None.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple


class ColorMode(str, Enum):
    """Textual color notations."""
    HEX = "hex"
    RGB = "rgb"
    RGBA = "rgba"
    HSL = "hsl"
    HSLA = "hsla"


NAMED_COLORS = {
    "aliceblue": "#f0f8ff", "antiquewhite": "#faebd7", "aqua": "#00ffff",
    "aquamarine": "#7fffd4", "azure": "#f0ffff", "beige": "#f5f5dc",
    "bisque": "#ffe4c4", "black": "#000000", "blanchedalmond": "#ffebcd",
    "blue": "#0000ff", "blueviolet": "#8a2be2", "brown": "#a52a2a",
    "burlywood": "#deb887", "cadetblue": "#5f9ea0", "chartreuse": "#7fff00",
    "chocolate": "#d2691e", "coral": "#ff7f50", "cornflowerblue": "#6495ed",
    "cornsilk": "#fff8dc", "crimson": "#dc143c", "cyan": "#00ffff",
    "darkblue": "#00008b", "darkcyan": "#008b8b", "darkgoldenrod": "#b8860b",
    "darkgray": "#a9a9a9", "darkgreen": "#006400", "darkgrey": "#a9a9a9",
    "darkkhaki": "#bdb76b", "darkmagenta": "#8b008b", "darkolivegreen": "#556b2f",
    "darkorange": "#ff8c00", "darkorchid": "#9932cc", "darkred": "#8b0000",
    "darksalmon": "#e9967a", "darkseagreen": "#8fbc8f", "darkslateblue": "#483d8b",
    "darkslategray": "#2f4f4f", "darkslategrey": "#2f4f4f", "darkturquoise": "#00ced1",
    "darkviolet": "#9400d3", "deeppink": "#ff1493", "deepskyblue": "#00bfff",
    "dimgray": "#696969", "dimgrey": "#696969", "dodgerblue": "#1e90ff",
    "firebrick": "#b22222", "floralwhite": "#fffaf0", "forestgreen": "#228b22",
    "fuchsia": "#ff00ff", "gainsboro": "#dcdcdc", "ghostwhite": "#f8f8ff",
    "gold": "#ffd700", "goldenrod": "#daa520", "gray": "#808080",
    "green": "#008000", "greenyellow": "#adff2f", "grey": "#808080",
    "honeydew": "#f0fff0", "hotpink": "#ff69b4", "indianred": "#cd5c5c",
    "indigo": "#4b0082", "ivory": "#fffff0", "khaki": "#f0e68c",
    "lavender": "#e6e6fa", "lavenderblush": "#fff0f5", "lawngreen": "#7cfc00",
    "lemonchiffon": "#fffacd", "lightblue": "#add8e6", "lightcoral": "#f08080",
    "lightcyan": "#e0ffff", "lightgoldenrodyellow": "#fafad2", "lightgray": "#d3d3d3",
    "lightgreen": "#90ee90", "lightgrey": "#d3d3d3", "lightpink": "#ffb6c1",
    "lightsalmon": "#ffa07a", "lightseagreen": "#20b2aa", "lightskyblue": "#87cefa",
    "lightslategray": "#778899", "lightslategrey": "#778899", "lightsteelblue": "#b0c4de",
    "lightyellow": "#ffffe0", "lime": "#00ff00", "limegreen": "#32cd32",
    "linen": "#faf0e6", "magenta": "#ff00ff", "maroon": "#800000",
    "mediumaquamarine": "#66cdaa", "mediumblue": "#0000cd", "mediumorchid": "#ba55d3",
    "mediumpurple": "#9370db", "mediumseagreen": "#3cb371", "mediumslateblue": "#7b68ee",
    "mediumspringgreen": "#00fa9a", "mediumturquoise": "#48d1cc", "mediumvioletred": "#c71585",
    "midnightblue": "#191970", "mintcream": "#f5fffa", "mistyrose": "#ffe4e1",
    "moccasin": "#ffe4b5", "navajowhite": "#ffdead", "navy": "#000080",
    "oldlace": "#fdf5e6", "olive": "#808000", "olivedrab": "#6b8e23",
    "orange": "#ffa500", "orangered": "#ff4500", "orchid": "#da70d6",
    "palegoldenrod": "#eee8aa", "palegreen": "#98fb98", "paleturquoise": "#afeeee",
    "palevioletred": "#db7093", "papayawhip": "#ffefd5", "peachpuff": "#ffdab9",
    "peru": "#cd853f", "pink": "#ffc0cb", "plum": "#dda0dd",
    "powderblue": "#b0e0e6", "purple": "#800080", "rebeccapurple": "#663399",
    "red": "#ff0000", "rosybrown": "#bc8f8f", "royalblue": "#4169e1",
    "saddlebrown": "#8b4513", "salmon": "#fa8072", "sandybrown": "#f4a460",
    "seagreen": "#2e8b57", "seashell": "#fff5ee", "sienna": "#a0522d",
    "silver": "#c0c0c0", "skyblue": "#87ceeb", "slateblue": "#6a5acd",
    "slategray": "#708090", "slategrey": "#708090", "snow": "#fffafa",
    "springgreen": "#00ff7f", "steelblue": "#4682b4", "tan": "#d2b48c",
    "teal": "#008080", "thistle": "#d8bfd8", "tomato": "#ff6347",
    "turquoise": "#40e0d0", "violet": "#ee82ee", "wheat": "#f5deb3",
    "white": "#ffffff", "whitesmoke": "#f5f5f5", "yellow": "#ffff00",
    "yellowgreen": "#9acd32",
}

_HEX_REGEX = re.compile(r"^#?([0-9a-f]{3}|[0-9a-f]{6})$")
_FUNCTION_REGEX = re.compile(r"^(rgba?|hsla?)\((.*)\)$")
_NUMBER_REGEX = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _parse_number(token: str) -> Optional[float]:
    token = token.strip()
    if not _NUMBER_REGEX.match(token):
        return None
    return float(token)


def _parse_percent(token: str) -> Optional[float]:
    return _parse_number(token.strip().rstrip("%"))


def _format_alpha(alpha: float) -> str:
    return f"{round(alpha, 3):g}"


@dataclass(frozen=True)
class Color:
    """A parsed color: RGB channels, optional HSL channels and alpha."""
    mode: ColorMode
    red: int = 0
    green: int = 0
    blue: int = 0
    hue: int = 0
    saturation: int = 0
    lightness: int = 0
    alpha: float = 1.0

    def to_css(self, mode: Optional[ColorMode] = None) -> str:
        """Emit the color in the given mode (defaults to its own mode)."""
        mode = mode or self.mode
        if mode == ColorMode.HEX:
            return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"
        if mode == ColorMode.RGB:
            return f"rgb({self.red},{self.green},{self.blue})"
        if mode == ColorMode.RGBA:
            return f"rgba({self.red},{self.green},{self.blue},{_format_alpha(self.alpha)})"
        if mode == ColorMode.HSL:
            return f"hsl({self.hue},{self.saturation}%,{self.lightness}%)"
        return f"hsla({self.hue},{self.saturation}%,{self.lightness}%,{_format_alpha(self.alpha)})"


def _parse_rgb(mode: ColorMode, parts: Tuple[str, ...]) -> Optional[Color]:
    channels = []
    for token in parts[:3]:
        token = token.strip()
        if token.endswith("%"):
            pct = _parse_percent(token)
            number = None if pct is None else _clamp(pct, 0, 100) * 2.55
        else:
            number = _parse_number(token)
        if number is None:
            return None
        channels.append(int(round(_clamp(number, 0, 255))))

    alpha = 1.0
    if mode == ColorMode.RGBA:
        parsed = _parse_number(parts[3])
        if parsed is None:
            return None
        alpha = _clamp(parsed, 0.0, 1.0)

    return Color(mode=mode, red=channels[0], green=channels[1], blue=channels[2], alpha=alpha)


def _parse_hsl(mode: ColorMode, parts: Tuple[str, ...]) -> Optional[Color]:
    hue = _parse_number(parts[0].strip().removesuffix("deg"))
    saturation = _parse_percent(parts[1])
    lightness = _parse_percent(parts[2])
    if hue is None or saturation is None or lightness is None:
        return None

    alpha = 1.0
    if mode == ColorMode.HSLA:
        parsed = _parse_number(parts[3])
        if parsed is None:
            return None
        alpha = _clamp(parsed, 0.0, 1.0)

    return Color(
        mode=mode,
        hue=int(round(hue)) % 360,
        saturation=int(round(_clamp(saturation, 0, 100))),
        lightness=int(round(_clamp(lightness, 0, 100))),
        alpha=alpha,
    )


def parse_color(value: Any) -> Optional[Color]:
    """
    Parse a color expression.

    Accepts hex (with or without '#', 3 or 6 digits), rgb(), rgba(), hsl(),
    hsla() and CSS color names. "transparent" is rgba(0,0,0,0).

    Returns:
        Color, or None when the value is not a recognizable color
    """
    if not isinstance(value, str):
        return None

    text = value.strip().lower()
    if not text:
        return None

    if text == "transparent":
        return Color(mode=ColorMode.RGBA, alpha=0.0)

    text = NAMED_COLORS.get(text, text)

    hex_match = _HEX_REGEX.match(text)
    if hex_match:
        digits = hex_match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return Color(
            mode=ColorMode.HEX,
            red=int(digits[0:2], 16),
            green=int(digits[2:4], 16),
            blue=int(digits[4:6], 16),
        )

    func_match = _FUNCTION_REGEX.match(text.replace(" ", ""))
    if func_match is None:
        return None

    mode = ColorMode(func_match.group(1))
    parts = tuple(func_match.group(2).split(","))
    expected = 4 if mode in (ColorMode.RGBA, ColorMode.HSLA) else 3
    if len(parts) != expected:
        return None

    if mode in (ColorMode.RGB, ColorMode.RGBA):
        return _parse_rgb(mode, parts)
    return _parse_hsl(mode, parts)


def sanitize_color(value: Any) -> Any:
    """
    Re-emit a truthy color value in its own canonical mode.

    Falsy values are returned unchanged; unparseable colors become "".
    """
    if not value:
        return value
    color = parse_color(value)
    if color is None:
        return ""
    return color.to_css(color.mode)
