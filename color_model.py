"""Color math: HSV <-> RGB conversion and "over" alpha compositing.

All channels are 8-bit integers. Conversions to 8 bits round half up;
compositing uses integer floor division everywhere so results never depend
on floating point rounding.
"""

import colorsys

import numpy as np

RGB = tuple[int, int, int]
RGBA = tuple[int, int, int, int]

# Palette offered by the original editor's color panel.
PRESET_COLORS: dict[str, RGB] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "magenta": (255, 0, 255),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "brown": (165, 42, 42),
    "pink": (255, 192, 203),
}


def clamp_channel(value: int) -> int:
    return max(0, min(255, int(value)))


def _to_byte(unit: float) -> int:
    """Map [0, 1] onto [0, 255], rounding half up."""
    return clamp_channel(int(unit * 255 + 0.5))


def to_rgba(color) -> RGBA:
    """Accept an RGB or RGBA sequence and return a clamped RGBA tuple."""
    if len(color) == 3:
        r, g, b = color
        a = 255
    elif len(color) == 4:
        r, g, b, a = color
    else:
        raise ValueError(f"Expected 3 or 4 channels, got {len(color)}")
    return (clamp_channel(r), clamp_channel(g), clamp_channel(b), clamp_channel(a))


def parse_hex(text: str) -> RGBA:
    """Parse ``#rrggbb`` or ``#rrggbbaa`` (leading ``#`` optional)."""
    digits = text.strip().lstrip("#")
    if len(digits) not in (6, 8):
        raise ValueError(f"Not a hex color: {text!r}")
    try:
        channels = [int(digits[i:i + 2], 16) for i in range(0, len(digits), 2)]
    except ValueError:
        raise ValueError(f"Not a hex color: {text!r}") from None
    return to_rgba(channels)


def to_hex(color) -> str:
    r, g, b, a = to_rgba(color)
    if a == 255:
        return f"#{r:02x}{g:02x}{b:02x}"
    return f"#{r:02x}{g:02x}{b:02x}{a:02x}"


# --- HSV ---

def hsv_to_rgb(h: float, s: float, v: float) -> RGB:
    """Six-sector conversion. h in degrees [0, 360), s and v in [0, 1].

    The sector is floor(h / 60) mod 6, so h == 360 wraps back to red.
    """
    s = max(0.0, min(1.0, s))
    v = max(0.0, min(1.0, v))
    r, g, b = colorsys.hsv_to_rgb((h % 360) / 360.0, s, v)
    return (_to_byte(r), _to_byte(g), _to_byte(b))


def rgb_to_hsv(rgb) -> tuple[float, float, float]:
    """Return (h in degrees, s, v). Saturation is 1 - min/max, 0 for black."""
    r, g, b = (clamp_channel(c) for c in rgb[:3])
    h, s, v = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
    return (h * 360.0, s, v)


# --- Compositing ---

def blend_over(src: RGBA, dst: RGBA) -> RGBA:
    """Composite ``src`` over ``dst``.

    An opaque source replaces the destination and a fully transparent source
    leaves it alone. Otherwise the new alpha is sa + da*(255-sa)/255 and each
    channel is the alpha-weighted average of both colors divided by the new
    alpha.
    """
    sr, sg, sb, sa = src
    if sa == 255:
        return (sr, sg, sb, 255)
    if sa == 0:
        return dst
    dr, dg, db, da = dst
    dst_weight = da * (255 - sa) // 255
    out_a = sa + dst_weight
    if out_a == 0:
        return (0, 0, 0, 0)
    return (
        min(255, (sr * sa + dr * dst_weight) // out_a),
        min(255, (sg * sa + dg * dst_weight) // out_a),
        min(255, (sb * sa + db * dst_weight) // out_a),
        out_a,
    )


def blend_over_arrays(src: np.ndarray, dst: np.ndarray, src_alpha: np.ndarray | None = None) -> np.ndarray:
    """Vectorized ``blend_over`` for (h, w, 4) uint8 arrays.

    ``src_alpha`` overrides the source alpha channel (used to apply layer
    opacity). Returns a new uint8 array; inputs are not modified.
    """
    s = src.astype(np.int32)
    d = dst.astype(np.int32)
    sa = s[..., 3] if src_alpha is None else src_alpha.astype(np.int32)

    dst_weight = d[..., 3] * (255 - sa) // 255
    out_a = sa + dst_weight
    safe_a = np.maximum(out_a, 1)[..., np.newaxis]
    rgb = (s[..., :3] * sa[..., np.newaxis] + d[..., :3] * dst_weight[..., np.newaxis]) // safe_a
    rgb = np.minimum(rgb, 255)
    rgb = np.where((out_a == 0)[..., np.newaxis], 0, rgb)

    out = np.empty_like(d)
    out[..., :3] = rgb
    out[..., 3] = out_a

    opaque = sa == 255
    out[opaque, :3] = s[opaque, :3]
    out[opaque, 3] = 255

    untouched = sa == 0
    out[untouched] = d[untouched]
    return out.astype(np.uint8)
