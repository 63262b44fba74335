from __future__ import annotations

import math
from typing import Iterable

from .palette import CMYK, LAB, RGB, ColorValue, Gray


def clamp8(value: float) -> int:
    if not math.isfinite(value):
        return 255 if value > 0 else 0
    return max(0, min(255, int(round(value))))


def rgb_to_hex(rgb: Iterable[int]) -> str:
    r, g, b = rgb
    return f"#{clamp8(r):02X}{clamp8(g):02X}{clamp8(b):02X}"


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    normalized = value.strip().upper()
    if normalized.startswith("#"):
        normalized = normalized[1:]
    if len(normalized) == 3 and all(ch in "0123456789ABCDEF" for ch in normalized):
        normalized = "".join(ch * 2 for ch in normalized)
    if len(normalized) != 6 or any(ch not in "0123456789ABCDEF" for ch in normalized):
        raise ValueError(f"invalid hex color {value!r}")
    return int(normalized[0:2], 16), int(normalized[2:4], 16), int(normalized[4:6], 16)


def hex_to_color(value: str) -> RGB:
    r, g, b = hex_to_rgb(value)
    return RGB(r / 255.0, g / 255.0, b / 255.0)


def color_to_rgb(color: ColorValue) -> tuple[int, int, int]:
    """8-bit sRGB approximation of a stored color, for display only."""
    if isinstance(color, RGB):
        return clamp8(color.r * 255.0), clamp8(color.g * 255.0), clamp8(color.b * 255.0)
    if isinstance(color, Gray):
        return gray_to_rgb(color.v)
    if isinstance(color, CMYK):
        return cmyk_to_rgb(color.c, color.m, color.y, color.k)
    if isinstance(color, LAB):
        return lab_to_rgb(color.l, color.a, color.b)
    raise TypeError(f"not a color value: {color!r}")


def color_to_hex(color: ColorValue) -> str:
    return rgb_to_hex(color_to_rgb(color))


def gray_to_rgb(gray: float) -> tuple[int, int, int]:
    value = clamp8(gray * 255.0)
    return value, value, value


def cmyk_to_rgb(c: float, m: float, y: float, k: float) -> tuple[int, int, int]:
    c = max(0.0, min(1.0, c))
    m = max(0.0, min(1.0, m))
    y = max(0.0, min(1.0, y))
    k = max(0.0, min(1.0, k))

    r = 255.0 * (1.0 - c) * (1.0 - k)
    g = 255.0 * (1.0 - m) * (1.0 - k)
    b = 255.0 * (1.0 - y) * (1.0 - k)
    return clamp8(r), clamp8(g), clamp8(b)


def lab_to_rgb(l_value: float, a_value: float, b_value: float) -> tuple[int, int, int]:
    x_d50, y_d50, z_d50 = lab_to_xyz_d50(l_value, a_value, b_value)
    x_d65, y_d65, z_d65 = adapt_xyz_d50_to_d65(x_d50, y_d50, z_d50)
    return xyz_to_srgb(x_d65, y_d65, z_d65)


def lab_to_xyz_d50(l_value: float, a_value: float, b_value: float) -> tuple[float, float, float]:
    epsilon = 216 / 24389
    kappa = 24389 / 27

    fy = (l_value + 16.0) / 116.0
    fx = fy + (a_value / 500.0)
    fz = fy - (b_value / 200.0)

    def f_inv(t: float) -> float:
        t3 = t * t * t
        if t3 > epsilon:
            return t3
        return (116.0 * t - 16.0) / kappa

    return 0.9642 * f_inv(fx), f_inv(fy), 0.8251 * f_inv(fz)


def adapt_xyz_d50_to_d65(x: float, y: float, z: float) -> tuple[float, float, float]:
    # Bradford
    x_d65 = 0.9555766 * x + (-0.0230393) * y + 0.0631636 * z
    y_d65 = (-0.0282895) * x + 1.0099416 * y + 0.0210077 * z
    z_d65 = 0.0122982 * x + (-0.0204830) * y + 1.3299098 * z
    return x_d65, y_d65, z_d65


def xyz_to_srgb(x: float, y: float, z: float) -> tuple[int, int, int]:
    r_linear = 3.2404542 * x + (-1.5371385) * y + (-0.4985314) * z
    g_linear = (-0.9692660) * x + 1.8760108 * y + 0.0415560 * z
    b_linear = 0.0556434 * x + (-0.2040259) * y + 1.0572252 * z

    def gamma_encode(channel: float) -> float:
        if channel <= 0.0:
            return 0.0
        if channel <= 0.0031308:
            return 12.92 * channel
        return 1.055 * (channel ** (1 / 2.4)) - 0.055

    return (
        clamp8(gamma_encode(r_linear) * 255.0),
        clamp8(gamma_encode(g_linear) * 255.0),
        clamp8(gamma_encode(b_linear) * 255.0),
    )
