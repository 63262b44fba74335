import pytest

from swatch_editor.color_convert import (
    cmyk_to_rgb,
    color_to_hex,
    color_to_rgb,
    hex_to_color,
    hex_to_rgb,
    lab_to_rgb,
    rgb_to_hex,
)
from swatch_editor.palette import CMYK, LAB, RGB, Gray


def test_rgb_to_hex_uppercase() -> None:
    assert rgb_to_hex((228, 0, 43)) == "#E4002B"


def test_hex_to_rgb_short_form() -> None:
    assert hex_to_rgb("#abc") == (170, 187, 204)


def test_hex_to_rgb_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        hex_to_rgb("#12345G")


def test_cmyk_float_to_rgb_red() -> None:
    assert cmyk_to_rgb(0.0, 1.0, 1.0, 0.0) == (255, 0, 0)


def test_lab_white_and_black() -> None:
    assert lab_to_rgb(100.0, 0.0, 0.0) == (255, 255, 255)
    assert lab_to_rgb(0.0, 0.0, 0.0) == (0, 0, 0)


def test_color_to_rgb_per_model() -> None:
    assert color_to_rgb(RGB(1.0, 0.0, 0.0)) == (255, 0, 0)
    assert color_to_rgb(Gray(0.5)) == (128, 128, 128)
    assert color_to_rgb(CMYK(0.0, 0.0, 0.0, 1.0)) == (0, 0, 0)
    assert color_to_hex(LAB(100.0, 0.0, 0.0)) == "#FFFFFF"


def test_out_of_range_channels_are_clamped_for_display() -> None:
    assert color_to_rgb(RGB(1.5, -0.2, 0.0)) == (255, 0, 0)


def test_hex_to_color() -> None:
    color = hex_to_color("#FF8000")
    assert color.r == 1.0
    assert color.g == pytest.approx(128 / 255)
    assert color.b == 0.0


def test_non_finite_channels_still_display() -> None:
    assert color_to_rgb(RGB(float("nan"), float("inf"), float("-inf"))) == (0, 255, 0)
    assert color_to_hex(Gray(float("nan"))) == "#000000"
    assert color_to_hex(LAB(float("nan"), 0.0, 0.0)) == "#000000"
    assert color_to_hex(CMYK(float("inf"), 0.0, 0.0, 0.0)).startswith("#")
