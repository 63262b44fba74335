from __future__ import annotations

import logging
import math
from pathlib import Path
from threading import RLock
from typing import Any

from . import ase_codec
from .color_convert import color_to_hex, hex_to_color
from .errors import ASEDecodeError
from .palette import (
    ColorValue,
    PaletteDocument,
    PaletteEntry,
    PaletteGroup,
    Usage,
    check_name,
    color_from_channels,
    model_name,
)

logger = logging.getLogger(__name__)


class PaletteSession:
    """One open palette: the document, where it saves to, and recoverable errors."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.document = PaletteDocument()
        self.save_path: Path | None = Path(path) if path else None
        self.errors: list[str] = []
        self.lock = RLock()

        if self.save_path is not None:
            try:
                self.open(self.save_path)
            except (ASEDecodeError, OSError) as exc:
                logger.warning("could not open %s: %s", self.save_path, exc)
                self.errors.append(str(exc))

    def open(self, path: str | Path) -> PaletteDocument:
        with self.lock:
            document = ase_codec.load(path)
            self.document = document
            self.save_path = Path(path)
            logger.info("opened %s (%d colors)", path, document.color_count())
            return document

    def replace(self, document: PaletteDocument, path: str | Path | None = None) -> None:
        with self.lock:
            self.document = document
            self.save_path = Path(path) if path else None

    def new(self) -> None:
        self.replace(PaletteDocument())

    def save(self, path: str | Path | None = None) -> Path:
        with self.lock:
            target = Path(path) if path else self.save_path
            if target is None:
                raise ValueError("no save path set; pass a path to save as")
            ase_codec.save(self.document, target)
            self.save_path = target
            logger.info("saved %s (%d blocks)", target, self.document.block_count())
            return target

    def to_payload(self) -> dict[str, Any]:
        with self.lock:
            return {
                "path": str(self.save_path) if self.save_path else None,
                "version": list(self.document.version),
                "color_count": self.document.color_count(),
                "items": [item_payload(item) for item in self.document.items],
                "errors": list(self.errors),
            }


def item_payload(item: PaletteEntry | PaletteGroup) -> dict[str, Any]:
    if isinstance(item, PaletteGroup):
        return {
            "kind": "group",
            "name": item.name,
            "entries": [item_payload(entry) for entry in item.entries],
        }
    return {
        "kind": "entry",
        "name": item.name,
        "usage": item.usage.name.lower(),
        "color": color_payload(item.color),
    }


def color_payload(color: ColorValue) -> dict[str, Any]:
    return {
        "model": model_name(color),
        "values": [value if math.isfinite(value) else None for value in color.channels()],
        "hex": color_to_hex(color),
    }


def color_from_payload(raw: Any) -> ColorValue:
    """Accept ``"#RRGGBB"`` or ``{"model": "CMYK", "values": [...]}``."""
    if isinstance(raw, str):
        return hex_to_color(raw)
    if not isinstance(raw, dict):
        raise ValueError("color must be a hex string or an object with model and values")
    if "model" not in raw and "hex" in raw:
        return hex_to_color(str(raw["hex"]))
    values = raw.get("values")
    if not isinstance(values, list):
        raise ValueError("color values must be a list of numbers")
    for value in values:
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(f"color channel {value!r} is not a finite number")
    return color_from_channels(str(raw.get("model", "")), values)


def usage_from_payload(raw: Any) -> Usage:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return Usage.from_code(raw)
    text = str(raw or "").strip().upper()
    if text == "PROCESS":
        return Usage.NORMAL
    try:
        return Usage[text]
    except KeyError:
        raise ValueError(f"unknown usage {raw!r}; use global, spot or normal") from None


def entry_from_payload(raw: dict[str, Any]) -> PaletteEntry:
    entry = PaletteEntry.new()
    if "name" in raw:
        entry.name = check_name(str(raw["name"]))
    if "color" in raw:
        entry.color = color_from_payload(raw["color"])
    if "usage" in raw:
        entry.usage = usage_from_payload(raw["usage"])
    return entry
