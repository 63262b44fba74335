from __future__ import annotations

from io import BytesIO

from PIL import Image, ImageDraw, ImageFont

from .color_convert import color_to_rgb
from .palette import PaletteDocument, PaletteEntry, PaletteGroup

BACKGROUND = (245, 245, 245)
TEXT_COLOR = (20, 20, 20)
HEADER_HEIGHT = 24
LABEL_HEIGHT = 18
PADDING = 8


def render_swatch_sheet(document: PaletteDocument, tile: int = 100, columns: int = 8) -> bytes:
    """Render every entry as a labelled tile, grouped as in the document, to PNG bytes."""
    tile = max(8, int(tile))
    columns = max(1, int(columns))
    sections = _sections(document)

    cell_w = tile + PADDING
    cell_h = tile + LABEL_HEIGHT + PADDING
    width = PADDING + columns * cell_w
    height = PADDING
    for title, entries in sections:
        if title is not None:
            height += HEADER_HEIGHT
        rows = max(1, -(-len(entries) // columns))
        height += rows * cell_h

    image = Image.new("RGB", (width, max(height, tile + 2 * PADDING)), BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    y = PADDING
    for title, entries in sections:
        if title is not None:
            label = _fit(title or "(unnamed group)", width - 2 * PADDING)
            draw.text((PADDING, y + 4), label, fill=TEXT_COLOR, font=font)
            y += HEADER_HEIGHT
        for index, entry in enumerate(entries):
            row, col = divmod(index, columns)
            x0 = PADDING + col * cell_w
            y0 = y + row * cell_h
            draw.rectangle(
                (x0, y0, x0 + tile - 1, y0 + tile - 1),
                fill=color_to_rgb(entry.color),
                outline=(160, 160, 160),
            )
            draw.text((x0, y0 + tile + 2), _fit(entry.name, tile), fill=TEXT_COLOR, font=font)
        y += max(1, -(-len(entries) // columns)) * cell_h

    out = BytesIO()
    image.save(out, format="PNG")
    return out.getvalue()


def _sections(document: PaletteDocument) -> list[tuple[str | None, list[PaletteEntry]]]:
    sections: list[tuple[str | None, list[PaletteEntry]]] = []
    for item in document.items:
        if isinstance(item, PaletteGroup):
            sections.append((item.name, list(item.entries)))
        elif sections and sections[-1][0] is None:
            sections[-1][1].append(item)
        else:
            sections.append((None, [item]))
    return sections


def _fit(name: str, tile: int) -> str:
    # The bitmap fallback font only encodes latin-1; roughly 6px per character.
    name = name.encode("latin-1", errors="replace").decode("latin-1")
    limit = max(4, tile // 6)
    if len(name) <= limit:
        return name
    return name[: limit - 3] + "..."
