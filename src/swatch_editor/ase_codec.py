from __future__ import annotations

import logging
from pathlib import Path

from .byte_cursor import ByteReader, ByteWriter
from .errors import (
    BadSignature,
    NestedGroup,
    UnknownBlockType,
    UnknownColorModel,
    UnmatchedGroupEnd,
    UnterminatedGroup,
)
from .palette import (
    CHANNEL_COUNTS,
    ColorValue,
    PaletteDocument,
    PaletteEntry,
    PaletteGroup,
    Usage,
    color_from_channels,
)

logger = logging.getLogger(__name__)

SIGNATURE = b"ASEF"
VERSION = (1, 0)

BLOCK_GROUP_START = 0xC001
BLOCK_GROUP_END = 0xC002
BLOCK_COLOR = 0x0001


def load(path: str | Path) -> PaletteDocument:
    file_path = Path(path)
    data = file_path.read_bytes()
    return decode(data, source=str(file_path))


def save(document: PaletteDocument, path: str | Path) -> None:
    data = encode(document)
    Path(path).write_bytes(data)


def decode(
    data: bytes, source: str = "<memory>", skip_unknown_blocks: bool = False
) -> PaletteDocument:
    reader = ByteReader(data, source=source)
    signature_offset = reader.tell()
    head = bytes(data[:4])
    if SIGNATURE.startswith(head):
        # A short prefix of "ASEF" is a truncated file, anything else is not ASE.
        signature = reader.read_bytes(4, "signature")
    else:
        signature = head
    if signature != SIGNATURE:
        raise BadSignature(
            f"invalid signature {signature!r}, expected {SIGNATURE!r}",
            source=source,
            offset=signature_offset,
        )

    major = reader.read_u16("version major")
    minor = reader.read_u16("version minor")
    if (major, minor) != VERSION:
        logger.info("%s: ASE version %d.%d, expected %d.%d", source, major, minor, *VERSION)
    block_count = reader.read_u32("block count")

    document = PaletteDocument(version=(major, minor))
    open_group: PaletteGroup | None = None

    for block_index in range(block_count):
        block_offset = reader.tell()
        block_type = reader.read_u16(f"block {block_index} type")
        block_length = reader.read_u32(f"block {block_index} length")
        body_offset = reader.tell()
        payload = reader.read_bytes(block_length, f"block {block_index} payload")
        block_reader = ByteReader(
            payload, source=f"{source} block {block_index}", base_offset=body_offset
        )

        if block_type == BLOCK_GROUP_START:
            if open_group is not None:
                raise NestedGroup(
                    f"group start inside open group {open_group.name!r}",
                    source=source,
                    offset=block_offset,
                    block_index=block_index,
                )
            open_group = PaletteGroup(name=block_reader.read_utf16be_cstring("group name"))
            continue

        if block_type == BLOCK_GROUP_END:
            if open_group is None:
                raise UnmatchedGroupEnd(
                    "group end without group start",
                    source=source,
                    offset=block_offset,
                    block_index=block_index,
                )
            document.items.append(open_group)
            open_group = None
            continue

        if block_type != BLOCK_COLOR:
            if skip_unknown_blocks:
                logger.warning(
                    "%s: skipping unknown block type 0x%04X (%d bytes) at offset %d",
                    source,
                    block_type,
                    block_length,
                    block_offset,
                )
                continue
            raise UnknownBlockType(
                block_type, source=source, offset=block_offset, block_index=block_index
            )

        entry = _read_color_entry(block_reader, source, block_index)
        if open_group is not None:
            open_group.entries.append(entry)
        else:
            document.items.append(entry)

    if open_group is not None:
        raise UnterminatedGroup(
            f"group {open_group.name!r} is never closed",
            source=source,
            offset=reader.tell(),
            block_index=block_count,
        )

    if reader.remaining():
        logger.debug("%s: ignoring %d trailing bytes", source, reader.remaining())
    return document


def _read_color_entry(block_reader: ByteReader, source: str, block_index: int) -> PaletteEntry:
    name = block_reader.read_utf16be_cstring("color name")

    model_offset = block_reader.tell()
    model = block_reader.read_bytes(4, "color model")
    if model not in CHANNEL_COUNTS:
        raise UnknownColorModel(
            model, source=source, offset=model_offset, block_index=block_index
        )

    model_label = model.decode("ascii").strip()
    values = [
        block_reader.read_f32(f"{model_label} channel {channel}")
        for channel in range(CHANNEL_COUNTS[model])
    ]
    usage = Usage.from_code(block_reader.read_u16("color type"))
    return PaletteEntry(name=name, color=color_from_channels(model, values), usage=usage)


def encode(document: PaletteDocument) -> bytes:
    writer = ByteWriter()
    writer.write_bytes(SIGNATURE)
    writer.write_u16(VERSION[0])
    writer.write_u16(VERSION[1])
    writer.write_u32(document.block_count())

    for item in document.items:
        if isinstance(item, PaletteGroup):
            writer.write_u16(BLOCK_GROUP_START)
            marker = writer.begin_length()
            writer.write_utf16be_cstring(item.name)
            writer.end_length(marker)

            for entry in item.entries:
                _write_color_entry(writer, entry)

            writer.write_u16(BLOCK_GROUP_END)
            writer.end_length(writer.begin_length())
        else:
            _write_color_entry(writer, item)

    return writer.getvalue()


def _write_color_entry(writer: ByteWriter, entry: PaletteEntry) -> None:
    color: ColorValue = entry.color
    writer.write_u16(BLOCK_COLOR)
    marker = writer.begin_length()
    writer.write_utf16be_cstring(entry.name)
    writer.write_bytes(color.signature)
    for value in color.channels():
        writer.write_f32(value)
    writer.write_u16(int(entry.usage))
    writer.end_length(marker)
