from __future__ import annotations

import math
import struct
from dataclasses import astuple, dataclass, field
from enum import IntEnum
from typing import ClassVar, Iterator, Sequence, Union


@dataclass(frozen=True, slots=True)
class Gray:
    v: float

    signature: ClassVar[bytes] = b"Gray"

    def __post_init__(self) -> None:
        _check_f32(self)

    def channels(self) -> tuple[float, ...]:
        return astuple(self)


@dataclass(frozen=True, slots=True)
class RGB:
    r: float
    g: float
    b: float

    signature: ClassVar[bytes] = b"RGB "

    def __post_init__(self) -> None:
        _check_f32(self)

    def channels(self) -> tuple[float, ...]:
        return astuple(self)


@dataclass(frozen=True, slots=True)
class CMYK:
    c: float
    m: float
    y: float
    k: float

    signature: ClassVar[bytes] = b"CMYK"

    def __post_init__(self) -> None:
        _check_f32(self)

    def channels(self) -> tuple[float, ...]:
        return astuple(self)


@dataclass(frozen=True, slots=True)
class LAB:
    l: float  # noqa: E741
    a: float
    b: float

    signature: ClassVar[bytes] = b"LAB "

    def __post_init__(self) -> None:
        _check_f32(self)

    def channels(self) -> tuple[float, ...]:
        return astuple(self)


ColorValue = Union[Gray, RGB, CMYK, LAB]

COLOR_MODELS: dict[bytes, type] = {cls.signature: cls for cls in (Gray, RGB, CMYK, LAB)}
CHANNEL_COUNTS: dict[bytes, int] = {b"Gray": 1, b"RGB ": 3, b"CMYK": 4, b"LAB ": 3}

# Largest finite value an f32 channel can hold.
F32_MAX = struct.unpack(">f", b"\x7f\x7f\xff\xff")[0]
# Names are written with a u16 code-unit count that includes the terminator.
MAX_NAME_UNITS = 0xFFFF - 1


def model_name(color: ColorValue) -> str:
    return color.signature.decode("ascii").strip()


def color_from_channels(model: str | bytes, values: Sequence[float]) -> ColorValue:
    """Build a color from a model signature (``b"RGB "``) or name (``"rgb"``)."""
    if isinstance(model, str):
        key = model.strip().upper()
        matches = [sig for sig in COLOR_MODELS if sig.decode("ascii").strip().upper() == key]
        if not matches:
            raise ValueError(f"unknown color model {model!r}")
        signature = matches[0]
    else:
        signature = bytes(model)
        if signature not in COLOR_MODELS:
            raise ValueError(f"unknown color model {signature!r}")

    expected = CHANNEL_COUNTS[signature]
    if len(values) != expected:
        raise ValueError(
            f"{signature.decode('ascii').strip()} needs {expected} channels, got {len(values)}"
        )
    return COLOR_MODELS[signature](*(float(value) for value in values))


class Usage(IntEnum):
    GLOBAL = 0
    SPOT = 1
    NORMAL = 2

    @classmethod
    def from_code(cls, code: int) -> "Usage":
        try:
            return cls(code)
        except ValueError:
            return cls.NORMAL


@dataclass(slots=True)
class PaletteEntry:
    name: str
    color: ColorValue
    usage: Usage = Usage.NORMAL

    @classmethod
    def new(cls) -> "PaletteEntry":
        return cls(name="new", color=RGB(1.0, 1.0, 1.0), usage=Usage.NORMAL)


@dataclass(slots=True)
class PaletteGroup:
    name: str
    entries: list[PaletteEntry] = field(default_factory=list)

    def append(self, entry: PaletteEntry) -> None:
        self.insert(len(self.entries), entry)

    def insert(self, index: int, entry: PaletteEntry) -> None:
        _check_position(index, len(self.entries), f"group {self.name!r}")
        check_name(entry.name)
        if any(existing is entry for existing in self.entries):
            raise ValueError(f"entry {entry.name!r} already belongs to group {self.name!r}")
        self.entries.insert(index, entry)

    def pop(self, index: int) -> PaletteEntry:
        _check_index(index, len(self.entries), f"group {self.name!r}")
        return self.entries.pop(index)

    def move(self, source: int, target: int) -> None:
        entry = self.pop(source)
        _check_position(target, len(self.entries), f"group {self.name!r}")
        self.entries.insert(target, entry)


Item = Union[PaletteEntry, PaletteGroup]


@dataclass(slots=True)
class PaletteDocument:
    """Ordered top-level items of one ASE file.

    The document owns its items and every group owns its entries, so an
    entry or group object can appear at most once in the tree. All index
    arguments refer to top-level positions unless ``group`` is given, in
    which case they address entries inside the group at that position.
    """

    items: list[Item] = field(default_factory=list)
    version: tuple[int, int] = (1, 0)

    def append(self, item: Item) -> None:
        self.insert(len(self.items), item)

    def insert(self, index: int, item: Item) -> None:
        _check_position(index, len(self.items), "document")
        self._check_unowned(item)
        check_name(item.name)
        if isinstance(item, PaletteGroup):
            for entry in item.entries:
                check_name(entry.name)
        self.items.insert(index, item)

    def remove(self, index: int) -> Item:
        _check_index(index, len(self.items), "document")
        return self.items.pop(index)

    def move(self, source: int, target: int) -> None:
        item = self.remove(source)
        _check_position(target, len(self.items), "document")
        self.items.insert(target, item)

    def item_at(self, index: int) -> Item:
        _check_index(index, len(self.items), "document")
        return self.items[index]

    def group_at(self, index: int) -> PaletteGroup:
        item = self.item_at(index)
        if not isinstance(item, PaletteGroup):
            raise TypeError(f"item {index} is an entry, not a group")
        return item

    def entry_at(self, index: int, group: int | None = None) -> PaletteEntry:
        if group is not None:
            target = self.group_at(group)
            _check_index(index, len(target.entries), f"group {target.name!r}")
            return target.entries[index]

        item = self.item_at(index)
        if not isinstance(item, PaletteEntry):
            raise TypeError(f"item {index} is a group, not an entry")
        return item

    def rename(self, index: int, name: str, group: int | None = None) -> None:
        check_name(name)
        if group is None:
            self.item_at(index).name = name
        else:
            self.entry_at(index, group).name = name

    def set_color(self, index: int, color: ColorValue, group: int | None = None) -> None:
        self.entry_at(index, group).color = color

    def set_usage(self, index: int, usage: Usage, group: int | None = None) -> None:
        self.entry_at(index, group).usage = Usage(usage)

    def move_into_group(self, index: int, group: int, position: int | None = None) -> None:
        """Move the top-level entry at ``index`` into the group at ``group``."""
        if index == group:
            raise TypeError(f"item {index} cannot be moved into itself")
        self.entry_at(index)
        target = self.group_at(group)
        if position is None:
            position = len(target.entries)
        _check_position(position, len(target.entries), f"group {target.name!r}")
        entry = self.items.pop(index)
        target.entries.insert(position, entry)

    def move_out_of_group(self, group: int, index: int, position: int | None = None) -> None:
        """Move an entry out of its group to the top level, after the group by default."""
        source = self.group_at(group)
        if position is None:
            position = group + 1
        _check_position(position, len(self.items), "document")
        entry = source.pop(index)
        self.items.insert(position, entry)

    def groups(self) -> list[PaletteGroup]:
        return [item for item in self.items if isinstance(item, PaletteGroup)]

    def iter_entries(self) -> Iterator[tuple[PaletteGroup | None, PaletteEntry]]:
        for item in self.items:
            if isinstance(item, PaletteGroup):
                for entry in item.entries:
                    yield item, entry
            else:
                yield None, item

    def color_count(self) -> int:
        return sum(1 for _ in self.iter_entries())

    def block_count(self) -> int:
        return self.color_count() + 2 * len(self.groups())

    def _check_unowned(self, item: Item) -> None:
        candidates = [item]
        if isinstance(item, PaletteGroup):
            candidates.extend(item.entries)
        for existing in self.items:
            owned = [existing]
            if isinstance(existing, PaletteGroup):
                owned.extend(existing.entries)
            for candidate in candidates:
                if any(candidate is other for other in owned):
                    raise ValueError(f"{candidate.name!r} already belongs to this document")


def check_name(name: str) -> str:
    units = len(name.encode("utf-16-be", errors="surrogatepass")) // 2
    if units > MAX_NAME_UNITS:
        raise ValueError(f"name is {units} UTF-16 code units long, at most {MAX_NAME_UNITS} fit")
    return name


def _check_f32(color: ColorValue) -> None:
    # NaN and infinities are representable; finite values beyond f32 are not.
    for value in astuple(color):
        if math.isfinite(value) and abs(value) > F32_MAX:
            raise ValueError(f"{model_name(color)} channel {value!r} does not fit in a 32-bit float")


def _check_index(index: int, size: int, where: str) -> None:
    if not 0 <= index < size:
        raise IndexError(f"index {index} out of range for {where} with {size} items")


def _check_position(index: int, size: int, where: str) -> None:
    if not 0 <= index <= size:
        raise IndexError(f"position {index} out of range for {where} with {size} items")
