from __future__ import annotations


class ASEDecodeError(ValueError):
    """Structural problem found while decoding an ASE byte stream."""

    def __init__(
        self,
        detail: str,
        source: str = "<memory>",
        offset: int | None = None,
        block_index: int | None = None,
    ) -> None:
        self.detail = detail
        self.source = source
        self.offset = offset
        self.block_index = block_index
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.block_index is not None:
            where.append(f"block {self.block_index}")
        if self.offset is not None:
            where.append(f"offset {self.offset}")
        suffix = f" ({', '.join(where)})" if where else ""
        return f"{self.source}: {self.detail}{suffix}"


class BadSignature(ASEDecodeError):
    pass


class UnexpectedEnd(ASEDecodeError):
    pass


class UnknownBlockType(ASEDecodeError):
    def __init__(self, tag: int, **kwargs) -> None:
        self.tag = tag
        super().__init__(f"unknown block type 0x{tag:04X}", **kwargs)


class UnknownColorModel(ASEDecodeError):
    def __init__(self, signature: bytes, **kwargs) -> None:
        self.signature = signature
        super().__init__(f"unknown color model {signature!r}", **kwargs)


class NestedGroup(ASEDecodeError):
    pass


class UnmatchedGroupEnd(ASEDecodeError):
    pass


class UnterminatedGroup(ASEDecodeError):
    pass
