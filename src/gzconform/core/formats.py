"""Container formats and the header bytes that legitimately vary between runs."""
from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class ByteRange:
    """Half-open span ``[offset, offset + length)`` excluded from equality."""

    offset: int
    length: int

    def __post_init__(self) -> None:
        if self.offset < 0 or self.length <= 0:
            raise ValueError(f"Invalid byte range offset={self.offset} length={self.length}")

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class ContainerFormat:
    """Naming convention and masking table for one compressed container."""

    name: str
    suffix: str
    masked: Tuple[ByteRange, ...] = tuple()
    trailer: Optional[str] = None  # struct layout read from the end of the file
    magic: bytes = b""

    def recognizes(self, data: bytes) -> bool:
        """True when ``data`` starts with this format's magic number."""

        return data.startswith(self.magic)

    def mask(self, size: int) -> np.ndarray:
        """Boolean array of ``size`` entries, True where bytes must match."""

        keep = np.ones(size, dtype=bool)
        for span in self.masked:
            if span.offset >= size:
                continue
            keep[span.offset : min(span.end, size)] = False
        return keep

    def is_masked(self, offset: int) -> bool:
        return any(span.offset <= offset < span.end for span in self.masked)

    @property
    def trailer_size(self) -> int:
        return struct.calcsize(self.trailer) if self.trailer else 0


# RFC 1952 member header: ID1 ID2 CM FLG MTIME(4) XFL OS. Trailer: CRC32 ISIZE.
GZIP = ContainerFormat(
    name="gzip",
    suffix=".gz",
    masked=(ByteRange(4, 4), ByteRange(9, 1)),
    trailer="<II",
    magic=b"\x1f\x8b",
)

RAW = ContainerFormat(name="raw", suffix="")

_FORMATS: Dict[str, ContainerFormat] = {}


def register_format(fmt: ContainerFormat, *, replace: bool = False) -> ContainerFormat:
    if fmt.name in _FORMATS and not replace:
        raise ValueError(f"Container format '{fmt.name}' already registered")
    _FORMATS[fmt.name] = fmt
    return fmt


def get_format(name: str) -> ContainerFormat:
    try:
        return _FORMATS[name]
    except KeyError as exc:
        known = ", ".join(sorted(_FORMATS))
        raise KeyError(f"Unknown container format '{name}'. Known formats: {known}") from exc


def read_trailer(fmt: ContainerFormat, data: bytes) -> Optional[Tuple[int, ...]]:
    """Unpack the trailer fields, or None when the format has none or data is short."""

    if not fmt.trailer:
        return None
    size = fmt.trailer_size
    if len(data) < size:
        return None
    return struct.unpack(fmt.trailer, data[-size:])


register_format(GZIP)
register_format(RAW)
