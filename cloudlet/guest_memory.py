"""Byte-addressable model of guest physical memory made of disjoint regions."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Iterable, Iterator


class GuestMemoryError(Exception):
    """Raised when guest memory is set up or accessed at an invalid address."""


@dataclass
class _Region:
    start: int
    data: bytearray = field(repr=False)

    @property
    def end(self) -> int:
        return self.start + len(self.data)


class GuestMemory:
    """Guest memory built from ``(start, size)`` ranges."""

    def __init__(self, ranges: Iterable[tuple[int, int]]) -> None:
        regions = []
        for start, size in sorted(ranges):
            if start < 0 or size <= 0:
                raise GuestMemoryError(f"invalid memory range: start={start:#x} size={size}")
            regions.append(_Region(start, bytearray(size)))
        for previous, current in zip(regions, regions[1:]):
            if current.start < previous.end:
                raise GuestMemoryError(
                    f"overlapping memory ranges at {current.start:#x}"
                )
        self._regions = regions
        self._starts = [region.start for region in regions]

    def _find(self, addr: int) -> _Region | None:
        position = bisect.bisect_right(self._starts, addr) - 1
        if position < 0:
            return None
        region = self._regions[position]
        return region if addr < region.end else None

    def _spans(self, addr: int, length: int) -> Iterator[tuple[_Region, int, int]]:
        current = addr
        remaining = length
        while remaining > 0:
            region = self._find(current)
            if region is None:
                raise GuestMemoryError(f"invalid guest address {current:#x}")
            offset = current - region.start
            count = min(remaining, len(region.data) - offset)
            yield region, offset, count
            current += count
            remaining -= count

    def address_in_range(self, addr: int) -> bool:
        """Tell whether ``addr`` lies inside one of the regions."""
        return self._find(addr) is not None

    def write(self, data: bytes, addr: int) -> None:
        """Write ``data`` at ``addr``; nothing is written if any byte falls outside."""
        spans = list(self._spans(addr, len(data)))
        position = 0
        for region, offset, count in spans:
            region.data[offset:offset + count] = data[position:position + count]
            position += count

    def read(self, addr: int, length: int) -> bytes:
        """Read ``length`` bytes starting at ``addr``."""
        if length < 0:
            raise ValueError(f"negative length: {length}")
        return b"".join(
            bytes(region.data[offset:offset + count])
            for region, offset, count in self._spans(addr, length)
        )

    def write_u64(self, value: int, addr: int) -> None:
        """Write a little-endian 64-bit unsigned value."""
        try:
            encoded = value.to_bytes(8, "little")
        except OverflowError:
            raise ValueError(f"value does not fit in 64 bits: {value}") from None
        self.write(encoded, addr)

    def read_u64(self, addr: int) -> int:
        """Read a little-endian 64-bit unsigned value."""
        return int.from_bytes(self.read(addr, 8), "little")