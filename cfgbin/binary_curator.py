"""
Bounds-checked cursor over an immutable cfg bin buffer.

The curator walks a byte buffer and "claims" known structures. Every claim
is range checked against the real buffer length before any byte is sliced,
so a header or offset table that points past the end turns into an
InvalidSize instead of a short read.

The claimed structures are remembered. get_regions() returns them together
with every unclaimed stretch of bytes in between, so a report built from it
covers the whole file and reserved or unknown bytes are never hidden:

    curator = BinaryCurator(data)
    head = curator.claim("BinHead", 10, BinHead.from_bytes)
    curator.seek(16)
    ...
    regions = curator.get_regions()   # BinHead, [UNCLAIMED 6 bytes], ...

Rule for parser functions handed to claim(): the object they return is what
the report prints for that region, so its __str__ must show all the claimed
bytes (every field, every register), not a summary like "65 bytes".
"""

from dataclasses import dataclass
from typing import List, Any, Callable, Optional

from .errors import InvalidSize


# --- Base Region Class ---
@dataclass
class Region:
    """Base class for all regions in a binary block."""
    start: int
    size: int
    raw_data: bytes

    @property
    def end(self) -> int:
        return self.start + self.size


@dataclass
class UnclaimedRegion(Region):
    """Bytes no decoder step has accounted for (reserved fields, gaps)."""
    pass


@dataclass
class ClaimedRegion(Region):
    """A structure decoded from the buffer, with the object it decoded to."""
    name: str
    parsed_value: Optional[Any] = None


# --- The Main Curator Class ---
class BinaryCurator:
    """
    Manages a block of binary data, handing out checked slices of it and
    keeping track of what has been claimed.
    """
    def __init__(self, data: bytes):
        self.data = data
        self.cursor = 0
        self.regions: List[ClaimedRegion] = []

    def seek(self, offset: int):
        """Moves the internal cursor to an absolute offset."""
        if not (0 <= offset <= len(self.data)):
            raise InvalidSize(f"Seek offset {offset} is out of bounds (Size: {len(self.data)})")
        self.cursor = offset

    def skip(self, num_bytes: int):
        """Moves the internal cursor forward by a relative number of bytes."""
        self.seek(self.cursor + num_bytes)

    def check_range(self, start: int, size: int):
        """Raises InvalidSize unless [start, start + size) lies inside the buffer."""
        if size < 0 or start < 0 or start + size > len(self.data):
            raise InvalidSize(
                f"Range 0x{start:x}+{size} does not fit a {len(self.data)} byte buffer")

    def claim(self, name: str, size: int, parser_func: Callable[[bytes], Any]) -> Any:
        """
        Claims `size` bytes at the cursor, decodes them and advances.

        Args:
            name: A human-readable name for this structure.
            size: The number of bytes to claim.
            parser_func: Takes the raw bytes of the claimed block and returns
                        the decoded object. Its exceptions propagate.

        Returns:
            The decoded object, which is also stored on the ClaimedRegion.
        """
        self.check_range(self.cursor, size)

        start = self.cursor
        raw_chunk = self.data[start : start + size]
        parsed = parser_func(raw_chunk)

        region = ClaimedRegion(
            start=start,
            size=size,
            raw_data=raw_chunk,
            name=name,
            parsed_value=parsed
        )
        self.regions.append(region)
        self.cursor += size # Automatically advance the cursor
        return parsed

    def get_regions(self) -> List[Region]:
        """
        Returns claimed and unclaimed regions, sorted by offset, covering
        every byte of the buffer.
        """
        if not self.regions:
            # If nothing was claimed, the entire block is unclaimed
            return [UnclaimedRegion(
                start=0,
                size=len(self.data),
                raw_data=self.data
            )]

        # Sort claimed regions by start offset to handle out-of-order claims
        sorted_claimed = sorted(self.regions, key=lambda r: r.start)

        result: List[Region] = []
        last_end = 0

        for claimed in sorted_claimed:
            if claimed.start > last_end:
                result.append(UnclaimedRegion(
                    start=last_end,
                    size=claimed.start - last_end,
                    raw_data=self.data[last_end:claimed.start]
                ))

            result.append(claimed)
            # Packages may be placed over the offset table; never step backwards
            last_end = max(last_end, claimed.end)

        if last_end < len(self.data):
            result.append(UnclaimedRegion(
                start=last_end,
                size=len(self.data) - last_end,
                raw_data=self.data[last_end:]
            ))

        return result
