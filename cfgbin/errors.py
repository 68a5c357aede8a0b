"""
Error kinds raised while decoding a cfg bin.

Every error aborts the decode; nothing in the library catches these.
They subclass ValueError so callers that only care about "bad input"
can keep catching that.
"""


class CfgBinError(ValueError):
    """Base class for all cfg bin decode failures."""


class InvalidSize(CfgBinError):
    """A fixed region or a computed range does not fit the buffer."""


class LengthCheckFail(CfgBinError):
    """Declared bin_len disagrees with the real buffer length."""

    def __init__(self, declared: int, actual: int):
        super().__init__(f"bin_len is {declared} but buffer holds {actual} bytes")
        self.declared = declared
        self.actual = actual


class ChecksumMismatch(CfgBinError):
    """Wrapping sum over bytes[5:] differs from the header checksum."""

    def __init__(self, expected: int, computed: int):
        super().__init__(f"checksum 0x{expected:02x} in header, computed 0x{computed:02x}")
        self.expected = expected
        self.computed = computed


class InvalidOffset(CfgBinError):
    """Offset table entries are not strictly increasing."""

    def __init__(self, index: int, offset: int, next_offset: int):
        super().__init__(
            f"package {index}: next offset 0x{next_offset:x} is not past 0x{offset:x}")
        self.index = index
        self.offset = offset
        self.next_offset = next_offset
