"""Format detection by magic bytes."""

from enum import Enum


class Format(Enum):
    GZIP = "gzip"
    BZIP2 = "bzip2"
    XZ = "xz"
    TRANSPARENT = "transparent"


MAGIC_SIZE = 8

# (format, magic, mask) over the little-endian value of the first 8 bytes.
# Checked in order; the first match wins.
MAGICS = (
    (Format.GZIP, 0x000000088B1F, 0x000000FFFFFF),  # 1f 8b 08
    (Format.BZIP2, 0x000000685A42, 0x000000FFFFFF),  # "BZh"
    (Format.XZ, 0x005A587A37FD, 0xFFFFFFFFFFFF),  # fd "7zXZ" 00
)


def detect(head) -> Format:
    """Select the format of a file from its leading bytes.

    Parameters
    ----------
    head: bytes-like
        First bytes of the file. Anything shorter than 8 bytes is never
        considered compressed.

    Returns
    -------
    Format
        Matching format, or ``Format.TRANSPARENT`` if nothing matches.
    """
    if len(head) < MAGIC_SIZE:
        return Format.TRANSPARENT

    value = int.from_bytes(head[:MAGIC_SIZE], "little")
    for fmt, magic, mask in MAGICS:
        if value & mask == magic:
            return fmt
    return Format.TRANSPARENT
