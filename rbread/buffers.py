"""Staging buffers between the file, the decoder and the caller."""

# Unconsumed input below this many bytes triggers a refill.
LOOKBACK = 8


def read_fully(f, view) -> int:
    """Fill ``view`` from ``f``, stopping early only at end of file.

    Returns
    -------
    int
        Number of bytes read.
    """
    size = len(view)
    total = 0
    while total < size:
        n = f.readinto(view[total:])
        if not n:
            break
        total += n
    return total


class OutputWindow:
    """Decoded bytes not yet delivered to the caller.

    The unread region is ``[start, end)`` of an owned arena.
    """

    def __init__(self, arena: bytearray, end: int = 0):
        self.arena = arena
        self.view = memoryview(arena)
        self.capacity = len(arena)
        self.start = 0
        self.end = 0
        self.fill(end)

    def __len__(self):
        return self.end - self.start

    def chunk(self, size: int) -> memoryview:
        """Writable view of the first ``size`` bytes of the arena."""
        if size > self.capacity:
            raise ValueError(f"Chunk of {size} bytes exceeds window capacity {self.capacity}.")
        return self.view[:size]

    def fill(self, n: int):
        """Mark the first ``n`` bytes of the arena as unread."""
        if not 0 <= n <= self.capacity:
            raise ValueError(f"Fill of {n} bytes exceeds window capacity {self.capacity}.")
        self.start = 0
        self.end = n

    def take(self, size: int) -> memoryview:
        """Consume up to ``size`` unread bytes."""
        size = min(size, self.end - self.start)
        out = self.view[self.start : self.start + size]
        self.start += size
        return out


class StagingBuffer:
    """Compressed bytes waiting for the decoder.

    Pending input is ``[pos, pos + avail)`` of an owned arena. The arena must
    hold a full refill block plus :data:`LOOKBACK` bytes of residual input.
    """

    def __init__(self, arena: bytearray, avail: int = 0):
        if not 0 <= avail <= len(arena):
            raise ValueError(f"{avail} pending bytes exceed staging capacity {len(arena)}.")
        self.arena = arena
        self.view = memoryview(arena)
        self.capacity = len(arena)
        self.pos = 0
        self.avail = avail

    def __len__(self):
        return self.avail

    def pending(self) -> memoryview:
        return self.view[self.pos : self.pos + self.avail]

    def consume(self, n: int):
        if not 0 <= n <= self.avail:
            raise ValueError(f"Cannot consume {n} of {self.avail} pending bytes.")
        self.pos += n
        self.avail -= n

    def refill(self, f, size: int) -> bool:
        """Move residual input to the arena head and append a block from ``f``.

        Parameters
        ----------
        f: file
            Binary file-like object supporting ``readinto``.
        size: int
            Maximum number of bytes to read.

        Returns
        -------
        bool
            ``True`` if ``f`` returned fewer bytes than requested (end of file).
        """
        residual = self.avail
        if residual > LOOKBACK:
            raise ValueError(f"Refill with {residual} pending bytes; at most {LOOKBACK} may remain.")
        if residual:
            self.view[:residual] = bytes(self.view[self.pos : self.pos + residual])

        size = min(size, self.capacity - residual)
        n = read_fully(f, self.view[residual : residual + size])
        self.pos = 0
        self.avail = residual + n
        return n < size
