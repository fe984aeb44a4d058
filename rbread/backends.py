"""Decoder backends: one incremental decode step per call, for every supported format.

Every backend implements :meth:`Backend.decode_step`, which consumes some of the
pending compressed input and writes decoded bytes to the head of a destination
buffer. Codec failures never raise out of a step; they are reported as
:attr:`Signal.ERROR` carrying the codec exception.
"""

import bz2
import logging
import lzma
import zlib
from collections import namedtuple
from enum import Enum

from .buffers import read_fully
from .detect import Format

log = logging.getLogger(__name__)

# gzip header and trailer, 32K window.
_GZIP_WBITS = 16 + zlib.MAX_WBITS

# Raised by backend constructors; translated to OpenError by the stream.
INIT_ERRORS = (zlib.error, lzma.LZMAError, OSError, ValueError)


class Signal(Enum):
    CONTINUE = "continue"
    STREAM_END = "stream_end"
    ERROR = "error"


Step = namedtuple("Step", ["consumed", "produced", "signal", "error"], defaults=(None,))


def _truncated():
    return EOFError("Compressed file ended before the end-of-stream marker was reached")


class Backend:
    """Adapter around one codec's incremental decode call."""

    format = None

    # Whether compressed input is fed through a StagingBuffer.
    staged = True

    def decode_step(self, src, dst, finish: bool = False) -> Step:
        """Decode one step.

        Parameters
        ----------
        src: memoryview
            Pending compressed input.
        dst: memoryview
            Destination; decoded bytes are written to its head.
        finish: bool
            The file is exhausted; ``src`` is all the input that remains.

        Returns
        -------
        Step
            Input bytes consumed, output bytes produced, and the signal.
        """
        raise NotImplementedError

    @property
    def drained(self) -> bool:
        """Nothing is held inside the codec and no stream is left open in it."""
        raise NotImplementedError

    @property
    def finished(self) -> bool:
        """The codec will never produce output again, whatever input follows."""
        return False

    def close(self):
        pass


class TransparentBackend(Backend):
    """Raw passthrough; the "decode" step is a file read straight into ``dst``."""

    format = Format.TRANSPARENT
    staged = False

    def __init__(self, f):
        self._f = f

    def decode_step(self, src, dst, finish=False):
        n = read_fully(self._f, dst)
        return Step(0, n, Signal.STREAM_END if n < len(dst) else Signal.CONTINUE)

    @property
    def drained(self):
        return True


class _CodecBackend(Backend):
    def __init__(self):
        self._dec = self._new()
        self._full = False

    def _new(self):
        raise NotImplementedError

    def _emit(self, out, dst) -> int:
        n = len(out)
        dst[:n] = out
        # Output was capped by ``dst``; the codec may hold more.
        self._full = n == len(dst)
        return n

    def _fault(self, e, consumed=0):
        log.warning("%s decode failed: %s", self.format.value, e)
        self._full = False
        return Step(consumed, 0, Signal.ERROR, e)

    def close(self):
        self._dec = None


class GzipBackend(_CodecBackend):
    """gzip via ``zlib``; concatenated members decode as one stream."""

    format = Format.GZIP

    def __init__(self):
        super().__init__()
        self._started = False

    def _new(self):
        return zlib.decompressobj(wbits=_GZIP_WBITS)

    def decode_step(self, src, dst, finish=False):
        if not dst:
            return Step(0, 0, Signal.CONTINUE)

        dec = self._dec
        try:
            out = dec.decompress(src, len(dst))
        except zlib.error as e:
            return self._fault(e)

        consumed = len(src) - len(dec.unconsumed_tail) - len(dec.unused_data)
        produced = self._emit(out, dst)
        self._started = self._started or consumed > 0

        if dec.eof:
            # Anything after this member stays pending for the next one.
            log.debug("gzip member ended, %d bytes of input follow", len(dec.unused_data))
            self._dec = self._new()
            self._started = False
            self._full = False
            return Step(consumed, produced, Signal.STREAM_END)

        if finish and self._started and not consumed and not produced:
            return self._fault(_truncated())
        return Step(consumed, produced, Signal.CONTINUE)

    @property
    def drained(self):
        # A member that has started must end in STREAM_END or a fault.
        return not self._full and not self._started


class Bzip2Backend(_CodecBackend):
    """bzip2 via ``bz2``; decoding stops at the end of the first stream."""

    format = Format.BZIP2

    def _new(self):
        return bz2.BZ2Decompressor()

    def decode_step(self, src, dst, finish=False):
        dec = self._dec
        if dec.eof:
            return Step(len(src), 0, Signal.STREAM_END)
        if not dst:
            return Step(0, 0, Signal.CONTINUE)

        # Input is only handed over once the decompressor has used up its own.
        feed = src if dec.needs_input else b""
        try:
            out = dec.decompress(feed, len(dst))
        except (OSError, EOFError) as e:
            return self._fault(e)
        produced = self._emit(out, dst)

        if dec.eof:
            self._full = False
            return Step(len(feed), produced, Signal.STREAM_END)
        if finish and not src and not produced:
            return self._fault(_truncated())
        return Step(len(feed), produced, Signal.CONTINUE)

    @property
    def drained(self):
        return self._dec.eof

    @property
    def finished(self):
        return self._dec.eof


class XzBackend(_CodecBackend):
    """xz via ``lzma``, accepting concatenated streams and stream padding."""

    format = Format.XZ

    def __init__(self):
        super().__init__()
        self._carry = b""
        self._between = False
        self._padding = 0

    def _new(self):
        return lzma.LZMADecompressor(format=lzma.FORMAT_XZ)

    def decode_step(self, src, dst, finish=False):
        if not dst:
            return Step(0, 0, Signal.CONTINUE)

        if self._between:
            # Input left over from the previous stream, minus NUL stream padding.
            raw = self._carry + bytes(src)
            data = raw.lstrip(b"\0")
            consumed = len(src)
            self._carry = b""
            self._padding += len(raw) - len(data)
            if (data or finish) and self._padding % 4:
                return self._fault(lzma.LZMAError(f"Stream padding of {self._padding} bytes"), consumed)
            if not data:
                return Step(consumed, 0, Signal.STREAM_END if finish else Signal.CONTINUE)
            self._dec = self._new()
            self._between = False
            self._padding = 0
        elif self._dec.needs_input:
            data, consumed = src, len(src)
        else:
            data, consumed = b"", 0

        dec = self._dec
        try:
            out = dec.decompress(data, len(dst))
        except (lzma.LZMAError, EOFError) as e:
            return self._fault(e, consumed)
        produced = self._emit(out, dst)

        if dec.eof:
            self._carry = dec.unused_data
            self._between = True
            self._full = False
            return Step(consumed, produced, Signal.STREAM_END)
        if finish and not src and not data and not produced:
            return self._fault(_truncated(), consumed)
        return Step(consumed, produced, Signal.CONTINUE)

    @property
    def drained(self):
        # Only the gap after a complete stream is a clean place to stop.
        return self._between and not self._carry and not self._padding % 4

    def close(self):
        super().close()
        self._carry = b""


_CODECS = {
    Format.GZIP: GzipBackend,
    Format.BZIP2: Bzip2Backend,
    Format.XZ: XzBackend,
}


def new_backend(fmt: Format, f) -> Backend:
    """Create the backend for ``fmt``, reading raw bytes from ``f`` if transparent."""
    if fmt is Format.TRANSPARENT:
        return TransparentBackend(f)
    return _CODECS[fmt]()
