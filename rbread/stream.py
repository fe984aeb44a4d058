import codecs
import logging
from enum import Enum
from io import BytesIO

from . import OpenError
from .backends import INIT_ERRORS, Signal, new_backend
from .buffers import LOOKBACK, OutputWindow, StagingBuffer, read_fully
from .detect import Format, detect

log = logging.getLogger(__name__)

BULK_SIZE = 2 << 20


class State(Enum):
    READING = "reading"
    INPUT_EXHAUSTED = "input_exhausted"
    DONE = "done"


class Stream:
    """Reads decompressed bytes from a gzip, bzip2, xz or uncompressed file.

    The format is detected from the leading bytes of the file; anything that
    is not recognized is passed through unchanged.

    Can be used as a context manager to automatically handle file
    opening and closing:

    .. code-block:: python

        with rbread.Stream("data.txt.gz") as f:
            data = f.read()

    A stream must not be shared between threads.
    """

    def __init__(self, f, *, bulk_size: int = BULK_SIZE):
        """
        Parameters
        ----------
        f: Union[file, str, Path]
            Path to open, or binary file-like object supporting ``readinto``.
            A file opened here is closed by :meth:`close`; a file object
            passed in is left open.
        bulk_size: int
            Granularity of file reads and decode steps. Both internal buffers
            hold ``2 * bulk_size`` bytes.
        """
        if bulk_size < LOOKBACK:
            raise ValueError(f"bulk_size must be at least {LOOKBACK}, got {bulk_size}.")

        self.bulk_size = bulk_size
        self._bulk_thresh = 2 * bulk_size
        self._state = State.READING
        self._error = None
        self._format = None
        self._backend = None
        self._staging = None
        self._window = None

        if not hasattr(f, "readinto"):  # It's probably a path-like object.
            self.name = str(f)
            f = open(self.name, "rb")
            self._close_f_on_close = True
        else:
            self.name = getattr(f, "name", None)
            self._close_f_on_close = False
        self._f = f

        try:
            self._open()
        except INIT_ERRORS as e:
            self._release()
            raise OpenError(f"Failed to open {self.name!r}: {e}") from e
        except BaseException:
            self._release()
            raise

    def _open(self):
        arena = bytearray(2 * self.bulk_size)
        n = read_fully(self._f, memoryview(arena)[: self.bulk_size])
        if n < self.bulk_size:
            self._state = State.INPUT_EXHAUSTED

        fmt = self._format = detect(memoryview(arena)[:n])
        self._backend = new_backend(fmt, self._f)
        if self._backend.staged:
            self._staging = StagingBuffer(arena, n)
            self._window = OutputWindow(bytearray(2 * self.bulk_size))
        else:
            # Plain files are delivered straight from the first block.
            self._window = OutputWindow(arena, n)
        log.debug("Opened %r as %s.", self.name, fmt.value)

        if n == 0:
            self._set_done()

    @property
    def format(self) -> Format:
        return self._format

    @property
    def state(self) -> State:
        return self._state

    @property
    def at_end(self) -> bool:
        """``True`` once no further bytes will be produced."""
        return self._state is State.DONE

    @property
    def error(self):
        """Codec exception that ended the stream, or ``None``.

        A decode failure ends the stream exactly like a clean end of data;
        this is the only place the two can be told apart.
        """
        return self._error

    @property
    def closed(self) -> bool:
        return self._f is None

    def _check_open(self):
        if self._f is None:
            raise ValueError("I/O operation on closed file.")

    def _exhaust(self):
        if self._state is State.READING:
            log.debug("End of input file %r.", self.name)
            self._state = State.INPUT_EXHAUSTED

    def _set_done(self, error=None):
        self._state = State.DONE
        self._error = error
        log.debug("Stream %r done%s.", self.name, f" ({error})" if error else "")

    def _update_done(self):
        if self._state is State.DONE:
            return
        backend = self._backend
        if backend.finished or (
            self._state is State.INPUT_EXHAUSTED and not self._staging and backend.drained
        ):
            self._set_done()

    def _decode_into(self, dst) -> int:
        staging = self._staging
        if staging is None:
            step = self._backend.decode_step(None, dst)
            if step.signal is Signal.STREAM_END:
                self._exhaust()
        else:
            if len(staging) < LOOKBACK and self._state is State.READING:
                if staging.refill(self._f, min(len(dst), self.bulk_size)):
                    self._exhaust()
            step = self._backend.decode_step(
                staging.pending(), dst, finish=self._state is not State.READING
            )
            staging.consume(step.consumed)

        if step.signal is Signal.ERROR:
            self._set_done(step.error)
        return step.produced

    def readinto(self, buf) -> int:
        """Decompresses data into provided buffer.

        Parameters
        ----------
        buf: bytearray
            Buffer to decode data into. Its whole length is requested.

        Returns
        -------
        int
            Number of bytes written. Less than ``len(buf)`` only when the
            stream has ended; ``0`` once :attr:`at_end` is ``True``.
        """
        self._check_open()
        if self._state is State.DONE:
            return 0

        dst = memoryview(buf).cast("B")
        size = len(dst)

        chunk = self._window.take(size)
        n = len(chunk)
        dst[:n] = chunk

        # Large requests are decoded straight into the caller's buffer.
        while self._state is not State.DONE and size - n > self._bulk_thresh:
            n += self._decode_into(dst[n:])
            self._update_done()

        window = self._window
        while self._state is not State.DONE and n < size:
            window.fill(self._decode_into(window.chunk(self.bulk_size)))
            chunk = window.take(size - n)
            dst[n : n + len(chunk)] = chunk
            n += len(chunk)
            if not window:
                self._update_done()

        return n

    def read(self, size: int = -1) -> bytes:
        """Decompresses data to bytes.

        Parameters
        ----------
        size: int
            Maximum number of bytes to return.
            If a negative value is provided, all data will be returned.
            Defaults to ``-1``.

        Returns
        -------
        bytes
            Decompressed data.
        """
        if size is None or size < 0:
            out = []
            chunk_size = self.bulk_size
            while True:
                buf = bytearray(chunk_size)
                chunk_size <<= 1  # Keep allocating larger chunks as we go on.
                n = self.readinto(buf)
                if n:
                    out.append(buf if n == len(buf) else buf[:n])
                if n < len(buf):
                    break
            return b"".join(out)

        buf = bytearray(size)
        n = self.readinto(buf)
        return bytes(buf) if n == size else bytes(buf[:n])

    def _release(self):
        self._staging = None
        self._window = None
        if self._f is not None and self._close_f_on_close:
            self._f.close()
        self._f = None

    def close(self):
        """Finalizes the decoder and closes the input file, if rbread opened it."""
        if self._backend is not None:
            self._backend.close()
            self._backend = None
        self._release()

    def __enter__(self):
        """Use :class:`Stream` as a context manager.

        .. code-block:: python

           with rbread.Stream("data.bz2") as f:
               data = f.read()
        """
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        """Calls :meth:`~Stream.close` on contextmanager exit."""
        self.close()


class TextStream(Stream):
    """Reads decompressed text from a gzip, bzip2, xz or uncompressed file."""

    def __init__(self, f, *, encoding: str = "utf-8", errors: str = "strict", **kwargs):
        super().__init__(f, **kwargs)
        self._decoder = codecs.getincrementaldecoder(encoding)(errors)

    def read(self, size: int = -1) -> str:
        """Decompresses data to text.

        Parameters
        ----------
        size: int
            Maximum number of decompressed bytes to decode.
            If a negative value is provided, all data will be returned.
            Defaults to ``-1``.

        Returns
        -------
        str
            Decompressed text. A multi-byte character split by ``size`` is
            returned by the following call.
        """
        data = super().read(size)
        return self._decoder.decode(data, final=self.at_end)


def decompress(data: bytes, **kwargs) -> bytes:
    """Single-call to decompress gzip, bzip2 or xz data; other data is returned as-is.

    Parameters
    ----------
    data: bytes
        Possibly-compressed data.

    Returns
    -------
    bytes
        Decompressed data.
    """
    with BytesIO(data) as f, Stream(f, **kwargs) as stream:
        return stream.read()
