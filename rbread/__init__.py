__version__ = "0.1.0"


class OpenError(OSError):
    """The detected decoder backend could not be initialized."""


from .detect import Format, detect
from .stream import BULK_SIZE, State, Stream, TextStream, decompress


def open(f, mode="rb", **kwargs):
    """Open a possibly-compressed file for reading.

    Parameters
    ----------
    f: Union[file, str, Path]
        Path or binary file-like object to read from.
    mode: str
        ``"rb"`` for a :class:`Stream`, ``"r"`` or ``"rt"`` for a :class:`TextStream`.

    Returns
    -------
    Union[Stream, TextStream]
    """
    if "w" in mode or "a" in mode or "x" in mode or "+" in mode:
        raise ValueError(f"Writing is not supported: {mode!r}")

    if "r" not in mode:
        raise ValueError(f"Invalid mode: {mode!r}")

    if "b" in mode:
        if "t" in mode:
            raise ValueError(f"Invalid mode: {mode!r}")
        return Stream(f, **kwargs)
    return TextStream(f, **kwargs)
