import logging
import sys
from pathlib import Path
from typing import Annotated

from cyclopts import App, Parameter, validators

import rbread

log = logging.getLogger(__name__)

app = App(
    help="Write the decompressed contents of gzip, bzip2, xz or plain files to stdout.",
    version=rbread.__version__,
)


def pump(stream: rbread.Stream, output, bulk_size: int):
    """Copy the remaining contents of ``stream`` to ``output``."""
    buf = bytearray(bulk_size)
    view = memoryview(buf)
    while not stream.at_end:
        output.write(view[: stream.readinto(buf)])


@app.default
def cat(
    *files: Path,
    bulk_size: Annotated[
        int,
        Parameter(
            name=["--bulk-size", "-b"],
            validator=validators.Number(gte=8),
        ),
    ] = rbread.BULK_SIZE,
    verbose: Annotated[bool, Parameter(name=["--verbose", "-v"])] = False,
):
    """Decompress files to stdout, in order.

    Parameters
    ----------
    files: Path
        Files to decompress. Reading from stdin is not supported.
    bulk_size: int
        Size of each file read and decode step, in bytes.
    verbose: bool
        Log format detection and end-of-stream events to stderr.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if not files:
        print("input from stdin is not supported.", file=sys.stderr)
        sys.exit(1)

    output = sys.stdout.buffer
    for path in files:
        try:
            stream = rbread.open(path, "rb", bulk_size=bulk_size)
        except OSError as e:
            log.debug("Open of %s failed: %s", path, e)
            print(f"failed to open file `{path}'", file=sys.stderr)
            sys.exit(1)

        with stream:
            pump(stream, output, bulk_size)
    output.flush()


def run_app():
    app()
