import gzip
import io
import lzma
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from rbread.cli.main import app


def invoke(args):
    """Run the CLI, returning ``(exit_code, stdout_bytes, stderr_text)``."""
    stdout = io.TextIOWrapper(io.BytesIO())
    stderr = io.StringIO()
    with mock.patch("sys.stdout", stdout), mock.patch("sys.stderr", stderr):
        try:
            app(args)
        except SystemExit as e:
            code = e.code or 0
        else:
            code = 0
        stdout.flush()
    return code, stdout.buffer.getvalue(), stderr.getvalue()


class TestCli(unittest.TestCase):
    def setUp(self):
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.tmp_dir = Path(self._tmp_dir.name)

    def tearDown(self):
        self._tmp_dir.cleanup()

    def test_file_to_stdout(self):
        test_file = self.tmp_dir / "test_input.gz"
        test_file.write_bytes(gzip.compress(b"foo foo foo"))
        code, stdout, _ = invoke([str(test_file)])
        self.assertEqual(code, 0)
        self.assertEqual(stdout, b"foo foo foo")

    def test_files_in_order(self):
        files = [
            (self.tmp_dir / "a.gz", gzip.compress(b"alpha ")),
            (self.tmp_dir / "b.xz", lzma.compress(b"beta ")),
            (self.tmp_dir / "c.txt", b"gamma\n"),
        ]
        for path, data in files:
            path.write_bytes(data)
        code, stdout, _ = invoke([str(path) for path, _ in files])
        self.assertEqual(code, 0)
        self.assertEqual(stdout, b"alpha beta gamma\n")

    def test_bulk_size(self):
        data = b"It was the best of times, it was the worst of times. " * 100
        test_file = self.tmp_dir / "test_input.xz"
        test_file.write_bytes(lzma.compress(data))
        code, stdout, _ = invoke(["--bulk-size", "16", str(test_file)])
        self.assertEqual(code, 0)
        self.assertEqual(stdout, data)

    def test_bulk_size_too_small(self):
        test_file = self.tmp_dir / "test_input.txt"
        test_file.write_bytes(b"foo")
        code, _, _ = invoke(["--bulk-size", "4", str(test_file)])
        self.assertNotEqual(code, 0)

    def test_open_failure_aborts(self):
        good = self.tmp_dir / "good.txt"
        good.write_bytes(b"good\n")
        missing = self.tmp_dir / "missing.gz"
        code, stdout, stderr = invoke([str(good), str(missing), str(good)])
        self.assertEqual(code, 1)
        self.assertEqual(stdout, b"good\n")
        self.assertIn(f"failed to open file `{missing}'", stderr)

    def test_no_input(self):
        code, stdout, stderr = invoke([])
        self.assertEqual(code, 1)
        self.assertEqual(stdout, b"")
        self.assertIn("input from stdin is not supported.", stderr)

    def test_help(self):
        code, _, _ = invoke(["-h"])
        self.assertEqual(code, 0)

    def test_version(self):
        code, _, _ = invoke(["--version"])
        self.assertEqual(code, 0)
