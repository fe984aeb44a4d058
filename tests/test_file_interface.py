import gzip
import lzma
import unittest
from io import BytesIO
from pathlib import Path
from tempfile import TemporaryDirectory

import rbread


class TestFileInterface(unittest.TestCase):
    def test_open_rb(self):
        with TemporaryDirectory() as tmp_dir:
            fn = Path(tmp_dir) / "file.gz"
            fn.write_bytes(gzip.compress(b"test string is best string"))

            f = rbread.open(fn, "rb")
            self.assertIsInstance(f, rbread.Stream)
            self.assertNotIsInstance(f, rbread.TextStream)
            f.close()

    def test_open_context_manager(self):
        with TemporaryDirectory() as tmp_dir:
            fn = Path(tmp_dir) / "file.xz"
            test_string = b"test string is best string"
            fn.write_bytes(lzma.compress(test_string))

            with rbread.open(fn) as f:
                actual = f.read()

            self.assertEqual(test_string, actual)
            self.assertTrue(f.closed)

    def test_encoding(self):
        test_string = "tëst strîng is bést strïng"
        for mode in ("r", "rt"):
            with self.subTest(mode=mode), BytesIO(gzip.compress(test_string.encode())) as raw:
                with rbread.open(raw, mode) as f:
                    self.assertIsInstance(f, rbread.TextStream)
                    self.assertEqual(f.read(), test_string)

    def test_encoding_split_characters(self):
        test_string = "héllo wörld ünïcode"
        with rbread.open(BytesIO(gzip.compress(test_string.encode())), "r", bulk_size=8) as f:
            pieces = []
            while not f.at_end:
                pieces.append(f.read(2))
        self.assertEqual("".join(pieces), test_string)

    def test_other_encoding(self):
        test_string = "façade"
        data = gzip.compress(test_string.encode("latin-1"))
        with rbread.open(BytesIO(data), "r", encoding="latin-1") as f:
            self.assertEqual(f.read(), test_string)

    def test_bad_modes(self):
        for mode in ("wb", "w", "ab", "r+b", "x", "abc", "b", "rbt"):
            with self.subTest(mode=mode), self.assertRaises(ValueError):
                rbread.open(None, mode)  # type: ignore[reportGeneralTypeIssues]
