import contextlib
import io
import json
import pathlib
import tempfile
import unittest

import tifffile

from .registration_cli import main
from .testutil import make_texture, overlapping_tiles


class RegistrationCliTest(unittest.TestCase):
    def test_registers_two_tiffs(self) -> None:
        image1, image2 = overlapping_tiles((96, 96), (30, -12), seed=31)
        with tempfile.TemporaryDirectory() as d:
            path1 = pathlib.Path(d) / "tile_0.tiff"
            path2 = pathlib.Path(d) / "tile_1.tiff"
            tifffile.imwrite(path1, image1.astype("float32"))
            tifffile.imwrite(path2, image2.astype("float32"))

            stdout = io.StringIO()
            with contextlib.redirect_stdout(stdout):
                summary = main(["--image1", str(path1), "--image2", str(path2)])

        self.assertEqual(summary["shift"], [30, -12])
        self.assertTrue(summary["reliable"])
        self.assertGreater(summary["cross_correlation"], 0.99)
        self.assertEqual(json.loads(stdout.getvalue()), summary)

    def test_unreliable_result_is_valid_json(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            path1 = pathlib.Path(d) / "a.tiff"
            path2 = pathlib.Path(d) / "b.tiff"
            tifffile.imwrite(path1, make_texture((48, 48), seed=1).astype("float32"))
            tifffile.imwrite(path2, make_texture((48, 48), seed=2).astype("float32"))

            stdout = io.StringIO()
            with contextlib.redirect_stdout(stdout):
                summary = main([
                    "--image1", str(path1),
                    "--image2", str(path2),
                    "--min_overlap", "100",
                ])

        self.assertFalse(summary["reliable"])
        self.assertIsNone(summary["cross_correlation"])
        self.assertEqual(json.loads(stdout.getvalue()), summary)

    def test_missing_image(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(FileNotFoundError):
                main(["--image1", f"{d}/missing.tiff", "--image2", f"{d}/missing.tiff"])


if __name__ == "__main__":
    unittest.main()
