import json
import pathlib
import tempfile
import unittest

from pydantic import ValidationError

from .parameters import DEFAULT_EXTENSION, DEFAULT_PEAK_COUNT, PhaseCorrelationParameters


class ParametersTest(unittest.TestCase):
    def test_defaults(self) -> None:
        params = PhaseCorrelationParameters()
        self.assertEqual(params.extension, DEFAULT_EXTENSION)
        self.assertEqual(params.extension, 10)
        self.assertEqual(params.n_highest_peaks, DEFAULT_PEAK_COUNT)
        self.assertEqual(params.n_highest_peaks, 5)
        self.assertIsNone(params.min_overlap)
        self.assertIsNone(params.num_workers)
        self.assertFalse(params.subpixel_accuracy)
        self.assertEqual(params.pcm_dtype, "float64")
        self.assertEqual(params.fft_dtype, "complex128")

    def test_roundtrip(self) -> None:
        params = PhaseCorrelationParameters(
            extension=[4, 10, 10],
            n_highest_peaks=8,
            min_overlap=[1, 20, 20],
            subpixel_accuracy=True,
            pcm_dtype="float32",
            fft_dtype="complex64",
        )
        with tempfile.TemporaryDirectory() as d:
            path = str(pathlib.Path(d) / "params.json")
            params.to_json_file(path)
            loaded = PhaseCorrelationParameters.from_json_file(path)
        self.assertEqual(loaded, params)

    def test_parsing(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            path = pathlib.Path(d) / "params.json"
            with open(path, "w") as f:
                json.dump({"extension": 6, "min_overlap": 12, "verbose": True}, f)
            params = PhaseCorrelationParameters.from_json_file(str(path))
        self.assertEqual(params.extension, 6)
        self.assertEqual(params.min_overlap, 12)
        self.assertTrue(params.verbose)

    def test_invalid_values(self) -> None:
        with self.assertRaises(ValidationError):
            PhaseCorrelationParameters(extension=-1)
        with self.assertRaises(ValidationError):
            PhaseCorrelationParameters(extension=[10, -2])
        with self.assertRaises(ValidationError):
            PhaseCorrelationParameters(n_highest_peaks=0)
        with self.assertRaises(ValidationError):
            PhaseCorrelationParameters(min_overlap=[0, 5])
        with self.assertRaises(ValidationError):
            PhaseCorrelationParameters(num_workers=0)
        with self.assertRaises(ValidationError):
            PhaseCorrelationParameters(pcm_dtype="complex64")


if __name__ == "__main__":
    unittest.main()
