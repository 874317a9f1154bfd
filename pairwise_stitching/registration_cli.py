import json
import logging
import pathlib
import sys
from typing import Any

import numpy as np
import tifffile
from pydantic_settings import CliApp

from pairwise_stitching.parameters import PhaseCorrelationParameters
from pairwise_stitching.registration._peaks import PhaseCorrelationPeak
from pairwise_stitching.registration.phase_correlation import compute_shift


class RegistrationCliParameters(PhaseCorrelationParameters):
    """Estimate the shift between two overlapping image tiles."""

    image1: pathlib.Path
    """First tile, read with tifffile."""

    image2: pathlib.Path
    """Second tile, read with tifffile. Must have the same number of dimensions as the first."""


def load_tile(path: pathlib.Path) -> np.ndarray:
    if not path.exists():
        raise FileNotFoundError(f"Image does not exist: {path}")
    return tifffile.imread(path)


def peak_summary(peak: PhaseCorrelationPeak) -> dict[str, Any]:
    score = peak.cross_correlation
    return {
        "shift": list(peak.shift) if peak.shift is not None else None,
        "subpixel_shift": list(peak.subpixel_shift) if peak.subpixel_shift is not None else None,
        # JSON has no -inf
        "cross_correlation": score if score is not None and np.isfinite(score) else None,
        "pcm_value": peak.pcm_value,
        "n_pixels": peak.n_pixels,
        "reliable": score is not None and bool(np.isfinite(score)),
    }


def main(args: list[str]) -> dict[str, Any]:
    params = CliApp.run(RegistrationCliParameters, cli_args=args)
    log_level = logging.DEBUG if params.verbose else logging.INFO
    logging.basicConfig(level=log_level)

    image1 = load_tile(params.image1)
    image2 = load_tile(params.image2)
    logging.info(f"Registering {params.image1} {image1.shape} against {params.image2} {image2.shape}")

    summary = peak_summary(compute_shift(image1, image2, params))
    print(json.dumps(summary, indent=2))
    return summary


def cli() -> None:
    main(sys.argv[1:])


if __name__ == "__main__":
    cli()
