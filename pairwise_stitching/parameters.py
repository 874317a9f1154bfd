from typing import Annotated, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, Field

from .registration._peaks import DEFAULT_PEAK_COUNT
from .registration._spectral import DEFAULT_EXTENSION

PerAxisValue = Union[int, list[int]]


def non_negative_per_axis(value: PerAxisValue) -> PerAxisValue:
    """Pydantic validator for an int-or-list setting that must not be negative."""
    values = [value] if isinstance(value, int) else value
    if any(v < 0 for v in values):
        raise ValueError(f"Values must be non-negative, got {value}")
    return value


def positive_per_axis(value: Optional[PerAxisValue]) -> Optional[PerAxisValue]:
    """Pydantic validator for an optional int-or-list setting that must be positive."""
    if value is None:
        return value
    values = [value] if isinstance(value, int) else value
    if any(v < 1 for v in values):
        raise ValueError(f"Values must be positive, got {value}")
    return value


class PhaseCorrelationParameters(
    BaseModel,
    use_attribute_docstrings=True,
):
    """Parameters for estimating the shift between two overlapping tiles."""

    extension: Annotated[PerAxisValue, AfterValidator(non_negative_per_axis)] = DEFAULT_EXTENSION
    """Width in pixels of the mirrored border added on each side before the FFT.

    Either one value for every axis or a list with one value per axis. The
    border suppresses edge artifacts of the circular transform.
    """

    n_highest_peaks: int = Field(default=DEFAULT_PEAK_COUNT, ge=1)
    """How many maxima of the phase correlation matrix to verify by cross-correlation."""

    min_overlap: Annotated[Optional[PerAxisValue], AfterValidator(positive_per_axis)] = None
    """Minimum overlap, in pixels, a candidate shift needs along every axis.

    Candidates with less overlap are disqualified. `None` means no constraint.
    """

    subpixel_accuracy: bool = False
    """Refine the winning shift to subpixel precision with a parabola fit on the PCM peak."""

    num_workers: Optional[int] = Field(default=None, ge=1)
    """Size of the worker pool. The default, `None`, uses one thread per CPU."""

    pcm_dtype: Literal["float32", "float64"] = "float64"
    """Element type of the phase correlation matrix."""

    fft_dtype: Literal["complex64", "complex128"] = "complex128"
    """Element type of the intermediate spectra."""

    verbose: bool = False
    """Show debug-level logging."""

    @classmethod
    def from_json_file(cls, json_path: str) -> "PhaseCorrelationParameters":
        """Create parameters from a JSON file.

        Args:
            json_path: Path to JSON file containing parameters

        Returns:
            PhaseCorrelationParameters: New instance with values from JSON
        """
        with open(json_path) as f:
            return cls.model_validate_json(f.read())

    def to_json_file(self, json_path: str) -> None:
        """Save parameters to a JSON file.

        Args:
            json_path: Path where JSON file should be saved
        """
        with open(json_path, "w") as f:
            f.write(self.model_dump_json(indent=2))
