from typing import Optional, Sequence, Tuple

import numpy as np
from skimage.filters import gaussian


def make_texture(shape: Sequence[int], seed: int = 0, sigma: float = 1.0) -> np.ndarray:
    """Smooth random texture, roughly in [0, 1], good for registration tests."""
    rng = np.random.default_rng(seed)
    texture = gaussian(rng.random(tuple(shape)), sigma=sigma, preserve_range=True)
    texture -= texture.min()
    texture /= texture.max()
    return texture.astype(np.float64)


def overlapping_tiles(
    tile_shape: Sequence[int],
    shift: Sequence[int],
    seed: int = 0,
    sigma: float = 1.0,
    noise: float = 0.0,
    second_tile_shape: Optional[Sequence[int]] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Cut two tiles from one texture such that ``image2[x] == image1[x + shift]``.

    Args:
        tile_shape: Shape of the first tile
        shift: Offset of the second tile in the first tile's frame
        seed: Seed of the shared texture and of the noise
        sigma: Smoothing of the texture
        noise: Standard deviation of independent gaussian noise added to each tile
        second_tile_shape: Shape of the second tile; same as the first when None
    """
    tile_shape = tuple(tile_shape)
    second_shape = tuple(second_tile_shape) if second_tile_shape is not None else tile_shape
    origin1 = tuple(max(0, -s) for s in shift)
    origin2 = tuple(o + s for o, s in zip(origin1, shift))
    canvas_shape = tuple(
        max(o1 + n1, o2 + n2)
        for o1, n1, o2, n2 in zip(origin1, tile_shape, origin2, second_shape)
    )
    canvas = make_texture(canvas_shape, seed=seed, sigma=sigma)

    image1 = canvas[tuple(slice(o, o + n) for o, n in zip(origin1, tile_shape))].copy()
    image2 = canvas[tuple(slice(o, o + n) for o, n in zip(origin2, second_shape))].copy()
    if noise > 0:
        rng = np.random.default_rng(seed + 1)
        image1 += rng.normal(0.0, noise, image1.shape)
        image2 += rng.normal(0.0, noise, image2.shape)
    return image1, image2


def circularly_shifted(image: np.ndarray, shift: Sequence[int]) -> np.ndarray:
    """``out[x] == image[(x + shift) mod shape]``."""
    return np.roll(image, [-s for s in shift], axis=tuple(range(image.ndim)))
