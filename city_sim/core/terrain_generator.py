"""
Procedural terrain generation.

Two multi-octave value-noise fields (height and moisture) are sampled for
every tile and mapped to terrain types: water and beaches in a band along
the map edge, mountains on high ground, forest where it is moist and grass
everywhere else.
"""

from typing import Optional

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .grid import GridConfig

logger = structlog.get_logger()


class TerrainOptions(BaseModel):
    """Options for terrain generation."""

    seed: Optional[int] = Field(default=None, description="Noise seed")
    height_scale: float = Field(default=0.03, gt=0, description="Base frequency of the height field")
    moisture_scale: float = Field(default=0.05, gt=0, description="Base frequency of the moisture field")
    octaves: int = Field(default=4, ge=1, le=8)
    persistence: float = Field(default=0.5, gt=0, le=1)
    edge_band: float = Field(default=0.08, ge=0, le=0.5, description="Edge band as share of the short side")
    water_chance: float = Field(default=0.9, ge=0, le=1)
    beach_chance: float = Field(default=0.8, ge=0, le=1)


def _value_noise(
    width: int, height: int, frequency: float, rng: np.random.Generator
) -> np.ndarray:
    """Bilinearly interpolated random lattice sampled at ``frequency``."""
    xs = np.arange(width) * frequency
    ys = np.arange(height) * frequency
    lattice = rng.random((int(ys[-1]) + 2, int(xs[-1]) + 2))

    x0 = np.floor(xs).astype(int)
    y0 = np.floor(ys).astype(int)
    fx = xs - x0
    fy = ys - y0
    # Smoothstep weights
    fx = fx * fx * (3 - 2 * fx)
    fy = fy * fy * (3 - 2 * fy)

    top = lattice[np.ix_(y0, x0)] * (1 - fx) + lattice[np.ix_(y0, x0 + 1)] * fx
    bottom = lattice[np.ix_(y0 + 1, x0)] * (1 - fx) + lattice[np.ix_(y0 + 1, x0 + 1)] * fx
    return top * (1 - fy)[:, None] + bottom * fy[:, None]


def fractal_noise(
    width: int,
    height: int,
    scale: float,
    octaves: int,
    persistence: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Sum of octaves of value noise, normalized to [0, 1]."""
    total = np.zeros((height, width), dtype=np.float64)
    amplitude = 1.0
    frequency = scale
    max_value = 0.0

    for _ in range(octaves):
        total += _value_noise(width, height, frequency, rng) * amplitude
        max_value += amplitude
        amplitude *= persistence
        frequency *= 2

    return total / max_value


def generate_terrain(config: GridConfig, options: Optional[TerrainOptions] = None) -> np.ndarray:
    """
    Generate a terrain-type array of shape ``(height, width)``.

    Deterministic for a given seed.
    """
    options = options or TerrainOptions()
    rng = np.random.default_rng(options.seed)
    width, height = config.width, config.height

    elevation = fractal_noise(
        width, height, options.height_scale, options.octaves, options.persistence, rng
    )
    moisture = fractal_noise(
        width, height, options.moisture_scale, options.octaves, options.persistence, rng
    )
    roll = rng.random((height, width))

    edge = min(width, height) * options.edge_band
    ys, xs = np.mgrid[0:height, 0:width]
    near_edge = (xs < edge) | (xs >= width - edge) | (ys < edge) | (ys >= height - edge)
    moist = moisture > 0.7

    terrain = np.full((height, width), "grass", dtype="<U16")
    terrain[moist] = "forest"
    terrain[(elevation > 0.55) & ~moist] = "mountain"
    terrain[elevation > 0.75] = "mountain"

    beach = near_edge & (elevation >= 0.25) & (elevation < 0.35) & (roll < options.beach_chance)
    water = near_edge & (elevation < 0.25) & (roll < options.water_chance)
    terrain[beach] = "beach"
    terrain[water] = "water"

    counts = {str(t): int(n) for t, n in zip(*np.unique(terrain, return_counts=True))}
    logger.info("Terrain generated", width=width, height=height, seed=options.seed, **counts)
    return terrain
