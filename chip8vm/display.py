"""
Presentation helpers for the CHIP-8 framebuffer
Accept either the flat 2048-byte framebuffer or the (32, 64) display array.
"""

import logging
from pathlib import Path
from typing import Union

import numpy as np

from .chip8 import DISPLAY_HEIGHT, DISPLAY_WIDTH

logger = logging.getLogger(__name__)


def _as_grid(display: np.ndarray) -> np.ndarray:
    return np.asarray(display, dtype=np.uint8).reshape(DISPLAY_HEIGHT, DISPLAY_WIDTH)


def display_to_image(display: np.ndarray, scale: int = 8) -> np.ndarray:
    """Scale the display up into a 0/255 grayscale image array"""
    lit = (_as_grid(display) != 0).astype(np.uint8) * 255
    return np.repeat(np.repeat(lit, scale, axis=0), scale, axis=1)


def save_display_png(display: np.ndarray, path: Union[str, Path], scale: int = 8) -> Path:
    """Save the display as a grayscale PNG"""
    from PIL import Image

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    img = Image.fromarray(display_to_image(display, scale))
    img.save(path)
    logger.info("Saved display screenshot to %s", path)
    return path


def render_ascii(display: np.ndarray, on: str = '██', off: str = '  ') -> str:
    """Render the display as text, one line per pixel row"""
    return '\n'.join(''.join(on if pixel else off for pixel in row)
                     for row in _as_grid(display))


def pixel_density(display: np.ndarray) -> float:
    """Fraction of lit pixels"""
    return float(np.count_nonzero(_as_grid(display))) / (DISPLAY_WIDTH * DISPLAY_HEIGHT)
