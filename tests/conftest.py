"""
Pytest configuration and fixtures for the versus tests.

Prerequisites:
    pip install -e .[test]
"""

import numpy as np
import pytest
from PIL import Image

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def solid(color, width, height) -> np.ndarray:
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[...] = color
    return arr


@pytest.fixture
def red_img() -> np.ndarray:
    return solid(RED, 100, 100)


@pytest.fixture
def blue_img() -> np.ndarray:
    return solid(BLUE, 100, 100)


@pytest.fixture
def black_canvas() -> np.ndarray:
    return np.zeros((21, 21, 4), dtype=np.uint8)


@pytest.fixture
def input_files(tmp_path):
    """A red PNG and a two-frame GIF whose first frame is blue."""
    png = tmp_path / "red.png"
    Image.new("RGBA", (40, 30), RED).save(png)

    gif = tmp_path / "anim.gif"
    palette = [0, 0, 255, 0, 255, 0] + [0, 0, 0] * 254
    first = Image.new("P", (40, 30), 0)
    first.putpalette(palette)
    second = Image.new("P", (40, 30), 1)
    second.putpalette(palette)
    first.save(gif, save_all=True, append_images=[second], duration=100, loop=0)
    return png, gif
