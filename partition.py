# partition.py - split the canvas between two sources along the anti-diagonal
# -----------------------------------------------------------------------------
# Every canvas pixel belongs to exactly one side of the line running from the
# top-right corner to the bottom-left corner:
#
#   left  (source A, top-left half)      y <  H - x*H // W
#   right (source B, bottom-right half)  otherwise (the line itself included)
#
# Each source is laid into a *frame* and then into a *placement* inside it:
#
#   partition_mode=diagonal   frame = whole canvas
#   partition_mode=triangle   frame = margin*W x margin*H box centred on the
#                             centroid of the source's triangle, kept on canvas
#   scale_mode=stretch        placement = frame (aspect ratio is not kept)
#   scale_mode=aspect_fit     uniform scale to fit the frame, centred
#
# Owned pixels outside the placement stay transparent black (letterbox).
# All helpers accept python ints or numpy integer arrays alike.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

import numpy as np
from PIL import Image

__all__ = [
    "Region",
    "PartitionMode",
    "ScaleMode",
    "Placement",
    "Partition",
    "owned_by_left",
    "new_canvas",
    "as_rgba_array",
    "composite",
]

log = logging.getLogger("versus.partition")

Coord = Union[int, np.ndarray]


class Region(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class PartitionMode(str, Enum):
    DIAGONAL = "diagonal"
    TRIANGLE = "triangle"


class ScaleMode(str, Enum):
    STRETCH = "stretch"
    ASPECT_FIT = "aspect_fit"


# ============================ low-level helpers ============================

def owned_by_left(x: Coord, y: Coord, width: int, height: int) -> Coord:
    """True where (x, y) lies strictly above the anti-diagonal."""
    return y < height - (x * height) // width


def _clamp(v: Coord, lo: int, hi: int) -> Coord:
    out = np.clip(v, lo, hi)
    return int(out) if np.ndim(out) == 0 else out


def new_canvas(width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise ValueError(f"Canvas dimensions must be positive, got {width}x{height}")
    return np.zeros((height, width, 4), dtype=np.uint8)


def as_rgba_array(img: Union[Image.Image, np.ndarray]) -> np.ndarray:
    """(H, W, 4) uint8 view of a Pillow image or an existing array."""
    if isinstance(img, Image.Image):
        return np.asarray(img.convert("RGBA"), dtype=np.uint8)
    arr = np.asarray(img, dtype=np.uint8)
    if arr.ndim != 3 or arr.shape[2] != 4:
        raise ValueError(f"Expected an (H, W, 4) RGBA array, got shape {arr.shape}")
    return arr


@dataclass(frozen=True)
class Placement:
    """Axis-aligned destination rectangle a source is mapped onto."""
    x0: int
    y0: int
    width: int
    height: int

    def covers(self, x: Coord, y: Coord) -> Coord:
        return (x >= self.x0) & (x < self.x0 + self.width) & (y >= self.y0) & (y < self.y0 + self.height)


# ============================ Partition ============================

@dataclass(frozen=True)
class Partition:
    width: int
    height: int
    mode: PartitionMode = PartitionMode.DIAGONAL
    scale: ScaleMode = ScaleMode.STRETCH
    margin: float = 0.9

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Canvas dimensions must be positive, got {self.width}x{self.height}")
        if not (0.0 < self.margin <= 1.0):
            raise ValueError(f"margin must be in (0, 1], got {self.margin}")
        # accept plain strings from config
        object.__setattr__(self, "mode", PartitionMode(self.mode))
        object.__setattr__(self, "scale", ScaleMode(self.scale))

    # -------- ownership --------
    def region(self, x: int, y: int) -> Region:
        return Region.LEFT if owned_by_left(x, y, self.width, self.height) else Region.RIGHT

    def left_mask(self) -> np.ndarray:
        yy, xx = np.mgrid[0:self.height, 0:self.width]
        return owned_by_left(xx, yy, self.width, self.height)

    # -------- geometry --------
    def frame(self, region: Region) -> Placement:
        W, H = self.width, self.height
        if self.mode is PartitionMode.DIAGONAL:
            return Placement(0, 0, W, H)

        fw = max(1, int(W * self.margin))
        fh = max(1, int(H * self.margin))
        if region == Region.LEFT:
            cx, cy = W / 3.0, H / 3.0
        else:
            cx, cy = 2.0 * W / 3.0, 2.0 * H / 3.0
        x0 = _clamp(int(round(cx - fw / 2.0)), 0, W - fw)
        y0 = _clamp(int(round(cy - fh / 2.0)), 0, H - fh)
        return Placement(x0, y0, fw, fh)

    def placement(self, region: Region, src_size: Tuple[int, int]) -> Placement:
        frame = self.frame(region)
        if self.scale is ScaleMode.STRETCH:
            return frame

        sw, sh = src_size
        s = min(frame.width / sw, frame.height / sh)
        w = min(frame.width, max(1, int(round(sw * s))))
        h = min(frame.height, max(1, int(round(sh * s))))
        return Placement(frame.x0 + (frame.width - w) // 2, frame.y0 + (frame.height - h) // 2, w, h)

    def source_coords(self, region: Region, x: Coord, y: Coord, src_size: Tuple[int, int]) -> Tuple[Coord, Coord]:
        """Map destination (x, y) into the source owned by `region`."""
        sw, sh = src_size
        p = self.placement(region, src_size)
        # first and last pixels of the placement land on the first and last source pixels
        sx = ((x - p.x0) * (sw - 1)) // max(1, p.width - 1)
        sy = ((y - p.y0) * (sh - 1)) // max(1, p.height - 1)
        return _clamp(sx, 0, sw - 1), _clamp(sy, 0, sh - 1)


# ============================ Compositor ============================

def composite(left: np.ndarray, right: np.ndarray, partition: Partition) -> np.ndarray:
    """Fill a fresh canvas: every pixel is written by exactly one side."""
    W, H = partition.width, partition.height
    canvas = new_canvas(W, H)
    yy, xx = np.mgrid[0:H, 0:W]
    left_owned = owned_by_left(xx, yy, W, H)

    for region, src, owned in ((Region.LEFT, left, left_owned), (Region.RIGHT, right, ~left_owned)):
        sh, sw = src.shape[:2]
        p = partition.placement(region, (sw, sh))
        mask = owned & p.covers(xx, yy)
        sx, sy = partition.source_coords(region, xx[mask], yy[mask], (sw, sh))
        canvas[mask] = src[sy, sx]
        log.debug("Composited %s: src=%dx%d placement=%s pixels=%d", region.value, sw, sh, p, int(mask.sum()))

    return canvas
