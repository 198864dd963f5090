# effects.py - procedural pixel effects stamped onto a composited canvas
# -----------------------------------------------------------------------------
# Two effects, both operating in place on an (H, W, 4) uint8 RGBA canvas:
#
#   fire     additive radial glow. For each offset (dx, dy) in a square of
#            half-size `radius` around the centre:
#                local = trunc(I * exp(-(dx^2 + dy^2) / 10))
#                R += local, G += local // 2   (saturating at 255)
#            B and A are untouched. Offsets outside the canvas are clipped.
#
#   glitter  sparse overwrite. `count` independent uniform draws of a pixel
#            and a grey level v, each setting that pixel to (v, v, v, alpha).
#
# Stamps apply strictly in call order; each one saturates before the next.
#
# Pipeline stages (register themselves):
#   seam_fire   glow strip along the partition line
#   glitter     sparse highlights (seeded)
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional, Tuple

import numpy as np

from registry import REGISTRY, BaseStage, _rng

__all__ = [
    "fire_kernel",
    "fire_stamp",
    "seam_points",
    "stamp_seam",
    "stamp_lit_pixels",
    "glitter_scatter",
    "SeamFireStage",
    "GlitterStage",
]

log = logging.getLogger("versus.effects")

FIRE_DECAY = 10.0


# ============================ fire ============================

@lru_cache(maxsize=64)
def fire_kernel(intensity: int, radius: int = 5) -> Tuple[np.ndarray, np.ndarray]:
    """(red, green) additive contributions, each (2r+1, 2r+1) uint16."""
    if not (0 <= intensity <= 255):
        raise ValueError(f"intensity must be in [0, 255], got {intensity}")
    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")
    d = np.arange(-radius, radius + 1, dtype=np.float32)
    dy, dx = np.meshgrid(d, d, indexing="ij")
    factor = np.exp(-(dx * dx + dy * dy) / np.float32(FIRE_DECAY))
    red = (np.float32(intensity) * factor).astype(np.uint16)
    green = red // 2
    red.setflags(write=False)
    green.setflags(write=False)
    return red, green


def fire_stamp(canvas: np.ndarray, x: int, y: int, intensity: int, radius: int = 5) -> None:
    H, W = canvas.shape[:2]
    red, green = fire_kernel(int(intensity), int(radius))

    x0, x1 = max(0, x - radius), min(W, x + radius + 1)
    y0, y1 = max(0, y - radius), min(H, y + radius + 1)
    if x0 >= x1 or y0 >= y1:
        return

    kx, ky = x0 - (x - radius), y0 - (y - radius)
    ks = (slice(ky, ky + (y1 - y0)), slice(kx, kx + (x1 - x0)))
    patch = canvas[y0:y1, x0:x1]
    patch[..., 0] = np.minimum(patch[..., 0] + red[ks], 255)
    patch[..., 1] = np.minimum(patch[..., 1] + green[ks], 255)


def seam_points(width: int, height: int) -> Iterator[Tuple[int, int]]:
    """Points of the partition line, one per column (the first one sits just below the canvas)."""
    for x in range(width):
        yield x, height - (x * height) // width


def stamp_seam(canvas: np.ndarray, intensity: int, *, width: int = 5, radius: int = 5) -> int:
    """Stamp a glow strip `width` pixels tall starting at each seam point. Returns stamp count."""
    H, W = canvas.shape[:2]
    n = 0
    for x, y in seam_points(W, H):
        for dy in range(width):
            if y + dy < H:
                fire_stamp(canvas, x, y + dy, intensity, radius)
                n += 1
    return n


def stamp_lit_pixels(
    canvas: np.ndarray,
    box: Tuple[int, int, int, int],
    intensity: int,
    *,
    radius: int = 5,
    lit: int = 255,
) -> int:
    """
    Glow every pixel inside box=(x0, y0, x1, y1) whose red channel reads `lit`.

    The red channel is read as the scan reaches each pixel (columns outer,
    rows inner), so glow from earlier stamps can light pixels further on.
    Returns the number of stamps applied.
    """
    H, W = canvas.shape[:2]
    bx0, by0, bx1, by1 = box
    bx0, by0 = max(0, bx0), max(0, by0)
    bx1, by1 = min(W, bx1), min(H, by1)
    n = 0
    for x in range(bx0, bx1):
        for y in range(by0, by1):
            if canvas[y, x, 0] == lit:
                fire_stamp(canvas, x, y, intensity, radius)
                n += 1
    return n


# ============================ glitter ============================

def glitter_scatter(
    canvas: np.ndarray,
    count: int,
    rng: np.random.Generator,
    *,
    low: int = 150,
    high: int = 255,
    alpha: int = 255,
) -> None:
    """Overwrite `count` random pixels with grey levels drawn from [low, high)."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if not (0 <= low < high <= 256):
        raise ValueError(f"invalid glitter range [{low}, {high})")
    H, W = canvas.shape[:2]
    for _ in range(count):
        x = int(rng.integers(0, W))
        y = int(rng.integers(0, H))
        v = int(rng.integers(low, high))
        canvas[y, x] = (v, v, v, alpha)


# ============================ stages ============================

@dataclass
class SeamFireStage(BaseStage):
    """Glow strip along the partition line."""
    def apply(self, canvas: np.ndarray, cfg) -> None:
        n = stamp_seam(canvas, cfg.fire_intensity, width=cfg.seam_width, radius=cfg.fire_radius)
        log.info("seam_fire: %d stamps (intensity=%d radius=%d)", n, cfg.fire_intensity, cfg.fire_radius)


@dataclass
class GlitterStage(BaseStage):
    rng: Optional[np.random.Generator] = None

    def apply(self, canvas: np.ndarray, cfg) -> None:
        rng = self.rng if self.rng is not None else _rng(self.seed)
        glitter_scatter(
            canvas,
            cfg.glitter_count,
            rng,
            low=cfg.glitter_min,
            high=cfg.glitter_max,
            alpha=cfg.glitter_alpha,
        )
        log.info("glitter: %d draws in [%d, %d) alpha=%d", cfg.glitter_count, cfg.glitter_min, cfg.glitter_max, cfg.glitter_alpha)


# Register with the shared registry so `--pipeline seam_fire|glitter` works
REGISTRY.register("seam_fire", SeamFireStage)
REGISTRY.register("glitter", GlitterStage)
