# label.py - text label drawn across the seam, optionally glowing
# -----------------------------------------------------------------------------
# Glyphs come from Pillow's FreeType rasterizer as (x, y, coverage) triples and
# are blended over the canvas with the label colour. Fully covered glyph
# pixels end up with the exact label colour, so with a white label the glow
# pass can find them by their red channel reading 255.
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterator, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from effects import stamp_lit_pixels
from registry import REGISTRY, BaseStage, _parse_hex_color

__all__ = ["load_font", "label_layout", "rasterize_glyphs", "draw_label", "LabelStage"]

log = logging.getLogger("versus.label")

FONT_CANDIDATES = (
    "Arial.ttf",
    "arial.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "DejaVuSans-Bold.ttf",
)


@lru_cache(maxsize=16)
def load_font(font_path: Optional[str], size: int) -> ImageFont.ImageFont:
    """Explicit paths must load; otherwise try common system fonts, then Pillow's bundled one."""
    if font_path:
        return ImageFont.truetype(font_path, size)
    for fp in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(fp, size)
        except OSError:
            continue
    log.debug("No system TrueType font found; using Pillow default at %dpx", size)
    return ImageFont.load_default(size=size)


def _text_bbox(text: str, font: ImageFont.ImageFont) -> Tuple[int, int, int, int]:
    d = ImageDraw.Draw(Image.new("L", (1, 1), 0))
    return tuple(int(v) for v in d.textbbox((0, 0), text, font=font))  # type: ignore[return-value]


def label_layout(
    text: str, font: ImageFont.ImageFont, canvas_size: Tuple[int, int]
) -> Tuple[Tuple[int, int], Tuple[int, int, int, int]]:
    """Draw origin that centres `text` on the canvas, and the inked box (x0, y0, x1, y1)."""
    W, H = canvas_size
    l, t, r, b = _text_bbox(text, font)
    tw, th = r - l, b - t
    ox = (W - tw) // 2 - l
    oy = (H - th) // 2 - t
    return (ox, oy), (ox + l, oy + t, ox + r, oy + b)


def rasterize_glyphs(
    text: str, origin: Tuple[int, int], size: int, font_path: Optional[str] = None
) -> Iterator[Tuple[int, int, float]]:
    """Lazily yield (x, y, coverage) for every inked pixel, coverage in (0, 1]."""
    font = load_font(font_path, size)
    l, t, r, b = _text_bbox(text, font)
    if r <= l or b <= t:
        return
    mask = Image.new("L", (r - l, b - t), 0)
    ImageDraw.Draw(mask).text((-l, -t), text, font=font, fill=255)
    cov = np.asarray(mask, dtype=np.uint8)
    ys, xs = np.nonzero(cov)
    ox, oy = origin[0] + l, origin[1] + t
    for y, x in zip(ys.tolist(), xs.tolist()):
        yield ox + x, oy + y, cov[y, x] / 255.0


def draw_label(
    canvas: np.ndarray,
    text: str,
    origin: Tuple[int, int],
    size: int,
    color: Tuple[int, int, int, int] = (255, 255, 255, 255),
    font_path: Optional[str] = None,
) -> int:
    """Blend glyph coverage over the canvas in place. Returns pixels touched."""
    H, W = canvas.shape[:2]
    target = np.asarray(color, dtype=np.float32)
    n = 0
    for x, y, c in rasterize_glyphs(text, origin, size, font_path):
        if 0 <= x < W and 0 <= y < H:
            px = canvas[y, x].astype(np.float32)
            canvas[y, x] = np.clip(np.rint(px * (1.0 - c) + target * c), 0, 255).astype(np.uint8)
            n += 1
    return n


@dataclass
class LabelStage(BaseStage):
    """Centred label; glyph pixels lit at full red then get a fire glow."""
    def apply(self, canvas: np.ndarray, cfg) -> None:
        if not cfg.label_text:
            log.info("label: empty text, skipped")
            return
        H, W = canvas.shape[:2]
        font = load_font(cfg.font_path, cfg.label_size)
        origin, box = label_layout(cfg.label_text, font, (W, H))
        r, g, b = _parse_hex_color(cfg.label_color)
        n = draw_label(canvas, cfg.label_text, origin, cfg.label_size, (r, g, b, 255), cfg.font_path)
        log.info("label: %r at %s box=%s (%d px)", cfg.label_text, origin, box, n)

        if cfg.label_fire_intensity > 0:
            stamps = stamp_lit_pixels(canvas, box, cfg.label_fire_intensity, radius=cfg.fire_radius)
            log.info("label glow: %d stamps (intensity=%d)", stamps, cfg.label_fire_intensity)


REGISTRY.register("label", LabelStage)
