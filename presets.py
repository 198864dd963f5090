"""
presets.py - one configuration record for every matchup layout

The historical entry points differed only in canvas size, split geometry,
effect strengths and output sink. `MatchupConfig` enumerates all of those and
`PRESETS` names the useful combinations. Individual fields can be overridden
with `key=value` strings (same coercion as the CLI).
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Iterable, Optional

from partition import PartitionMode, ScaleMode
from registry import _parse_hex_color

SINKS = ("file", "base64")
INT_FIELDS = (
    "width", "height", "fire_intensity", "fire_radius", "seam_width", "label_fire_intensity",
    "glitter_count", "glitter_min", "glitter_max", "glitter_alpha", "label_size",
)
DEFAULT_PIPELINE = "seam_fire|label|glitter"


def _coerce(v: str) -> Any:
    if v.isdigit():
        return int(v)
    try:
        return float(v)
    except ValueError:
        low = v.lower()
        if low in ("true", "false"):
            return low == "true"
        if low in ("none", "null"):
            return None
    return v


@dataclass(frozen=True)
class MatchupConfig:
    # canvas & split
    width: int = 1000
    height: int = 1000
    partition_mode: str = PartitionMode.DIAGONAL.value
    scale_mode: str = ScaleMode.STRETCH.value
    margin: float = 0.9

    # fire
    fire_intensity: int = 200
    fire_radius: int = 5
    seam_width: int = 5
    label_fire_intensity: int = 150

    # glitter; intensity drawn from [glitter_min, glitter_max)
    glitter_count: int = 500
    glitter_min: int = 150
    glitter_max: int = 255
    glitter_alpha: int = 255

    # label
    label_text: str = "VS"
    label_size: int = 120
    label_color: str = "#ffffff"
    font_path: Optional[str] = None

    # run
    pipeline: str = DEFAULT_PIPELINE
    output_sink: str = "base64"
    base64_side_file: str = "base64.txt"
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        for name in INT_FIELDS:
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, int):
                raise ValueError(f"{name} must be an integer, got {v!r}")
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise ValueError(f"seed must be an integer, got {self.seed!r}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"width/height must be positive, got {self.width}x{self.height}")
        PartitionMode(self.partition_mode)
        ScaleMode(self.scale_mode)
        if not (0.0 < self.margin <= 1.0):
            raise ValueError(f"margin must be in (0, 1], got {self.margin}")
        for name in ("fire_intensity", "label_fire_intensity", "glitter_alpha"):
            v = getattr(self, name)
            if not (0 <= v <= 255):
                raise ValueError(f"{name} must be in [0, 255], got {v}")
        if self.fire_radius < 0 or self.seam_width < 0 or self.glitter_count < 0:
            raise ValueError("fire_radius, seam_width and glitter_count must be >= 0")
        if not (0 <= self.glitter_min < self.glitter_max <= 256):
            raise ValueError(f"glitter range [{self.glitter_min}, {self.glitter_max}) is empty or out of [0, 256)")
        if self.label_size <= 0:
            raise ValueError(f"label_size must be positive, got {self.label_size}")
        if self.output_sink not in SINKS:
            raise ValueError(f"output_sink must be one of {SINKS}, got {self.output_sink!r}")
        _parse_hex_color(self.label_color)


@dataclass(frozen=True)
class Preset:
    overrides: Dict[str, Any] = field(default_factory=dict)
    description: str = ""


PRESETS: Dict[str, Preset] = {
    "classic": Preset(
        overrides={},
        description="1000x1000 diagonal stretch, fiery seam, glowing VS, 500 glitter.",
    ),
    "letterbox": Preset(
        overrides=dict(partition_mode="triangle", scale_mode="aspect_fit", glitter_count=200),
        description="Each side keeps its aspect ratio inside its own triangle.",
    ),
    "spotlight": Preset(
        overrides=dict(width=800, height=800, fire_intensity=255, label_fire_intensity=200,
                       label_size=160, glitter_count=300, glitter_min=200),
        description="Smaller canvas, hotter seam and label.",
    ),
    "sparse": Preset(
        overrides=dict(pipeline="seam_fire|label", label_fire_intensity=0),
        description="Seam glow and plain label, no glitter.",
    ),
}


def config_keys() -> list[str]:
    return [f.name for f in fields(MatchupConfig)]


def resolve_config(
    preset: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
    **overrides: Any,
) -> MatchupConfig:
    """
    Merge order: defaults -> preset -> extras -> keyword overrides.
    String values in `extras` are coerced (int / float / bool / none).
    """
    cfg = MatchupConfig()
    merged: Dict[str, Any] = {}
    if preset:
        key = preset.strip().lower()
        if key not in PRESETS:
            raise KeyError(f"Unknown preset '{preset}'. Available: {', '.join(sorted(PRESETS))}")
        merged.update(PRESETS[key].overrides)
    for k, v in (extras or {}).items():
        merged[k] = _coerce(v) if isinstance(v, str) else v
    merged.update({k: v for k, v in overrides.items() if v is not None})

    unknown = sorted(set(merged) - set(config_keys()))
    if unknown:
        raise KeyError(f"Unknown config key(s): {', '.join(unknown)}. Valid: {', '.join(config_keys())}")
    # keep text fields textual even when they look numeric
    for k in ("label_text", "label_color", "font_path", "base64_side_file", "pipeline"):
        if k in merged and merged[k] is not None and not isinstance(merged[k], str):
            merged[k] = str(merged[k])
    return replace(cfg, **merged)


def parse_kv_pairs(pairs: Optional[Iterable[str]]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    if not pairs:
        return out
    for p in pairs:
        if "=" in p:
            k, v = p.split("=", 1)
            out[k.strip()] = v.strip()
    return out
