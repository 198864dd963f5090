from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Optional

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from presets import MatchupConfig


# =============== Registry ===============
class StageRegistry:
    def __init__(self) -> None:
        self._by_name: Dict[str, type[BaseStage]] = {}

    def register(self, name: str, cls: type["BaseStage"]) -> None:
        key = name.strip().lower()
        self._by_name[key] = cls

    def names(self) -> list[str]:
        return sorted(self._by_name.keys())

    def create(self, name: str, **kwargs) -> "BaseStage":
        key = name.strip().lower()
        if key not in self._by_name:
            raise KeyError(f"Unknown stage '{name}'. Available: {', '.join(self.names()) or '(none)'}")
        return self._by_name[key](**kwargs)


REGISTRY = StageRegistry()


# =============== Base & common utils ===============
@dataclass
class BaseStage:
    """A post-composite effect pass. Mutates the canvas in place."""
    seed: Optional[int] = None

    def apply(self, canvas: np.ndarray, cfg: "MatchupConfig") -> None:  # pragma: no cover
        raise NotImplementedError


def _rng(seed: Optional[int]) -> np.random.Generator:
    return np.random.default_rng(seed if seed is not None else np.random.SeedSequence().entropy)


def _parse_hex_color(code: str) -> tuple[int, int, int]:
    s = code.strip().lstrip("#")
    if len(s) == 3:
        s = "".join([c * 2 for c in s])
    if len(s) != 6 or any(c not in "0123456789abcdefABCDEF" for c in s):
        raise ValueError(f"Invalid hex colour: {code!r}")
    r = int(s[0:2], 16); g = int(s[2:4], 16); b = int(s[4:6], 16)
    return r, g, b


def parse_pipeline(text: str) -> list[str]:
    stages = [s.strip().lower() for s in text.split("|") if s.strip()]
    unknown = [s for s in stages if s not in REGISTRY.names()]
    if unknown:
        raise KeyError(f"Unknown stage(s) in pipeline: {', '.join(unknown)}")
    return stages
