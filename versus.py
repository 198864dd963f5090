from __future__ import annotations

import argparse
import base64
import hashlib
import io
import logging
import mimetypes
import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple, Union
from urllib.parse import unquote, urlparse

import numpy as np
import requests
from PIL import Image

# Import registry & stages (registration happens at import time)
from registry import REGISTRY, parse_pipeline
import effects  # noqa: F401
import label  # noqa: F401
from partition import Partition, as_rgba_array, composite
from presets import PRESETS, MatchupConfig, parse_kv_pairs, resolve_config

# =============== Logging ===============
log = logging.getLogger("versus")


def setup_logging(verbosity: int = 0) -> None:
    level = [logging.WARNING, logging.INFO, logging.DEBUG][min(verbosity, 2)]
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


# =============== Errors ===============
class ArgumentError(Exception):
    """Wrong command line; reported with the usage line, not as a failure."""


class DecodeError(ValueError):
    """An input could not be read or is not a supported raster."""


class EncodeError(RuntimeError):
    """The canvas could not be encoded or the output could not be written."""


# =============== Core: Fetcher & Loader ===============
GIF_SIGNATURE = b"GIF"


def sniff_gif(raw: bytes) -> bool:
    return raw[:3] == GIF_SIGNATURE


def is_gif(path: Union[str, Path]) -> bool:
    with open(path, "rb") as fh:
        return sniff_gif(fh.read(3))


class FileFetcher:
    """Fetch bytes from http(s) / file:// / local path with a tiny, safe cache."""

    def __init__(self, cache_dir: Optional[Path] = None, timeout: float = 20.0) -> None:
        self.timeout = timeout
        self.cache_dir = cache_dir or Path(tempfile.gettempdir()) / "versus_cache"
        self._session: Optional[requests.Session] = None

    def fetch(self, src: str) -> Tuple[bytes, Optional[str]]:
        parsed = urlparse(src)
        scheme = (parsed.scheme or "").lower()
        if scheme in ("http", "https"):
            return self._fetch_http_cached(src)
        if scheme == "file":
            local_path = unquote(parsed.path)
            if os.name == "nt" and local_path.startswith("/"):
                local_path = local_path[1:]
            return self._fetch_local(local_path)
        # bare paths, including Windows drive letters ("C:\...")
        return self._fetch_local(src)

    def _cache_key(self, url: str) -> Path:
        h = hashlib.sha256(url.encode("utf-8")).hexdigest()[:32]
        return self.cache_dir / f"{h}.bin"

    def _fetch_http_cached(self, url: str) -> Tuple[bytes, Optional[str]]:
        key = self._cache_key(url)
        if key.exists():
            log.info("Cache hit: %s", key.name)
            return key.read_bytes(), mimetypes.guess_type(url)[0]
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update({"User-Agent": "versus/1.0 (+https://local)"})
        log.info("Fetching: %s", url)
        try:
            r = self._session.get(url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise DecodeError(f"Failed to fetch {url}: {e}") from e
        raw = r.content
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            key.write_bytes(raw)
        except OSError as e:
            log.warning("Could not cache %s: %s", url, e)
        return raw, r.headers.get("Content-Type")

    def _fetch_local(self, path_str: str) -> Tuple[bytes, Optional[str]]:
        p = Path(path_str)
        if not p.exists() or not p.is_file():
            raise DecodeError(f"Input file not found: {p}")
        try:
            raw = p.read_bytes()
        except OSError as e:
            raise DecodeError(f"Cannot read {p}: {e}") from e
        return raw, mimetypes.guess_type(p.name)[0]


class ImageLoader:
    """Decode bytes → RGBA8 array. Animated GIFs contribute their first frame only."""

    def load(self, raw: bytes, content_type: Optional[str] = None) -> np.ndarray:
        try:
            img = Image.open(io.BytesIO(raw))
            if sniff_gif(raw):
                img = self._first_frame(img)
            else:
                img.load()
            arr = as_rgba_array(img)
        except Exception as e:
            raise DecodeError(f"Failed to decode image: {e}") from e
        log.debug("Decoded %s %dx%d (%s)", img.format, arr.shape[1], arr.shape[0], content_type or "?")
        return arr

    @staticmethod
    def _first_frame(img: Image.Image) -> Image.Image:
        img.seek(0)
        return img.convert("RGBA")


def load_source(src: str, fetcher: Optional[FileFetcher] = None, loader: Optional[ImageLoader] = None) -> np.ndarray:
    fetcher = fetcher or FileFetcher()
    loader = loader or ImageLoader()
    raw, ctype = fetcher.fetch(src)
    return loader.load(raw, ctype)


# =============== Encoder & sinks ===============
def encode_png(canvas: np.ndarray) -> bytes:
    buf = io.BytesIO()
    try:
        Image.fromarray(np.ascontiguousarray(canvas, dtype=np.uint8), "RGBA").save(buf, format="PNG")
    except Exception as e:
        raise EncodeError(f"PNG encoding failed: {e}") from e
    return buf.getvalue()


def write_file(out: Path, data: bytes) -> None:
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(data)
    except OSError as e:
        raise EncodeError(f"Cannot write {out}: {e}") from e


def emit_base64(data: bytes, side_file: Optional[Union[str, Path]] = "base64.txt") -> str:
    """Mirror the base64 text into `side_file`, then print it to stdout."""
    text = base64.b64encode(data).decode("ascii")
    if side_file:
        try:
            Path(side_file).write_text(text, encoding="ascii")
        except OSError as e:
            raise EncodeError(f"Cannot write {side_file}: {e}") from e
    print(text)
    return text


# =============== Pipeline ===============
def render_matchup(
    left: Union[Image.Image, np.ndarray],
    right: Union[Image.Image, np.ndarray],
    cfg: MatchupConfig,
) -> np.ndarray:
    """Composite both sources, then run every effect stage in order on the canvas."""
    stages = parse_pipeline(cfg.pipeline)
    partition = Partition(cfg.width, cfg.height, cfg.partition_mode, cfg.scale_mode, cfg.margin)
    canvas = composite(as_rgba_array(left), as_rgba_array(right), partition)
    log.info("Composited %dx%d (%s, %s)", cfg.width, cfg.height, partition.mode.value, partition.scale.value)

    for i, name in enumerate(stages):
        stage = REGISTRY.create(name, seed=cfg.seed)
        log.info("Stage %d/%d: %s", i + 1, len(stages), name)
        stage.apply(canvas, cfg)
    return canvas


# =============== CLI ===============
class _Parser(argparse.ArgumentParser):
    def error(self, message: str):  # type: ignore[override]
        raise ArgumentError(message)


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="versus",
        usage="%(prog)s IMAGE1 IMAGE2 [OUTPUT] [options]",
        description="Composite two images into a head-to-head VS card.",
    )
    p.add_argument("inputs", nargs="*", metavar="IMAGE1 IMAGE2 [OUTPUT]",
                   help="Two input images (path, file:// or http(s) URL) and an optional PNG output path. "
                        "Without OUTPUT the PNG is printed as base64 and mirrored to base64.txt.")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv).")
    p.add_argument("--preset", choices=sorted(PRESETS), default=None, help="Named layout (default: classic).")
    p.add_argument("--pipeline", default=None, help="Effect stages as 's1|s2|s3'.")
    p.add_argument("--seed", type=int, default=None, help="RNG seed for glitter (optional).")
    p.add_argument("--extra", nargs="*", help="Extra k=v config overrides (e.g. width=600 glitter_count=0).")
    p.add_argument("--list", action="store_true", help="List presets and stages, then exit.")
    return p


def _check_inputs(inputs: List[str]) -> None:
    if len(inputs) not in (2, 3):
        raise ArgumentError(f"expected 2 input images and an optional output, got {len(inputs)} argument(s)")


# =============== Commands ===============
def cmd_list(_args: argparse.Namespace) -> int:
    print("Presets:")
    for name in sorted(PRESETS):
        print(f"  {name:<10} {PRESETS[name].description}")
    print("Stages:", ", ".join(REGISTRY.names()) or "(none)")
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    out = Path(args.inputs[2]) if len(args.inputs) == 3 else None
    try:
        cfg = resolve_config(
            args.preset,
            parse_kv_pairs(args.extra),
            seed=args.seed,
            pipeline=args.pipeline,
            output_sink="file" if out is not None else None,
        )
    except (KeyError, ValueError) as e:
        log.error("Bad configuration: %s", e)
        return 1

    try:
        if cfg.output_sink == "file" and out is None:
            log.error("output_sink=file needs an OUTPUT path")
            return 1

        fetcher = FileFetcher()
        loader = ImageLoader()
        left = load_source(args.inputs[0], fetcher, loader)
        right = load_source(args.inputs[1], fetcher, loader)

        canvas = render_matchup(left, right, cfg)
        png = encode_png(canvas)

        if cfg.output_sink == "file":
            write_file(out, png)
            log.info("Saved %s (%dx%d)", out, cfg.width, cfg.height)
        else:
            emit_base64(png, cfg.base64_side_file)
            log.info("Wrote base64 (%d bytes PNG) to stdout and %s", len(png), cfg.base64_side_file)
        return 0

    except (DecodeError, EncodeError) as e:
        log.error("%s", e)
        return 1
    except Exception as e:
        log.exception("Failed: %s", e)
        return 1


# =============== Entry ===============
def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_intermixed_args(argv)
        if not args.list:
            _check_inputs(args.inputs)
    except ArgumentError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: {e}", file=sys.stderr)
        return 0
    setup_logging(args.verbose)
    if args.list:
        return cmd_list(args)
    return cmd_run(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
