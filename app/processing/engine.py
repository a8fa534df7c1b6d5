"""Video processing engine: key color analysis and color-key transform.

The ffmpeg calls are blocking, so the engine runs them in a thread executor
and exposes each step as a single awaitable that returns or raises.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from collections import Counter
from typing import List

import ffmpeg
import numpy as np
from PIL import Image

from app.jobs.models import ChromaKeyParams
from app.processing.errors import AnalysisError, TransformError

logger = logging.getLogger(__name__)


class ProcessingEngine(ABC):
    """Interface the worker pool drives for each task."""

    @abstractmethod
    async def analyze(self, input_path: str, working_dir: str) -> str:
        """Return the key color of the video as ``#rrggbb``."""
        ...

    @abstractmethod
    async def transform(
        self, input_path: str, output_path: str, color: str, params: ChromaKeyParams
    ) -> None:
        """Write the color-keyed output artifact."""
        ...


def most_common_color(image_path: str) -> str:
    """Most frequent RGB value of one image as ``#rrggbb``.

    On a tie the color whose first pixel appears latest in scan order wins.
    """
    with Image.open(image_path) as img:
        pixels = np.asarray(img.convert("RGB")).reshape(-1, 3)
    colors, first_seen, counts = np.unique(
        pixels, axis=0, return_index=True, return_counts=True
    )
    tied = np.flatnonzero(counts == counts.max())
    winner = tied[int(np.argmax(first_seen[tied]))]
    r, g, b = (int(c) for c in colors[winner])
    return f"#{r:02x}{g:02x}{b:02x}"


def dominant_color(frame_paths: List[str]) -> str:
    """Key color voted across frames: each frame contributes its own most common color.

    On a tie the color first voted for latest wins.

    Raises:
        AnalysisError: if no frame could be read
    """
    votes: Counter = Counter()
    for path in frame_paths:
        try:
            votes[most_common_color(path)] += 1
        except (OSError, ValueError) as exc:
            logger.warning("Skipping unreadable frame %s: %s", path, exc)
    if not votes:
        raise AnalysisError("No readable frames to sample a key color from")
    # Counter keeps first-vote order; max() returns the first maximum seen
    return max(reversed(list(votes.items())), key=lambda item: item[1])[0]


def _ffmpeg_message(exc: ffmpeg.Error) -> str:
    stderr = exc.stderr.decode("utf-8", errors="replace").strip() if exc.stderr else ""
    return stderr.splitlines()[-1] if stderr else str(exc)


class FfmpegEngine(ProcessingEngine):
    """Processing engine built on the ffmpeg CLI (via ffmpeg-python) and Pillow."""

    def __init__(self, frame_rate: float = 1.0):
        self._frame_rate = frame_rate

    async def analyze(self, input_path: str, working_dir: str) -> str:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._analyze_sync, input_path, working_dir)

    async def transform(
        self, input_path: str, output_path: str, color: str, params: ChromaKeyParams
    ) -> None:
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(
            None, self._transform_sync, input_path, output_path, color, params
        )

    def extract_frames(self, input_path: str, working_dir: str) -> List[str]:
        os.makedirs(working_dir, exist_ok=True)
        pattern = os.path.join(working_dir, "frame-%03d.jpg")
        try:
            (
                ffmpeg.input(input_path)
                .filter("fps", fps=self._frame_rate)
                .output(pattern, an=None)
                .overwrite_output()
                .run(capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as exc:
            raise AnalysisError(f"Frame extraction failed: {_ffmpeg_message(exc)}") from exc
        except FileNotFoundError as exc:
            raise AnalysisError("ffmpeg executable not found") from exc
        return sorted(
            os.path.join(working_dir, name)
            for name in os.listdir(working_dir)
            if name.startswith("frame-")
        )

    def _analyze_sync(self, input_path: str, working_dir: str) -> str:
        frames = self.extract_frames(input_path, working_dir)
        color = dominant_color(frames)
        logger.info("Key color %s from %d frame(s) of %s", color, len(frames), input_path)
        return color

    def _transform_sync(
        self, input_path: str, output_path: str, color: str, params: ChromaKeyParams
    ) -> None:
        side = params.output_size
        stream = (
            ffmpeg.input(input_path)
            .filter("colorkey", color=color, similarity=params.similarity, blend=params.blend)
            .filter("scale", side, side, force_original_aspect_ratio="decrease")
            .filter("pad", side, side, "(ow-iw)/2", "(oh-ih)/2", color="black@0")
        )
        try:
            (
                ffmpeg.output(
                    stream,
                    output_path,
                    vcodec="libvpx-vp9",
                    pix_fmt="yuva420p",
                    **{"auto-alt-ref": 0},
                )
                .overwrite_output()
                .run(capture_stdout=True, capture_stderr=True)
            )
        except ffmpeg.Error as exc:
            raise TransformError(f"Color-key encoding failed: {_ffmpeg_message(exc)}") from exc
        except FileNotFoundError as exc:
            raise TransformError("ffmpeg executable not found") from exc
        logger.info("Color keyed %s -> %s", input_path, output_path)
