"""
Media input/output used by the export orchestrator.

The orchestrator only talks to the small interfaces defined here:

- MediaInput: duration, frame size, optional video/audio tracks
- FrameCursor: pull-based decoded frames at non-decreasing timestamps
- MediaOutput: encoder + container with finalize/cancel

The MoviePy implementations wrap ``VideoFileClip`` for decoding and
MoviePy's FFmpeg video writer for encoding.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import numpy as np
from moviepy import VideoFileClip
from moviepy.video.io.ffmpeg_writer import FFMPEG_VideoWriter

from captionpipe.exceptions import (
    AudioDecodeError,
    DecodeFrameError,
    EncodeError,
    FinalizeError,
)
from captionpipe.video.export import ExportPreset

logger = logging.getLogger(__name__)


# ==================== Interfaces ====================

class FrameCursor(ABC):
    """
    Sequential frame decoder.

    Frames must be requested in non-decreasing time order; the cursor cannot
    be rewound and cannot be reused once closed.
    """

    def __init__(self):
        self._last_time: Optional[float] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, timestamp: float) -> np.ndarray:
        """
        Decode the frame nearest ``timestamp``.

        Raises:
            DecodeFrameError: If this single frame cannot be decoded
        """
        if self._closed:
            raise RuntimeError("Frame cursor is closed")
        if self._last_time is not None and timestamp < self._last_time:
            raise ValueError(
                f"Frames must be requested in order ({timestamp:.3f}s < {self._last_time:.3f}s)"
            )
        self._last_time = timestamp

        try:
            return self._decode(timestamp)
        except DecodeFrameError:
            raise
        except Exception as e:
            raise DecodeFrameError(
                f"Failed to decode frame at {timestamp:.3f}s: {e}", cause=e
            )

    @abstractmethod
    def _decode(self, timestamp: float) -> np.ndarray:
        pass

    def close(self):
        self._closed = True


class MediaInput(ABC):
    """An opened source video."""

    @property
    @abstractmethod
    def duration(self) -> float:
        pass

    @property
    @abstractmethod
    def size(self) -> tuple[int, int]:
        pass

    @property
    @abstractmethod
    def has_video(self) -> bool:
        pass

    @property
    @abstractmethod
    def has_audio(self) -> bool:
        pass

    @abstractmethod
    def open_cursor(self) -> FrameCursor:
        pass

    @abstractmethod
    def decode_audio(self, output_path: Path, preset: ExportPreset) -> Path:
        """
        Decode the whole audio track into a file the output can pass through.

        Raises:
            AudioDecodeError: If the audio track cannot be decoded
        """
        pass

    def close(self):
        pass


class MediaOutput(ABC):
    """Encoder and container for the exported video."""

    @abstractmethod
    def add_audio(self, audio_path: Path):
        """Attach a pre-encoded audio track. Must be called before start()."""
        pass

    @abstractmethod
    def start(self):
        pass

    @abstractmethod
    def add_frame(self, frame: np.ndarray, timestamp: float, duration: float):
        pass

    @abstractmethod
    def finalize(self) -> bytes:
        """Flush the container and return the finished file."""
        pass

    @abstractmethod
    def cancel(self):
        """Abort the output and discard everything written so far."""
        pass


# ==================== MoviePy implementation ====================

class MoviePyFrameCursor(FrameCursor):
    """Frame cursor over a MoviePy clip; MoviePy's reader seeks forward only."""

    def __init__(self, clip: VideoFileClip):
        super().__init__()
        self._clip = clip

    def _decode(self, timestamp: float) -> np.ndarray:
        if self._clip.duration is not None:
            timestamp = min(timestamp, self._clip.duration)
        frame = self._clip.get_frame(timestamp)
        if frame is None:
            raise DecodeFrameError(f"No frame at {timestamp:.3f}s")
        return frame


class MoviePyInput(MediaInput):
    """
    Source video opened through MoviePy.

    Example:
        with MoviePyInput("input.mp4") as media:
            cursor = media.open_cursor()
            frame = cursor.read(0.0)
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        logger.info(f"Opening source video: {self.path}")
        self._clip = VideoFileClip(str(self.path))

    @property
    def duration(self) -> float:
        return float(self._clip.duration or 0.0)

    @property
    def size(self) -> tuple[int, int]:
        width, height = self._clip.size
        return (int(width), int(height))

    @property
    def has_video(self) -> bool:
        return self._clip.reader is not None

    @property
    def has_audio(self) -> bool:
        return self._clip.audio is not None

    def open_cursor(self) -> FrameCursor:
        return MoviePyFrameCursor(self._clip)

    def decode_audio(self, output_path: Path, preset: ExportPreset) -> Path:
        if self._clip.audio is None:
            raise AudioDecodeError("Source has no audio track")

        try:
            self._clip.audio.write_audiofile(
                str(output_path),
                fps=preset.audio_sample_rate,
                codec=preset.audio_codec,
                bitrate=preset.audio_bitrate,
                logger=None,
            )
        except Exception as e:
            raise AudioDecodeError(f"Failed to decode audio: {e}", cause=e)

        logger.debug(f"Decoded audio to: {output_path}")
        return output_path

    def close(self):
        try:
            self._clip.close()
        except Exception as e:
            logger.warning(f"Error closing clip: {e}")

    def __enter__(self) -> MoviePyInput:
        return self

    def __exit__(self, *exc_info):
        self.close()


class MoviePyOutput(MediaOutput):
    """
    Output file written through MoviePy's FFmpeg video writer.

    The file is produced in a working directory and read back into memory on
    finalize; cancel removes it.
    """

    def __init__(
        self,
        path: Path | str,
        size: tuple[int, int],
        fps: float,
        preset: ExportPreset,
    ):
        self.path = Path(path)
        self.size = size
        self.fps = fps
        self.preset = preset
        self._audio_path: Optional[Path] = None
        self._writer: Optional[FFMPEG_VideoWriter] = None

    def add_audio(self, audio_path: Path):
        if self._writer is not None:
            raise EncodeError("Audio must be added before the output is started")
        self._audio_path = Path(audio_path)

    def start(self):
        bitrate = self.preset.video_bitrate(self.size)
        logger.info(
            f"Encoding {self.size[0]}x{self.size[1]} @ {self.fps}fps "
            f"({self.preset.name}, {bitrate})"
        )
        try:
            self._writer = FFMPEG_VideoWriter(
                str(self.path),
                self.size,
                self.fps,
                codec=self.preset.codec,
                audiofile=str(self._audio_path) if self._audio_path else None,
                bitrate=bitrate,
                ffmpeg_params=self.preset.to_ffmpeg_params(),
            )
        except Exception as e:
            raise EncodeError(f"Failed to open encoder: {e}", cause=e)

    def add_frame(self, frame: np.ndarray, timestamp: float, duration: float):
        if self._writer is None:
            raise EncodeError("Output has not been started")
        try:
            self._writer.write_frame(frame)
        except Exception as e:
            raise EncodeError(f"Failed to encode frame at {timestamp:.3f}s: {e}", cause=e)

    def _close_writer(self):
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()

    def finalize(self) -> bytes:
        try:
            self._close_writer()
            data = self.path.read_bytes()
        except Exception as e:
            raise FinalizeError(f"Failed to finalize output: {e}", cause=e)
        finally:
            self.path.unlink(missing_ok=True)

        logger.info(f"Finalized output ({len(data) / 1_000_000:.1f} MB)")
        return data

    def cancel(self):
        try:
            self._close_writer()
        except Exception as e:
            logger.warning(f"Error closing encoder during cancel: {e}")
        self.path.unlink(missing_ok=True)
        logger.info("Output cancelled, partial file discarded")
