"""
Caption burn-in export.

Drives one export from source video + transcript to an encoded file:

    Idle -> Initializing -> DecodingSetup -> Rendering -> Finalizing
         -> Complete | Cancelled | Failed

Frames are processed strictly in order. Cancellation is cooperative: the
job's flag is checked before each frame is produced and again before it is
handed to the encoder.
"""

from __future__ import annotations

import logging
import math
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

import numpy as np
from PIL import Image

from captionpipe.core.job import ExportJob, ExportResult, ExportState
from captionpipe.exceptions import (
    AudioDecodeError,
    DecodeFrameError,
    EncodeError,
    ExportInProgressError,
    FinalizeError,
    InputMissingError,
)
from captionpipe.subtitles.renderer import FrameRenderer
from captionpipe.subtitles.style import SubtitleStyle
from captionpipe.transcript.chunks import (
    Mode,
    PhraseGrouping,
    enabled_chunks,
    find_active_chunk,
    process_transcript_chunks,
)
from captionpipe.transcript.models import ProcessedChunk, Transcript
from captionpipe.video.export import ExportPreset, ExportSettings, build_output_filename
from captionpipe.video.media import (
    FrameCursor,
    MediaInput,
    MediaOutput,
    MoviePyInput,
    MoviePyOutput,
)

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 3

InputFactory = Callable[[Path], MediaInput]
OutputFactory = Callable[[Path, tuple[int, int], float, ExportPreset], MediaOutput]


def fit_frame(frame: np.ndarray, size: tuple[int, int]) -> np.ndarray:
    """Scale a decoded RGB frame to the (width, height) output surface."""
    frame = np.asarray(frame)
    if frame.ndim == 2:
        frame = np.stack([frame] * 3, axis=-1)
    if frame.shape[2] > 3:
        frame = frame[:, :, :3]
    if frame.dtype != np.uint8:
        frame = np.clip(frame, 0, 255).astype(np.uint8)

    width, height = size
    if frame.shape[0] == height and frame.shape[1] == width:
        return frame

    image = Image.fromarray(frame).resize(size, Image.Resampling.LANCZOS)
    return np.array(image)


class ExportOrchestrator:
    """
    Burns captions into a video and encodes the result.

    One orchestrator runs at most one export at a time. The job passed to
    run() (or created by it) is the handle for progress and cancellation.

    Example:
        orchestrator = ExportOrchestrator(style, mode="phrase")
        job = ExportJob().add_listener(lambda j: print(j.status))
        result = orchestrator.run("input.mp4", transcript, job=job)
        if result.success:
            result.save("output")
    """

    def __init__(
        self,
        style: Optional[SubtitleStyle] = None,
        mode: Mode = "word",
        settings: Optional[ExportSettings] = None,
        grouping: Optional[PhraseGrouping] = None,
        renderer: Optional[FrameRenderer] = None,
        input_factory: Optional[InputFactory] = None,
        output_factory: Optional[OutputFactory] = None,
        work_dir: Optional[Path] = None,
    ):
        self.style = style or SubtitleStyle()
        self.mode = mode
        self.settings = settings or ExportSettings()
        self.grouping = grouping
        self.renderer = renderer
        self.input_factory = input_factory or MoviePyInput
        self.output_factory = output_factory or MoviePyOutput
        self.work_dir = Path(work_dir) if work_dir else None
        self.job: Optional[ExportJob] = None

    @property
    def is_running(self) -> bool:
        return self.job is not None and self.job.is_active

    def cancel(self) -> bool:
        """Request cancellation of the running export."""
        if self.job is None:
            return False
        return self.job.request_cancel()

    # ==================== Run ====================

    def run(
        self,
        source: Optional[Path | str],
        transcript: Optional[Transcript],
        job: Optional[ExportJob] = None,
    ) -> ExportResult:
        """
        Export ``source`` with ``transcript`` burned in.

        Returns:
            ExportResult in Complete, Cancelled or Failed state

        Raises:
            ExportInProgressError: If this orchestrator is already exporting
        """
        if self.is_running:
            raise ExportInProgressError("An export is already in progress")

        job = job or ExportJob()
        job.start()
        self.job = job

        media: Optional[MediaInput] = None
        output: Optional[MediaOutput] = None
        cursor: Optional[FrameCursor] = None
        work_dir: Optional[Path] = None
        output_done = False

        try:
            job.set_state(ExportState.INITIALIZING)
            job.update(status="Initializing...")
            source = self._validate_inputs(source, transcript)
            preset = self.settings.preset
            fps = self.settings.fps

            job.set_state(ExportState.DECODING_SETUP)
            job.update(status="Reading original video...")
            media = self.input_factory(source)
            duration = media.duration
            size = self.settings.output_size(media.size)
            logger.info(
                f"Exporting {source.name}: {duration:.2f}s, {size[0]}x{size[1]} @ {fps}fps, "
                f"{preset.name}, {self.mode} mode"
            )

            work_dir = Path(tempfile.mkdtemp(prefix="captionpipe_", dir=self.work_dir))
            output = self.output_factory(work_dir / f"output.{preset.format}", size, fps, preset)
            job.output = output

            if media.has_audio:
                self._add_audio(media, output, preset, work_dir, job)

            output.start()

            if media.has_video:
                cursor = media.open_cursor()
                job.cursor = cursor

            chunks = enabled_chunks(
                process_transcript_chunks(transcript, self.mode, self.grouping)
            )
            renderer = self.renderer or FrameRenderer(self.style)

            job.set_state(ExportState.RENDERING)
            job.update(status="Rendering video frames...")
            frames_written = self._render_frames(
                job, cursor, output, renderer, chunks, duration, size, fps
            )

            job.set_state(ExportState.FINALIZING)
            if job.cancel_requested:
                output_done = True
                output.cancel()
                job.reset_progress()
                job.update(status="Export cancelled")
                job.set_state(ExportState.CANCELLED)
                logger.info(f"Export cancelled after {frames_written} frames")
                return ExportResult.cancelled_result(frames_written=frames_written)

            job.update(status="Finalizing video...")
            output_done = True
            data = output.finalize()
            if not data:
                raise FinalizeError("Failed to generate video buffer")

            job.update(progress=100, status="Export complete!")
            job.set_state(ExportState.COMPLETE)
            logger.info(f"Export complete: {frames_written} frames")
            return ExportResult.complete_result(
                data=data,
                mime_type=preset.mime_type,
                filename=build_output_filename(preset.format),
                frames_written=frames_written,
                duration=duration,
                size=size,
                fps=fps,
            )

        except Exception as e:
            if isinstance(e, InputMissingError):
                logger.error(f"Export failed: {e}")
            else:
                logger.exception(f"Export failed: {e}")
            if output is not None and not output_done:
                try:
                    output.cancel()
                except Exception as cancel_error:
                    logger.warning(f"Error discarding output: {cancel_error}")
            job.update(status=f"Error: {e}")
            job.set_state(ExportState.FAILED)
            return ExportResult.failure_result(e)

        finally:
            if cursor is not None:
                cursor.close()
            if media is not None:
                media.close()
            if work_dir is not None:
                shutil.rmtree(work_dir, ignore_errors=True)
            job.release()

    def _validate_inputs(
        self,
        source: Optional[Path | str],
        transcript: Optional[Transcript],
    ) -> Path:
        if not source:
            raise InputMissingError("No source video provided")
        source = Path(source)
        if not source.exists():
            raise InputMissingError(f"Source video not found: {source}")
        if transcript is None or transcript.is_empty:
            raise InputMissingError("No transcript chunks to render")
        return source

    def _add_audio(
        self,
        media: MediaInput,
        output: MediaOutput,
        preset: ExportPreset,
        work_dir: Path,
        job: ExportJob,
    ):
        job.update(status="Processing audio...")
        try:
            audio_path = media.decode_audio(work_dir / f"audio{preset.audio_extension}", preset)
        except AudioDecodeError as e:
            logger.warning(f"Audio decoding failed, exporting without audio: {e}")
            return
        output.add_audio(audio_path)

    def _render_frames(
        self,
        job: ExportJob,
        cursor: Optional[FrameCursor],
        output: MediaOutput,
        renderer: FrameRenderer,
        chunks: list[ProcessedChunk],
        duration: float,
        size: tuple[int, int],
        fps: float,
    ) -> int:
        """Render and encode every frame; returns the number of frames written."""
        total_frames = math.ceil(duration * fps)
        frame_duration = 1.0 / fps
        width, height = size
        blank = np.zeros((height, width, 3), dtype=np.uint8)

        for index in range(total_frames):
            if job.cancel_requested:
                return index

            current_time = index / fps
            frame = blank

            if cursor is not None:
                try:
                    frame = fit_frame(cursor.read(current_time), size)
                except DecodeFrameError as e:
                    logger.debug(f"Skipping undecodable frame {index}: {e}")

            chunk = find_active_chunk(chunks, current_time)
            if chunk is not None:
                frame = renderer.render_frame(frame, chunk, current_time, self.mode)

            if job.cancel_requested:
                return index

            try:
                output.add_frame(frame, current_time, frame_duration)
            except EncodeError:
                raise
            except Exception as e:
                raise EncodeError(f"Failed to encode frame {index}: {e}", cause=e)

            if index % PROGRESS_INTERVAL == 0 or index == total_frames - 1:
                percent = min(100.0, index / total_frames * 100)
                job.update(
                    progress=percent,
                    status=(
                        f"Rendering: {round(current_time)}s / {round(duration)}s "
                        f"({round(percent)}%)"
                    ),
                )

        return total_frames
