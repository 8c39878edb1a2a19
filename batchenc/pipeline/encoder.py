import os
import time
from pathlib import Path
from typing import List, Optional
from batchenc.config.models import AppConfig
from batchenc.domain.errors import ItemInterrupted, SourceFileMissingError, ToolExitError
from batchenc.domain.events import ProcessOutput, ProcessProgress, StageProgress
from batchenc.domain.models import EncodeJob, FingerprintRecord, JobStatus, OutputTarget, RunState
from batchenc.domain.result import RunResult
from batchenc.infrastructure.event_bus import EventBus
from batchenc.infrastructure.ffmpeg import FFmpegAdapter
from batchenc.infrastructure.fingerprint_store import FingerprintStore
from batchenc.infrastructure.paths import (
    ensure_directory_exists,
    error_log_path,
    output_target_for,
    preserve_timestamps,
)
from batchenc.pipeline.stage import PausePrompt, Stage


class EncodeStage(Stage[List[FingerprintRecord], EncodeJob]):
    """Transcodes scan candidates and marks their fingerprints processed."""

    name = "encode"
    paused_message = "Processing paused"
    progress_unit = 100.0  # Each file owns a 0-100 slice of the aggregate bar

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        store: FingerprintStore,
        ffmpeg_adapter: Optional[FFmpegAdapter] = None,
        pause_prompt: Optional[PausePrompt] = None,
    ):
        super().__init__(config, event_bus, pause_prompt)
        self.store = store
        self.ffmpeg = ffmpeg_adapter or FFmpegAdapter(config.ffmpeg_path)

    def _interrupt_active(self):
        self.ffmpeg.stop()

    def run_once(self, stage_input: List[FingerprintRecord]) -> RunResult[EncodeJob]:
        queue = list(stage_input)
        result: RunResult[EncodeJob] = RunResult(len(queue))
        if not queue:
            return self._mark_done_empty(result, "There are no suitable files to process")

        return self._run_items(queue, result, self.encode_file, lambda record: str(record.path))

    def encode_file(self, index: int, record: FingerprintRecord) -> EncodeJob:
        source = Path(record.path)
        if not source.exists():
            raise SourceFileMissingError(source)

        target = output_target_for(source, self.config)
        job = EncodeJob(source=record, target=target, status=JobStatus.PROCESSING)
        ensure_directory_exists(target.output)

        args = self.ffmpeg.build_args(source, target.output, self.config.video_options.ffmpeg_command, record.media_info)
        self.logger.info(f"FFMPEG_START: {source.name} -> {target.final_name.name}")

        preexisting = target.output.exists()
        start_time = time.monotonic()
        handle = self.ffmpeg.start(args)
        if self.state.current is RunState.STOP:
            # Stop arrived before the child existed
            self.ffmpeg.stop()
        stderr_lines: List[str] = []
        for event in handle.events():
            if isinstance(event, ProcessProgress):
                job.progress_percent = float(event.percent)
                self.event_bus.publish(StageProgress(
                    stage=self.name,
                    completed=index * self.progress_unit + event.percent,
                ))
            elif isinstance(event, ProcessOutput) and event.stream == "stderr":
                stderr_lines.append(event.text)
        outcome = self.ffmpeg.finish(handle)
        job.duration_seconds = time.monotonic() - start_time
        stderr = "".join(stderr_lines)

        if outcome.cancelled:
            if not preexisting:
                self._discard_partial_output(target)
            raise ItemInterrupted(f"Encoding of {source.name} was stopped")

        if not outcome.ok:
            self._write_error_log(target, stderr)
            if not preexisting:
                self._discard_partial_output(target)
            raise ToolExitError(outcome.command, outcome.returncode, stderr)

        if self.config.debug:
            self._write_error_log(target, stderr)

        self._place_output(source, target)
        record.processed = True
        self.store.update(record)
        if self.config.register_outputs:
            self._register_output(target.final_name)

        job.status = JobStatus.COMPLETED
        job.progress_percent = 100.0
        self.logger.info(f"FFMPEG_DONE: {target.final_name} in {job.duration_seconds:.1f}s")
        return job

    def _place_output(self, source: Path, target: OutputTarget):
        """Deletes/replaces the source as configured and carries its timestamps over."""
        stats = source.stat()
        if self.config.delete_original:
            source.unlink()
            self.logger.debug(f"Deleted original: {source}")

        if target.needs_rename:
            if target.final_name.exists():
                target.final_name.unlink()
            os.rename(target.output, target.final_name)

        if self.config.preserve_attributes:
            preserve_timestamps(target.final_name, stats.st_atime, stats.st_mtime)

    def _register_output(self, final_name: Path):
        stats = final_name.stat()
        existing = self.store.lookup(stats.st_ino)
        if existing is not None:
            existing.path = str(final_name)
            existing.processed = True
            self.store.update(existing)
            return
        self.store.insert(FingerprintRecord(
            inode=stats.st_ino,
            path=str(final_name),
            processed=True,
            mtime=stats.st_mtime,
            size=stats.st_size,
        ))

    def _write_error_log(self, target: OutputTarget, stderr: str):
        log_file = error_log_path(target.final_name)
        ensure_directory_exists(log_file)
        log_file.write_text(stderr, encoding="utf-8")
        self.logger.debug(f"FFmpeg stderr written to {log_file}")

    def _discard_partial_output(self, target: OutputTarget):
        """Removes an output this invocation created; files that were already there stay."""
        if not target.output.exists():
            return
        try:
            target.output.unlink()
        except OSError as e:
            self.logger.warning(f"Could not remove partial output {target.output}: {e}")
