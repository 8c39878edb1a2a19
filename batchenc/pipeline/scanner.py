from pathlib import Path
from typing import Optional
from batchenc.config.models import AppConfig
from batchenc.domain.errors import SourceFileMissingError
from batchenc.domain.models import FileInfo, FingerprintRecord
from batchenc.domain.result import RunResult
from batchenc.infrastructure.event_bus import EventBus
from batchenc.infrastructure.ffprobe import FFprobeAdapter
from batchenc.infrastructure.file_scanner import FileScanner, matches_pattern
from batchenc.infrastructure.fingerprint_store import FingerprintStore
from batchenc.pipeline.stage import PausePrompt, Stage


class ScanStage(Stage[Path, FingerprintRecord]):
    """Finds files that still need encoding, probing only what the store lacks.

    Per file: stat -> extension filter -> store lookup -> optional probe ->
    insert/update -> codec filter. Processed files are skipped before any
    probe, whatever the filters say.
    """

    name = "scan"
    paused_message = "Scanning paused"

    def __init__(
        self,
        config: AppConfig,
        event_bus: EventBus,
        store: FingerprintStore,
        ffprobe_adapter: Optional[FFprobeAdapter] = None,
        file_scanner: Optional[FileScanner] = None,
        pause_prompt: Optional[PausePrompt] = None,
    ):
        super().__init__(config, event_bus, pause_prompt)
        self.store = store
        self.ffprobe = ffprobe_adapter or FFprobeAdapter(config.ffmpeg_path)
        self.file_scanner = file_scanner or FileScanner(config.extensions, deep=config.deep)
        self._codec_unchecked = 0

    def _interrupt_active(self):
        self.ffprobe.stop()

    def run_once(self, stage_input: Path) -> RunResult[FingerprintRecord]:
        files = self.file_scanner.collect(Path(stage_input))
        result: RunResult[FingerprintRecord] = RunResult(len(files))
        if not files:
            return self._mark_done_empty(result, "No eligible files found")

        self.logger.debug(f"Found {len(files)} files to process")
        self._codec_unchecked = 0
        self._run_items(files, result, lambda _index, file: self.scan_file(file), str)

        if self._codec_unchecked:
            note = (
                f"Codec filter '{self.config.filter_by.codec}' could not be applied to "
                f"{self._codec_unchecked} file(s) without media info; they were kept"
            )
            self.logger.warning(note)
            result.notes.append(note)
        return result

    def read_file_info(self, file: Path) -> FileInfo:
        try:
            stats = file.stat()
        except FileNotFoundError as e:
            raise SourceFileMissingError(file) from e
        return FileInfo(path=file, inode=stats.st_ino, size=stats.st_size, mtime=stats.st_mtime)

    def scan_file(self, file: Path) -> Optional[FingerprintRecord]:
        """Returns the record if the file needs encoding, None if it is skipped."""
        file_info = self.read_file_info(file)
        filter_by = self.config.filter_by

        if filter_by.extension:
            extension = file_info.path.suffix[1:]
            if not matches_pattern(extension, filter_by.extension):
                return None

        record = self.store.lookup(file_info.inode)
        needs_probe = False
        needs_create = False
        needs_update = False
        current_path = str(file_info.path)

        if record is not None:
            if record.processed:
                return None
            if record.media_info is None:
                needs_probe = True
            if record.path != current_path:
                self.logger.debug(f"File moved: {record.path} -> {current_path}")
                record.path = current_path
                needs_update = True
        else:
            needs_probe = True
            needs_create = True
            record = FingerprintRecord(
                inode=file_info.inode,
                path=current_path,
                processed=False,
                mtime=file_info.mtime,
                size=file_info.size,
                media_info=None,
            )

        probed = False
        if needs_probe and not self.config.skip_probe:
            probed = True
            media_info = self.ffprobe.probe(file_info.path)
            if media_info is not None:
                record.media_info = media_info
                needs_update = True

        if needs_create:
            self.store.insert(record)
        elif needs_update:
            self.store.update(record)

        if record.media_info is None:
            if probed:
                # Probed but nothing usable (corrupt or not a video)
                return None
            if filter_by.codec:
                self._codec_unchecked += 1
            return record

        if filter_by.codec and not matches_pattern(record.media_info.codec, filter_by.codec):
            return None

        return record
