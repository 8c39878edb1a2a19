import logging
from typing import Callable, List, Optional, Tuple
from rich.console import Console
from batchenc.config.models import AppConfig
from batchenc.domain.errors import RunAbortedError
from batchenc.domain.models import EncodeJob, FingerprintRecord, MenuAction, RunState
from batchenc.domain.result import RunResult
from batchenc.infrastructure.event_bus import EventBus
from batchenc.infrastructure.ffmpeg import FFmpegAdapter
from batchenc.infrastructure.ffprobe import FFprobeAdapter
from batchenc.infrastructure.fingerprint_store import FingerprintStore
from batchenc.pipeline.controller import StageController
from batchenc.pipeline.encoder import EncodeStage
from batchenc.pipeline.scanner import ScanStage


class Session:
    """Interactive main-menu loop over one configured source tree."""

    def __init__(
        self,
        config: AppConfig,
        store: FingerprintStore,
        event_bus: EventBus,
        console: Optional[Console] = None,
        controller: Optional[StageController] = None,
        ffprobe_adapter: Optional[FFprobeAdapter] = None,
        ffmpeg_adapter: Optional[FFmpegAdapter] = None,
        main_menu: Optional[Callable[..., MenuAction]] = None,
        confirm: Optional[Callable[..., bool]] = None,
    ):
        self.config = config
        self.store = store
        self.event_bus = event_bus
        self.console = console or Console()
        self.controller = controller or StageController(event_bus)
        self.ffprobe = ffprobe_adapter or FFprobeAdapter(config.ffmpeg_path)
        self.ffmpeg = ffmpeg_adapter or FFmpegAdapter(config.ffmpeg_path)
        self.main_menu = main_menu
        self.confirm = confirm
        self.logger = logging.getLogger(__name__)

    def _print_report(self, result: RunResult):
        self.console.print(result.report(), markup=False, highlight=False)

    def _scan_stage(self) -> ScanStage:
        return ScanStage(
            self.config,
            self.event_bus,
            self.store,
            ffprobe_adapter=self.ffprobe,
            pause_prompt=self.controller.prompt_pause,
        )

    def _encode_stage(self) -> EncodeStage:
        return EncodeStage(
            self.config,
            self.event_bus,
            self.store,
            ffmpeg_adapter=self.ffmpeg,
            pause_prompt=self.controller.prompt_pause,
        )

    def _run_scan(self) -> Tuple[ScanStage, Optional[RunResult[FingerprintRecord]]]:
        stage = self._scan_stage()
        try:
            result = self.controller.run(stage, self.config.src_dir)
        except RunAbortedError as e:
            self.logger.error(f"Scan aborted: {e}")
            self._print_report(e.result)
            return stage, None
        self._print_report(result)
        return stage, result

    def scan(self) -> Optional[RunResult[FingerprintRecord]]:
        return self._run_scan()[1]

    def process(self) -> Optional[RunResult[EncodeJob]]:
        """Scans, then encodes whatever the scan kept."""
        scan_stage, scan_result = self._run_scan()
        if scan_result is None:
            return None
        if scan_stage.state.current is RunState.STOP:
            self.logger.warning("Scan was stopped; nothing will be encoded")
            return None

        candidates: List[FingerprintRecord] = list(scan_result.success)
        try:
            result = self.controller.run(self._encode_stage(), candidates)
        except RunAbortedError as e:
            self.logger.error(f"Processing aborted: {e}")
            self._print_report(e.result)
            return None
        self._print_report(result)
        return result

    def toggle_force(self) -> bool:
        self.config.skip_probe = not self.config.skip_probe
        state = "on" if self.config.skip_probe else "off"
        self.logger.info(f"Force mode {state}: probing {'skipped' if self.config.skip_probe else 'enabled'}")
        return self.config.skip_probe

    def drop(self) -> bool:
        if self.confirm is not None and not self.confirm(console=self.console):
            self.logger.info("Database drop cancelled")
            return False
        self.store.reset()
        return True

    def loop(self):
        if self.main_menu is None:
            raise RuntimeError("Session has no main menu to drive it")
        handlers = {
            MenuAction.SCAN: self.scan,
            MenuAction.PROCESS: self.process,
            MenuAction.TOGGLE_FORCE: self.toggle_force,
            MenuAction.DROP: self.drop,
        }
        while True:
            action = self.main_menu(console=self.console, skip_probe=self.config.skip_probe)
            if action is MenuAction.QUIT:
                self.logger.info("Bye")
                return
            handlers[action]()
