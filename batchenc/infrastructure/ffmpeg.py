import logging
import re
from pathlib import Path
from typing import List, Optional
from batchenc.domain.models import MediaInfo
from batchenc.infrastructure.process_runner import ProcessHandle, ProcessOutcome, ProcessRunner

CROP_TO_EVEN_FILTER = "crop=iw-mod(iw\\,2):ih-mod(ih\\,2)"
PROGRESS_ARGS = ["-progress", "pipe:1"]
VERSION_REGEX = re.compile(r"ffmpeg version (\S+)")

def string_to_args(command: str) -> List[str]:
    """Whitespace-tokenizes a command template."""
    return command.split()

def fix_video_stream_dimensions(args: List[str]) -> List[str]:
    """Crops to even width/height, merging with an existing -vf chain."""
    if "-vf" in args:
        index = args.index("-vf")
        if index + 1 < len(args):
            args[index + 1] = f"{CROP_TO_EVEN_FILTER},{args[index + 1]}"
            return args
    args.extend(["-vf", CROP_TO_EVEN_FILTER])
    return args

class FFmpegAdapter:
    """Wrapper around ffmpeg for transcoding."""

    def __init__(self, ffmpeg_path: Optional[str] = None):
        self.runner = ProcessRunner(ffmpeg_path, default_command="ffmpeg")
        self.logger = logging.getLogger(__name__)

    @property
    def command(self) -> str:
        return self.runner.command

    def build_args(self, input_path: Path, output_path: Path, ffmpeg_command: str, media_info: Optional[MediaInfo] = None) -> List[str]:
        """Constructs the ffmpeg arguments (the executable itself is prepended by the runner)."""
        args = [
            "-y",  # Overwrite output files
            "-i", str(input_path),
        ]
        args.extend(string_to_args(ffmpeg_command))
        if media_info is not None and media_info.has_odd_dimensions:
            fix_video_stream_dimensions(args)
        args.extend(PROGRESS_ARGS)
        args.append(str(output_path))
        return args

    def start(self, args: List[str]) -> ProcessHandle:
        return self.runner.start(args)

    def finish(self, handle: ProcessHandle) -> ProcessOutcome:
        return self.runner.finish(handle)

    def stop(self):
        self.runner.stop()

    def get_version(self) -> str:
        """Runs `ffmpeg -version`; raises if the binary is missing or unrecognised."""
        self.logger.debug(f"Checking ffmpeg path: {self.command}")
        outcome = self.runner.execute(["-version"])
        if outcome.stderr:
            self.logger.error(outcome.stderr.strip())
        outcome.raise_for_status()

        match = VERSION_REGEX.search(outcome.stdout)
        if not match:
            raise RuntimeError("Could not identify ffmpeg version")
        return match.group(1)
