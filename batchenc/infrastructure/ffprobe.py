import json
import logging
from pathlib import Path
from typing import Optional
from batchenc.domain.errors import ItemInterrupted, ProbeParseError
from batchenc.domain.models import MediaInfo
from batchenc.infrastructure.process_runner import ProcessRunner

PROBE_ARGS = [
    "-v", "error",
    "-show_streams",
    "-select_streams", "v:0",
    "-show_entries", "stream=width,height,codec_name",
    "-of", "json",
]

def ffprobe_path_for(ffmpeg_path: Optional[str]) -> str:
    """Derives ffprobe from a configured ffmpeg path (same directory, name substituted)."""
    if not ffmpeg_path:
        return "ffprobe"
    path = Path(ffmpeg_path)
    return str(path.with_name(path.name.replace("ffmpeg", "ffprobe")))

class FFprobeAdapter:
    """Wrapper around ffprobe to read the first video stream's dimensions and codec."""

    def __init__(self, ffmpeg_path: Optional[str] = None):
        self.runner = ProcessRunner(ffprobe_path_for(ffmpeg_path), default_command="ffprobe")
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def parse_media_info(output: str) -> MediaInfo:
        try:
            data = json.loads(output)
        except (TypeError, ValueError) as e:
            raise ProbeParseError(f"Invalid ffprobe output: {e}") from e

        streams = data.get("streams") if isinstance(data, dict) else None
        if not streams:
            raise ProbeParseError("No streams found in the file")

        video_stream = streams[0]
        if not video_stream.get("codec_name") or not video_stream.get("width") or not video_stream.get("height"):
            raise ProbeParseError("Missing required fields in the stream info")

        try:
            return MediaInfo(
                width=int(video_stream["width"]),
                height=int(video_stream["height"]),
                codec=str(video_stream["codec_name"]),
            )
        except (TypeError, ValueError) as e:
            raise ProbeParseError(f"Invalid stream info: {e}") from e

    def probe(self, file_path: Path) -> Optional[MediaInfo]:
        """Returns media info, or None when ffprobe fails or reports nothing usable."""
        try:
            outcome = self.runner.execute([*PROBE_ARGS, str(file_path)])
        except OSError as e:
            self.logger.error(f"Error probing file: {file_path}. {e}")
            return None

        if outcome.cancelled:
            raise ItemInterrupted(f"Probe of {file_path} was stopped")
        if not outcome.ok:
            self.logger.error(f"Error probing file: {file_path}. ffprobe exited with code {outcome.returncode}")
            self.logger.error(f"FFprobe stderr: {outcome.stderr}")
            return None

        try:
            return self.parse_media_info(outcome.stdout)
        except ProbeParseError as e:
            self.logger.error(f"Error parsing FFprobe output for file: {file_path}. {e}")
            return None

    def stop(self):
        self.runner.stop()
