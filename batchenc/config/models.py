from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

CONFIG_FILE_NAME = "batchenc.yaml"

class VideoOptions(BaseModel):
    ffmpeg_command: str = ""
    output_container: str = "mp4"

    @field_validator("output_container")
    @classmethod
    def strip_leading_dot(cls, v: str) -> str:
        v = v.strip()
        if v.startswith("."):
            v = v[1:]
        return v or "mp4"

class FilterBy(BaseModel):
    """Glob patterns; None disables the filter."""
    extension: Optional[str] = None
    codec: Optional[str] = None

class AppConfig(BaseModel):
    src_dir: Path
    dst_dir: Optional[Path] = None  # Defaults to src_dir when loaded
    delete_original: bool = False
    preserve_attributes: bool = True
    careful: bool = False  # Abort the run on the first per-item error
    deep: int = Field(default=0, ge=0)  # 0 = source directory only
    ffmpeg_path: Optional[str] = None
    skip_probe: bool = False
    extensions: List[str] = Field(default_factory=lambda: [".mp4"])
    register_outputs: bool = True
    debug: bool = False
    log_path: Optional[str] = None
    video_options: VideoOptions = Field(default_factory=VideoOptions)
    filter_by: FilterBy = Field(default_factory=FilterBy)

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [(ext if ext.startswith(".") else f".{ext}").lower() for ext in v]

    @property
    def output_dir(self) -> Path:
        return self.dst_dir if self.dst_dir is not None else self.src_dir
