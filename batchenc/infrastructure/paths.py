import os
from pathlib import Path
from batchenc.config.models import AppConfig
from batchenc.domain.errors import InvalidPathError
from batchenc.domain.models import OutputTarget

ENCODED_SUFFIX = "_encoded"
ERROR_LOG_SUFFIX = "_error.log"

def validate_path(input_path: Path, base_directory: Path) -> Path:
    """Resolves input_path against base_directory and refuses anything outside it."""
    input_path = Path(input_path)
    if not input_path.is_absolute():
        input_path = Path(base_directory) / input_path

    resolved_base = Path(base_directory).resolve()
    resolved_path = input_path.resolve()

    if resolved_path != resolved_base and resolved_base not in resolved_path.parents:
        raise InvalidPathError(f"Invalid path: {input_path} is outside of the base directory")
    if not resolved_path.is_file() and not resolved_path.is_dir():
        raise InvalidPathError(f"Invalid path: {input_path}")

    return resolved_path

def trim_file_name(filename: str, max_length: int = 15) -> str:
    """Shortens a name for display: 'a_very_long_name.mp4' -> 'a_very...me.mp4'."""
    if len(filename) <= max_length:
        return filename

    prefix_length = -(-(max_length - 3) // 2)  # ceil
    suffix_length = max_length - prefix_length - 3
    suffix = filename[-suffix_length:] if suffix_length > 0 else ""
    return f"{filename[:prefix_length]}...{suffix}"

def ensure_directory_exists(file_path: Path):
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

def output_target_for(input_path: Path, config: AppConfig) -> OutputTarget:
    """Mirrors the source subdirectory under dst_dir with the output container.

    When source and destination would be the same file, ffmpeg writes to a
    `<name>_encoded.<ext>` sibling. Keeping the original makes that sibling the
    final name; otherwise it is renamed over the original afterwards.
    """
    src_dir = config.src_dir
    dst_dir = config.output_dir
    container = config.video_options.output_container

    try:
        rel_path = input_path.relative_to(src_dir)
    except ValueError:
        rel_path = Path(input_path.name)

    original_extension = input_path.suffix[1:]
    sub_dir = dst_dir / rel_path.parent
    final_name = sub_dir / f"{input_path.stem}.{container}"

    same_tree = Path(src_dir).resolve() == Path(dst_dir).resolve()
    if same_tree and container.lower() == original_extension.lower():
        output = sub_dir / f"{input_path.stem}{ENCODED_SUFFIX}.{container}"
        if not config.delete_original:
            final_name = output
        return OutputTarget(output=output, final_name=final_name)

    return OutputTarget(output=final_name, final_name=final_name)

def error_log_path(final_name: Path) -> Path:
    return final_name.with_name(f"{final_name.name}{ERROR_LOG_SUFFIX}")

def preserve_timestamps(file_path: Path, atime: float, mtime: float) -> bool:
    """Copies access/modification times onto file_path; skipped for non-positive times."""
    if atime <= 0 or mtime <= 0:
        return False
    os.utime(file_path, (atime, mtime))
    return True
