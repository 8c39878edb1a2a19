import logging
import yaml
from pathlib import Path
from typing import Optional, Union
from batchenc.domain.errors import InvalidPathError
from batchenc.infrastructure.paths import validate_path
from .models import AppConfig, CONFIG_FILE_NAME

logger = logging.getLogger(__name__)

def resolve_target(path_arg: Optional[Union[str, Path]], cwd: Path) -> Path:
    """Returns the working directory or config file the app was started with."""
    if not path_arg:
        return cwd

    path = Path(path_arg)
    if not path.is_absolute():
        path = cwd / path
    if not path.is_file() and not path.is_dir():
        raise InvalidPathError(f"Only path to a file or directory is supported: {path}")

    base_directory = path if path.is_dir() else path.parent
    return validate_path(path, base_directory)

def _config_file(directory_or_file: Path) -> Path:
    return directory_or_file / CONFIG_FILE_NAME if directory_or_file.is_dir() else directory_or_file

def config_exists(directory_or_file: Path) -> bool:
    if not directory_or_file.exists():
        return False
    if directory_or_file.is_file():
        return True
    if not directory_or_file.is_dir():
        raise InvalidPathError(f"Invalid path: {directory_or_file}")
    return (directory_or_file / CONFIG_FILE_NAME).exists()

def default_config(src_dir: Path) -> AppConfig:
    return AppConfig(src_dir=src_dir)

def save_config(config: AppConfig, directory: Path) -> Path:
    config_path = directory / CONFIG_FILE_NAME
    data = config.model_dump(mode="json")
    with open(config_path, "w") as f:
        yaml.safe_dump(data, f, sort_keys=False)
    return config_path

def _validate_directory(directory: Path) -> Path:
    if not str(directory):
        raise InvalidPathError("Directory is required")
    if not directory.is_dir():
        raise InvalidPathError(f"Invalid directory: {directory}")
    directory = directory.resolve()
    return validate_path(directory, directory.parent)

def load_config(directory_or_file: Path) -> AppConfig:
    """Loads YAML config and parses it into AppConfig Pydantic model."""
    config_path = _config_file(directory_or_file)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found at '{config_path}'")

    with open(config_path, "r") as f:
        data = yaml.safe_load(f) or {}

    config = AppConfig(**data)
    logger.info(f"Config file loaded from '{config_path}'")

    # Relative directories in the file are relative to the file itself
    src_dir = config.src_dir if config.src_dir.is_absolute() else config_path.parent / config.src_dir
    config.src_dir = _validate_directory(src_dir)
    if config.dst_dir and str(config.dst_dir) not in ("", "."):
        dst_dir = config.dst_dir if config.dst_dir.is_absolute() else config_path.parent / config.dst_dir
        config.dst_dir = _validate_directory(dst_dir)
    else:
        config.dst_dir = config.src_dir
    return config
