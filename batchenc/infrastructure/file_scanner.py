import os
import re
from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Generator

BRACE_REGEX = re.compile(r"\{([^{}]*)\}")

def matches_pattern(value: str, pattern: str) -> bool:
    """Glob match with one optional `{a,b}` alternation, e.g. `{h264,hevc}` or `m*{4,v}`."""
    match = BRACE_REGEX.search(pattern)
    if match:
        head, tail = pattern[:match.start()], pattern[match.end():]
        return any(fnmatchcase(value, f"{head}{option}{tail}") for option in match.group(1).split(","))
    return fnmatchcase(value, pattern)

class FileScanner:
    """Walks a directory tree up to `deep` levels below the root and yields matching files."""

    def __init__(self, extensions: List[str], deep: int = 0):
        self.extensions = [(ext if ext.startswith(".") else f".{ext}").lower() for ext in extensions]
        self.deep = deep

    def scan(self, root_dir: Path) -> Generator[Path, None, None]:
        """Yields absolute paths of regular files in deterministic order."""
        root_dir = Path(root_dir)
        base_depth = len(root_dir.parts)
        for root, dirs, files in os.walk(str(root_dir)):
            root_path = Path(root)

            if len(root_path.parts) - base_depth >= self.deep:
                dirs[:] = []  # stop recursion below the configured depth
            else:
                dirs[:] = sorted(dirs)
            files.sort()

            for file_name in files:
                file_path = root_path / file_name
                if file_path.suffix.lower() not in self.extensions:
                    continue
                if not file_path.is_file():
                    continue
                yield file_path

    def collect(self, root_dir: Path) -> List[Path]:
        return list(self.scan(root_dir))
