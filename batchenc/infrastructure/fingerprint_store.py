"""SQLite persistence for file fingerprints.

One row per physical file, keyed by inode. ``media_info`` is stored as JSON
text and only ever decoded back into ``MediaInfo`` at this boundary.
The store assumes a single writer: one stage runs at a time and items are
handled sequentially.
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional, Union
from pydantic import ValidationError
from batchenc.domain.errors import StoreContractError
from batchenc.domain.models import FingerprintRecord, MediaInfo

DEFAULT_DB_NAME = "batchenc-db.sqlite"

SCHEMA = """
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    ino TEXT UNIQUE NOT NULL,   -- inode-based identity
    path TEXT,                  -- last known location
    processed BOOLEAN DEFAULT 0,
    mtime REAL,
    size INTEGER,
    media_info TEXT             -- JSON or NULL
);
"""

logger = logging.getLogger(__name__)


def encode_media_info(media_info: Optional[MediaInfo]) -> Optional[str]:
    return media_info.model_dump_json() if media_info is not None else None


def decode_media_info(raw: Optional[str]) -> Optional[MediaInfo]:
    if not raw:
        return None
    try:
        return MediaInfo.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Discarding unreadable media info: {e}")
        return None


class FingerprintStore:
    def __init__(self, db_path: Union[Path, str], *, timeout: float = 30.0) -> None:
        self._path = Path(db_path)
        if str(db_path) != ":memory:":
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path), timeout=timeout, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode = WAL")
        with self._conn:
            self._conn.executescript(SCHEMA)
        logger.debug(f"Database initialized at {self._path}")

    @property
    def path(self) -> Path:
        return self._path

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> "FingerprintStore":
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb) -> bool:
        self.close()
        return False

    @staticmethod
    def _to_record(row: sqlite3.Row) -> FingerprintRecord:
        return FingerprintRecord(
            inode=int(row["ino"]),
            path=row["path"],
            processed=bool(row["processed"]),
            mtime=row["mtime"],
            size=row["size"],
            media_info=decode_media_info(row["media_info"]),
        )

    def lookup(self, inode: int) -> Optional[FingerprintRecord]:
        row = self._conn.execute(
            "SELECT ino, path, processed, mtime, size, media_info FROM files WHERE ino = ?",
            (str(inode),),
        ).fetchone()
        return self._to_record(row) if row is not None else None

    def insert(self, record: FingerprintRecord) -> None:
        if record.inode is None or not record.path:
            raise StoreContractError("Inode and path are required to insert a file record")
        try:
            with self._conn:
                self._conn.execute(
                    "INSERT INTO files (ino, path, processed, mtime, size, media_info) VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        str(record.inode),
                        record.path,
                        int(record.processed),
                        record.mtime,
                        record.size,
                        encode_media_info(record.media_info),
                    ),
                )
        except sqlite3.IntegrityError as e:
            raise StoreContractError(f"File record for inode {record.inode} already exists") from e

    def update(self, record: FingerprintRecord) -> None:
        """Rewrites every field except the inode, which only selects the row."""
        if record.inode is None or not record.path:
            raise StoreContractError("Inode and path are required to update a file record")
        with self._conn:
            cursor = self._conn.execute(
                "UPDATE files SET path = ?, processed = ?, mtime = ?, size = ?, media_info = ? WHERE ino = ?",
                (
                    record.path,
                    int(record.processed),
                    record.mtime,
                    record.size,
                    encode_media_info(record.media_info),
                    str(record.inode),
                ),
            )
        if cursor.rowcount == 0:
            raise StoreContractError(f"No file record for inode {record.inode}")

    def count(self) -> int:
        return int(self._conn.execute("SELECT COUNT(*) FROM files").fetchone()[0])

    def reset(self) -> None:
        """Discards every record (operator 'drop the database' action)."""
        with self._conn:
            self._conn.execute("DELETE FROM files")
            self._conn.execute("DELETE FROM sqlite_sequence WHERE name = 'files'")
        logger.info("Fingerprint database dropped")
