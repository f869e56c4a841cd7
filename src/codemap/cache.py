"""Content Cache: per-run memo of file contents keyed by path.

One ``ContentCache`` belongs to one analysis run. Reads that fail are cached
as ``""`` so a broken file is only touched once.
"""

import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

# ── Encoding-safe file reading ──

# BOM signatures for UTF-16 variants
_UTF16_LE_BOM = b"\xff\xfe"
_UTF16_BE_BOM = b"\xfe\xff"


def read_text_safe(path: str | Path) -> str:
    """Read a text file, handling UTF-8, UTF-16 (BOM), and latin-1 gracefully.

    Raises OSError if the file cannot be read at all.
    """
    raw = Path(path).read_bytes()
    if raw[:2] in (_UTF16_LE_BOM, _UTF16_BE_BOM):
        return raw.decode("utf-16", errors="replace")
    try:
        # utf-8-sig drops a UTF-8 BOM if present
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        return raw.decode("latin-1")


class ContentCache:
    """Thread-safe path -> text cache.

    Concurrent misses on the same key may both read the file; the last
    write wins, which is harmless because content does not change during a
    run.
    """

    def __init__(self) -> None:
        self._contents: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, path: str | Path) -> str:
        key = str(path)
        with self._lock:
            cached = self._contents.get(key)
        if cached is not None:
            return cached

        try:
            content = read_text_safe(key)
        except OSError as e:
            logger.debug("Failed to read %s: %s", key, e)
            content = ""

        with self._lock:
            self._contents[key] = content
        return content

    def clear(self) -> None:
        with self._lock:
            self._contents.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._contents)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return str(path) in self._contents
