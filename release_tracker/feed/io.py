"""Replace the feed file on disk without ever exposing a partial write."""

import contextlib
import hashlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

import structlog


logger = structlog.get_logger()

FEED_FILE_MODE = 0o644


@dataclass(frozen=True)
class GeneratedFile:
    """What was written and where."""

    path: str
    bytes_written: int
    sha256: str


def write_feed(path: Path, content: str, run_id: str | None = None) -> GeneratedFile:
    """Atomically write a rendered feed to ``path``.

    The content goes to a uniquely named temporary file in the target
    directory, is flushed to disk, and is then renamed over ``path``. A
    reader (such as the next run loading the previous feed) sees either
    the old file or the new one in full.

    Args:
        path: Destination file; missing parent directories are created.
        content: Feed document, written as UTF-8.
        run_id: Optional run identifier for logging.

    Returns:
        GeneratedFile describing the written file.
    """
    log = logger.bind(component="feed_writer", path=str(path))
    if run_id:
        log = log.bind(run_id=run_id)

    data = content.encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_name, FEED_FILE_MODE)
        os.replace(temp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(temp_name)
        raise

    digest = hashlib.sha256(data).hexdigest()
    log.debug("feed_file_replaced", bytes=len(data), sha256=digest[:12])
    return GeneratedFile(path=str(path), bytes_written=len(data), sha256=digest)
