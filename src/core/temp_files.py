import os
import time

from src.shared.constants import STALE_FILE_MAX_AGE_MINUTES
from src.shared.logger import get_logger

logger = get_logger(__name__)


def ensure_work_dir(path: str) -> str:
    """Creates the worker's scratch directory if needed and returns its absolute path."""
    abs_path = os.path.abspath(path)
    os.makedirs(abs_path, exist_ok=True)
    return abs_path


class FulfillmentAttempt:
    """
    Tracks the temporary files created while processing a single order.

    Paths are registered before the file is written, so a failure halfway
    through a download still leaves the partial file on the cleanup list.
    Use as a context manager; cleanup runs exactly once on exit.
    """

    def __init__(self, work_dir: str):
        self.work_dir = work_dir
        self.paths: list[str] = []
        self._cleaned = False

    def register(self, filename: str) -> str:
        path = os.path.join(self.work_dir, filename)
        self.paths.append(path)
        return path

    def cleanup(self) -> int:
        """
        Deletes every registered path. Never raises: problems are logged so they
        can't mask the outcome of the attempt itself.
        Returns the number of files removed.
        """
        if self._cleaned:
            return 0
        self._cleaned = True

        logger.info(f"🧹 Starting cleanup of {len(self.paths)} file(s)...")
        removed = 0
        for path in self.paths:
            try:
                size_kb = os.path.getsize(path) / 1024
                os.remove(path)
                removed += 1
                logger.info(f"🗑️ Cleaned up: {os.path.basename(path)} ({size_kb:.1f} KB)")
            except FileNotFoundError:
                logger.warning(f"⚠️ File not found for cleanup: {os.path.basename(path)}")
            except OSError as e:
                logger.warning(f"❌ Failed to cleanup {path}: {e}")

        logger.info("✅ Cleanup completed")
        return removed

    def __enter__(self) -> "FulfillmentAttempt":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.cleanup()
        return False


def sweep_stale_files(
    work_dir: str, max_age_seconds: int = STALE_FILE_MAX_AGE_MINUTES * 60, now: float | None = None
) -> int:
    """
    Removes files in work_dir older than max_age_seconds.
    Runs once at startup as a safety net for files leaked by a crashed run.
    """
    logger.info("🧹 Cleaning up old temporary files...")
    cutoff = (now if now is not None else time.time()) - max_age_seconds
    cleaned = 0

    try:
        entries = list(os.scandir(work_dir))
    except OSError as e:
        logger.warning(f"⚠️ Failed to cleanup old files: {e}")
        return 0

    for entry in entries:
        try:
            if not entry.is_file(follow_symlinks=False):
                continue
            stats = entry.stat(follow_symlinks=False)
            if stats.st_mtime < cutoff:
                os.remove(entry.path)
                cleaned += 1
                logger.info(f"🗑️ Removed old file: {entry.name} ({stats.st_size / 1024:.1f} KB)")
        except OSError as e:
            logger.warning(f"⚠️ Failed to remove old file {entry.name}: {e}")

    if cleaned == 0:
        logger.info("✅ No old files to clean")
    else:
        logger.info(f"✅ Cleaned up {cleaned} old file(s)")
    return cleaned
