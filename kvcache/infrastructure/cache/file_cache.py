"""File-backed implementation of the Cache contract.

Each entry is one file under the cache directory, named by the normalized
key. The file body is the serialized value; the file's modification time is
the absolute expiry instant. An entry whose mtime is not in the future is
treated as absent but is left on disk (passive expiration) until it is
overwritten, deleted, flushed or collected by gc().
"""

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Any, Optional, Union

from kvcache.domain.exceptions import CacheConfigurationError, CacheError
from kvcache.domain.interfaces.cache import Cache
from kvcache.domain.models.common import DEFAULT_DURATION, MISS, CacheKey, NormalizedKey
from kvcache.infrastructure.cache.serializers import PickleSerializer, Serializer

logger = logging.getLogger(__name__)

# Number of two-character subdirectory levels between the root and an entry.
DEFAULT_DIRECTORY_LEVEL = 1
# In-flight writes live next to the entries so os.replace/os.link stay on one filesystem.
TEMP_PREFIX = "."
TEMP_SUFFIX = ".tmp"


class FileCache(Cache):
    """Cache storing one file per entry, with expiry encoded in the file mtime."""

    def __init__(
        self,
        cache_path: Union[str, Path],
        serializer: Optional[Serializer] = None,
        directory_level: int = DEFAULT_DIRECTORY_LEVEL,
    ):
        """Initializes the file cache and creates its directory.

        Args:
            cache_path: Root directory holding the entries.
            serializer: Value serializer. Defaults to PickleSerializer.
            directory_level: Subdirectory depth used to spread entries (0 = flat).

        Raises:
            CacheConfigurationError: If directory_level is negative.
            CacheError: If the cache directory cannot be created.
        """
        if directory_level < 0:
            raise CacheConfigurationError(
                f"directory_level must be >= 0, got {directory_level}", backend="file"
            )
        self.cache_path = Path(cache_path).expanduser()
        self.serializer = serializer or PickleSerializer()
        self.directory_level = directory_level
        self._setup_cache_dir()
        logger.info(
            f"FileCache initialized at {self.cache_path} "
            f"(serializer={self.serializer.name}, directory_level={directory_level})"
        )

    def __repr__(self) -> str:
        return f"FileCache(cache_path={str(self.cache_path)!r}, serializer={self.serializer.name!r})"

    def _setup_cache_dir(self) -> None:
        """Creates the cache directory if it doesn't exist."""
        try:
            self.cache_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create cache directory {self.cache_path}: {e}")
            raise CacheError(f"Cannot create cache directory {self.cache_path}: {e}", backend="file") from e

    def get_cache_file(self, normalized_key: NormalizedKey) -> Path:
        """Returns the path of the entry file for a normalized key."""
        path = self.cache_path
        for level in range(self.directory_level):
            path = path / normalized_key[level * 2:level * 2 + 2]
        return path / normalized_key

    @staticmethod
    def _expires_at(duration: int) -> float:
        """Absolute expiry timestamp for a requested duration in seconds."""
        return time.time() + (duration if duration > 0 else DEFAULT_DURATION)

    def _is_live(self, path: Path) -> bool:
        """True if the entry file exists and its mtime is still in the future."""
        try:
            return path.stat().st_mtime > time.time()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to stat cache file {path}: {e}")
            return False

    @staticmethod
    def _remove_quietly(path: Union[str, Path]) -> None:
        """Removes a leftover temp file; a file that is already gone is fine."""
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temporary cache file {path}: {e}")

    def _write_temp_file(self, normalized_key: NormalizedKey, path: Path, value: Any, duration: int) -> Optional[str]:
        """Serializes a value into a temp file stamped with its expiry.

        Returns:
            The temp file path, or None if serialization or the write failed.
        """
        try:
            data = self.serializer.dumps(value)
        except Exception as e:
            logger.error(f"Failed to serialize value for key {normalized_key[:10]}...: {e}", exc_info=True)
            return None

        expires_at = self._expires_at(duration)
        temp_path = None
        try:
            # Also recreates the root if it was removed from under us
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=self.cache_path)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.utime(temp_path, (expires_at, expires_at))
            return temp_path
        except OSError as e:
            logger.error(f"Failed to write cache file for key {normalized_key[:10]}... in {self.cache_path}: {e}")
            if temp_path is not None:
                self._remove_quietly(temp_path)
            return None

    # --- Cache Interface Implementation ---

    def _read_entry(self, path: Path) -> Any:
        """Returns the value held by a live entry file, or MISS.

        Missing, expired and unreadable entries are all MISS; get(), exists()
        and add() share this decision.
        """
        if not self._is_live(path):
            return MISS
        try:
            data = path.read_bytes()
        except OSError as e:
            # Includes an entry deleted between stat and read
            logger.warning(f"Failed to read cache file {path}: {e}")
            return MISS
        try:
            value = self.serializer.loads(data)
        except Exception as e:
            logger.warning(f"Failed to deserialize cache file {path}: {e}")
            return MISS
        return value

    def get(self, key: CacheKey) -> Any:
        """Retrieves a value; missing, expired and unreadable entries are all MISS."""
        normalized_key = self.build_key(key)
        value = self._read_entry(self.get_cache_file(normalized_key))
        if value is MISS:
            logger.debug(f"Cache MISS for key: {normalized_key[:10]}...")
        else:
            logger.debug(f"Cache HIT for key: {normalized_key[:10]}...")
        return value

    def exists(self, key: CacheKey) -> bool:
        """Checks for a live entry that get() would return.

        Reads and deserializes the entry, so a corrupt file counts as absent.
        """
        return self._read_entry(self.get_cache_file(self.build_key(key))) is not MISS

    def set(self, key: CacheKey, value: Any, duration: int = 0) -> bool:
        """Stores a value, atomically replacing any existing entry file."""
        normalized_key = self.build_key(key)
        path = self.get_cache_file(normalized_key)
        temp_path = self._write_temp_file(normalized_key, path, value, duration)
        if temp_path is None:
            return False
        try:
            os.replace(temp_path, path)
        except OSError as e:
            logger.error(f"Failed to store cache file {path}: {e}")
            self._remove_quietly(temp_path)
            return False
        logger.debug(f"Cache PUT key: {normalized_key[:10]}... duration: {duration}s")
        return True

    def add(self, key: CacheKey, value: Any, duration: int = 0) -> bool:
        """Stores a value only if exists() is False for the key.

        The entry is published with os.link, which refuses to overwrite an
        existing file, so two adders cannot both create a fresh entry. An
        expired entry is removed and the link retried once; two adders racing
        over the same expired entry may both report success. On filesystems
        without hard links this falls back to check-then-replace, where the
        last concurrent writer wins. Expired and unreadable entries are both
        replaced.
        """
        normalized_key = self.build_key(key)
        path = self.get_cache_file(normalized_key)
        if self._read_entry(path) is not MISS:
            logger.debug(f"Cache ADD skipped, key present: {normalized_key[:10]}...")
            return False

        temp_path = self._write_temp_file(normalized_key, path, value, duration)
        if temp_path is None:
            return False
        try:
            return self._publish_if_absent(temp_path, path, normalized_key)
        finally:
            # The temp name is only a second link (or already moved) by now
            self._remove_quietly(temp_path)

    def _publish_if_absent(self, temp_path: str, path: Path, normalized_key: NormalizedKey) -> bool:
        for attempt in range(2):
            try:
                os.link(temp_path, path)
                logger.debug(f"Cache ADD key: {normalized_key[:10]}...")
                return True
            except FileExistsError:
                if attempt or self._read_entry(path) is not MISS:
                    logger.debug(f"Cache ADD lost to an existing entry: {normalized_key[:10]}...")
                    return False
                self._remove_quietly(path)
            except OSError as e:
                logger.debug(f"Hard link unavailable in {self.cache_path} ({e}), using replace")
                return self._replace_if_absent(temp_path, path, normalized_key)
        return False

    def _replace_if_absent(self, temp_path: str, path: Path, normalized_key: NormalizedKey) -> bool:
        # Not atomic: another writer can slip in between the check and the replace
        if self._read_entry(path) is not MISS:
            return False
        try:
            os.replace(temp_path, path)
        except OSError as e:
            logger.error(f"Failed to store cache file {path}: {e}")
            return False
        logger.debug(f"Cache ADD key (non-atomic): {normalized_key[:10]}...")
        return True

    def delete(self, key: CacheKey) -> bool:
        """Removes the entry file. Expired but present entries count as removed."""
        normalized_key = self.build_key(key)
        path = self.get_cache_file(normalized_key)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Cache DELETE found nothing for key: {normalized_key[:10]}...")
            return False
        except OSError as e:
            logger.error(f"Failed to delete cache file {path}: {e}")
            return False
        logger.debug(f"Cache DELETE key: {normalized_key[:10]}...")
        return True

    def flush(self) -> bool:
        """Removes every file and subdirectory under the cache directory.

        The root itself is kept. Files created by other writers while the
        walk is running may survive.
        """
        errors = []
        removed = 0
        for root, _dirs, files in os.walk(self.cache_path, topdown=False, onerror=errors.append):
            for name in files:
                file_path = os.path.join(root, name)
                try:
                    os.unlink(file_path)
                    removed += 1
                except FileNotFoundError:
                    pass
                except OSError as e:
                    errors.append(e)
            if Path(root) != self.cache_path:
                try:
                    os.rmdir(root)
                except OSError as e:
                    # A concurrent writer may have just put a file here
                    logger.debug(f"Kept cache subdirectory {root}: {e}")

        if errors:
            for e in errors:
                logger.error(f"Failed to flush cache entry: {e}")
            logger.error(f"Flushed cache at {self.cache_path} with {len(errors)} errors ({removed} files removed)")
            return False
        logger.info(f"Flushed cache at {self.cache_path}. Removed {removed} files.")
        return True

    def gc(self, expired_only: bool = True) -> int:
        """Deletes expired entry files, or all entries if expired_only is False.

        In-flight temp files are never touched; flush() removes those.

        Returns:
            Number of entry files removed.
        """
        removed = 0
        now = time.time()
        for root, _dirs, files in os.walk(self.cache_path):
            for name in files:
                if name.startswith(TEMP_PREFIX) and name.endswith(TEMP_SUFFIX):
                    continue
                file_path = os.path.join(root, name)
                try:
                    if expired_only and os.stat(file_path).st_mtime > now:
                        continue
                    os.unlink(file_path)
                    removed += 1
                except FileNotFoundError:
                    pass
                except OSError as e:
                    logger.warning(f"Failed to collect cache file {file_path}: {e}")
        logger.info(f"Cache GC at {self.cache_path} removed {removed} files (expired_only={expired_only}).")
        return removed
