"""Registry service: persists worktree names and metadata between runs."""
import json
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from git_workty.constants import REGISTRY_DIRNAME, REGISTRY_FILENAME, REGISTRY_VERSION
from git_workty.exceptions import IncompatibleRegistryVersion, RegistryCorrupt
from git_workty.logging_config import get_logger
from git_workty.models.worktree import Registry, WorktreeRecord

# Import fcntl for POSIX file locking (Unix/Linux/macOS)
try:
    import fcntl
    HAS_FCNTL = True
except ImportError:
    HAS_FCNTL = False

logger = get_logger(__name__)


class RegistryService:
    """Loads and saves the registry file of one repository.

    The file lives in the repository's common git dir so every worktree of the
    repository sees the same registry. Writes replace the whole file
    atomically; the registry is an advisory cache and git stays authoritative.
    """

    def __init__(self, common_dir: Union[str, Path], registry_file: Optional[Union[str, Path]] = None):
        """Initialize registry service for a repository.

        Args:
            common_dir: The repository's common git directory
            registry_file: Override the registry location (mainly for tests)
        """
        self.common_dir = Path(common_dir)
        if registry_file is not None:
            self.registry_file = Path(registry_file)
        else:
            self.registry_file = self.common_dir / REGISTRY_DIRNAME / REGISTRY_FILENAME

    @contextmanager
    def _acquire_lock(self, file_handle, operation: str = "read"):
        """Acquire an advisory file lock.

        Args:
            file_handle: Open file handle to lock
            operation: Type of operation ("read" or "write")

        Yields:
            None when lock is acquired
        """
        if not HAS_FCNTL:
            logger.debug("File locking not available on this platform")
            yield
            return

        lock_type = fcntl.LOCK_EX if operation == "write" else fcntl.LOCK_SH
        fcntl.flock(file_handle.fileno(), lock_type)
        logger.debug(f"Acquired {operation} lock on registry file")
        try:
            yield
        finally:
            fcntl.flock(file_handle.fileno(), fcntl.LOCK_UN)
            logger.debug(f"Released {operation} lock on registry file")

    def load(self) -> Registry:
        """Read the registry from disk.

        Returns:
            The stored registry, or an empty one if no file exists yet

        Raises:
            IncompatibleRegistryVersion: the file has an unknown format version
            RegistryCorrupt: the file cannot be parsed
        """
        if not self.registry_file.exists():
            logger.debug("No registry file found")
            return Registry()

        try:
            with open(self.registry_file, 'r', encoding='utf-8') as f:
                with self._acquire_lock(f, operation="read"):
                    data = json.load(f)
        except json.JSONDecodeError as e:
            raise RegistryCorrupt("load_registry", str(self.registry_file), f"invalid JSON: {e}")
        except OSError as e:
            raise RegistryCorrupt("load_registry", str(self.registry_file), str(e))

        registry = self._deserialize(data)
        logger.debug(f"Loaded registry with {len(registry)} worktrees")
        return registry

    def save(self, registry: Registry) -> None:
        """Write the registry to disk using an atomic replace.

        Args:
            registry: Registry to persist

        Raises:
            OSError: the file could not be written; the previous file is intact
        """
        payload = self.dumps(registry)
        self.registry_file.parent.mkdir(parents=True, exist_ok=True)

        # Atomic write: write to temp file in the same directory, then rename
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self.registry_file.name}.", suffix=".tmp", dir=self.registry_file.parent
        )
        temp_file = Path(temp_name)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                with self._acquire_lock(f, operation="write"):
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())

            # Atomic rename (POSIX systems guarantee atomicity)
            os.replace(temp_file, self.registry_file)
            logger.debug(f"Saved registry with {len(registry)} worktrees to {self.registry_file}")
        finally:
            # Clean up temp file if it still exists
            if temp_file.exists():
                temp_file.unlink()

    def dumps(self, registry: Registry) -> str:
        """Stable text form of a registry (same registry, same bytes)."""
        data = {
            "version": REGISTRY_VERSION,
            "worktrees": [self._serialize_record(record) for record in registry],
        }
        return json.dumps(data, indent=2, sort_keys=True) + "\n"

    @staticmethod
    def _serialize_record(record: WorktreeRecord) -> Dict[str, Any]:
        """Convert a record to its on-disk dictionary. Status is never stored."""
        return {
            "name": record.name,
            "path": record.path,
            "branch": record.branch,
            "head": record.head,
            "created_at": record.created_at.isoformat() if record.created_at else None,
            "last_used_at": record.last_used_at.isoformat() if record.last_used_at else None,
        }

    def _deserialize(self, data: Any) -> Registry:
        """Validate the file structure and build a Registry from it."""
        location = str(self.registry_file)
        if not isinstance(data, dict):
            raise RegistryCorrupt("load_registry", location, "top level is not an object")

        version = data.get("version")
        if not isinstance(version, int) or isinstance(version, bool) or version != REGISTRY_VERSION:
            raise IncompatibleRegistryVersion(location, version, REGISTRY_VERSION)

        items = data.get("worktrees", [])
        if not isinstance(items, list):
            raise RegistryCorrupt("load_registry", location, "'worktrees' is not a list")

        registry = Registry()
        for item in items:
            try:
                record = self._deserialize_record(item)
                registry.insert(record)
            except (KeyError, TypeError, ValueError) as e:
                raise RegistryCorrupt("load_registry", location, f"bad worktree entry {item!r}: {e}")
        return registry

    @staticmethod
    def _deserialize_record(item: Dict[str, Any]) -> WorktreeRecord:
        """Convert an on-disk dictionary back to a record."""
        if not isinstance(item, dict):
            raise TypeError("entry is not an object")
        missing = [field for field in ("name", "path") if not item.get(field)]
        if missing:
            raise KeyError(", ".join(missing))

        def parse_time(value: Optional[str]) -> Optional[datetime]:
            if not value:
                return None
            parsed = datetime.fromisoformat(value)
            if parsed.tzinfo is None:
                # Hand-edited timestamps without offset are taken as UTC
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed

        return WorktreeRecord(
            name=item["name"],
            path=item["path"],
            branch=item.get("branch"),
            head=item.get("head") or "",
            created_at=parse_time(item.get("created_at")),
            last_used_at=parse_time(item.get("last_used_at")),
        )
