"""Worktree manager: reconciles the registry with git and performs operations."""

import os
import shutil
import warnings
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Set, Tuple

from git_workty.config import Config
from git_workty.exceptions import (
    AmbiguousReference,
    DirtyWorktree,
    DuplicateName,
    NotFound,
    PathConflict,
    PersistenceWarning,
    RegistryError,
    VcsError,
    WorktreeNotActive,
    WorktyError,
)
from git_workty.logging_config import get_logger
from git_workty.models.worktree import GitWorktreeEntry, Registry, WorktreeRecord, WorktreeStatus
from git_workty.services.git.repository import GitRepo
from git_workty.services.git.worktrees import WorktreeService
from git_workty.services.registry_service import RegistryService
from git_workty.services.switch_service import SwitchEmitter
from git_workty.utils.paths import is_case_insensitive_fs, is_within, normalize_path, slugify

logger = get_logger(__name__)

_NEVER = datetime.min.replace(tzinfo=timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DoctorCheck:
    """Result of one `doctor` check."""

    name: str
    ok: bool
    detail: str = ""


class WorktreeManager:
    """Owns every read and write of worktree state.

    Each operation starts by reconciling the registry against
    `git worktree list`; git wins whenever the two disagree.
    """

    def __init__(
        self,
        repo: GitRepo,
        config: Optional[Config] = None,
        worktree_service: Optional[WorktreeService] = None,
        registry_service: Optional[RegistryService] = None,
        emitter: Optional[SwitchEmitter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the manager.

        Args:
            repo: Repository whose worktrees are managed
            config: Configuration (defaults when omitted)
            worktree_service: Git adapter (built from repo when omitted)
            registry_service: Registry store (built from repo when omitted)
            emitter: Switch emitter (honours GIT_WORKTY_CD_FILE when omitted)
            clock: Returns the current time; injectable for tests
        """
        self.repo = repo
        self.config = config or Config()
        self.worktree_service = worktree_service or WorktreeService(repo.root, timeout=self.config.timeout)
        self.registry_service = registry_service or RegistryService(repo.common_dir)
        self.emitter = emitter or SwitchEmitter.from_environment(mode=self.config.emit_mode)
        self._clock = clock or _utcnow
        self._case_insensitive = is_case_insensitive_fs(repo.common_dir)

        self.registry = Registry()
        self._live: Dict[str, GitWorktreeEntry] = {}
        self._view: List[WorktreeRecord] = []

    def _key(self, path: str) -> str:
        """Comparison key for a path on this repository's filesystem."""
        return normalize_path(path, self._case_insensitive)

    def reconcile(self) -> List[WorktreeRecord]:
        """Merge registry records with git's live worktree list.

        - record with a live, existing directory: active (branch taken from git)
        - record without one: orphaned, kept until removed
        - live worktree without a record: untracked, with a synthesized name

        Returns:
            Unsorted reconciled view; also kept on self for later lookups
        """
        live_entries = self.worktree_service.list_worktrees()
        self.registry = self.registry_service.load()

        self._live = {}
        for entry in live_entries:
            if entry.is_bare:
                continue
            self._live[self._key(entry.path)] = entry

        view: List[WorktreeRecord] = []
        claimed: Set[str] = set()

        for record in self.registry:
            key = self._key(record.path)
            entry = self._live.get(key)
            if entry is not None:
                claimed.add(key)
            if entry is not None and os.path.isdir(entry.path):
                record.status = WorktreeStatus.ACTIVE
                record.branch = entry.branch
                record.head = entry.head
                record.is_main = entry.is_main
            else:
                record.status = WorktreeStatus.ORPHANED
                logger.debug(f"Registry entry '{record.name}' is orphaned ({record.path})")
            view.append(record)

        taken = set(self.registry.names())
        for key, entry in self._live.items():
            if key in claimed:
                continue
            if not os.path.isdir(entry.path):
                logger.debug(f"Untracked worktree {entry.path} has no directory; `prune` removes it")
            name = self._synthesize_name(entry, taken)
            taken.add(name)
            view.append(
                WorktreeRecord(
                    name=name,
                    path=normalize_path(entry.path),
                    branch=entry.branch,
                    head=entry.head,
                    created_at=None,
                    last_used_at=None,
                    status=WorktreeStatus.UNTRACKED,
                    is_main=entry.is_main,
                )
            )

        self._view = view
        return view

    @staticmethod
    def _synthesize_name(entry: GitWorktreeEntry, taken: Set[str]) -> str:
        """Display name for an untracked worktree, unique within taken."""
        if entry.branch:
            base = slugify(entry.branch)
        elif entry.head:
            base = f"detached-{entry.head[:7]}"
        else:
            base = slugify(Path(entry.path).name)

        name = base
        suffix = 2
        while name in taken:
            name = f"{base}-{suffix}"
            suffix += 1
        return name

    def _persist(self, operation: str, target: str, strict: bool = False) -> bool:
        """Save the registry after a mutation.

        When strict is False a failure only warns: the git side effect has
        already happened and the next reconciliation will see it.
        """
        try:
            self.registry_service.save(self.registry)
            return True
        except OSError as e:
            message = f"{operation} '{target}' succeeded but the registry could not be saved: {e}"
            if strict:
                raise RegistryError(operation, target, f"could not save registry: {e}")
            logger.warning(message)
            warnings.warn(PersistenceWarning(message), stacklevel=3)
            return False

    def list(self) -> List[WorktreeRecord]:
        """Reconciled view, most recently used first, ties by name.

        Worktrees whose directory exists also get their uncommitted change
        count.
        """
        view = sorted(self.reconcile(), key=lambda record: record.name)
        view.sort(key=lambda record: record.last_used_at or _NEVER, reverse=True)
        for record in view:
            if record.status != WorktreeStatus.ORPHANED and os.path.isdir(record.path):
                record.dirty_count = self._dirty_count(record)
        return view

    def _dirty_count(self, record: WorktreeRecord) -> Optional[int]:
        try:
            return self.worktree_service.dirty_count(record.path)
        except VcsError as e:
            logger.warning(f"Could not read status of '{record.name}': {e}")
            return None

    @staticmethod
    def _looks_like_path(reference: str) -> bool:
        """Only references written as paths are matched against paths."""
        if os.path.isabs(reference) or reference.startswith("~"):
            return True
        if reference in (os.curdir, os.pardir):
            return True
        return os.sep in reference or bool(os.altsep and os.altsep in reference)

    def resolve(self, reference: str) -> WorktreeRecord:
        """Find the worktree a name or path refers to.

        Names are compared ignoring case; two names that differ only in case
        make every spelling of them ambiguous. References that look like
        paths (absolute, containing a separator, ".", "..", "~...") are then
        matched as exact path, the worktree containing it, or worktrees whose
        path starts with it. Bare words never match by path.

        Raises:
            NotFound: nothing matches
            AmbiguousReference: more than one candidate and no single active one
        """
        view = self.reconcile()

        folded = [record for record in view if record.name.lower() == reference.lower()]
        if len(folded) > 1:
            # Case-only collisions get no precedence rule, not even an exact-case match
            raise AmbiguousReference(reference, sorted(record.name for record in folded))
        if folded:
            return folded[0]

        if not self._looks_like_path(reference):
            raise NotFound(reference)

        query = self._key(reference)
        keyed = [(self._key(record.path), record) for record in view]

        for key, record in keyed:
            if key == query:
                return record

        candidates: List[WorktreeRecord] = []
        containing = [(key, record) for key, record in keyed if is_within(query, key)]
        if containing:
            # Nested worktrees: the innermost one holds the path
            candidates.append(max(containing, key=lambda item: len(item[0]))[1])
        for key, record in keyed:
            if key.startswith(query) and record not in candidates:
                candidates.append(record)

        return self._pick(reference, candidates)

    @staticmethod
    def _pick(reference: str, candidates: List[WorktreeRecord]) -> WorktreeRecord:
        if not candidates:
            raise NotFound(reference)
        if len(candidates) == 1:
            return candidates[0]
        active = [record for record in candidates if record.status == WorktreeStatus.ACTIVE]
        if len(active) == 1:
            return active[0]
        raise AmbiguousReference(reference, sorted(record.name for record in candidates))

    def add(
        self,
        name: Optional[str] = None,
        path: Optional[str] = None,
        branch_spec: Optional[str] = None,
        base: Optional[str] = None,
    ) -> WorktreeRecord:
        """Create (or adopt) a worktree and register it under a name.

        Args:
            name: Registry name (defaults to the directory name)
            path: Worktree directory (defaults to <config root>/<name>)
            branch_spec: Branch or commit to check out (defaults to name)
            base: Start point when a new branch is created (defaults to config base)

        Returns:
            The new active record

        Raises:
            DuplicateName: name is already registered
            PathConflict: path belongs to a registered worktree or is not empty
            BranchConflict: branch is checked out elsewhere
            VcsError: git failed
        """
        if name is None and path is None and branch_spec is None:
            raise ValueError("add needs a path, a name or a branch")

        if name is None:
            name = Path(path).name if path else slugify(branch_spec)
        if not name or not name.strip() or "\n" in name:
            raise ValueError(f"invalid worktree name {name!r}")
        if branch_spec is None:
            branch_spec = name
        if path is None:
            path = str(self.config.worktree_path(self.repo, slugify(name)))

        self.reconcile()
        if name in self.registry:
            raise DuplicateName(name)

        target = normalize_path(path)
        key = self._key(target)
        owner = next((record for record in self._view if self._key(record.path) == key), None)
        now = self._clock()

        if owner is not None and owner.status == WorktreeStatus.UNTRACKED:
            record = WorktreeRecord(
                name=name,
                path=owner.path,
                branch=owner.branch,
                head=owner.head,
                created_at=now,
                last_used_at=now,
                status=WorktreeStatus.ACTIVE,
                is_main=owner.is_main,
            )
            self.registry.insert(record)
            logger.info(f"Adopted existing worktree {owner.path} as '{name}'")
            self._persist("add", name)
            return record
        if owner is not None:
            raise PathConflict("add", target, f"already registered as '{owner.name}' ({owner.status.value})")

        entry = self.worktree_service.create_worktree(target, branch_spec, base=base or self.config.base)
        record = WorktreeRecord(
            name=name,
            path=normalize_path(entry.path),
            branch=entry.branch,
            head=entry.head,
            created_at=now,
            last_used_at=now,
            status=WorktreeStatus.ACTIVE,
        )
        self.registry.insert(record)
        logger.info(f"Registered worktree '{name}' at {record.path}")
        self._persist("add", name)
        return record

    def switch_to(self, reference: str) -> WorktreeRecord:
        """Mark a worktree as used and emit its path for the shell.

        Raises:
            NotFound, AmbiguousReference: reference does not pick one worktree
            WorktreeNotActive: the worktree is orphaned or untracked
            EmissionError: the switch channel cannot be written
        """
        record = self.resolve(reference)
        if record.status == WorktreeStatus.UNTRACKED:
            raise WorktreeNotActive(record.name, record.status.value, f"adopt it with: git-workty add {record.path}")
        if record.status == WorktreeStatus.ORPHANED:
            raise WorktreeNotActive(record.name, record.status.value, f"remove it with: git-workty remove {record.name}")

        self.registry.touch(record.name, self._clock())
        self._persist("switch", record.name)
        self.emitter.emit(record.path)
        logger.info(f"Switched to '{record.name}' ({record.path})")
        return record

    def remove(self, reference: str, force: bool = False) -> WorktreeRecord:
        """Remove a worktree and drop its registry record.

        Orphaned records are accepted and only their stale git metadata is
        pruned. A dirty worktree without force is refused before anything
        changes; any other git failure still drops the record.

        Raises:
            DirtyWorktree: uncommitted changes and force is False
            VcsError: git failed, or the target is the main worktree
        """
        record = self.resolve(reference)
        if record.is_main:
            raise VcsError("remove", record.path, "the main worktree cannot be removed")
        registered = self.registry.get(record.name) is record

        failure: Optional[WorktyError] = None
        try:
            if record.status == WorktreeStatus.ORPHANED or not os.path.isdir(record.path):
                if self._key(record.path) in self._live:
                    self.worktree_service.prune_stale()
            else:
                self.worktree_service.remove_worktree(record.path, force=force)
        except DirtyWorktree:
            raise
        except WorktyError as e:
            failure = e

        if registered:
            self.registry.remove(record.name)
            self._persist("remove", record.name)
            logger.info(f"Removed '{record.name}' from registry")

        if failure is not None:
            raise failure
        return record

    def rename(self, reference: str, new_name: str) -> WorktreeRecord:
        """Give a registered worktree a new name."""
        if not new_name or not new_name.strip() or "\n" in new_name:
            raise ValueError(f"invalid worktree name {new_name!r}")
        record = self.resolve(reference)
        if record.status == WorktreeStatus.UNTRACKED:
            raise WorktreeNotActive(record.name, record.status.value, f"adopt it with: git-workty add {record.path} --name {new_name}")
        if new_name == record.name:
            return record
        if new_name in self.registry:
            raise DuplicateName(new_name)

        renamed = self.registry.rename(record.name, new_name)
        self._persist("rename", new_name, strict=True)
        logger.info(f"Renamed '{record.name}' to '{new_name}'")
        return renamed

    def prune(self) -> List[WorktreeRecord]:
        """Prune git's stale metadata and drop all orphaned records.

        Returns:
            The records that were dropped
        """
        view = self.reconcile()
        self.worktree_service.prune_stale()

        removed = [record for record in view if record.status == WorktreeStatus.ORPHANED]
        for record in removed:
            self.registry.remove(record.name)
        if removed:
            self._persist("prune", ", ".join(record.name for record in removed))
        logger.info(f"Pruned {len(removed)} orphaned records")
        return removed

    def clean(self, dry_run: bool = False) -> Tuple[List[WorktreeRecord], List[WorktreeRecord]]:
        """Remove registered worktrees whose branch is merged into the base branch.

        Only active, registered, non-main worktrees on a branch other than
        the base are considered. Worktrees with uncommitted changes are
        skipped, never forced.

        Args:
            dry_run: Report what would be removed without touching anything

        Returns:
            (removed, skipped): merged worktrees removed (or that would be
            removed in a dry run), and merged worktrees left alone because
            they are dirty
        """
        base = self.config.base
        view = self.list()

        merged = [
            record for record in view
            if record.status == WorktreeStatus.ACTIVE
            and not record.is_main
            and self.registry.get(record.name) is record
            and record.branch
            and record.branch != base
            and self.repo.is_ancestor(record.branch, base)
        ]
        merged.sort(key=lambda record: record.name)

        removed: List[WorktreeRecord] = []
        skipped: List[WorktreeRecord] = []
        for record in merged:
            if record.dirty_count:
                logger.info(f"Skipping '{record.name}': {record.dirty_count} uncommitted changes")
                skipped.append(record)
            else:
                removed.append(record)

        if dry_run:
            return removed, skipped

        done: List[WorktreeRecord] = []
        try:
            for record in removed:
                try:
                    self.worktree_service.remove_worktree(record.path)
                except DirtyWorktree:
                    skipped.append(record)
                    continue
                self.registry.remove(record.name)
                done.append(record)
                logger.info(f"Cleaned merged worktree '{record.name}' ({record.branch})")
        finally:
            if done:
                self._persist("clean", ", ".join(record.name for record in done))
        return done, skipped


    def doctor(self) -> List[DoctorCheck]:
        """Run environment and consistency checks without raising."""
        checks = []

        git_path = shutil.which("git")
        checks.append(DoctorCheck("Git installed", git_path is not None, git_path or "git not found on PATH"))
        checks.append(DoctorCheck("Repository", True, str(self.repo.root)))

        try:
            registry = self.registry_service.load()
            checks.append(DoctorCheck(
                "Registry readable", True, f"{len(registry)} records in {self.registry_service.registry_file}"
            ))
        except WorktyError as e:
            checks.append(DoctorCheck("Registry readable", False, str(e)))
            return checks

        try:
            view = self.reconcile()
        except WorktyError as e:
            checks.append(DoctorCheck("Worktrees", False, str(e)))
            return checks

        counts = {status: 0 for status in WorktreeStatus}
        for record in view:
            counts[record.status] += 1
        detail = ", ".join(f"{count} {status.value}" for status, count in counts.items())
        orphaned = counts[WorktreeStatus.ORPHANED]
        if orphaned:
            detail += " (run `git-workty prune` to drop orphaned records)"
        checks.append(DoctorCheck("Worktrees", orphaned == 0, detail))
        return checks
