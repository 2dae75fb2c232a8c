"""Pytest fixtures for git-workty tests"""
import io
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import git
import pytest

from git_workty.config import Config
from git_workty.core import WorktreeManager
from git_workty.services.git.repository import GitRepo
from git_workty.services.switch_service import SwitchEmitter


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def git_repo(temp_dir):
    """Create a real Git repository for testing."""
    repo_path = temp_dir / "test_repo"
    repo_path.mkdir()

    # Initialize repository
    repo = git.Repo.init(repo_path)

    # Configure git user for commits
    repo.config_writer().set_value("user", "name", "Test User").release()
    repo.config_writer().set_value("user", "email", "test@example.com").release()

    # Create initial commit on main branch
    test_file = repo_path / "README.md"
    test_file.write_text("# Test Repository\n")
    repo.index.add(["README.md"])
    repo.index.commit("Initial commit")

    # Rename master to main if needed
    repo.git.branch('-M', 'main')

    yield repo

    # Cleanup
    repo.close()


@pytest.fixture
def git_repo_with_branches(git_repo):
    """Create a Git repository with a couple of extra branches."""
    repo = git_repo
    repo_path = Path(repo.working_dir)

    repo.git.checkout('-b', 'feature/existing')
    (repo_path / "feature.txt").write_text("Feature content\n")
    repo.index.add(["feature.txt"])
    repo.index.commit("Add feature")

    repo.git.checkout('main')
    repo.git.branch('bugfix')

    yield repo


@pytest.fixture
def workty_repo(git_repo):
    """GitRepo locations for the test repository."""
    return GitRepo.discover(git_repo.working_dir)


@pytest.fixture
def config(temp_dir):
    """Configuration that keeps default worktree locations inside temp_dir."""
    return Config(root=str(temp_dir / "worktrees"))


@pytest.fixture
def clock():
    """Deterministic clock that advances one minute per call."""
    state = {"now": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)}

    def tick():
        state["now"] += timedelta(minutes=1)
        return state["now"]

    return tick


@pytest.fixture
def switch_stream():
    """In-memory stream receiving switch output."""
    return io.StringIO()


@pytest.fixture
def manager(workty_repo, config, switch_stream, clock):
    """WorktreeManager bound to the test repository."""
    emitter = SwitchEmitter(stream=switch_stream)
    return WorktreeManager(workty_repo, config, emitter=emitter, clock=clock)
