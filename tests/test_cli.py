"""Tests for the command-line interface"""
import json
import os
from unittest.mock import patch

import pytest

from git_workty.cli.args import create_parser
from git_workty.cli.main import main


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, temp_dir):
    """Keep user config and the shell hand-off file out of the tests."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.delenv("GIT_WORKTY_CD_FILE", raising=False)


@pytest.fixture
def run(git_repo):
    """Run the CLI against the test repository."""
    def _run(*args):
        return main(["-C", git_repo.working_dir, *args])
    return _run


@pytest.fixture
def feature_path(temp_dir):
    return str(temp_dir / "feature")


class TestArgumentParsing:
    """Test the argument parser."""

    def test_add_arguments(self):
        args = create_parser().parse_args(["add", "../wt", "--name", "wt", "--branch", "b", "--print-path"])

        assert args.command == "add"
        assert args.path == "../wt"
        assert args.name == "wt"
        assert args.branch == "b"
        assert args.print_path is True

    def test_global_options(self):
        args = create_parser().parse_args(["-C", "/repo", "--debug", "list", "--json"])

        assert args.repo_dir == "/repo"
        assert args.debug is True
        assert args.json is True

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert capsys.readouterr().out.startswith("git-workty ")

    def test_unknown_option(self, capsys):
        assert main(["list", "--bogus"]) == 2

    def test_no_command(self, capsys):
        assert main([]) == 2
        assert "usage:" in capsys.readouterr().err

    def test_help_topic(self, capsys):
        assert main(["help", "switch"]) == 0
        assert "--command" in capsys.readouterr().out

    def test_help_overview(self, capsys):
        assert main(["help"]) == 0
        assert "EXAMPLES" in capsys.readouterr().out

    def test_help_unknown_topic(self, capsys):
        assert main(["help", "teleport"]) == 2

    def test_init_prints_script(self, capsys):
        assert main(["init", "zsh"]) == 0
        assert "wcd()" in capsys.readouterr().out

    def test_completions_prints_script(self, capsys):
        assert main(["completions", "zsh"]) == 0
        assert capsys.readouterr().out.startswith("#compdef git-workty")

    def test_completions_unknown_shell(self, capsys):
        assert main(["completions", "powershell"]) == 2


class TestCommands:
    """Test commands end to end against a real repository."""

    def test_add_then_switch(self, run, capsys, feature_path):
        """Test switch writes exactly the path on stdout."""
        assert run("add", feature_path, "--name", "feature", "--branch", "feature-branch") == 0
        assert "Created worktree" in capsys.readouterr().err

        assert run("switch", "feature") == 0

        captured = capsys.readouterr()
        assert captured.out == feature_path + "\n"

    def test_switch_command_mode(self, run, capsys, feature_path):
        run("add", feature_path, "--name", "feature")
        capsys.readouterr()

        assert run("switch", "feature", "--command") == 0
        assert capsys.readouterr().out == f"cd -- {feature_path}\n"

    def test_switch_to_cd_file(self, run, capsys, feature_path, temp_dir, monkeypatch):
        """Test the shell hand-off file replaces stdout."""
        run("add", feature_path, "--name", "feature")
        capsys.readouterr()
        cd_file = temp_dir / "cd-target"
        monkeypatch.setenv("GIT_WORKTY_CD_FILE", str(cd_file))

        assert run("go", "feature") == 0

        assert capsys.readouterr().out == ""
        assert cd_file.read_text() == feature_path + "\n"

    def test_add_print_path(self, run, capsys, feature_path):
        assert run("add", feature_path, "--print-path") == 0
        assert capsys.readouterr().out == feature_path + "\n"

    def test_add_relative_to_repo_dir(self, run, capsys, temp_dir):
        """Test relative paths are taken from the -C directory."""
        assert run("add", "../relative", "--print-path") == 0
        assert capsys.readouterr().out == str(temp_dir / "relative") + "\n"

    def test_list_json(self, run, capsys, feature_path, git_repo):
        run("add", feature_path, "--name", "feature")
        capsys.readouterr()

        assert run("list", "--json") == 0

        data = json.loads(capsys.readouterr().out)
        statuses = {item["name"]: item["status"] for item in data["worktrees"]}
        assert statuses == {"feature": "active", "main": "untracked"}

    def test_list_json_dirty_count(self, run, capsys, feature_path):
        run("add", feature_path, "--name", "feature")
        capsys.readouterr()
        run("list", "--json")
        first = {item["name"]: item["dirty_count"] for item in json.loads(capsys.readouterr().out)["worktrees"]}
        assert first["feature"] == 0

        with open(f"{feature_path}/wip.txt", "w") as f:
            f.write("wip\n")
        run("list", "--json")

        counts = {item["name"]: item["dirty_count"] for item in json.loads(capsys.readouterr().out)["worktrees"]}
        assert counts["feature"] == 1

    def test_list_table(self, run, capsys, feature_path):
        run("add", feature_path, "--name", "feature")
        capsys.readouterr()

        assert run("ls") == 0

        out = capsys.readouterr().out
        assert "feature" in out
        assert "1 active, 0 orphaned, 1 untracked" in out

    def test_switch_not_found(self, run, capsys):
        assert run("switch", "missing") == 9
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error:" in captured.err

    def test_add_duplicate_name(self, run, capsys, feature_path, temp_dir):
        run("add", feature_path, "--name", "feature")

        assert run("add", str(temp_dir / "other"), "--name", "feature") == 8

    def test_remove_dirty(self, run, capsys, feature_path):
        run("add", feature_path, "--name", "feature")
        with open(f"{feature_path}/wip.txt", "w") as f:
            f.write("wip\n")

        assert run("remove", "feature") == 7
        assert run("rm", "feature", "--force") == 0

    def test_rename(self, run, capsys, feature_path):
        run("add", feature_path, "--name", "feature")

        assert run("rename", "feature", "login") == 0
        capsys.readouterr()
        assert run("switch", "login") == 0
        assert capsys.readouterr().out == feature_path + "\n"

    def test_prune(self, run, capsys):
        assert run("prune") == 0
        assert "No orphaned worktrees" in capsys.readouterr().err

    def test_doctor(self, run, capsys):
        assert run("doctor") == 0
        assert "Registry readable" in capsys.readouterr().err

    def test_doctor_keeps_stdout_clean(self, run, capsys):
        run("doctor")
        assert capsys.readouterr().out == ""

    def test_clean_dry_run_then_clean(self, run, capsys, feature_path):
        """Test a merged worktree is only reported by a dry run, then removed."""
        run("add", feature_path, "--name", "feature")
        capsys.readouterr()

        assert run("clean", "--dry-run") == 0
        assert "Dry run: would remove feature" in capsys.readouterr().err
        assert os.path.isdir(feature_path)

        assert run("clean") == 0
        assert "Removed feature" in capsys.readouterr().err
        assert not os.path.exists(feature_path)

    def test_clean_nothing_merged(self, run, capsys):
        assert run("clean") == 0
        assert "No worktrees merged into main" in capsys.readouterr().err

    def test_not_a_repository(self, temp_dir, capsys):
        plain = temp_dir / "plain"
        plain.mkdir()

        assert main(["-C", str(plain), "list"]) == 3

    def test_invalid_config(self, run, git_repo, capsys):
        with open(f"{git_repo.working_dir}/workty.toml", "w") as f:
            f.write("emit_mode = 'eval'\n")

        assert run("list") == 15

    def test_persistence_warning(self, run, capsys, feature_path):
        """Test a failed registry save is reported but not fatal."""
        with patch("git_workty.services.registry_service.RegistryService.save", side_effect=OSError("read-only")):
            assert run("add", feature_path, "--name", "feature") == 0

        assert "Warning:" in capsys.readouterr().err

    def test_usage_error(self, run, capsys):
        assert run("rename", "main", " ") == 2
