"""Tests for the switch emitter and shell integration"""
import io
from unittest.mock import Mock

import pytest

from git_workty.exceptions import EmissionError
from git_workty.services.switch_service import SwitchEmitter
from git_workty.shell import completion_script, init_script


class TestSwitchEmitter:
    """Test emission of the switch target."""

    def test_emit_path_to_stream(self):
        stream = io.StringIO()
        emitter = SwitchEmitter(stream=stream)

        line = emitter.emit("/work/feature")

        assert line == "/work/feature"
        assert stream.getvalue() == "/work/feature\n"

    def test_emit_command_mode_quotes(self):
        """Test command mode produces a shell-safe cd."""
        stream = io.StringIO()
        emitter = SwitchEmitter(stream=stream, mode="command")

        emitter.emit("/work/my feature")

        assert stream.getvalue() == "cd -- '/work/my feature'\n"

    def test_emit_to_cd_file(self, temp_dir):
        """Test the cd file receives the line and the stream stays empty."""
        stream = io.StringIO()
        cd_file = temp_dir / "cd"
        emitter = SwitchEmitter(stream=stream, cd_file=cd_file)

        emitter.emit(temp_dir)

        assert cd_file.read_text() == f"{temp_dir}\n"
        assert stream.getvalue() == ""

    def test_from_environment(self, monkeypatch, temp_dir):
        monkeypatch.setenv("GIT_WORKTY_CD_FILE", str(temp_dir / "target"))

        emitter = SwitchEmitter.from_environment()

        assert emitter.cd_file == temp_dir / "target"
        assert emitter.mode == "path"

    def test_from_environment_unset(self, monkeypatch):
        monkeypatch.delenv("GIT_WORKTY_CD_FILE", raising=False)

        assert SwitchEmitter.from_environment().cd_file is None

    def test_render_is_deterministic(self):
        emitter = SwitchEmitter(stream=io.StringIO())

        assert emitter.render("/work/a") == emitter.render("/work/a")

    def test_path_with_newline(self):
        stream = io.StringIO()

        with pytest.raises(EmissionError):
            SwitchEmitter(stream=stream).emit("/work/bad\nname")

        assert stream.getvalue() == ""

    def test_closed_stream(self):
        """Test a closed stdout becomes an EmissionError."""
        stream = io.StringIO()
        stream.close()

        with pytest.raises(EmissionError):
            SwitchEmitter(stream=stream).emit("/work/a")

    def test_broken_pipe(self):
        stream = Mock()
        stream.write.side_effect = BrokenPipeError("pipe closed")

        with pytest.raises(EmissionError):
            SwitchEmitter(stream=stream).emit("/work/a")

    def test_unwritable_cd_file(self, temp_dir):
        emitter = SwitchEmitter(cd_file=temp_dir / "missing-dir" / "cd")

        with pytest.raises(EmissionError):
            emitter.emit("/work/a")

    def test_invalid_mode(self):
        with pytest.raises(ValueError):
            SwitchEmitter(mode="eval")


class TestInitScript:
    """Test the generated shell integration."""

    @pytest.mark.parametrize("shell", ["bash", "zsh"])
    def test_posix_script(self, shell):
        script = init_script(shell)

        assert "GIT_WORKTY_CD_FILE=" in script
        assert "wcd()" in script
        assert "wnew()" in script
        assert "add --print-path" in script
        assert f"init {shell}" in script

    def test_fish_script(self):
        script = init_script("fish")

        assert "function wcd" in script
        assert "env GIT_WORKTY_CD_FILE=" in script
        assert "{" not in script

    def test_unsupported_shell(self):
        with pytest.raises(ValueError):
            init_script("powershell")


class TestCompletionScript:
    """Test the generated tab completion."""

    def test_bash_completion(self):
        script = completion_script("bash")

        assert "complete -F _git_workty git-workty" in script
        assert "complete -F _workty_target wcd wgo" in script
        assert "switch|go|remove|rm|rename)" in script
        assert "clean" in script

    def test_zsh_completion(self):
        script = completion_script("zsh")

        assert script.startswith("#compdef git-workty")
        assert "compdef _git_workty git-workty" in script
        assert "list --json" in script

    def test_fish_completion(self):
        script = completion_script("fish")

        assert "function __workty_names" in script
        assert '-a "(__workty_names)"' in script
        assert "__fish_seen_subcommand_from switch go remove rm rename" in script

    def test_unsupported_shell(self):
        with pytest.raises(ValueError):
            completion_script("powershell")
