"""Switch service: hands the target directory back to the invoking shell.

A process cannot change its parent's working directory, so `switch` only
writes one line describing the target and leaves the `cd` to the shell
function installed by `git-workty init`.
"""
import os
import shlex
import sys
from pathlib import Path
from typing import Optional, TextIO, Union

from git_workty.constants import CD_FILE_ENV, EMIT_MODES
from git_workty.exceptions import EmissionError
from git_workty.logging_config import get_logger

logger = get_logger(__name__)


class SwitchEmitter:
    """Writes a single "change to this directory" line.

    The line goes to cd_file when one is given (the shell integration passes a
    temp file through GIT_WORKTY_CD_FILE), otherwise to stream, which defaults
    to stdout. Nothing else is ever written to that channel.
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        cd_file: Optional[Union[str, Path]] = None,
        mode: str = "path",
    ):
        if mode not in EMIT_MODES:
            raise ValueError(f"mode must be one of {EMIT_MODES}, got '{mode}'")
        self.stream = stream
        self.cd_file = Path(cd_file) if cd_file else None
        self.mode = mode

    @classmethod
    def from_environment(cls, mode: str = "path") -> "SwitchEmitter":
        """Emitter that honours GIT_WORKTY_CD_FILE when the shell sets it."""
        return cls(cd_file=os.environ.get(CD_FILE_ENV) or None, mode=mode)

    def render(self, path: Union[str, Path]) -> str:
        """The exact line emit() would write, without the newline."""
        path = os.path.abspath(str(path))
        if "\n" in path or "\r" in path:
            raise EmissionError("switch", path, "path contains a line break")
        if self.mode == "command":
            return f"cd -- {shlex.quote(path)}"
        return path

    def emit(self, path: Union[str, Path]) -> str:
        """Write the switch line for path.

        Returns:
            The line that was written

        Raises:
            EmissionError: the output channel could not be written
        """
        line = self.render(path)
        if self.cd_file is not None:
            try:
                self.cd_file.write_text(line + "\n", encoding="utf-8")
            except OSError as e:
                raise EmissionError("switch", str(self.cd_file), str(e))
            logger.debug(f"Wrote switch target to {self.cd_file}")
            return line

        stream = self.stream if self.stream is not None else sys.stdout
        try:
            stream.write(line + "\n")
            stream.flush()
        except (OSError, ValueError) as e:
            raise EmissionError("switch", line, str(e))
        return line
