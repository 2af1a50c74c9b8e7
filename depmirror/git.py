"""Thin wrapper over the git command line."""

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from .errors import CommandError

logger = logging.getLogger(__name__)


def run_command(
    command: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Run a command to completion, raising CommandError on a non-zero exit."""
    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    logger.debug("running %s (cwd=%s)", " ".join(command), cwd)
    result = subprocess.run(
        list(command),
        cwd=str(cwd) if cwd else None,
        env=process_env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise CommandError(command, result.returncode, result.stdout, result.stderr)
    return result


class GitClient:
    """Runs clone, checkout and pull.

    Commands block until git exits; there is no timeout.
    """

    def __init__(self, executable: str = "git", env: Mapping[str, str] | None = None):
        self.executable = executable
        # Fail instead of prompting for HTTPS credentials.
        self.env = {"GIT_TERMINAL_PROMPT": "0", **(env or {})}

    def _run(self, *args: str, cwd: str | Path | None = None) -> subprocess.CompletedProcess:
        return run_command([self.executable, *args], cwd=cwd, env=self.env)

    def clone(self, url: str, folder: str | Path) -> None:
        self._run("clone", url, str(folder))

    def checkout(self, folder: str | Path, ref: str) -> None:
        self._run("checkout", ref, cwd=folder)

    def pull(self, folder: str | Path) -> None:
        self._run("pull", cwd=folder)
