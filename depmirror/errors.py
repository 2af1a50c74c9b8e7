"""Failure types raised by the mirroring pipeline."""

from collections.abc import Sequence


class MirrorError(Exception):
    """Base class for every failure the pipeline reports."""


class ConfigError(MirrorError):
    """Raised when the configuration is unreadable or describes an impossible layout."""


class ManifestError(MirrorError):
    """Raised when a dependency manifest violates its grammar."""


class VersionFormatError(ManifestError):
    """Raised when a manifest version token has an unrecognized shape."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"unrecognized version format: {token!r}")


class CommandError(MirrorError):
    """Raised when an external command exits with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int, stdout: str, stderr: str):
        self.command = list(command)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"command {' '.join(self.command)} failed with exit code {returncode} "
            f"output: {self.output.strip()}"
        )

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as diagnostics are split across both."""
        return (self.stdout or "") + (self.stderr or "")


class FetchError(MirrorError):
    """Base class for clone and checkout failures."""


class CloneError(FetchError):
    """Raised when every transport failed to clone a repository."""

    def __init__(self, repo: str, folder: str, attempts: list[str], cause: CommandError):
        self.repo = repo
        self.folder = folder
        self.attempts = attempts
        self.cause = cause
        super().__init__(
            f"clone {repo} to {folder} failed after trying {', '.join(attempts)}: {cause}"
        )


class CheckoutError(FetchError):
    """Raised when a checkout of a revision fails."""

    def __init__(self, folder: str, ref: str, cause: CommandError):
        self.folder = folder
        self.ref = ref
        self.cause = cause
        super().__init__(f"checkout {ref} in {folder} failed: {cause}")


class DependencyError(MirrorError):
    """Wraps any failure while mirroring one discovered dependency."""

    def __init__(self, key: str, raw: str, folder: str, cause: Exception):
        self.key = key
        self.raw = raw
        self.folder = folder
        self.cause = cause
        super().__init__(f"dependency {key} ({raw.strip()}) to {folder}: {cause}")
