"""Core data models for depmirror."""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

# Joins a repository to its version identity in dedup keys and folder names.
IDENTITY_SEPARATOR = "@"


class VersionKind(str, Enum):
    """Shape of a manifest version."""

    TAG = "tag"  # v1.36.29
    COMMIT = "commit"  # v0.0.0-20200922220541-2c3bb06c6054


@dataclass(frozen=True)
class Version:
    """A decoded manifest version."""

    kind: VersionKind
    full: str  # the token as written in the manifest
    id: str  # stable identity used for dedup and folder names

    @property
    def checkout(self) -> str:
        """The git reference that checks out this version."""
        if self.kind is VersionKind.TAG:
            return f"tags/{self.id}"
        return self.id


@dataclass(frozen=True)
class Dependency:
    """A single dependency declared in a manifest."""

    repository: str
    version: Version
    raw: str

    @property
    def key(self) -> str:
        return f"{self.repository}{IDENTITY_SEPARATOR}{self.version.id}"


@dataclass(frozen=True)
class PackageReference:
    """A package reference declared in a Visual Studio project file."""

    include: str
    version: str

    @property
    def key(self) -> str:
        return f"{self.include}{IDENTITY_SEPARATOR}{self.version}"


@dataclass
class AuditReport:
    """Read-only summary of a folder's contents."""

    folder: str
    file_count: int = 0
    total_bytes: int = 0
    thinnable_count: int = 0
    extensions: Counter = field(default_factory=Counter)

    def top_extensions(self, limit: int = 5) -> list[tuple[str, int]]:
        return self.extensions.most_common(limit)


@dataclass
class StepOutput:
    """Result of running one or more steps.

    Soft errors are only recorded here when the error policy allows the run
    to continue past a failure; fatal failures are raised instead.
    """

    errors: list[Exception] = field(default_factory=list)
    audits: list[AuditReport] = field(default_factory=list)

    def add_error(self, error: Exception) -> None:
        self.errors.append(error)

    def merge(self, other: "StepOutput") -> "StepOutput":
        self.errors.extend(other.errors)
        self.audits.extend(other.audits)
        return self

    @property
    def ok(self) -> bool:
        return not self.errors
