"""Configuration loading for depmirror."""

import json
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from .errors import ConfigError
from .remote import RemoteResolver

DEFAULT_CONFIG_PATH = "cfg.json"
COMMON_CODE_FOLDER = "Common Code"
DISABLED_PREFIX = "//"


class ErrorPolicy(str, Enum):
    """What to do when one discovered dependency fails."""

    FAIL_FAST = "fail"
    CONTINUE = "continue"


class RepoEntry(BaseModel):
    """A top-level repository to mirror."""

    model_config = ConfigDict(frozen=True)

    name: str
    language: Optional[str] = None
    branch: Optional[str] = None

    @property
    def disabled(self) -> bool:
        return self.name.startswith(DISABLED_PREFIX)


def _mapping_from_pairs(value):
    # Accept both {"from": "to"} and [{"from": ..., "to": ...}]
    if isinstance(value, list):
        pairs = {}
        for item in value:
            if not isinstance(item, dict) or "from" not in item or "to" not in item:
                raise ValueError("list entries must be objects with 'from' and 'to'")
            pairs[item["from"]] = item["to"]
        return pairs
    return value


class MirrorConfig(BaseModel):
    """Parsed configuration file."""

    output: str = "output"
    repo_language: Optional[str] = None
    repo_shortcuts: dict[str, str] = {}
    repo_redirects: dict[str, str] = {}
    repos: list[RepoEntry] = []
    on_error: ErrorPolicy = ErrorPolicy.FAIL_FAST
    nuget_packages: Optional[str] = None

    @field_validator("repo_shortcuts", "repo_redirects", mode="before")
    @classmethod
    def _accept_pair_lists(cls, value):
        return _mapping_from_pairs(value)

    @model_validator(mode="after")
    def _apply_default_language(self) -> "MirrorConfig":
        if self.repo_language:
            self.repos = [
                repo if repo.language else repo.model_copy(update={"language": self.repo_language})
                for repo in self.repos
            ]
        return self

    @property
    def output_path(self) -> Path:
        return Path(self.output)

    @property
    def common_code_path(self) -> Path:
        return self.output_path / COMMON_CODE_FOLDER

    @property
    def nuget_packages_path(self) -> Path:
        if self.nuget_packages:
            return Path(self.nuget_packages).expanduser()
        return Path.home() / ".nuget" / "packages"

    def resolver(self) -> RemoteResolver:
        return RemoteResolver(shortcuts=dict(self.repo_shortcuts), redirects=dict(self.repo_redirects))

    def local_repo(self, name: str) -> Path:
        """Local mirror folder for a repository: the output root plus the name's last segment."""
        pos = name.rfind("/")
        if pos <= 0 or pos == len(name) - 1:
            raise ConfigError(f"no local folder for repo {name!r}")
        return self.output_path / name[pos + 1:]


def load_config(path: str | Path = DEFAULT_CONFIG_PATH) -> MirrorConfig:
    """Load and validate a JSON configuration file."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {path}: {e}") from e

    try:
        return MirrorConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"invalid config {path}: {e}") from e
