"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from depmirror.config import MirrorConfig
from depmirror.errors import CommandError
from depmirror.steps import StepContext


class FakeGit:
    """Stands in for GitClient without touching the network.

    ``trees`` maps a clone URL to the files the clone should contain;
    ``failures`` maps a URL to the stderr git would print when it fails.
    """

    def __init__(self, trees=None, failures=None, checkout_failures=None):
        self.trees = trees or {}
        self.failures = failures or {}
        self.checkout_failures = checkout_failures or {}
        self.calls = []

    def clone(self, url, folder):
        self.calls.append(("clone", url, str(folder)))
        if url in self.failures:
            raise CommandError(["git", "clone", url, str(folder)], 128, "", self.failures[url])
        root = Path(folder)
        root.mkdir(parents=True)
        (root / ".git").mkdir()
        (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
        for relative, content in self.trees.get(url, {}).items():
            target = root / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)

    def checkout(self, folder, ref):
        self.calls.append(("checkout", str(folder), ref))
        if ref in self.checkout_failures:
            raise CommandError(["git", "checkout", ref], 1, "", self.checkout_failures[ref])

    def pull(self, folder):
        self.calls.append(("pull", str(folder)))

    def clone_urls(self):
        return [call[1] for call in self.calls if call[0] == "clone"]


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def sample_gomod():
    """Sample go.mod content for testing."""
    return """module host/org/app

go 1.16

require (
\tgithub.com/pkg/errors v0.9.1
\tgolang.org/x/xerrors v0.0.0-20200804184101-5ec99f83aff1 // indirect
\tgithub.com/stretchr/testify v1.7.0
)
"""


@pytest.fixture
def mirror_config(tmp_path):
    return MirrorConfig(output=str(tmp_path / "out"))


@pytest.fixture
def step_context(mirror_config, fake_git):
    return StepContext(
        config=mirror_config,
        common_code_folder=mirror_config.common_code_path,
        git=fake_git,
    )


@pytest.fixture
def make_git():
    """Factory for FakeGit instances with scripted trees and failures."""
    return FakeGit
