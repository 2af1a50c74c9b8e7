"""Tests for dependency discovery steps."""

from unittest.mock import patch

import pytest

from depmirror.config import ErrorPolicy, MirrorConfig
from depmirror.discover import GoModStep, VsPackagesStep
from depmirror.errors import DependencyError, ManifestError
from depmirror.steps import StepContext
from depmirror.thinning import _remove

GOMOD = """module host/org/app

go 1.17

require (
\tgithub.com/pkg/errors v0.9.1
\tmodpkg/v2 v0.0.0-20210101000000-abcdef123456 // indirect
)
"""

CSPROJ = """<Project Sdk="Microsoft.NET.Sdk">
  <ItemGroup>
    <PackageReference Include="Newtonsoft.Json" Version="13.0.1" />
    <PackageReference Include="Serilog">
      <Version>2.10.0</Version>
    </PackageReference>
  </ItemGroup>
</Project>
"""


def make_context(tmp_path, git, **config):
    cfg = MirrorConfig(output=str(tmp_path / "out"), **config)
    return StepContext(config=cfg, common_code_folder=cfg.common_code_path, git=git, policy=cfg.on_error)


class TestGoModStep:
    """Test go.mod driven dependency mirroring."""

    def test_no_manifest_is_noop(self, tmp_path, make_git):
        git = make_git()
        output = GoModStep(tmp_path).run(make_context(tmp_path, git))
        assert output.ok
        assert git.calls == []

    def test_manifest_without_require_block_fails(self, tmp_path, make_git):
        (tmp_path / "go.mod").write_text("module a/b\n")
        with pytest.raises(ManifestError):
            GoModStep(tmp_path).run(make_context(tmp_path, make_git()))

    def test_non_utf8_manifest_is_typed(self, tmp_path, make_git):
        """Should raise ManifestError for undecodable go.mod bytes."""
        (tmp_path / "go.mod").write_bytes(b"module a/b\n\nrequire (\n\tx/y \xff v1.0.0\n)\n")
        with pytest.raises(ManifestError, match="not UTF-8"):
            GoModStep(tmp_path).run(make_context(tmp_path, make_git()))

    def test_clones_checks_out_and_thins(self, tmp_path, make_git):
        repo = tmp_path / "app"
        repo.mkdir()
        (repo / "go.mod").write_text(GOMOD)
        git = make_git(trees={
            "git@modpkg:v2.git": {"lib.go": "package lib", "logo.png": "png"},
        })
        ctx = make_context(tmp_path, git)

        GoModStep(repo).run(ctx)

        common = tmp_path / "out" / "Common Code"
        assert git.calls == [
            ("clone", "git@github.com:pkg/errors.git", str(common / "github.com/pkg/errors@v0.9.1")),
            ("checkout", str(common / "github.com/pkg/errors@v0.9.1"), "tags/v0.9.1"),
            ("clone", "git@modpkg:v2.git", str(common / "modpkg/v2@abcdef123456")),
            ("checkout", str(common / "modpkg/v2@abcdef123456"), "abcdef123456"),
        ]
        dep = common / "modpkg" / "v2@abcdef123456"
        assert (dep / "lib.go").exists()
        assert not (dep / "logo.png").exists()
        assert not (dep / ".git").exists()

    def test_existing_dependency_is_not_refetched(self, tmp_path, make_git):
        repo = tmp_path / "app"
        repo.mkdir()
        (repo / "go.mod").write_text(GOMOD)
        git = make_git()
        ctx = make_context(tmp_path, git)

        GoModStep(repo).run(ctx)
        first_calls = len(git.calls)
        GoModStep(repo).run(ctx)

        assert len(git.calls) == first_calls

    def test_fail_fast_wraps_dependency(self, tmp_path, make_git):
        repo = tmp_path / "app"
        repo.mkdir()
        (repo / "go.mod").write_text(GOMOD)
        git = make_git(checkout_failures={"tags/v0.9.1": "error: pathspec"})

        with pytest.raises(DependencyError) as excinfo:
            GoModStep(repo).run(make_context(tmp_path, git))

        assert excinfo.value.key == "github.com/pkg/errors@v0.9.1"
        # the failing dependency sorts first, so nothing after it ran
        assert [c[0] for c in git.calls] == ["clone", "checkout"]

    def test_continue_records_and_keeps_going(self, tmp_path, make_git):
        repo = tmp_path / "app"
        repo.mkdir()
        (repo / "go.mod").write_text(GOMOD)
        git = make_git(checkout_failures={"tags/v0.9.1": "error: pathspec"})

        output = GoModStep(repo).run(make_context(tmp_path, git, on_error=ErrorPolicy.CONTINUE))

        assert len(output.errors) == 1
        assert isinstance(output.errors[0], DependencyError)
        assert ("checkout", str(tmp_path / "out" / "Common Code" / "modpkg/v2@abcdef123456"), "abcdef123456") in git.calls


    def test_continue_records_filesystem_failure(self, tmp_path, make_git):
        """Should record a thinning OSError for one dependency and mirror the next."""
        repo = tmp_path / "app"
        repo.mkdir()
        (repo / "go.mod").write_text(GOMOD)
        git = make_git()

        def remove(path):
            if "errors@v0.9.1" in str(path):
                raise PermissionError(13, "Permission denied", str(path))
            _remove(path)

        with patch("depmirror.thinning._remove", side_effect=remove):
            output = GoModStep(repo).run(make_context(tmp_path, git, on_error=ErrorPolicy.CONTINUE))

        assert [e.key for e in output.errors] == ["github.com/pkg/errors@v0.9.1"]
        assert isinstance(output.errors[0].cause, PermissionError)
        dep = tmp_path / "out" / "Common Code" / "modpkg" / "v2@abcdef123456"
        assert dep.is_dir()
        assert not (dep / ".git").exists()


class TestVsPackagesStep:
    """Test NuGet package copying from the local cache."""

    def make_cache(self, tmp_path):
        cache = tmp_path / "nuget"
        for include, version in (("newtonsoft.json", "13.0.1"), ("serilog", "2.10.0")):
            folder = cache / include / version / "lib"
            folder.mkdir(parents=True)
            (folder / f"{include}.dll").write_text("dll")
        return cache

    def test_copies_referenced_packages(self, tmp_path, make_git):
        cache = self.make_cache(tmp_path)
        repo = tmp_path / "tool"
        (repo / "src").mkdir(parents=True)
        (repo / "src" / "Tool.csproj").write_text(CSPROJ)
        ctx = make_context(tmp_path, make_git(), nuget_packages=str(cache))

        output = VsPackagesStep(repo).run(ctx)

        assert output.ok
        common = tmp_path / "out" / "Common Code" / "nuget"
        assert (common / "newtonsoft.json" / "13.0.1" / "lib" / "newtonsoft.json.dll").exists()
        assert (common / "serilog" / "2.10.0" / "lib" / "serilog.dll").exists()

    def test_missing_package_fails(self, tmp_path, make_git):
        repo = tmp_path / "tool"
        repo.mkdir()
        (repo / "Tool.csproj").write_text(CSPROJ)
        ctx = make_context(tmp_path, make_git(), nuget_packages=str(tmp_path / "empty"))

        with pytest.raises(DependencyError, match="does not exist"):
            VsPackagesStep(repo).run(ctx)

    def test_missing_package_recorded_in_continue_mode(self, tmp_path, make_git):
        repo = tmp_path / "tool"
        repo.mkdir()
        (repo / "Tool.csproj").write_text(CSPROJ)
        ctx = make_context(tmp_path, make_git(), nuget_packages=str(tmp_path / "empty"), on_error="continue")

        output = VsPackagesStep(repo).run(ctx)

        assert len(output.errors) == 2
