"""Language-specific dependency discovery steps."""

import logging
from dataclasses import dataclass
from pathlib import Path

from . import detect
from .config import ErrorPolicy
from .errors import DependencyError, MirrorError
from .models import Dependency, StepOutput
from .parse_csproj import gather_projects, gather_references
from .parse_gomod import gather_manifests, parse_gomod, read_manifest
from .steps import CheckoutStep, CloneStep, CopyTreeStep, Step, StepContext, on_path_not_exists, run_steps
from .thinning import thinning_steps

logger = logging.getLogger(__name__)


def _handle_failure(ctx: StepContext, output: StepOutput, error: DependencyError) -> None:
    if ctx.policy is ErrorPolicy.CONTINUE:
        logger.warning("%s", error)
        output.add_error(error)
        return
    raise error


def dependency_folder(ctx: StepContext, dep: Dependency) -> Path:
    return ctx.common_code_folder / dep.key


def dependency_steps(ctx: StepContext, dep: Dependency) -> list[Step]:
    """Clone-and-checkout if not yet mirrored, then thin."""
    folder = dependency_folder(ctx, dep)
    fetch = [CloneStep(dep.repository, folder), CheckoutStep(folder, dep.version.checkout)]
    return [on_path_not_exists(folder, fetch), *thinning_steps(folder, detect.GO)]


@dataclass(frozen=True)
class GoModStep(Step):
    """Mirrors every dependency required by a checkout's top-level go.mod."""

    local_folder: Path

    def discover(self) -> list[Dependency]:
        deps: dict[str, Dependency] = {}
        for manifest in gather_manifests(self.local_folder):
            for dep in parse_gomod(read_manifest(manifest)):
                deps.setdefault(dep.key, dep)
        return [deps[key] for key in sorted(deps)]

    def run(self, ctx: StepContext) -> StepOutput:
        logger.info("gomod to %s", self.local_folder)
        output = StepOutput()
        deps = self.discover()
        if not deps:
            return output

        ctx.common_code_folder.mkdir(parents=True, exist_ok=True)
        for dep in deps:
            folder = dependency_folder(ctx, dep)
            try:
                output.merge(run_steps(ctx, dependency_steps(ctx, dep)))
            except (MirrorError, OSError) as e:
                _handle_failure(ctx, output, DependencyError(dep.key, dep.raw, str(folder), e))
        return output


@dataclass(frozen=True)
class VsPackagesStep(Step):
    """Copies the NuGet packages referenced by a folder's projects into the common code folder.

    Packages are taken from the local NuGet cache; nothing is downloaded.
    """

    folder: Path

    def run(self, ctx: StepContext) -> StepOutput:
        logger.info("vspackages on %s", self.folder)
        output = StepOutput()
        projects = gather_projects(self.folder)
        refs = gather_references(self.folder, projects)
        packages = ctx.config.nuget_packages_path

        for ref in refs:
            include = ref.include.lower()
            source = packages / include / ref.version
            destination = ctx.common_code_folder / "nuget" / include / ref.version
            try:
                if not source.exists():
                    raise MirrorError(f"vspackages source does not exist: {source}")
                output.merge(run_steps(ctx, [on_path_not_exists(destination, [CopyTreeStep(source, destination)])]))
            except (MirrorError, OSError) as e:
                _handle_failure(ctx, output, DependencyError(ref.key, ref.key, str(destination), e))
        return output
