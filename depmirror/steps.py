"""Step abstraction: uniform units of work and their composition."""

import logging
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from .config import ErrorPolicy, MirrorConfig
from .errors import CheckoutError, CommandError
from .git import GitClient
from .models import StepOutput
from .remote import RemoteResolver, clone_with_fallback

logger = logging.getLogger(__name__)

ConditionFunc = Callable[[], bool]


@dataclass(frozen=True)
class StepContext:
    """Everything a step may read while it runs.

    Steps never write to the context; results flow back as StepOutput.
    """

    config: MirrorConfig
    common_code_folder: Path
    git: GitClient = field(default_factory=GitClient)
    policy: ErrorPolicy = ErrorPolicy.FAIL_FAST

    @property
    def resolver(self) -> RemoteResolver:
        return self.config.resolver()


class Step(ABC):
    """A unit of work. Raises a MirrorError on failure."""

    @abstractmethod
    def run(self, ctx: StepContext) -> StepOutput:
        raise NotImplementedError


def run_steps(ctx: StepContext, steps: Sequence[Step]) -> StepOutput:
    """Run steps in order, merging their outputs. The first failure propagates."""
    output = StepOutput()
    for step in steps:
        output.merge(step.run(ctx))
    return output


# ------------------------------------------------------------
# Conditions


@dataclass(frozen=True)
class IfConditionStep(Step):
    """Runs the steps only when the condition holds."""

    condition: ConditionFunc | None
    steps: Sequence[Step] = ()

    def run(self, ctx: StepContext) -> StepOutput:
        if self.condition is None or not self.condition():
            return StepOutput()
        return run_steps(ctx, self.steps)


@dataclass(frozen=True)
class OrConditionStep(Step):
    """Runs one of two step lists depending on the condition."""

    condition: ConditionFunc | None
    true_steps: Sequence[Step] = ()
    false_steps: Sequence[Step] = ()

    def run(self, ctx: StepContext) -> StepOutput:
        if self.condition is None:
            return StepOutput()
        if self.condition():
            return run_steps(ctx, self.true_steps)
        return run_steps(ctx, self.false_steps)


def on_path_exists(path: str | Path, steps: Sequence[Step]) -> IfConditionStep:
    return IfConditionStep(lambda: Path(path).exists(), tuple(steps))


def on_path_not_exists(path: str | Path, steps: Sequence[Step]) -> IfConditionStep:
    return IfConditionStep(lambda: not Path(path).exists(), tuple(steps))


# ------------------------------------------------------------
# Fetching


@dataclass(frozen=True)
class CloneStep(Step):
    """Clones a logical repository name, falling back across transports."""

    repo: str
    local_folder: Path

    def run(self, ctx: StepContext) -> StepOutput:
        logger.info("clone %s to %s", self.repo, self.local_folder)
        Path(self.local_folder).parent.mkdir(parents=True, exist_ok=True)
        url = clone_with_fallback(ctx.git, ctx.resolver, self.repo, str(self.local_folder))
        logger.debug("cloned %s from %s", self.repo, url)
        return StepOutput()


@dataclass(frozen=True)
class CheckoutStep(Step):
    local_folder: Path
    commit: str

    def run(self, ctx: StepContext) -> StepOutput:
        logger.info("checkout %s commit %s", self.local_folder, self.commit)
        try:
            ctx.git.checkout(self.local_folder, self.commit)
        except CommandError as e:
            raise CheckoutError(str(self.local_folder), self.commit, e) from e
        return StepOutput()


@dataclass(frozen=True)
class PullStep(Step):
    """Runs ``git pull`` in an existing checkout."""

    local_folder: Path

    def run(self, ctx: StepContext) -> StepOutput:
        logger.info("pull to %s", self.local_folder)
        ctx.git.pull(self.local_folder)
        return StepOutput()


@dataclass(frozen=True)
class CloneOrPullStep(Step):
    """Updates an existing checkout, or clones when there is none yet.

    Not emitted by the pipeline builder, which only clones missing folders.
    """

    repo: str
    local_folder: Path

    def run(self, ctx: StepContext) -> StepOutput:
        step = OrConditionStep(
            lambda: Path(self.local_folder).exists(),
            true_steps=(PullStep(self.local_folder),),
            false_steps=(CloneStep(self.repo, self.local_folder),),
        )
        return step.run(ctx)


# ------------------------------------------------------------
# Filesystem


@dataclass(frozen=True)
class CopyTreeStep(Step):
    """Copies the tree at ``source`` to ``destination``."""

    source: Path
    destination: Path

    def run(self, ctx: StepContext) -> StepOutput:
        logger.info("copy %s to %s", self.source, self.destination)
        Path(self.destination).parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(self.source, self.destination, dirs_exist_ok=True)
        return StepOutput()
