"""Builds and runs the mirroring pipeline from configuration."""

import logging

from . import detect
from .config import ErrorPolicy, MirrorConfig, RepoEntry
from .discover import GoModStep, VsPackagesStep
from .git import GitClient
from .models import StepOutput
from .steps import CheckoutStep, CloneStep, Step, StepContext, on_path_not_exists, run_steps
from .thinning import AuditStep, thinning_steps

logger = logging.getLogger(__name__)


def repo_steps(config: MirrorConfig, repo: RepoEntry) -> list[Step]:
    """Steps for one top-level repository: fetch, discover, thin."""
    local = config.local_repo(repo.name)

    # Clone only when missing. Thinning removes the git data, so re-fetching
    # means deleting the folder by hand.
    fetch: list[Step] = [CloneStep(repo.name, local)]
    if repo.branch:
        fetch.append(CheckoutStep(local, repo.branch))
    steps: list[Step] = [on_path_not_exists(local, fetch)]

    dialect = detect.identify(repo.language)
    if dialect == detect.GO:
        steps.append(GoModStep(local))
    elif dialect == detect.CSHARP:
        steps.append(AuditStep(local))
        steps.append(VsPackagesStep(local))
    else:
        steps.append(AuditStep(local))

    steps.extend(thinning_steps(local, dialect))
    return steps


def build_steps(config: MirrorConfig) -> list[Step]:
    steps: list[Step] = []
    for repo in config.repos:
        if repo.disabled:
            logger.info("skipping repo %s", repo.name)
            continue
        steps.extend(repo_steps(config, repo))
    return steps


def run(config: MirrorConfig, git: GitClient | None = None, policy: ErrorPolicy | None = None) -> StepOutput:
    """Mirror every configured repository.

    Returns the merged output of all steps. Fatal failures raise a
    MirrorError, leaving whatever was already written in place.
    """
    config.output_path.mkdir(parents=True, exist_ok=True)
    steps = build_steps(config)
    common = config.common_code_path
    common.mkdir(parents=True, exist_ok=True)

    ctx = StepContext(
        config=config,
        common_code_folder=common,
        git=git or GitClient(),
        policy=policy or config.on_error,
    )
    return run_steps(ctx, steps)
