"""Thinning steps: strip files that are not needed for source review."""

import logging
import os
import shutil
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from . import detect
from .models import AuditReport, StepOutput
from .steps import Step, StepContext

logger = logging.getLogger(__name__)

GIT_FOLDERS = frozenset({".git"})
GIT_FILES = frozenset({".git", ".gitignore", ".gitattributes", ".gitmodules"})

BINARY_EXTENSIONS = frozenset({
    # images
    ".bmp", ".gif", ".ico", ".jpeg", ".jpg", ".png", ".psd", ".tga", ".tif", ".tiff", ".webp",
    # audio / video
    ".mp3", ".mp4", ".mov", ".ogg", ".wav",
    # archives
    ".7z", ".gz", ".rar", ".tar", ".tgz", ".zip",
    # compiled output
    ".a", ".class", ".dll", ".dylib", ".exe", ".jar", ".lib", ".o", ".obj", ".pdb", ".so",
    # fonts and documents
    ".otf", ".pdf", ".ttf", ".woff", ".woff2",
})

UNITY_EXTENSIONS = frozenset({
    ".anim", ".asset", ".controller", ".fbx", ".mat", ".meta", ".physicmaterial",
    ".prefab", ".shadergraph", ".unity", ".unitypackage",
})

VISUAL_STUDIO_FOLDERS = frozenset({".vs", "bin", "obj"})

THINNING_EXTENSIONS = {
    detect.GO: BINARY_EXTENSIONS,
    detect.CSHARP: BINARY_EXTENSIONS,
    detect.UNKNOWN: BINARY_EXTENSIONS | UNITY_EXTENSIONS,
}

THINNING_FOLDERS = {
    detect.CSHARP: VISUAL_STUDIO_FOLDERS,
}


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def _delete_matching(root: Path, file_names: Iterable[str], folder_names: Iterable[str],
                     extensions: Iterable[str]) -> int:
    file_names = frozenset(file_names)
    folder_names = frozenset(folder_names)
    extensions = frozenset(ext.lower() for ext in extensions)
    deleted = 0

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        for name in list(dirnames):
            if name in folder_names:
                logger.debug("delete folder %s", current / name)
                _remove(current / name)
                dirnames.remove(name)
                deleted += 1
        for name in filenames:
            if name in file_names or os.path.splitext(name)[1].lower() in extensions:
                logger.debug("delete file %s", current / name)
                _remove(current / name)
                deleted += 1
    return deleted


@dataclass(frozen=True)
class DeleteExtensionsStep(Step):
    """Deletes files by extension and folders by name."""

    folder: Path
    extensions: frozenset = frozenset()
    folder_names: frozenset = frozenset()

    def run(self, ctx: StepContext) -> StepOutput:
        root = Path(self.folder)
        if root.is_dir():
            deleted = _delete_matching(root, (), self.folder_names, self.extensions)
            logger.info("deleted %d entries from %s", deleted, root)
        return StepOutput()


@dataclass(frozen=True)
class DeleteGitStep(Step):
    """Deletes git metadata anywhere in the tree, including submodule pointers."""

    folder: Path

    def run(self, ctx: StepContext) -> StepOutput:
        root = Path(self.folder)
        if root.is_dir():
            deleted = _delete_matching(root, GIT_FILES, GIT_FOLDERS, ())
            logger.info("deleted %d git entries from %s", deleted, root)
        return StepOutput()


@dataclass(frozen=True)
class DeleteEmptyFoldersStep(Step):
    """Removes folders left empty, bottom-up. The root folder is kept."""

    folder: Path

    def run(self, ctx: StepContext) -> StepOutput:
        root = Path(self.folder)
        if not root.is_dir():
            return StepOutput()

        deleted = 0
        for dirpath, _dirnames, _filenames in os.walk(root, topdown=False):
            current = Path(dirpath)
            if current == root:
                continue
            # Children may have just been removed, so list again.
            if not any(current.iterdir()):
                current.rmdir()
                deleted += 1
        logger.info("deleted %d empty folders from %s", deleted, root)
        return StepOutput()


@dataclass(frozen=True)
class AuditStep(Step):
    """Reports what a folder holds and how much thinning would remove."""

    folder: Path
    extensions: frozenset = BINARY_EXTENSIONS | UNITY_EXTENSIONS

    def run(self, ctx: StepContext) -> StepOutput:
        root = Path(self.folder)
        report = AuditReport(folder=str(root), extensions=Counter())
        if root.is_dir():
            for dirpath, dirnames, filenames in os.walk(root):
                dirnames[:] = [d for d in dirnames if d not in GIT_FOLDERS]
                for name in filenames:
                    path = Path(dirpath, name)
                    ext = path.suffix.lower() or "<none>"
                    report.file_count += 1
                    report.extensions[ext] += 1
                    if ext in self.extensions:
                        report.thinnable_count += 1
                    try:
                        report.total_bytes += path.lstat().st_size
                    except OSError:
                        logger.debug("cannot stat %s", path)
        logger.info("audit %s: %d files, %d thinnable", root, report.file_count, report.thinnable_count)
        return StepOutput(audits=[report])


def thinning_steps(folder: Path, dialect: str) -> list[Step]:
    """Steps that strip a mirrored tree for the given dialect."""
    return [
        DeleteExtensionsStep(
            folder,
            THINNING_EXTENSIONS.get(dialect, THINNING_EXTENSIONS[detect.UNKNOWN]),
            THINNING_FOLDERS.get(dialect, frozenset()),
        ),
        DeleteGitStep(folder),
        DeleteEmptyFoldersStep(folder),
    ]
