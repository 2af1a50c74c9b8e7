"""Visual Studio .csproj package reference parsing."""

import os
import xml.etree.ElementTree as ET
from pathlib import Path

from .errors import ManifestError
from .models import PackageReference

PROJECT_EXTENSION = ".csproj"


def _local_name(tag: str) -> str:
    # Old-style projects put every element in the msbuild namespace.
    return tag.rsplit("}", 1)[-1]


def _attribute_or_child(element: ET.Element, name: str) -> str | None:
    value = element.get(name)
    if value:
        return value.strip()
    for child in element:
        if _local_name(child.tag) == name and child.text:
            return child.text.strip()
    return None


def is_test_project(relative_path: str) -> bool:
    return relative_path.lower().startswith("test")


def gather_projects(folder: str | Path) -> list[str]:
    """Relative paths of all non-test .csproj files below ``folder``, sorted."""
    root = Path(folder)
    projects = []
    for dirpath, _dirnames, filenames in os.walk(root):
        for filename in filenames:
            if not filename.lower().endswith(PROJECT_EXTENSION):
                continue
            relative = Path(dirpath, filename).relative_to(root).as_posix()
            if not is_test_project(relative):
                projects.append(relative)
    return sorted(projects)


def parse_package_references(content: str) -> list[PackageReference]:
    """Parse the PackageReference elements of one project file."""
    try:
        root = ET.fromstring(content)
    except ET.ParseError as e:
        raise ManifestError(f"invalid project XML: {e}") from e

    refs = []
    for element in root.iter():
        if _local_name(element.tag) != "PackageReference":
            continue
        include = _attribute_or_child(element, "Include")
        version = _attribute_or_child(element, "Version")
        if include and version:
            refs.append(PackageReference(include=include, version=version))
    return refs


def gather_references(folder: str | Path, projects: list[str]) -> list[PackageReference]:
    """Package references across projects, deduplicated in first-seen order."""
    seen: set[str] = set()
    refs: list[PackageReference] = []
    for project in projects:
        content = (Path(folder) / project).read_text(encoding="utf-8-sig")
        for ref in parse_package_references(content):
            if ref.key not in seen:
                seen.add(ref.key)
                refs.append(ref)
    return refs
