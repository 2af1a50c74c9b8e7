"""Go go.mod parsing and pseudo-version decoding."""

from pathlib import Path

from .errors import ManifestError, VersionFormatError
from .models import Dependency, Version, VersionKind

MANIFEST_NAME = "go.mod"
REQUIRE_OPEN = "require ("
REQUIRE_CLOSE = ")"
INCOMPATIBLE_SUFFIX = "+incompatible"


def _strip_incompatible(value: str) -> str:
    if value.endswith(INCOMPATIBLE_SUFFIX):
        return value[: -len(INCOMPATIBLE_SUFFIX)]
    return value


def decode_version(token: str) -> Version:
    """Decode a go.mod version token.

    Formats:
    * version tag: "v1.36.29" (optionally suffixed with "+incompatible")
    * commit: "v0.0.0-20200922220541-2c3bb06c6054" (suffix allowed here too)
    """
    if not token.startswith("v"):
        raise VersionFormatError(token)

    segments = token.split("-")
    if len(segments) == 1:
        return Version(VersionKind.TAG, token, _strip_incompatible(token))
    if len(segments) == 3:
        return Version(VersionKind.COMMIT, token, _strip_incompatible(segments[2]))

    raise VersionFormatError(token)


def require_block(content: str) -> list[str]:
    """Return the raw lines inside every ``require ( ... )`` block."""
    lines: list[str] = []
    found = False
    in_block = False

    for line in content.splitlines():
        marker = line.rstrip()
        if in_block:
            if marker == REQUIRE_CLOSE:
                in_block = False
                continue
            lines.append(line)
        elif marker == REQUIRE_OPEN:
            found = True
            in_block = True

    if not found:
        raise ManifestError("malformed manifest: no require block")
    if in_block:
        raise ManifestError("malformed manifest: require block is never closed")
    return lines


def parse_dependency(raw: str) -> Dependency:
    """Build a dependency from one require-block line."""
    fields = raw.split()
    if len(fields) < 2:
        raise ManifestError(f"malformed manifest entry: {raw!r}")
    return Dependency(repository=fields[0], version=decode_version(fields[1]), raw=raw)


def parse_gomod(content: str) -> list[Dependency]:
    """Parse go.mod content into dependencies, deduplicated and sorted by key."""
    deps: dict[str, Dependency] = {}
    for raw in require_block(content):
        dep = parse_dependency(raw)
        deps.setdefault(dep.key, dep)
    return [deps[key] for key in sorted(deps)]


def read_manifest(path: str | Path) -> str:
    """Read a go.mod as UTF-8 text."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"cannot read manifest {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ManifestError(f"malformed manifest: {path} is not UTF-8 text: {e}") from e


def gather_manifests(folder: str | Path) -> list[Path]:
    """Top-level go.mod files of a checkout. Subdirectories are not searched."""
    path = Path(folder) / MANIFEST_NAME
    return [path] if path.is_file() else []
