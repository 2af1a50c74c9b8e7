"""Remote address resolution and the clone transport fallback."""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from .errors import CloneError, CommandError

logger = logging.getLogger(__name__)

# Both markers appear when git could not reach the host over SSH at all.
SSH_FAILURE_MARKERS = ("ssh: connect to host", "ssh: Could not resolve hostname")
UNREADABLE_REMOTE_MARKER = "Could not read from remote repository"

REDIRECT_PATTERN = re.compile(r"remote: Use 'git clone (?P<url>[^']+)' instead")


class CloneFailureKind(str, Enum):
    TRANSPORT_INVALID = "transport-invalid"
    REDIRECT = "redirect"
    UNCLASSIFIED = "unclassified"


@dataclass(frozen=True)
class CloneFailure:
    """Classification of a failed clone attempt's diagnostic output."""

    kind: CloneFailureKind
    redirect_url: str | None = None


def classify_clone_failure(output: str) -> CloneFailure:
    """Classify git's combined clone output.

    Matching is against literal substrings of git's English diagnostics, so
    anything that does not match falls back to UNCLASSIFIED.
    """
    if UNREADABLE_REMOTE_MARKER in output and any(m in output for m in SSH_FAILURE_MARKERS):
        return CloneFailure(CloneFailureKind.TRANSPORT_INVALID)

    match = REDIRECT_PATTERN.search(output)
    if match:
        return CloneFailure(CloneFailureKind.REDIRECT, match.group("url"))

    return CloneFailure(CloneFailureKind.UNCLASSIFIED)


@dataclass(frozen=True)
class RemoteResolver:
    """Turns logical repository names into clonable addresses."""

    shortcuts: dict[str, str] = field(default_factory=dict)
    redirects: dict[str, str] = field(default_factory=dict)

    def expand(self, name: str) -> str:
        """Apply the longest matching shortcut prefix, if any."""
        matches = [prefix for prefix in self.shortcuts if prefix and name.startswith(prefix)]
        if not matches:
            return name
        prefix = max(matches, key=len)
        return self.shortcuts[prefix] + name[len(prefix):]

    def resolve(self, name: str) -> str:
        expanded = self.expand(name)
        return self.redirects.get(expanded, expanded)

    def ssh_address(self, name: str) -> str:
        return "git@" + self.resolve(name).replace("/", ":", 1) + ".git"

    def https_address(self, name: str) -> str:
        return "https://" + self.resolve(name)

    def candidates(self, name: str) -> list[str]:
        """Transport addresses in the order they are attempted."""
        return [self.ssh_address(name), self.https_address(name)]


class CloneClient(Protocol):
    def clone(self, url: str, folder: str) -> None: ...


def clone_with_fallback(client: CloneClient, resolver: RemoteResolver, name: str, folder: str) -> str:
    """Clone ``name`` into ``folder`` trying SSH, HTTPS, then any suggested redirect.

    Returns the address that succeeded. Raises CloneError carrying the final
    attempt's failure when nothing worked.
    """
    attempts: list[str] = []
    redirect_url: str | None = None
    last_error: CommandError | None = None

    for url in resolver.candidates(name):
        attempts.append(url)
        try:
            client.clone(url, folder)
            return url
        except CommandError as exc:
            last_error = exc
            failure = classify_clone_failure(exc.output)
            if failure.kind is CloneFailureKind.TRANSPORT_INVALID:
                logger.warning("transport unreachable for %s, trying next", url)
            elif failure.kind is CloneFailureKind.REDIRECT:
                logger.warning("%s suggested redirect to %s", url, failure.redirect_url)
                redirect_url = failure.redirect_url
            else:
                logger.debug("clone %s failed: %s", url, exc.output.strip())

    if redirect_url:
        attempts.append(redirect_url)
        try:
            client.clone(redirect_url, folder)
            return redirect_url
        except CommandError as exc:
            last_error = exc

    raise CloneError(name, folder, attempts, last_error) from last_error
