"""Map changed file paths to the monorepo packages they belong to."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from covdelta.models.coverage import PackageIdentifier

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

DEFAULT_PACKAGE_PREFIX = "lib/node_modules/@stdlib/"

# Conventional package subdirectories; the package root is everything before the first one.
PACKAGE_SUBDIRECTORIES = frozenset(
    {
        "benchmark",
        "bin",
        "data",
        "docs",
        "etc",
        "examples",
        "include",
        "lib",
        "scripts",
        "src",
        "test",
    }
)


def _normalize(path: str) -> str:
    path = path.strip().replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def resolve_package(path: str, prefix: str = DEFAULT_PACKAGE_PREFIX) -> PackageIdentifier | None:
    """Resolve a single changed path to its package, or None if it has none.

    Args:
        path: Changed file path, relative to the repository root.
        prefix: Package-root prefix under which packages live.

    Returns:
        The owning PackageIdentifier, or None for paths outside the prefix
        and for malformed entries.
    """
    path = _normalize(path)
    prefix = _normalize(prefix).rstrip("/") + "/"

    index = path.find(prefix)
    if index == -1:
        return None

    base = path[: index + len(prefix)]
    segments = [segment for segment in path[index + len(prefix) :].split("/") if segment]

    package_segments: list[str] = []
    for segment in segments:
        if segment in PACKAGE_SUBDIRECTORIES:
            break
        package_segments.append(segment)
    else:
        # No conventional subdirectory: drop the file name itself.
        package_segments = package_segments[:-1]

    if not package_segments:
        logger.debug("Skipping path without a package root: %s", path)
        return None

    name = "/".join(package_segments)
    return PackageIdentifier(name=name, path=f"{base}{name}")


def resolve_packages(
    changed: Iterable[str], prefix: str = DEFAULT_PACKAGE_PREFIX
) -> set[PackageIdentifier]:
    """Resolve a change set to the unique set of affected packages.

    Paths outside the package-root prefix are discarded silently. An empty
    result means there is nothing to report on.
    """
    packages: set[PackageIdentifier] = set()
    for path in changed:
        package = resolve_package(path, prefix)
        if package is not None:
            packages.add(package)

    logger.debug("Resolved %d package(s) from change set", len(packages))
    return packages
