"""Effective executable search path.

AI assistant CLIs are usually installed through npm, Homebrew or a Node
version manager. A host application started outside a login shell often
lacks those directories on PATH, so probes search them first.
"""

from __future__ import annotations

import glob
import os
import shutil
from collections.abc import Iterable
from pathlib import Path


def _well_known_directories() -> list[str]:
    home = str(Path.home())
    nvm_bins = sorted(
        glob.glob(os.path.join(home, ".nvm", "versions", "node", "*", "bin")),
        reverse=True,
    )
    return [
        os.path.join(home, ".local", "bin"),
        "/usr/local/bin",
        "/opt/homebrew/bin",
        *nvm_bins,
        "/usr/local/lib/node_modules/.bin",
    ]


def build_search_path(
    extra_paths: Iterable[str] = (),
    base_path: str | None = None,
) -> str:
    """Build the PATH used to resolve and launch CLI binaries.

    Order: configured extra paths, well-known install directories, then the
    inherited PATH. Duplicates keep their first position.

    Args:
        extra_paths: Additional directories to search first
        base_path: PATH to append (defaults to the current process PATH)

    Returns:
        os.pathsep-joined search path
    """
    inherited = os.environ.get("PATH", "") if base_path is None else base_path
    candidates = [*extra_paths, *_well_known_directories(), *inherited.split(os.pathsep)]

    seen: set[str] = set()
    ordered: list[str] = []
    for entry in candidates:
        if entry and entry not in seen:
            seen.add(entry)
            ordered.append(entry)
    return os.pathsep.join(ordered)


def build_environment(extra_paths: Iterable[str] = ()) -> dict[str, str]:
    """Copy the current environment with PATH replaced by the search path."""
    env = dict(os.environ)
    env["PATH"] = build_search_path(extra_paths)
    return env


def which(binary: str, extra_paths: Iterable[str] = ()) -> str | None:
    """Resolve a binary to an absolute path without spawning anything.

    Args:
        binary: Executable name, or a path to an executable
        extra_paths: Additional directories to search first

    Returns:
        Absolute path to the executable, or None if it cannot be found
    """
    if not binary:
        return None
    resolved = shutil.which(binary, path=build_search_path(extra_paths))
    if resolved is None:
        return None
    return os.path.abspath(resolved)


__all__ = [
    "build_environment",
    "build_search_path",
    "which",
]
