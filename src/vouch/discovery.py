"""Locating test files and loading them into a registry."""

from __future__ import annotations

import hashlib
import importlib.util
import re
import sys
import traceback
from pathlib import Path
from typing import Callable

from vouch.errors import DiscoveryError
from vouch.registry import Registry

Predicate = Callable[[Path], bool]

_SKIP_DIRS = frozenset({"__pycache__", ".git", ".hg", ".venv", "venv", "node_modules"})


def is_test_file(path: Path) -> bool:
    """Default naming convention: Python files whose name contains ``test``."""
    return path.suffix == ".py" and "test" in path.name


def make_predicate(pattern: str) -> Predicate:
    """Build a predicate matching ``.py`` files whose name matches ``pattern``."""
    regex = re.compile(pattern)

    def _predicate(path: Path) -> bool:
        return path.suffix == ".py" and regex.search(path.name) is not None

    return _predicate


def _skipped(path: Path, root: Path) -> bool:
    return any(part in _SKIP_DIRS or part.startswith(".") for part in path.relative_to(root).parts[:-1])


def discover(path: Path, predicate: Predicate = is_test_file) -> list[Path]:
    """Return test files under ``path``, sorted by relative path.

    A file given directly is returned as-is, whatever its name.
    """
    path = Path(path)
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise FileNotFoundError(f"test path not found: {path}")
    found = [
        f
        for f in path.rglob("*.py")
        if f.is_file() and not _skipped(f, path) and predicate(f)
    ]
    return sorted(found, key=lambda f: f.relative_to(path).as_posix())


def module_name_for(path: Path) -> str:
    digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:12]
    stem = re.sub(r"\W", "_", path.stem)
    return f"_vouch_{stem}_{digest}"


def load_test_file(path: Path, registry: Registry) -> None:
    """Execute ``path`` as a fresh module, declaring its cases in ``registry``.

    On failure, cases the file had already declared are discarded and a
    ``DiscoveryError`` is raised, including for ``SystemExit`` and other
    non-``Exception`` errors raised at import. Only Ctrl+C propagates.
    """
    name = module_name_for(path)
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise DiscoveryError(path, "not an importable Python file")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        with registry.loading(path):
            spec.loader.exec_module(module)
    except BaseException as exc:
        sys.modules.pop(name, None)
        registry.discard_source(path)
        if isinstance(exc, KeyboardInterrupt):
            raise
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        raise DiscoveryError(path, detail) from exc
