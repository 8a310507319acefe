from __future__ import annotations

import importlib
import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from vouch.config import VouchConfig
from vouch.discovery import discover, load_test_file, make_predicate
from vouch.errors import DiscoveryError
from vouch.events import Listener
from vouch.executor import CaseFilter, Executor
from vouch.registry import Registry
from vouch.results import LoadFailure, RunReport


_ENVIRONMENT_DIRS = frozenset({"site-packages", "dist-packages", ".venv", "venv"})


def _is_under(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
        return True
    except ValueError:
        return False


def _is_environment(path: Path) -> bool:
    return any(part in _ENVIRONMENT_DIRS for part in path.parts)


class Runner:
    """Orchestrates one run: discover, load, execute, report."""

    def __init__(
        self,
        config: VouchConfig | None = None,
        listeners: Sequence[Listener] = (),
        code_path: Path | None = None,
        logger: logging.Logger | None = None,
    ):
        self.config = config or VouchConfig()
        self.listeners = list(listeners)
        self.code_path = code_path
        self.logger = logger or logging.getLogger("vouch")
        self.last_registry: Registry | None = None

    def execute(self, test_path: Path) -> RunReport:
        """Run every test under ``test_path`` once. Returns the run report."""
        test_path = Path(test_path)
        roots = [p.resolve() for p in (self.code_path, test_path) if p is not None]
        self._forget_modules(roots)

        files = discover(test_path, make_predicate(self.config.test_pattern))
        self.logger.debug(f"Discovered {len(files)} test file(s) under {test_path}")

        registry = Registry()
        load_failures: list[LoadFailure] = []
        with self._import_paths(files):
            for path in files:
                try:
                    load_test_file(path, registry)
                except DiscoveryError as e:
                    self.logger.error(str(e))
                    load_failures.append(LoadFailure(path=path, error_detail=e.detail))
            self.last_registry = registry

            executor = Executor(
                listeners=self.listeners,
                parallel=self.config.parallel,
                continue_on_failure=self.config.continue_on_failure,
                tolerance=self.config.tolerance,
                logger=self.logger,
            )
            return executor.run(registry, self._case_filter(), load_failures=load_failures)

    def _case_filter(self) -> CaseFilter | None:
        if not self.config.filter:
            return None
        return CaseFilter(self.config.filter, regex=self.config.filter_regex)

    @contextmanager
    def _import_paths(self, files: list[Path]) -> Iterator[None]:
        """Make the code tree and test directories importable during the run."""
        extra: list[str] = []
        candidates = [self.code_path] if self.code_path is not None else []
        candidates += [f.parent for f in files]
        for candidate in candidates:
            entry = str(Path(candidate).resolve())
            if entry not in sys.path and entry not in extra:
                extra.append(entry)
        sys.path[:0] = extra
        try:
            yield
        finally:
            for entry in extra:
                if entry in sys.path:
                    sys.path.remove(entry)

    def _forget_modules(self, roots: list[Path]) -> None:
        """Drop modules imported from the watched trees so edits are picked up."""
        stale = []
        for name, module in list(sys.modules.items()):
            if name == "vouch" or name.startswith("vouch."):
                continue
            filename = getattr(module, "__file__", None)
            if not filename:
                continue
            try:
                resolved = Path(filename).resolve()
            except (OSError, ValueError):
                continue
            if _is_environment(resolved):
                continue
            if any(_is_under(resolved, root) for root in roots):
                stale.append(name)
        for name in stale:
            del sys.modules[name]
        if stale:
            self.logger.debug(f"Forgot {len(stale)} previously imported module(s)")
        importlib.invalidate_caches()


def run_once(
    test_path: Path,
    config: VouchConfig | None = None,
    listeners: Sequence[Listener] = (),
    code_path: Path | None = None,
    logger: logging.Logger | None = None,
) -> RunReport:
    """Discover, load, execute and report the tests under ``test_path``."""
    runner = Runner(config=config, listeners=listeners, code_path=code_path, logger=logger)
    return runner.execute(test_path)
