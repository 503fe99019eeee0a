"""Scoped test bootstrapping: which modules a test anchored in a module needs."""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable, Iterator
from typing import Any

from moduliths.config import BootstrapMode, ConfigurationFinder
from moduliths.errors import ConfigurationError
from moduliths.importers.base import Importer
from moduliths.memo import Lazy
from moduliths.module import Module
from moduliths.modules import Modules
from moduliths.namespace import Namespace

logger = logging.getLogger(__name__)


def anchor_namespace(anchor: type | str) -> str:
    """Return the namespace a test anchor lives in.

    For classes this is the package of the defining module (so a test class in
    ``acme/orders/test_orders.py`` is anchored in ``acme.orders``); for names
    it is everything before the last dot.
    """
    if isinstance(anchor, str):
        return anchor.rsplit(".", 1)[0] if "." in anchor else ""
    module = sys.modules.get(anchor.__module__)
    package = getattr(module, "__package__", None)
    return package or anchor.__module__


class ModuleTestExecution:
    """The module a test is anchored in, and what it needs to bootstrap."""

    def __init__(
        self,
        anchor: type | str,
        finder: ConfigurationFinder,
        importer: Importer,
        *,
        bootstrap_mode: BootstrapMode | None = None,
    ):
        namespace = anchor_namespace(anchor)
        config = finder.find(namespace)

        self.anchor = anchor
        self.modules = Modules.of(config, importer)
        self.bootstrap_mode = bootstrap_mode or config.bootstrap_mode

        module = self.modules.get_module_by_base_package(namespace)
        if module is None:
            raise ConfigurationError(f"Couldn't find module for package '{namespace}'")
        self.module: Module = module

        depth = self.bootstrap_mode.depth
        self._base_packages = Lazy(lambda: self.module.get_base_packages(self.modules, depth))
        self._dependencies = Lazy(lambda: self.module.get_dependencies(self.modules, depth))

        if config.verify_automatically:
            self.verify()

    @classmethod
    def of(
        cls,
        anchor: type | str,
        finder: ConfigurationFinder,
        importer: Importer,
        *,
        bootstrap_mode: BootstrapMode | None = None,
        registry: ExecutionRegistry | None = None,
    ) -> ModuleTestExecution:
        """Return the cached execution for *anchor*, creating it on first use.

        *bootstrap_mode* only applies when the execution is created; a cached
        execution keeps the mode it was built with.
        """
        if registry is None:
            registry = default_registry
        return registry.get(
            anchor,
            lambda: cls(anchor, finder, importer, bootstrap_mode=bootstrap_mode),
        )

    def __iter__(self) -> Iterator[Module]:
        return iter(self.modules)

    def __repr__(self) -> str:
        return (
            f"ModuleTestExecution(module={self.module.name!r}, "
            f"mode={self.bootstrap_mode.value!r})"
        )

    @property
    def base_packages(self) -> list[Namespace]:
        return self._base_packages.get()

    def get_base_packages(self) -> Iterator[str]:
        """Yield the namespaces to scan for the current bootstrap mode."""
        return (ns.name for ns in self._base_packages.get())

    def get_dependencies(self) -> list[Module]:
        """Return the modules required under the current bootstrap mode."""
        return self._dependencies.get()

    def includes(self, class_name: str) -> bool:
        """Return True if *class_name* should be filtered out of the bootstrap.

        Only types of the modulith itself that lie outside the current
        module's dependency closure are filtered; everything else (closure
        members and third-party code) is kept.
        """
        if any(ns.contains(class_name) for ns in self._base_packages.get()):
            logger.debug("Including class %s.", class_name)
            return False
        if not self.modules.within_root_packages(class_name):
            return False
        return True

    def verify(self) -> None:
        """Explicitly trigger the module structure verification."""
        self.modules.verify()


class ExecutionRegistry:
    """Process-wide cache of executions keyed by anchor.

    Construction for one anchor happens at most once; different anchors are
    constructed concurrently.
    """

    def __init__(self) -> None:
        self._executions: dict[Any, ModuleTestExecution] = {}
        self._locks: dict[Any, threading.Lock] = {}
        self._guard = threading.Lock()

    def __contains__(self, anchor: object) -> bool:
        return anchor in self._executions

    def __len__(self) -> int:
        return len(self._executions)

    def get(
        self, anchor: Any, factory: Callable[[], ModuleTestExecution]
    ) -> ModuleTestExecution:
        execution = self._executions.get(anchor)
        if execution is not None:
            return execution

        with self._guard:
            lock = self._locks.setdefault(anchor, threading.Lock())

        with lock:
            execution = self._executions.get(anchor)
            if execution is None:
                execution = factory()
                self._executions[anchor] = execution
        return execution

    def clear(self) -> None:
        with self._guard:
            self._executions.clear()
            self._locks.clear()


default_registry = ExecutionRegistry()
