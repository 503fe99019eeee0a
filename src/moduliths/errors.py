"""Error types raised while building and verifying a module structure."""

from __future__ import annotations

from collections.abc import Iterable


class ModulithsError(Exception):
    """Base class for all errors raised by moduliths."""


class ConfigurationError(ModulithsError):
    """The module setup itself is invalid (missing roots, name clashes, ...)."""


class Violation(ModulithsError):
    """A single structural problem found during verification."""


class CycleViolation(Violation):
    """A dependency cycle between modules.

    *cycle* lists the module names in traversal order; the last module depends
    on the first one again.  *witnesses* holds one
    ``(source_module, target_module, source_symbol, target_symbol)`` tuple per
    edge of the cycle.
    """

    def __init__(
        self,
        cycle: list[str],
        witnesses: list[tuple[str, str, str, str]],
    ):
        self.cycle = list(cycle)
        self.witnesses = list(witnesses)
        super().__init__(self._describe())

    def _describe(self) -> str:
        path = " -> ".join([*self.cycle, self.cycle[0]])
        lines = [f"Cycle detected: {path}"]
        for source_module, target_module, source, target in self.witnesses:
            lines.append(
                f"  {source_module} -> {target_module}: {source} references {target}"
            )
        return "\n".join(lines)


class DependencyViolation(Violation):
    """A module references a module outside its allowed dependencies.

    When a module breaks its declaration more than once, the first offending
    reference is raised and carries the rest in *additional*.
    """

    def __init__(
        self,
        module: str,
        target_module: str,
        source: str,
        target: str,
        allowed: Iterable[str],
        additional: Iterable[DependencyViolation] = (),
    ):
        self.module = module
        self.target_module = target_module
        self.source = source
        self.target = target
        self.allowed = frozenset(allowed)
        self.additional = list(additional)
        message = (
            f"Module '{module}' depends on non-allowed module '{target_module}' "
            f"({source} references {target}). "
            f"Allowed dependencies: {', '.join(sorted(self.allowed))}"
        )
        for other in self.additional:
            message += f"\n{other}"
        super().__init__(message)

    @property
    def violations(self) -> list[DependencyViolation]:
        """This violation followed by the ones it carries."""
        return [self, *self.additional]


class AggregateVerificationError(ModulithsError):
    """Every violation found by one verification run."""

    def __init__(self, violations: Iterable[Violation]):
        self.violations = list(violations)
        super().__init__(
            f"{len(self.violations)} violation(s) found:\n"
            + "\n".join(str(v) for v in self.violations)
        )

    @property
    def cycles(self) -> list[CycleViolation]:
        return [v for v in self.violations if isinstance(v, CycleViolation)]

    @property
    def dependency_violations(self) -> list[DependencyViolation]:
        return [v for v in self.violations if isinstance(v, DependencyViolation)]
