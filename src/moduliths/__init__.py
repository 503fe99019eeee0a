"""Module structure verification and scoped test bootstrapping."""

from __future__ import annotations

from moduliths.config import BootstrapMode, ConfigurationFinder, ModulithConfig, load_config
from moduliths.errors import (
    AggregateVerificationError,
    ConfigurationError,
    CycleViolation,
    DependencyViolation,
    ModulithsError,
    Violation,
)
from moduliths.execution import ExecutionRegistry, ModuleTestExecution
from moduliths.model import Symbol, SymbolUniverse
from moduliths.module import Module
from moduliths.modules import FRAMEWORK_PACKAGES, Modules
from moduliths.namespace import Namespace, NamespaceTree

__all__ = [
    "AggregateVerificationError",
    "BootstrapMode",
    "ConfigurationError",
    "ConfigurationFinder",
    "CycleViolation",
    "DependencyViolation",
    "ExecutionRegistry",
    "FRAMEWORK_PACKAGES",
    "Module",
    "ModuleTestExecution",
    "Modules",
    "ModulithConfig",
    "ModulithsError",
    "Namespace",
    "NamespaceTree",
    "Symbol",
    "SymbolUniverse",
    "Violation",
    "load_config",
]
