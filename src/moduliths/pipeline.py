"""Orchestrator: configure → import → partition → verify."""

from __future__ import annotations

import logging
from pathlib import Path

from moduliths.config import BootstrapMode, ModulithConfig, load_config
from moduliths.detect import detect_importer
from moduliths.errors import ConfigurationError
from moduliths.modules import FRAMEWORK_PACKAGES, Modules

logger = logging.getLogger(__name__)


def build_modules(
    project_dir: Path, config: ModulithConfig | None = None
) -> Modules:
    """Load the configuration of *project_dir* and partition it into modules."""
    project_dir = project_dir.resolve()
    config = config or load_config(project_dir)
    importer = detect_importer(project_dir)
    logger.debug(
        "Project: %s, roots: %s, importer: %s",
        project_dir,
        config.root_packages,
        type(importer).__name__,
    )
    return Modules.of(config, importer, auxiliary_packages=FRAMEWORK_PACKAGES)


def describe(modules: Modules) -> str:
    """Render each module with its base package and direct dependencies."""
    lines: list[str] = []
    graph = modules.get_dependency_graph()
    for module in modules:
        lines.append(f"# {module.name} ({module.base_package})")
        lines.append(f"  types: {len(module.symbols)}")
        if module.allowed_dependencies:
            lines.append(
                f"  allowed: {', '.join(sorted(module.allowed_dependencies))}"
            )
        dependencies = graph[module.name]
        lines.append(f"  depends on: {', '.join(dependencies) if dependencies else '-'}")
    return "\n".join(lines)


def bootstrap_packages(
    modules: Modules, module_name: str, mode: BootstrapMode
) -> list[str]:
    """Return the base packages to scan for a test of *module_name* under *mode*."""
    module = modules.get_module_by_name(module_name)
    if module is None:
        raise ConfigurationError(f"Unknown module '{module_name}'")
    return [ns.name for ns in module.get_base_packages(modules, mode.depth)]


def run(
    project_dir: Path,
    *,
    verify: bool = True,
    module: str | None = None,
    mode: BootstrapMode | None = None,
) -> str:
    """Run the full pipeline and return the textual report.

    Verification failures propagate as
    :class:`~moduliths.errors.AggregateVerificationError`.
    """
    config = load_config(project_dir.resolve())
    modules = build_modules(project_dir, config)

    report = [describe(modules)]

    if module is not None:
        packages = bootstrap_packages(modules, module, mode or config.bootstrap_mode)
        report.append(f"\nBootstrap packages for {module}:")
        report.extend(f"  {name}" for name in packages)

    if verify:
        modules.verify()
        logger.info("Verified %d modules", len(modules))
        report.append("\nVerification passed.")

    return "\n".join(report)
