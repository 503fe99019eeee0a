"""Modulith configuration: declaration, loading, and lookup."""

from __future__ import annotations

import enum
import fnmatch
import logging
import tomllib
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from moduliths.errors import ConfigurationError
from moduliths.model import Symbol

logger = logging.getLogger(__name__)


class BootstrapMode(enum.Enum):
    """How many hops of module dependencies a scoped test bootstraps."""

    STANDALONE = "standalone"
    DIRECT_DEPENDENCIES = "direct-dependencies"
    ALL_DEPENDENCIES = "all-dependencies"

    @property
    def depth(self) -> int | None:
        """Closure depth; None means unbounded."""
        return _DEPTHS[self]

    @classmethod
    def parse(cls, value: str | BootstrapMode) -> BootstrapMode:
        if isinstance(value, BootstrapMode):
            return value
        normalized = value.strip().lower().replace("_", "-")
        for mode in cls:
            if mode.value == normalized:
                return mode
        raise ConfigurationError(
            f"Unknown bootstrap mode '{value}' "
            f"(expected one of: {', '.join(m.value for m in cls)})"
        )


_DEPTHS: dict[BootstrapMode, int | None] = {
    BootstrapMode.STANDALONE: 0,
    BootstrapMode.DIRECT_DEPENDENCIES: 1,
    BootstrapMode.ALL_DEPENDENCIES: None,
}


@dataclass(frozen=True)
class ModulithConfig:
    """Declared structure of one modulith."""

    base_package: str
    additional_packages: tuple[str, ...] = ()
    use_fully_qualified_module_names: bool = False
    bootstrap_mode: BootstrapMode = BootstrapMode.STANDALONE
    verify_automatically: bool = True
    # module name or base package -> allowed module names
    allowed_dependencies: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    ignore: tuple[str, ...] = ()

    @property
    def root_packages(self) -> list[str]:
        return list(dict.fromkeys([self.base_package, *self.additional_packages]))

    def allowed_dependencies_for(self, base_package: str, name: str) -> tuple[str, ...]:
        """Return the declared allowed dependencies of a module (empty = any)."""
        if base_package in self.allowed_dependencies:
            return tuple(self.allowed_dependencies[base_package])
        return tuple(self.allowed_dependencies.get(name, ()))

    def ignored_predicate(self) -> Callable[[Symbol], bool]:
        """Return a predicate matching symbols excluded by the ``ignore`` patterns."""
        patterns = self.ignore

        def _ignored(symbol: Symbol) -> bool:
            return any(fnmatch.fnmatchcase(symbol.name, p) for p in patterns)

        return _ignored

    @classmethod
    def from_dict(cls, data: Mapping) -> ModulithConfig:
        """Build a config from a kebab-case mapping as found in config files."""
        base_package = data.get("base-package")
        if not base_package:
            raise ConfigurationError("Modulith configuration requires 'base-package'")

        allowed: dict[str, tuple[str, ...]] = {}
        for module_name, module_data in (data.get("modules") or {}).items():
            if not isinstance(module_data, Mapping):
                raise ConfigurationError(
                    f"Configuration for module '{module_name}' must be a table"
                )
            declared = module_data.get("allowed-dependencies")
            if declared:
                allowed[module_name] = tuple(_as_list(declared))

        return cls(
            base_package=base_package,
            additional_packages=tuple(_as_list(data.get("additional-packages"))),
            use_fully_qualified_module_names=bool(
                data.get("use-fully-qualified-module-names", False)
            ),
            bootstrap_mode=BootstrapMode.parse(
                data.get("bootstrap-mode", BootstrapMode.STANDALONE.value)
            ),
            verify_automatically=bool(data.get("verify-automatically", True)),
            allowed_dependencies=allowed,
            ignore=tuple(_as_list(data.get("ignore"))),
        )


def _as_list(value: str | Iterable[str] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _read_toml_table(path: Path, *keys: str) -> dict | None:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None
    for key in keys:
        data = data.get(key)
        if not isinstance(data, dict):
            return None
    return data


def _read_yaml_table(path: Path) -> dict | None:
    import yaml

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Could not read %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        return None
    table = data.get("moduliths")
    return table if isinstance(table, dict) else None


def load_config(project_dir: Path) -> ModulithConfig:
    """Read the modulith configuration of *project_dir*.

    Sources, first hit wins: ``.moduliths.toml`` (``[moduliths]``),
    ``moduliths.yaml`` / ``moduliths.yml`` (``moduliths:``), and
    ``[tool.moduliths]`` in ``pyproject.toml``.
    """
    candidates: list[tuple[Path, Callable[[Path], dict | None]]] = [
        (project_dir / ".moduliths.toml", lambda p: _read_toml_table(p, "moduliths")),
        (project_dir / "moduliths.yaml", _read_yaml_table),
        (project_dir / "moduliths.yml", _read_yaml_table),
        (
            project_dir / "pyproject.toml",
            lambda p: _read_toml_table(p, "tool", "moduliths"),
        ),
    ]
    for path, reader in candidates:
        if not path.exists():
            continue
        table = reader(path)
        if table is not None:
            logger.debug("Using modulith configuration from %s", path)
            return ModulithConfig.from_dict(table)

    raise ConfigurationError(f"No modulith configuration found in {project_dir}")


class ConfigurationFinder:
    """Locate the modulith configuration responsible for a namespace."""

    def __init__(self, configs: Iterable[ModulithConfig]):
        self._by_package: dict[str, ModulithConfig] = {}
        for config in configs:
            self._by_package.setdefault(config.base_package, config)

    def find(self, namespace: str) -> ModulithConfig:
        """Walk from *namespace* up through its parents to the first declared config."""
        current = namespace
        while current:
            config = self._by_package.get(current)
            if config is not None:
                return config
            current = current.rsplit(".", 1)[0] if "." in current else ""
        raise ConfigurationError(
            f"No modulith configuration found for namespace '{namespace}'"
        )
