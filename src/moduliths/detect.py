"""Auto-detect project type and return the appropriate importer."""

from __future__ import annotations

from pathlib import Path

from moduliths.errors import ConfigurationError
from moduliths.importers.base import Importer
from moduliths.importers.java import JavaSourceImporter, is_java_project
from moduliths.importers.python import (
    PythonSourceImporter,
    find_source_root,
    is_python_project,
)


def detect_importer(
    project_dir: Path, auxiliary_namespaces: tuple[str, ...] = ()
) -> Importer:
    """Return the importer applicable to *project_dir*.

    Java build files win over Python ones, as a Maven or Gradle project may
    carry a ``pyproject.toml`` for tooling only.
    """
    if is_java_project(project_dir):
        return JavaSourceImporter(project_dir, auxiliary_namespaces=auxiliary_namespaces)
    if is_python_project(project_dir):
        return PythonSourceImporter(
            find_source_root(project_dir), auxiliary_namespaces=auxiliary_namespaces
        )
    raise ConfigurationError(f"Could not detect project type of {project_dir}")
