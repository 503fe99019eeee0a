"""Symbol importers for synthetic graphs, Python sources and Java sources."""

from __future__ import annotations

from moduliths.importers.base import Importer, InMemoryImporter, scope
from moduliths.importers.java import JavaSourceImporter
from moduliths.importers.python import PythonSourceImporter

__all__ = [
    "Importer",
    "InMemoryImporter",
    "JavaSourceImporter",
    "PythonSourceImporter",
    "scope",
]
