"""Shared pytest fixtures for moduliths tests."""

from pathlib import Path

import pytest

from moduliths.config import BootstrapMode, ModulithConfig
from moduliths.importers.base import InMemoryImporter
from moduliths.model import Symbol, SymbolUniverse


@pytest.fixture
def acme_symbols() -> list[Symbol]:
    """Orders depends on Catalog; Shipping stands alone."""
    return [
        Symbol.of("com.acme.orders.Order", references=["com.acme.catalog.Item"]),
        Symbol.of(
            "com.acme.orders.internal.OrderRepository",
            references=["com.acme.orders.Order", "org.thirdparty.Util"],
        ),
        Symbol.of("com.acme.catalog.Item"),
        Symbol.of("com.acme.catalog.Catalog", references=["com.acme.catalog.Item"]),
        Symbol.of("com.acme.shipping.Dock"),
        Symbol.of("com.acme.orders.OrderTests", references=["com.acme.shipping.Dock"], is_test=True),
        Symbol.of("org.thirdparty.Util"),
    ]


@pytest.fixture
def acme_importer(acme_symbols: list[Symbol]) -> InMemoryImporter:
    return InMemoryImporter(acme_symbols)


@pytest.fixture
def acme_config() -> ModulithConfig:
    return ModulithConfig(
        base_package="com.acme",
        bootstrap_mode=BootstrapMode.DIRECT_DEPENDENCIES,
    )


@pytest.fixture
def chain_universe() -> SymbolUniverse:
    """a -> b -> c -> d."""
    return SymbolUniverse(
        [
            Symbol.of("chain.a.A", references=["chain.b.B"]),
            Symbol.of("chain.b.B", references=["chain.c.C"]),
            Symbol.of("chain.c.C", references=["chain.d.D"]),
            Symbol.of("chain.d.D"),
        ]
    )


def _write(root: Path, files: dict[str, str]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


PYPROJECT = """\
[project]
name = "acme"

[tool.moduliths]
base-package = "acme"
bootstrap-mode = "direct-dependencies"

[tool.moduliths.modules.orders]
allowed-dependencies = ["catalog"]
"""

SERVICE = """\
from acme.catalog.items import Item
from .. import shipping
from .model import Order


class OrderService(Order):
    def ship(self, item: Item):
        return shipping.dock.Dock()
"""


@pytest.fixture
def python_project(tmp_path: Path) -> Path:
    """A src-layout project whose orders module reaches into shipping."""
    _write(
        tmp_path,
        {
            "pyproject.toml": PYPROJECT,
            "src/acme/__init__.py": "",
            "src/acme/catalog/__init__.py": "",
            "src/acme/catalog/items.py": "class Item:\n    pass\n",
            "src/acme/orders/__init__.py": "",
            "src/acme/orders/model.py": "class Order:\n    pass\n",
            "src/acme/orders/service.py": SERVICE,
            "src/acme/orders/test_service.py": (
                "from acme.shipping.dock import Dock\n\n\n"
                "def test_dock():\n    Dock()\n"
            ),
            "src/acme/shipping/__init__.py": "",
            "src/acme/shipping/dock.py": "class Dock:\n    pass\n",
        },
    )
    return tmp_path


@pytest.fixture
def write_files():
    return _write
