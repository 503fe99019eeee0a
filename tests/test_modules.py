"""Tests for the module registry and global verification."""

import pytest

import moduliths.modules as modules_module
from moduliths.analysis import build_slice_graph, find_cycles
from moduliths.config import ModulithConfig
from moduliths.errors import AggregateVerificationError, ConfigurationError
from moduliths.importers.base import InMemoryImporter
from moduliths.model import Symbol, SymbolUniverse
from moduliths.modules import Modules
from moduliths.namespace import Namespace


def _cycle(*edges: tuple[str, str]) -> SymbolUniverse:
    names = sorted({n for edge in edges for n in edge})
    refs = {n: [t for s, t in edges if s == n] for n in names}
    return SymbolUniverse(
        Symbol.of(f"app.{n}.{n.upper()}", references=[f"app.{t}.{t.upper()}" for t in refs[n]])
        for n in names
    )


class TestConstruction:
    def test_modules_from_direct_children(self, acme_config, acme_importer):
        modules = Modules.of(acme_config, acme_importer)
        assert [m.name for m in modules] == ["catalog", "orders", "shipping"]
        assert len(modules) == 3

    def test_test_symbols_are_excluded(self, acme_config, acme_importer):
        modules = Modules.of(acme_config, acme_importer)
        assert "com.acme.orders.OrderTests" not in modules.universe

    def test_ignored_symbols_are_excluded(self, acme_config, acme_importer):
        modules = Modules.of(
            acme_config,
            acme_importer,
            ignored=lambda s: s.namespace.startswith("com.acme.shipping"),
        )
        assert [m.name for m in modules] == ["catalog", "orders"]

    def test_ignore_patterns_from_config(self, acme_importer):
        config = ModulithConfig(base_package="com.acme", ignore=("com.acme.catalog.*",))
        modules = Modules.of(config, acme_importer)
        assert modules.get_module_by_name("catalog") is None

    def test_additional_packages(self, acme_importer):
        config = ModulithConfig(
            base_package="com.acme.orders", additional_packages=("com.acme.catalog",)
        )
        modules = Modules.of(config, acme_importer)
        assert [m.name for m in modules] == ["internal"]
        assert modules.within_root_packages("com.acme.catalog.Item")

    def test_name_collision(self):
        universe = SymbolUniverse(
            [Symbol.of("one.shared.A"), Symbol.of("two.shared.B")]
        )
        with pytest.raises(ConfigurationError, match="fully qualified"):
            Modules(["one", "two"], universe)

    def test_name_collision_resolved_by_fully_qualified_names(self):
        universe = SymbolUniverse(
            [Symbol.of("one.shared.A"), Symbol.of("two.shared.B")]
        )
        modules = Modules(["one", "two"], universe, use_fully_qualified_module_names=True)
        assert [m.name for m in modules] == ["one.shared", "two.shared"]

    def test_nested_roots_are_rejected(self, acme_symbols):
        with pytest.raises(ConfigurationError, match="nested"):
            Modules(["com.acme", "com.acme.orders"], SymbolUniverse(acme_symbols))

    def test_unknown_root(self, acme_symbols):
        with pytest.raises(ConfigurationError):
            Modules(["com.other"], SymbolUniverse(acme_symbols))

    def test_auxiliary_namespaces_belong_to_no_module(self, acme_symbols, acme_config):
        importer = InMemoryImporter(
            [*acme_symbols, Symbol.of("org.framework.stereotype.Service")],
            auxiliary_namespaces=["org.framework.stereotype"],
        )
        modules = Modules.of(acme_config, importer)
        assert "org.framework.stereotype.Service" in modules.universe
        assert "org.thirdparty.Util" not in modules.universe
        assert modules.get_module_by_type("org.framework.stereotype.Service") is None
        assert not modules.within_root_packages("org.framework.stereotype.Service")

    def test_auxiliary_packages_passed_to_factory(self, acme_symbols, acme_config):
        importer = InMemoryImporter(
            [*acme_symbols, Symbol.of("org.framework.stereotype.Service")]
        )
        assert "org.framework.stereotype.Service" not in Modules.of(
            acme_config, importer
        ).universe

        modules = Modules.of(
            acme_config, importer, auxiliary_packages=["org.framework.stereotype"]
        )
        assert "org.framework.stereotype.Service" in modules.universe
        assert modules.get_module_by_type("org.framework.stereotype.Service") is None
        assert [m.name for m in modules] == ["catalog", "orders", "shipping"]

    def test_framework_packages_default_is_empty(self):
        assert modules_module.FRAMEWORK_PACKAGES == ()

    def test_allowed_dependencies_keyed_by_fully_qualified_name(self):
        universe = SymbolUniverse(
            [Symbol.of("one.shared.A"), Symbol.of("two.shared.B")]
        )
        modules = Modules(
            ["one", "two"],
            universe,
            use_fully_qualified_module_names=True,
            allowed_dependencies=lambda ns, name: ["x"] if name == "one.shared" else [],
        )
        assert modules.get_module_by_name("one.shared").allowed_dependencies == {"x"}
        assert modules.get_module_by_name("two.shared").allowed_dependencies == frozenset()


class TestQueries:
    @pytest.fixture
    def modules(self, acme_config, acme_importer) -> Modules:
        return Modules.of(acme_config, acme_importer)

    def test_partition(self, modules):
        for symbol in modules.universe:
            module = modules.get_module_by_type(symbol)
            assert module is not None
            assert module.contains(symbol)
            assert sum(m.contains(symbol) for m in modules) == 1

    def test_get_module_by_type_name(self, modules):
        module = modules.get_module_by_type("com.acme.orders.internal.OrderRepository")
        assert module.name == "orders"
        assert modules.get_module_by_type("com.acme.ordersx.Bar") is None

    def test_get_module_by_base_package(self, modules):
        assert modules.get_module_by_base_package("com.acme.catalog").name == "catalog"
        assert modules.get_module_by_base_package("com.acme.orders.internal") is None

    def test_get_module_by_name(self, modules):
        assert modules.get_module_by_name("shipping").base_package == Namespace(
            "com.acme.shipping"
        )
        assert modules.get_module_by_name("unknown") is None
        with pytest.raises(ValueError):
            modules.get_module_by_name("")

    def test_contains(self, modules):
        assert modules.contains(Symbol.of("com.acme.orders.Order"))
        assert not modules.contains(Symbol.of("org.thirdparty.Util"))

    def test_within_root_packages(self, modules):
        assert modules.within_root_packages("com.acme.shipping.Dock")
        assert not modules.within_root_packages("org.thirdparty.Util")
        assert not modules.within_root_packages("com.acmex.Foo")

    def test_dependency_graph(self, modules):
        assert modules.get_dependency_graph() == {
            "catalog": [],
            "orders": ["catalog"],
            "shipping": [],
        }


class TestCycles:
    def test_three_module_cycle(self):
        modules = Modules(["app"], _cycle(("a", "b"), ("b", "c"), ("c", "a")))
        with pytest.raises(AggregateVerificationError) as excinfo:
            modules.verify()

        [cycle] = excinfo.value.cycles
        assert sorted(cycle.cycle) == ["a", "b", "c"]
        assert len(cycle.witnesses) == 3
        for i, (source_module, target_module, source, target) in enumerate(cycle.witnesses):
            assert source_module == cycle.cycle[i]
            assert target_module == cycle.cycle[(i + 1) % 3]
            assert source.startswith(f"app.{source_module}.")
            assert target.startswith(f"app.{target_module}.")
        assert not modules.verified

    def test_overlapping_cycles_are_all_reported(self):
        modules = Modules(
            ["app"], _cycle(("a", "b"), ("b", "a"), ("b", "c"), ("c", "b"))
        )
        with pytest.raises(AggregateVerificationError) as excinfo:
            modules.verify()

        cycles = sorted(sorted(c.cycle) for c in excinfo.value.cycles)
        assert cycles == [["a", "b"], ["b", "c"]]
        for cycle in excinfo.value.cycles:
            assert len(cycle.witnesses) == 2
        assert "app.c.C references app.b.B" in str(excinfo.value)

    def test_reported_cycles_are_capped_per_component(self):
        universe = _cycle(
            ("a", "b"), ("b", "a"), ("b", "c"), ("c", "b"), ("a", "c"), ("c", "a")
        )
        graph = build_slice_graph(universe, lambda name: name.split(".")[1])
        assert len(find_cycles(graph)) == 5
        assert len(find_cycles(graph, limit=2)) == 2

    @pytest.mark.parametrize(
        "edges",
        [
            (("a", "b"), ("b", "c")),
            (("b", "c"), ("c", "a")),
            (("a", "b"), ("c", "a")),
        ],
    )
    def test_removing_an_edge_breaks_the_cycle(self, edges):
        modules = Modules(["app"], _cycle(*edges))
        modules.verify()
        assert modules.verified

    def test_cycle_message_names_modules_and_symbols(self):
        modules = Modules(["app"], _cycle(("a", "b"), ("b", "a")))
        with pytest.raises(AggregateVerificationError) as excinfo:
            modules.verify()
        message = str(excinfo.value)
        assert "Cycle detected" in message
        assert "app.a.A references app.b.B" in message
        assert "app.b.B references app.a.A" in message

    def test_modules_stay_queryable_after_failure(self):
        modules = Modules(["app"], _cycle(("a", "b"), ("b", "a")))
        with pytest.raises(AggregateVerificationError):
            modules.verify()
        assert modules.get_module_by_name("a") is not None
        assert modules.get_module_by_name("a").get_dependencies(modules) == [
            modules.get_module_by_name("b")
        ]


class TestVerify:
    def test_violations_are_aggregated(self):
        universe = SymbolUniverse(
            [
                Symbol.of("app.a.A", references=["app.c.C"]),
                Symbol.of("app.b.B", references=["app.c.C", "app.a.A"]),
                Symbol.of("app.c.C"),
            ]
        )
        modules = Modules(
            ["app"],
            universe,
            allowed_dependencies=lambda ns, name: {"a": ["b"], "b": ["a"]}.get(name, []),
        )
        with pytest.raises(AggregateVerificationError) as excinfo:
            modules.verify()

        violations = excinfo.value.dependency_violations
        assert [(v.module, v.target_module) for v in violations] == [("a", "c"), ("b", "c")]
        assert excinfo.value.cycles == []

    def test_cycles_and_dependency_violations_reported_together(self):
        universe = _cycle(("a", "b"), ("b", "a"), ("a", "c"))
        modules = Modules(
            ["app"],
            universe,
            allowed_dependencies=lambda ns, name: ["b"] if name == "a" else [],
        )
        with pytest.raises(AggregateVerificationError) as excinfo:
            modules.verify()
        assert len(excinfo.value.cycles) == 1
        assert len(excinfo.value.dependency_violations) == 1

    def test_allowed_dependencies_from_config(self, acme_importer):
        config = ModulithConfig(
            base_package="com.acme", allowed_dependencies={"orders": ("shipping",)}
        )
        modules = Modules.of(config, acme_importer)
        with pytest.raises(AggregateVerificationError) as excinfo:
            modules.verify()
        [violation] = excinfo.value.violations
        assert violation.module == "orders"
        assert violation.target == "com.acme.catalog.Item"

    def test_allowed_dependencies_by_base_package(self, acme_importer):
        config = ModulithConfig(
            base_package="com.acme",
            allowed_dependencies={"com.acme.orders": ("catalog",)},
        )
        Modules.of(config, acme_importer).verify()

    def test_verify_runs_graph_computation_once(self, monkeypatch, chain_universe):
        calls = []
        original = modules_module.find_cycles

        def counting(graph):
            calls.append(graph)
            return original(graph)

        monkeypatch.setattr(modules_module, "find_cycles", counting)
        modules = Modules(["chain"], chain_universe)
        modules.verify()
        modules.verify()
        assert modules.verified
        assert len(calls) == 1

    def test_failed_verification_is_retried(self, monkeypatch):
        calls = []
        original = modules_module.find_cycles

        def counting(graph):
            calls.append(graph)
            return original(graph)

        monkeypatch.setattr(modules_module, "find_cycles", counting)
        modules = Modules(["app"], _cycle(("a", "b"), ("b", "a")))
        for _ in range(2):
            with pytest.raises(AggregateVerificationError):
                modules.verify()
        assert len(calls) == 2
