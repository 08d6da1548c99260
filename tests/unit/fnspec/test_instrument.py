"""Tests for the Instrumenter controller and the module-level API."""

from __future__ import annotations

import pytest
from pydantic import PositiveInt

import fnspec
from fnspec.bindings import CellBindingResolver
from fnspec.config import get_config
from fnspec.errors import (
    BatchInstrumentationError,
    SchemaNotFound,
    ValidationError,
    VarNotFound,
)
from fnspec.identifiers import FunctionId
from fnspec.instrument import Instrumenter, get_instrumenter
from fnspec.registry import FunctionRegistry
from fnspec.schema import PydanticSchemaService
from fnspec.store import OriginalStore
from fnspec.wrapper import is_wrapper

IDENTITY = FunctionId("fnspec_targets", "identity")
NEGATE = FunctionId("fnspec_targets", "negate")
ADD = FunctionId("fnspec_targets", "add")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def registry():
    registry = FunctionRegistry()
    registry.register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
    registry.register(NEGATE, args=tuple[int], ret=PositiveInt)
    return registry


@pytest.fixture
def store():
    return OriginalStore()


@pytest.fixture
def instrumenter(registry, store, target_module):
    return Instrumenter(
        registry=registry,
        store=store,
        schema_service=PydanticSchemaService(),
    )


# ---------------------------------------------------------------------------
# instrument_one
# ---------------------------------------------------------------------------


class TestCollaborators:
    def test_empty_collaborators_are_kept(self, target_module):
        registry = FunctionRegistry()
        store = OriginalStore()
        instrumenter = Instrumenter(registry=registry, store=store)

        assert instrumenter.registry is registry
        assert instrumenter.store is store

    def test_defaults_to_process_wide_state(self):
        instrumenter = Instrumenter()
        assert instrumenter.registry is fnspec.get_registry()
        assert instrumenter.store is fnspec.get_store()


class TestInstrumentOne:
    def test_installs_validating_wrapper(self, instrumenter, target_module, store):
        original = target_module.identity
        assert instrumenter.instrument_one(IDENTITY) == IDENTITY

        assert target_module.identity is not original
        assert is_wrapper(target_module.identity)
        assert store.get_or(IDENTITY) is original

    def test_input_rejection(self, instrumenter, target_module):
        instrumenter.instrument_one(IDENTITY)

        with pytest.raises(ValidationError) as exc_info:
            target_module.identity(-1)
        assert exc_info.value.offending_value == (-1,)
        assert target_module.identity(5) == 5

    def test_output_rejection(self, instrumenter, target_module):
        instrumenter.instrument_one(NEGATE)

        with pytest.raises(ValidationError) as exc_info:
            target_module.negate(3)
        assert exc_info.value.offending_value == -3
        assert exc_info.value.direction == "ret"

    def test_output_accepted_after_redefinition(self, instrumenter, target_module):
        instrumenter.instrument_one(NEGATE)
        with pytest.raises(ValidationError):
            target_module.negate(3)

        instrumenter.unstrument_one(NEGATE)
        target_module.negate = lambda x: x
        instrumenter.instrument_one(NEGATE)
        assert target_module.negate(3) == 3

    @pytest.mark.parametrize("times", [1, 2, 5])
    def test_idempotent(self, instrumenter, target_module, store, times):
        original = target_module.identity
        for _ in range(times):
            instrumenter.instrument_one(IDENTITY)

        wrapper = target_module.identity
        assert wrapper.__wrapped__ is original
        assert store.get_or(IDENTITY) is original
        assert not is_wrapper(store.get_or(IDENTITY))
        assert len(store) == 1

    def test_accepts_string_id(self, instrumenter, target_module):
        instrumenter.instrument_one("fnspec_targets:identity")
        assert instrumenter.is_instrumented(IDENTITY)

    def test_schema_not_found(self, instrumenter, target_module):
        with pytest.raises(SchemaNotFound) as exc_info:
            instrumenter.instrument_one(ADD)
        assert exc_info.value.function == ADD

    def test_var_not_found(self, instrumenter, registry):
        missing = FunctionId("fnspec_targets", "missing")
        registry.register(missing, args=tuple[int], ret=int)

        with pytest.raises(VarNotFound) as exc_info:
            instrumenter.instrument_one(missing)
        assert exc_info.value.function == missing

    def test_schema_checked_before_binding(self, instrumenter):
        with pytest.raises(SchemaNotFound):
            instrumenter.instrument_one(FunctionId("no_such_module_xyz", "f"))

    def test_class_method(self, instrumenter, registry, target_module):
        bump = FunctionId("fnspec_targets", "Counter.bump")
        registry.register(bump, args=tuple[object, PositiveInt], ret=PositiveInt)
        instrumenter.instrument_one(bump)

        counter = target_module.Counter()
        assert counter.bump(1) == 2
        with pytest.raises(ValidationError):
            counter.bump(-5)

    def test_relative_namespace_is_var_not_found(self, instrumenter, registry):
        relative = FunctionId("..relative", "f")
        registry.register(relative, args=tuple[int], ret=int)

        with pytest.raises(VarNotFound):
            instrumenter.instrument_one(relative)
        with pytest.raises(VarNotFound):
            instrumenter.unstrument_one(relative)

    def test_failed_rebinding_leaves_function_bare(self, instrumenter, registry, store):
        upper = FunctionId("builtins", "str.upper")
        registry.register(upper, args=tuple[str], ret=str)

        with pytest.raises(TypeError):
            instrumenter.instrument_one(upper)

        assert not instrumenter.is_instrumented(upper)
        assert upper not in store
        assert "abc".upper() == "ABC"


# ---------------------------------------------------------------------------
# unstrument_one
# ---------------------------------------------------------------------------


class TestUnstrumentOne:
    def test_round_trip(self, instrumenter, target_module, store):
        original = target_module.identity
        instrumenter.instrument_one(IDENTITY)
        instrumenter.unstrument_one(IDENTITY)

        assert target_module.identity is original
        assert target_module.identity(-1) == -1
        assert IDENTITY not in store

    def test_round_trip_after_repeated_instrumentation(self, instrumenter, target_module):
        original = target_module.identity
        instrumenter.instrument_one(IDENTITY)
        instrumenter.instrument_one(IDENTITY)
        instrumenter.unstrument_one(IDENTITY)
        assert target_module.identity is original

    def test_never_instrumented_is_noop(self, instrumenter, target_module):
        original = target_module.identity
        instrumenter.unstrument_one(IDENTITY)
        assert target_module.identity is original

    def test_twice_is_noop(self, instrumenter, target_module):
        original = target_module.identity
        instrumenter.instrument_one(IDENTITY)
        instrumenter.unstrument_one(IDENTITY)
        instrumenter.unstrument_one(IDENTITY)
        assert target_module.identity is original

    def test_var_not_found(self, instrumenter):
        with pytest.raises(VarNotFound):
            instrumenter.unstrument_one(FunctionId("no_such_module_xyz", "f"))

    def test_staticmethod_round_trip(self, instrumenter, registry, target_module):
        class Tools:
            @staticmethod
            def half(x):
                return x // 2

        target_module.Tools = Tools
        half = FunctionId("fnspec_targets", "Tools.half")
        registry.register(half, args=tuple[PositiveInt], ret=int)

        instrumenter.instrument_one(half)
        assert Tools().half(4) == 2
        assert Tools.half(4) == 2
        with pytest.raises(ValidationError):
            Tools().half(-4)

        instrumenter.unstrument_one(half)
        assert isinstance(Tools.__dict__["half"], staticmethod)
        assert Tools().half(4) == 2
        assert Tools().half(-4) == -2

    def test_classmethod_round_trip(self, instrumenter, registry, target_module):
        class Factory:
            @classmethod
            def make(cls, n):
                return n

        target_module.Factory = Factory
        make = FunctionId("fnspec_targets", "Factory.make")
        registry.register(make, args=tuple[object, PositiveInt], ret=int)

        instrumenter.instrument_one(make)
        assert Factory.make(3) == 3
        assert Factory().make(3) == 3
        with pytest.raises(ValidationError):
            Factory.make(-3)

        instrumenter.unstrument_one(make)
        assert isinstance(Factory.__dict__["make"], classmethod)
        assert Factory.make(-3) == -3


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


class TestBulk:
    def test_instrument_all_and_unstrument_all(self, instrumenter, target_module):
        identity, negate = target_module.identity, target_module.negate

        assert instrumenter.instrument_all() == [IDENTITY, NEGATE]
        assert set(instrumenter.instrumented_ids()) == {IDENTITY, NEGATE}

        assert instrumenter.unstrument_all() == [IDENTITY, NEGATE]
        assert target_module.identity is identity
        assert target_module.negate is negate
        assert instrumenter.instrumented_ids() == []

    def test_batch_isolation(self, store, target_module):
        registry = FunctionRegistry()
        missing = FunctionId("fnspec_targets", "missing")
        registry.register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
        registry.register(missing, args=tuple[int], ret=int)
        registry.register(NEGATE, args=tuple[int], ret=PositiveInt)
        instrumenter = Instrumenter(registry=registry, store=store)

        with pytest.raises(BatchInstrumentationError) as exc_info:
            instrumenter.instrument_all()

        failures = exc_info.value.failures
        assert len(failures) == 1
        assert isinstance(failures[0], VarNotFound)
        assert failures[0].function == missing
        assert instrumenter.is_instrumented(IDENTITY)
        assert instrumenter.is_instrumented(NEGATE)
        assert not instrumenter.is_instrumented(missing)

    def test_unstrument_all_collects_failures(self, store, target_module):
        registry = FunctionRegistry()
        registry.register(IDENTITY, args=tuple[int], ret=int)
        registry.register("no_such_module_xyz:f", args=tuple[int], ret=int)
        instrumenter = Instrumenter(registry=registry, store=store)
        original = target_module.identity
        instrumenter.instrument_one(IDENTITY)

        with pytest.raises(BatchInstrumentationError) as exc_info:
            instrumenter.unstrument_all()

        assert exc_info.value.operation == "unstrument"
        assert len(exc_info.value.failures) == 1
        assert target_module.identity is original

    def test_failures_keep_order(self, store, target_module):
        instrumenter = Instrumenter(registry=FunctionRegistry(), store=store)
        with pytest.raises(BatchInstrumentationError) as exc_info:
            instrumenter.instrument(["pkg:a", IDENTITY, "pkg:b"])
        assert [f.function.name for f in exc_info.value.failures] == ["a", "identity", "b"]
        assert all(isinstance(f, SchemaNotFound) for f in exc_info.value.failures)

    def test_empty_registry(self, store):
        instrumenter = Instrumenter(registry=FunctionRegistry(), store=store)
        assert instrumenter.instrument_all() == []
        assert instrumenter.unstrument_all() == []

    def test_explicit_subset(self, instrumenter, target_module):
        assert instrumenter.instrument([NEGATE]) == [NEGATE]
        assert not instrumenter.is_instrumented(IDENTITY)


# ---------------------------------------------------------------------------
# Scoped instrumentation
# ---------------------------------------------------------------------------


class TestInstrumented:
    def test_restores_on_exit(self, instrumenter, target_module):
        original = target_module.identity
        with instrumenter.instrumented([IDENTITY]) as ids:
            assert ids == [IDENTITY]
            with pytest.raises(ValidationError):
                target_module.identity(-1)
        assert target_module.identity is original

    def test_restores_on_error(self, instrumenter, target_module):
        original = target_module.identity
        with pytest.raises(ValidationError):
            with instrumenter.instrumented():
                target_module.identity(0)
        assert target_module.identity is original
        assert instrumenter.instrumented_ids() == []

    def test_partial_failure_restores_and_raises(self, instrumenter, registry, target_module):
        registry.register("fnspec_targets:missing", args=tuple[int], ret=int)
        original = target_module.identity

        with pytest.raises(BatchInstrumentationError):
            with instrumenter.instrumented():
                pass  # pragma: no cover

        assert target_module.identity is original
        assert instrumenter.instrumented_ids() == []

    def test_nested_inside_instrument_all(self, instrumenter, target_module):
        instrumenter.instrument_all()
        with instrumenter.instrumented([IDENTITY]):
            pass

        assert instrumenter.is_instrumented(IDENTITY)
        assert is_wrapper(target_module.identity)
        with pytest.raises(ValidationError):
            target_module.identity(-1)

    def test_restores_only_what_it_instrumented(self, instrumenter, target_module):
        original_identity = target_module.identity
        instrumenter.instrument_one(NEGATE)

        with instrumenter.instrumented():
            assert instrumenter.instrumented_ids() == [NEGATE, IDENTITY]

        assert target_module.identity is original_identity
        assert instrumenter.instrumented_ids() == [NEGATE]


# ---------------------------------------------------------------------------
# Cell bindings
# ---------------------------------------------------------------------------


class TestCellBindings:
    def test_instrument_cell(self, store):
        resolver = CellBindingResolver()
        square = resolver.add("app:square", lambda x: x * x)
        registry = FunctionRegistry()
        registry.register("app:square", args=tuple[int], ret=PositiveInt)
        instrumenter = Instrumenter(registry=registry, resolver=resolver, store=store)

        instrumenter.instrument_all()
        assert square(3) == 9
        with pytest.raises(ValidationError):
            square(0)

        instrumenter.unstrument_all()
        assert square(0) == 0


# ---------------------------------------------------------------------------
# Module-level API
# ---------------------------------------------------------------------------


class TestModuleLevelApi:
    def test_fdef_and_instrument_all(self, target_module):
        fnspec.get_registry().register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
        original = target_module.identity

        fnspec.instrument_all()
        with pytest.raises(fnspec.ValidationError):
            target_module.identity(-1)
        assert fnspec.get_store().get_or(IDENTITY) is original

        fnspec.unstrument_all()
        assert target_module.identity is original

    def test_single_function_api(self, target_module):
        fnspec.get_registry().register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
        fnspec.instrument_one(IDENTITY)
        assert get_instrumenter().is_instrumented(IDENTITY)
        fnspec.unstrument_one(IDENTITY)
        assert not get_instrumenter().is_instrumented(IDENTITY)

    def test_instrumented_context(self, target_module):
        fnspec.get_registry().register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
        with fnspec.instrumented():
            with pytest.raises(fnspec.ValidationError):
                target_module.identity(-1)
        assert target_module.identity(-1) == -1

    def test_instrument_from_config_disabled(self, target_module):
        fnspec.get_registry().register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
        assert fnspec.instrument_from_config() == []
        assert target_module.identity(-1) == -1

    def test_instrument_from_config_enabled(self, target_module, monkeypatch):
        monkeypatch.setenv("FNSPEC_AUTO_INSTRUMENT", "true")
        fnspec.get_registry().register(IDENTITY, args=tuple[PositiveInt], ret=PositiveInt)
        assert get_config().auto_instrument is True
        assert fnspec.instrument_from_config() == [IDENTITY]
        with pytest.raises(fnspec.ValidationError):
            target_module.identity(-1)
        fnspec.unstrument_all()
