"""Tests for the in-memory engine and repository."""

import numpy as np
import pytest

from hubsync_pkg.adapters import InMemoryEngine, InMemoryRepository
from hubsync_pkg.contracts import EngineConnectionError, TransferError
from hubsync_pkg.domain import (
    ElementDefinition,
    ExternalIdentifierMap,
    Parameter,
    ThingTransaction,
    WorkspaceVariable,
)


class TestInMemoryEngine:
    """Test the dictionary backed engine."""

    def test_requires_session(self):
        engine = InMemoryEngine({"a": 1.0})
        with pytest.raises(EngineConnectionError):
            engine.get_variable("a")

    def test_unavailable(self):
        engine = InMemoryEngine(available=False)
        assert engine.connect() is False
        assert engine.connected is False

    def test_listing(self):
        engine = InMemoryEngine({"b": 1.0, "a": 2.0})
        engine.connect("R2023b")

        assert engine.execute_function("who") == "Your variables are:\n\na b\n"
        assert engine.version == "R2023b"

    def test_empty_listing(self):
        engine = InMemoryEngine()
        engine.connect()
        assert engine.execute_function("who") == ""

    def test_get_variable_copies_arrays(self):
        array = np.ones((2, 2))
        engine = InMemoryEngine({"m": array})
        engine.connect()

        variable = engine.get_variable("m")
        variable.actual_value[0, 0] = 5.0

        assert array[0, 0] == 1.0
        assert engine.get_variable("missing") is None

    def test_put_decomposed_variable(self):
        engine = InMemoryEngine()
        engine.connect()
        variable = WorkspaceVariable(name="m", actual_value=np.array([[1.0, 2.0]]))
        variable.decompose()

        engine.put_variable(variable)

        np.testing.assert_array_equal(engine.workspace["m"], [[1.0, 2.0]])

    def test_run_command(self):
        calls = []
        engine = InMemoryEngine(script_runner=lambda path, workspace: calls.append(path))
        engine.connect()

        engine.execute_function("run('/tmp/fmodel.m')")
        engine.execute_function("disp(1)")

        assert calls == ["/tmp/fmodel.m"]
        assert engine.executed == ["run('/tmp/fmodel.m')", "disp(1)"]


class TestInMemoryRepository:
    """Test transaction application."""

    def test_lookup_by_iid(self, repository, model):
        assert repository.get_thing_by_id(model.mass_parameter.iid) is model.mass_parameter
        assert repository.get_thing_by_id(model.battery_usage.iid) is model.battery_usage
        assert repository.get_thing_by_id(model.option.iid) is model.option
        assert repository.get_thing_by_id(model.mass_parameter.iid, ElementDefinition) is None

    def test_create_with_new_container(self, repository, model):
        iteration_clone = repository.open_iteration.clone()
        element = ElementDefinition(name="Lander", short_name="lander", owner=model.domain)
        parameter = Parameter(parameter_type=model.mass, owner=model.domain)
        transaction = ThingTransaction(iteration_clone)

        # Child registered before its container
        transaction.create(parameter, element)
        transaction.create(element, iteration_clone)
        repository.write(transaction)

        persisted = repository.get_thing_by_id(element.iid)
        assert persisted is element
        assert persisted in repository.open_iteration.elements
        assert repository.get_thing_by_id(parameter.iid).container is element

    def test_update_replaces_in_place(self, repository, model):
        clone = model.satellite.clone(deep=True)
        clone.name = "Spacecraft"
        transaction = ThingTransaction(repository.open_iteration.clone())
        transaction.create_or_update(clone)

        repository.write(transaction)

        elements = repository.open_iteration.elements
        assert elements[0] is clone
        assert len(elements) == 2
        assert repository.get_thing_by_id(model.mass_parameter.iid).container is clone

    def test_unresolvable_container(self, repository, model):
        orphan_container = ElementDefinition(name="Ghost")
        transaction = ThingTransaction()
        transaction.create(Parameter(parameter_type=model.mass), orphan_container)

        with pytest.raises(TransferError, match="Cannot resolve the container"):
            repository.write(transaction)
        assert repository.transactions == []

    def test_write_disabled(self, repository):
        repository.fail_on_write = True
        with pytest.raises(TransferError):
            repository.write(ThingTransaction())

    def test_identifier_maps_by_tool(self, model):
        ours = ExternalIdentifierMap(name="default", external_tool_name="hubsync")
        theirs = ExternalIdentifierMap(name="default", external_tool_name="other")
        model.iteration.external_identifier_maps.extend([ours, theirs])

        repository = InMemoryRepository(model.iteration, model.domain)

        assert repository.available_external_identifier_maps("hubsync") == [ours]

    def test_log_entry(self, repository):
        transaction = ThingTransaction()
        repository.register_log_entry("Initial import", transaction)

        assert transaction.log_entry == "Initial import"
        assert repository.log_entries == ["Initial import"]

    def test_default_session(self):
        repository = InMemoryRepository()
        assert repository.open_iteration.elements == []
        assert repository.current_domain_of_expertise.short_name == "SYS"
