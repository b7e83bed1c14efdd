"""End-to-end synchronization workflows over the in-memory collaborators."""

from __future__ import annotations

import asyncio
from pathlib import Path

import numpy as np
import pytest

from hubsync_pkg import app_api
from hubsync_pkg.adapters import InMemoryEngine, InMemoryRepository
from hubsync_pkg.contracts import MappingDirection
from hubsync_pkg.domain import ParameterSwitchKind, ParameterToVariableMapping, value_rows


def _runner(path: str, workspace: dict) -> None:
    workspace["total"] = workspace["mass"] * 2


def _named(collection, name):
    return next(variable for variable in collection if variable.name == name)


@pytest.fixture
def script(temp_dir: Path) -> Path:
    path = temp_dir / "orbit.m"
    path.write_text("mass = 12.5;\ngains = [1 2; 3 4];\ntotal = mass * 2;\n")
    return path


@pytest.mark.integration
def test_script_to_repository_and_back(script, model, sample_config):
    engine = InMemoryEngine(script_runner=_runner)
    repository = InMemoryRepository(model.iteration, model.domain)
    controller = app_api.build_controller(engine, repository, sample_config)

    assert asyncio.run(controller.connect())
    controller.load_script(script)
    assert asyncio.run(controller.run_script())
    assert engine.workspace["total"] == 25.0

    # Engine -> repository: the script's total becomes a new element parameter
    total = _named(controller.workspace_variables, "total")
    total.selected_parameter_type = model.mass
    controller.map_variables([total])
    controller.selected_dst_map_result_for_transfer.extend(controller.dst_map_result.values())
    assert asyncio.run(controller.transfer_to_repository())

    element = next(element for element in repository.open_iteration.elements if element.name == "total")
    value_set = element.parameters[0].value_sets[0]
    assert value_set.computed == ["25"]
    assert value_set.value_switch is ParameterSwitchKind.COMPUTED

    # Repository -> engine: the satellite mass drives the script input
    mass = _named(controller.input_variables, "mass")
    row = value_rows(model.mass_parameter)[0]
    controller.map_rows([ParameterToVariableMapping(model.mass_parameter, row, mass)])
    controller.selected_hub_map_result_for_transfer.extend(controller.hub_map_result.values())
    assert asyncio.run(controller.transfer_to_engine())

    assert engine.workspace["mass"] == 10
    directions = [entry.direction for entry in controller.audit_trail]
    assert directions[0] is MappingDirection.FROM_DST_TO_HUB
    assert directions[-1] is MappingDirection.FROM_HUB_TO_DST


@pytest.mark.integration
def test_mapping_survives_a_new_session(script, model, sample_config):
    repository = InMemoryRepository(model.iteration, model.domain)
    first = app_api.build_controller(InMemoryEngine(script_runner=_runner), repository, sample_config)
    asyncio.run(first.connect())
    first.load_script(script)
    asyncio.run(first.run_script())

    total = _named(first.workspace_variables, "total")
    total.selected_parameter_type = model.mass
    first.map_variables([total])
    first.selected_dst_map_result_for_transfer.extend(first.dst_map_result.values())
    asyncio.run(first.transfer_to_repository())
    first.disconnect()

    # Same script in a fresh session: the saved correspondence maps total again
    second = app_api.build_controller(InMemoryEngine(script_runner=_runner), repository, sample_config)
    asyncio.run(second.connect())
    second.load_script(script)
    asyncio.run(second.run_script())

    mapped = second.parameter_variable.values()
    assert [item.variable.identifier for item in mapped] == ["orbit-total"]
    assert mapped[0].variable.selected_element_definition.name == "total"


@pytest.mark.integration
def test_matrix_cells_written_back(script, model, sample_config):
    engine = InMemoryEngine(script_runner=_runner)
    repository = InMemoryRepository(model.iteration, model.domain)
    controller = app_api.build_controller(engine, repository, sample_config)
    asyncio.run(controller.connect())
    controller.load_script(script)
    asyncio.run(controller.run_script())

    cell = _named(controller.input_variables, "gains[0,1]")
    row = value_rows(model.battery_mass)[0]
    controller.map_rows([ParameterToVariableMapping(model.battery_mass, row, cell)])
    controller.selected_hub_map_result_for_transfer.extend(controller.hub_map_result.values())
    asyncio.run(controller.transfer_to_engine())

    np.testing.assert_array_equal(engine.workspace["gains"], [[1.0, 3.0], [3.0, 4.0]])
    assert _named(controller.workspace_variables, "gains").array_value[0, 1] == 3
