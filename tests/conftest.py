"""Pytest configuration and fixtures."""

import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

import pytest

from hubsync_pkg.adapters import InMemoryEngine, InMemoryRepository
from hubsync_pkg.config import AppConfig
from hubsync_pkg.domain import (
    ArrayParameterType,
    DependentParameterTypeAssignment,
    DomainOfExpertise,
    ElementDefinition,
    ElementUsage,
    IndependentParameterTypeAssignment,
    Iteration,
    MeasurementScale,
    Option,
    Parameter,
    ParameterOverride,
    ParameterTypeComponent,
    ParameterValueSet,
    QuantityKind,
    SampledFunctionParameterType,
    TextParameterType,
)
from hubsync_pkg.engine import SynchronizationController


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end workflow tests")


def value_set(manual, computed=None, option=None):
    """Value set with the same placeholder layout as a fresh parameter."""
    placeholders = ["-"] * len(manual)
    return ParameterValueSet(
        actual_option=option,
        manual=list(manual),
        computed=list(computed) if computed is not None else list(placeholders),
        reference=list(placeholders),
        formula=list(placeholders),
        published=list(manual),
    )


@pytest.fixture
def temp_dir():
    """Temporary directory for test artifacts."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


@pytest.fixture
def sample_config() -> AppConfig:
    """Configuration without log entry prompt."""
    config = AppConfig()
    config.transfer.require_log_entry = False
    return config


@pytest.fixture
def model() -> SimpleNamespace:
    """Small engineering model: reference data plus one satellite element."""
    domain = DomainOfExpertise(name="System Engineering", short_name="SYS")

    kg = MeasurementScale(name="kilogram", short_name="kg")
    second = MeasurementScale(name="second", short_name="s")
    metre = MeasurementScale(name="metre", short_name="m", minimum=0.0)

    mass = QuantityKind(name="mass", short_name="mass", default_scale=kg, possible_scales=[kg])
    time = QuantityKind(name="time", short_name="t", default_scale=second, possible_scales=[second])
    length = QuantityKind(name="length", short_name="len", default_scale=metre, possible_scales=[metre])
    label = TextParameterType(name="label", short_name="label")
    deprecated = QuantityKind(name="legacy mass", short_name="lmass", is_deprecated=True)

    matrix = ArrayParameterType(
        name="matrix",
        short_name="mat",
        dimension=[2, 2],
        components=[
            ParameterTypeComponent(short_name=f"c{index}", parameter_type=mass, scale=kg)
            for index in range(4)
        ],
    )
    trajectory = SampledFunctionParameterType(
        name="trajectory",
        short_name="traj",
        independent_parameter_type=[
            IndependentParameterTypeAssignment(parameter_type=time, measurement_scale=second),
            IndependentParameterTypeAssignment(parameter_type=length, measurement_scale=metre),
        ],
        dependent_parameter_type=[
            DependentParameterTypeAssignment(parameter_type=mass, measurement_scale=kg),
        ],
    )

    option = Option(name="Option 1", short_name="opt1")

    mass_parameter = Parameter(
        parameter_type=mass,
        scale=kg,
        owner=domain,
        value_sets=[value_set(["10"], computed=["12"])],
    )
    trajectory_parameter = Parameter(
        parameter_type=trajectory,
        owner=domain,
        value_sets=[value_set(["0", "1", "5", "1", "2", "6"])],
    )
    satellite = ElementDefinition(
        name="Satellite",
        short_name="sat",
        owner=domain,
        parameters=[mass_parameter, trajectory_parameter],
    )

    battery_mass = Parameter(parameter_type=mass, scale=kg, owner=domain, value_sets=[value_set(["3"])])
    battery = ElementDefinition(name="Battery", short_name="bat", owner=domain, parameters=[battery_mass])
    battery_usage = ElementUsage(
        name="Battery 1",
        short_name="bat1",
        owner=domain,
        element_definition=battery,
        parameter_overrides=[
            ParameterOverride(owner=domain, parameter=battery_mass, value_sets=[value_set(["4"])]),
        ],
    )
    satellite.contained_elements.append(battery_usage)
    battery_usage.container = satellite

    iteration = Iteration(
        elements=[satellite, battery],
        options=[option],
        parameter_types=[mass, time, length, label, deprecated, matrix, trajectory],
    )

    return SimpleNamespace(
        domain=domain,
        kg=kg,
        second=second,
        metre=metre,
        mass=mass,
        time=time,
        length=length,
        label=label,
        deprecated=deprecated,
        matrix=matrix,
        trajectory=trajectory,
        option=option,
        mass_parameter=mass_parameter,
        trajectory_parameter=trajectory_parameter,
        satellite=satellite,
        battery=battery,
        battery_mass=battery_mass,
        battery_usage=battery_usage,
        iteration=iteration,
    )


@pytest.fixture
def repository(model) -> InMemoryRepository:
    return InMemoryRepository(model.iteration, model.domain)


@pytest.fixture
def engine() -> InMemoryEngine:
    return InMemoryEngine()


@pytest.fixture
def controller(engine, repository, sample_config) -> SynchronizationController:
    return SynchronizationController(engine, repository, config=sample_config)
