"""Engineering repository thing model.

Things are plain dataclasses compared by identity. Each thing carries a
UUID ``iid`` and a ``container`` back-reference. Containment lists are
declared per class in ``_containment`` so that :meth:`Thing.clone` can
implement copy-on-write: containment lists are copied, reference data
(parameter types, scales, options, states, owners) is shared.
"""

from __future__ import annotations
import copy
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterator, List, Optional, Tuple, Type, TypeVar
from uuid import UUID, uuid4

from ..config.constants import PLACEHOLDER_VALUE
from ..contracts.types import ValidationResult

TThing = TypeVar("TThing", bound="Thing")


def same_thing(first: Optional["Thing"], second: Optional["Thing"]) -> bool:
    """Compare two things by iid, clones of a thing compare equal to it."""
    if first is None or second is None:
        return first is second
    return first.iid == second.iid


@dataclass(eq=False)
class Thing:
    """Base of every repository thing."""

    iid: Optional[UUID] = field(default_factory=uuid4)
    container: Optional["Thing"] = field(default=None, repr=False)

    _containment: ClassVar[Tuple[str, ...]] = ()
    """Names of the list attributes holding contained things"""

    _container_attribute: ClassVar[Optional[str]] = None
    """Name of the list attribute of the container that holds this kind of thing"""

    @property
    def class_kind(self) -> str:
        return type(self).__name__

    def contained_things(self) -> Iterator["Thing"]:
        """Iterate over the directly contained things."""
        for attribute in self._containment:
            yield from getattr(self, attribute)

    def get_container_of_type(self, thing_type: Type[TThing]) -> Optional[TThing]:
        """Walk up the containment chain to the first container of the given type."""
        current = self.container
        while current is not None:
            if isinstance(current, thing_type):
                return current
            current = current.container
        return None

    def clone(self: TThing, deep: bool = False) -> TThing:
        """Copy this thing for modification inside a transaction.

        Args:
            deep: Also clone the contained things recursively

        Returns:
            A new thing with the same iid and copied containment lists
        """
        clone = copy.copy(self)
        for attribute in self._containment:
            children = list(getattr(self, attribute))
            if deep:
                children = [child.clone(deep=True) for child in children]
                for child in children:
                    child.container = clone
            setattr(clone, attribute, children)
        return clone


# -- reference data -----------------------------------------------------------

@dataclass(eq=False)
class DomainOfExpertise(Thing):
    name: str = ""
    short_name: str = ""


@dataclass(eq=False)
class MeasurementScale(Thing):
    name: str = ""
    short_name: str = ""
    minimum: Optional[float] = None
    maximum: Optional[float] = None


@dataclass(eq=False)
class Option(Thing):
    name: str = ""
    short_name: str = ""


@dataclass(eq=False)
class ActualFiniteState(Thing):
    name: str = ""
    short_name: str = ""


@dataclass(eq=False)
class ActualFiniteStateList(Thing):
    name: str = ""
    actual_states: List[ActualFiniteState] = field(default_factory=list)


# -- parameter types ----------------------------------------------------------

@dataclass(eq=False)
class ParameterType(Thing):
    """Common parameter type attributes."""

    name: str = ""
    short_name: str = ""
    is_deprecated: bool = False

    @property
    def number_of_values(self) -> int:
        return 1

    def validate(self, value: Any, scale: Optional[MeasurementScale] = None) -> ValidationResult:
        return ValidationResult.valid()


@dataclass(eq=False)
class ScalarParameterType(ParameterType):
    """Parameter type holding a single value."""


@dataclass(eq=False)
class QuantityKind(ScalarParameterType):
    default_scale: Optional[MeasurementScale] = None
    possible_scales: List[MeasurementScale] = field(default_factory=list)

    def validate(self, value: Any, scale: Optional[MeasurementScale] = None) -> ValidationResult:
        """Check the value is a finite number within the scale limits."""
        if _is_placeholder(value):
            return ValidationResult.valid()

        if isinstance(value, bool):
            return ValidationResult.invalid(f"'{value}' is not a number")

        try:
            number = float(value)
        except (TypeError, ValueError):
            return ValidationResult.invalid(f"'{value}' is not a number")

        if math.isnan(number):
            return ValidationResult.invalid("NaN is not a valid quantity")

        scale = scale or self.default_scale
        if scale is not None:
            if scale.minimum is not None and number < scale.minimum:
                return ValidationResult.invalid(f"{number} is below the minimum {scale.minimum} of {scale.short_name}")
            if scale.maximum is not None and number > scale.maximum:
                return ValidationResult.invalid(f"{number} is above the maximum {scale.maximum} of {scale.short_name}")

        return ValidationResult.valid()


@dataclass(eq=False)
class EnumerationParameterType(ScalarParameterType):
    literals: List[str] = field(default_factory=list)
    allow_multi_select: bool = False

    def validate(self, value: Any, scale: Optional[MeasurementScale] = None) -> ValidationResult:
        if _is_placeholder(value):
            return ValidationResult.valid()

        chosen = [part.strip() for part in str(value).split("|")] if self.allow_multi_select else [str(value)]
        unknown = [literal for literal in chosen if literal not in self.literals]
        if unknown:
            return ValidationResult.invalid(f"{', '.join(unknown)} not in {self.short_name} literals")
        return ValidationResult.valid()


@dataclass(eq=False)
class BooleanParameterType(ScalarParameterType):

    def validate(self, value: Any, scale: Optional[MeasurementScale] = None) -> ValidationResult:
        if _is_placeholder(value) or isinstance(value, bool):
            return ValidationResult.valid()
        if str(value).strip().lower() in ("true", "false", "1", "0"):
            return ValidationResult.valid()
        return ValidationResult.invalid(f"'{value}' is not a boolean")


@dataclass(eq=False)
class TextParameterType(ScalarParameterType):
    pattern: Optional[str] = None

    def validate(self, value: Any, scale: Optional[MeasurementScale] = None) -> ValidationResult:
        if _is_placeholder(value) or self.pattern is None:
            return ValidationResult.valid()
        if re.fullmatch(self.pattern, str(value)) is None:
            return ValidationResult.invalid(f"'{value}' does not match {self.pattern}")
        return ValidationResult.valid()


@dataclass(eq=False)
class ParameterTypeComponent(Thing):
    short_name: str = ""
    parameter_type: Optional[ParameterType] = None
    scale: Optional[MeasurementScale] = None


@dataclass(eq=False)
class ArrayParameterType(ParameterType):
    """Fixed dimension array of homogeneous components, stored row-major."""

    dimension: List[int] = field(default_factory=list)
    components: List[ParameterTypeComponent] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("components",)

    @property
    def rank(self) -> int:
        return len(self.dimension)

    @property
    def number_of_values(self) -> int:
        return math.prod(self.dimension) if self.dimension else 0

    @property
    def has_single_component_type(self) -> bool:
        """True when every component shares one quantity kind."""
        types = {id(component.parameter_type) for component in self.components}
        return (
            len(types) == 1
            and isinstance(self.components[0].parameter_type, QuantityKind)
        )


@dataclass(eq=False)
class ParameterTypeAssignment(Thing):
    parameter_type: Optional[ParameterType] = None
    measurement_scale: Optional[MeasurementScale] = None


@dataclass(eq=False)
class IndependentParameterTypeAssignment(ParameterTypeAssignment):
    _container_attribute: ClassVar[Optional[str]] = "independent_parameter_type"


@dataclass(eq=False)
class DependentParameterTypeAssignment(ParameterTypeAssignment):
    _container_attribute: ClassVar[Optional[str]] = "dependent_parameter_type"


@dataclass(eq=False)
class SampledFunctionParameterType(ParameterType):
    """Table of samples, one value per independent and dependent assignment."""

    independent_parameter_type: List[IndependentParameterTypeAssignment] = field(default_factory=list)
    dependent_parameter_type: List[DependentParameterTypeAssignment] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("independent_parameter_type", "dependent_parameter_type")

    @property
    def number_of_values(self) -> int:
        return len(self.independent_parameter_type) + len(self.dependent_parameter_type)

    @property
    def assignments(self) -> List[ParameterTypeAssignment]:
        """Independent then dependent assignments, in declaration order."""
        return [*self.independent_parameter_type, *self.dependent_parameter_type]

    def parameter_names(self) -> List[str]:
        return [assignment.parameter_type.short_name for assignment in self.assignments]


STRUCTURED_TYPES = (ArrayParameterType, SampledFunctionParameterType)


# -- values and parameters ----------------------------------------------------

class ParameterSwitchKind(str, Enum):
    MANUAL = "MANUAL"
    COMPUTED = "COMPUTED"
    REFERENCE = "REFERENCE"


@dataclass(eq=False)
class ParameterValueSet(Thing):
    actual_option: Optional[Option] = None
    actual_state: Optional[ActualFiniteState] = None
    manual: List[str] = field(default_factory=list)
    computed: List[str] = field(default_factory=list)
    reference: List[str] = field(default_factory=list)
    formula: List[str] = field(default_factory=list)
    published: List[str] = field(default_factory=list)
    value_switch: ParameterSwitchKind = ParameterSwitchKind.MANUAL

    _container_attribute: ClassVar[Optional[str]] = "value_sets"

    @property
    def actual_value(self) -> List[str]:
        """Values selected by the value switch."""
        if self.value_switch is ParameterSwitchKind.COMPUTED:
            return self.computed
        if self.value_switch is ParameterSwitchKind.REFERENCE:
            return self.reference
        return self.manual

    def clone(self, deep: bool = False) -> "ParameterValueSet":
        clone = super().clone(deep)
        for attribute in ("manual", "computed", "reference", "formula", "published"):
            setattr(clone, attribute, list(getattr(self, attribute)))
        return clone


@dataclass(eq=False)
class ParameterBase(Thing):
    owner: Optional[DomainOfExpertise] = None
    value_sets: List[ParameterValueSet] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("value_sets",)

    @property
    def parameter_type(self) -> Optional[ParameterType]:
        raise NotImplementedError

    @property
    def scale(self) -> Optional[MeasurementScale]:
        raise NotImplementedError

    @property
    def state_dependence(self) -> Optional[ActualFiniteStateList]:
        raise NotImplementedError

    @property
    def is_option_dependent(self) -> bool:
        raise NotImplementedError

    def query_value_set(
        self,
        option: Optional[Option] = None,
        state: Optional[ActualFiniteState] = None,
    ) -> Optional[ParameterValueSet]:
        """Find the value set qualified by the option and state.

        The option is ignored for option-independent parameters and the
        state for state-independent ones.
        """
        for value_set in self.value_sets:
            if self.is_option_dependent and not same_thing(value_set.actual_option, option):
                continue
            if self.state_dependence is not None and not same_thing(value_set.actual_state, state):
                continue
            return value_set
        return None

    def element_name(self) -> str:
        element = self.get_container_of_type(ElementBase)
        return element.name if element is not None else ""


@dataclass(eq=False, init=False)
class Parameter(ParameterBase):
    """Parameter of an element definition."""

    _container_attribute: ClassVar[Optional[str]] = "parameters"

    def __init__(
        self,
        iid: Optional[UUID] = None,
        container: Optional[Thing] = None,
        owner: Optional[DomainOfExpertise] = None,
        value_sets: Optional[List[ParameterValueSet]] = None,
        parameter_type: Optional[ParameterType] = None,
        scale: Optional[MeasurementScale] = None,
        state_dependence: Optional[ActualFiniteStateList] = None,
        is_option_dependent: bool = False,
    ):
        super().__init__(iid=iid or uuid4(), container=container, owner=owner, value_sets=value_sets or [])
        self._parameter_type = parameter_type
        self._scale = scale
        self._state_dependence = state_dependence
        self._is_option_dependent = is_option_dependent
        for value_set in self.value_sets:
            value_set.container = self

    @property
    def parameter_type(self) -> Optional[ParameterType]:
        return self._parameter_type

    @parameter_type.setter
    def parameter_type(self, value: Optional[ParameterType]) -> None:
        self._parameter_type = value

    @property
    def scale(self) -> Optional[MeasurementScale]:
        return self._scale

    @scale.setter
    def scale(self, value: Optional[MeasurementScale]) -> None:
        self._scale = value

    @property
    def state_dependence(self) -> Optional[ActualFiniteStateList]:
        return self._state_dependence

    @property
    def is_option_dependent(self) -> bool:
        return self._is_option_dependent


@dataclass(eq=False, init=False)
class ParameterOverride(ParameterBase):
    """Override of a parameter inside an element usage.

    Type, scale and dependencies follow the overridden parameter.
    """

    _container_attribute: ClassVar[Optional[str]] = "parameter_overrides"

    def __init__(
        self,
        iid: Optional[UUID] = None,
        container: Optional[Thing] = None,
        owner: Optional[DomainOfExpertise] = None,
        value_sets: Optional[List[ParameterValueSet]] = None,
        parameter: Optional[Parameter] = None,
    ):
        super().__init__(iid=iid or uuid4(), container=container, owner=owner, value_sets=value_sets or [])
        self.parameter = parameter
        for value_set in self.value_sets:
            value_set.container = self

    @property
    def parameter_type(self) -> Optional[ParameterType]:
        return self.parameter.parameter_type if self.parameter else None

    @property
    def scale(self) -> Optional[MeasurementScale]:
        return self.parameter.scale if self.parameter else None

    @property
    def state_dependence(self) -> Optional[ActualFiniteStateList]:
        return self.parameter.state_dependence if self.parameter else None

    @property
    def is_option_dependent(self) -> bool:
        return self.parameter.is_option_dependent if self.parameter else False


# -- elements -----------------------------------------------------------------

@dataclass(eq=False)
class ElementBase(Thing):
    name: str = ""
    short_name: str = ""
    owner: Optional[DomainOfExpertise] = None


@dataclass(eq=False)
class ElementDefinition(ElementBase):
    parameters: List[Parameter] = field(default_factory=list)
    contained_elements: List["ElementUsage"] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("parameters", "contained_elements")
    _container_attribute: ClassVar[Optional[str]] = "elements"

    def __post_init__(self) -> None:
        for child in self.contained_things():
            child.container = self


@dataclass(eq=False)
class ElementUsage(ElementBase):
    element_definition: Optional[ElementDefinition] = None
    parameter_overrides: List[ParameterOverride] = field(default_factory=list)
    excluded_options: List[Option] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("parameter_overrides",)
    _container_attribute: ClassVar[Optional[str]] = "contained_elements"

    def __post_init__(self) -> None:
        for child in self.contained_things():
            child.container = self


# -- mapping persistence ------------------------------------------------------

@dataclass(eq=False)
class IdCorrespondence(Thing):
    """Link between a repository thing and an external identifier (JSON)."""

    iid: Optional[UUID] = None
    internal_thing: Optional[UUID] = None
    external_id: str = ""

    _container_attribute: ClassVar[Optional[str]] = "correspondences"


@dataclass(eq=False)
class ExternalIdentifierMap(Thing):
    """Named mapping configuration of an external tool."""

    iid: Optional[UUID] = None
    name: str = ""
    external_tool_name: str = ""
    external_model_name: str = ""
    owner: Optional[DomainOfExpertise] = None
    correspondences: List[IdCorrespondence] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("correspondences",)
    _container_attribute: ClassVar[Optional[str]] = "external_identifier_maps"


@dataclass(eq=False)
class Iteration(Thing):
    elements: List[ElementDefinition] = field(default_factory=list)
    options: List[Option] = field(default_factory=list)
    actual_finite_state_lists: List[ActualFiniteStateList] = field(default_factory=list)
    parameter_types: List[ParameterType] = field(default_factory=list)
    external_identifier_maps: List[ExternalIdentifierMap] = field(default_factory=list)

    _containment: ClassVar[Tuple[str, ...]] = ("elements", "external_identifier_maps")

    def __post_init__(self) -> None:
        for child in self.contained_things():
            child.container = self


def _is_placeholder(value: Any) -> bool:
    return isinstance(value, str) and value == PLACEHOLDER_VALUE
