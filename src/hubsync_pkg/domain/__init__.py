"""Domain entities: repository things, workspace variables and mapping rows."""

from .things import (
    Thing,
    same_thing,
    DomainOfExpertise,
    MeasurementScale,
    Option,
    ActualFiniteState,
    ActualFiniteStateList,
    ParameterType,
    ScalarParameterType,
    QuantityKind,
    EnumerationParameterType,
    BooleanParameterType,
    TextParameterType,
    ParameterTypeComponent,
    ArrayParameterType,
    ParameterTypeAssignment,
    IndependentParameterTypeAssignment,
    DependentParameterTypeAssignment,
    SampledFunctionParameterType,
    STRUCTURED_TYPES,
    ParameterSwitchKind,
    ParameterValueSet,
    ParameterBase,
    Parameter,
    ParameterOverride,
    ElementBase,
    ElementDefinition,
    ElementUsage,
    IdCorrespondence,
    ExternalIdentifierMap,
    Iteration,
)
from .transaction import OperationKind, TransactionOperation, ThingTransaction
from .observable import ObservableValue, ObservableList, KeyedCollection, CollectionChange
from .workspace import WorkspaceVariable, recompose, shape_placeholder
from .rows import (
    SampledFunctionAssignment,
    TimeTaggedValuesRow,
    ValueSetValueRow,
    ParameterToVariableMapping,
    MappedParameter,
    default_rows,
    set_time_tagged,
    time_tagged_index,
    value_rows,
)

__all__ = [
    # Things
    "Thing",
    "same_thing",
    "DomainOfExpertise",
    "MeasurementScale",
    "Option",
    "ActualFiniteState",
    "ActualFiniteStateList",
    "ParameterType",
    "ScalarParameterType",
    "QuantityKind",
    "EnumerationParameterType",
    "BooleanParameterType",
    "TextParameterType",
    "ParameterTypeComponent",
    "ArrayParameterType",
    "ParameterTypeAssignment",
    "IndependentParameterTypeAssignment",
    "DependentParameterTypeAssignment",
    "SampledFunctionParameterType",
    "STRUCTURED_TYPES",
    "ParameterSwitchKind",
    "ParameterValueSet",
    "ParameterBase",
    "Parameter",
    "ParameterOverride",
    "ElementBase",
    "ElementDefinition",
    "ElementUsage",
    "IdCorrespondence",
    "ExternalIdentifierMap",
    "Iteration",

    # Transactions
    "OperationKind",
    "TransactionOperation",
    "ThingTransaction",

    # Observables
    "ObservableValue",
    "ObservableList",
    "KeyedCollection",
    "CollectionChange",

    # Workspace
    "WorkspaceVariable",
    "recompose",
    "shape_placeholder",

    # Mapping rows
    "SampledFunctionAssignment",
    "TimeTaggedValuesRow",
    "ValueSetValueRow",
    "ParameterToVariableMapping",
    "MappedParameter",
    "default_rows",
    "set_time_tagged",
    "time_tagged_index",
    "value_rows",
]
