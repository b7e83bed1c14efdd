"""Services for validation, array layout, mapping and differences."""

from .arrays import ArrayReconstructor, format_invariant, parse_number
from .validity import (
    assignments_are_complete,
    is_type_compatible,
    variable_mapping_is_valid,
    candidate_parameter_types,
)
from .mapping_configuration import ExternalIdentifier, MappingCorrespondenceStore
from .mapping_rules import (
    MappingEngine,
    VariableMappingResult,
    VariableToElementRule,
    ParameterToVariableRule,
    build_mapping_engine,
)
from .difference import compute_difference, parameter_differences, variable_difference, matrix_differences
from .script_parser import ScriptParser, split_statements, parse_array_literal

__all__ = [
    # Arrays
    'ArrayReconstructor',
    'format_invariant',
    'parse_number',
    # Validity
    'assignments_are_complete',
    'is_type_compatible',
    'variable_mapping_is_valid',
    'candidate_parameter_types',
    # Mapping
    'ExternalIdentifier',
    'MappingCorrespondenceStore',
    'MappingEngine',
    'VariableMappingResult',
    'VariableToElementRule',
    'ParameterToVariableRule',
    'build_mapping_engine',
    # Differences
    'compute_difference',
    'parameter_differences',
    'variable_difference',
    'matrix_differences',
    # Scripts
    'ScriptParser',
    'split_statements',
    'parse_array_literal',
]
