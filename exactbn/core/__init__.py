"""Core module for exactbn.

This module contains the domain, variable and table abstractions shared by
the network and inference modules.
"""

from .config import InferenceConfig
from .context import ModelContext, VariableRegistry
from .errors import (
    ExactBNError,
    InvalidKeyError,
    NetworkStructureError,
    StructuralError,
    UnknownVariableError,
    ZeroProbabilityError,
)
from .table import EnumTable
from .types import Assignment, Domain, Variable

__all__ = [
    "Assignment",
    "Domain",
    "EnumTable",
    "ExactBNError",
    "InferenceConfig",
    "InvalidKeyError",
    "ModelContext",
    "NetworkStructureError",
    "StructuralError",
    "UnknownVariableError",
    "Variable",
    "VariableRegistry",
    "ZeroProbabilityError",
]
