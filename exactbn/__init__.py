"""exactbn: exact inference in discrete Bayesian networks.

This package provides domains, variables and mixed-radix tables, the
conditional probability nodes that make up a network, the compiled
network with its structural and d-separation queries, and a variable
elimination engine answering posterior and most-probable-explanation
queries.
"""

import logging

try:
    from exactbn._version import version as __version__
except ImportError:
    __version__ = "0.1.0"

from .core import (
    Assignment,
    Domain,
    EnumTable,
    ExactBNError,
    InferenceConfig,
    InvalidKeyError,
    ModelContext,
    NetworkStructureError,
    StructuralError,
    UnknownVariableError,
    Variable,
    VariableRegistry,
    ZeroProbabilityError,
)
from .inference import (
    FactorTable,
    JPT,
    Query,
    QueryResult,
    VarElim,
    most_probable_explanation,
    variable_elimination,
)
from .distributions import BNode, CPT, EnumDistrib, NoisyOR
from .networks import BNet, build_alarm, build_chain, build_sprinkler, build_tree

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "Assignment",
    "BNet",
    "BNode",
    "CPT",
    "Domain",
    "EnumDistrib",
    "EnumTable",
    "ExactBNError",
    "FactorTable",
    "InferenceConfig",
    "InvalidKeyError",
    "JPT",
    "ModelContext",
    "NetworkStructureError",
    "NoisyOR",
    "Query",
    "QueryResult",
    "StructuralError",
    "UnknownVariableError",
    "VarElim",
    "Variable",
    "VariableRegistry",
    "ZeroProbabilityError",
    "build_alarm",
    "build_chain",
    "build_sprinkler",
    "build_tree",
    "most_probable_explanation",
    "variable_elimination",
]
