"""Exact inference for exactbn."""

from exactbn.inference.factor import FactorTable
from exactbn.inference.ordering import get_ordering, register_ordering
from exactbn.inference.result import JPT, QueryResult
from exactbn.inference.exact import (
    Query,
    VarElim,
    most_probable_explanation,
    variable_elimination,
)

__all__ = [
    "FactorTable",
    "JPT",
    "Query",
    "QueryResult",
    "VarElim",
    "get_ordering",
    "most_probable_explanation",
    "register_ordering",
    "variable_elimination",
]
