"""Distributions and conditional probability nodes for exactbn."""

from .discrete import EnumDistrib
from .conditional import BNode, CPT, NoisyOR

__all__ = [
    "BNode",
    "CPT",
    "EnumDistrib",
    "NoisyOR",
]
