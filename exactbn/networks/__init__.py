"""Bayesian network structure and builders."""

from .dag import BNet
from .graph import build_alarm, build_chain, build_sprinkler, build_tree

__all__ = [
    "BNet",
    "build_alarm",
    "build_chain",
    "build_sprinkler",
    "build_tree",
]
