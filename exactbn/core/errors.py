"""Exception hierarchy for exactbn.

Two families are kept apart.  Structural errors signal a malformed
network, table key or query and are never recoverable.
:class:`ZeroProbabilityError` signals evidence of probability zero and
may be skipped by batch callers.
"""


class ExactBNError(Exception):
    """Base class for all errors raised by exactbn."""


class StructuralError(ExactBNError, ValueError):
    """A network, table or query is malformed."""


class InvalidKeyError(StructuralError):
    """A table key, index or domain value is invalid."""


class NetworkStructureError(StructuralError):
    """Duplicate nodes, dangling parent references or cycles."""


class UnknownVariableError(StructuralError):
    """A variable or node is not part of the network."""


class ZeroProbabilityError(ExactBNError, ArithmeticError):
    """A table that must be normalised sums to zero.

    Raised for contradictory evidence, i.e. evidence with joint
    probability zero under the network.
    """
