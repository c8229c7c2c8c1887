"""Variable registries and the model-building context manager."""

from __future__ import annotations

import itertools
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .types import Variable


class VariableRegistry:
    """Assigns canonical indices to variables.

    Indices start at zero, grow monotonically and are never reused.
    Variables from different registries never compare equal, so separate
    models (or separate tests) can share a process without sharing an
    index space.
    """

    _ids = itertools.count()

    def __init__(self, name: Optional[str] = None) -> None:
        self.uid = next(VariableRegistry._ids)
        self.name = name or f"registry{self.uid}"
        self._variables: List["Variable"] = []

    def register(self, variable: "Variable") -> int:
        """Register *variable* and return its canonical index."""
        self._variables.append(variable)
        return len(self._variables) - 1

    @property
    def variables(self) -> List["Variable"]:
        """All variables registered so far, in index order."""
        return list(self._variables)

    def __len__(self) -> int:
        return len(self._variables)

    def __repr__(self) -> str:
        return f"VariableRegistry(name={self.name!r}, size={len(self)})"


_default_registry = VariableRegistry("default")


def default_registry() -> VariableRegistry:
    """Return the registry used when no :class:`ModelContext` is active."""
    return _default_registry


class ModelContext:
    """Context manager for model definition.

    Variables created inside the context are registered with the
    context's own :class:`VariableRegistry`.

    Example:
        >>> with ModelContext() as model:
        ...     rain = Variable.boolean("Rain")
        >>> rain.registry is model.registry
        True
    """

    _active_context: Optional["ModelContext"] = None

    def __init__(self, registry: Optional[VariableRegistry] = None):
        """Initialize a new model context.

        Args:
            registry: Registry to use; a fresh one is created if omitted.
        """
        self.registry = registry if registry is not None else VariableRegistry()
        self._parent_context: Optional[ModelContext] = None

    def __enter__(self) -> "ModelContext":
        """Enter the context and make its registry the active one.

        Returns:
            The ModelContext instance.
        """
        self._parent_context = ModelContext._active_context
        ModelContext._active_context = self
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        """Exit the context, restoring the enclosing one.

        Returns:
            False to propagate any exceptions.
        """
        ModelContext._active_context = self._parent_context
        return False

    @property
    def variables(self) -> List["Variable"]:
        """Variables registered within this context."""
        return self.registry.variables

    @classmethod
    def get_active_context(cls) -> Optional["ModelContext"]:
        """Get the currently active context, or None."""
        return cls._active_context

    @classmethod
    def is_active(cls) -> bool:
        """Check if a model context is currently active."""
        return cls._active_context is not None

    @classmethod
    def current_registry(cls) -> VariableRegistry:
        """Registry of the active context, else the default registry."""
        if cls._active_context is not None:
            return cls._active_context.registry
        return _default_registry
