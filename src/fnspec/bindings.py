"""
Binding resolvers: locate the mutable slot a function is called through.

Two resolvers are provided:

- ``ModuleBindingResolver`` (default) treats ``FunctionId.namespace`` as an
  importable module and ``FunctionId.name`` as a dotted attribute path.
  Setting the binding rebinds the attribute, so callers that look the
  function up through its module at call time see the wrapper.
- ``CellBindingResolver`` resolves explicitly registered ``BindingCell``
  objects.  Callers invoke the cell, which always dereferences its
  current implementation.

Usage::

    from fnspec.bindings import BindingCell, CellBindingResolver

    resolver = CellBindingResolver()
    double = resolver.add("app:double", lambda x: 2 * x)
    double(3)  # 6
"""

from __future__ import annotations

import importlib
import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from fnspec.identifiers import FunctionId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BindingHandle:
    """Location of a live binding: attribute ``attr`` on ``owner``."""

    function: FunctionId
    owner: Any
    attr: str


@runtime_checkable
class BindingResolver(Protocol):
    """Locates and mutates the live binding for a function."""

    def resolve(self, function: FunctionId) -> Optional[BindingHandle]:
        ...

    def get(self, handle: BindingHandle) -> Callable[..., Any]:
        ...

    def set(self, handle: BindingHandle, impl: Callable[..., Any]) -> None:
        ...


_DESCRIPTOR_TYPES = (staticmethod, classmethod)


def _class_descriptor(owner: Any, attr: str) -> Optional[Any]:
    """The ``staticmethod``/``classmethod`` object behind ``owner.attr``, if any."""
    if not isinstance(owner, type):
        return None
    raw = inspect.getattr_static(owner, attr, None)
    return raw if isinstance(raw, _DESCRIPTOR_TYPES) else None


class _AttributeBindingMixin:
    """Reads and rebinds ``handle.attr`` on ``handle.owner``.

    On classes, ``staticmethod`` and ``classmethod`` slots are read as the
    underlying function and rebound wrapped in the same descriptor type.
    """

    def get(self, handle: BindingHandle) -> Callable[..., Any]:
        descriptor = _class_descriptor(handle.owner, handle.attr)
        if descriptor is not None:
            return descriptor.__func__
        return getattr(handle.owner, handle.attr)

    def set(self, handle: BindingHandle, impl: Callable[..., Any]) -> None:
        descriptor = _class_descriptor(handle.owner, handle.attr)
        if descriptor is not None and not isinstance(impl, _DESCRIPTOR_TYPES):
            impl = type(descriptor)(impl)
        setattr(handle.owner, handle.attr, impl)


class ModuleBindingResolver(_AttributeBindingMixin):
    """Resolves ``namespace:name`` to an attribute of an importable module."""

    def resolve(self, function: FunctionId) -> Optional[BindingHandle]:
        try:
            owner: Any = importlib.import_module(function.namespace)
        except (ImportError, TypeError, ValueError):
            logger.debug("Namespace not importable: %s", function.namespace)
            return None

        *parents, attr = function.name.split(".")
        for part in parents:
            owner = getattr(owner, part, None)
            if owner is None:
                return None
        if not callable(getattr(owner, attr, None)):
            logger.debug("No callable binding for %s", function)
            return None
        return BindingHandle(function=function, owner=owner, attr=attr)


class BindingCell:
    """Indirection cell holding the current implementation of a function."""

    def __init__(self, impl: Callable[..., Any]) -> None:
        self.impl = impl

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.impl(*args, **kwargs)

    def __repr__(self) -> str:
        return f"BindingCell({self.impl!r})"


class CellBindingResolver(_AttributeBindingMixin):
    """Resolves functions bound through explicitly registered cells."""

    def __init__(self) -> None:
        self._cells: dict[FunctionId, BindingCell] = {}
        self._lock = threading.Lock()

    def add(
        self, function: FunctionId | str, impl: Callable[..., Any]
    ) -> BindingCell:
        """Create (or reuse) the cell for *function* holding *impl*."""
        fid = FunctionId.coerce(function)
        with self._lock:
            cell = self._cells.get(fid)
            if cell is None:
                cell = self._cells[fid] = BindingCell(impl)
            else:
                cell.impl = impl
        return cell

    def cell(self, function: FunctionId | str) -> Optional[BindingCell]:
        with self._lock:
            return self._cells.get(FunctionId.coerce(function))

    def resolve(self, function: FunctionId) -> Optional[BindingHandle]:
        cell = self.cell(function)
        if cell is None:
            return None
        return BindingHandle(function=function, owner=cell, attr="impl")
