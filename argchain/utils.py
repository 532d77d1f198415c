"""
argchain helpers shared by the flag and command declarations.

- Unset: marker for "argument not given", kept apart from None because None is
  a valid flag default and a valid action result.
- coalesce(): turn Unset into a fallback value.
- rename(): give generated functions a readable __name__/__qualname__.
- mirror(): read-only property over a "_<name>" field; containers come back as
  copies so declarations cannot be edited through their public attributes.
- DeclarationType: metaclass wiring mirror() properties and repr for Flag and
  Command.

    >>> coalesce(Unset, 10), coalesce(None, 10)
    (10, None)
"""
import builtins
import re
from collections.abc import Mapping, Sequence, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker.

    There is exactly one instance; it is falsy, prints as "Unset" and can sit
    on the right of a PEP 604 union (str | Unset) for isinstance checks.
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init_subclass__(cls, **options):
        raise TypeError("UnsetType cannot be subclassed")

    def __ror__(self, other, /):
        try:
            return other | UnsetType
        except TypeError:
            return NotImplemented

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"


def coalesce(object, default=None, /):
    """
    return object, or default when object is Unset.

    only Unset is replaced: None, 0 and empty containers pass through.
    """
    if object is Unset:
        return default
    return object


def rename(*parameters):
    """
    rename(function, name) updates the names in place and returns function;
    rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("rename() name must be a string")
        return lambda function: rename(function, name)

    if len(parameters) != 2:
        raise TypeError("rename() expects 1 or 2 arguments, got %d" % len(parameters))

    function, name = parameters
    if not builtins.callable(function):
        raise TypeError("rename() target must be callable")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        function.__name__ = function.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() cannot update the names of %r" % function) from None
    return function


def _snapshot(object):
    match object:
        case str():
            return object
        case Mapping():
            return {key: _snapshot(value) for key, value in object.items()}
        case Sequence():
            return [_snapshot(value) for value in object]
        case Set():
            return {_snapshot(value) for value in object}
        case _:
            return coalesce(object)


def mirror(name, /):
    """property reading self._<name>, copying containers and mapping Unset to None."""
    if not isinstance(name, str):
        raise TypeError("mirror() name must be a string")

    @rename(name)
    def getter(self):
        return _snapshot(getattr(self, "_" + name))

    return property(getter)


def _rich_repr(self):
    for field in type(self).__displayable__:
        yield field, getattr(self, field)


def _repr(self):
    return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))


class DeclarationType(type):
    """
    Metaclass of flag and command declarations.

    - __typename__: the class name in kebab case, used in messages and repr.
    - each name in __introspectable__ becomes a mirror() property over "_<name>".
    - __displayable__ (default: __introspectable__) lists the fields shown by
      repr() and rich's pretty printer.
    """

    def __new__(cls, name, bases, namespace, **options):
        fields = namespace.get("__introspectable__", ())
        namespace = namespace | {field: mirror(field) for field in fields}
        namespace["__typename__"] = "-".join(re.findall(r"[A-Z]?[a-z0-9]+|[A-Z]+(?![a-z])", name)).lower()
        if fields:
            namespace.setdefault("__displayable__", fields)
        namespace.setdefault("__rich_repr__", _rich_repr)
        namespace.setdefault("__repr__", _repr)
        return super().__new__(cls, name, bases, namespace, **options)


Unset = UnsetType()


__all__ = (
    "coalesce",
    "rename",
    "mirror",
    "DeclarationType",
    "UnsetType",
    "Unset",
)
