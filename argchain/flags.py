r"""
argchain flag declarations: typed, validated values for parsed flag pairs.

Overview
- FlagKind: the value families a flag can hold (sized ints, bools, strings,
  floats and durations).
- Flag: declares a flag by name (plus an optional alias and environment
  variable), and turns the raw strings collected by the parser into a typed
  value via resolve().
- help_flag / timeout_flag: built-ins attached to every command.
- parse_duration(): Go-style duration strings ("1h30m", "250ms", "1.5s").

Resolution pipeline (Flag.resolve)
- validate(first, *rest) runs on the raw strings (user hook, optional).
- each raw string is converted by the kind's converter.
- one value comes back for a single string, a list for several (or always a
  list when multiple=True).
- morph(value) post-processes the typed value (user hook, optional).
Any failure surfaces as InvalidFlagValueError.

Quick example:
    >>> age = Flag("age", FlagKind.INT, alias="a", env="APP_AGE", default=18)
    >>> age.resolve(["42"])
    42
    >>> Flag("dirs", multiple=True).resolve(["drum"])
    ['drum']
"""
import math
import re
from datetime import timedelta
from enum import IntEnum

from .faults import *
from .utils import *


class FlagKind(IntEnum):
    INT = 1
    INT8 = 2
    INT32 = 3
    INT16 = 4
    INT64 = 5
    BOOL = 6
    TBOOL = 7
    STRING = 8
    FLOAT32 = 9
    FLOAT64 = 10
    DURATION = 11


# seconds per unit; timedelta keeps microseconds, so "ns" amounts are rounded
_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1,
    "m": 60,
    "h": 3600,
}

_DURATION = re.compile(r"[-+]?(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+")
_SEGMENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text, /):
    """
    parse a Go-style duration into a timedelta.

    accepted forms
    - "0" (no unit needed), "300ms", "-1.5h", "2h45m", "1m30.5s"
    - units: ns, us (µs), ms, s, m, h; segments are summed.

    raises
    - ValueError on anything else (empty strings, missing units, spaces).
    """
    if not isinstance(text, str):
        raise TypeError("parse_duration() argument must be a string")
    if text in ("0", "+0", "-0"):
        return timedelta()
    if not _DURATION.fullmatch(text):
        raise ValueError("invalid duration %r" % text)

    total = timedelta(seconds=sum(_UNITS[unit] * float(amount) for amount, unit in _SEGMENT.findall(text)))
    return -total if text.startswith("-") else total


def _integer(bits):
    @rename("int%d" % bits)
    def convert(text):
        value = int(text, 10)
        if not -(1 << (bits - 1)) <= value < (1 << (bits - 1)):
            raise ValueError("%r is out of range for a %d-bit integer" % (text, bits))
        return value
    return convert


def _boolean(text):
    # same spellings as Go's strconv.ParseBool
    if text in ("1", "t", "T", "TRUE", "true", "True"):
        return True
    if text in ("0", "f", "F", "FALSE", "false", "False"):
        return False
    raise ValueError("%r is not a boolean" % text)


def _float32(text):
    value = float(text)
    if math.isfinite(value) and abs(value) > 3.4028234663852886e38:
        raise ValueError("%r is out of range for a 32-bit float" % text)
    return value


_CONVERTERS = {
    FlagKind.INT: _integer(64),
    FlagKind.INT8: _integer(8),
    FlagKind.INT16: _integer(16),
    FlagKind.INT32: _integer(32),
    FlagKind.INT64: _integer(64),
    FlagKind.BOOL: _boolean,
    FlagKind.TBOOL: _boolean,
    FlagKind.STRING: str,
    FlagKind.FLOAT32: _float32,
    FlagKind.FLOAT64: float,
    FlagKind.DURATION: parse_duration,
}


def _sanitize_name(cls, field, object, /):
    """
    validate a flag name or alias and strip its leading dashes.

    names are stored the way the parser reports keys ("--dry-run" → "dry-run").
    """
    if not isinstance(object, str):
        raise TypeError(f"{cls.__typename__} {field!r} must be a string")
    if not (name := object.strip().lstrip("-")):
        raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
    if "=" in name or any(char.isspace() for char in name):
        raise ValueError(f"{cls.__typename__} {field!r} cannot contain '=' or spaces")
    return name


def _sanitize_metadata(cls, metadata, /):
    """
    normalize and validate flag metadata in place.

    - name: required; alias: optional and different from name.
    - kind: a FlagKind member.
    - env/descr: optional non-empty strings (None when Unset).
    - validate/morph: optional callables (None when Unset).
    - default: kind-specific default when Unset (True for TBOOL, False for
      BOOL, None otherwise).
    """
    metadata["name"] = _sanitize_name(cls, "name", metadata["name"])

    if (alias := metadata["alias"]) is not Unset:
        if (alias := _sanitize_name(cls, "alias", alias)) == metadata["name"]:
            raise ValueError(f"{cls.__typename__} 'alias' must differ from its name")
    metadata["alias"] = coalesce(alias)

    if not isinstance(metadata["kind"], FlagKind):
        raise TypeError(f"{cls.__typename__} 'kind' must be a flag-kind")

    for field in ("env", "descr"):
        if not isinstance(object := metadata[field], str | Unset):
            raise TypeError(f"{cls.__typename__} {field!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {field!r} cannot be empty")
        metadata[field] = coalesce(object)

    for field in ("validate", "morph"):
        if (object := metadata[field]) is not Unset and not callable(object):
            raise TypeError(f"{cls.__typename__} {field!r} must be callable")
        metadata[field] = coalesce(object)

    if metadata["default"] is Unset:
        metadata["default"] = {FlagKind.TBOOL: True, FlagKind.BOOL: False}.get(metadata["kind"])


class Flag(metaclass=DeclarationType):
    """
    Declaration of a single flag.

    Properties (read-only)
    - name / alias: keys looked up in ParsedArg.pairs (no leading dashes).
    - kind: FlagKind deciding the converter.
    - env: environment variable used when the flag is absent from the line.
    - descr: short description for help output.
    - default: value reported when the flag is neither given nor in the environment.
    - validate / morph: optional hooks (see module docstring).
    - multiple: always resolve to a list.
    """

    __introspectable__ = (
        "name",
        "alias",
        "kind",
        "env",
        "descr",
        "default",
        "multiple",
    )

    def __init__(
            self,
            name,
            /,
            kind=FlagKind.STRING,
            *,
            alias=Unset,
            env=Unset,
            descr=Unset,
            default=Unset,
            validate=Unset,
            morph=Unset,
            multiple=False,
    ):
        metadata = {
            "name": name,
            "alias": alias,
            "kind": kind,
            "env": env,
            "descr": descr,
            "default": default,
            "validate": validate,
            "morph": morph,
            "multiple": bool(multiple),
        }
        _sanitize_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def names(self):
        """name first, then alias when present."""
        return tuple(name for name in (self._name, self._alias) if name)

    def lookup(self, pairs, /):
        """
        return the raw values for this flag from parsed pairs, or Unset.

        the name wins over the alias when both were given.
        """
        for name in self.names:
            if name in pairs:
                return pairs[name]
        return Unset

    def resolve(self, values, /):
        """
        convert raw strings into this flag's typed value.

        raises
        - InvalidFlagValueError when validation or conversion fails.
        """
        if isinstance(values, str):
            values = [values]
        values = list(values)
        if not values:
            raise InvalidFlagValueError(
                "flag %r received no values" % self._name,
                code=FaultCode.INVALID_FLAG_VALUE,
                title="invalid flag value",
                hint="pass a value (for example: --%s=<value>)" % self._name,
                flag=self,
                docs=getdoc(FaultCode.INVALID_FLAG_VALUE),
            )

        try:
            if self._validate is not None:
                self._validate(values[0], *values[1:])
            converted = [_CONVERTERS[self._kind](value) for value in values]
            value = converted if self._multiple or len(converted) > 1 else converted[0]
            if self._morph is not None:
                value = self._morph(value)
        except (TypeError, ValueError) as exception:
            raise InvalidFlagValueError(
                "invalid value %s for flag %r: %s" % (", ".join(map(repr, values)), self._name, exception),
                code=FaultCode.INVALID_FLAG_VALUE,
                title="invalid flag value",
                hint="expected a %s value for --%s" % (self._kind.name.lower(), self._name),
                flag=self,
                input=values,
                docs=getdoc(FaultCode.INVALID_FLAG_VALUE),
            ) from exception
        return value


help_flag = Flag("help", FlagKind.BOOL, alias="h", descr="print help for the command")
timeout_flag = Flag("timeout", FlagKind.DURATION, alias="tm", descr="deadline for the command (e.g. 30s, 1m)")


__all__ = (
    "FlagKind",
    "Flag",
    "help_flag",
    "timeout_flag",
    "parse_duration",
)
