"""
argchain faults: every error the parser and the dispatcher report.

Each fault is a CommandException carrying a message plus read-only options.
The options used by the renderer are:
- code (FaultCode), title, hint: what the user sees;
- prog, shell, fancy, colorful: how and where it is shown;
- node: the ParsedArg built so far, set by the parser;
- docs, input, suggestions, command, flag: extra context for callers.

trigger(fault, **options) merges runtime options and surfaces the fault: it
is raised as an exception by default, or printed to stderr followed by
exit(1) when shell=True.

Hosts customise output through optional names in __main__:
__prog__ (program name), __codes__ (code labels), __docs__ (per-code
documentation) and __styles__ (rich styles).
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


def _host(name, default):
    return getattr(sys.modules.get("__main__"), name, default)


class FaultCode(IntEnum):
    """
    numeric fault identifiers; values never change between releases.

    - 111xx: parsing
    - 112xx: dispatch
    - 113xx: flag values
    - 114xx: errors raised by command actions
    """
    EMPTY_INPUT                 = 11101
    MISPLACED_FLAGS             = 11111
    MISSING_FLAG_VALUE          = 11112

    UNKNOWN_COMMAND             = 11201
    UNKNOWN_SUBCOMMAND          = 11202
    MISSING_ACTION              = 11203

    INVALID_FLAG_VALUE          = 11301

    DELEGATED_ERROR             = 11401

    def normalize(self):
        """the label shown for this code: __codes__[self] when the host maps it, else the number."""
        return str(_host("__codes__", {}).get(self, self.value))


_STYLES = {
    "prog-name": "bold #E6E6F0",
    "code": "bold #00E5FF",
    "error-title": "bold #FF4DA6",
    "error-message": "#C8C8D0",
    "hint-arrow": "#9CE19C dim",
    "hint": "italic #9CE19C",
}


class CommandException(Exception):
    """
    Base fault: a message plus read-only options (see the module docstring).
    """

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError("fault message must be a string")
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def node(self):
        """the partially built ParsedArg attached by the parser, if any."""
        return self.options.get("node")

    @property
    def code(self):
        return self.options.get("code")

    def __str__(self):
        return "" if self.message is Unset else self.message

    def _styled(self, fragment, style):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        if not self.options.get("colorful", False):
            return Text(str(fragment))
        styles = defaultdict(str, _STYLES | _host("__styles__", {}))
        return Text(str(fragment), styles[style])

    def __rich__(self):
        code = self.code
        header = Text.assemble(
            "[ ",
            self._styled(_host("__prog__", self.options.get("prog", "argchain")), "prog-name"),
            " — ",
            self._styled(code.normalize() if isinstance(code, FaultCode) else "?", "code"),
            " | ",
            self._styled(str(self.options.get("title", "error")).title(), "error-title"),
            " ]",
        )

        body = [self._styled(str(self), "error-message")]
        if hint := self.options.get("hint"):
            body.append(Text.assemble(self._styled(" → ", "hint-arrow"), self._styled(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*body), title=header, title_align="left")
        return Group(header, *body)

    def __trigger__(self):
        if self.options.get("shell", False):
            console.print(self)
            sys.exit(1)
        raise self

    def __replace__(self, **overrides):
        copy = type(self)(self.message, **(dict(self.options) | overrides))
        copy.__cause__ = self.__cause__
        copy.__suppress_context__ = self.__suppress_context__
        return copy.with_traceback(self.__traceback__)


class ParseError(CommandException):
    """raised by parse(); options["node"] holds the top-level node built so far."""

class EmptyInputError(ParseError): ...
class MisplacedFlagsError(ParseError): ...
class MissingFlagValueError(ParseError): ...

class UnknownCommandError(CommandException): ...
class UnknownSubcommandError(CommandException): ...
class MissingActionError(CommandException): ...
class InvalidFlagValueError(CommandException): ...
class DelegatedCommandError(CommandException): ...


def trigger(fault, /, **options):
    """
    merge options into fault (through __replace__) and surface the copy.

    raises TypeError when fault lacks __trigger__ or __replace__.
    """
    for method in ("__trigger__", "__replace__"):
        if not callable(getattr(fault, method, None)):
            raise TypeError("trigger() needs an object with %s()" % method)
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """return __docs__[code] from the host, or None."""
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() expects a FaultCode")
    return _host("__docs__", {}).get(code)


__all__ = (
    "CommandException",
    "ParseError",
    "EmptyInputError",
    "MisplacedFlagsError",
    "MissingFlagValueError",
    "UnknownCommandError",
    "UnknownSubcommandError",
    "MissingActionError",
    "InvalidFlagValueError",
    "DelegatedCommandError",
    "FaultCode",
    "trigger",
    "getdoc",
)
