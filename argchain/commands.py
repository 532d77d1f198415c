"""
argchain command layer: declare commands, dispatch parsed chains, render help.

What this module provides
- Command: a named action with flags, usage examples and subcommands.
  Command.run(arg, parent) walks a ParsedArg chain, resolving flags level by
  level and dispatching to the matching subcommand.
- Context: the resolved flag values of one command level, with lookups that
  fall back to the parent levels.
- command(...): build a Command directly or as a decorator.
- run(title, flags, commands): program entry point over sys.argv.

Dispatch rules
- "help"/"h" at a level prints that level's usage; "flags" prints its flags.
- a ParsedArg.sub is routed to the subcommand of the same name.
- a single trailing word that names a subcommand (ParsedArg.text) is routed
  as if it had been parsed as a subcommand.
- without a subcommand, the level's action runs with its Context.

Quick start
    from argchain import Command, Flag, FlagKind, run

    def add(context):
        print(context.get("name"), context.get("age"))

    if __name__ == "__main__":
        raise SystemExit(run("example", [Flag("age", FlagKind.INT), Flag("name")], [
            Command("add", descr="displays a add message", action=add),
        ]))
"""
import difflib
import logging
import os
import signal
import sys
import threading
import time
from contextlib import contextmanager
from collections import defaultdict
from datetime import timedelta

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .faults import *
from .flags import Flag, help_flag, timeout_flag
from .parser import ParsedArg, parse
from .utils import *

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def _cutoff(text, limit, /):
    if len(text) > limit:
        return text[:limit] + "..."
    return text


def _palette(colorful):
    """
    build the (styler, text) pair used by every renderer.

    hosts override palette entries with a __styles__ mapping in __main__.
    """
    styles = defaultdict(str, {
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "section-label": "bold #FFFFFF",
        "description": "italic #A3A3A3",
        "command-name": "bold #36C5F0",
        "command-description": "#9CA3AF",
        "flag-name": "bold #22C55E",
        "flag-default": "bold #FFD600",
        "flag-description": "#9CA3AF",
        "example": "#E5E7EB",
        "bullet": "#00E6FF dim",
        "table-border": "#4B5563",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    def text(fragment, style=""):
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), style)

    return styler, text


def _commands_table(commands, styler, text):
    table = Table(box=None, show_header=False, padding=(0, 2), pad_edge=False)
    table.add_column("name", no_wrap=True)
    table.add_column("description")
    for command in commands:
        table.add_row(
            text("⠙ " + command.name.lower(), styler("command-name")),
            text(_cutoff(command.short_descr or command.descr or "", 100), styler("command-description")),
        )
    return table


def _flags_table(flags, styler, text):
    table = Table(box=ROUNDED, border_style=styler("table-border"), show_header=True, pad_edge=False)
    table.add_column("flag", no_wrap=True)
    table.add_column("default")
    table.add_column("description")
    for flag in flags:
        table.add_row(
            text(" | ".join("-" * min(len(name), 2) + name.lower() for name in reversed(flag.names)), styler("flag-name")),
            text(repr(flag.default), styler("flag-default")),
            text(flag.descr or "", styler("flag-description")),
        )
    return table


def _section(label, styler, text):
    return Text.assemble("⡿ ", text(label, styler("section-label")))


def usage(title, commands, /, *, colorful=True):
    """
    render the top-level usage of a program as a rich renderable.
    """
    styler, text = _palette(colorful)
    title = title.lower()

    renders = [
        Text.assemble(
            text("usage", styler("usage-label")), ": ",
            text(title, styler("program-name")), " [flags] [command]"
        ),
        Text(""),
        _section("COMMANDS:", styler, text),
        _commands_table(commands, styler, text),
        Text(""),
        _section("HELP:", styler, text),
        Text("    run '%s [command] help'" % title),
        Text(""),
        _section("OTHERS:", styler, text),
        Text("    run '%s flags' to print all flags of all commands." % title),
    ]
    return Group(*renders)


class Context:
    """
    Resolved flag values for one command level.

    Lookup order for get(key)
    - a value given at this level (command line, then environment);
    - the same key on the parent levels;
    - this level's declared default, then the defaults of the parent levels.

    Keys may be a flag name or its alias.
    """

    def __init__(self, parent=None, /, *, args=(), printer=None):
        self._parent = parent
        self._args = list(args)
        self._printer = printer
        self._aliases = {}
        self._values = {}
        self._defaults = {}
        self._deadline = None

    @property
    def parent(self):
        return self._parent

    @property
    def args(self):
        """the trailing words left at this level (a leaf's text)."""
        return list(self._args)

    def _key(self, key):
        return self._aliases.get(key, key)

    def is_set(self, key, /):
        """return True when the flag was given at this level."""
        return self._key(key) in self._values

    def _given(self, key):
        context = self
        while context is not None:
            if (name := context._key(key)) in context._values:
                return context._values[name]
            context = context._parent
        return Unset

    def get(self, key, default=None, /):
        if (value := self._given(key)) is not Unset:
            return value
        context = self
        while context is not None:
            if (name := context._key(key)) in context._defaults:
                return context._defaults[name]
            context = context._parent
        return default

    def has(self, key, /):
        """return True when get(key) would find a value here or on a parent level."""
        context = self
        while context is not None:
            if (name := context._key(key)) in context._values or name in context._defaults:
                return True
            context = context._parent
        return False

    def __getitem__(self, key):
        if not self.has(key):
            raise KeyError(key)
        return self.get(key)

    def __contains__(self, key):
        return self.has(key)

    @property
    def timeout(self):
        return self.get("timeout")

    @property
    def deadline(self):
        """monotonic deadline set by a timeout flag here or on a parent level."""
        if self._deadline is not None:
            return self._deadline
        return self._parent.deadline if self._parent is not None else None

    def expired(self):
        return (deadline := self.deadline) is not None and time.monotonic() >= deadline

    def print_help(self):
        if self._printer is not None:
            self._printer()

    def process(self, arg, flags, /):
        """
        resolve the declared flags against a parsed level.

        the command line wins over the environment; a flag found in neither
        only contributes its default.
        """
        for flag in flags:
            for name in flag.names:
                self._aliases[name] = flag.name
            self._defaults[flag.name] = flag.default

            raw = flag.lookup(arg.pairs)
            if raw is Unset and flag.env is not None and flag.env in os.environ:
                value = os.environ[flag.env]
                raw = value.split(",") if flag.multiple else [value]
                logger.debug("flag %r taken from environment variable %r", flag.name, flag.env)
            if raw is not Unset:
                self._values[flag.name] = flag.resolve(raw)

        if isinstance(timeout := self._values.get("timeout"), timedelta):
            self._deadline = time.monotonic() + timeout.total_seconds()
        return self


class Command(metaclass=DeclarationType):
    """
    A named action with flags and subcommands.

    Properties (read-only)
    - name: lowercased command name (matched against ParsedArg.name).
    - descr / short_descr: help text; the short form is cut at 100 characters in listings.
    - action: callable receiving the Context, or None for pure command groups.
    - flags: declared flags, help and timeout first.
    - usages: example invocations shown in help.
    - commands: subcommands, in declaration order.
    """

    __introspectable__ = (
        "name",
        "descr",
        "short_descr",
        "action",
        "flags",
        "usages",
    )

    __displayable__ = (
        "name",
        "descr",
        "commands",
    )

    def __init__(
            self,
            name,
            /,
            *,
            descr=Unset,
            short_descr=Unset,
            action=Unset,
            flags=(),
            usages=(),
            commands=(),
            output=Unset,
    ):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        if not (name := name.strip().lower()) or " " in name:
            raise ValueError(f"{type(self).__typename__} 'name' must be a non-empty single word")

        for field, object in (("descr", descr), ("short_descr", short_descr)):
            if not isinstance(object, str | Unset):
                raise TypeError(f"{type(self).__typename__} {field!r} must be a string")

        if action is not Unset and not callable(action):
            raise TypeError(f"{type(self).__typename__} 'action' must be callable")

        self._name = name
        self._descr = coalesce(descr)
        self._short_descr = coalesce(short_descr)
        self._action = coalesce(action)
        self._flags = [help_flag, timeout_flag]
        self._usages = []
        self._children = {}
        self._output = coalesce(output)

        for flag in flags:
            self.flag(flag)
        for example in usages:
            self.usage_example(example)
        for command in commands:
            self.add(command)

    @property
    def commands(self):
        return list(self._children.values())

    def flag(self, flag, /):
        """declare one more flag on this command."""
        if not isinstance(flag, Flag):
            raise TypeError(f"{type(self).__typename__} flags must be flag declarations")
        taken = {name for existing in self._flags for name in existing.names}
        if clash := taken.intersection(flag.names):
            raise ValueError(f"{type(self).__typename__} {self._name!r} already declares flag {clash.pop()!r}")
        self._flags.append(flag)
        return flag

    def usage_example(self, example, /):
        if not isinstance(example, str):
            raise TypeError(f"{type(self).__typename__} usages must be strings")
        self._usages.append(example)

    def add(self, *commands):
        """attach subcommands; names must be unique under this command."""
        for command in commands:
            if not isinstance(command, Command):
                raise TypeError(f"{type(self).__typename__} subcommands must be commands")
            if self._children.setdefault(command.name, command) is not command:
                raise ValueError(f"{type(self).__typename__} subcommand name {command.name!r} is already in use")
        return self

    def command(self, source=Unset, /, **kwargs):
        """
        build a subcommand and attach it here (same forms as command()).
        """
        @rename("command")
        def wrapper(source, /):
            self.add(child := command(source, **kwargs))
            return child

        return wrapper(source) if source is not Unset else wrapper

    def usage(self, *, colorful=True):
        """render this command's help as a rich renderable."""
        styler, text = _palette(colorful)
        name = self._name

        renders = [
            Text.assemble(
                text("command", styler("usage-label")), ": ",
                text(name, styler("program-name")), " [flags] [sub commands]"
            ),
            Text(""),
            _section("DESC:", styler, text),
            text("    " + (self._descr or ""), styler("description")),
            Text(""),
            _section("HELP:", styler, text),
            Text("    run '%s help' to print this message." % name),
            Text("    run '%s [command] help' to print help for sub command." % name),
            Text(""),
            _section("Flags:", styler, text),
            _flags_table(self._flags, styler, text),
        ]

        if self._usages:
            renders += [Text(""), _section("Examples:", styler, text)]
            renders += [text("    ⠙ " + example, styler("example")) for example in self._usages]

        renders += [Text(""), _section("USAGE:", styler, text)]
        renders += [
            Text("    ⠙ %s --%s=%s" % (name, flag.name.lower(), flag.default)) for flag in self._flags
        ]

        if self._children:
            renders += [Text(""), _section("SUB COMMANDS:", styler, text)]
            renders.append(_commands_table(self._children.values(), styler, text))

        return Group(*renders)

    def flag_usage(self, *, colorful=True):
        """render the flags declared on this command."""
        styler, text = _palette(colorful)
        return Group(
            Text.assemble(text("command", styler("usage-label")), ": ", text(self._name, styler("program-name"))),
            Text(""),
            _section("Flags:", styler, text),
            _flags_table(self._flags, styler, text),
        )

    def print_help(self):
        (self._output if self._output is not None else console).print(self.usage())

    def _asks(self, arg, word):
        # "tool add help": a lone trailing word that is not a subcommand
        return arg.sub is None and arg.text == word and word not in self._children

    def run(self, arg, parent=None, /, *, output=Unset):
        """
        execute this command for a parsed level whose name matched it.

        returns
        - the action's return value (None when only help was printed).

        raises
        - MissingActionError: nothing to dispatch to and no action declared.
        - UnknownSubcommandError: arg.sub names no declared subcommand.
        - InvalidFlagValueError: a declared flag could not be converted.
        - DelegatedCommandError: the action raised a non-fault exception.
        """
        if not isinstance(arg, ParsedArg):
            raise TypeError("run() argument must be a parsed-arg")

        # a command's own console wins over the one handed down by the dispatcher
        output = self._output if self._output is not None else coalesce(output, console)

        if arg.has_kv("help") or arg.has_kv("h") or self._asks(arg, "help"):
            return output.print(self.usage())

        if arg.has_kv("flags") or self._asks(arg, "flags"):
            return output.print(self.flag_usage())

        context = Context(parent, args=arg.text.split(" ") if arg.text and arg.sub is None else (), printer=lambda: output.print(self.usage()))
        context.process(arg, self._flags)

        sub = arg.sub
        if sub is None and arg.text in self._children:
            # a lone trailing word is kept as text by the parser
            sub = ParsedArg(arg.text)

        if sub is not None:
            return self._run_subcommand(sub, context, output)

        if self._action is None:
            raise MissingActionError(
                "no action associated with command %r" % self._name,
                code=FaultCode.MISSING_ACTION,
                title="missing action",
                hint="run '%s help' to see its subcommands" % self._name,
                command=self,
                docs=getdoc(FaultCode.MISSING_ACTION),
            )

        logger.debug("running action of command %r", self._name)
        try:
            return self._action(context)
        except CommandException:
            raise
        except Exception as exception:
            raise DelegatedCommandError(
                "command %r failed: %s" % (self._name, exception),
                code=FaultCode.DELEGATED_ERROR,
                title="command failed",
                hint="check the arguments given to '%s'" % self._name,
                command=self,
                docs=getdoc(FaultCode.DELEGATED_ERROR),
            ) from exception

    def _run_subcommand(self, arg, parent, output):
        try:
            child = self._children[arg.name]
        except KeyError:
            suggestions = difflib.get_close_matches(arg.name, self._children.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s help' to see available subcommands" % (
                    suggestions[0], self._name
                )
            except IndexError:
                hint = "run '%s help' to see available subcommands" % self._name
            raise UnknownSubcommandError(
                "%r has no subcommand named %r" % (self._name, arg.name),
                code=FaultCode.UNKNOWN_SUBCOMMAND,
                title="unknown subcommand",
                input=arg.name,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_SUBCOMMAND),
            ) from None
        logger.debug("dispatching %r to subcommand %r", self._name, child.name)
        return child.run(arg, parent, output=output)


def command(source=Unset, /, **kwargs):
    """
    Create a Command from an action, or return a decorator that does.

    Forms
    - command("name", descr=..., action=...) → Command
    - command(func, ...)                     → Command named after func
    - @command / @command(name="x", ...)     → decorator producing a Command

    Returns
    - Command | Callable[[Callable], Command]
    """
    if isinstance(source, str):
        return Command(source, **kwargs)

    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        options = dict(kwargs)
        name = options.pop("name", source.__name__.replace("_", "-"))
        if not isinstance(descr := options.get("descr", Unset), str | Unset):
            raise TypeError("command 'descr' must be a string")
        if descr is Unset and source.__doc__:
            options["descr"] = source.__doc__.strip()
        return Command(name, action=source, **options)

    return wrapper(source) if source is not Unset else wrapper


@contextmanager
def _terminations():
    """
    report SIGTERM and SIGQUIT as KeyboardInterrupt while a command runs.

    handlers can only be installed from the main thread; elsewhere the
    interpreter defaults stay in place. previous handlers are restored on exit.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def interrupt(signum, frame):
        raise KeyboardInterrupt(signal.Signals(signum).name)

    previous = {}
    for name in ("SIGTERM", "SIGQUIT"):
        if (number := getattr(signal, name, None)) is not None:
            previous[number] = signal.signal(number, interrupt)
    try:
        yield
    finally:
        for number, handler in previous.items():
            signal.signal(number, handler if handler is not None else signal.SIG_DFL)


def run(title, flags, commands, /, argv=Unset, *, shell=True, fancy=False, colorful=True, output=Unset):
    """
    Program entry point: parse argv and dispatch to the named command.

    Parameters
    - title: program name used in help and fault headers.
    - flags: global flags (help and timeout are always added).
    - commands: the top-level commands.
    - argv: Unset → sys.argv (the program name is the top-level node).
    - shell: render faults with rich and exit(1) instead of raising them.
    - fancy/colorful: fault and help styling.
    - output: console for usage and help; commands without their own output
      print here too.

    Returns
    - 0 on success (or when help was printed), 130 when interrupted
      (Ctrl-C, SIGTERM or SIGQUIT).

    Faults are raised when shell=False; in shell mode they are printed and the
    process exits with status 1.
    """
    output = coalesce(output, console)
    title = title.lower()
    flags = [*flags, help_flag, timeout_flag]

    registry = {}
    for item in commands:
        if not isinstance(item, Command):
            raise TypeError("run() commands must be commands")
        if registry.setdefault(item.name, item) is not item:
            raise ValueError(f"command name {item.name!r} is already in use")

    tokens = sys.argv if argv is Unset else argv
    if isinstance(tokens, str):
        tokens = [tokens]

    try:
        arg = parse(" ".join(tokens))

        if arg.has_kv("flags") or (arg.sub is None and arg.text == "flags" and "flags" not in registry):
            for item in registry.values():
                output.print(item.flag_usage(colorful=colorful))
            return 0

        if arg.sub is None and arg.text and (arg.text in registry or arg.text != "help"):
            # a lone trailing word is kept as text by the parser
            arg.sub = ParsedArg(arg.text)

        if arg.has_kv("h") or arg.has_kv("help") or arg.sub is None:
            output.print(usage(title, list(registry.values()), colorful=colorful))
            return 0

        try:
            target = registry[arg.sub.name]
        except KeyError:
            suggestions = difflib.get_close_matches(arg.sub.name, registry.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see available commands" % (
                    suggestions[0], title
                )
            except IndexError:
                hint = "run '%s --help' to see available commands" % title
            raise UnknownCommandError(
                "command not found %r" % arg.sub.name,
                code=FaultCode.UNKNOWN_COMMAND,
                title="unknown command",
                input=arg.sub.name,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_COMMAND),
            ) from None

        context = Context(printer=lambda: output.print(usage(title, list(registry.values()), colorful=colorful)))
        context.process(arg, flags)
        with _terminations():
            target.run(arg.sub, context, output=output)
    except CommandException as fault:
        trigger(fault, prog=title, shell=shell, fancy=fancy, colorful=colorful)
    except KeyboardInterrupt:
        output.print(Text("interrupted", style="bold red" if colorful else ""))
        return 130
    return 0


__all__ = (
    "Command",
    "Context",
    "command",
    "run",
    "usage",
)
