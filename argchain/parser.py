r"""
argchain argument parser: turn a raw argument line into a chain of commands.

What this module provides
- ParsedArg: one node of the command chain (name, flag pairs, trailing text,
  and the next subcommand level under .sub).
- parse(line): split a line on spaces and parse it into a ParsedArg tree.

Grammar (informal)
- ignorable tokens: "", "-", "--" (skipped entirely).
- flags: one or more leading dashes followed by content.
  • boolean:   -h, --verbose             → pairs["h"] == ["true"]
  • pair:      --name=value, -w=1,2      → pairs["w"] == ["1", "2"]
  • list:      --dirs=[a,b,c]            → ["a", "b", "c"]
  • spanning:  --dirs=[ a b c ]          → ["a", "b", "c"] (consumes the following tokens)
- bare words: the first one names the command at the current level; any later
  one starts a subcommand (the rest of the line is parsed one level deeper).
  A single trailing word is kept as text instead of opening a new level.

Example
    >>> arg = parse("example --rack=20 push git@ghu.com/fla.git")
    >>> arg.name, arg.pairs, arg.sub.name, arg.sub.text
    ('example', {'rack': ['20']}, 'push', 'git@ghu.com/fla.git')

Faults
- EmptyInputError: the line is empty.
- MisplacedFlagsError: flags were given before the command name of a level.
- MissingFlagValueError: "key=" carries no usable value.
Every fault carries the partially built top-level node in its "node" option.
"""
import logging
from enum import Enum

from .faults import *
from .utils import *

logger = logging.getLogger(__name__)


class TokenKind(Enum):
    """
    shape of a single token, decided before any state is touched.

    - IGNORABLE:     "", "-" or "--"
    - BARE:          anything that is not a flag (command name or subcommand)
    - SWITCH:        flag without "=" (boolean style)
    - PAIR:          flag with "=" and a plain value (possibly empty)
    - LIST:          flag whose value is a closed "[...]" list
    - SPANNING_LIST: flag whose value opens a "[" list closed by a later token
    """
    IGNORABLE = "ignorable"
    BARE = "bare"
    SWITCH = "switch"
    PAIR = "pair"
    LIST = "list"
    SPANNING_LIST = "spanning-list"


class ParsedArg:
    """
    One node in a parsed command chain.

    Attributes
    - name: command name of this level ("" until a bare word is seen).
    - sub: the next subcommand level, or None for a leaf.
    - text: the rest of the line from the branch point (space-joined), or the
      single trailing word of a leaf.
    - pairs: flag key → values, in encounter order; never None.

    The parser never touches a node after returning it. Dispatchers may graft
    a synthetic node created from a name alone (ParsedArg("add")).
    """
    __slots__ = ("name", "sub", "text", "pairs")

    def __init__(self, name="", /, *, sub=None, text="", pairs=Unset):
        self.name = name
        self.sub = sub
        self.text = text
        self.pairs = dict(coalesce(pairs, {}))

    def has_kv(self, key, /):
        """return True when the flag key was given at this level."""
        return key in self.pairs

    def is_arg(self):
        """return True when this level carries at least one flag."""
        return len(self.pairs) != 0

    def chain(self):
        """yield this node and every subcommand level below it."""
        node = self
        while node is not None:
            yield node
            node = node.sub

    def __eq__(self, other):
        if not isinstance(other, ParsedArg):
            return NotImplemented
        return (
            self.name == other.name and
            self.text == other.text and
            self.pairs == other.pairs and
            self.sub == other.sub
        )

    __hash__ = None

    def __rich_repr__(self):
        yield "name", self.name
        yield "text", self.text
        yield "pairs", self.pairs
        yield "sub", self.sub

    def __repr__(self):
        return "parsed-arg(%s)" % ", ".join(
            "%s=%r" % pair for pair in self.__rich_repr__()
        )


def _is_flag(token):
    """a flag such as "-v" or "--user", but not "-" or "--"."""
    return token.startswith("-") and token.lstrip("-") != ""


def _is_ignored(token):
    return token in ("", "-", "--")


def _is_list(value):
    return value.startswith("[")


def _is_list_end(value):
    return value.endswith("]")


def _classify(token):
    """
    decide the TokenKind of a raw token.

    returns
    - (kind, opt, key, value): opt is the token without leading dashes; key and
      value are the trimmed halves around the first "=" (both "" without one).
    """
    if _is_ignored(token):
        return TokenKind.IGNORABLE, "", "", ""
    if not _is_flag(token):
        return TokenKind.BARE, "", "", ""

    opt = token.lstrip("-")
    key, eq, value = opt.partition("=")
    if not eq:
        return TokenKind.SWITCH, opt, "", ""

    key, value = key.strip(), value.strip()
    if _is_list(value):
        # open detection first: "[a]" is a closed list, "[a" spans tokens
        if _is_list_end(value):
            return TokenKind.LIST, opt, key, value
        return TokenKind.SPANNING_LIST, opt, key, value
    return TokenKind.PAIR, opt, key, value


def _fault(cls, message, *, code, title, hint, node, **options):
    return cls(message, code=code, title=title, hint=hint, node=node, docs=getdoc(code), **options)


def _spanning_values(tokens, index, value):
    """
    collect a "[" list whose items continue over the following tokens.

    returns
    - (values, index): the list items and the cursor of the last consumed token.
    """
    items = []
    if before := value.lstrip("[").strip():
        items.append(before)

    while index + 1 < len(tokens) and not _is_flag(tokens[index + 1]) and not _is_list_end(tokens[index + 1]):
        items.append(tokens[index + 1].strip())
        index += 1

    # a closer is taken even when it is flag-shaped ("--x]")
    if index + 1 < len(tokens) and _is_list_end(tokens[index + 1]):
        items.append(tokens[index + 1].removesuffix("]").strip())
        index += 1
    elif index + 1 >= len(tokens):
        logger.debug("list for %r is not closed; consumed up to the end of input", value)
        if not items:
            # nothing after "[" at all: reported as a missing value
            return [], index

    # join then resplit so "[a b,c]"-like mixes end up as a flat sequence
    joined = " ".join(items).strip().removeprefix("[").removesuffix("]")
    return joined.split(" "), index


def _branch(node, tokens, index):
    """
    handle a branch point: a bare token after the name, at tokens[index].

    - exactly one token left: it becomes node.text (leaf, no deeper level).
    - otherwise: the remainder is parsed one level deeper into node.sub and
      node.text keeps the original remainder joined with spaces.
    """
    remainder = tokens[index:]
    if len(remainder) == 1 and not _is_flag(remainder[0]):
        node.text = remainder[0]
        return node

    logger.debug("branching %r into a subcommand at token %d", node.name, index)
    try:
        sub = _parse_tokens(remainder)
    except ParseError as exception:
        # report the outermost node, as if the fault happened at this level
        raise exception.__replace__(node=node) from None

    node.sub = sub
    node.text = " ".join(remainder)
    return node


def _parse_tokens(tokens):
    """
    parse one command level from tokens, recursing at the first branch point.

    the cursor is explicit: list values may consume tokens ahead of it.
    """
    node = ParsedArg()
    named = False

    index = 0
    while index < len(tokens):
        token = tokens[index]
        kind, opt, key, value = _classify(token)

        match kind:
            case TokenKind.IGNORABLE:
                index += 1
                continue
            case TokenKind.BARE if not named:
                if node.pairs:
                    raise _fault(
                        MisplacedFlagsError,
                        "flags must come after the command name, found %r after %s" % (
                            token, ", ".join(map(repr, node.pairs))
                        ),
                        code=FaultCode.MISPLACED_FLAGS,
                        title="misplaced flags",
                        hint="move the flags after the command name (for example: %s --%s=...)" % (
                            token, next(iter(node.pairs))
                        ),
                        node=node,
                        input=token,
                    )
                node.name = token
                named = True
                index += 1
                continue
            case TokenKind.BARE:
                return _branch(node, tokens, index)
            case TokenKind.LIST:
                values = value.strip().lstrip("[").rstrip("]")
                values = values.split(",")
            case TokenKind.SPANNING_LIST:
                values, index = _spanning_values(tokens, index, value)
            case TokenKind.PAIR if value:
                values = value.split(",")
            case _:
                values = []

        has_eq = kind is not TokenKind.SWITCH

        if key and has_eq and not values:
            raise _fault(
                MissingFlagValueError,
                "flag %r has no provided value" % opt,
                code=FaultCode.MISSING_FLAG_VALUE,
                title="missing flag value",
                hint="add a value after '=' (for example: --%s=<value>) or drop the '='" % key,
                node=node,
                input=token,
            )

        if key and has_eq:
            node.pairs[key] = values
        elif opt and not has_eq:
            node.pairs[opt] = ["true"]
        elif not has_eq:
            # flag-shaped token without a key: fall back to a branch point
            return _branch(node, tokens, index)
        else:
            logger.debug("discarding flag %r without a key", token)

        index += 1

    return node


def parse(line, /):
    """
    parse a raw argument line into a ParsedArg chain.

    parameters
    - line: str
      tokens separated by single spaces; no quoting or escaping is honoured.
      repeated spaces produce empty tokens, which are ignored.

    returns
    - ParsedArg: the top-level node; nested subcommands hang off .sub.

    raises
    - TypeError: when line is not a string.
    - EmptyInputError: when line is empty.
    - MisplacedFlagsError / MissingFlagValueError: see the module docstring.
    """
    if not isinstance(line, str):
        raise TypeError("parse() argument must be a string")
    if len(line) == 0:
        raise _fault(
            EmptyInputError,
            "no argument provided",
            code=FaultCode.EMPTY_INPUT,
            title="empty input",
            hint="pass at least a command name",
            node=ParsedArg(),
        )
    return _parse_tokens(line.split(" "))


__all__ = (
    "ParsedArg",
    "TokenKind",
    "parse",
)
