"""
Icicle parse results and the command resolver.

What this module provides
- Args: the freestanding result of one parse (options map + positional list)
  with typed accessors (has/get/at/range/...).
- Args.parse(command, tokens): the resolver. One left-to-right pass that walks
  the command tree while tokens name subcommands, then classifies every
  remaining token as an option or a positional value.

Resolution rules
- While subcommands are still accepted, the current token is compared against
  the names of the current command's children, children in declaration order
  and names in declaration order; the first exact match descends.
- The first token that matches no child ends subcommand matching for the rest
  of the parse and is itself classified (icicle.tokens.classify).
- "--" ends option parsing; everything after it lands in Args.pos.
- The help callback returned is the one of the deepest matched command that
  declares one (the root's own callback when no descendant does).
- The resolver never fails: unknown tokens become options or positionals.

Typed access
- get/at accept a `type` converter (defaults to str). Conversion errors yield
  None; bool only accepts "true" and "false".
"""
import logging
import shlex
from collections.abc import Iterable

from .tokens import TokenKind, classify

logger = logging.getLogger(__name__)


def _convert(value, type, /):
    """
    parse-from-string conversion; None when the value does not parse.
    """
    if value is None:
        return None
    if type is bool:
        return {"true": True, "false": False}.get(value)
    try:
        return type(value)
    except (ValueError, TypeError, ArithmeticError):
        return None


def _tokenize(tokens):
    """
    normalize the accepted token shapes into a list of strings.

    - str: split shell-style (quotes group words together).
    - Iterable[str]: used as-is, element by element.
    """
    if isinstance(tokens, str):
        return shlex.split(tokens)
    if not isinstance(tokens, Iterable):
        raise TypeError("tokens must be a string or an iterable of strings")
    tokens = list(tokens)
    for token in tokens:
        if not isinstance(token, str):
            raise TypeError("tokens must be a string or an iterable of strings")
    return tokens


class Args:
    """
    Parsed command line values.

    Attributes
    - opts: dict[str, str]
      option name (with its leading dashes, e.g. "--out" or "-o") → value.
      the last occurrence of a name wins; flags without "=value" hold "true".
    - pos: list[str]
      positional values in the order they were given.

    Args is a plain value: it never refers back to the command tree, compares
    by content, and is consumed by the action it is handed to.
    """

    def __init__(self, opts=None, pos=None):
        self.opts = dict(opts or {})
        self.pos = list(pos or [])

    @classmethod
    def parse(cls, command, tokens):
        """
        resolve `tokens` against the tree rooted at `command`.

        parameters
        - command: Command
          the node the walk starts from (usually the root).
        - tokens: str | Iterable[str]
          raw arguments, program path already stripped.

        returns
        - tuple (command, args, help):
          • command: the deepest matched Command (possibly `command` itself).
          • args: a fresh Args holding options and positionals.
          • help: the nearest help callback along the matched path, or None.
        """
        current = command
        parsed = cls()
        help = command._help

        subcommands = True
        options = True
        consumed = 0

        for token in _tokenize(tokens):
            if subcommands:
                child = current.find(token)
                if child is not None:
                    current = child
                    if child._help is not None:
                        help = child._help
                    consumed += 1
                    continue
                # positional mode from here on, this token included
                subcommands = False

            match classify(token, options):
                case (TokenKind.TERMINATOR, _, _):
                    options = False
                case (TokenKind.LONG | TokenKind.SHORT, names, value):
                    parsed.opts.update(dict.fromkeys(names, value))
                case (TokenKind.POSITIONAL, _, value):
                    parsed.pos.append(value)

        logger.debug(
            "resolved %r after %d subcommand token(s): %d option(s), %d positional(s)",
            current.name, consumed, len(parsed.opts), len(parsed.pos)
        )
        return current, parsed, help

    @classmethod
    def new(cls, tokens):
        """
        parse tokens without any command tree (no subcommand matching).
        """
        from .commands import Command
        _, args, _ = cls.parse(Command("args"), tokens)
        return args

    def has(self, name):
        """
        check whether an option with the given name was given.
        """
        return name in self.opts

    def has_or(self, name, other):
        """
        check whether either of two option names was given.
        """
        return name in self.opts or other in self.opts

    def has_at(self, index):
        """
        check whether there is a positional value at `index`.
        """
        return 0 <= index < len(self.pos)

    def get(self, name, type=str):
        """
        the option value converted with `type`, or None when absent or unparsable.
        """
        return _convert(self.opts.get(name), type)

    def get_or(self, name, other, type=str):
        """
        like get(), reading `name` when given and `other` otherwise.
        """
        return self.get(name if name in self.opts else other, type)

    def get_string(self, name):
        return self.opts.get(name)

    def get_string_or(self, name, other):
        return self.opts.get(name if name in self.opts else other)

    def at(self, index, type=str):
        """
        the positional value at `index` converted with `type`, or None.
        """
        return _convert(self.at_string(index), type)

    def at_string(self, index):
        return self.pos[index] if self.has_at(index) else None

    def range(self, start, stop, type=str):
        """
        convert positional values [start, stop) with `type`.

        raises
        - IndexError: when the range is not fully inside the positionals.
        - any exception raised by `type` (conversion is strict here).
        """
        if not 0 <= start <= stop <= len(self.pos):
            raise IndexError("index out of bounds")
        if type is bool:
            return [{"true": True, "false": False}[value] for value in self.pos[start:stop]]
        return [type(value) for value in self.pos[start:stop]]

    def range_string(self, start, stop):
        """
        positional values [start, stop), or None when out of bounds.
        """
        if not 0 <= start <= stop <= len(self.pos):
            return None
        return self.pos[start:stop]

    def iter_opt(self):
        """
        iterate (name, value) option pairs.
        """
        return iter(self.opts.items())

    def join(self, separator):
        """
        join positional values with `separator`.
        """
        return separator.join(self.pos)

    def __iter__(self):
        return iter(self.pos)

    def __len__(self):
        return len(self.pos)

    def __eq__(self, other):
        if not isinstance(other, Args):
            return NotImplemented
        return self.opts == other.opts and self.pos == other.pos

    __hash__ = None

    def __repr__(self):
        return f"args(opts={self.opts!r}, pos={self.pos!r})"

    def __rich_repr__(self):
        yield "opts", self.opts
        yield "pos", self.pos


__all__ = (
    "Args",
)
