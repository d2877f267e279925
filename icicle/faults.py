"""
Icicle help reasons, faults and rendering.

Scope
- HelpReason: the tagged signal explaining why a help screen is shown
  (UserAsked, MissingAction, MissingOption, MissingArgument). It is the only
  piece of state handed from validation to help rendering and help callbacks.
- FaultCode: canonical, stable numeric identifiers for user-facing failures.
- CommandException: base type that carries message + options and knows how to
  render itself as a diagnostic line followed by its hint and docs.
- MissingOptionError / MissingArgumentError: validation failures; each carries
  the HelpReason that produced it.
- trigger(): central entry point to surface any fault (raise, or exit in shell mode).
- getdoc(): optional description lookup for a code from the host application.

Taxonomy
- UserAsked       not an error; help was requested explicitly.
- MissingAction   not an error; the matched command has nothing to run.
- MissingOption   validation error; a required option was not given.
- MissingArgument validation error; required positional slots are empty.
"""
import sys
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class HelpReason:
    """
    base of the help-reason variants.

    variants are small immutable records compared by kind and payload, and
    usable in match statements:

        match reason:
            case MissingOption(option): ...
            case MissingArgument(start, end): ...
    """
    __slots__ = ()
    __match_args__ = ()

    # True for the variants that make a run fail
    failure = False

    def _fields(self):
        return tuple(getattr(self, name) for name in self.__match_args__)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__!r} object is read-only")

    def __eq__(self, other):
        if not isinstance(other, HelpReason):
            return NotImplemented
        return type(self) is type(other) and self._fields() == other._fields()

    def __hash__(self):
        return hash((type(self), self._fields()))

    def __repr__(self):
        return f"{type(self).__name__}({', '.join(map(repr, self._fields()))})"


class UserAsked(HelpReason):
    __slots__ = ()


class MissingAction(HelpReason):
    __slots__ = ()


class MissingOption(HelpReason):
    """
    a required option is absent; carries the unsatisfied declaration.
    """
    __slots__ = ("option",)
    __match_args__ = ("option",)
    failure = True

    def __init__(self, option, /):
        object.__setattr__(self, "option", option)


class MissingArgument(HelpReason):
    """
    required positional slots are empty.

    start is the index of the first missing declared argument; end is inclusive
    and equals start, except for an array argument where it is the last
    declared index.
    """
    __slots__ = ("start", "end")
    __match_args__ = ("start", "end")
    failure = True

    def __init__(self, start, end, /):
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - validation (112xx)
      • MISSING_OPTION, MISSING_ARGUMENT

    normalize() lets the host remap codes to its own labels through a
    __codes__ mapping in __main__.
    """
    # --- validation errors (112xx) ---
    MISSING_OPTION              = 11201
    MISSING_ARGUMENT            = 11202

    def normalize(self):
        """
        return a host-normalized string for this code.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*([message] if message else []))
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def reason(self):
        return self.options.get("reason")

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", False)

        styles = {
            "prog-name": "bold #E6E6F0",
            "error-label": "bold #FF4DA6",
            "code": "bold #00E5FF",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
            "docs": "#9CA3AF",
        } | getattr(main, "__styles__", {})

        def text(fragment, style):
            return Text(str(fragment), styles.get(style, "") if colorful else "")

        tool = self.options.get("tool")
        prog = getattr(main, "__prog__", " ".join(step.name for step in tool.path) if tool else "icicle")

        # "<prog>: error[<code>]: <message>", then " → <hint>" and the docs when given
        line = Text.assemble(
            text(prog, "prog-name"),
            ": ",
            text("error", "error-label"),
            "[", text(self.options["code"].normalize(), "code"), "]",
            ": ",
            text(self.message, "error-message"),
        )
        if hint := self.options.get("hint"):
            line.append("\n").append_text(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))
        if docs := self.options.get("docs"):
            line.append("\n").append_text(Text.assemble("   ", text(docs, "docs")))
        return line

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MissingOptionError(CommandException): ...
class MissingArgumentError(CommandException): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into the fault via __replace__(**options) before triggering.
    - outside shell mode the fault is raised; in shell mode the process exits with 1.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    returns None when nothing is registered.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)


__all__ = (
    "HelpReason",
    "UserAsked",
    "MissingAction",
    "MissingOption",
    "MissingArgument",
    "FaultCode",
    "CommandException",
    "MissingOptionError",
    "MissingArgumentError",
    "trigger",
    "getdoc",
)
