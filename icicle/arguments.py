r"""
Icicle option and argument declarations.

Overview
- Specs
  • CLIOption: a named, dash-prefixed key/value pair (e.g., -o/--output).
  • CLIArgument: a positional, order-significant value slot; an `array` argument
    captures every remaining positional value from its index onward.

- Introspection & representation
  • ArgumentType metaclass provides stable __repr__/__rich_repr__ and exposes the
    fields declared in __introspectable__ as read-only properties.

Metadata (sanitized on construction)
- Shared
  • descr: str | Text, non-empty after trimming.
  • required: bool.
- CLIOption only
  • names: either a comma-separated string ("-o, --output") or an iterable of
    strings. Each name starts with a dash and holds no whitespace or "="; the
    bare terminator "--" is refused. Single-dash names must be exactly one
    character, because a longer single-dash token is always read
    as a cluster of short options. Duplicates are rejected; order is preserved.
- CLIArgument only
  • array: bool.

Quick example:
    >>> from icicle.arguments import CLIOption, CLIArgument
    >>> CLIOption("-x, --x", "first number").names
    ('-x', '--x')
    >>> CLIArgument("files", array=True).array
    True
"""
import functools
import operator
import re

from rich.text import Text

from .utils import *


class ArgumentType(type):
    """
    Metaclass that turns declarations into introspectable, read-only records.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and help output.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens,
      acronyms kept together) and used in messages.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - cli-option(names=('-v', '--verbose'), descr='be chatty', required=False)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the fields shared by options and arguments.

    - descr: required; must be a str or Text. Strings are trimmed and must not
      be empty afterwards.
    - required: coerced to bool.

    Raises
    - TypeError: if 'descr' is not a string.
    - ValueError: if 'descr' is a string but empty after trimming.
    """
    if not isinstance(descr := metadata["descr"], str | Text):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = descr
    metadata["required"] = bool(metadata["required"])


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate and normalize the names of an option.

    Accepted shapes
    - a comma-separated string: "-o, --output"
    - an iterable of strings: ("-o", "--output")

    Rules
    - at least one name.
    - each name is trimmed, dash-prefixed, free of whitespace and "=", and not "--".
    - single-dash names must be one character long ("-o", not "-out").
    - no duplicates; declaration order is kept (the first name is shown first).

    Raises
    - TypeError: when names are missing or contain non-string entries.
    - ValueError: when a name is empty, malformed, or duplicated.
    """
    names = metadata["names"]
    if isinstance(names, str):
        names = names.split(",")

    sanitized = []
    for name in names:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"-[^\s=]+", name) or name == "--":
            raise ValueError(f"{cls.__typename__} name {name!r} must start with a dash and cannot contain spaces or '='")
        elif not name.startswith("--") and len(name) != 2:
            raise ValueError(f"{cls.__typename__} short name {name!r} must be a single character")
        elif name in sanitized:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        sanitized.append(name)

    if not sanitized:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    metadata["names"] = tuple(sanitized)


class CLIOption(metaclass=ArgumentType):
    """
    Named option declaration.

    A CLIOption lists the spellings a user may type (e.g., "-x" and "--x"), a
    short description for help output, and whether the command refuses to run
    without it. The parsed value is looked up by any of its names in Args.

    Properties
    - names: tuple[str, ...]   ordered spellings, first one shown first.
    - descr: str | Text        help text.
    - required: bool           validation fails with MissingOption when absent.
    """

    __introspectable__ = (
        "names",
        "descr",
        "required",
    )

    def __init__(self, names, descr, /, required=True):
        metadata = {
            "names": names,
            "descr": descr,
            "required": required,
        }
        _sanitize_named_metadata(type(self), metadata)
        _sanitize_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    def __contains__(self, name):
        return name in self._names

    def present(self, opts, /):
        """
        Return True when any of this option's names is a key of `opts`.
        """
        return any(name in opts for name in self._names)


class CLIArgument(metaclass=ArgumentType):
    """
    Positional argument declaration.

    Arguments are matched by index, in declaration order. An `array` argument
    stands for “all positional values from here on” and must be the last one a
    command declares (Command enforces this when arguments are added).

    Properties
    - descr: str | Text
    - required: bool
    - array: bool
    """

    __introspectable__ = (
        "descr",
        "required",
        "array",
    )

    def __init__(self, descr, /, required=True, array=False):
        metadata = {
            "descr": descr,
            "required": required,
        }
        _sanitize_metadata(type(self), metadata)
        metadata["array"] = bool(array)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)


__all__ = (
    "CLIOption",
    "CLIArgument",
)
