"""
Icicle token classifier.

What this module provides
- TokenKind: the four shapes a raw argument can take.
- Token: the classification result (kind, option names, shared value).
- classify(token, accepting): the single decision function used by the resolver.

Rules (applied in order)
1. options no longer accepted       → positional
2. exactly "--"                     → terminator (the caller stops accepting options)
3. "--name" / "--name=value"        → long option; the name keeps its dashes
4. "-xyz" / "-xyz=value"            → short cluster; one "-x" name per character
5. anything else                    → positional

Absent "=value", an option's value is the literal string "true". The split always
happens on the first "=", so "--define=a=b" carries the value "a=b".
"""
import collections
import enum

TRUE = "true"
TERMINATOR = "--"


class TokenKind(enum.Enum):
    """
    shape of a single raw token.
    """
    TERMINATOR = "terminator"
    LONG = "long"
    SHORT = "short"
    POSITIONAL = "positional"


Token = collections.namedtuple("Token", ("kind", "names", "value"))
Token.__doc__ = """
classification of one raw token.

- kind: TokenKind
- names: tuple[str, ...] of option names (dash-prefixed); empty for non-options.
- value: the option value or the positional text; None for the terminator.
"""


def _split(token):
    # left side is the spelling, right side (if any) the value
    name, sep, value = token.partition("=")
    return name, value if sep else TRUE


def classify(token, accepting=True, /):
    """
    classify one raw argument.

    parameters
    - token: str
      the raw argument exactly as received (no trimming is applied).
    - accepting: bool
      whether options are still being accepted; False once a terminator was seen.

    returns
    - Token: kind, names and value as described in the module docstring.
      a lone "-" is a short cluster without names (it stores nothing).
    """
    if not isinstance(token, str):
        raise TypeError("classify() argument must be a string")

    if not accepting:
        return Token(TokenKind.POSITIONAL, (), token)

    if token == TERMINATOR:
        return Token(TokenKind.TERMINATOR, (), None)

    if token.startswith("--"):
        name, value = _split(token)
        return Token(TokenKind.LONG, (name,), value)

    if token.startswith("-"):
        cluster, value = _split(token)
        # every character after the leading dash is its own option
        return Token(TokenKind.SHORT, tuple("-" + char for char in cluster[1:]), value)

    return Token(TokenKind.POSITIONAL, (), token)


__all__ = (
    "TokenKind",
    "Token",
    "classify",
)
