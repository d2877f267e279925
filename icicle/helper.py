"""
Icicle help renderer.

Pure formatting over one command's declarations; the only look at descendants
is the one-line summary of each direct child.

Layout (plain text; every line ends with a newline, sections are separated by
one blank line, empty sections are left out)

    usage:
      <name> [--options] [<arguments>] <command>

    arguments:
      #0: <descr> (required)
      <everything else>: <descr>

    options:
      -x, --x: <descr> (required)

    commands:
      <name>, <alias>: <descr or "(no description)">

Styling
- render() builds a rich Text; plain callers use its .plain form.
- Palette keys: usage-label, program-name, usage-section, section-label,
  argument-name, option-name, children, description, marker, missing,
  panel-title. Define __styles__ in __main__ to override any entry.
- Lines named by a MissingOption/MissingArgument reason use the "missing" style.
"""
from collections import defaultdict

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .faults import MissingOption, MissingArgument

INDENT = "  "


def _styler(colorful):
    styles = defaultdict(str, {
        # === Head ===
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "usage-section": "bold #36C5F0",

        # === Sections ===
        "section-label": "bold #FFFFFF",
        "argument-name": "bold #FFD600",
        "option-name": "bold #00E6FF",
        "children": "bold #36C5F0",
        "description": "#9CA3AF",
        "marker": "italic #737373",
        "missing": "bold #EF4444",

        # === Fancy panel ===
        "panel-title": "bold #FF4D94",
    } | getattr(__import__("__main__"), "__styles__", {}))

    def styler(style):
        return styles[style] if colorful else ""

    return styler


def usage(command, separator=" ", /):
    """
    the bare usage line: canonical name, then "[--options]", "[<arguments>]" and
    "<command>" for each kind of declaration the command has.
    """
    parts = [command.name]
    if command.options:
        parts.append("[--options]")
    if command.arguments:
        parts.append("[<arguments>]")
    if command.children:
        parts.append("<command>")
    return separator.join(parts)


def label(argument, index, /):
    """
    how an argument is named in the arguments section.
    """
    if not argument.array:
        return "#%d" % index
    return "all arguments" if index == 0 else "<everything else>"


def _missing(reason):
    # indexes of unsatisfied arguments and the unsatisfied option, if any
    match reason:
        case MissingArgument(start, end):
            return range(start, end + 1), None
        case MissingOption(option):
            return range(0), option
    return range(0), None


def render(command, reason=None, /, *, colorful=False):
    """
    build the full help screen for `command` as a rich Text.

    parameters
    - command: Command
    - reason: HelpReason | None
      used only to highlight the unsatisfied option/argument lines.
    - colorful: bool
      apply the palette; otherwise the Text carries no styles.
    """
    styler = _styler(colorful)
    arguments, option = _missing(reason)
    sections = []

    def line(name, style, descr, marker=None, *, missing=False):
        row = Text(INDENT)
        row.append(name, styler("missing" if missing else style))
        row.append(": ")
        row.append(descr if isinstance(descr, Text) else Text(str(descr), styler("description")))
        if marker:
            row.append(" ").append(marker, styler("marker"))
        return row.append("\n")

    head = Text()
    head.append("usage", styler("usage-label")).append(":\n")
    head.append(INDENT)
    head.append(command.name, styler("program-name"))
    if rest := usage(command).removeprefix(command.name):
        head.append(rest, styler("usage-section"))
    sections.append(head.append("\n"))

    if command.arguments:
        block = Text()
        block.append("arguments", styler("section-label")).append(":\n")
        for index, argument in enumerate(command.arguments):
            block.append(line(
                label(argument, index),
                "argument-name",
                argument.descr,
                "(required)" if argument.required else None,
                missing=index in arguments,
            ))
        sections.append(block)

    if command.options:
        block = Text()
        block.append("options", styler("section-label")).append(":\n")
        for declared in command.options:
            block.append(line(
                ", ".join(declared.names),
                "option-name",
                declared.descr,
                "(required)" if declared.required else "(optional)",
                missing=declared is option,
            ))
        sections.append(block)

    if command.children:
        block = Text()
        block.append("commands", styler("section-label")).append(":\n")
        for child in command.children:
            block.append(line(", ".join(child.names), "children", child.descr or "(no description)"))
        sections.append(block)

    return Text("\n").join(sections)


def show(command, reason=None, /, *, stderr=False):
    """
    print the help screen of `command`.

    output goes to stdout for informational reasons and to stderr when `stderr`
    is set (validation failures). fancy commands are framed in a panel.
    """
    console = Console(stderr=stderr)
    renderable = render(command, reason, colorful=command.colorful)

    if command.fancy:
        renderable.rstrip()
        renderable = Panel(
            renderable,
            title=Text.assemble("[", " ", f"{command.name} HELP".upper(), " ", "]", style=_styler(command.colorful)("panel-title")),
            title_align="left",
        )
        console.print(renderable)
    else:
        console.print(renderable, end="", soft_wrap=True)


__all__ = (
    "usage",
    "label",
    "render",
    "show",
)
