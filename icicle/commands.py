"""
Icicle command layer: build, compose, and run CLI commands.

What this module provides
- Command: a node in a declarative command tree with:
  • names (canonical name + aliases) and a short description,
  • option (CLIOption) and positional argument (CLIArgument) declarations,
  • at most one action callback and one help callback,
  • owned children (subcommands), matched in declaration order.
- Factories and helpers:
  • command(...): create a Command from a callable, or a decorator that does.
  • invoke(obj, prompt): convenience runner for Commands or plain callables.

Core ideas
- Builder surface: every declaration method returns the command, so trees read
  top-down; action()/help() return the callback so they double as decorators.
- One pass: Args.parse walks the tree once, then the matched command validates
  the result and dispatches.
- Read-only runs: the tree is never mutated by run(), so one tree can serve
  many runs (including concurrent ones, as long as the callbacks allow it).

Quick start
    from icicle import Command

    program = Command("calc", descr="tiny calculator")

    add = program.command("add").desc("add two numbers")
    add.option("-x, --x", "first number").option("-y, --y", "second number")

    @add.action
    def _(args):
        print(args.get_or("-x", "--x", int) + args.get_or("-y", "--y", int))

    if __name__ == "__main__":
        program.run_env()

Outcomes of run()
- the action ran: its return value is returned as-is (exceptions propagate).
- help was shown (asked for, or no action to run): Handled is returned.
- validation failed: a diagnostic (error line plus hint) and the help screen go to stderr,
  then MissingOptionError/MissingArgumentError is raised (or, in shell mode,
  the process exits with status 1).
"""
import functools
import inspect
import logging
import operator
import re
import sys

from rich.text import Text

from . import faults
from . import helper
from .args import Args
from .arguments import CLIOption, CLIArgument
from .faults import *
from .utils import *

logger = logging.getLogger(__name__)


class CommandType(type):
    """
    Metaclass that gives Command a stable identity in diagnostics.

    Responsibilities
    - Derive __typename__ from the class name for consistent error messages.
    - Provide readable __repr__/__rich_repr__ driven by __displayable__ (or
      __introspectable__ when unset).
    - Expose every name listed in __introspectable__ as a read-only property
      backed by the matching private field (see mirror()).
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - command(name='build', descr=None, ...)
            """
            return f"{type(self).__typename__}({', '.join(map(functools.partial(operator.mod, '%s=%r'), self.__rich_repr__()))})"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            """
            Yield (name, object) pairs for pretty printers.
            """
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _process_strings(cls, metadata):
    """
    Normalize the scalar identity fields.

    - name: must be a str; trimmed; cannot be empty.
    - descr: str | Text | Unset; strings are trimmed and cannot be empty;
      Unset becomes None.

    Errors
    - TypeError: wrong type.
    - ValueError: empty after trimming.
    """
    if "name" in metadata:
        if not isinstance(name := metadata["name"], str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} 'name' cannot be empty")
        metadata["name"] = name

    if "descr" in metadata:
        if not isinstance(descr := metadata["descr"], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")
        elif isinstance(descr, str) and not (descr := descr.strip()):
            raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
        metadata["descr"] = coalesce(descr)


def _process_runtime(cls, metadata):
    """
    Validate the runtime configuration.

    - colorful, fancy, shell: bool | Unset (Unset inherits from the parent).
    - helpflags: Unset or an iterable of dash-prefixed names that request help.
    """
    for name in ("colorful", "fancy", "shell"):
        if not isinstance(metadata[name], bool | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a boolean")

    if (helpflags := metadata["helpflags"]) is not Unset:
        if isinstance(helpflags, str):
            raise TypeError(f"{cls.__typename__} 'helpflags' must be an iterable of strings")
        sanitized = []
        for flag in helpflags:
            if not isinstance(flag, str):
                raise TypeError(f"{cls.__typename__} 'helpflags' must be an iterable of strings")
            elif not re.fullmatch(r"-[^\s=]+", flag := flag.strip()):
                raise ValueError(f"{cls.__typename__} help flag {flag!r} must start with a dash")
            sanitized.append(flag)
        metadata["helpflags"] = tuple(sanitized)


def _inherited(name, default, /):
    """
    Read-only property resolving a runtime setting along the parent chain.

    The nearest node whose private field is not Unset wins; the root falls
    back to `default`. Resolution is lazy so subtrees attached later with
    add() pick up their new ancestors' settings.
    """
    @rename(name)
    def getter(self):
        node = self
        while node is not None:
            if (value := getattr(node, "_" + name)) is not Unset:
                return value
            node = node._parent
        return default

    return property(getter)


class Command(metaclass=CommandType):
    """
    A node of the command tree.

    Responsibilities
    - Declaration: names/aliases, description, options, positional arguments.
    - Composition: owns its children; the first child (in declaration order)
      having a matching name wins during resolution.
    - Validation: required options first, then required arguments, stopping at
      the first violation (see validate()).
    - Dispatch: run() resolves, validates and calls the action, or renders help.

    Notes
    - Collections are exposed as read-only tuples; use the builder methods to
      change them.
    - Names are not required to be unique across the tree.
    """

    __introspectable__ = (
        "names",
        "descr",
        "parent",
        "children",
        "options",
        "arguments",
    )

    __displayable__ = (
        "name",
        "descr",
        "children",
        "options",
        "arguments",
    )

    colorful = _inherited("colorful", False)
    fancy = _inherited("fancy", False)
    shell = _inherited("shell", False)
    helpflags = _inherited("helpflags", ("-h", "--help"))

    def __init__(
            self,
            name,
            /,
            descr=Unset,
            *,
            colorful=Unset,
            fancy=Unset,
            shell=Unset,
            helpflags=Unset
    ):
        """
        Create a detached command.

        Parameters
        - name: str
          Canonical name; aliases can be added with alias().
        - descr: str | Text | Unset
          Short summary shown in the parent's commands section.
        - colorful, fancy, shell: bool | Unset (keyword-only)
          Runtime flags. If Unset, values inherit from the parent (or default False).
          • colorful: style help screens and diagnostics.
          • fancy: frame help screens in a panel.
          • shell: exit the process on validation failures instead of raising.
        - helpflags: Iterable[str] | Unset (keyword-only)
          Option names that request help; read from the command run() is called
          on. Defaults to ("-h", "--help").

        Raises
        - TypeError/ValueError on invalid metadata.
        """
        metadata = {
            "name": name,
            "descr": descr,
            "colorful": colorful,
            "fancy": fancy,
            "shell": shell,
            "helpflags": helpflags,
        }
        _process_strings(type(self), metadata)
        _process_runtime(type(self), metadata)

        self._names = [metadata.pop("name")]
        self._parent = None
        self._children = []
        self._options = []
        self._arguments = []
        self._action = None
        self._help = None
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    @property
    def name(self):
        """
        The canonical name (first of names).
        """
        return self._names[0]

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self._parent
        while parent:
            child, parent = parent, parent._parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.

        The first element is the root command, the last is the current node.
        Handy for user-facing routes such as 'git remote add'.
        """
        path = [command := self]
        while command._parent:
            path.append(command := command._parent)
        return tuple(reversed(path))

    def alias(self, name, /):
        """
        Add an alternative name; aliases match exactly like the canonical name.
        """
        metadata = {"name": name}
        _process_strings(type(self), metadata)
        self._names.append(metadata["name"])
        return self

    def desc(self, descr, /):
        """
        Set the description shown in the parent's commands section.
        """
        metadata = {"descr": descr}
        _process_strings(type(self), metadata)
        self._descr = metadata["descr"]
        return self

    def option(self, names, descr, /):
        """
        Declare a required option.

        `names` is a comma-separated list ("-o, --output") or an iterable of
        names; any of them satisfies the requirement.
        """
        self._options.append(CLIOption(names, descr, required=True))
        return self

    def opt_option(self, names, descr, /):
        """
        Declare an optional option (listed in help, never enforced).
        """
        self._options.append(CLIOption(names, descr, required=False))
        return self

    def _attach_argument(self, argument):
        # an array argument swallows everything after it, so it must stay last
        if self._arguments and self._arguments[-1].array:
            raise TypeError(f"{type(self).__typename__} array argument must be the last argument")
        self._arguments.append(argument)
        return self

    def argument(self, descr, /):
        """
        Declare a required positional argument at the next index.
        """
        return self._attach_argument(CLIArgument(descr, required=True))

    def opt_argument(self, descr, /):
        """
        Declare an optional positional argument at the next index.
        """
        return self._attach_argument(CLIArgument(descr, required=False))

    def array_argument(self, descr, /, *, required=True):
        """
        Declare an argument capturing every positional value from its index on.

        A required array argument needs at least one value. No argument can be
        declared after it.
        """
        return self._attach_argument(CLIArgument(descr, required=required, array=True))

    def add(self, child, /):
        """
        Attach an existing, detached command as the last child.

        Raises
        - TypeError: when child is not a Command.
        - ValueError: when child already has a parent, or attaching it would
          make the tree cyclic.
        """
        if not isinstance(child, Command):
            raise TypeError(f"{type(self).__typename__} child must be a command")
        if child._parent is not None:
            raise ValueError(f"{type(self).__typename__} {child.name!r} is already attached to {child._parent.name!r}")
        if child in self.path:
            raise ValueError(f"{type(self).__typename__} {child.name!r} cannot be attached to its own subtree")
        child._parent = self
        self._children.append(child)
        return self

    def command(self, source=Unset, /, **kwargs):
        """
        Create and attach a subcommand.

        Invocation modes
        - command("name", ...): create a child, attach it, and return the child.
        - command(callback, ...): create a child running `callback` (see the
          module-level command()), attach it, and return the child.
        - @parent.command / @parent.command(name="x"): decorator form.

        Keyword arguments are forwarded to the Command constructor (descr and
        runtime flags), plus `name` for the callback forms.
        """
        if isinstance(source, str):
            child = Command(source, **kwargs)
            self.add(child)
            return child

        @rename("command")
        def wrapper(source, /):
            child = command(source, **kwargs)
            self.add(child)
            return child

        return wrapper(source) if source is not Unset else wrapper

    def action(self, action, /):
        """
        Register the callback run with the parsed Args.

        Rules
        - Must be callable; can be set only once per command.

        Returns
        - The same callable, enabling decorator-style usage: @cmd.action
        """
        if not callable(action):
            raise TypeError(f"{type(self).__typename__} action must be callable")
        if self._action is not None:
            raise TypeError(f"{type(self).__typename__} action cannot be overridden")
        self._action = action
        return action

    def help(self, help, /):
        """
        Register the callback that renders help for this command and for every
        descendant that does not register its own.

        The callback is called as help(reason, command, args), where reason is a
        HelpReason, command the matched command and args the parsed Args.

        Returns
        - The same callable, enabling decorator-style usage: @cmd.help
        """
        if not callable(help):
            raise TypeError(f"{type(self).__typename__} help must be callable")
        if self._help is not None:
            raise TypeError(f"{type(self).__typename__} help cannot be overridden")
        self._help = help
        return help

    def find(self, name, /):
        """
        Return the first child answering to `name`, or None.
        """
        for child in self._children:
            if name in child._names:
                return child
        return None

    def validate(self, args, /):
        """
        Check parsed Args against this command's declarations.

        Order
        - every required option, in declaration order: one of its names must
          be present in args.opts, otherwise MissingOption(option);
        - then every required argument at index i, in declaration order:
          args.pos must reach index i, otherwise MissingArgument(i, end), where
          end is the last declared index for an array argument and i otherwise.

        Returns
        - None when everything is satisfied, else the first HelpReason found.
        """
        for option in self._options:
            if option.required and not option.present(args.opts):
                return MissingOption(option)

        for index, argument in enumerate(self._arguments):
            if argument.required and not args.has_at(index):
                return MissingArgument(index, len(self._arguments) - 1 if argument.array else index)

        return None

    def generate_usage(self, separator=" ", /):
        """
        The plain usage line, parts joined by `separator`.
        """
        return helper.usage(self, separator)

    def generate_help(self, reason=None, /):
        """
        The plain help screen (see icicle.helper for the layout).
        """
        return helper.render(self, reason).plain

    def _helper(self, reason=None):
        """
        Default help path: print this command's help screen.

        Failures go to stderr, informational screens to stdout.
        """
        helper.show(self, reason, stderr=bool(reason and reason.failure))

    def _fault(self, reason, helpflags=(), /):
        """
        Build the fault describing a failed validation.

        The hint points at the last of `helpflags` (the flags of the command
        run() was called on); without any flag it only names the fix.
        """
        route = " ".join(step.name for step in self.path)
        asking = "run '%s %s'" % (route, helpflags[-1]) if helpflags else None
        match reason:
            case MissingOption(option):
                exception, code = MissingOptionError, FaultCode.MISSING_OPTION
                message = "missing required option %s" % ", ".join(option.names)
                hint = "add %s=<value>" % option.names[-1]
                if asking:
                    hint += "; %s to see all options" % asking
            case MissingArgument(start, _):
                exception, code = MissingArgumentError, FaultCode.MISSING_ARGUMENT
                message = "missing required argument %s" % helper.label(self._arguments[start], start)
                hint = asking and "%s to see the expected arguments" % asking
            case _:
                raise RuntimeError("unexpected reason")
        return exception(
            message,
            code=code,
            reason=reason,
            hint=hint,
            docs=getdoc(code),
            tool=self,
            shell=self.shell,
            colorful=self.colorful,
        )

    def _show(self, reason, args, help):
        """
        Route a help reason to the resolved callback, or to the default renderer.
        """
        if help is not None:
            help(reason, self, args)
        else:
            self._helper(reason)

    def run(self, argv, /):
        """
        Parse, validate and dispatch one argument list.

        Parameters
        - argv: str | Iterable[str]
          Arguments without the program path; a string is split shell-style.

        Flow
        1. Args.parse resolves the matched command, its Args and help callback.
        2. Any help flag (see helpflags) not declared by the matched command as
           an option shows help with UserAsked and returns Handled.
        3. Validation failures print a diagnostic and the help screen to stderr,
           then raise (or exit in shell mode).
        4. The action's return value is returned; without an action, help is
           shown with MissingAction and Handled is returned.
        """
        command, args, help = Args.parse(self, argv)

        declared = {name for option in command._options for name in option.names}
        if any(flag in args.opts and flag not in declared for flag in self.helpflags):
            logger.debug("help requested for %r", command.name)
            command._show(UserAsked(), args, help)
            return Handled

        if (reason := command.validate(args)) is not None:
            logger.debug("validation of %r failed: %r", command.name, reason)
            fault = command._fault(reason, self.helpflags)
            faults.console.print(fault, soft_wrap=True)
            command._show(reason, args, help)
            return trigger(fault)

        if command._action is None:
            logger.debug("%r has no action, showing help", command.name)
            command._show(MissingAction(), args, help)
            return Handled

        logger.debug("dispatching %r with %r", command.name, args)
        return command._action(args)

    def run_env(self):
        """
        Run with the hosting process arguments (sys.argv without the program path).
        """
        return self.run(sys.argv[1:])

    def __invoke__(self, prompt=Unset):
        """
        Execute this command with a token stream.

        Parameters
        - prompt:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; split via shlex.split.
          • Iterable[str]: pre-tokenized sequence.
        """
        if prompt is Unset:
            return self.run_env()
        return self.run(prompt)


def command(source=Unset, /, **kwargs):
    """
    Create a Command running a callable, or return a decorator that does.

    Invocation modes
    - Direct callback:
        cmd = command(func, name="x", descr="...")
    - Decorator:
        @command
        def greet(args): ...

        @command(name="hello")
        def greet(args): ...

    The command name defaults to the callable's __name__ and the description
    to its docstring.

    Returns
    - Command | Callable[[Callable], Command]
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        options = dict(kwargs)
        name = options.pop("name", Unset)
        descr = options.pop("descr", Unset)
        self = Command(
            coalesce(name, getattr(source, "__name__", "main")),
            coalesce(descr, inspect.getdoc(source) or Unset),
            **options,
        )
        self.action(source)
        return self

    return wrapper(source) if source is not Unset else wrapper


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for commands or callables.

    Parameters
    - object: an instance providing __invoke__(prompt) or a plain callable
      (wrapped with command() first).
    - prompt: Unset (sys.argv[1:]), a shell-like str, or an Iterable[str].

    Returns
    - whatever the run returns (action result or Handled).
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)

    if callable(object):
        return invoke(command(object), prompt)

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Command",
    "command",
    "invoke",
)

# Remove the internal metaclass from the module namespace; not part of the public API.
del CommandType
