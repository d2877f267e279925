"""
Commands module behavioral tests (builder, validation, dispatch).

Scope
- Validate the builder contract (returns, aliases, array argument placement).
- Validate validation order and the reasons it reports.
- Validate dispatch outcomes: action value, Handled, faults, shell exits.
- Validate help callbacks (inheritance, help flags) and runtime-flag inheritance.

Conventions
- Test method names follow CamelCase per project convention.
- Output is captured with contextlib redirection; nothing reaches the terminal.
"""

from __future__ import annotations

import contextlib
import io
import sys
import unittest
from unittest import TestCase, mock

from icicle import (
    Args,
    Command,
    Handled,
    command,
    invoke,
    FaultCode,
    UserAsked,
    MissingAction,
    MissingOption,
    MissingArgument,
    MissingOptionError,
    MissingArgumentError,
)


def quietly(function, *args):
    """Run function(*args) and return (result, stdout, stderr)."""
    stdout, stderr = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(stderr):
        result = function(*args)
    return result, stdout.getvalue(), stderr.getvalue()


def calculator():
    root = Command("calc")
    add = root.command("add")
    add.option("-x, --x", "first number").option("-y, --y", "second number")
    add.action(lambda args: args.get_or("-x", "--x", int) + args.get_or("-y", "--y", int))
    return root


class TestBuilder(TestCase):
    """Behavioral tests for the declaration surface."""

    def testBuildersReturnTheCommand(self):
        tool = Command("tool")
        self.assertIs(tool.alias("t"), tool)
        self.assertIs(tool.desc("a tool"), tool)
        self.assertIs(tool.option("-x", "x"), tool)
        self.assertIs(tool.opt_option("-y", "y"), tool)
        self.assertIs(tool.argument("a"), tool)
        self.assertIs(tool.opt_argument("b"), tool)
        self.assertIs(tool.array_argument("c"), tool)

    def testDeclarationsAreRecordedInOrder(self):
        tool = Command("tool").alias("t").desc("a tool")
        tool.option("-x", "x").opt_option("-y", "y").argument("a").array_argument("rest", required=False)
        self.assertEqual(tool.names, ("tool", "t"))
        self.assertEqual(tool.name, "tool")
        self.assertEqual(tool.descr, "a tool")
        self.assertEqual([option.required for option in tool.options], [True, False])
        self.assertEqual([argument.array for argument in tool.arguments], [False, True])
        self.assertFalse(tool.arguments[1].required)

    def testCommandCreatesAttachedChild(self):
        root = Command("root")
        child = root.command("child", descr="a child")
        self.assertIs(child.parent, root)
        self.assertEqual(root.children, (child,))
        self.assertEqual(child.descr, "a child")
        self.assertEqual(child.path, (root, child))
        self.assertIs(child.root, root)

    def testCommandAsDecorator(self):
        root = Command("root")

        @root.command
        def greet(args):
            """Say hello."""
            return "hi"

        self.assertEqual(greet.name, "greet")
        self.assertEqual(greet.descr, "Say hello.")
        self.assertIs(greet.parent, root)
        self.assertEqual(root.run("greet"), "hi")

    def testAddAttachesExistingCommand(self):
        root, child = Command("root"), Command("child")
        self.assertIs(root.add(child), root)
        self.assertIs(root.find("child"), child)
        self.assertIsNone(root.find("other"))

    def testAddRejectsNonCommands(self):
        with self.assertRaises(TypeError):
            Command("root").add("child")

    def testAddRejectsAttachedCommand(self):
        root = Command("root")
        child = root.command("child")
        with self.assertRaises(ValueError):
            Command("other").add(child)

    def testAddRejectsCycles(self):
        root = Command("root")
        child = root.command("child")
        with self.assertRaises(ValueError):
            child.add(root)
        with self.assertRaises(ValueError):
            root.add(root)

    def testArrayArgumentMustBeLast(self):
        tool = Command("tool").array_argument("files")
        with self.assertRaises(TypeError):
            tool.argument("late")
        with self.assertRaises(TypeError):
            tool.array_argument("again")

    def testActionAndHelpReturnTheCallback(self):
        tool = Command("tool")

        def action(args):
            pass

        def help(reason, command, args):
            pass

        self.assertIs(tool.action(action), action)
        self.assertIs(tool.help(help), help)

    def testCallbacksMustBeCallableAndSetOnce(self):
        tool = Command("tool")
        with self.assertRaises(TypeError):
            tool.action("nope")
        tool.action(print)
        with self.assertRaises(TypeError):
            tool.action(print)

    def testInvalidMetadataRejected(self):
        with self.assertRaises(ValueError):
            Command("  ")
        with self.assertRaises(TypeError):
            Command(3)
        with self.assertRaises(TypeError):
            Command("tool", shell="yes")
        with self.assertRaises(ValueError):
            Command("tool", helpflags=["help"])
        with self.assertRaises(TypeError):
            Command("tool", helpflags="--help")

    def testRuntimeFlagsInheritLazily(self):
        root = Command("root", shell=True, colorful=True)
        child = Command("child", colorful=False)
        self.assertFalse(child.shell)
        root.add(child)
        self.assertTrue(child.shell)
        self.assertFalse(child.colorful)
        self.assertFalse(child.fancy)
        self.assertEqual(child.helpflags, ("-h", "--help"))

    def testRepr(self):
        self.assertEqual(
            repr(Command("tool")),
            "command(name='tool', descr=None, children=(), options=(), arguments=())",
        )


class TestValidate(TestCase):
    """Behavioral tests for Command.validate."""

    def testSatisfied(self):
        tool = Command("tool").option("-x, --x", "x").argument("a")
        self.assertIsNone(tool.validate(Args({"--x": "1"}, ["a"])))

    def testOptionsAreCheckedBeforeArguments(self):
        tool = Command("tool").argument("a").option("-x", "x")
        self.assertEqual(tool.validate(Args()), MissingOption(tool.options[0]))

    def testFirstMissingOptionIsReported(self):
        tool = Command("tool").option("-x", "x").option("-y", "y")
        self.assertEqual(tool.validate(Args({"-x": "1"})), MissingOption(tool.options[1]))

    def testOptionalDeclarationsAreNotEnforced(self):
        tool = Command("tool").opt_option("-x", "x").opt_argument("a").array_argument("rest", required=False)
        self.assertIsNone(tool.validate(Args()))

    def testMissingScalarArgument(self):
        tool = Command("tool").argument("a").argument("b")
        self.assertEqual(tool.validate(Args(pos=["a"])), MissingArgument(1, 1))

    def testMissingArrayArgument(self):
        tool = Command("tool").array_argument("files")
        self.assertEqual(tool.validate(Args()), MissingArgument(0, 0))

    def testArrayAfterScalars(self):
        tool = Command("tool").argument("a").array_argument("rest")
        self.assertEqual(tool.validate(Args(pos=["a"])), MissingArgument(1, 1))
        self.assertIsNone(tool.validate(Args(pos=["a", "b", "c"])))


class TestRun(TestCase):
    """Behavioral tests for Command.run and friends."""

    def testActionValueIsReturned(self):
        result, stdout, stderr = quietly(calculator().run, ["add", "-x=1", "--y=1"])
        self.assertEqual(result, 2)
        self.assertEqual((stdout, stderr), ("", ""))

    def testGreetSeesPositionals(self):
        human = Command("human").array_argument("names", required=False)
        seen = []
        human.action(lambda args: seen.append(list(args)))
        human.run(["Alice", "Bob"])
        self.assertEqual(seen, [["Alice", "Bob"]])

    def testActionExceptionsPropagate(self):
        tool = Command("tool")

        @tool.action
        def fail(args):
            raise KeyError("boom")

        with self.assertRaises(KeyError):
            tool.run([])

    def testMissingActionShowsHelp(self):
        result, stdout, stderr = quietly(calculator().run, [])
        self.assertIs(result, Handled)
        self.assertTrue(stdout.startswith("usage:\n  calc <command>\n"))
        self.assertEqual(stderr, "")

    def testHelpFlagShowsHelp(self):
        result, stdout, _ = quietly(calculator().run, ["add", "--help"])
        self.assertIs(result, Handled)
        self.assertIn("  -x, --x: first number (required)\n", stdout)

    def testHelpFlagWinsOverValidation(self):
        result, _, stderr = quietly(calculator().run, ["add", "-h"])
        self.assertIs(result, Handled)
        self.assertEqual(stderr, "")

    def testPunctuatedOptionIsEnforced(self):
        tool = Command("tool").option("--dry_run", "simulate only")
        tool.action(lambda args: args.get("--dry_run", bool))
        self.assertIs(tool.run(["--dry_run"]), True)
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(MissingOptionError):
                tool.run([])

    def testDeclaredOptionShadowsHelpFlag(self):
        tool = Command("tool").opt_option("-h, --host", "host name")
        tool.action(lambda args: args.get("-h"))
        self.assertEqual(tool.run(["-h=example.org"]), "example.org")

    def testCustomHelpFlags(self):
        tool = Command("tool", helpflags=["-?"])
        tool.action(lambda args: "ran")
        result, stdout, _ = quietly(tool.run, ["-?"])
        self.assertIs(result, Handled)
        self.assertTrue(stdout.startswith("usage:"))
        self.assertEqual(tool.run(["--help"]), "ran")

    def testMissingOptionFails(self):
        ran = []
        tool = Command("tool").option("-x, --x", "first number")
        tool.action(ran.append)
        stderr = io.StringIO()
        with contextlib.redirect_stdout(io.StringIO()), contextlib.redirect_stderr(stderr):
            with self.assertRaises(MissingOptionError) as context:
                tool.run([])
        self.assertEqual(ran, [])
        self.assertEqual(context.exception.reason, MissingOption(tool.options[0]))
        self.assertEqual(stderr.getvalue(), (
            "tool: error[11201]: missing required option -x, --x\n"
            " → add --x=<value>; run 'tool --help' to see all options\n"
            "usage:\n"
            "  tool [--options]\n"
            "\n"
            "options:\n"
            "  -x, --x: first number (required)\n"
        ))

    def testMissingArgumentFails(self):
        tool = Command("tool").argument("input file")
        tool.action(print)
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(MissingArgumentError) as context:
                tool.run([])
        self.assertEqual(context.exception.reason, MissingArgument(0, 0))
        self.assertEqual(stderr.getvalue(), (
            "tool: error[11202]: missing required argument #0\n"
            " → run 'tool --help' to see the expected arguments\n"
            "usage:\n"
            "  tool [<arguments>]\n"
            "\n"
            "arguments:\n"
            "  #0: input file (required)\n"
        ))

    def testHintNamesCustomHelpFlag(self):
        tool = Command("t", helpflags=["-?"]).option("-x", "x")
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(MissingOptionError) as context:
                tool.run([])
        self.assertEqual(context.exception.options["hint"], "add -x=<value>; run 't -?' to see all options")
        self.assertTrue(stderr.getvalue().startswith(
            "t: error[11201]: missing required option -x\n"
            " → add -x=<value>; run 't -?' to see all options\n"
            "usage:\n"
        ))

    def testHintNamesSubcommandRoute(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(MissingOptionError):
                calculator().run(["add", "-x=1"])
        self.assertIn(" → add --y=<value>; run 'calc add --help' to see all options\n", stderr.getvalue())

    def testNoHelpFlagsLeaveNoHintLine(self):
        tool = Command("tool", helpflags=[]).argument("input file")
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            with self.assertRaises(MissingArgumentError) as context:
                tool.run([])
        self.assertIsNone(context.exception.options["hint"])
        self.assertTrue(stderr.getvalue().startswith("tool: error[11202]: missing required argument #0\nusage:\n"))

    def testRegisteredDocsAreShown(self):
        main = __import__("__main__")
        docs = {FaultCode.MISSING_ARGUMENT: "positional values follow the options"}
        stderr = io.StringIO()
        with mock.patch.object(main, "__docs__", docs, create=True), contextlib.redirect_stderr(stderr):
            with self.assertRaises(MissingArgumentError):
                Command("tool").argument("input file").run([])
        self.assertTrue(stderr.getvalue().startswith(
            "tool: error[11202]: missing required argument #0\n"
            " → run 'tool --help' to see the expected arguments\n"
            "   positional values follow the options\n"
            "usage:\n"
        ))

    def testShellModeExits(self):
        root = Command("tool", shell=True)
        root.command("sub").array_argument("files").action(print)
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as context:
                root.run(["sub"])
        self.assertEqual(context.exception.code, 1)

    def testHelpCallbackReceivesReason(self):
        calls = []
        root = calculator()
        root.help(lambda reason, command, args: calls.append((reason, command.name, args)))
        self.assertIs(root.run(["add", "--help"]), Handled)
        self.assertIs(root.run([]), Handled)
        self.assertEqual(calls, [
            (UserAsked(), "add", Args({"--help": "true"})),
            (MissingAction(), "calc", Args()),
        ])

    def testHelpCallbackOnFailure(self):
        calls = []
        root = calculator()
        root.help(lambda reason, command, args: calls.append(reason))
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(MissingOptionError):
                root.run(["add", "-x=1"])
        self.assertEqual(calls, [MissingOption(root.find("add").options[1])])

    def testChildHelpOverridesParentHelp(self):
        calls = []
        root = calculator()
        root.help(lambda reason, command, args: calls.append("root"))
        root.find("add").help(lambda reason, command, args: calls.append("add"))
        root.run(["add", "-h"])
        root.run(["-h"])
        self.assertEqual(calls, ["add", "root"])

    def testRunAcceptsStrings(self):
        self.assertEqual(calculator().run("add --x=20 --y=22"), 42)

    def testRunEnvReadsProcessArguments(self):
        with mock.patch.object(sys, "argv", ["calc", "add", "-x=1", "-y=2"]):
            self.assertEqual(calculator().run_env(), 3)

    def testRepeatedRunsAgree(self):
        root = calculator()
        self.assertEqual(root.run(["add", "-x=1", "-y=1"]), root.run(["add", "-x=1", "-y=1"]))


class TestInvoke(TestCase):
    """Behavioral tests for command() and invoke()."""

    def testInvokeCommand(self):
        self.assertEqual(invoke(calculator(), "add -x=2 -y=3"), 5)

    def testInvokeCallable(self):
        def echo(args):
            return args.pos

        self.assertEqual(invoke(echo, ["a", "b"]), ["a", "b"])

    def testCommandDecorator(self):
        @command(name="hello")
        def greet(args):
            """Say hello."""
            return args.join(" ")

        self.assertEqual(greet.name, "hello")
        self.assertEqual(greet.descr, "Say hello.")
        self.assertEqual(invoke(greet, "big world"), "big world")

    def testInvokeRejectsOtherObjects(self):
        with self.assertRaises(TypeError):
            invoke(42, [])


if __name__ == "__main__":
    unittest.main()
