"""
Help renderer tests (exact plain text, usage line, output streams).

Scope
- Validate the plain help layout section by section.
- Validate argument labels and empty-section omission.
- Validate where show() writes and the fancy panel frame.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import contextlib
import io
import unittest
from unittest import TestCase

from rich.text import Text

from icicle import Command, MissingOption, MissingArgument
from icicle import helper


class TestPlainHelp(TestCase):
    """Behavioral tests for generate_help and generate_usage."""

    def testBareCommand(self):
        self.assertEqual(Command("tool").generate_help(), "usage:\n  tool\n")

    def testFullLayout(self):
        tool = Command("tool")
        tool.argument("input file").opt_argument("output file")
        tool.option("-x, --x", "first number").opt_option("-v, --verbose", "be chatty")
        tool.command("build").alias("b").desc("compile things")
        tool.command("clean")
        self.assertEqual(tool.generate_help(), (
            "usage:\n"
            "  tool [--options] [<arguments>] <command>\n"
            "\n"
            "arguments:\n"
            "  #0: input file (required)\n"
            "  #1: output file\n"
            "\n"
            "options:\n"
            "  -x, --x: first number (required)\n"
            "  -v, --verbose: be chatty (optional)\n"
            "\n"
            "commands:\n"
            "  build, b: compile things\n"
            "  clean: (no description)\n"
        ))

    def testArrayLabels(self):
        everything = Command("cat").array_argument("files")
        self.assertEqual(everything.generate_help(), (
            "usage:\n"
            "  cat [<arguments>]\n"
            "\n"
            "arguments:\n"
            "  all arguments: files (required)\n"
        ))
        rest = Command("cp").argument("target").array_argument("sources", required=False)
        self.assertIn("  <everything else>: sources\n", rest.generate_help())

    def testEmptySectionsAreOmitted(self):
        text = Command("tool").option("-x", "x").generate_help()
        self.assertNotIn("arguments:", text)
        self.assertNotIn("commands:", text)
        self.assertEqual(text, "usage:\n  tool [--options]\n\noptions:\n  -x: x (required)\n")

    def testReasonDoesNotChangePlainText(self):
        tool = Command("tool").option("-x", "x").argument("a")
        self.assertEqual(tool.generate_help(MissingOption(tool.options[0])), tool.generate_help())
        self.assertEqual(tool.generate_help(MissingArgument(0, 0)), tool.generate_help())

    def testUsageSeparator(self):
        tool = Command("tool").option("-x", "x").argument("a")
        tool.command("sub")
        self.assertEqual(tool.generate_usage(), "tool [--options] [<arguments>] <command>")
        self.assertEqual(tool.generate_usage("|"), "tool|[--options]|[<arguments>]|<command>")


class TestRichHelp(TestCase):
    """Behavioral tests for render and show."""

    def testRenderReturnsText(self):
        self.assertIsInstance(helper.render(Command("tool")), Text)

    def testColorfulRenderKeepsPlainText(self):
        tool = Command("tool").option("-x", "x")
        colorful = helper.render(tool, MissingOption(tool.options[0]), colorful=True)
        self.assertEqual(colorful.plain, tool.generate_help())
        self.assertTrue(colorful.spans)

    def testRichDescriptionIsKept(self):
        tool = Command("tool").opt_option("-x", Text("styled", "bold"))
        self.assertIn("  -x: styled (optional)\n", tool.generate_help())

    def testShowWritesToStdout(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            helper.show(Command("tool"))
        self.assertEqual(stdout.getvalue(), "usage:\n  tool\n")

    def testShowWritesFailuresToStderr(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            helper.show(Command("tool"), stderr=True)
        self.assertEqual(stderr.getvalue(), "usage:\n  tool\n")

    def testFancyPanel(self):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            helper.show(Command("tool", fancy=True))
        self.assertIn("[ TOOL HELP ]", stdout.getvalue())


if __name__ == "__main__":
    unittest.main()
