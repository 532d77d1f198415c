"""
Faults module tests (codes, options, rendering, trigger).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase, mock

from rich.console import Console
from rich.panel import Panel

from argchain.faults import (
    FaultCode,
    CommandException,
    ParseError,
    MisplacedFlagsError,
    UnknownCommandError,
    trigger,
    getdoc,
)


def _fault():
    return MisplacedFlagsError(
        "flags must come after the command name",
        code=FaultCode.MISPLACED_FLAGS,
        title="misplaced flags",
        hint="move the flags after the command name",
    )


def _render(renderable):
    console = Console(file=io.StringIO(), color_system=None, force_terminal=False, width=100)
    console.print(renderable)
    return console.file.getvalue()


class TestFaults(TestCase):

    def testCodesNormalizeToNumbers(self):
        self.assertEqual(FaultCode.EMPTY_INPUT.normalize(), "11101")

    def testHierarchy(self):
        self.assertTrue(issubclass(MisplacedFlagsError, ParseError))
        self.assertTrue(issubclass(UnknownCommandError, CommandException))
        self.assertFalse(issubclass(UnknownCommandError, ParseError))

    def testMessageAndOptions(self):
        fault = _fault()
        self.assertEqual(str(fault), "flags must come after the command name")
        self.assertEqual(fault.code, FaultCode.MISPLACED_FLAGS)
        self.assertIsNone(fault.node)
        with self.assertRaises(TypeError):
            fault.options["code"] = None  # type: ignore[index]

    def testReplaceMergesOptions(self):
        fault = _fault()
        copy = fault.__replace__(prog="tool")
        self.assertIs(type(copy), MisplacedFlagsError)
        self.assertEqual(copy.message, fault.message)
        self.assertEqual(copy.options["prog"], "tool")
        self.assertEqual(copy.code, FaultCode.MISPLACED_FLAGS)
        self.assertNotIn("prog", fault.options)

    def testReplaceKeepsCause(self):
        try:
            try:
                raise RuntimeError("boom")
            except RuntimeError as exception:
                raise _fault() from exception
        except MisplacedFlagsError as fault:
            copy = fault.__replace__(prog="tool")
            traceback = fault.__traceback__
        self.assertIsInstance(copy.__cause__, RuntimeError)
        self.assertTrue(copy.__suppress_context__)
        self.assertIs(copy.__traceback__, traceback)

    def testPlainRendering(self):
        rendered = _render(_fault().__replace__(prog="tool"))
        self.assertIn("[ tool — 11111 | Misplaced Flags ]", rendered)
        self.assertIn("flags must come after the command name", rendered)
        self.assertIn("→ move the flags after the command name", rendered)

    def testFancyRenderingUsesPanel(self):
        self.assertIsInstance(_fault().__replace__(fancy=True).__rich__(), Panel)

    def testTriggerRaisesOutsideShell(self):
        with self.assertRaises(MisplacedFlagsError) as caught:
            trigger(_fault(), shell=False, prog="tool")
        self.assertEqual(caught.exception.options["prog"], "tool")

    def testTriggerExitsInShell(self):
        errors = Console(file=io.StringIO(), color_system=None, force_terminal=False, width=100)
        with mock.patch("argchain.faults.console", errors), self.assertRaises(SystemExit) as caught:
            trigger(_fault(), shell=True)
        self.assertEqual(caught.exception.code, 1)
        self.assertIn("Misplaced Flags", errors.file.getvalue())

    def testTriggerRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("x"))

    def testGetdoc(self):
        self.assertIsNone(getdoc(FaultCode.EMPTY_INPUT))
        with self.assertRaises(TypeError):
            getdoc(11101)


if __name__ == "__main__":
    unittest.main()
