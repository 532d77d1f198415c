"""
Parser behavioral tests (token classification, lists, branching, faults).

Scope
- Validate command-name capture and the Name → Sub → Text chain.
- Validate flag shapes: booleans, pairs, comma values, closed and spanning lists.
- Validate the single-trailing-word leaf and branch text.
- Validate faults (empty input, misplaced flags, missing values) and the node
  they carry.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (parse, ParsedArg, faults).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from argchain import parse, ParsedArg
from argchain.faults import (
    FaultCode,
    ParseError,
    EmptyInputError,
    MisplacedFlagsError,
    MissingFlagValueError,
)


class TestNames(TestCase):
    """Command names and the subcommand chain."""

    def testSingleNameIsCaptured(self):
        arg = parse("rocket")
        self.assertEqual(arg.name, "rocket")
        self.assertIsNone(arg.sub)
        self.assertEqual(arg.text, "")
        self.assertEqual(arg.pairs, {})

    def testFlagsAfterName(self):
        arg = parse("rocket  --name=wallet -rack=ball -h")
        self.assertIsNone(arg.sub)
        self.assertEqual(arg.name, "rocket")
        self.assertEqual(arg.pairs, {"name": ["wallet"], "rack": ["ball"], "h": ["true"]})

    def testSingleTrailingWordIsText(self):
        arg = parse("tool extra")
        self.assertEqual(arg.name, "tool")
        self.assertEqual(arg.text, "extra")
        self.assertIsNone(arg.sub)

    def testTrailingWordLeafUnderSubcommand(self):
        arg = parse("example --rack=20 push git@ghu.com/fla.git")
        self.assertEqual(arg.pairs, {"rack": ["20"]})
        self.assertEqual(arg.text, "push git@ghu.com/fla.git")
        self.assertEqual(arg.sub.name, "push")
        self.assertEqual(arg.sub.text, "git@ghu.com/fla.git")
        self.assertIsNone(arg.sub.sub)

    def testListThenSubcommand(self):
        arg = parse("example --rack=20 --dirs=[drum flag kick] push git@ghu.com/fla.git")
        self.assertIn("rack", arg.pairs)
        self.assertEqual(arg.pairs["dirs"], ["drum", "flag", "kick"])
        self.assertEqual(arg.sub.name, "push")
        self.assertEqual(arg.sub.text, "git@ghu.com/fla.git")

    def testNestedSubcommandsWithSpanningList(self):
        arg = parse("runket -w=323 -j danger ricker --name=[ bog willow crack ] -rack=ball -h renditions recka")

        self.assertEqual(arg.name, "runket")
        self.assertEqual(arg.pairs, {"w": ["323"], "j": ["true"]})
        self.assertEqual(arg.text, "danger ricker --name=[ bog willow crack ] -rack=ball -h renditions recka")

        self.assertEqual(arg.sub.name, "danger")
        self.assertEqual(arg.sub.pairs, {})

        ricker = arg.sub.sub
        self.assertEqual(ricker.name, "ricker")
        self.assertEqual(ricker.pairs["name"], ["bog", "willow", "crack"])
        self.assertEqual(ricker.pairs["rack"], ["ball"])
        self.assertEqual(ricker.pairs["h"], ["true"])

        self.assertEqual(ricker.sub.name, "renditions")
        self.assertEqual(ricker.sub.text, "recka")
        self.assertIsNone(ricker.sub.sub)

    def testChainWalksEveryLevel(self):
        arg = parse("a b c d")
        self.assertEqual([node.name for node in arg.chain()], ["a", "b", "c"])
        self.assertEqual(arg.sub.sub.text, "d")

    def testIgnorableTokensAreSkipped(self):
        arg = parse("tool - -- x")
        self.assertEqual(arg.name, "tool")
        self.assertEqual(arg.pairs, {})
        self.assertEqual(arg.text, "x")

    def testRepeatedSpacesKeepOriginalText(self):
        arg = parse("tool  a  b")
        self.assertEqual(arg.sub.name, "a")
        self.assertEqual(arg.sub.text, "b")
        self.assertEqual(arg.text, "a  b")

    def testBareWordAfterFlagsStartsSubcommand(self):
        arg = parse("tool --depth=2 orphan more")
        self.assertEqual(arg.pairs, {"depth": ["2"]})
        self.assertEqual(arg.sub.name, "orphan")
        self.assertEqual(arg.sub.text, "more")


class TestFlags(TestCase):
    """Flag shapes and their values."""

    def testBooleanFlag(self):
        self.assertEqual(parse("tool -h").pairs["h"], ["true"])

    def testCommaSeparatedValues(self):
        arg = parse("tool --k=v1,v2")
        self.assertEqual(arg.pairs["k"], ["v1", "v2"])
        self.assertIsNone(arg.sub)

    def testClosedList(self):
        self.assertEqual(parse("tool --dirs=[a,b,c]").pairs["dirs"], ["a", "b", "c"])

    def testListWithSpaces(self):
        self.assertEqual(parse("p --dirs=[drum flag kick]").pairs["dirs"], ["drum", "flag", "kick"])

    def testUnclosedListRunsToEnd(self):
        arg = parse("tool --k=[ a b")
        self.assertEqual(arg.pairs["k"], ["a", "b"])
        self.assertIsNone(arg.sub)

    def testSpanningListStopsAtFlag(self):
        arg = parse("tool --k=[ a -v")
        self.assertEqual(arg.pairs, {"k": ["a"], "v": ["true"]})

    def testOpenListBeforeFlagKeepsEmptyItem(self):
        self.assertEqual(parse("tool --k=[ -v").pairs, {"k": [""], "v": ["true"]})

    def testFlagShapedCloserEndsList(self):
        self.assertEqual(parse("tool --k=[ a --b]").pairs["k"], ["a", "--b"])

    def testValueKeepsLaterEquals(self):
        self.assertEqual(parse("tool --url=a=b").pairs["url"], ["a=b"])

    def testAllLeadingDashesStripped(self):
        self.assertEqual(parse("tool ---deep=1").pairs, {"deep": ["1"]})

    def testLaterFlagReplacesEarlier(self):
        self.assertEqual(parse("tool --a=1 --a=2").pairs["a"], ["2"])

    def testKeylessPairIsDiscarded(self):
        arg = parse("tool -=x")
        self.assertEqual(arg.pairs, {})
        self.assertIsNone(arg.sub)

    def testFlagsWithoutNameAreAccepted(self):
        arg = parse("--x=1")
        self.assertEqual(arg.name, "")
        self.assertEqual(arg.pairs, {"x": ["1"]})


class TestFaults(TestCase):
    """Parser faults and the partially built node they carry."""

    def testEmptyInput(self):
        with self.assertRaises(EmptyInputError) as caught:
            parse("")
        self.assertEqual(caught.exception.code, FaultCode.EMPTY_INPUT)
        self.assertEqual(caught.exception.node, ParsedArg())

    def testNonStringInput(self):
        with self.assertRaises(TypeError):
            parse(None)  # type: ignore[arg-type]

    def testMisplacedFlags(self):
        with self.assertRaises(MisplacedFlagsError) as caught:
            parse("--x=1 name")
        self.assertEqual(caught.exception.code, FaultCode.MISPLACED_FLAGS)
        self.assertEqual(caught.exception.node.name, "")
        self.assertEqual(caught.exception.node.pairs, {"x": ["1"]})

    def testMissingFlagValue(self):
        with self.assertRaises(MissingFlagValueError) as caught:
            parse("tool --name=")
        self.assertEqual(caught.exception.node.name, "tool")

    def testEmptyListKeepsEmptyItem(self):
        self.assertEqual(parse("tool --k=[]").pairs["k"], [""])
        self.assertEqual(parse("tool --k=[ ]").pairs["k"], [""])

    def testOpenListAtEndIsMissingValue(self):
        with self.assertRaises(MissingFlagValueError):
            parse("tool --k=[")

    def testNestedFaultReportsTopNode(self):
        with self.assertRaises(MissingFlagValueError) as caught:
            parse("tool --v sub --name= x")
        node = caught.exception.node
        self.assertEqual(node.name, "tool")
        self.assertEqual(node.pairs, {"v": ["true"]})
        self.assertIsNone(node.sub)

    def testFaultsShareParseError(self):
        for line in ("", "--x=1 name", "tool --k="):
            with self.subTest(line=line), self.assertRaises(ParseError):
                parse(line)


class TestParsedArg(TestCase):
    """ParsedArg helpers."""

    def testPairsNeverNone(self):
        self.assertEqual(ParsedArg("x").pairs, {})

    def testHasKvAndIsArg(self):
        arg = parse("tool -v")
        self.assertTrue(arg.has_kv("v"))
        self.assertFalse(arg.has_kv("x"))
        self.assertTrue(arg.is_arg())
        self.assertFalse(ParsedArg("tool").is_arg())

    def testEquality(self):
        self.assertEqual(parse("a --k=1 b c"), parse("a --k=1 b c"))
        self.assertNotEqual(parse("a b c"), parse("a b d"))

    def testRepr(self):
        self.assertTrue(repr(ParsedArg("add")).startswith("parsed-arg(name='add'"))


if __name__ == "__main__":
    unittest.main()
