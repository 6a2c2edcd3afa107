"""
Arguments module behavioral tests.

Scope
- Validate public specs (Positional, Option, Flag): construction, normalization, defaults.
- Validate validators (patterns and predicates), accumulators and negated flags.
- Validate the flag() decorator (single assignment, callback forwarding) and collect().

Conventions
- Test method names follow CamelCase per project convention.
- Never pass explicit None for metadata parameters; omit instead.
"""

import re
import unittest
from unittest import TestCase

from mycli import Positional, Option, Flag, flag, collect


class TestPositional(TestCase):
    """Behavioral tests for Positional specifications."""

    def testPositionalGroupPluralDefault(self):
        self.assertEqual(Positional().group, "positionals")

    def testPositionalGroupExplicitNonEmpty(self):
        self.assertEqual(Positional("FILE", group="operands").group, "operands")

    def testPositionalGroupEmptyRejected(self):
        with self.assertRaises(ValueError):
            Positional("FILE", group="  ")

    def testPositionalDescrDefaultsToNone(self):
        self.assertIsNone(Positional("FILE").descr)

    def testPositionalDescrExplicitNoneRejected(self):
        with self.assertRaises(TypeError):
            Positional("FILE", descr=None)

    def testPositionalMetavarMustBeNonEmpty(self):
        with self.assertRaises(ValueError):
            Positional("  ")

    def testPositionalArities(self):
        self.assertTrue(Positional().required)
        self.assertFalse(Positional().variadic)
        self.assertFalse(Positional(nargs="?").required)
        self.assertTrue(Positional(nargs="+").required)
        self.assertTrue(Positional(nargs="+").variadic)
        self.assertFalse(Positional(nargs="*").required)
        self.assertTrue(Positional(nargs="*").variadic)

    def testPositionalRejectsUnknownArity(self):
        with self.assertRaises(ValueError):
            Positional(nargs="x")
        with self.assertRaises(TypeError):
            Positional(nargs=2)

    def testPositionalTypeMustBeCallable(self):
        with self.assertRaises(TypeError):
            Positional(type="float")

    def testPositionalIsImmutable(self):
        positional = Positional("FILE")
        with self.assertRaises(AttributeError):
            positional.metavar = "OTHER"


class TestOption(TestCase):
    """Behavioral tests for Option specifications."""

    def testOptionKeepsNameOrder(self):
        self.assertEqual(Option("-u", "--username").names, ("-u", "--username"))

    def testOptionDefaults(self):
        option = Option("-u", "--username")
        self.assertIsNone(option.nargs)
        self.assertIsNone(option.default)
        self.assertIs(option.const, True)
        self.assertIsNone(option.validator)
        self.assertIsNone(option.accumulator)
        self.assertEqual(option.group, "options")

    def testOptionRequiresNames(self):
        with self.assertRaises(TypeError):
            Option()

    def testOptionNamesMustBeShellStyle(self):
        for name in ("user", "-", "--", "-1", "--user_name", "--user--name"):
            with self.subTest(name=name), self.assertRaises(ValueError):
                Option(name)

    def testOptionUnicodeNamesAccepted(self):
        self.assertEqual(Option("--été").names, ("--été",))

    def testOptionDuplicateNamesRejected(self):
        with self.assertRaises(ValueError):
            Option("-u", "-u")

    def testOptionOnlyOptionalArity(self):
        self.assertEqual(Option("-a", nargs="?").nargs, "?")
        with self.assertRaises(ValueError):
            Option("-a", nargs="+")

    def testOptionPatternValidatorUsesFullMatch(self):
        option = Option("-g", validator="male|female")
        self.assertTrue(option.accepts("male"))
        self.assertTrue(option.accepts("female"))
        self.assertFalse(option.accepts("males"))
        self.assertFalse(option.accepts("Male"))

    def testOptionCompiledValidatorHonorsFlags(self):
        option = Option("-g", validator=re.compile("male|female", re.IGNORECASE))
        self.assertTrue(option.accepts("MALE"))
        self.assertFalse(option.accepts("banana"))

    def testOptionPredicateValidator(self):
        option = Option("-n", validator=str.isdigit)
        self.assertTrue(option.accepts("42"))
        self.assertFalse(option.accepts("4x2"))

    def testOptionWithoutValidatorAcceptsAnything(self):
        self.assertTrue(Option("-n").accepts(""))

    def testOptionBadValidatorRejected(self):
        with self.assertRaises(TypeError):
            Option("-n", validator=1)
        with self.assertRaises(ValueError):
            Option("-n", validator="(")

    def testOptionAccumulatorMustBeCallable(self):
        with self.assertRaises(TypeError):
            Option("-i", accumulator=[])

    def testOptionRepr(self):
        self.assertTrue(repr(Option("-u")).startswith("option(names=('-u',)"))


class TestFlag(TestCase):
    """Behavioral tests for Flag specifications and the flag() decorator."""

    def testPlainFlagDefaultsToFalse(self):
        silent = Flag("-s", "--silent")
        self.assertFalse(silent.negated)
        self.assertIs(silent.default, False)
        self.assertEqual(silent.group, "flags")

    def testNegatedFlagDefaultsToTrue(self):
        output = Flag("--no-gender-output")
        self.assertTrue(output.negated)
        self.assertIs(output.default, True)

    def testMixedNegationRejected(self):
        with self.assertRaises(ValueError):
            Flag("--no-color", "-c")

    def testHelperCannotBeHidden(self):
        with self.assertRaises(TypeError):
            Flag("-h", helper=True, hidden=True)

    def testFlagWithoutCallbackIsNoop(self):
        self.assertIsNone(Flag("-s")())

    def testFlagDecoratorBindsCallback(self):
        calls = []

        @flag("-x", "--extra", descr="extra")
        def extra():
            calls.append("x")
            return "done"

        self.assertIsInstance(extra, Flag)
        self.assertEqual(extra.names, ("-x", "--extra"))
        self.assertEqual(extra(), "done")
        self.assertEqual(calls, ["x"])

    def testFlagDecoratorAppliesOnce(self):
        decorator = flag("-x")
        decorator(lambda: None)
        with self.assertRaises(TypeError):
            decorator(lambda: None)

    def testFlagDecoratorRejectsNonCallable(self):
        with self.assertRaises(TypeError):
            flag("-x")(1)


class TestCollect(TestCase):
    """Behavioral tests for the collect accumulator."""

    def testCollectAppendsInOrder(self):
        values = ()
        for value in ("a", "b", "c"):
            values = collect(value, values)
        self.assertEqual(values, ("a", "b", "c"))

    def testCollectDoesNotMutatePrevious(self):
        previous = ("a",)
        self.assertEqual(collect("b", previous), ("a", "b"))
        self.assertEqual(previous, ("a",))


if __name__ == "__main__":
    unittest.main()
