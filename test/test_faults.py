"""
Faults module behavioral tests (codes, triggering and rendering).

Scope
- Validate stable fault codes and host normalization defaults.
- Validate trigger() in library mode (raise / warn) and shell mode (render + exit status).
- Validate copy.replace() support and CommandExit grouping.

Conventions
- Test method names follow CamelCase per project convention.
- Shell-mode output is captured with redirect_stderr.
"""

import copy
import io
import unittest
from contextlib import redirect_stderr
from unittest import TestCase

from mycli.faults import (
    FaultCode,
    CommandException,
    CommandWarning,
    CommandExit,
    UnknownSwitchError,
    MissingPositionalError,
    UnknownCommandWarning,
    trigger,
    getdoc,
)


class TestFaultCode(TestCase):
    """Behavioral tests for FaultCode."""

    def testStableValues(self):
        self.assertEqual(FaultCode.MALFORMED_TOKEN, 11111)
        self.assertEqual(FaultCode.UNKNOWN_SWITCH, 11112)
        self.assertEqual(FaultCode.OPTION_VALUE_REQUIRED, 11117)
        self.assertEqual(FaultCode.MISSING_POSITIONAL, 11125)
        self.assertEqual(FaultCode.UNKNOWN_COMMAND, 12101)

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_SWITCH.normalize(), "11112")

    def testGetdocWithoutHostDocs(self):
        self.assertIsNone(getdoc(FaultCode.UNKNOWN_SWITCH))

    def testGetdocRejectsNonCodes(self):
        with self.assertRaises(TypeError):
            getdoc(11112)


class TestTrigger(TestCase):
    """Behavioral tests for trigger() across runtime modes."""

    def testLibraryModeRaises(self):
        with self.assertRaises(UnknownSwitchError) as context:
            trigger(UnknownSwitchError("unknown option or flag '--x' at first position"), shell=False)
        self.assertEqual(str(context.exception), "unknown option or flag '--x' at first position")
        self.assertFalse(context.exception.options["shell"])

    def testLibraryModeWarns(self):
        with self.assertWarns(UnknownCommandWarning):
            trigger(UnknownCommandWarning("unknown command 'x' at first position was ignored"), shell=False)

    def testShellModeRendersAndExits(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as context:
            trigger(
                MissingPositionalError("missing positional <numbers>"),
                shell=True,
                code=FaultCode.MISSING_POSITIONAL,
                title="missing positional",
                hint="add a value",
            )
        self.assertEqual(context.exception.code, 1)
        output = stderr.getvalue()
        self.assertIn("missing positional <numbers>", output)
        self.assertIn("11125", output)
        self.assertIn("add a value", output)

    def testShellModeDeferredDoesNotExit(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            trigger(UnknownSwitchError("unknown option"), shell=True, deferred=True)
        self.assertIn("unknown option", stderr.getvalue())

    def testShellModeWarningRendersWithoutExit(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr):
            trigger(UnknownCommandWarning("unknown command"), shell=True, fancy=True)
        self.assertIn("unknown command", stderr.getvalue())

    def testTriggerRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("plain"))


class TestFaultObjects(TestCase):
    """Behavioral tests for fault construction, replacement and grouping."""

    def testReplaceMergesOptions(self):
        fault = UnknownSwitchError("message", hint="first", index=2)
        replaced = copy.replace(fault, hint="second")
        self.assertIsInstance(replaced, UnknownSwitchError)
        self.assertEqual(replaced.message, "message")
        self.assertEqual(replaced.options["hint"], "second")
        self.assertEqual(replaced.options["index"], 2)
        self.assertEqual(fault.options["hint"], "first")

    def testMessageMustBeString(self):
        with self.assertRaises(TypeError):
            UnknownSwitchError(1)

    def testHierarchy(self):
        self.assertTrue(issubclass(UnknownSwitchError, CommandException))
        self.assertTrue(issubclass(UnknownCommandWarning, CommandWarning))
        self.assertTrue(issubclass(UnknownCommandWarning, Warning))

    def testCommandExitGroupsErrors(self):
        errors = [UnknownSwitchError("a"), MissingPositionalError("b")]
        with self.assertRaises(CommandExit) as context:
            trigger(CommandExit(errors), shell=False)
        self.assertEqual(len(context.exception.exceptions), 2)
        self.assertIsInstance(context.exception, ExceptionGroup)

    def testCommandExitShellModeExits(self):
        stderr = io.StringIO()
        with redirect_stderr(stderr), self.assertRaises(SystemExit) as context:
            trigger(CommandExit([UnknownSwitchError("first fault")]), shell=True)
        self.assertEqual(context.exception.code, 1)
        self.assertIn("first fault", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
