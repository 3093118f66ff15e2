"""
Faults module behavioral tests (codes, options, surfacing, rendering).

Scope
- FaultCode normalization through __main__.__codes__.
- CommandException defaults, options-as-attributes and __replace__.
- trigger(): raising outside shell mode, printing and exiting inside it.
- getdoc() lookups through __main__.__docs__.

Conventions
- Test method names follow CamelCase per project convention.
- Rendering goes to an in-memory rich Console.
"""
import io
import sys
import unittest
from unittest import TestCase
from unittest.mock import patch

from rich.console import Console

from bosun.faults import (
    ArityMismatchError,
    CommandException,
    FaultCode,
    TypeCoercionError,
    UnknownFlagError,
    UnsupportedStructureCapabilityError,
    UnsupportedTypeError,
    getdoc,
    trigger,
)


def _console():
    buffer = io.StringIO()
    return buffer, Console(file=buffer, width=120, color_system=None)


class TestFaultCodes(TestCase):
    """Stable identifiers and host remapping."""

    def testNormalizeDefaultsToNumber(self):
        self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "23101")

    def testNormalizeUsesHostCodes(self):
        main = sys.modules["__main__"]
        with patch.object(main, "__codes__", {FaultCode.UNKNOWN_FLAG: "E-FLAG"}, create=True):
            self.assertEqual(FaultCode.UNKNOWN_FLAG.normalize(), "E-FLAG")
            self.assertEqual(FaultCode.TYPE_COERCION.normalize(), "22101")


class TestCommandException(TestCase):
    """Fault construction and options."""

    def testSubclassDefaults(self):
        fault = UnknownFlagError("flag '-x' is not defined", token="-x")
        self.assertEqual(fault.code, FaultCode.UNKNOWN_FLAG)
        self.assertEqual(fault.title, "unknown flag")
        self.assertEqual(fault.token, "-x")
        self.assertEqual(str(fault), "flag '-x' is not defined")

    def testInheritedDefaultsAreOverridden(self):
        fault = UnsupportedStructureCapabilityError("no capability")
        self.assertEqual(fault.code, FaultCode.UNSUPPORTED_STRUCTURE_CAPABILITY)
        self.assertIsInstance(fault, UnsupportedTypeError)

    def testOptionsOverrideDefaults(self):
        fault = UnknownFlagError("x", title="custom")
        self.assertEqual(fault.title, "custom")

    def testOptionsAreReadOnly(self):
        fault = UnknownFlagError("x", token="-x")
        with self.assertRaises(TypeError):
            fault.options["token"] = "-y"

    def testMissingOptionRaisesAttributeError(self):
        with self.assertRaises(AttributeError):
            UnknownFlagError("x").position

    def testBuiltinBases(self):
        self.assertIsInstance(TypeCoercionError("x"), ValueError)
        self.assertIsInstance(UnknownFlagError("x"), LookupError)
        self.assertIsInstance(ArityMismatchError("x"), TypeError)
        self.assertIsInstance(ArityMismatchError("x"), CommandException)

    def testReplaceKeepsCause(self):
        cause = ValueError("inner")
        try:
            raise TypeCoercionError("outer", token="a") from cause
        except TypeCoercionError as exception:
            replaced = exception.__replace__(hint="try again")
        self.assertIsNot(replaced, exception)
        self.assertIs(replaced.__cause__, cause)
        self.assertEqual(replaced.token, "a")
        self.assertEqual(replaced.hint, "try again")
        self.assertEqual(replaced.message, "outer")


class TestTrigger(TestCase):
    """Surfacing faults."""

    def testRaisesOutsideShell(self):
        with self.assertRaises(UnknownFlagError) as context:
            trigger(UnknownFlagError("flag '-x' is not defined"), hint="check the flag")
        self.assertEqual(context.exception.hint, "check the flag")

    def testShellPrintsAndExits(self):
        buffer, console = _console()
        fault = UnknownFlagError("flag '-x' is not defined", hint="did you mean '-y'?")
        with self.assertRaises(SystemExit) as context:
            trigger(fault, shell=True, console=console, prog="tool")
        self.assertEqual(context.exception.code, 1)
        output = buffer.getvalue()
        self.assertIn("tool", output)
        self.assertIn("23101", output)
        self.assertIn("Unknown Flag", output)
        self.assertIn("flag '-x' is not defined", output)
        self.assertIn("did you mean '-y'?", output)

    def testFancyRendersPanel(self):
        buffer, console = _console()
        with self.assertRaises(SystemExit):
            trigger(UnknownFlagError("boom"), shell=True, fancy=True, console=console)
        self.assertIn("╭", buffer.getvalue())

    def testHostProgramName(self):
        buffer, console = _console()
        main = sys.modules["__main__"]
        with patch.object(main, "__prog__", "hosted", create=True):
            with self.assertRaises(SystemExit):
                trigger(UnknownFlagError("boom"), shell=True, console=console)
        self.assertIn("hosted", buffer.getvalue())

    def testHostDocsAreRendered(self):
        buffer, console = _console()
        main = sys.modules["__main__"]
        with patch.object(main, "__docs__", {FaultCode.UNKNOWN_FLAG: "flags are listed by 'help'"}, create=True):
            with self.assertRaises(SystemExit):
                trigger(UnknownFlagError("boom"), shell=True, console=console)
        self.assertIn("flags are listed by 'help'", buffer.getvalue())

    def testDocsOptionWinsOverHostDocs(self):
        buffer, console = _console()
        main = sys.modules["__main__"]
        with patch.object(main, "__docs__", {FaultCode.UNKNOWN_FLAG: "from the host"}, create=True):
            with self.assertRaises(SystemExit):
                trigger(UnknownFlagError("boom"), shell=True, console=console, docs="from the fault")
        output = buffer.getvalue()
        self.assertIn("from the fault", output)
        self.assertNotIn("from the host", output)

    def testRejectsPlainObjects(self):
        with self.assertRaises(TypeError):
            trigger(ValueError("not a fault"))


class TestGetdoc(TestCase):
    """Host-provided documentation."""

    def testRequiresFaultCode(self):
        with self.assertRaises(TypeError):
            getdoc(23101)

    def testMissingDocIsNone(self):
        main = sys.modules["__main__"]
        with patch.object(main, "__docs__", {}, create=True):
            self.assertIsNone(getdoc(FaultCode.UNKNOWN_FLAG))

    def testHostDocs(self):
        main = sys.modules["__main__"]
        with patch.object(main, "__docs__", {FaultCode.UNKNOWN_FLAG: "see --help"}, create=True):
            self.assertEqual(getdoc(FaultCode.UNKNOWN_FLAG), "see --help")


if __name__ == "__main__":
    unittest.main()
