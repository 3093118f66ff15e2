"""
Utils and settings behavioral tests.

Scope
- Unset sentinel: singleton, falsiness, representation, copying and pickling.
- coalesce, rename, mirror, ordinal and plural helpers.
- settings validation and scoped overrides.

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import pickle
import sys
import unittest
from unittest import TestCase

from bosun.settings import Settings, settings
from bosun.utils import Unset, UnsetType, coalesce, mirror, ordinal, plural, rename


class TestUnset(TestCase):
    """The Unset sentinel."""

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFalsyButDistinct(self):
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)
        self.assertEqual(repr(Unset), "Unset")

    def testFinal(self):
        with self.assertRaises(TypeError):
            type("Subclass", (UnsetType,), {})

    def testUnionWithTypes(self):
        self.assertIsInstance(Unset, str | UnsetType)
        self.assertIsInstance(Unset, Unset | None)


class TestHelpers(TestCase):
    """Small shared helpers."""

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, ";"), ";")
        self.assertIsNone(coalesce(None, ";"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertIsNone(coalesce(Unset))

    def testRenameDirect(self):
        def function():
            pass

        self.assertIs(rename(function, "renamed"), function)
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

    def testRenameDecorator(self):
        @rename("coerce[int]")
        def codec(token):
            return int(token)

        self.assertEqual(codec.__name__, "coerce[int]")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(5, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 5)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorFreezesContainers(self):
        class Holder:
            items = mirror("items")
            table = mirror("table")

            def __init__(self):
                self._items = [1, 2]
                self._table = {"a": 1}

        holder = Holder()
        self.assertEqual(holder.items, (1, 2))
        with self.assertRaises(TypeError):
            holder.table["b"] = 2
        with self.assertRaises(AttributeError):
            holder.items = ()

    def testOrdinal(self):
        cases = {
            1: "first",
            3: "third",
            10: "tenth",
            11: "11th",
            12: "12th",
            21: "21st",
            22: "22nd",
            23: "23rd",
            102: "102nd",
            111: "111th",
        }
        for number, expected in cases.items():
            with self.subTest(number=number):
                self.assertEqual(ordinal(number), expected)

    def testPlural(self):
        self.assertEqual(plural(1, "argument"), "1 argument")
        self.assertEqual(plural(0, "argument"), "0 arguments")
        self.assertEqual(plural(2, "argument"), "2 arguments")


class TestSettings(TestCase):
    """Process-wide coercion settings."""

    def testDefaults(self):
        fresh = Settings()
        self.assertEqual(fresh.delimiter, ",")
        self.assertIs(fresh.timeformat, Unset)

    def testValidation(self):
        fresh = Settings()
        with self.assertRaises(TypeError):
            fresh.delimiter = 5
        with self.assertRaises(ValueError):
            fresh.delimiter = ""
        with self.assertRaises(ValueError):
            fresh.timeformat = "  "

    def testOverrideRestoresOnError(self):
        with self.assertRaises(RuntimeError):
            with settings.override(delimiter="|"):
                self.assertEqual(settings.delimiter, "|")
                raise RuntimeError("stop")
        self.assertEqual(settings.delimiter, ",")

    def testOverrideRejectsUnknownNames(self):
        with self.assertRaises(AttributeError):
            with settings.override(separator=";"):
                pass

    def testModuleIsNotShadowed(self):
        import bosun
        import bosun.settings as module

        self.assertIs(module, sys.modules["bosun.settings"])
        self.assertIs(bosun.settings, module)
        self.assertIs(bosun.Settings, Settings)
        self.assertIsInstance(module.settings, Settings)



if __name__ == "__main__":
    unittest.main()
