"""
Bosun faults (errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing
  error. Codes are grouped by domain so logs and searches stay predictable.
- CommandException: base type carrying a message plus immutable options
  (code, title, hint and per-fault context such as token, target or
  position). Every option is also readable as an attribute.
- trigger(): surface a fault, raising it or rendering it with rich and
  exiting (shell mode).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages where a position exists ("flag '-n' at second
  position", "third argument of command 'copy'").
- Short titles, one-sentence bodies, a single hint.
- Lowercased tone; styling configurable via __styles__ in __main__.

Integration
- The core raises faults directly; nothing is collected or retried.
- bosun.commands.invoke() catches CommandException at the program edge and
  calls trigger(fault, shell=..., fancy=..., colorful=...).
"""
import os.path
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, UnsetType

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - registration (211xx)
      • INVALID_FLAG_NAME, INVALID_FLAG_TARGET, DUPLICATE_FLAG_NAME
    - coercion (221xx)
      • TYPE_COERCION, UNSUPPORTED_TYPE, UNSUPPORTED_STRUCTURE_CAPABILITY
    - flags (231xx)
      • UNKNOWN_FLAG
    - routing (241xx)
      • UNKNOWN_COMMAND, MISSING_COMMAND
    - invocation (251xx)
      • MISCONFIGURED_COMMAND, ARITY_MISMATCH, ARGUMENT_COERCION

    spacing leaves room for future additions without reshuffling; normalize()
    lets the host remap codes to its own labels.
    """
    # --- registration errors (21xxx) ---
    INVALID_FLAG_NAME                = 21101
    INVALID_FLAG_TARGET              = 21102
    DUPLICATE_FLAG_NAME              = 21103

    # --- coercion errors (22xxx) ---
    TYPE_COERCION                    = 22101
    UNSUPPORTED_TYPE                 = 22102
    UNSUPPORTED_STRUCTURE_CAPABILITY = 22103

    # --- flag errors (23xxx) ---
    UNKNOWN_FLAG                     = 23101

    # --- routing errors (24xxx) ---
    UNKNOWN_COMMAND                  = 24101
    MISSING_COMMAND                  = 24102

    # --- invocation errors (25xxx) ---
    MISCONFIGURED_COMMAND            = 25101
    ARITY_MISMATCH                   = 25102
    ARGUMENT_COERCION                = 25103

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels; otherwise the numeric
        value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _progname():
    return getattr(__import__("__main__"), "__prog__", None) or os.path.basename(sys.argv[0]) or "bosun"


class CommandException(Exception):
    """
    base fault: a message plus read-only options.

    subclasses declare their default code and title as class keywords:

        class UnknownFlagError(CommandException, code=FaultCode.UNKNOWN_FLAG, title="unknown flag"): ...

    options given at raise time override those defaults. every option is
    readable as an attribute (fault.token, fault.position, ...).
    """
    __defaults__ = MappingProxyType({})

    def __init_subclass__(cls, /, code=Unset, title=Unset, **kwargs):
        super().__init_subclass__(**kwargs)
        defaults = dict(cls.__defaults__)
        if code is not Unset:
            defaults["code"] = code
        if title is not Unset:
            defaults["title"] = title
        cls.__defaults__ = MappingProxyType(defaults)

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | UnsetType)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType({**self.__defaults__, **options})

    def __getattr__(self, name):
        # only reached for names missing from the instance and class
        if name == "options" or name.startswith("__"):
            raise AttributeError(name)
        try:
            return self.options[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}") from None

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful", True)
        fancy = self.options.get("fancy", False)

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # green arrow
            "hint": "italic #9CE19C",  # green hint text
            "docs": "#737373",  # dim footer
        } | getattr(main, "__styles__", {}))

        def text(fragment, style):
            if not fragment:
                return Text("")
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), styles[style] if colorful else "")

        code = self.options.get("code")
        header = Text.assemble(
            "[ ",
            text(self.options.get("prog") or _progname(), "prog-name"),
            " — ",
            text(code.normalize() if isinstance(code, FaultCode) else code or "?", "code"),
            " | ",
            text(str(self.options.get("title", "error")).title(), "error-title"),
            " ]",
        )
        renders = [text(self.message or str(self), "error-message")]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))
        # an explicit docs option wins over the host application's __docs__
        if docs := self.options.get("docs") or (getdoc(code) if isinstance(code, FaultCode) else None):
            renders.append(text(docs, "docs"))

        if fancy:
            return Panel(Group(*renders), title=header, title_align="left")
        return Group(header, *renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self
        self.options.get("console", console).print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replaced = type(self)(self.message, **{**self.options, **overrides})
        replaced.__cause__ = self.__cause__
        replaced.__suppress_context__ = self.__suppress_context__
        return replaced.with_traceback(self.__traceback__)


# --- registration ---
class InvalidFlagNameError(
    CommandException, ValueError, code=FaultCode.INVALID_FLAG_NAME, title="invalid flag name"
): ...
class InvalidFlagTargetError(
    CommandException, TypeError, code=FaultCode.INVALID_FLAG_TARGET, title="invalid flag target"
): ...
class DuplicateFlagNameError(
    CommandException, ValueError, code=FaultCode.DUPLICATE_FLAG_NAME, title="duplicate flag name"
): ...

# --- coercion ---
class TypeCoercionError(
    CommandException, ValueError, code=FaultCode.TYPE_COERCION, title="invalid value"
): ...
class UnsupportedTypeError(
    CommandException, TypeError, code=FaultCode.UNSUPPORTED_TYPE, title="unsupported type"
): ...
class UnsupportedStructureCapabilityError(
    UnsupportedTypeError, code=FaultCode.UNSUPPORTED_STRUCTURE_CAPABILITY, title="undecodable type"
): ...

# --- flags ---
class UnknownFlagError(
    CommandException, LookupError, code=FaultCode.UNKNOWN_FLAG, title="unknown flag"
): ...

# --- routing ---
class UnknownCommandError(
    CommandException, LookupError, code=FaultCode.UNKNOWN_COMMAND, title="unknown command"
): ...

# --- invocation ---
class MisconfiguredCommandError(
    CommandException, TypeError, code=FaultCode.MISCONFIGURED_COMMAND, title="misconfigured command"
): ...
class ArityMismatchError(
    CommandException, TypeError, code=FaultCode.ARITY_MISMATCH, title="wrong number of arguments"
): ...
class ArgumentCoercionError(
    CommandException, ValueError, code=FaultCode.ARGUMENT_COERCION, title="invalid argument"
): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see CommandException).
    - options are merged into a copy of the fault via __replace__(**options).
    - shell=False (default): the fault is raised.
    - shell=True: the fault is printed on a rich console (stderr, or the
      'console' option) and the process exits with status 1.

    typical options
    - shell, fancy, colorful, console, prog, and any context the renderer
      may show (hint, docs).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode members and values are short documentation strings; None is
    returned when nothing is registered.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "InvalidFlagNameError",
    "InvalidFlagTargetError",
    "DuplicateFlagNameError",
    "TypeCoercionError",
    "UnsupportedTypeError",
    "UnsupportedStructureCapabilityError",
    "UnknownFlagError",
    "UnknownCommandError",
    "MisconfiguredCommandError",
    "ArityMismatchError",
    "ArgumentCoercionError",
    "FaultCode",
    "trigger",
    "getdoc",
)
