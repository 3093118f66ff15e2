"""
Bosun values: type-directed coercion of command-line tokens.

What this module provides
- resolve(target): inspect a target type once and return a codec, a
  one-argument callable turning a token into a value of that type. Codecs are
  cached per target, so flags and commands resolve at registration time and
  never inspect types while parsing.
- coerce(token, target): resolve(target)(token).
- Variable[_T]: a typed, writable cell. It is both the storage a flag writes
  into and the pointer-like target shape (Variable[int] coerces to a new
  Variable holding an int).
- parse_bool / parse_duration: the literal grammars used by the scalar codecs.

Supported targets
- scalars: bool, int (and int subclasses), float, str, datetime.timedelta
  (duration grammar, e.g. "1h30m"); typing.Any/object mean str.
- pointer-like: Variable[T], T | None (Optional[T]).
- sequences: list[T], tuple[T, ...], set[T], frozenset[T], Sequence[T],
  MutableSequence[T], Set[T], MutableSet[T]; bare list/tuple/set/frozenset
  hold strings. Tokens split on settings.delimiter.
- mappings: dict[K, V], Mapping[K, V], MutableMapping[K, V], bare dict;
  tokens are JSON objects whose members are decoded recursively against V.
- records: urllib.parse.SplitResult / ParseResult, datetime.datetime
  (RFC 3339 unless settings.timeformat is set), and any class exposing a
  decode capability:
  • __fromjson__(cls, data): object-notation decode, receives the parsed JSON.
  • __fromtext__(cls, text): structured-text decode, receives the raw token.

Empty tokens
- bool → True (presence alone), int → 0, float → 0.0, str → "",
  timedelta → 0, sequences/mappings → empty, records → zero value (the class
  called without arguments) without invoking any capability.

Faults
- TypeCoercionError: the token does not parse as the target (token, target, cause).
- UnsupportedTypeError: the target kind cannot be built from text
  (complex, bytes, callables, queues, iterators, None, unknown typing forms).
- UnsupportedStructureCapabilityError: a record class without a capability.
"""
import asyncio
import collections.abc
import functools
import json
import queue
import re
import types
import typing
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from urllib.parse import ParseResult, SplitResult, urlparse, urlsplit

from .faults import *
from .settings import settings
from .utils import *


class Variable[_T]:
    """
    A typed, writable cell.

        verbose = Variable(bool, False)
        flags.register(verbose, "verbose", "v")
        flags.apply(["-v"])
        verbose.value  # True

    An unset cell reads as None.
    """
    __slots__ = ("_type", "_value")

    type = mirror("type")

    def __init__(self, type, /, value=None):
        self._type = type
        self._value = value

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, value):
        self._value = value

    def get(self):
        return self._value

    def set(self, value, /):
        self._value = value

    def __eq__(self, other):
        if not isinstance(other, Variable):
            return NotImplemented
        return self._type == other._type and self._value == other._value

    __hash__ = None

    def __rich_repr__(self):
        yield "type", typename(self._type)
        yield "value", self._value

    def __repr__(self):
        return "variable(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


def typename(target, /):
    """Short, readable name of a target type ("int", "list[int]", "int | None")."""
    if isinstance(target, type) and not isinstance(target, types.GenericAlias):
        return target.__qualname__
    return repr(target).replace("typing.", "").replace("collections.abc.", "")


_TRUTHS = frozenset(("1", "t", "T", "TRUE", "true", "True"))
_FALSITIES = frozenset(("0", "f", "F", "FALSE", "false", "False"))


def parse_bool(token, /):
    """
    Parse a boolean literal.

    Accepted: 1 t T TRUE true True / 0 f F FALSE false False.
    Anything else raises ValueError.
    """
    if token in _TRUTHS:
        return True
    if token in _FALSITIES:
        return False
    raise ValueError(f"invalid boolean literal {token!r}")


# microseconds per unit; timedelta cannot hold nanoseconds, they are rounded
_DURATION_UNITS = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),  # U+00B5 micro sign
    "μs": Decimal(1),  # U+03BC greek mu
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}
_DURATION_SEGMENT = re.compile(r"([0-9]+\.?[0-9]*|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(token, /):
    """
    Parse a duration such as "300ms", "-1.5h" or "2h45m".

    A duration is an optional sign followed by one or more decimal numbers,
    each with a unit suffix (ns, us/µs, ms, s, m, h). "0" alone is allowed.
    Raises ValueError on anything else.
    """
    body = token
    sign = 1
    if body[:1] in ("+", "-"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {token!r}")

    total = Decimal(0)
    index = 0
    while index < len(body):
        if not (match := _DURATION_SEGMENT.match(body, index)):
            raise ValueError(f"invalid duration {token!r}")
        total += Decimal(match[1]) * _DURATION_UNITS[match[2]]
        index = match.end()
    return timedelta(microseconds=int((sign * total).to_integral_value()))


def _codec(target, /):
    """Decorator: name a codec after its target and remember the target on it."""
    def wrapper(function):
        rename(function, f"coerce[{typename(target)}]")
        function.__target__ = target
        return function
    return wrapper


def _failure(token, target, cause=None, /, **options):
    return TypeCoercionError(
        "%r could not be read as %s" % (token, typename(target)) + (f": {cause}" if cause else ""),
        token=token,
        target=target,
        cause=cause,
        hint=options.pop("hint", f"pass a value of type {typename(target)}"),
        **options,
    )


def _scalar(target, parse, zero, /):
    # zero() builds the value of an empty token
    @_codec(target)
    def codec(token):
        try:
            return parse(token) if token else zero()
        except (ValueError, TypeError, ArithmeticError) as exception:
            raise _failure(token, target, exception) from exception
    return codec


def _parse_int(target):
    def parse(token):
        if not re.fullmatch(r"[+-]?[0-9]+", token):
            raise ValueError("not a base-10 integer")
        return target(int(token))
    return parse


def _parse_float(target):
    def parse(token):
        if token != token.strip() or "_" in token:
            raise ValueError("not a decimal number")
        return target(float(token))
    return parse


# RFC 3339 date-time: full date, "T", full time with seconds, mandatory offset
_TIMESTAMP = re.compile(r"(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(\.\d+)?(Z|[+-]\d{2}:\d{2})")


def _parse_datetime(token):
    if settings.timeformat is not Unset:
        return datetime.strptime(token, settings.timeformat)
    if not (match := _TIMESTAMP.fullmatch(token)):
        raise ValueError("not an RFC 3339 timestamp (e.g. 2006-01-02T15:04:05Z)")
    stamp, fraction, offset = match.groups()
    # datetime holds microseconds, longer fractions are truncated
    fraction = (fraction or "")[:7]
    return datetime.fromisoformat(stamp + fraction + ("+00:00" if offset == "Z" else offset))


_SEQUENCES = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}

_MAPPINGS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)

# kinds that never come from a token, unless the class opts in with a capability
_UNSUPPORTED = (
    complex,
    bytes,
    bytearray,
    memoryview,
    types.NoneType,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    functools.partial,
    queue.Queue,
    queue.SimpleQueue,
    asyncio.Queue,
    collections.abc.Callable,
    collections.abc.Iterator,
    collections.abc.AsyncIterator,
    collections.abc.Awaitable,
)


def _unsupported(target, reason="", /):
    return UnsupportedTypeError(
        "%s types are not supported as command line values%s" % (typename(target), reason),
        target=target,
        hint="use a scalar, a sequence, a mapping or a class with __fromtext__/__fromjson__",
    )


def _sequence(target, container, element, /):
    codec = resolve(element)

    @_codec(target)
    def sequence(token):
        if not token:
            return container()
        # the first failing element aborts the whole sequence with its own fault
        return container(codec(item) for item in token.split(settings.delimiter))
    return sequence


def _member(value, target, token, /):
    """
    Decode one parsed JSON member into the target type.

    Strings go through the target's codec; arrays and objects are decoded
    member by member against the type arguments; null is only accepted by
    optional targets; any other value must already be an instance.
    """
    if target is typing.Any or target is object:
        return value

    origin = typing.get_origin(target)
    arguments = typing.get_args(target)

    if origin is typing.Annotated:
        return _member(value, arguments[0], token)
    if origin in (typing.Union, types.UnionType):
        members = [argument for argument in arguments if argument is not types.NoneType]
        if value is None and len(members) < len(arguments):
            return None
        # resolve() only admits optional unions, so there is one member left
        return _member(value, members[0], token)
    if origin is Variable or target is Variable:
        inner = arguments[0] if arguments else str
        return Variable(inner, _member(value, inner, token))

    if isinstance(value, str):
        return resolve(target)(value)

    if callable(hook := getattr(target, "__fromjson__", None)):
        try:
            return hook(value)
        except (TypeCoercionError, AssertionError):
            raise
        except Exception as exception:
            raise _failure(token, target, exception) from exception

    if origin in _SEQUENCES or target in _SEQUENCES:
        if not isinstance(value, list):
            raise _failure(token, target, f"member {value!r} is not a JSON array")
        element = arguments[0] if arguments else str
        return _SEQUENCES[origin or target](_member(item, element, token) for item in value)

    if origin in _MAPPINGS or target is dict:
        if not isinstance(value, dict):
            raise _failure(token, target, f"member {value!r} is not a JSON object")
        key, inner = arguments if len(arguments) == 2 else (str, typing.Any)
        keys = resolve(key)
        return {keys(name): _member(item, inner, token) for name, item in value.items()}

    if target is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(target, type) and isinstance(value, target) and not (isinstance(value, bool) and target is not bool and issubclass(target, int)):
        return value
    raise _failure(token, target, f"member {value!r} is not {typename(target)}")


def _mapping(target, key, value, /):
    keys = resolve(key)
    if value is not typing.Any and value is not object:
        resolve(value)  # unsupported member types fail at resolution, not on use

    @_codec(target)
    def mapping(token):
        if not token:
            return {}
        try:
            data = json.loads(token)
        except json.JSONDecodeError as exception:
            raise _failure(token, target, exception, hint="pass a JSON object, e.g. '{\"key\": \"value\"}'") from exception
        if not isinstance(data, dict):
            raise _failure(token, target, "not a JSON object", hint="pass a JSON object, e.g. '{\"key\": \"value\"}'")
        return {keys(name): _member(member, value, token) for name, member in data.items()}
    return mapping


def _record(target, /):
    """
    Codec for a record class: the built-in URI/timestamp cases, then the
    object-notation and structured-text capabilities.
    """
    if target in (SplitResult, ParseResult):
        split = urlsplit if target is SplitResult else urlparse
        return _scalar(target, split, functools.partial(split, ""))

    if target is datetime:
        return _scalar(target, _parse_datetime, functools.partial(datetime, 1, 1, 1, tzinfo=timezone.utc))

    fromjson = getattr(target, "__fromjson__", None)
    fromtext = getattr(target, "__fromtext__", None)

    if fromjson is None and fromtext is None:
        if issubclass(target, _UNSUPPORTED):
            raise _unsupported(target)
        raise UnsupportedStructureCapabilityError(
            "%s cannot be read from the command line: it supports neither "
            "__fromjson__ nor __fromtext__" % typename(target),
            target=target,
            hint="give %s a __fromtext__(cls, text) or __fromjson__(cls, data) classmethod" % typename(target),
        )

    @_codec(target)
    def record(token):
        if not token:
            try:
                return target()
            except TypeError as exception:
                raise _failure(token, target, f"{typename(target)} has no zero value") from exception
        try:
            if fromjson is not None:
                assert callable(fromjson), f"{typename(target)}.__fromjson__ is not callable"
                return fromjson(json.loads(token))
            assert callable(fromtext), f"{typename(target)}.__fromtext__ is not callable"
            return fromtext(token)
        except (TypeCoercionError, AssertionError):
            raise
        except Exception as exception:
            raise _failure(token, target, exception) from exception
    return record


@functools.cache
def _resolve(target):
    if target is None or target is types.NoneType:
        raise _unsupported(types.NoneType, ": a target type is required")

    origin = typing.get_origin(target)
    arguments = typing.get_args(target)

    # pointer-like: a fresh Variable, or the plain value for Optional[T]
    if origin is Variable or target is Variable:
        inner = arguments[0] if arguments else str
        pointee = resolve(inner)

        @_codec(target)
        def pointer(token):
            return Variable(inner, pointee(token))
        return pointer

    if origin in (typing.Union, types.UnionType):
        members = [argument for argument in arguments if argument is not types.NoneType]
        if len(members) != 1:
            raise _unsupported(target, ": only optional unions (T | None) are supported")
        pointee = resolve(members[0])

        @_codec(target)
        def optional(token):
            return pointee(token)
        return optional

    if origin is typing.Annotated:
        return resolve(arguments[0])

    if origin in _SEQUENCES or target in _SEQUENCES:
        container = _SEQUENCES[origin or target]
        if origin is tuple and arguments and not (len(arguments) == 2 and arguments[1] is Ellipsis):
            raise _unsupported(target, ": only homogeneous tuples (tuple[T, ...]) are supported")
        return _sequence(target, container, arguments[0] if arguments else str)

    if origin in _MAPPINGS or target is dict:
        key, value = arguments if len(arguments) == 2 else (str, typing.Any)
        return _mapping(target, key, value)

    if origin is not None or not isinstance(target, type):
        raise _unsupported(target)

    if target is typing.Any or target is object or issubclass(target, str):
        text = target if issubclass(target, str) else str
        return _scalar(target, text, text)

    if issubclass(target, bool):
        return _scalar(target, parse_bool, lambda: True)

    if target is timedelta:
        return _scalar(target, parse_duration, timedelta)

    if issubclass(target, int):
        return _scalar(target, _parse_int(target), target)

    if issubclass(target, float):
        return _scalar(target, _parse_float(target), target)

    return _record(target)


def resolve(target, /):
    """
    Return the codec for a target type (cached per target).

    Raises UnsupportedTypeError / UnsupportedStructureCapabilityError when the
    target cannot be built from a token; the failure is not cached.
    """
    try:
        hash(target)
    except TypeError:
        raise _unsupported(type(target), ": expected a type, got an instance") from None
    return _resolve(target)


def coerce(token, target, /):
    """
    Convert a raw token into a value of the target type.

        coerce("1,2,3", list[int])      -> [1, 2, 3]
        coerce("", bool)                -> True
        coerce("1h30m", timedelta)      -> timedelta(seconds=5400)
        coerce('{"a": 1}', dict[str, int]) -> {"a": 1}
    """
    if not isinstance(token, str):
        raise TypeError("coerce() first argument must be a string")
    return resolve(target)(token)


__all__ = (
    "Variable",
    "coerce",
    "resolve",
    "typename",
    "parse_bool",
    "parse_duration",
)
