"""
Bosun flags: bind named command-line flags to typed storage locations.

What this module provides
- Flags: a registry mapping flag names (with aliases) to locations. apply()
  walks a token list left to right, writes coerced flag values into their
  locations and keeps every other token, in order, as a leftover.
- Binding: one registration (names, location, resolved codec).
- Attribute: a location backed by an attribute of an existing object.
  (bosun.values.Variable is the other location kind: a standalone typed cell.)

Token grammar
- A token is a flag marker when it starts with "-" and is not exactly "-";
  "-name" and "--name" are the same flag.
- A known flag consumes the next token as its value unless that token is
  itself a marker; a missing value is coerced from "" (so "-v" alone sets a
  bool flag).
- A bool flag followed by a token that is not a boolean literal is set to
  True and the token is left for the next step ("-v file" keeps "file").
- Unknown markers are folded into the leftovers (permissive, the default) or
  raise UnknownFlagError (strict).

Leftovers accumulate across apply() calls and are exposed as three views:
parameters (everything, in arrival order), arguments (plain tokens only) and
unknowns (folded unknown flags only).

Example
    verbose, level = Variable(bool, False), Variable(int, 1)
    flags = Flags()
    flags.register(verbose, "verbose", "v")
    flags.register(level, "level")
    flags.apply(["build", "-v", "--level", "3", "-x", "main"])
    verbose.value, level.value  # True, 3
    flags.parameters            # ("build", "-x", "main")
    flags.arguments             # ("build", "main")
"""
import difflib
import json
import types
import typing
from collections.abc import Iterable, Mapping, Set

from .faults import *
from .settings import settings
from .utils import *
from .values import Variable, resolve, typename


class Attribute:
    """
    A location backed by an attribute of an existing object.

        @dataclass
        class Options:
            retries: int = 3

        options = Options()
        flags.register(Attribute(options, "retries"), "retries", "r")

    The target type comes from the class annotations when present, otherwise
    from the type of the attribute's current value; pass type= to override.
    """
    __slots__ = ("_instance", "_name", "_type")

    instance = property(lambda self: self._instance)
    name = mirror("name")
    type = mirror("type")

    def __init__(self, instance, name, /, type=Unset):
        if not isinstance(name, str) or not name.isidentifier():
            raise InvalidFlagTargetError(
                f"attribute name must be an identifier, got {name!r}",
                hint="pass the attribute name as a string, e.g. Attribute(options, 'retries')",
            )
        cls = instance.__class__
        if type is Unset:
            try:
                hints = typing.get_type_hints(cls)
            except (NameError, TypeError):
                hints = getattr(cls, "__annotations__", {})
            if name in hints:
                type = hints[name]
            elif hasattr(instance, name):
                type = getattr(instance, name).__class__
            else:
                raise InvalidFlagTargetError(
                    f"cannot tell the type of {cls.__qualname__}.{name}",
                    hint="annotate the attribute, give it a value or pass type=",
                )
        # frozen dataclasses and read-only properties cannot be written
        params = getattr(cls, "__dataclass_params__", None)
        descriptor = getattr(cls, name, None)
        if (params is not None and params.frozen) or (isinstance(descriptor, property) and descriptor.fset is None):
            raise InvalidFlagTargetError(
                f"{cls.__qualname__}.{name} is read-only",
                hint="bind a writable attribute or a Variable",
            )
        self._instance = instance
        self._name = name
        self._type = type

    def get(self):
        return getattr(self._instance, self._name, None)

    def set(self, value, /):
        setattr(self._instance, self._name, value)

    def __rich_repr__(self):
        yield "instance", self._instance.__class__.__qualname__
        yield "name", self._name
        yield "type", typename(self._type)

    def __repr__(self):
        return "attribute(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


def _boolean(target):
    # bool, bool | None and Variable[bool] all take the bare-flag recovery path
    origin = typing.get_origin(target)
    if origin in (typing.Union, types.UnionType, Variable, typing.Annotated):
        return any(_boolean(argument) for argument in typing.get_args(target)[:1 if origin is typing.Annotated else None])
    return isinstance(target, type) and issubclass(target, bool)


def _render(value):
    if isinstance(value, Variable):
        return _render(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        return json.dumps(dict(value), default=str)
    if isinstance(value, (list, tuple, Set)):
        return settings.delimiter.join(map(_render, value))
    return str(value)


class Binding:
    """
    One flag registration: alias names, the location written on apply() and
    the codec resolved for the location's type.
    """
    __slots__ = ("_names", "_location", "_codec", "_boolean")

    names = mirror("names")
    location = mirror("location")
    codec = mirror("codec")
    boolean = mirror("boolean")

    def __init__(self, names, location, codec, /):
        self._names = tuple(names)
        self._location = location
        self._codec = codec
        self._boolean = _boolean(location.type)

    @property
    def name(self):
        return self._names[0]

    @property
    def type(self):
        return self._location.type

    @property
    def value(self):
        return self._location.get()

    def assign(self, token, /):
        """Coerce a token with this binding's codec and store it; return the value."""
        value = self._codec(token)
        self._location.set(value)
        return value

    def __rich_repr__(self):
        yield "names", self._names
        yield "type", typename(self.type)
        yield "value", self.value

    def __repr__(self):
        return "binding(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


def _marker(token):
    return token.startswith("-") and token != "-"


class Flags:
    """
    Flag registry and token applier.

    Flags(strict=False) folds unknown flags into the leftovers;
    Flags(strict=True) raises UnknownFlagError on the first unknown flag
    (tokens before it stay applied).
    """

    strict = mirror("strict")

    def __init__(self, strict=False):
        if not isinstance(strict, bool):
            raise TypeError("Flags() 'strict' must be a boolean")
        self._strict = strict
        self._bindings = {}
        self._stream = []  # (token, folded-unknown-flag)

    def register(self, location, /, *names):
        """
        Bind one or more names to a location and return the new Binding.

        The location needs a `type` and get()/set(value) methods (Variable,
        Attribute). Nothing is registered unless every check passes.

        Raises
        - InvalidFlagNameError: no names, or a name that is not a non-empty
          string without a leading "-".
        - InvalidFlagTargetError: None or a non-writable location.
        - UnsupportedTypeError / UnsupportedStructureCapabilityError: the
          location's type cannot be coerced from a token.
        - DuplicateFlagNameError: a name is already bound or given twice.
        """
        if not names:
            raise InvalidFlagNameError(
                "a flag needs at least one name",
                hint="register(location, 'name', 'alias', ...)",
            )
        for position, name in enumerate(names, 1):
            if not isinstance(name, str) or not name or name.startswith("-") or name != name.strip():
                raise InvalidFlagNameError(
                    f"{ordinal(position)} flag name {name!r} is not valid",
                    name=name,
                    position=position,
                    hint="use non-empty names without leading dashes, e.g. 'verbose' or 'v'",
                )

        joined = " ".join(names)
        if location is None:
            raise InvalidFlagTargetError(
                f"flag '{joined}' has no target",
                hint="bind the flag to a Variable or an Attribute",
            )
        if (
            not hasattr(location, "type") or
            not callable(getattr(location, "get", None)) or
            not callable(getattr(location, "set", None))
        ):
            raise InvalidFlagTargetError(
                f"flag '{joined}' target {type(location).__qualname__!r} is not a writable location",
                hint="bind the flag to a Variable or an Attribute",
            )

        codec = resolve(location.type)

        seen = set()
        for name in names:
            if name in self._bindings or name in seen:
                raise DuplicateFlagNameError(
                    f"flag name '{name}' already exists",
                    name=name,
                    hint="pick another name or alias",
                )
            seen.add(name)

        binding = Binding(names, location, codec)
        for name in names:
            self._bindings[name] = binding
        return binding

    def apply(self, tokens, /):
        """
        Apply a token list: write flag values, keep everything else.

        Raises
        - UnknownFlagError: unknown flag in strict mode.
        - TypeCoercionError: a flag value does not parse as the flag's type
          (bool flags recover instead, see the module docstring).
        """
        if isinstance(tokens, str) or not isinstance(tokens, Iterable):
            raise TypeError("apply() argument must be an iterable of strings")
        tokens = list(tokens)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError("apply() argument must be an iterable of strings")

        index = 0
        while index < len(tokens):
            token = tokens[index]
            index += 1  # 1-based position of `token` from here on

            if not _marker(token):
                self._stream.append((token, False))
                continue

            name = token.lstrip("-")
            binding = self._bindings.get(name)
            if binding is None:
                if self._strict:
                    raise UnknownFlagError(
                        f"flag '{token}' at {ordinal(index)} position is not defined",
                        token=token,
                        position=index,
                        hint=self._suggest(name),
                    )
                self._stream.append((token, True))
                continue

            consumed = index < len(tokens) and not _marker(tokens[index])
            value = tokens[index] if consumed else ""
            try:
                binding.assign(value)
            except TypeCoercionError as exception:
                if not binding.boolean:
                    raise TypeCoercionError(
                        f"flag '{token}' at {ordinal(index)} position expects {typename(binding.type)}, got {value!r}",
                        flag=name,
                        token=value,
                        target=binding.type,
                        cause=exception.options.get("cause") or exception,
                        position=index,
                        hint=exception.options.get("hint"),
                    ) from exception
                # the lookahead is not a boolean literal: presence means true
                binding.assign("")
                continue
            if consumed:
                index += 1

    def _suggest(self, name):
        matches = difflib.get_close_matches(name, self._bindings, n=1)
        if matches:
            return f"did you mean '-{matches[0]}'?"
        return "run with a registered flag, or use permissive mode to pass it through"

    @property
    def parameters(self):
        """Every leftover token in arrival order (plain and folded unknown flags)."""
        return tuple(token for token, _ in self._stream)

    @property
    def arguments(self):
        """Plain positional leftovers only."""
        return tuple(token for token, folded in self._stream if not folded)

    @property
    def unknowns(self):
        """Folded unknown flag tokens only."""
        return tuple(token for token, folded in self._stream if folded)

    @property
    def names(self):
        return tuple(self._bindings)

    def binding(self, name, /):
        """Return the Binding for a name (KeyError when unknown)."""
        try:
            return self._bindings[name.lstrip("-")]
        except KeyError:
            raise KeyError(name) from None

    def bindings(self):
        """Distinct bindings in registration order."""
        return tuple({id(binding): binding for binding in self._bindings.values()}.values())

    def tokens(self):
        """
        Render the registry back into tokens: leftovers first, then
        "-name value" for each binding holding a value.
        """
        rendered = list(self.parameters)
        for binding in self.bindings():
            if (value := binding.value) is not None:
                rendered.extend((f"-{binding.name}", _render(value)))
        return rendered

    def clear(self):
        """Drop the leftovers; bindings and their values are kept."""
        self._stream.clear()

    def __contains__(self, name):
        return isinstance(name, str) and name.lstrip("-") in self._bindings

    def __getitem__(self, name):
        return self.binding(name).value

    def __iter__(self):
        return iter(self._bindings)

    def __len__(self):
        return len(self._bindings)

    def __rich_repr__(self):
        yield "strict", self._strict
        yield "bindings", self.bindings()
        yield "parameters", self.parameters

    def __repr__(self):
        return "flags(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


__all__ = (
    "Attribute",
    "Binding",
    "Flags",
)
