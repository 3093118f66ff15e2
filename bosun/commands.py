"""
Bosun commands: route the first positional token to a handler and call it
with the remaining tokens coerced to the handler's parameter types.

What this module provides
- Commands: a case-insensitive command table (a read-only Mapping from names
  to handlers) with run(tokens, flags=...).
- Entry: one command (names + handler) and its resolved call plan.
- Helper: a ready-made help command rendering the table with rich.
- invoke(commands, prompt): program-edge runner; normalizes a prompt and
  surfaces faults (raised, or printed and exit status 1 in shell mode).

Dispatch (Commands.run)
1. A leading token equal to sys.argv[0] is dropped.
2. Flags are applied first (a fresh permissive Flags when none is given);
   only the plain positional tokens of this call take part in dispatch,
   folded unknown flags stay in flags.parameters / flags.unknowns.
3. The first positional token names the command ("" when there is none);
   names match case-insensitively.
4. Handlers exposing __help__(commands, *tokens) are called through it.
5. Other handlers are called with the remaining tokens, after an arity check
   and per-parameter coercion (str when unannotated). Handler exceptions
   propagate unchanged and the handler's return value is returned.

Quick start
    from bosun import Commands, Flags, Helper, Variable, invoke

    commands = Commands(help=Helper())

    @commands.command("copy", "cp")
    def copy(source: str, target: str, retries: int = 1):
        "copy SOURCE to TARGET"
        ...

    if __name__ == "__main__":
        verbose = Variable(bool, False)
        flags = Flags()
        flags.register(verbose, "verbose", "v")
        invoke(commands, flags=flags, shell=True)
"""
import difflib
import functools
import inspect
import itertools
import shlex
import sys
from collections import namedtuple
from collections.abc import Iterable, Mapping
from inspect import Parameter

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from .faults import *
from .flags import Flags
from .utils import *
from .values import resolve, typename

Plan = namedtuple("Plan", ("minimum", "maximum", "parameters", "variadic"))
Plan.__doc__ = """
Resolved calling convention of a handler.

- minimum: required positional parameters.
- maximum: all positional parameters, None when *args absorbs extras.
- parameters: ((name, codec), ...) for the positional parameters, in order.
- variadic: (name, codec) for *args, or None.
"""


def _helpful(handler):
    return callable(getattr(handler, "__help__", None))


class Entry:
    """
    A command table entry: its names (first one is canonical) and handler.

    The call plan is resolved on first use and cached; a handler that cannot
    be called from the command line raises MisconfiguredCommandError then.
    """

    names = mirror("names")
    handler = mirror("handler")

    def __init__(self, names, handler, /):
        self._names = tuple(names)
        self._handler = handler

    @property
    def name(self):
        return self._names[0]

    @property
    def helpful(self):
        return _helpful(self._handler)

    def _misconfigured(self, reason, /, **options):
        return MisconfiguredCommandError(
            f"command '{self.name}' {reason}",
            command=self.name,
            hint=options.pop("hint", "fix the command table: handlers take positional parameters with supported annotations"),
            **options,
        )

    @functools.cached_property
    def plan(self):
        handler = self._handler
        if handler is None:
            raise self._misconfigured("is mapped to nothing")
        if not callable(handler):
            raise self._misconfigured(f"is mapped to a {type(handler).__qualname__!r} object, which is not callable")
        try:
            signature = inspect.signature(handler, eval_str=True)
        except (ValueError, TypeError, NameError) as exception:
            raise self._misconfigured(f"has a handler whose signature cannot be read: {exception}") from exception

        minimum = 0
        parameters = []
        variadic = None
        for parameter in signature.parameters.values():
            if parameter.kind is Parameter.VAR_KEYWORD:
                continue
            if parameter.kind is Parameter.KEYWORD_ONLY:
                if parameter.default is Parameter.empty:
                    raise self._misconfigured(
                        f"has a keyword-only parameter {parameter.name!r} without a default",
                        hint="give keyword-only parameters a default, or make them positional",
                    )
                continue

            target = str if parameter.annotation is Parameter.empty else parameter.annotation
            try:
                codec = resolve(target)
            except UnsupportedTypeError as exception:
                raise self._misconfigured(
                    f"parameter {parameter.name!r} has type {typename(target)}, which cannot be read from the command line",
                    parameter=parameter.name,
                    target=target,
                ) from exception

            if parameter.kind is Parameter.VAR_POSITIONAL:
                variadic = (parameter.name, codec)
                continue
            parameters.append((parameter.name, codec))
            if parameter.default is Parameter.empty:
                minimum += 1

        return Plan(minimum, None if variadic else len(parameters), tuple(parameters), variadic)

    def usage(self):
        """One-line usage ("copy SOURCE TARGET [RETRIES]"); names only for help commands."""
        if self.helpful:
            return f"{self.name} [COMMAND]"
        plan = self.plan
        words = [self.name]
        for index, (name, _) in enumerate(plan.parameters):
            words.append(name.upper() if index < plan.minimum else f"[{name.upper()}]")
        if plan.variadic:
            words.append(f"[{plan.variadic[0].upper()}...]")
        return " ".join(words)

    def expected(self):
        plan = self.plan
        if plan.maximum is None:
            return f"at least {plural(plan.minimum, 'argument')}"
        if plan.minimum == plan.maximum:
            return plural(plan.minimum, "argument")
        return f"{plan.minimum} to {plan.maximum} arguments"

    def call(self, commands, tokens, /):
        """
        Call the handler with positional tokens.

        Help-capable handlers receive (commands, *tokens) through __help__.
        Otherwise arity is checked before any coercion, every token is
        coerced before the handler runs, and the handler's return value is
        returned.
        """
        if self.helpful:
            return self._handler.__help__(commands, *tokens)

        plan = self.plan
        given = len(tokens)
        if given < plan.minimum or (plan.maximum is not None and given > plan.maximum):
            raise ArityMismatchError(
                f"command '{self.name}' expects {self.expected()}, got {given}",
                command=self.name,
                expected=self.expected(),
                minimum=plan.minimum,
                maximum=plan.maximum,
                given=given,
                hint=f"usage: {self.usage()}",
            )

        arguments = []
        for position, token in enumerate(tokens, 1):
            name, codec = plan.parameters[position - 1] if position <= len(plan.parameters) else plan.variadic
            try:
                arguments.append(codec(token))
            except TypeCoercionError as exception:
                raise ArgumentCoercionError(
                    f"{ordinal(position)} argument of command '{self.name}' ({name}) "
                    f"expects {typename(codec.__target__)}, got {token!r}",
                    command=self.name,
                    parameter=name,
                    position=position,
                    token=token,
                    cause=exception,
                    hint=exception.options.get("hint"),
                ) from exception
        return self._handler(*arguments)

    def __rich_repr__(self):
        yield "names", self._names
        yield "handler", self._handler

    def __repr__(self):
        return "entry(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


class Commands(Mapping):
    """
    Case-insensitive command table.

        commands = Commands({"build": build}, test=run_tests)
        commands.add(deploy, "deploy", "ship")

        @commands.command("clean")
        def clean(): ...

    Lookups casefold the name, so "Build", "build" and "BUILD" reach the same
    handler. A "" entry is the default command used when no name is given.
    """

    def __init__(self, mapping=(), /, **handlers):
        self._entries = {}  # casefolded name -> Entry
        items = mapping.items() if isinstance(mapping, Mapping) else mapping
        for name, handler in itertools.chain(items, handlers.items()):
            self.add(handler, name)

    def add(self, handler, /, *names):
        """
        Register a handler under one or more names and return the handler.

        Without names the handler's __name__ is used. Names are matched
        case-insensitively; a clash with an existing name raises ValueError
        and nothing is registered.
        """
        if not names:
            try:
                names = (handler.__name__,)
            except AttributeError:
                raise TypeError("add() requires a name for handlers without __name__") from None
        folded = []
        for name in names:
            if not isinstance(name, str):
                raise TypeError(f"command names must be strings, not {type(name).__name__!r}")
            key = name.casefold()
            if key in self._entries or key in folded:
                raise ValueError(f"command name {name!r} clashes with an existing command name")
            folded.append(key)
        entry = Entry(names, handler)
        for key in folded:
            self._entries[key] = entry
        return handler

    def command(self, *names):
        """Decorator form of add()."""
        @rename("command")
        def wrapper(handler, /):
            return self.add(handler, *names)
        return wrapper

    def resolve(self, name, /):
        """
        Return the Entry for a command name (case-insensitive).

        Raises UnknownCommandError: "no command given" for "" (unless a ""
        entry exists), "not a known command" otherwise.
        """
        if not isinstance(name, str):
            raise TypeError("resolve() argument must be a string")
        try:
            return self._entries[name.casefold()]
        except KeyError:
            pass
        if not name:
            raise UnknownCommandError(
                "no command given",
                code=FaultCode.MISSING_COMMAND,
                title="missing command",
                input=name,
                absent=True,
                hint=f"specify a command: {' | '.join(self._visible()) or '<command>'}",
            )
        matches = difflib.get_close_matches(name.casefold(), self._entries, n=1)
        raise UnknownCommandError(
            f"'{name}' is not a known command",
            input=name,
            absent=False,
            hint=f"did you mean '{self._entries[matches[0]].name}'?" if matches else "run 'help' to list the commands",
        )

    def _visible(self):
        return [entry.name for entry in self.entries() if entry.name]

    def entries(self):
        """Distinct entries in registration order."""
        return tuple({id(entry): entry for entry in self._entries.values()}.values())

    def run(self, tokens, /, flags=Unset):
        """
        Apply flags, route the first positional token and call its handler.

        Returns the handler's return value. Faults (UnknownFlagError,
        TypeCoercionError, UnknownCommandError, MisconfiguredCommandError,
        ArityMismatchError, ArgumentCoercionError) are raised to the caller;
        the handler's own exceptions propagate unchanged.
        """
        if isinstance(tokens, str) or not isinstance(tokens, Iterable):
            raise TypeError("run() argument must be an iterable of strings")
        tokens = list(tokens)
        if tokens and sys.argv and tokens[0] == sys.argv[0]:
            del tokens[0]

        flags = Flags() if flags is Unset else flags
        if not isinstance(flags, Flags):
            raise TypeError("run() 'flags' must be a Flags instance")

        # leftovers from earlier apply() calls do not take part in dispatch
        start = len(flags.arguments)
        flags.apply(tokens)
        arguments = list(flags.arguments[start:])

        name = arguments.pop(0) if arguments else ""
        return self.resolve(name).call(self, arguments)

    def __getitem__(self, name):
        if not isinstance(name, str):
            raise KeyError(name)
        try:
            return self._entries[name.casefold()].handler
        except KeyError:
            raise KeyError(name) from None

    def __contains__(self, name):
        return isinstance(name, str) and name.casefold() in self._entries

    def __iter__(self):
        for entry in self.entries():
            yield from entry.names

    def __len__(self):
        return len(self._entries)

    def __rich_repr__(self):
        yield "entries", self.entries()

    def __repr__(self):
        return "commands(%s)" % ", ".join("%s=%r" % pair for pair in self.__rich_repr__())


class Helper:
    """
    Help command.

        commands = Commands(help=Helper())
        commands.run(["help"])          # table of commands
        commands.run(["help", "copy"])  # usage and description of 'copy'

    Output goes to a rich console (stdout when none or None is given).
    """

    def __init__(self, *, console=Unset, colorful=True):
        self._console = coalesce(console, None)
        self._colorful = colorful

    @property
    def console(self):
        if self._console is None:
            self._console = Console()
        return self._console

    def _text(self, fragment, style):
        return Text(fragment, style if self._colorful else "")

    def table(self, commands, /):
        table = Table(
            "command", "description",
            box=ROUNDED,
            header_style="bold #FF4DA6" if self._colorful else "",
        )
        for entry in commands.entries():
            if not entry.name:
                continue
            table.add_row(
                self._text(", ".join(entry.names), "bold #00E5FF"),
                self._text(_summary(entry.handler) or "no description", "#C8C8D0"),
            )
        return table

    def usage(self, entry, /):
        renders = [Text.assemble(self._text("usage: ", "bold #E6E6F0"), self._text(entry.usage(), "#00E5FF"))]
        if len(entry.names) > 1:
            renders.append(self._text("aliases: " + ", ".join(entry.names[1:]), "#737373"))
        if description := inspect.getdoc(entry.handler):
            renders.append(self._text(description, "#C8C8D0"))
        return Group(*renders)

    def __help__(self, commands, *tokens):
        if tokens:
            self.console.print(self.usage(commands.resolve(tokens[0])))
        else:
            self.console.print(self.table(commands))


def _summary(handler):
    description = inspect.getdoc(handler) if handler is not None else None
    return description.strip().splitlines()[0] if description and description.strip() else ""


def invoke(commands, prompt=Unset, /, *, flags=Unset, shell=False, fancy=False, colorful=True):
    """
    Program-edge runner for a command table.

    Parameters
    - commands: a Commands table (a plain mapping is wrapped in one).
    - prompt:
      • Unset: read sys.argv[1:].
      • str: shell-like string, split with shlex.split.
      • Iterable[str]: tokens; each is trimmed and empty ones are dropped.
    - flags: the Flags registry applied before dispatch.
    - shell/fancy/colorful: fault surfacing. Outside shell mode faults are
      raised; in shell mode they are printed with rich and the process exits
      with status 1.

    Returns the handler's return value.
    """
    if not isinstance(commands, Commands):
        if not isinstance(commands, Mapping):
            raise TypeError("invoke() first argument must be a command table")
        commands = Commands(commands)

    if prompt is Unset:
        tokens = sys.argv[1:]
    elif isinstance(prompt, str):
        tokens = shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        def _sanitized(iterable):
            for item in iterable:
                if not isinstance(item, str):
                    raise TypeError("invoke() argument must be a string or an iterable of strings")
                if item := item.strip():
                    yield item
        tokens = list(_sanitized(prompt))
    else:
        raise TypeError("invoke() argument must be a string or an iterable of strings")

    try:
        return commands.run(tokens, flags=flags)
    except CommandException as exception:
        if not shell:
            raise
        trigger(exception, shell=True, fancy=fancy, colorful=colorful)


__all__ = (
    "Commands",
    "Entry",
    "Helper",
    "Plan",
    "invoke",
)
