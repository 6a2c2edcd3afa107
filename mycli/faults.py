"""
mycli faults (errors and warnings) and rendering.

Scope
- FaultCode: stable numeric identifiers for every user-facing issue.
- CommandException / CommandWarning: base types that carry message + options and
  render themselves with rich in a short, lowercased, actionable way.
- CommandExit: a group of errors collected in deferred mode.
- trigger(): central entry point to surface any fault (respecting shell/deferred/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages: every message names the ordinal position of the
  offending token ("at second position", "from third position").
- Short titles, one-sentence bodies, a single clear hint.
- Styling configurable through __styles__ in __main__.

Integration
- The router collects faults while parsing and calls trigger(fault, **context).
- In library mode (shell=False) exceptions are raised and warnings go through the
  warnings module; in shell mode both are rendered on stderr via rich.
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)

_PALETTES = {
    "error": {
        "prog-name": "bold #E6E6F0",
        "code": "bold #00E5FF",
        "title": "bold #FF4DA6",
        "message": "#C8C8D0",
        "hint-arrow": "#9CE19C dim",
        "hint": "italic #9CE19C",
        "docs": "underline #00E5FF dim",
    },
    "warning": {
        "prog-name": "bold #E6E6F0",
        "code": "bold #FFB400",
        "title": "bold #FFC2E0",
        "message": "#D6D6DE",
        "hint-arrow": "#B8EFAF dim",
        "hint": "italic #B8EFAF",
        "docs": "underline #FFB400 dim",
    },
}


class FaultCode(IntEnum):
    """
    canonical fault codes used across the cli (stable identifiers).

    numeric ranges encode domains:
    - 1111x: switches (options and flags)
    - 1112x: positionals
    - 1113x: errors delegated from converters
    - 121xx: warnings (routing, deprecations, delegated warnings)

    normalize() lets the host remap codes to its own labels while the numbers
    stay stable.
    """
    # --- switch errors ---
    MALFORMED_TOKEN       = 11111
    UNKNOWN_SWITCH        = 11112
    FLAG_ASSIGNMENT       = 11113
    DUPLICATED_SWITCH     = 11115
    OPTION_VALUE_REQUIRED = 11117

    # --- positional errors ---
    UNEXPECTED_POSITIONAL = 11121
    MISSING_POSITIONAL    = 11125

    # --- delegated errors ---
    DELEGATED_ERROR       = 11131

    # --- warnings ---
    UNKNOWN_COMMAND       = 12101
    DEPRECATED_ARGUMENT   = 12112
    DELEGATED_WARNING     = 12131

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, kind, /):
    """
    Internal: build the rich renderable of a single error or warning.

    Layout: "[ prog — code | Title ]", the message, then "→ hint" and, when the
    host documents the code, its docs line. With fancy=True the body goes into a
    panel titled by the header.
    """
    main = __import__("__main__")
    options = defaultdict(lambda: None, fault.options)
    styles = defaultdict(str, _PALETTES[kind] | getattr(main, "__styles__", {}))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if options["colorful"] else Text(fragment.plain)
        return Text(str(fragment), styles[style] if options["colorful"] else "")

    if (prog := getattr(main, "__prog__", None)) is None:
        prog = options["command"].root.name if options["command"] is not None else "mycli"

    code = options["code"]
    header = Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else code, "code"),
        " | ",
        text(str(options["title"] or kind).title(), "title"),
        " ]",
    )
    body = [text(fault.message, "message")]
    if options["hint"]:
        body.append(Text.assemble(text(" → ", "hint-arrow"), text(options["hint"], "hint")))
    if options["docs"]:
        body.append(text(options["docs"], "docs"))

    if options["fancy"]:
        width = None
        if options["ratio"] is not None:
            width = int((console.width - 4) * options["ratio"])
        return Panel(Group(*body), title=header, title_align="left", width=width)

    return Group(header, *body)


class CommandException(Exception):
    """
    Base class of every parse-time error.

    The message is positional; everything else (command, code, title, hint,
    docs, index, input, shell, fancy, colorful, deferred) travels as options and
    can be overridden with copy.replace().
    """

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message) if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, "error")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        if self.options.get("deferred"):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class MalformedTokenError(CommandException): ...
class UnknownSwitchError(CommandException): ...
class FlagAssignmentError(CommandException): ...
class DuplicatedSwitchError(CommandException): ...
class OptionValueRequiredError(CommandException): ...
class UnexpectedPositionalError(CommandException): ...
class MissingPositionalError(CommandException): ...
class DelegatedCommandError(CommandException): ...


class CommandWarning(ABC, Warning):
    """
    Base class of every parse-time warning. Warnings never stop the run.
    """

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return str(self.message) if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, "warning")

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownCommandWarning(CommandWarning): ...
class DeprecatedArgumentWarning(CommandWarning): ...
class DelegatedCommandWarning(CommandWarning): ...


class CommandExit(ExceptionGroup):
    """
    Errors collected during a deferred run, surfaced together.
    """

    def __new__(cls, exceptions, /, **options):
        return super().__new__(cls, "bad exit", tuple(exceptions))

    def __init__(self, exceptions, /, **options):
        super().__init__("bad exit", tuple(exceptions))
        self.options = MappingProxyType(options)

    def derive(self, exceptions):
        return type(self)(exceptions, **self.options)

    def __rich__(self):
        main = __import__("__main__")
        colorful = self.options.get("colorful")
        styles = defaultdict(str, _PALETTES["error"] | getattr(main, "__styles__", {}))

        if (prog := getattr(main, "__prog__", None)) is None:
            command = self.options.get("command")
            prog = command.root.name if command is not None else "mycli"

        header = Text.assemble(
            "[ ",
            Text(prog, styles["prog-name"] if colorful else ""),
            " — ",
            Text(self.message.title(), styles["title"] if colorful else ""),
            " ]",
        )
        renders = [copy.replace(exception, ratio=2 / 3) for exception in self.exceptions]

        if self.options.get("fancy"):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell"):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode, rendering happens via the rich console; otherwise exceptions
      are raised and warnings are issued.

    typical options
    - command, shell, fancy, colorful, deferred, title, code, hint, docs, and any
      other context worth showing (index, input, argument).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode members and values are short documentation strings. when no
    entry exists, None is returned (renderers treat docs as optional).
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "CommandException",
    "MalformedTokenError",
    "UnknownSwitchError",
    "FlagAssignmentError",
    "DuplicatedSwitchError",
    "OptionValueRequiredError",
    "UnexpectedPositionalError",
    "MissingPositionalError",
    "DelegatedCommandError",
    "CommandWarning",
    "UnknownCommandWarning",
    "DeprecatedArgumentWarning",
    "DelegatedCommandWarning",
    "CommandExit",
    "trigger",
    "getdoc",
)
