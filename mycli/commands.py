"""
mycli command layer: build, compose, parse and dispatch CLI commands.

What this module provides
- Command: wraps a Python callable into an executable CLI with:
  • Argument discovery from the callable's defaults (Positional, Option, Flag).
  • Hierarchies (parent/child) to model subcommands, with aliases and a "*" catch-all.
  • Help/version renderers (rich-based, color-aware).
  • Parsing with position-first messages and actionable hints.
  • Deferred fault handling (errors grouped into a single CommandExit).

- ParsedInvocation: (command, positionals, options) built fresh per run;
  dispatch() calls the selected handler exactly once.
- Namespace: read-only mapping of resolved options, addressable by key or attribute.

- Factories and helpers:
  • command(...): create a Command or a decorator that produces one.
  • invoke(obj, prompt): parse + dispatch for Commands or plain callables.

Core ideas
- Signature-driven UX: the wrapped function's parameters define the CLI surface.
  positional-only → Positional, standard → Option, keyword-only → Flag. The
  parameter name is the option identifier.
- Root options stay visible after a subcommand token; the nearest command wins
  when names are shadowed.
- Parsing never mutates a Command: per-run state lives in a private session.

Quick start
    from mycli import command, Positional, Option, Flag, invoke

    @command(name="tool", shell=True, colorful=True)
    def tool(
        path=Positional("PATH"),
        /,
        count=Option("-c", "--count", type=int, nargs="?", default=1, const=2),
        *,
        verbose=Flag("-v", "--verbose"),
    ):
        print(dict(path=path, count=count, verbose=verbose))

    if __name__ == "__main__":
        invoke(tool, "--count=3 -v ./README.md")
"""
import copy
import difflib
import inspect
import os.path
import re
import shlex
import sys
from collections import defaultdict, deque, namedtuple
from collections.abc import Iterable, Mapping
from inspect import Parameter
from warnings import catch_warnings, simplefilter

from rich.box import ROUNDED
from rich.console import Console, Group
from rich.containers import Lines
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .arguments import Positional, Option, Flag, flag
from .faults import *
from .utils import *


def _process_source(cls, metadata):
    """
    Introspect the command callback and materialize argument specs.

    Responsibilities
    - Resolve each parameter's default into a concrete spec (Positional, Option or Flag).
    - Enforce placement/kind rules (Positional → positional-only, Option → standard,
      Flag → keyword-only).
    - Build, mutating metadata in place:
      • positionals: mapping[param_name -> Positional] (declaration order)
      • switches: mapping[option_or_flag_name -> Option|Flag] (aliases fan out to the same object)
      • identifiers: mapping[Option|Flag -> param_name]
      • groups: mapping[group_name -> list[spec]] ordered by appearance

    A None callback yields an empty surface (a handler-less command).
    """
    positionals = metadata["positionals"] = {}
    switches = metadata["switches"] = {}
    identifiers = metadata["identifiers"] = {}
    groups = metadata["groups"] = defaultdict(list)

    if metadata["callback"] is None:
        return

    try:
        signature = inspect.signature(metadata["callback"])
    except TypeError:
        raise TypeError(f"{cls.__typename__} 'callback' must be callable") from None
    except ValueError:
        raise ValueError(f"{cls.__typename__} 'callback' must be an inspectable callable") from None

    def _resolve_argument(x):
        """
        Return the concrete spec (Positional|Option|Flag) from a spec-like default.
        """
        if sum((
            hasattr(x, "__positional__") and callable(x.__positional__),
            hasattr(x, "__option__") and callable(x.__option__),
            hasattr(x, "__flag__") and callable(x.__flag__),
        )) != 1:
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} default must be an argument spec")

        if hasattr(x, "__positional__"):
            if not isinstance(positional := x.__positional__(), Positional):
                raise TypeError("__positional__() non-positional returned")
            return positional
        elif hasattr(x, "__option__"):
            if not isinstance(option := x.__option__(), Option):
                raise TypeError("__option__() non-option returned")
            return option
        if not isinstance(flag := x.__flag__(), Flag):
            raise TypeError("__flag__() non-flag returned")
        return flag

    variadic = None
    optional = None

    def _resolve_positional(x):
        """
        Validate and register a Positional under its parameter name; enforce ordering rules.
        """
        nonlocal variadic, optional

        if parameter.kind is not Parameter.POSITIONAL_ONLY:
            raise TypeError(f"{cls.__typename__} 'callback' positional at parameter {name!r}, parameter must be positional-only")

        if variadic:
            raise TypeError(f"{cls.__typename__} 'callback' variadic positional at parameter {variadic!r}, must be the last positional")
        if x.variadic:
            variadic = name

        if x.required and optional:
            raise TypeError(f"{cls.__typename__} 'callback' required positional at parameter {name!r}, cannot follow optional {optional!r}")
        if not x.required:
            optional = name

        positionals[name] = x

    def _resolve_switch(x):
        """
        Validate kind, fan out aliases into 'switches', and ensure no duplicate names.
        """
        if isinstance(x, Option) and parameter.kind is not Parameter.POSITIONAL_OR_KEYWORD:
            raise TypeError(f"{cls.__typename__} 'callback' option at parameter {name!r}, parameter must be standard")
        if isinstance(x, Flag) and parameter.kind is not Parameter.KEYWORD_ONLY:
            raise TypeError(f"{cls.__typename__} 'callback' flag at parameter {name!r}, parameter must be keyword-only")
        if isinstance(x, Flag) and x.helper:
            raise TypeError(f"{cls.__typename__} 'callback' flag at parameter {name!r} cannot be a helper")
        if x in identifiers:
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} reuses the spec of {identifiers[x]!r}")

        for alias in x.names:
            if alias in switches:
                raise TypeError(f"{cls.__typename__} 'callback' name {alias!r} is already in use")
            switches[alias] = x
        identifiers[x] = name

    for name, parameter in signature.parameters.items():
        if parameter.default is Parameter.empty:
            raise TypeError(f"{cls.__typename__} 'callback' parameter {name!r} must have a default")

        if isinstance(argument := _resolve_argument(parameter.default), Positional):
            _resolve_positional(argument)
        else:
            _resolve_switch(argument)
        groups[argument.group].append(argument)


def _process_strings(cls, metadata):
    """
    Normalize scalar string/Text metadata fields.

    - Validates type: each value must be str | Text | Unset.
    - Trims strings; empty strings are rejected.
    - Resolves Unset to None (keeps Text unchanged).
    """
    for name in (
            "name",
            "descr",
            "usage",
            "epilog",
            "version",
            "license",
            "homepage",
            "copyright",
    ):
        if not isinstance(object := metadata[name], str | Text | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(object, str) and not (object := object.strip()):
            raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
        metadata[name] = coalesce(object)

    if not re.fullmatch(r"[^\s-]\S*", str(metadata["name"])):
        raise ValueError(f"{cls.__typename__} 'name' must be a single word not starting with '-'")


def _process_aliases(cls, metadata):
    """
    Normalize the 'aliases' collection into a tuple of unique single-word strings.
    """
    if isinstance(aliases := metadata["aliases"], str) or not isinstance(aliases, Iterable):
        raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")

    seen = [str(metadata["name"])]
    for alias in aliases:
        if not isinstance(alias, str):
            raise TypeError(f"{cls.__typename__} 'aliases' must be an iterable of strings")
        elif not re.fullmatch(r"[^\s-]\S*", alias := alias.strip()):
            raise ValueError(f"{cls.__typename__} aliases must be single words not starting with '-'")
        elif alias in seen:
            raise ValueError(f"{cls.__typename__} 'aliases' cannot contain duplicates or the command name")
        seen.append(alias)

    metadata["aliases"] = tuple(seen[1:])


def _attach_to_parent(self, parent):
    """
    Register this command under its parent, enforcing unique names and aliases.
    """
    if not parent:
        return

    typeof = "subcommand" if parent.parent else "command"
    for route in (str(self.name), *self.aliases):
        if route in parent._routes:  # NOQA: E-501
            raise ValueError(f"{type(self).__typename__} {typeof} name {route!r} is already in use")

    parent._children[str(self.name)] = self  # NOQA: E-501
    for route in (str(self.name), *self.aliases):
        parent._routes[route] = self  # NOQA: E-501


def _tokenize(prompt, caller, /):
    """
    Normalize a prompt into a list of tokens.

    - Unset: sys.argv[1:].
    - str: shell-like string split via shlex.split.
    - Iterable[str]: used as is (items are not trimmed; "" is a valid token).
    """
    if prompt is Unset:
        return sys.argv[1:]
    elif isinstance(prompt, str):
        return shlex.split(prompt)
    elif isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError(f"{caller}() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError(f"{caller}() argument must be a string or an iterable of strings")


class Command(metaclass=Introspectable):
    """
    High-level command object that wraps a Python callable and provides CLI behavior.

    Responsibilities
    - Introspection: exposes metadata (name, aliases, descr, version info...) as read-only properties.
    - Composition: parent/child hierarchies model subcommands; a child named "*"
      is the catch-all, selected when the route token matches nothing.
    - Rendering: help/usage/version output via rich (see help/_versioner).
    - Invocation: calling the command forwards to the callback; __invoke__ parses
      and dispatches.

    Built-in flags
    - every command gets -h/--help; the root also gets -v/--version, unless the
      callback declares those names itself.
    """

    __introspectable__ = (
        "name",
        "aliases",
        "descr",
        "usage",
        "epilog",
        "version",
        "license",
        "homepage",
        "copyright",
        "positionals",
        "switches",
        "groups",
        "parent",
        "children",
        "shell",
        "fancy",
        "colorful",
        "deferred",
    )

    __displayable__ = (
        "name",
        "aliases",
        "descr",
        "version",
        "shell",
        "fancy",
        "colorful",
        "deferred",
    )

    @property
    def root(self):
        """
        Return the topmost command in the current command hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this command as a tuple.
        """
        path = [command := self]
        while command.parent:
            path.append(command := command.parent)
        return tuple(reversed(path))

    def __new__(
            cls,
            source,
            /,
            parent=Unset,
            name=Unset,
            aliases=(),
            descr=Unset,
            usage=Unset,
            epilog=Unset,
            version=Unset,
            license=Unset,
            homepage=Unset,
            copyright=Unset,
            *,
            shell=Unset,
            fancy=Unset,
            colorful=Unset,
            deferred=Unset
    ):
        """
        Construct a Command from a callback (or None for a handler-less command).

        Parameters
        - parent: Command | Unset
          Parent under which to attach this command. If Unset, remains top-level.
        - name, aliases: routing identity; name defaults to the callback's __name__.
        - descr, usage, epilog: help scalars; descr defaults to the callback docstring.
        - version, license, homepage, copyright: version block scalars.
        - shell, fancy, colorful, deferred: bool | Unset
          Runtime flags. If Unset, values inherit from parent (or default False).

        Raises
        - TypeError/ValueError on invalid parent, metadata types, duplicate switch
          names, invalid callback/defaults, or name conflicts upon attachment.
        """
        if not isinstance(parent, Command | Unset):
            raise TypeError(f"{cls.__typename__} 'parent' must be a command")
        elif getattr(parent, "positionals", {}):
            raise ValueError(f"{cls.__typename__} 'parent' command cannot have any positionals")

        if source is not None and not callable(source):
            raise TypeError(f"{cls.__typename__} 'callback' must be callable or None")

        metadata = {
            "callback": source,
            "name": coalesce(name, getattr(source, "__name__", os.path.basename(sys.argv[0]) or "mycli")),
            "aliases": aliases,
            "descr": coalesce(descr, (inspect.getdoc(source) if source is not None else None) or Unset),
            "usage": usage,
            "epilog": epilog,
            "version": version,
            "license": license,
            "homepage": homepage,
            "copyright": copyright,
            "shell": bool(coalesce(shell, getattr(parent, "shell", False))),
            "fancy": bool(coalesce(fancy, getattr(parent, "fancy", False))),
            "colorful": bool(coalesce(colorful, getattr(parent, "colorful", False))),
            "deferred": bool(coalesce(deferred, getattr(parent, "deferred", False))),
            "parent": parent,
            "children": {},
        }
        _process_source(cls, metadata)
        _process_strings(cls, metadata)
        _process_aliases(cls, metadata)

        self = super().__new__(cls)
        self._callback = metadata.pop("callback")
        self._identifiers = metadata.pop("identifiers")
        self._routes = {}
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        _attach_to_parent(self, self.parent)

        if all(name not in self.switches for name in ("-h", "--help")):
            self._switches.update(dict.fromkeys(("-h", "--help"),
                flag(
                    "-h", "--help", descr="show this help message and exit", helper=True
                )(self.help),
            ))
            self._groups["flags"].append(self._switches["--help"])

        if not self.parent and all(name not in self.switches for name in ("-v", "--version")):
            self._switches.update(dict.fromkeys(("-v", "--version"),
                flag(
                    "-v", "--version", descr="show the version number and exit", helper=True
                )(self._versioner),
            ))
            self._groups["flags"].append(self._switches["--version"])
        return self

    def __call__(self, *args, **kwargs):
        """
        Forward to the wrapped callback unchanged.
        """
        if self._callback is None:
            raise TypeError(f"{type(self).__typename__} {str(self.name)!r} has no callback")
        return self._callback(*args, **kwargs)

    def help(self, *, stderr=False):
        """
        Render CLI help to the console (stdout, or stderr when used as a usage hint).

        Palette keys
        - usage-label, program-name, usage-section, description-section, epilog-section
        - group-label, argument-description
        - option-name, flag-name, deprecated-name, metavar, deprecated-metavar
        - children-title, children-table, children, children-description
        - panel-title, panel-subtitle

        Customization
        - Define a mapping named __styles__ in __main__ to override any palette entry.
        - When colorful is False, styling is suppressed; deprecated* still apply strike.
        """
        console = Console(stderr=stderr)
        styles = defaultdict(str, {
            "usage-label": "bold #00E6FF",
            "program-name": "bold #FF4D94",
            "usage-section": "bold #36C5F0",
            "description-section": "italic #A3A3A3",
            "epilog-section": "#737373",

            "group-label": "bold #FFFFFF",
            "argument-description": "#9CA3AF",

            "option-name": "bold #00E6FF",
            "flag-name": "bold #22C55E",
            "deprecated-name": "bold #F97316 strike",
            "metavar": "bold #FFD600",
            "deprecated-metavar": "bold #F97316 strike",

            "children-title": "bold #FFFFFF",
            "children-table": "#4B5563",
            "children": "bold #36C5F0",
            "children-description": "#9CA3AF",

            "panel-title": "bold #FF4D94",
            "panel-subtitle": "#9CA3AF",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            if "deprecated" in style and not self.colorful:
                return "strike"
            return styles[style] if self.colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not self.colorful:
                return Text(str(fragment), style if style == "strike" else "")
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        def names(x, *, first=False):
            style = "deprecated-name" if x.deprecated else "option-name" if isinstance(x, Option) else "flag-name"
            ordered = sorted(x.names, key=lambda name: name.startswith("--"))
            if first:
                return text(ordered[0], styler(style))
            return Text(", ").join(text(name, styler(style)) for name in ordered)

        def metavar(x, identifier):
            style = styler("deprecated-metavar" if x.deprecated else "metavar")
            label = text("<%s>" % (x.metavar or re.sub(r"_+", "-", identifier.strip("_"))), style)
            match x.nargs:
                case "?":
                    return Text.assemble("[", label, "]")
                case "+":
                    return Text.assemble(label, "...")
                case "*":
                    return Text.assemble("[", label, "...]")
                case _:
                    return label

        identifiers = self._identifiers | {positional: name for name, positional in self._positionals.items()}
        children = {name: child for name, child in self.children.items() if name != "*"}
        renders = []
        width = console.width - 4 * self.fancy

        usage = Text()
        usage.append("usage", styler("usage-label")).append(":")
        usage.append(" ")
        if self.usage:
            usage.append(text(self.usage, styler("usage-section")))
        else:
            usage.append(text(" ".join(str(step.name) for step in self.path), styler("program-name")))
            usage.append(" ")

            offset = len(usage)
            inputs = deque()
            for group in self.groups.values():
                for argument in filter(lambda x: not x.hidden and not isinstance(x, Positional), group):
                    if isinstance(argument, Flag):
                        inputs.append(Text.assemble("[", names(argument, first=True), "]"))
                    else:
                        inputs.append(Text.assemble(
                            "[", names(argument, first=True), " ", metavar(argument, identifiers.get(argument, "value")), "]"
                        ))
            for name, positional in self.positionals.items():
                if not positional.hidden:
                    inputs.append(metavar(positional, name))
            if children:
                inputs.append(text("<command>", styler("metavar")))

            try:
                lines = Lines([inputs.popleft()])
            except IndexError:
                lines = Lines()

            while inputs:
                if len(lines[-1]) + 1 + len(input := inputs.popleft()) > width - offset:
                    lines.append(input)
                else:
                    lines[-1].append(Text(" ") + input)

            try:
                usage.append(lines.pop(0))
            except IndexError:
                pass
            for line in lines:
                usage.append("\n").append(" " * offset).append(line)

        renders.append(usage.append("\n"))

        if self.descr:
            renders.append(text(self.descr, styler("description-section")).append("\n"))

        if children:
            table = Table(
                "name", "help",
                title=text("subcommands" if self.parent else "commands", styler("children-title")),
                width=int(width * (2 / 3)),
                box=ROUNDED,
                style=styler("children-table"),
                header_style=styler("children-title"),
            )
            for name, child in children.items():
                if child.descr:
                    help = text(child.descr, styler("children-description"))
                else:
                    route = " ".join(str(step.name) for step in child.path)
                    help = text(f"run '{route} --help' for details", styler("children-description"))
                table.add_row(text(", ".join((name, *child.aliases)), styler("children")), help)
            renders.append(table)

        groups = Text("\n" if children else "")
        padding = 2
        rows = []
        for group, arguments in self.groups.items():
            section = []
            for argument in filter(lambda x: not x.hidden, arguments):
                if isinstance(argument, Positional):
                    label = metavar(argument, identifiers[argument])
                elif isinstance(argument, Option):
                    label = Text.assemble(names(argument), " ", metavar(argument, identifiers[argument]))
                else:
                    label = names(argument)
                section.append((label, argument))
            if section:
                rows.append((group, section))

        indent = min(max((len(label) for _, section in rows for label, _ in section), default=0) + padding * 2, 32)
        for index, (group, section) in enumerate(rows):
            groups.append(text(group, styler("group-label"))).append(":")
            groups.append("\n")
            for label, argument in section:
                line = Text(" " * padding).append(label)
                if descr := text(argument.descr, styler("argument-description")):
                    if len(line) >= indent:
                        line.append("\n").append(" " * indent)
                    else:
                        line.append(" " * (indent - len(line)))
                    wrapped = descr.wrap(console, max(width - indent, 20))
                    try:
                        line.append(wrapped.pop(0))
                    except IndexError:
                        pass
                    for segment in wrapped:
                        line.append("\n").append(" " * indent).append(segment)
                groups.append(line).append("\n")
            groups.append("\n" * (index < len(rows) - 1))

        if groups:
            renders.append(groups)

        if self.epilog:
            renders.append(text(self.epilog, styler("epilog-section")).append("\n"))

        if isinstance(renders[-1], Text):
            renders[-1].rstrip()

        renderable = Group(*renders)

        if self.fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{self.name} HELP".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
                subtitle=text(self.root.copyright, styler("panel-subtitle")) or None,
            )

        console.print(renderable)

    def _versioner(self):
        """
        Render version information to stdout.

        Layout
        - Header: "<name> — <version>" (version defaults to 1.0.0).
        - Scalars: license, homepage, copyright as "label: value" lines.
        - If fancy is True, output is wrapped in a panel.
        """
        console = Console()
        styles = defaultdict(str, {
            "program-name": "bold #FF4D94",
            "program-version": "bold #00E6FF",
            "license-label": "bold #FFFFFF",
            "license-section": "#9CA3AF",
            "homepage-label": "bold #FFFFFF",
            "homepage-section": "underline #00E6FF",
            "copyright-label": "bold #FFFFFF",
            "copyright-section": "#9CA3AF",
            "panel-title": "bold #FF4D94",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self.colorful else ""

        renders = [Text(" — ").join((
            Text(str(self.name), styler("program-name")),
            Text(str(self.version or "1.0.0"), styler("program-version")),
        ))]

        for label in ("license", "homepage", "copyright"):
            if value := getattr(self, label):
                line = Text()
                line.append(label, styler(f"{label}-label")).append(":")
                line.append(" ")
                line.append(str(value), styler(f"{label}-section"))
                renders.append(line)

        renderable = Group(*renders)

        if self.fancy:
            renderable = Panel(
                renderable,
                title=Text.assemble("[", " ", f"{self.name} VERSION".upper(), " ", "]", style=styler("panel-title")),
                title_align="left",
            )

        console.print(renderable)

    def command(self, source=Unset, /, *args, **kwargs):
        """
        Create or attach a subcommand under this command.

        Thin wrapper around the top-level command(...) factory that injects the
        current command as the parent; supports both direct and decorator forms.
        """
        return command(source, self, *args, **kwargs)

    def trigger(self, fault, /, **options):
        """
        Surface a fault with this command's runtime flags.

        In shell mode, exceptions first print this command's help to stderr as
        the usage hint; the fault itself then renders (and exits unless deferred).
        """
        if (
                not hasattr(fault, "__trigger__") or
                not callable(fault.__trigger__) or
                not hasattr(fault, "__replace__") or
                not callable(fault.__replace__)
        ):
            raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
        fault = copy.replace(fault, **{
            "command": self,
            "shell": self.shell,
            "fancy": self.fancy,
            "colorful": self.colorful,
            "deferred": self.deferred,
        } | options)
        if self.shell and isinstance(fault, CommandException | CommandExit):
            self.help(stderr=True)
        trigger(fault)

    def parse(self, prompt=Unset):
        """
        Parse a prompt into a ParsedInvocation without running any handler.

        Parameters
        - prompt: Unset (sys.argv[1:]), a shell-like string, or an iterable of strings.

        Faults are surfaced through trigger(): raised in library mode, rendered
        (exit status 1) in shell mode, grouped into a CommandExit when deferred.
        --help and --version render and exit with status 0.
        """
        session = _Parsing(self, _tokenize(prompt, "parse"))
        session.scan()
        positionals = session.bind()
        session.finalize()
        return ParsedInvocation(session.command, positionals, session.resolve())

    def __invoke__(self, prompt=Unset):
        """
        Parse the prompt and dispatch to the selected handler; return its result.
        """
        return self.parse(prompt).dispatch()


class _Parsing:
    """
    Internal: state of a single parse run.

    - command: the active command (moves down the tree on route tokens).
    - tokens: remaining tokens; index: 1-based position of the current token.
    - escaped: True after a bare "--" (every later token is positional).
    - operands: (token, index) pairs waiting to be bound to positionals.
    - values: per-command mapping identifier -> value, for switches seen.
    - seen: (command, identifier) pairs already given (duplicates detection).
    - faults: collected faults in deferred mode.
    """

    def __init__(self, command, tokens, /):
        self.command = command
        self.tokens = deque(tokens)
        self.index = 0
        self.escaped = False
        self.operands = []
        self.values = defaultdict(dict)
        self.seen = set()
        self.faults = []

    @property
    def route(self):
        return " ".join(str(step.name) for step in self.command.path)

    def trigger(self, fault, /):
        if not self.command.deferred:
            return self.command.trigger(fault)
        self.faults.append(copy.replace(
            fault,
            command=self.command,
            shell=self.command.shell,
            fancy=self.command.fancy,
            colorful=self.command.colorful,
            deferred=self.command.deferred,
        ))

    def scan(self):
        """
        Classify every token as switch, route or operand, left to right.
        """
        while self.tokens:
            token = self.tokens.popleft()
            self.index += 1

            if self.escaped:
                self.operands.append((token, self.index))
            elif token == "--":
                self.escaped = True
            elif re.match(r"--?[^\W\d_]", token):
                self.switch(token)
            elif self.command._routes and not self.operands:  # NOQA: E-501
                self.dive(token)
            else:
                self.operands.append((token, self.index))

    def dive(self, token):
        """
        Select the child routed by token, or the "*" catch-all with every remaining token.
        """
        try:
            self.command = self.command._routes[token]  # NOQA: E-501
            return
        except KeyError:
            pass

        if (catchall := self.command._children.get("*")) is None:  # NOQA: E-501
            self.operands.append((token, self.index))
            return

        self.command = catchall
        self.operands.append((token, self.index))
        while self.tokens:
            self.index += 1
            self.operands.append((self.tokens.popleft(), self.index))

    def switch(self, token):
        """
        Resolve an option/flag token against the active command, then its ancestors.
        """
        index = self.index
        match = re.fullmatch(r"(?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>[^\r\n]*))?", token)

        if not match:
            return self.trigger(MalformedTokenError(
                "bad form of option or flag %r at %s position" % (token, ordinal(index)),
                title="malformed option or flag",
                code=FaultCode.MALFORMED_TOKEN,
                hint="try '%s --help' to see valid spellings and forms (e.g., --name=value)" % self.route,
                input=token,
                index=index,
                docs=getdoc(FaultCode.MALFORMED_TOKEN),
            ))

        input = match["input"]
        value = match["value"]

        for command in reversed(self.command.path):
            if (argument := command._switches.get(input)) is not None:  # NOQA: E-501
                break
        else:
            known = dict.fromkeys(name for step in self.command.path for name in step.switches)
            suggestions = difflib.get_close_matches(input, known, 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], self.route)
            except IndexError:
                hint = "try '%s --help' to see all available options" % self.route
            return self.trigger(UnknownSwitchError(
                "unknown option or flag %r at %s position" % (input, ordinal(index)),
                title="unknown option or flag",
                code=FaultCode.UNKNOWN_SWITCH,
                input=input,
                index=index,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_SWITCH),
            ))

        if argument.deprecated:
            self.trigger(DeprecatedArgumentWarning(
                "%s %r at %s position is deprecated" % (type(argument).__typename__, input, ordinal(index)),
                title="deprecated %s" % type(argument).__typename__,
                code=FaultCode.DEPRECATED_ARGUMENT,
                input=input,
                index=index,
                argument=argument,
                hint="check '%s --help' for its replacement" % self.route,
                docs=getdoc(FaultCode.DEPRECATED_ARGUMENT),
            ))

        if isinstance(argument, Flag):
            return self.flag(command, argument, input, value, index)
        return self.option(command, argument, input, value, index)

    def flag(self, command, argument, input, value, index):
        if value is not None:
            return self.trigger(FlagAssignmentError(
                "flag %r at %s position cannot have an inline value" % (input, ordinal(index)),
                title="flag cannot take a value",
                code=FaultCode.FLAG_ASSIGNMENT,
                input=input,
                index=index,
                argument=argument,
                hint="remove everything from '=' (for example: %s)" % input,
                docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
            ))

        if argument.helper:
            argument()
            sys.exit(0)

        identifier = command._identifiers[argument]  # NOQA: E-501
        if (command, identifier) in self.seen:
            return self.duplicated(argument, input, index)
        self.seen.add((command, identifier))
        self.values[command][identifier] = not argument.negated

    def option(self, command, argument, input, value, index):
        if value is None:
            if argument.nargs is None:
                if not self.tokens:
                    return self.trigger(OptionValueRequiredError(
                        "option %r at %s position requires a value" % (input, ordinal(index)),
                        title="option value required",
                        code=FaultCode.OPTION_VALUE_REQUIRED,
                        input=input,
                        index=index,
                        argument=argument,
                        hint="pass a value after it (for example: %s <value> or %s=<value>)" % (input, input),
                        docs=getdoc(FaultCode.OPTION_VALUE_REQUIRED),
                    ))
                value = self.tokens.popleft()
                self.index += 1
            elif self.tokens and self.tokens[0] != "--" and not re.match(r"--?[^\W\d_]", self.tokens[0]):
                value = self.tokens.popleft()
                self.index += 1

        identifier = command._identifiers[argument]  # NOQA: E-501
        if (command, identifier) in self.seen and argument.accumulator is None:
            return self.duplicated(argument, input, index)
        self.seen.add((command, identifier))

        if value is None:
            if argument.accumulator is None:
                self.values[command][identifier] = argument.const
            return

        if not self.delegate(argument.accepts, value, argument=argument, input=input, index=index):
            return
        if (converted := self.delegate(argument.type, value, argument=argument, input=input, index=index)) is Unset:
            return

        if argument.accumulator is None:
            self.values[command][identifier] = converted
            return

        previous = self.values[command].get(identifier, argument.default)
        accumulated = self.delegate(argument.accumulator, converted, previous, argument=argument, input=input, index=index)
        if accumulated is not Unset:
            self.values[command][identifier] = accumulated

    def duplicated(self, argument, input, index):
        kind = type(argument).__typename__
        self.trigger(DuplicatedSwitchError(
            "%s %r at %s position was already given" % (kind, input, ordinal(index)),
            title="duplicated %s" % kind,
            code=FaultCode.DUPLICATED_SWITCH,
            input=input,
            index=index,
            argument=argument,
            hint="pass %s once (it does not accumulate values)" % ", ".join(map(repr, argument.names)),
            docs=getdoc(FaultCode.DUPLICATED_SWITCH),
        ))

    def delegate(self, function, /, *args, argument, input, index):
        """
        Call a user-supplied converter/validator/accumulator and surface its faults.

        - exceptions become DelegatedCommandError (Unset is returned).
        - warnings become DelegatedCommandWarning (the result is kept).
        """
        if isinstance(argument, Positional):
            subject = "positional <%s>" % input
        else:
            subject = "option %r" % input

        try:
            with catch_warnings(record=True) as warnings:
                simplefilter("always")
                result = function(*args)
        except Exception as exception:
            self.trigger(DelegatedCommandError(
                "invalid value %r for %s at %s position" % (args[0], subject, ordinal(index)),
                title="invalid value",
                code=FaultCode.DELEGATED_ERROR,
                input=input,
                index=index,
                argument=argument,
                hint=str(exception) or "run '%s --help' to see the expected values" % self.route,
                docs=getdoc(FaultCode.DELEGATED_ERROR),
                exception=exception,
            ))
            return Unset

        for warning in warnings:
            self.trigger(DelegatedCommandWarning(
                "something occurred in %s at %s position" % (subject, ordinal(index)),
                title="delegated warning",
                code=FaultCode.DELEGATED_WARNING,
                input=input,
                index=index,
                argument=argument,
                hint=str(warning.message),
                docs=getdoc(FaultCode.DELEGATED_WARNING),
                warning=warning.message,
            ))
        return result

    def bind(self):
        """
        Bind collected operands to the selected command's positionals, in order.
        """
        command = self.command
        operands = deque(self.operands)
        positionals = []

        for name, positional in command._positionals.items():  # NOQA: E-501
            if positional.variadic:
                taken = []
                while operands:
                    token, index = operands.popleft()
                    taken.append(self.convert(positional, name, token, index))
                if positional.required and not taken:
                    self.missing(positional, name)
                    break
                positionals.append(tuple(taken))
            elif operands:
                token, index = operands.popleft()
                positionals.append(self.convert(positional, name, token, index))
            elif positional.required:
                self.missing(positional, name)
                break
            else:
                positionals.append(positional.default)

        if command.name == "*":
            return tuple(positionals)

        for token, index in operands:
            if command._routes:  # NOQA: E-501
                suggestions = difflib.get_close_matches(token, [route for route in command._routes if route != "*"], 3)
                try:
                    hint = "did you mean %r? run '%s --help' to see all commands" % (suggestions[0], self.route)
                except IndexError:
                    hint = "run '%s --help' to see all commands" % self.route
                self.trigger(UnknownCommandWarning(
                    "unknown command %r at %s position was ignored" % (token, ordinal(index)),
                    title="unknown command",
                    code=FaultCode.UNKNOWN_COMMAND,
                    input=token,
                    index=index,
                    suggestions=suggestions,
                    hint=hint,
                    docs=getdoc(FaultCode.UNKNOWN_COMMAND),
                ))
            else:
                self.trigger(UnexpectedPositionalError(
                    "unexpected positional %r at %s position" % (token, ordinal(index)),
                    title="unexpected positional",
                    code=FaultCode.UNEXPECTED_POSITIONAL,
                    input=token,
                    index=index,
                    hint="remove it or run '%s --help' to see the expected positionals" % self.route,
                    docs=getdoc(FaultCode.UNEXPECTED_POSITIONAL),
                ))

        return tuple(positionals)

    def convert(self, positional, name, token, index):
        if positional.deprecated:
            self.trigger(DeprecatedArgumentWarning(
                "positional <%s> at %s position is deprecated" % (name, ordinal(index)),
                title="deprecated positional",
                code=FaultCode.DEPRECATED_ARGUMENT,
                input=name,
                index=index,
                argument=positional,
                hint="check '%s --help' for its replacement" % self.route,
                docs=getdoc(FaultCode.DEPRECATED_ARGUMENT),
            ))
        return self.delegate(positional.type, token, argument=positional, input=name, index=index)

    def missing(self, positional, name):
        self.trigger(MissingPositionalError(
            "missing positional <%s> from %s position" % (name, ordinal(self.index + 1)),
            title="missing positional",
            code=FaultCode.MISSING_POSITIONAL,
            input=name,
            index=self.index + 1,
            argument=positional,
            hint="add a value for <%s> (run '%s --help' for the expected form)" % (name, self.route),
            docs=getdoc(FaultCode.MISSING_POSITIONAL),
        ))

    def finalize(self):
        """
        Surface deferred faults: warnings first, then errors grouped in a CommandExit.
        """
        exceptions = []
        for fault in self.faults:
            if isinstance(fault, CommandException):
                exceptions.append(fault)
            elif isinstance(fault, CommandWarning):
                trigger(fault)
            else:
                raise RuntimeError("unexpected fault")

        if not exceptions:
            return

        self.command.trigger(CommandExit(exceptions))

    def resolve(self):
        """
        Merge switch values along the path (root first) with defaults filled in.
        """
        namespace = {}
        for command in self.command.path:
            for argument, identifier in command._identifiers.items():  # NOQA: E-501
                namespace[identifier] = self.values[command].get(identifier, argument.default)
        return Namespace(namespace)


class Namespace(Mapping):
    """
    Read-only mapping of resolved option values, also addressable by attribute.

        >>> options = Namespace({"username": "ada", "silent": False})
        >>> options["username"], options.silent
        ('ada', False)
    """

    __slots__ = ("_values",)

    def __init__(self, values=(), /):
        object.__setattr__(self, "_values", dict(values))

    def __getitem__(self, key):
        return self._values[key]

    def __iter__(self):
        return iter(self._values)

    def __len__(self):
        return len(self._values)

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}") from None

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__!r} object is read-only")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__!r} object is read-only")

    def __repr__(self):
        return "%s(%s)" % (type(self).__name__, ", ".join("%s=%r" % item for item in self._values.items()))


class ParsedInvocation(namedtuple("ParsedInvocation", ("command", "positionals", "options"))):
    """
    Result of Command.parse(): the selected command, its bound positionals (a
    variadic tail is a single tuple) and every visible option value.
    """

    __slots__ = ()

    def dispatch(self):
        """
        Invoke the selected handler exactly once and return its result.

        The handler receives the positionals plus the command's own options and
        flags as keyword arguments. A handler-less command renders its help.
        """
        if self.command._callback is None:  # NOQA: E-501
            return self.command.help()
        return self.command._callback(*self.positionals, **{  # NOQA: E-501
            identifier: self.options[identifier] for identifier in self.command._identifiers.values()  # NOQA: E-501
        })


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command or return a decorator to build it later.

    Invocation modes
    - Direct: cmd = command(func, parent, name="x", ...) or command(None, ...)
    - Decorator:
        @command(name="x", ...)
        def func(...): ...
    """
    @rename("command")
    def wrapper(source, /):
        if not callable(source):
            raise TypeError("@command() must be applied to a callable")
        return Command(source, *args, **kwargs)

    return Command(source, *args, **kwargs) if source is not Unset else wrapper


def invoke(object, prompt=Unset, /):
    """
    Convenience runner for commands or callables; returns the handler's result.

    - If 'object' implements __invoke__, call it with prompt.
    - If 'object' is a plain callable, wrap it as a Command and then invoke.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt)

    if callable(object):
        return invoke(command(object), prompt)

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Command",
    "ParsedInvocation",
    "Namespace",
    "command",
    "invoke",
)
