r"""
mycli argument specifications.

Overview
- Specs
  • Positional[_T]: position-bound, value-bearing argument (single, optional or variadic).
  • Option[_T]: named, value-bearing option with one or more aliases (e.g., -u/--username).
    Its value is either required ("-u <name>") or optional ("-a [age]").
  • Flag: named, presence-only switch, e.g. -s/--silent. Flags whose names all
    start with "--no-" are negated: they default to True and store False.

- Helpers
  • @flag(...): build a Flag and bind a callback to it (used for terminal helpers
    such as --help and --version).
  • collect(value, previous): accumulator folding repeated option values into a tuple.

Metadata (sanitized on construction)
- Shared
  • group: Unset | str (defaults to the pluralized typename), non-empty when provided.
  • descr: Unset | str | Text (short help), non-empty when provided.
  • hidden / deprecated: bool.
- Value-bearing (Positional/Option)
  • metavar: Unset | str, label in help.
  • type: Callable converter applied to the raw string.
  • nargs: Positional → Unset | "?" | "+" | "*"; Option → Unset | "?".
- Option only
  • const: value stored when an optional-value option is given without a value.
  • validator: regex (str or compiled pattern, full match) or predicate on the raw string.
    A rejected value is dropped and the option keeps its default.
  • accumulator: callable(value, previous) -> new value, seeded from default.
- Named (Option/Flag)
  • names: validated shell-style identifiers; duplicates rejected.

Quick example:
    >>> from mycli.arguments import Positional, Option, Flag, collect
    >>> Option("-i", "--additional-info", nargs="?", accumulator=collect, default=())
    >>> Option("-g", "--gender", nargs="?", validator=r"(?i)male|female", default="private")
    >>> Flag("--no-gender-output").default
    True
"""
import re
from collections.abc import Callable

from rich.text import Text

from .utils import *


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the 'group' and 'descr' fields.

    - group: defaults to the pluralized typename ("positionals", "options", "flags").
    - descr: defaults to None.

    Raises TypeError for non-string values and ValueError for blank strings.
    """
    if not isinstance(group := metadata["group"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'group' must be a string")
    elif isinstance(group, str) and not (group := group.strip()):
        raise ValueError(f"{cls.__typename__} 'group' cannot be empty")

    metadata["group"] = coalesce(group, pluralize(cls.__typename__.replace("-", " ")))

    if not isinstance(descr := metadata["descr"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")

    metadata["descr"] = coalesce(descr)


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate and normalize the names of an Option or a Flag.

    Accepted forms: "-x", "-long", "-long-name", "--long", "--long-name".
    Name format regex: r"--?[^\W\d_](-?[^\W_]+)*" (unicode letters allowed,
    no underscores, no leading digits). Duplicates are rejected.

    Names are kept in declaration order (a tuple), so help output follows the
    order the author wrote them in.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one name")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} names must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} names cannot be empty-strings")
        elif not re.fullmatch(r"--?[^\W\d_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} names must be valid shell-style option names (unicodes are allowed)")
        elif name in names:
            raise ValueError(f"{cls.__typename__} names cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(names)


def _sanitize_parametric_metadata(cls, metadata, /, *, arities):
    """
    Internal: validate 'metavar', 'type' and 'nargs' for value-bearing specs.

    - metavar: Unset or a non-empty string after trimming.
    - type: must be callable.
    - nargs: Unset or one of the given arities.
    """
    if not isinstance(metavar := metadata["metavar"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif isinstance(metavar, str) and not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    metadata["metavar"] = coalesce(metavar)

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if not isinstance(nargs := metadata["nargs"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'nargs' must be a string")
    if isinstance(nargs, str) and nargs not in arities:
        raise ValueError(f"{cls.__typename__} 'nargs' must be one of %s" % ", ".join(map(repr, arities)))
    metadata["nargs"] = coalesce(nargs)


class Positional[_T](metaclass=Introspectable):
    """
    Position-bound, value-bearing argument specification.

    Arity
    - Unset: exactly one value, required.
    - "?": one value, optional; 'default' is used when absent.
    - "+": every remaining positional token, at least one (variadic).
    - "*": every remaining positional token, possibly none (variadic).

    Variadic values reach the handler as a single tuple.
    """

    __introspectable__ = (
        "metavar",
        "type",
        "nargs",
        "default",
        "group",
        "descr",
        "hidden",
        "deprecated",
    )

    def __new__(
            cls,
            metavar=Unset,
            /,
            type=str,
            nargs=Unset,
            default=None,
            group=Unset,
            descr=Unset,
            *,
            hidden=False,
            deprecated=False
    ):
        metadata = {
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "default": default,
            "group": group,
            "descr": descr,
            "hidden": bool(hidden),
            "deprecated": bool(deprecated),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata, arities=("?", "+", "*"))

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def required(self):
        """
        True when the positional must receive at least one token.
        """
        return self.nargs in (None, "+")

    @property
    def variadic(self):
        """
        True when the positional consumes every remaining token.
        """
        return self.nargs in ("+", "*")

    def __positional__(self):
        return self


class Option[_T](metaclass=Introspectable):
    """
    Named, value-bearing option specification.

    Value arity
    - Unset: the value is required and the next token is consumed unconditionally
      ("-u <name>"); inline "--username=<name>" is also accepted.
    - "?": the value is optional ("-a [age]"); the next token is consumed only when
      it does not look like another option, otherwise 'const' is stored.

    Validation and accumulation
    - validator: str/compiled pattern (full match, flags such as (?i) honored) or a
      predicate taking the raw string. Rejected values are dropped silently, so the
      option keeps its default (or whatever it accumulated so far).
    - accumulator: callable(value, previous) folding repeated occurrences; the
      first call receives 'default' as previous. Options with an accumulator may
      be repeated; others may be given once.
    """

    __introspectable__ = (
        "names",
        "metavar",
        "type",
        "nargs",
        "default",
        "const",
        "validator",
        "accumulator",
        "group",
        "descr",
        "hidden",
        "deprecated",
    )

    __displayable__ = (
        "names",
        "metavar",
        "nargs",
        "default",
        "group",
        "descr",
    )

    def __new__(
            cls,
            *names,
            metavar=Unset,
            type=str,
            nargs=Unset,
            default=None,
            const=True,
            validator=Unset,
            accumulator=Unset,
            group=Unset,
            descr=Unset,
            hidden=False,
            deprecated=False
    ):
        metadata = {
            "names": names,
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "default": default,
            "const": const,
            "validator": validator,
            "accumulator": accumulator,
            "group": group,
            "descr": descr,
            "hidden": bool(hidden),
            "deprecated": bool(deprecated),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata, arities=("?",))

        # Patterns are compiled once; predicates are kept as they are.
        match validator:
            case UnsetType():
                metadata["validator"] = None
            case str():
                try:
                    metadata["validator"] = re.compile(validator)
                except re.error as error:
                    raise ValueError(f"{cls.__typename__} 'validator' is not a valid pattern: {error}") from None
            case re.Pattern() | Callable():
                pass
            case _:
                raise TypeError(f"{cls.__typename__} 'validator' must be a pattern or a callable")

        if not isinstance(accumulator, Callable | Unset):
            raise TypeError(f"{cls.__typename__} 'accumulator' must be callable")
        metadata["accumulator"] = coalesce(accumulator)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def accepts(self, raw, /):
        """
        Return True when the raw string passes this option's validator.
        """
        match self.validator:
            case None:
                return True
            case re.Pattern():
                return self.validator.fullmatch(raw) is not None
            case _:
                return bool(self.validator(raw))

    def __option__(self):
        return self


class Flag(metaclass=Introspectable):
    """
    Named, presence-only switch specification.

    - Plain flags (-s/--silent) default to False and store True when given.
    - Negated flags (every name starts with "--no-", e.g. --no-gender-output)
      default to True and store False when given.
    - Helper flags (helper=True) are terminal: their bound callback runs as soon
      as the flag is parsed and the program exits with status 0.
    """

    __introspectable__ = (
        "names",
        "group",
        "descr",
        "helper",
        "negated",
        "hidden",
        "deprecated",
    )

    def __new__(
            cls,
            *names,
            group=Unset,
            descr=Unset,
            helper=False,
            hidden=False,
            deprecated=False
    ):
        metadata = {
            "names": names,
            "group": group,
            "descr": descr,
            "helper": bool(helper),
            "hidden": bool(hidden),
            "deprecated": bool(deprecated),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        negations = [name.startswith("--no-") for name in metadata["names"]]
        if any(negations) and not all(negations):
            raise ValueError(f"{cls.__typename__} cannot mix negated ('--no-') and plain names")
        metadata["negated"] = all(negations)

        self = super().__new__(cls)
        self._callback = Unset
        for name, object in metadata.items():
            setattr(self, "_" + name, object)

        # Helper flags must be visible and not deprecated to avoid conflicting UX.
        if self.helper:
            if self.hidden:
                raise TypeError(f"helper {cls.__typename__} cannot be hidden")
            if self.deprecated:
                raise TypeError(f"helper {cls.__typename__} cannot be deprecated")
            if self.negated:
                raise TypeError(f"helper {cls.__typename__} cannot be negated")
        return self

    @property
    def default(self):
        """
        Value of the flag when it is absent from the command line.
        """
        return self.negated

    def __call__(self):
        if self._callback is Unset:
            return
        return self._callback()

    def __flag__(self):
        return self


def flag(*args, **kwargs):
    """
    Decorator/factory binding a callback to a new Flag.

    Usage
        @flag("-h", "--help", descr="show this help message and exit", helper=True)
        def show_help(): ...

    The decorator returns the Flag itself; calling it runs the callback. It can
    be applied only once.
    """
    flag = Flag(*args, **kwargs)

    @rename("flag")
    def wrapper(callback, /):
        if not callable(callback):
            raise TypeError("@flag() must be applied to a callable")
        if flag._callback is not Unset:  # NOQA: E-501
            raise TypeError("@flag() must be applied only once")
        flag._callback = callback
        return flag

    return wrapper


def collect(value, previous, /):
    """
    Accumulator appending 'value' to the values collected so far.

    Returns a new tuple, so the option default (usually ()) is never mutated:
        Option("-i", "--additional-info", nargs="?", accumulator=collect, default=())
    """
    return (*previous, value)


__all__ = (
    # Classes (specifications)
    "Positional",
    "Option",
    "Flag",

    # Helpers
    "flag",
    "collect",
)
