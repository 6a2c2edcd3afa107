"""
mycli utilities (internal helpers, carefully exposed)

Scope
- Small building blocks shared by the arguments, commands and faults layers.

Overview
- UnsetType / Unset
  • Singleton sentinel for "value not provided", distinct from None.
  • Falsey, printable as "Unset", non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default while preserving None/0/""/().

- rename(callable, name) / @rename("name")
  • Assign stable __name__/__qualname__ to generated callables.

- mirror("attr")
  • Read-only property over a private backing field (self._attr); containers are
    handed out frozen (tuple / MappingProxyType / frozenset).

- Introspectable
  • Metaclass wiring __introspectable__ names into mirrored properties and giving
    specs and commands a stable __repr__/__rich_repr__.

- pluralize(text), ordinal(number)
  • Wording helpers for group labels and position-first messages.

Quick examples
    >>> coalesce(Unset, "fallback")
    'fallback'
    >>> coalesce(None, "fallback") is None
    True
    >>> ordinal(3), ordinal(12), ordinal(22)
    ('third', '12th', '22nd')
"""
import builtins
import functools
import operator
import re
from collections.abc import Sequence, Mapping, Set
from types import MappingProxyType
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    None is a legitimate user value in several places (defaults, descriptions),
    so the API needs a separate marker for "not given". A single instance,
    Unset, is exposed for that purpose.

    Characteristics
    - Boolean-false: bool(Unset) is False, but it is distinct from None and 0.
    - Printable: repr(Unset) -> "Unset".
    - Non-subclassable and a per-process singleton.
    """

    def __or__(self, other, /):
        """
        Support PEP 604 unions in isinstance checks (e.g., str | Unset).
        """
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __copy__(self):
        return self

    def __deepcopy__(self, memo, /):
        return self

    def __reduce__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Resolve the Unset sentinel to a concrete default.

    Falsey values like None, 0, "" or () are preserved as-is; only Unset is
    replaced.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Set a stable __name__/__qualname__ on a callable, or return a decorator
    that will do so later.

    Forms
    - rename(callable, name) -> callable (renamed in place)
    - rename(name) -> decorator

    Some built-in callables are not updatable and raise TypeError.
    """
    match len(parameters):
        case 2:
            callable, name = parameters
            if not builtins.callable(callable):
                raise TypeError("rename() first argument must be callable")
            if not isinstance(name, str):
                raise TypeError("rename() second argument must be a string")
            try:
                callable.__qualname__ = name
                callable.__name__ = name
            except (AttributeError, TypeError):
                raise TypeError("rename() first argument must be a updatable callable") from None
            return callable
        case 1:
            name, = parameters
            if not isinstance(name, str):
                raise TypeError("@rename() argument must be a string")

            def wrapper(callable):
                if not builtins.callable(callable):
                    raise TypeError("@rename() must be applied to a callable")
                return rename(callable, name)

            return rename(wrapper, "rename")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def _freeze(object):
    """
    Return a read-only view of a container (shallow), leaving other objects untouched.

    - Sequence (non-string) → tuple
    - Mapping → MappingProxyType over a fresh dict
    - Set → frozenset
    """
    if isinstance(object, Sequence) and not isinstance(object, (str, bytes, bytearray)):
        return tuple(object)
    elif isinstance(object, Mapping):
        return MappingProxyType(dict(object))
    elif isinstance(object, Set):
        return frozenset(object)
    return object


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The property reads "_{name}" from the instance and freezes container
    values, so public state cannot be mutated through the accessor.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return _freeze(getattr(self, "_" + name))

    return property(getter)


class Introspectable(type):
    """
    Metaclass for specs and commands: mirrored properties plus stable reprs.

    Conventions
    - __introspectable__ lists the fields exposed as read-only properties
      (each backed by a private "_<name>" attribute).
    - __displayable__ (if set) narrows what __rich_repr__ shows; otherwise
      __introspectable__ is used.
    - __typename__ is derived from the class name (camel-case split with
      hyphens) and used in messages and group labels.
    """
    __introspectable__ = ()
    __displayable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__displayable__ or type(self).__introspectable__:
                yield name, getattr(self, name)

        if "__repr__" not in namespace:
            self.__repr__ = __repr__
        if "__rich_repr__" not in namespace:
            self.__rich_repr__ = __rich_repr__
        return self


@functools.cache
def pluralize(text, /):
    """
    Best-effort English pluralizer for group labels and messages.

    Only the last word of a phrase is pluralized; casing of that word is kept.

    Examples
    - pluralize("option")            -> "options"
    - pluralize("switch")            -> "switches"
    - pluralize("inherited option")  -> "inherited options"
    - pluralize("entry")             -> "entries"
    """
    if not isinstance(text, str):
        raise TypeError("pluralize() argument must be a string")

    if not (match := re.search(r"(\S+)(\s*)$", text)):
        return text

    head, last, trail = text[:match.start(1)], match.group(1), match.group(2)
    lower = last.lower()

    if lower.endswith(("s", "sh", "ch", "x", "z")):
        plural = lower + "es"
    elif lower.endswith("y") and len(lower) > 1 and lower[-2] not in "aeiou":
        plural = lower[:-1] + "ies"
    else:
        plural = lower + "s"

    if last.isupper():
        plural = plural.upper()
    elif last[:1].isupper():
        plural = plural[:1].upper() + plural[1:]

    return head + plural + trail


@functools.cache
def ordinal(number, /):
    """
    Return a human-friendly ordinal label for a 1-based position.

    1..10 are words ("first"…"tenth"); other numbers use numeric ordinals with
    the right English suffix ("11th", "21st", "112th").
    """
    try:
        return {
            1: "first",
            2: "second",
            3: "third",
            4: "fourth",
            5: "fifth",
            6: "sixth",
            7: "seventh",
            8: "eighth",
            9: "ninth",
            10: "tenth",
        }[number]
    except KeyError:
        pass

    if 10 < number % 100 < 20:
        return f"{number}th"

    return f"{number}%s" % {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")


Unset = UnsetType()
"""
Internal sentinel for "not provided".

Use Unset as a default when None is a valid, user-meaningful value; materialize
it with coalesce(value, default).
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "pluralize",
    "ordinal",

    # Types
    "UnsetType",
    "Introspectable",

    # Constants
    "Unset",
)
