"""
mycli application callbacks.

Each action prints through a rich console and returns what it printed (or the
computed value), so callers and tests can use the result directly.

- bot(line): print a line through the "bot" speaker prefix.
- greet(...): the root greeting.
- now(): the local time-of-day.
- total(numbers): the sum of several numbers.
- score(first, second, coefficient, random): the toy match point.
- listing(path): working-directory entries with their creation time.
"""
import email.utils
import os
import random as _random
import time

from rich.console import Console
from rich.text import Text

BOT = Text.assemble(("bot", "bold #FF4D94"), ("> ", "#9CA3AF"))


def _console():
    return Console(highlight=False, markup=False, soft_wrap=True)


def _number(value):
    """
    Render a number without a trailing ".0" when it is integral.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def bot(line):
    _console().print(Text.assemble(BOT, line))
    return line


def greet(username=None, age=None, gender="private", additional_info=(), *, gender_output=True):
    """
    Greet the user with whatever is known about them.

    'age' is only trusted when it is a string (a bare -a/--age carries no value).
    """
    lines = [bot("Hello %s" % (username if isinstance(username, str) else "world"))]
    lines.append(bot("I know you are %s" % age if isinstance(age, str) else "I do not know your age"))

    if gender_output:
        match gender:
            case "male":
                lines.append(bot("You are a man"))
            case "female":
                lines.append(bot("You are a woman"))
            case _:
                lines.append(bot("Well, gender is your privacy"))

    for info in additional_info:
        lines.append(bot("I also know %s" % info))
    return lines


def now():
    clock = time.strftime("%X")
    _console().print(clock)
    return clock


def total(numbers):
    result = sum(map(float, numbers), 0.0)
    _console().print(_number(result))
    return result


def score(first, second, coefficient=1, random=False):
    result = abs(len(first) - len(second))
    if random:
        result += _random.random()
    result *= coefficient
    _console().print("The match point of %s and %s is %s" % (first, second, _number(result)))
    return result


def listing(path="."):
    """
    Print every entry of 'path' (hidden ones included) with its creation time
    in RFC 1123 GMT form. Platforms without a birth time fall back to st_ctime.
    """
    console = _console()
    lines = []
    with os.scandir(path) as entries:
        for entry in sorted(entries, key=lambda entry: entry.name):
            stat = entry.stat(follow_symlinks=False)
            created = getattr(stat, "st_birthtime", stat.st_ctime)
            line = "%s was created at %s." % (entry.name, email.utils.formatdate(created, usegmt=True))
            console.print(line)
            lines.append(line)
    return lines
