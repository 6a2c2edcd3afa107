"""
The mycli command tree.

    mycli [-u <name>] [-a [age]] [-g [gender]] [-i [info]]... [-s] [--no-gender-output]
    mycli time | t
    mycli sum | s <numbers>...
    mycli match | m <first> <second> [coefficient] [-r]
    mycli shell
    mycli <anything else>      → help
"""
import re

from . import __version__, actions
from .arguments import Positional, Option, Flag, collect
from .commands import command, invoke
from .utils import Unset


@command(
    name="mycli",
    descr="a tutorial command line: greetings, time, sums and matches",
    version=__version__,
    license="MIT",
    shell=True,
    colorful=True,
)
def app(
        username=Option("-u", "--username", metavar="name", descr="specify the user's name"),
        age=Option("-a", "--age", nargs="?", descr="specify the user's age"),
        gender=Option(
            "-g", "--gender",
            nargs="?",
            type=str.lower,
            validator=re.compile("male|female", re.IGNORECASE),
            default="private",
            const="private",
            descr="specify the user's gender",
        ),
        additional_info=Option(
            "-i", "--additional-info",
            metavar="info",
            nargs="?",
            accumulator=collect,
            default=(),
            descr="additional information (repeatable)",
        ),
        *,
        silent=Flag("-s", "--silent", descr="disable output"),
        gender_output=Flag("--no-gender-output", descr="disable gender output"),
):
    if silent:
        return None
    return actions.greet(username, age, gender, additional_info, gender_output=gender_output)


@app.command(name="time", aliases=("t",), descr="show the current local time")
def clock():
    return actions.now()


@app.command(name="sum", aliases=("s",), descr="calculate sum of several numbers")
def add(numbers=Positional("numbers", type=float, nargs="+"), /):
    return actions.total(numbers)


@app.command(name="match", aliases=("m",), descr="calculate how much the first person matches the second one")
def match(
        first=Positional("first"),
        second=Positional("second"),
        coefficient=Positional("coefficient", type=float, nargs="?", default=1),
        /,
        *,
        random=Flag("-r", "--random", descr="add a random value to the final result"),
):
    return actions.score(first, second, coefficient, random)


@app.command(name="shell", descr="list the working directory with creation times")
def shell():
    return actions.listing()


@app.command(name="*", descr="show this help for unknown commands")
def fallback(tokens=Positional("command", nargs="*", hidden=True), /):
    app.help()


def main(prompt=Unset):
    """
    Console entry point: parse sys.argv (or 'prompt') and run the selected command.

    The handler's result is dropped so that sys.exit(main()) exits with status 0.
    """
    invoke(app, prompt)


__all__ = (
    "app",
    "main",
)
