from datetime import timedelta

from rich.pretty import pprint

from bosun import *

__prog__ = "bosun-demo"

commands = Commands(help=Helper())


@commands.command("greet", "hello")
def greet(name, times: int = 1):
    """greet NAME, TIMES times"""
    for _ in range(times):
        print(f"hello, {name}{'!' if loud.value else '.'}")


@commands.command("wait")
def wait(*durations: timedelta):
    """add up durations such as 1h30m or 250ms"""
    pprint(sum(durations, timedelta()))


loud = Variable(bool, False)
flags = Flags()
flags.register(loud, "loud", "l")


if __name__ == '__main__':
    invoke(commands, flags=flags, shell=True, fancy=True)
