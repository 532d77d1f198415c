from argchain import *


def add(context):
    print("Welcome to add: %r -> %d" % (context.get("name"), context.get("age")))


if __name__ == '__main__':
    raise SystemExit(run("example", [
        Flag("age", FlagKind.INT, default=0),
        Flag("name", default=""),
    ], [
        Command("add", descr="displays a add message", action=add),
    ]))
