import logging

from rich.pretty import pprint

from icicle import Command, Handled

logging.basicConfig(level=logging.WARNING)

human = Command("human", descr="greets people and does a little arithmetic", colorful=True, shell=True)
human.array_argument("people to greet", required=False)


@human.action
def greet(args):
    for name in args:
        print(f"Hello, {name}!")


add = human.command("add").desc("add two numbers")
add.option("-x, --x", "first number").option("-y, --y", "second number")


@add.action
def addition(args):
    print(args.get_or("-x", "--x", int) + args.get_or("-y", "--y", int))


count = human.command("count").alias("c").desc("count the given words")
count.array_argument("words to count")
count.opt_option("-u, --unique", "count distinct words only")


@count.action
def counting(args):
    print(len(set(args)) if args.has_or("-u", "--unique") else len(args))


if __name__ == '__main__':
    if (outcome := human.run_env()) is not None and outcome is not Handled:
        pprint(outcome)
