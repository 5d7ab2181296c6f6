#!/usr/bin/env python3
"""
pry-debugging - stop a program at a line and look around

Usage:
    pry-debugging demo
    pry-debugging lesson [N]
    pry-debugging plus-two N
    pry-debugging run script.py [args...]
"""

import argparse
import logging
import os
import sys
import traceback

import pry_debugging
from pry_debugging import SOURCES, configure
from pry_debugging.arithmetic import plus_two, plus_two_unfixed
from pry_debugging.display import FG_GREEN, print_box
from pry_debugging.pry_is_awesome import prying_into_the_method

logger = logging.getLogger(__name__)


def lesson(num=3, pry=None):
    """Walk through the planted bug in ``plus_two``.

    Stops inside ``plus_two_unfixed`` on its ``return num`` line, after the
    faulty line has run, so ``num`` can be inspected: it is still the input,
    because the sum was never stored.
    """
    pry = pry or pry_debugging.pry
    print(f"plus_two_unfixed({num}) should be {num + 2}. Let's stop inside it and look.")
    pry.break_at(plus_two_unfixed)
    result = plus_two_unfixed(num)
    fixed = plus_two(num)
    print_box(
        f"plus_two_unfixed({num}) returned {result}\nplus_two({num}) returned {fixed}",
        title="Result",
        colour=FG_GREEN,
    )
    return fixed


class PryRunner:
    """Run a script as ``__main__`` and pry into the frame that blew up."""

    def __init__(self, pry=None):
        self.pry = pry or pry_debugging.pry

    def run_script(self, script_path, args=None):
        if not os.path.exists(script_path):
            print(f"Error: script '{script_path}' not found", file=sys.stderr)
            return 1

        filename = os.path.abspath(script_path)
        with open(filename, "r") as f:
            code = f.read()

        try:
            compiled = compile(code, filename, "exec")
        except SyntaxError as e:
            print("".join(traceback.format_exception_only(type(e), e)), end="", file=sys.stderr)
            return 1

        script_globals = {
            "__name__": "__main__",
            "__file__": filename,
            "__doc__": None,
            "__package__": None,
        }

        # Same view of argv and sys.path as ``python script.py`` gives.
        saved_argv, saved_path = sys.argv, list(sys.path)
        sys.argv = [script_path] + list(args or [])
        sys.path.insert(0, os.path.dirname(filename))
        try:
            exec(compiled, script_globals)
        except (SystemExit, KeyboardInterrupt):
            raise
        except Exception as e:
            logger.debug("uncaught %s in %s", type(e).__name__, script_path)
            print(f"\n{type(e).__name__}: {e}", file=sys.stderr)
            self.pry.post_mortem(e.__traceback__)
            return 1
        finally:
            sys.argv = saved_argv
            sys.path[:] = saved_path

        return 0


def build_parser():
    parser = argparse.ArgumentParser(
        prog="pry-debugging",
        description="Stop a program at a line and poke at its variables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pry-debugging demo                  # stop inside prying_into_the_method
  pry-debugging lesson 3              # find the bug in plus_two
  pry-debugging plus-two 3            # prints 5
  pry-debugging run script.py a b     # pry into uncaught exceptions
        """,
    )
    parser.add_argument("--source", choices=SOURCES, help="where pry> commands come from")
    parser.add_argument("--no-pry", action="store_true", help="skip every pry session")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("demo", help="run prying_into_the_method")

    lesson_parser = sub.add_parser("lesson", help="walk through the plus_two bug")
    lesson_parser.add_argument("num", nargs="?", type=int, default=3)

    plus_parser = sub.add_parser("plus-two", help="print plus_two(N)")
    plus_parser.add_argument("num", type=int)

    run_parser = sub.add_parser("run", help="run a script, pry into uncaught exceptions")
    run_parser.add_argument("script")
    run_parser.add_argument("args", nargs=argparse.REMAINDER)

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.source or args.no_pry:
        configure(source=args.source, disabled=True if args.no_pry else None)

    try:
        if args.command == "demo":
            prying_into_the_method()
        elif args.command == "lesson":
            lesson(args.num)
        elif args.command == "plus-two":
            print(plus_two(args.num))
        elif args.command == "run":
            return PryRunner().run_script(args.script, args.args)
    except KeyboardInterrupt:
        print("\nInterrupted by user")
        return 1
    except SystemExit as e:
        return e.code if e.code is not None else 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
