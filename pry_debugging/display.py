"""ANSI-coloured boxes for text shown around the ``pry>`` prompt."""

import shutil
import textwrap

RESET = "\033[0m"
FG_CYAN = "\033[96m"
FG_YELLOW = "\033[93m"
FG_GREEN = "\033[92m"


def format_box(text, title="", colour=FG_CYAN, width=None):
    """Return *text* framed in a box no wider than *width* columns.

    *width* defaults to the terminal width.  Long lines are wrapped so the
    right border always lines up.
    """
    if width is None:
        width = shutil.get_terminal_size(fallback=(80, 24)).columns
    wrap_width = max(10, width - 4)

    lines = []
    for raw in text.rstrip().splitlines() or [""]:
        lines.extend(textwrap.wrap(raw, width=wrap_width) or [""])

    label = f" {title} " if title else ""
    if len(label) > wrap_width:
        label = label[: wrap_width - 1] + "…"

    inner = max([len(line) for line in lines] + [len(label)])
    rule = "─" * (inner + 2)
    start = (len(rule) - len(label)) // 2

    boxed = [f"{colour}┌{rule[:start]}{label}{rule[start + len(label):]}┐{RESET}"]
    boxed.extend(f"{colour}│ {RESET}{line.ljust(inner)}{colour} │{RESET}" for line in lines)
    boxed.append(f"{colour}└{rule}┘{RESET}")
    return "\n".join(boxed)


def print_box(text, title="", colour=FG_CYAN):
    print(format_box(text, title=title, colour=colour))
