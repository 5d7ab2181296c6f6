"""Where a pry session gets its commands from.

A source only has to offer three methods:

``set_initial_context(text)``
    Called once when the session opens, with the banner and the source
    around the current line.
``receive_output(text)``
    Everything the debugger printed since the last prompt.
``next_command()``
    The next line to run at the prompt.

:class:`ConsoleSource` talks to a human, :class:`ScriptedSource` replays a
fixed list and :class:`pry_debugging.guide.GuideSource` asks an LLM.
"""

import logging

logger = logging.getLogger(__name__)


def strip_prompt(output, prompt):
    """Drop the trailing prompt line that pdb writes before reading."""
    lines = output.rstrip("\n").splitlines()
    if lines and lines[-1].strip() == prompt.strip():
        lines = lines[:-1]
    return "\n".join(lines)


class ConsoleSource:
    """A human at the terminal: print the output, read the next line."""

    def __init__(self, prompt="pry> "):
        self.prompt = prompt

    def set_initial_context(self, context):
        pass

    def receive_output(self, output):
        text = strip_prompt(output, self.prompt)
        if text:
            print(text)

    def next_command(self):
        try:
            return input(self.prompt)
        except (EOFError, KeyboardInterrupt):
            print()
            logger.debug("console closed, resuming")
            return "continue"


class ScriptedSource:
    """Replay *commands*, then resume.

    Every chunk of debugger output is kept in :attr:`transcript` so callers
    (mostly tests) can look at what the session printed.
    """

    def __init__(self, commands=(), prompt="pry> "):
        self.commands = list(commands)
        self.prompt = prompt
        self.initial_context = ""
        self.transcript = []

    def set_initial_context(self, context):
        self.initial_context = context

    def receive_output(self, output):
        text = strip_prompt(output, self.prompt)
        if text:
            self.transcript.append(text)

    def next_command(self):
        if self.commands:
            return self.commands.pop(0)
        return "continue"

    @property
    def output(self):
        return "\n".join(self.transcript)
