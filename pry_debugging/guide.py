"""An LLM that sits next to you at the ``pry>`` prompt.

:class:`GuideSource` is a command source (see :mod:`pry_debugging.sources`)
backed by an OpenAI-compatible chat endpoint.  At each prompt it sends the
debugger output, gets back one JSON step ``{"command", "explanation",
"action"}``, shows both in coloured boxes and runs the command.  When the
model asks for help, or sends something we cannot use, the human at the
console takes over for that prompt.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional

from openai import OpenAI

from .display import FG_CYAN, FG_GREEN, FG_YELLOW, print_box
from .sources import ConsoleSource, strip_prompt

# ---------------------------------------------------------------------------
# Configuration helpers
# ---------------------------------------------------------------------------

DEFAULT_BASE_URL = os.getenv("PRY_DEBUGGING_OPENAI_BASE_URL", "https://openrouter.ai/api/v1")
DEFAULT_MODEL = os.getenv("PRY_DEBUGGING_OPENAI_MODEL", "anthropic/claude-sonnet-4")
TRANSCRIPT_FILE = "pry_guide_messages.json"

# Shared client, built on first use so importing the package does not need an
# API key.
openai: Optional[OpenAI] = None

logger = logging.getLogger(__name__)


def _client() -> OpenAI:
    global openai
    if openai is None:
        openai = OpenAI(base_url=DEFAULT_BASE_URL)
    return openai


SYSTEM_MESSAGE = """
You are a patient Python teacher sitting next to a student at a `pry>` prompt.
The program is frozen at a breakpoint inside a function that returns a wrong
answer without raising any exception. Your job is to show the student how to
find the defect by inspecting the live local variables, one command at a time.

Commands available at the prompt:
- `whereami` shows the source around the current line (marked with `=>`)
- `locals` lists local variables
- `p expr` prints the value of an expression evaluated in the frozen frame
- any other Python statement runs in the frozen frame; assignments stick
- `exit` resumes the program

Explain your reasoning briefly so the student learns, then give the exact
command. When you have shown the defect, say how the source should be fixed
and issue `exit`.

At each step emit a JSON object matching this typed dict, and nothing else:

class GuideStep(T.TypedDict):
    command: str
    explanation: str
    action: T.Literal["pry_command", "stop_and_ask_user"]

If you are confused, do not guess. Use the action "stop_and_ask_user" and say
what you need from the student.
""".strip()


class GuideSource:
    """Command source that asks a chat model for the next ``pry>`` command.

    Parameters
    ----------
    system_message:
        Optional system prompt.  When *None* :data:`SYSTEM_MESSAGE` is used.
    memory_limit:
        How many recent user/assistant messages are sent along with the system
        prompt.  The system prompt is always kept.
    fallback:
        Source used when the model hands control back to the student.
    """

    def __init__(
        self,
        system_message: Optional[str] = None,
        memory_limit: int = 15,
        fallback: Optional[ConsoleSource] = None,
        prompt: str = "pry> ",
    ):
        self.model: str = DEFAULT_MODEL
        self.system_message: str = system_message or SYSTEM_MESSAGE
        self.memory_limit: int = memory_limit
        self.fallback = fallback or ConsoleSource(prompt)
        self.prompt = prompt
        self.messages: List[Dict[str, str]] = []
        self.initial_context: str = ""
        self.last_output: str = ""

        self._init_messages()

    def _init_messages(self) -> None:
        self.messages = [{"role": "system", "content": self.system_message}]

    def _truncate_history(self) -> None:
        """Drop the oldest turns beyond *memory_limit*; the system prompt stays."""

        overflow = len(self.messages) - 1 - self.memory_limit
        if overflow > 0:
            del self.messages[1 : 1 + overflow]

    @staticmethod
    def _extract_json_object(blob: str) -> str:
        """Return the first JSON object embedded in *blob*, or *blob* itself."""

        start = blob.find("{")
        while start != -1:
            try:
                _, end = json.JSONDecoder().raw_decode(blob, start)
            except json.JSONDecodeError:
                start = blob.find("{", start + 1)
            else:
                return blob[start:end]
        return blob

    def _save_messages(self) -> None:
        """Write the conversation to :data:`TRANSCRIPT_FILE`.  Never raises."""

        try:
            with open(TRANSCRIPT_FILE, "w", encoding="utf-8") as fh:
                json.dump(self.messages, fh, ensure_ascii=False, indent=2)
        except OSError as exc:
            logger.warning("Failed to save %s: %s", TRANSCRIPT_FILE, exc)

    def _build_user_prompt(self) -> str:
        if len(self.messages) == 1:
            return (
                "The program just stopped at a breakpoint.\n"
                f"Context:\n{self.initial_context.strip()}\n"
                "Emit the first step as JSON only:\n"
            )
        return (
            f"Context:\n{self.initial_context.strip()}\n"
            f"Output of the last command:\n{self.last_output.strip()}\n"
            "Emit the next step as JSON only:\n"
        )

    def _hand_over(self, reason: str, exc: Exception) -> str:
        logger.warning("%s, handing over to the console: %s", reason, exc)
        self.messages.pop()
        return self.fallback.next_command()

    # ---------------------------------------------------------------------
    # Source interface
    # ---------------------------------------------------------------------

    def set_initial_context(self, context: str) -> None:
        self.initial_context = context

    def receive_output(self, output: str) -> None:
        display_text = strip_prompt(output, self.prompt)
        print_box(display_text, title="Pry Output", colour=FG_CYAN)
        self.last_output = display_text

    def next_command(self) -> str:
        """Ask the model for the next command.

        The full assistant reply goes into :attr:`messages`; only its
        ``command`` field is returned (or the raw reply when it is not the
        JSON we asked for).  A failed request, or a reply without text,
        hands this prompt to :attr:`fallback`.
        """

        self.messages.append({"role": "user", "content": self._build_user_prompt()})
        self._truncate_history()

        try:
            response = _client().chat.completions.create(
                model=self.model,
                messages=self.messages,
                temperature=0.2,
                max_tokens=256,
            )
        except Exception as exc:
            return self._hand_over("Guide request failed", exc)

        try:
            content = response.choices[0].message.content.strip()
        except (AttributeError, IndexError, TypeError) as exc:
            return self._hand_over("Guide reply has no text", exc)

        raw_reply = self._extract_json_object(content)

        command: str = raw_reply
        explanation: Optional[str] = None
        action: Optional[str] = None
        try:
            parsed: Any = json.loads(raw_reply)
            if isinstance(parsed, dict) and "command" in parsed:
                command = str(parsed["command"])
                explanation = parsed.get("explanation")
                action = parsed.get("action")
        except json.JSONDecodeError:
            logger.debug("Guide reply is not JSON: %r", raw_reply)

        self.messages.append({"role": "assistant", "content": raw_reply})
        self._save_messages()

        if explanation:
            print_box(explanation, title="Explanation", colour=FG_YELLOW)

        if action == "stop_and_ask_user":
            return self.fallback.next_command()

        print_box(command, title="Command", colour=FG_GREEN)
        return command
