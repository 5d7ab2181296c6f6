import unittest
from unittest.mock import Mock, patch

from pry_debugging import guide
from pry_debugging.guide import GuideSource
from pry_debugging.session import PryPdb


def _response(content):
    response = Mock()
    response.choices = [Mock()]
    response.choices[0].message.content = content
    return response


class TestGuideSource(unittest.TestCase):
    def setUp(self):
        self.mock_openai_patcher = patch("pry_debugging.guide.openai")
        self.mock_openai = self.mock_openai_patcher.start()
        self.mock_openai.chat.completions.create.return_value = _response(
            '{"command": "p num", "explanation": "Look at num", "action": "pry_command"}'
        )

        self.save_patcher = patch.object(GuideSource, "_save_messages")
        self.mock_save = self.save_patcher.start()
        self.print_patcher = patch("builtins.print")
        self.print_patcher.start()

        self.fallback = Mock()
        self.guide = GuideSource(fallback=self.fallback)
        self.guide.set_initial_context("From: lesson.py @ line 3 in plus_two\n  num = 3")

    def tearDown(self):
        self.print_patcher.stop()
        self.save_patcher.stop()
        self.mock_openai_patcher.stop()

    def test_init(self):
        self.assertEqual(self.guide.model, "anthropic/claude-sonnet-4")
        self.assertEqual(self.guide.memory_limit, 15)
        self.assertEqual(self.guide.last_output, "")
        self.assertEqual(len(self.guide.messages), 1)
        self.assertEqual(self.guide.messages[0], {"role": "system", "content": guide.SYSTEM_MESSAGE})
        self.assertIn("pry>", self.guide.system_message)

    def test_custom_system_message(self):
        custom = GuideSource(system_message="Be brief.")
        self.assertEqual(custom.messages[0]["content"], "Be brief.")

    def test_first_prompt_includes_initial_context(self):
        self.assertEqual(self.guide.next_command(), "p num")

        call_args = self.mock_openai.chat.completions.create.call_args
        self.assertEqual(call_args[1]["model"], "anthropic/claude-sonnet-4")
        self.assertEqual(call_args[1]["temperature"], 0.2)
        self.assertEqual(call_args[1]["max_tokens"], 256)

        user_message = self.guide.messages[1]
        self.assertEqual(user_message["role"], "user")
        self.assertIn("just stopped at a breakpoint", user_message["content"])
        self.assertIn("num = 3", user_message["content"])

    def test_later_prompts_include_output(self):
        self.guide.next_command()
        self.guide.receive_output("3\npry> ")
        self.guide.next_command()

        last_user = [m for m in self.guide.messages if m["role"] == "user"][-1]
        self.assertIn("Output of the last command:\n3", last_user["content"])

    def test_receive_output_strips_prompt(self):
        self.guide.receive_output("num = 3\npry> ")
        self.assertEqual(self.guide.last_output, "num = 3")

    def test_assistant_reply_is_recorded_and_saved(self):
        self.guide.next_command()

        self.assertEqual(self.guide.messages[-1]["role"], "assistant")
        self.assertIn('"command": "p num"', self.guide.messages[-1]["content"])
        self.mock_save.assert_called_once_with()

    def test_invalid_json_returns_raw_reply(self):
        self.mock_openai.chat.completions.create.return_value = _response("whereami")
        self.assertEqual(self.guide.next_command(), "whereami")

    def test_json_embedded_in_text(self):
        self.mock_openai.chat.completions.create.return_value = _response(
            'Sure: {"command": "locals", "explanation": "List them"} hope that helps'
        )
        self.assertEqual(self.guide.next_command(), "locals")

    def test_json_without_command_returns_raw(self):
        self.mock_openai.chat.completions.create.return_value = _response('{"explanation": "hm"}')
        self.assertEqual(self.guide.next_command(), '{"explanation": "hm"}')

    def test_stop_and_ask_user_hands_over(self):
        self.mock_openai.chat.completions.create.return_value = _response(
            '{"command": "", "explanation": "\U0001F476 I need help", "action": "stop_and_ask_user"}'
        )
        self.fallback.next_command.return_value = "exit"

        self.assertEqual(self.guide.next_command(), "exit")
        self.fallback.next_command.assert_called_once_with()

    def test_request_failure_hands_over(self):
        self.mock_openai.chat.completions.create.side_effect = RuntimeError("no network")
        self.fallback.next_command.return_value = "p num"

        with self.assertLogs("pry_debugging.guide", level="WARNING"):
            self.assertEqual(self.guide.next_command(), "p num")

        self.assertEqual(len(self.guide.messages), 1)
    def test_reply_without_text_hands_over(self):
        self.mock_openai.chat.completions.create.return_value = _response(None)
        self.fallback.next_command.return_value = "p num"

        with self.assertLogs("pry_debugging.guide", level="WARNING") as cm:
            self.assertEqual(self.guide.next_command(), "p num")

        self.assertIn("no text", cm.output[0])
        self.assertEqual(len(self.guide.messages), 1)
        self.mock_save.assert_not_called()

    def test_reply_without_choices_hands_over(self):
        response = Mock()
        response.choices = []
        self.mock_openai.chat.completions.create.return_value = response
        self.fallback.next_command.return_value = "exit"

        with self.assertLogs("pry_debugging.guide", level="WARNING"):
            self.assertEqual(self.guide.next_command(), "exit")

        self.assertEqual(len(self.guide.messages), 1)

    def test_empty_reply_keeps_session_alive(self):
        self.mock_openai.chat.completions.create.return_value = _response(None)
        self.fallback.next_command.return_value = "exit"

        def returns_argument(pry, value):
            pry.set_trace()
            return value

        with self.assertLogs("pry_debugging.guide", level="WARNING"):
            result = returns_argument(PryPdb(self.guide), 7)

        self.assertEqual(result, 7)
        self.fallback.next_command.assert_called_once_with()

    def test_memory_limit(self):
        for i in range(20):
            self.guide.messages.append({"role": "user", "content": f"message {i}"})
            self.guide.messages.append({"role": "assistant", "content": f"response {i}"})

        self.guide.next_command()

        self.assertLessEqual(len(self.guide.messages), 1 + self.guide.memory_limit + 1)
        self.assertEqual(self.guide.messages[0]["role"], "system")

    def test_extract_json_object(self):
        self.assertEqual(GuideSource._extract_json_object('x {"a": 1} y'), '{"a": 1}')
        self.assertEqual(GuideSource._extract_json_object("no json"), "no json")
        self.assertEqual(
            GuideSource._extract_json_object('{"command": "p {1: 2}"} then {oops}'),
            '{"command": "p {1: 2}"}',
        )


class TestSaveMessages(unittest.TestCase):
    @patch("builtins.open", create=True)
    def test_writes_transcript(self, mock_open):
        GuideSource()._save_messages()
        mock_open.assert_called_with(guide.TRANSCRIPT_FILE, "w", encoding="utf-8")

    @patch("builtins.open", side_effect=IOError("Permission denied"))
    def test_write_errors_are_logged(self, mock_open):
        with self.assertLogs("pry_debugging.guide", level="WARNING") as cm:
            GuideSource()._save_messages()
        self.assertIn("Permission denied", cm.output[0])


class TestClient(unittest.TestCase):
    def test_client_is_built_once(self):
        with patch("pry_debugging.guide.openai", None), \
             patch("pry_debugging.guide.OpenAI") as mock_cls:
            first = guide._client()
            second = guide._client()

        mock_cls.assert_called_once_with(base_url=guide.DEFAULT_BASE_URL)
        self.assertIs(first, second)


if __name__ == "__main__":
    unittest.main()
