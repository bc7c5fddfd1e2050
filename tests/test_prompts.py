import unittest

from civic_assistant.domain import ConversationRole, ConversationTurn, UserContext
from civic_assistant.prompts import build_system_instruction, recent_turns, render_history


def _turn(role, text):
    return ConversationTurn(role=role, text=text)


class TestRecentTurns(unittest.TestCase):
    def test_keeps_last_n_non_empty(self):
        history = [_turn(ConversationRole.USER, f"q{i}") for i in range(8)]
        history.insert(7, _turn(ConversationRole.ASSISTANT, "  "))
        turns = recent_turns(history, 5)
        self.assertEqual([t.text for t in turns], ["q3", "q4", "q5", "q6", "q7"])

    def test_zero_limit(self):
        self.assertEqual(recent_turns([_turn(ConversationRole.USER, "hi")], 0), [])


class TestSystemInstruction(unittest.TestCase):
    def test_profile_fields_are_rendered(self):
        ctx = UserContext(
            name="Ada",
            zip_code="46204",
            blood_group="O+",
            allergies=["peanuts", "pollen"],
        )
        text = build_system_instruction([], ctx, assistant_name="Orpheus", city="Indianapolis, Indiana")

        self.assertIn("You are **Orpheus**", text)
        self.assertIn("- Name: Ada", text)
        self.assertIn("- Location: 46204, Indiana", text)
        self.assertIn("- Phone: Not provided", text)
        self.assertIn("- Blood Group: O+", text)
        self.assertIn("- Allergies: peanuts, pollen", text)
        self.assertIn("- Medications: None reported", text)

    def test_transcript_is_bounded(self):
        history = [
            _turn(ConversationRole.USER if i % 2 == 0 else ConversationRole.ASSISTANT, f"message {i}")
            for i in range(10)
        ]
        text = build_system_instruction(history, UserContext(), history_turns=3)

        self.assertIn("Assistant: message 7", text)
        self.assertIn("User: message 8", text)
        self.assertIn("Assistant: message 9", text)
        self.assertNotIn("message 6", text)

    def test_deterministic(self):
        history = [_turn(ConversationRole.USER, "When is trash pickup?")]
        ctx = UserContext(name="Ada")
        self.assertEqual(
            build_system_instruction(history, ctx),
            build_system_instruction(history, ctx),
        )

    def test_render_history(self):
        out = render_history([
            _turn(ConversationRole.USER, " hi "),
            _turn(ConversationRole.ASSISTANT, "hello"),
        ])
        self.assertEqual(out, "User: hi\nAssistant: hello")


if __name__ == "__main__":
    unittest.main()
