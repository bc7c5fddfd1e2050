import unittest

from civic_assistant.classifier import classify, needs_live_information
from civic_assistant.domain import AISource


class TestClassifier(unittest.TestCase):
    def test_weather_question_is_live(self):
        self.assertEqual(classify("What's the weather like today in Indianapolis?"), AISource.LIVE)

    def test_civic_explainer_is_general(self):
        self.assertEqual(classify("Explain how property tax assessments work"), AISource.GENERAL)

    def test_trigger_terms_are_case_insensitive(self):
        for query in ("BREAKING NEWS downtown", "Is the BMV Open Now?", "any Traffic on I-65"):
            with self.subTest(query=query):
                self.assertEqual(classify(query), AISource.LIVE)

    def test_patterns_without_terms(self):
        self.assertTrue(needs_live_information("What has happened at city hall so far today"))
        self.assertTrue(needs_live_information("Please fact-check this claim about the mayor"))

    def test_general_questions(self):
        for query in (
            "How do I apply for a building permit?",
            "Who is responsible for fixing potholes?",
            "How do I register to vote?",
        ):
            with self.subTest(query=query):
                self.assertEqual(classify(query), AISource.GENERAL)

    def test_empty_query_is_general(self):
        self.assertEqual(classify(""), AISource.GENERAL)
        self.assertEqual(classify("   "), AISource.GENERAL)

    def test_deterministic(self):
        query = "latest on the trash collection schedule"
        self.assertEqual({classify(query) for _ in range(5)}, {AISource.LIVE})


if __name__ == "__main__":
    unittest.main()
