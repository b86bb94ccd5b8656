import unittest
from unittest.mock import MagicMock, patch

from commitsage.cancellation import CancellationToken, GenerationCancelledError
from commitsage.diff.models import ChangeRecord
from commitsage.llm.commit_generator import OllamaCommitGenerator
from commitsage.llm.models import GenerationRequest
from commitsage.llm.ollama_client import LLMError, OllamaClient


def make_generator(reply: str = "feat: add x"):
    client = MagicMock(spec=OllamaClient)
    client.request_timeout = 60.0
    client.generate.return_value = reply
    return OllamaCommitGenerator(client), client


REQUEST = GenerationRequest(records=(ChangeRecord("a.py", content="+a\n", additions=1),))


class TestOllamaCommitGenerator(unittest.TestCase):
    def test_generate_parses_reply(self) -> None:
        generator, client = make_generator(
            "Here is the commit message:\n\nfix(core): guard None\n\nAvoid crash.\n\nCloses: #7"
        )
        response = generator.generate(None, REQUEST)
        self.assertEqual(response.subject, "fix(core): guard None")
        self.assertEqual(response.body, "Avoid crash.")
        self.assertEqual(response.footer, "Closes: #7")
        self.assertTrue(response.raw_text.startswith("fix(core): guard None"))

        args, kwargs = client.generate.call_args
        self.assertIn("+a", args[0])
        self.assertEqual(kwargs["system"], generator.system_prompt)
        self.assertIsNone(kwargs["token"])

    def test_non_conventional_reply_is_kept(self) -> None:
        generator, _ = make_generator("Update a.py")
        response = generator.generate(None, REQUEST)
        self.assertEqual(response.subject, "Update a.py")
        self.assertEqual(response.format_message(), "Update a.py")

    def test_empty_reply(self) -> None:
        generator, _ = make_generator("<think>hmm</think>")
        with self.assertRaises(LLMError):
            generator.generate(None, REQUEST)

    def test_no_records(self) -> None:
        generator, client = make_generator()
        with self.assertRaises(LLMError):
            generator.generate(None, GenerationRequest(records=()))
        client.generate.assert_not_called()

    def test_cancelled_token(self) -> None:
        generator, client = make_generator()
        token = CancellationToken()
        token.cancel()
        with self.assertRaises(GenerationCancelledError):
            generator.generate(token, REQUEST)
        client.generate.assert_not_called()

    def test_token_is_passed_to_client(self) -> None:
        generator, client = make_generator()
        token = CancellationToken.with_timeout(5)
        generator.generate(token, REQUEST)
        self.assertIs(client.generate.call_args.kwargs["token"], token)

    def test_client_errors_propagate(self) -> None:
        generator, client = make_generator()
        client.generate.side_effect = LLMError("down")
        with self.assertRaises(LLMError):
            generator.generate(None, REQUEST)

    def test_uses_real_client_over_http(self) -> None:
        response = MagicMock(status_code=200)
        response.json.return_value = {"response": "docs: update readme"}
        generator = OllamaCommitGenerator(OllamaClient("http://localhost", 11434, "model"))
        with patch("requests.post", return_value=response) as post:
            result = generator.generate(None, REQUEST)
        self.assertEqual(result.subject, "docs: update readme")
        self.assertIn("system", post.call_args.kwargs["json"])


if __name__ == "__main__":
    unittest.main()
