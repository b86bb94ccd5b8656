"""Tests for cleaning and parsing model replies."""

import unittest

from commitsage.llm.response_parser import (
    MAX_SUBJECT_LENGTH,
    clean_model_output,
    extract_commit_type,
    is_footer_line,
    parse_commit_message,
    strip_thinking_tags,
    validate_commit_message,
)


class TestStripThinkingTags(unittest.TestCase):
    def test_all_tag_variants(self):
        for tag in ("think", "thinking", "thought", "reasoning"):
            text = f"<{tag}>step one\nstep two</{tag}>\n\nfix: handle empty input"
            self.assertEqual(strip_thinking_tags(text), "fix: handle empty input", tag)

    def test_case_insensitive(self):
        self.assertEqual(strip_thinking_tags("<THINK>x</THINK>done"), "done")

    def test_plain_text_is_untouched(self):
        self.assertEqual(strip_thinking_tags("  feat: add x  "), "feat: add x")


class TestCleanModelOutput(unittest.TestCase):
    def test_preamble_is_dropped(self):
        raw = "Here is the commit message for your changes:\n\nfeat(api): add endpoint\n\nAdds it."
        self.assertEqual(clean_model_output(raw), "feat(api): add endpoint\n\nAdds it.")

    def test_text_without_subject_is_kept(self):
        self.assertEqual(clean_model_output("<think>hm</think>Update files"), "Update files")

    def test_empty(self):
        self.assertEqual(clean_model_output("<think>only thoughts</think>"), "")


class TestParseCommitMessage(unittest.TestCase):
    def test_subject_only(self):
        parsed = parse_commit_message("fix: correct typo")
        self.assertTrue(parsed.is_valid)
        self.assertEqual(parsed.type, "fix")
        self.assertEqual(parsed.scope, "")
        self.assertEqual(parsed.subject, "correct typo")
        self.assertEqual(parsed.body, "")

    def test_scope_body_and_footer(self):
        text = (
            "feat(parser): support renames\n"
            "\n"
            "Detect rename headers.\n"
            "Merge numstat counts.\n"
            "\n"
            "Refs: #12\n"
            "BREAKING CHANGE: new record field"
        )
        parsed = parse_commit_message(text)
        self.assertEqual(parsed.type, "feat")
        self.assertEqual(parsed.scope, "parser")
        self.assertEqual(parsed.subject, "support renames")
        self.assertEqual(parsed.body, "Detect rename headers.\nMerge numstat counts.")
        self.assertEqual(parsed.footer, "Refs: #12\nBREAKING CHANGE: new record field")
        self.assertEqual(parsed.format(), text)

    def test_issue_reference_starts_footer(self):
        parsed = parse_commit_message("fix: crash\n\nGuard None.\n#42")
        self.assertEqual(parsed.body, "Guard None.")
        self.assertEqual(parsed.footer, "#42")

    def test_non_conventional_subject(self):
        parsed = parse_commit_message("Update the readme\n\nMore words.")
        self.assertFalse(parsed.is_valid)
        self.assertEqual(parsed.type, "")
        self.assertEqual(parsed.subject, "Update the readme")
        self.assertEqual(parsed.format_subject(), "Update the readme")
        self.assertEqual(parsed.body, "More words.")

    def test_unknown_type(self):
        parsed = parse_commit_message("feature: add x")
        self.assertFalse(parsed.is_valid)
        self.assertEqual(parsed.subject, "feature: add x")

    def test_empty(self):
        parsed = parse_commit_message("   ")
        self.assertFalse(parsed.is_valid)
        self.assertEqual(parsed.subject, "")

    def test_to_response(self):
        response = parse_commit_message("docs(readme): fix link\n\nbody").to_response("raw")
        self.assertEqual(response.subject, "docs(readme): fix link")
        self.assertEqual(response.body, "body")
        self.assertEqual(response.raw_text, "raw")


class TestHelpers(unittest.TestCase):
    def test_extract_commit_type(self):
        self.assertEqual(extract_commit_type("perf(db): faster query"), "perf")
        self.assertEqual(extract_commit_type("no type here"), "")

    def test_is_footer_line(self):
        self.assertTrue(is_footer_line("Closes: #1"))
        self.assertTrue(is_footer_line("signed-off-by: someone"))
        self.assertTrue(is_footer_line("#99"))
        self.assertFalse(is_footer_line("Regular body text"))

    def test_validate_commit_message(self):
        self.assertEqual(validate_commit_message("feat: add x"), [])
        issues = validate_commit_message("just words")
        self.assertIn("message does not follow Conventional Commits format", issues)
        self.assertIn("missing commit type", issues)
        long_subject = "feat: " + "x" * MAX_SUBJECT_LENGTH
        self.assertIn(
            f"subject line exceeds {MAX_SUBJECT_LENGTH} characters",
            validate_commit_message(long_subject),
        )

    def test_subject_length_limit(self):
        self.assertEqual(MAX_SUBJECT_LENGTH, 72)
        at_limit = "feat: " + "x" * (MAX_SUBJECT_LENGTH - len("feat: "))
        self.assertEqual(validate_commit_message(at_limit), [])
        self.assertIn(
            "subject line exceeds 72 characters",
            validate_commit_message(at_limit + "x"),
        )


if __name__ == "__main__":
    unittest.main()
