"""Tests for prompt construction and prompt templates."""

import json
from datetime import date

import pytest

from backend.config.prompts import PromptLoader
from backend.core.models import ProcessingMode
from backend.core.prompt_builder import PromptBuilder, build_prompt, render_payload

ROWS = [{"Title": "[X][Y] battery drains fast", "Problem": "loses 20% per hour"}]


@pytest.fixture
def builder():
    return PromptBuilder()


class TestRenderPayload:

    def test_text_unchanged(self):
        assert render_payload("  hello\n") == "  hello\n"

    def test_rows_pretty_printed(self):
        rendered = render_payload(ROWS)

        assert json.loads(rendered) == ROWS
        assert rendered.startswith("[\n  {")

    def test_non_ascii_kept(self):
        assert "Ü" in render_payload([{"t": "Überhitzung"}])

    def test_dates_rendered_iso(self):
        assert json.loads(render_payload([{"d": date(2024, 3, 1)}])) == [{"d": "2024-03-01"}]


class TestPromptBuilder:

    def test_custom_mode(self, builder):
        prompt = builder.build(ProcessingMode.CUSTOM, "Rewrite politely.", "hey you")

        assert prompt == "Rewrite politely.\n\nhey you"

    def test_custom_mode_with_rows(self, builder):
        prompt = builder.build(ProcessingMode.CUSTOM, "Classify:", ROWS)

        instruction, payload = prompt.split("\n\n", 1)
        assert instruction == "Classify:"
        assert json.loads(payload) == ROWS

    def test_custom_mode_without_instruction(self, builder):
        assert builder.build(ProcessingMode.CUSTOM, None, "text") == "\n\ntext"

    def test_raw_mode(self, builder):
        assert builder.build(ProcessingMode.RAW, "ignored", "just this") == "just this"

    def test_issue_triage_embeds_rows_last(self, builder):
        prompt = builder.build(ProcessingMode.ISSUE_TRIAGE, "ignored", ROWS)

        for column in ("Module", "Summarized Problem", "Severity", "Severity Reason"):
            assert f'"{column}"' in prompt
        for label in ("Critical", "High", "Medium", "Low"):
            assert label in prompt
        assert "JSON array" in prompt
        assert prompt.endswith(render_payload(ROWS))
        assert "ignored" not in prompt

    def test_issue_triage_example_braces_unescaped(self, builder):
        prompt = builder.build(ProcessingMode.ISSUE_TRIAGE, None, ROWS)

        assert '[{"Module": "Battery"' in prompt
        assert "{{" not in prompt

    @pytest.mark.parametrize("mode,phrase", [
        (ProcessingMode.SUMMARIZE, "concise summary"),
        (ProcessingMode.ANALYZE, "key insights"),
        (ProcessingMode.EXTRACT, "key points"),
        (ProcessingMode.TRANSLATE, "translate"),
        (ProcessingMode.QUESTIONS, "questions"),
    ])
    def test_fixed_text_modes(self, builder, mode, phrase):
        prompt = builder.build(mode, None, "The quick brown fox.")

        assert phrase in prompt
        assert prompt.endswith("The quick brown fox.")

    def test_payload_braces_not_formatted(self, builder):
        prompt = builder.build(ProcessingMode.SUMMARIZE, None, "use {payload} and {x}")

        assert prompt.endswith("use {payload} and {x}")

    def test_build_prompt_shortcut(self):
        assert build_prompt(ProcessingMode.RAW, None, "x") == "x"


class TestPromptLoader:

    def test_every_fixed_mode_has_a_template(self):
        available = PromptLoader().list_available_prompts()

        for mode in ProcessingMode:
            if mode not in (ProcessingMode.CUSTOM, ProcessingMode.RAW):
                assert mode.value in available

    def test_metadata(self):
        assert PromptLoader().get_metadata("issue_triage")["version"]

    def test_unknown_prompt(self):
        with pytest.raises(FileNotFoundError):
            PromptLoader().load_prompt("does_not_exist")

    def test_template_without_placeholder_rejected(self, tmp_path):
        (tmp_path / "broken.yaml").write_text("template: no placeholder here\n", encoding="utf-8")

        with pytest.raises(ValueError):
            PromptLoader(tmp_path).load_prompt("broken")

    def test_custom_directory(self, tmp_path):
        (tmp_path / "shout.yaml").write_text("template: 'LOUD: {payload}'\n", encoding="utf-8")

        assert PromptLoader(tmp_path).format_prompt("shout", "hi") == "LOUD: hi"
