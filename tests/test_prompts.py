"""Tests for localization prompts."""

import pytest

from src.ai_translator.prompts.localization import (
    build_system_prompt,
    build_user_prompt,
    language_name,
)
from src.ai_translator.workflows.translation_state import BatchRequest


@pytest.fixture
def batch():
    return BatchRequest(
        batch_id="validation.php",
        source_locale="en",
        target_locale="pt-BR",
        items={
            "required": {"text": "The :attribute field is required.", "context": "Form validation"},
            "min": {"text": "At least {count} items", "references": {"fr": "Au moins {count} éléments"}},
        },
        additional_rules=["Use \"você\" rather than \"tu\""],
        translation_context={
            "auth.php": {
                "failed": {"source": "These credentials do not match our records.", "target": "Credenciais inválidas."},
                "throttle": {"source": "Too many login attempts."},
            }
        },
    )


class TestLanguageName:
    """Locale display names."""

    @pytest.mark.parametrize("locale,name", [
        ("fr", "French"),
        ("pt-BR", "Brazilian Portuguese"),
        ("fr_CA", "French"),
        ("ZH-tw", "Traditional Chinese"),
        ("xx-YY", "xx-YY"),
    ])
    def test_language_name(self, locale, name):
        assert language_name(locale) == name


class TestSystemPrompt:
    """System prompt generation."""

    def test_languages_and_format(self, batch):
        prompt = build_system_prompt(batch)

        assert "from English (en) into Brazilian Portuguese (pt-BR)" in prompt
        assert "<![CDATA[TRANSLATED TEXT]]>" in prompt
        assert "{count}" in prompt

    def test_rules_section(self, batch):
        assert "Use \"você\" rather than \"tu\"" in build_system_prompt(batch)

    def test_context_section(self, batch):
        prompt = build_system_prompt(batch)

        assert "File: auth.php" in prompt
        assert "- failed: \"These credentials do not match our records.\" => \"Credenciais inválidas.\"" in prompt
        assert "- throttle: \"Too many login attempts.\"" in prompt

    def test_sections_omitted_when_empty(self):
        batch = BatchRequest(batch_id="a.json", source_locale="en", target_locale="de", items={"a": "A"})
        prompt = build_system_prompt(batch)

        assert "ADDITIONAL RULES" not in prompt
        assert "EXISTING TRANSLATIONS" not in prompt


class TestUserPrompt:
    """User prompt generation."""

    def test_items_rendered_in_order(self, batch):
        prompt = build_user_prompt(batch)

        assert prompt.index("Key: required") < prompt.index("Key: min")
        assert "Context: Form validation" in prompt
        assert "Reference (French): Au moins {count} éléments" in prompt
        assert "Text: At least {count} items" in prompt

    def test_keys_mapping(self, batch):
        prompt = build_user_prompt(batch, {"required": "validation.required", "min": "validation.min"})

        assert "Key: validation.required" in prompt
        assert prompt.endswith("Keys to return (2):\nvalidation.required\nvalidation.min")
        assert "Key: required" not in prompt
