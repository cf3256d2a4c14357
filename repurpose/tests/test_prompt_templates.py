"""
Prompt template rendering.

Templates are pure: same inputs, same prompt; unknown keys use the
Twitter/X template.
"""
import pytest

from repurpose.features.formats import templates
from repurpose.features.formats.templates import (
    Format,
    FORMAT_INFO,
    PROMPT_TEMPLATES,
    render_prompt,
    restricted_formats,
    list_formats,
)


def test_every_format_has_template_and_label():
    for fmt in Format:
        assert fmt in PROMPT_TEMPLATES
        assert FORMAT_INFO[fmt].key == fmt.value
    assert len(list_formats()) == 10


def test_render_is_deterministic():
    first = render_prompt("linkedin", "Some content", "Casual")
    second = render_prompt("linkedin", "Some content", "Casual")
    assert first == second


def test_render_injects_content_and_voice():
    prompt = render_prompt("twitter", "The original body.", "Witty")
    assert "Tone: Witty" in prompt
    assert "Original content:\nThe original body.\n\nGenerate the Twitter thread now:" in prompt
    assert prompt.startswith("You are a social media expert.")


def test_lowercase_voice_templates():
    prompt = render_prompt("linkedin", "x", "Authoritative")
    assert "Professional tone, but authoritative" in prompt
    assert "Conversational (friendly)" in render_prompt("reddit", "x", "FRIENDLY")


def test_unknown_format_falls_back_to_twitter():
    assert render_prompt("myspace", "body", "professional") == render_prompt("twitter", "body", "professional")


def test_content_with_braces_is_not_interpreted():
    prompt = render_prompt("blog_summary", "use {voice} and {0} literally", "professional")
    assert "use {voice} and {0} literally" in prompt


@pytest.mark.parametrize(
    "key,closing",
    [
        ("email", "Generate the email newsletter now (include subject line):"),
        ("youtube", "Generate the YouTube script now:"),
        ("tiktok", "Generate the TikTok script now:"),
        ("pinterest", "Generate the Pinterest description now:"),
    ],
)
def test_closing_instruction(key, closing):
    assert render_prompt(key, "body", "professional").endswith(closing)


def test_free_tier_restriction_disabled_by_default():
    assert restricted_formats("free", ["youtube", "reddit"]) == []


def test_free_tier_restriction_when_enabled(monkeypatch):
    monkeypatch.setattr(templates, "RESTRICT_FREE_TIER_FORMATS", True)
    assert restricted_formats("free", ["twitter", "youtube", "reddit"]) == ["youtube", "reddit"]
    assert restricted_formats("pro", ["youtube"]) == []
