"""Tests for persona definitions."""

import pytest

from mascotgen.services.image_generation.personas import (
    IAN,
    TMAI,
    get_persona,
    persona_for_command,
)


def test_render_embeds_subject_and_prompt():
    prompt = TMAI.render("riding a rocket")

    assert 'User Request: "TMAI riding a rocket"' in prompt
    assert "top left corner" in prompt


def test_working_message_greets_requester():
    message = TMAI.working_message("Alice", choice=lambda options: options[0])

    assert message == "Hang on Alice... Catapulting imagination into reality..."


def test_usage_text_lists_ratios():
    text = IAN.usage_text(["1:1", "16:9"])

    assert "/ian presenting at blockchain conference" in text
    assert "(1:1, 16:9)" in text


@pytest.mark.parametrize(
    "command, expected",
    [("/tmai", TMAI), ("/test-tmai", TMAI), ("/ian", IAN), ("/test-ian", IAN), ("/nope", None)],
)
def test_persona_for_command(command, expected):
    assert persona_for_command(command) is expected


def test_unknown_persona_key():
    with pytest.raises(KeyError, match="Unknown persona"):
        get_persona("bob")
