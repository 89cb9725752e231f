"""Tests for brief interpretation."""

import pytest

from ugc_engine.errors import ValidationError
from ugc_engine.services.brief_parser import (
    DEFAULT_BROLL_TAGS,
    DEFAULT_POINTS,
    MAX_BROLL_TAGS,
    detect_emotion,
    detect_persona,
    extract_broll_tags,
    parse_brief,
)


def test_hook_and_points(brief_text: str) -> None:
    parsed = parse_brief(brief_text)

    assert parsed.hook == "Our bedtime story app helps kids fall asleep"
    assert parsed.testimonial_points == [
        "Parents love how calm the stories make the whole family",
        "My daughter asks for a new adventure every night",
    ]
    assert parsed.emotion == "joy"
    assert parsed.persona.tone == "calm"
    assert parsed.variation_intent is None


def test_short_brief_gets_defaults() -> None:
    parsed = parse_brief("Try it today")

    assert parsed.hook == "Try it today"
    assert parsed.testimonial_points == DEFAULT_POINTS
    assert parsed.broll_tags == DEFAULT_BROLL_TAGS
    assert parsed.emotion == "warmth"


@pytest.mark.parametrize("text", ["", "   \n"])
def test_empty_brief_rejected(text: str) -> None:
    with pytest.raises(ValidationError):
        parse_brief(text)


@pytest.mark.parametrize(
    ("words", "expected_type"),
    [
        ({"mom", "loves"}, "mother"),
        ({"dad"}, "father"),
        ({"grandma"}, "grandparent"),
        ({"teacher"}, "parent"),
    ],
)
def test_detect_persona(words: set[str], expected_type: str) -> None:
    assert detect_persona(words).type == expected_type


def test_grandparent_age() -> None:
    assert detect_persona({"grandpa"}).age == "55-65"


def test_emotion_precedence() -> None:
    assert detect_emotion({"calm", "amazing"}) == "joy"
    assert detect_emotion({"safe"}) == "trust"
    assert detect_emotion({"nothing"}) == "warmth"


def test_broll_tags_are_unique_and_capped() -> None:
    text = "bedtime sleep story read kid child family parent night dream app"

    tags = extract_broll_tags(text)

    assert len(tags) == MAX_BROLL_TAGS
    assert len(set(tags)) == len(tags)
    assert tags[0] == "child-sleeping"
