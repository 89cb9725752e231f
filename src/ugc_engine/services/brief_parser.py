"""Keyword-based brief interpretation.

Turns free text into a ParsedBrief: the first sentence is the hook, the
following sentences are testimonial points, and persona, emotion and B-roll
tags come from keyword matches.
"""

import re

from ugc_engine.domain.models import ParsedBrief, Persona
from ugc_engine.errors import ValidationError

MAX_TESTIMONIAL_POINTS = 5
MAX_BROLL_TAGS = 6
MIN_POINT_LENGTH = 10

DEFAULT_POINTS = ["Great experience with the app", "My kids love the stories"]
DEFAULT_BROLL_TAGS = ["child-sleeping", "reading-together", "app-interface"]

# Checked in order; the first matching group wins
EMOTION_KEYWORDS: list[tuple[str, frozenset[str]]] = [
    ("joy", frozenset({"love", "amazing", "wonderful", "fantastic"})),
    ("serenity", frozenset({"calm", "peaceful", "relaxing", "soothing"})),
    ("excitement", frozenset({"exciting", "adventure", "fun", "thrilling"})),
    ("trust", frozenset({"trust", "safe", "reliable", "secure"})),
]

SCENE_KEYWORDS: dict[str, str] = {
    "bedtime": "child-sleeping",
    "sleep": "cozy-bedroom",
    "story": "reading-together",
    "read": "book-closeup",
    "kid": "happy-child",
    "child": "child-playing",
    "family": "family-moment",
    "parent": "parent-child",
    "night": "nighttime-routine",
    "dream": "dreamy-clouds",
    "imagination": "magical-scene",
    "adventure": "adventure-scene",
    "app": "app-interface",
    "phone": "phone-usage",
    "tablet": "tablet-usage",
}

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_WORD = re.compile(r"[a-z']+")


def detect_persona(words: set[str]) -> Persona:
    persona = Persona()

    if words & {"mom", "mother"}:
        persona.type, persona.demographic = "mother", "female"
    elif words & {"dad", "father"}:
        persona.type, persona.demographic = "father", "male"
    elif words & {"grandparent", "grandma", "grandpa"}:
        persona.type, persona.age = "grandparent", "55-65"

    if words & {"professional", "busy"}:
        persona.tone = "professional"
    elif words & {"fun", "playful"}:
        persona.tone = "playful"
    elif words & {"calm", "relaxing"}:
        persona.tone = "calm"

    return persona


def detect_emotion(words: set[str]) -> str:
    for emotion, keywords in EMOTION_KEYWORDS:
        if words & keywords:
            return emotion
    return "warmth"


def extract_broll_tags(text: str) -> list[str]:
    lowered = text.lower()
    tags: list[str] = []
    for keyword, tag in SCENE_KEYWORDS.items():
        if keyword in lowered and tag not in tags:
            tags.append(tag)
    return (tags or list(DEFAULT_BROLL_TAGS))[:MAX_BROLL_TAGS]


def parse_brief(raw_input: str) -> ParsedBrief:
    """Interpret a brief.

    Raises:
        ValidationError: If the brief has no text
    """
    text = raw_input.strip()
    if not text:
        raise ValidationError("Brief text is required", fields={"raw_input": "must not be empty"})

    sentences = [s.strip() for s in _SENTENCE_SPLIT.split(text)]
    hook = sentences[0] or text[:50]
    points = [s for s in sentences[1:] if len(s) > MIN_POINT_LENGTH][:MAX_TESTIMONIAL_POINTS]
    words = set(_WORD.findall(text.lower()))

    return ParsedBrief(
        hook=hook,
        persona=detect_persona(words),
        emotion=detect_emotion(words),
        broll_tags=extract_broll_tags(text),
        testimonial_points=points or list(DEFAULT_POINTS),
    )
