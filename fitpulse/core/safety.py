import re

URGENT_SYMPTOM_PATTERNS = [
    r"chest pains?",
    r"pressure in (?:my )?chest",
    r"short(?:ness)? of breath",
    r"can'?t breathe",
    r"faint(?:ed|ing)?",
    r"passed out",
    r"blacked out",
    r"heart (?:is )?racing",
    r"irregular heart ?beat",
]

INJURY_PATTERNS = [
    r"sharp pain",
    r"popped",
    r"torn",
    r"tore",
    r"tear",
    r"sprain(?:ed|s)?",
    r"swell(?:ing|ed|s)?",
    r"swollen",
    r"can'?t bear weight",
]

_URGENT_RE = re.compile(r"\b(?:" + "|".join(URGENT_SYMPTOM_PATTERNS) + r")\b", re.IGNORECASE)
_INJURY_RE = re.compile(r"\b(?:" + "|".join(INJURY_PATTERNS) + r")\b", re.IGNORECASE)


def detect_urgent_flags(message: str) -> list[str]:
    if _URGENT_RE.search(message):
        return ["urgent_symptom_language"]
    return []


def has_injury_topic(message: str) -> bool:
    return _INJURY_RE.search(message) is not None


def emergency_reply() -> str:
    return (
        "Your message mentions symptoms that could need urgent care. "
        "Stop exercising and seek immediate medical attention or call emergency services now. "
        "Remote coaching is not safe for evaluating these symptoms."
    )


def injury_caution_text() -> str:
    return "If pain is sharp or swelling persists, skip loaded work on that area and get it checked by a clinician."
