from typing import Any, Dict, List

CRISIS_RESOURCES: List[Dict[str, Any]] = [
    {
        "name": "988 Suicide & Crisis Lifeline",
        "phone": "988",
        "text": "Text HOME to 741741",
        "website": "https://988lifeline.org",
    },
    {
        "name": "Crisis Text Line",
        "text": "Text HOME to 741741",
        "website": "https://www.crisistextline.org",
    },
    {
        "name": "International Association for Suicide Prevention",
        "website": "https://www.iasp.info/resources/Crisis_Centres",
    },
]


def crisis_resources() -> Dict[str, Any]:
    """Static crisis support contacts shown alongside escalated submissions."""
    return {"resources": [dict(r) for r in CRISIS_RESOURCES]}
