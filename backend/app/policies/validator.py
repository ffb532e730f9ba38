import base64
import binascii
import math
from typing import Any, List, Tuple

from ..core.errors import DecodeError


def validate_submission(prompt_id: Any, audio_data: Any, duration: Any = None) -> Tuple[bool, List[str]]:
    """Validate a raw submission before any prompt lookup or decoding.

    Returns (ok, errors)
    """
    errors: List[str] = []

    if not (isinstance(prompt_id, str) and prompt_id.strip()):
        errors.append("promptId is required")
    if not (isinstance(audio_data, str) and audio_data.strip()):
        errors.append("audioData is required")

    if duration is not None:
        try:
            d = float(duration)
        except (TypeError, ValueError):
            d = -1.0
        if d < 0 or not math.isfinite(d):
            errors.append(f"duration must be a finite, non-negative number: {duration}")

    return (len(errors) == 0, errors)


def decode_audio(audio_data: str) -> bytes:
    """Decode a base64 audio payload; the bytes themselves stay opaque."""
    payload = audio_data.strip()
    # Accept data URLs from browsers ("data:audio/webm;base64,....")
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError() from e
