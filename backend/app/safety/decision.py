"""Decision engine: fold scanner and classifier signals into one verdict.

Checks run in a fixed order and only ever add flags:

1. PII              -> reject, ``PII_DETECTED``
2. risky / flagged  -> reject, ``HARMFUL_CONTENT`` (its reason replaces the PII one)
3. self-harm        -> escalate, ``SELF_HARM_RISK``; approval is left untouched

Escalation and publication are separate axes: a self-harm hit is escalated
whether or not the submission is published.
"""
import asyncio
import logging
from typing import Optional

from ..models.moderation import ClassifierResult, FlagKind, ModerationVerdict, ScanResult
from . import guard

logger = logging.getLogger(__name__)

PII_REASON = "Personal information detected"
HARMFUL_REASON = "Content violates community guidelines"


def decide(scan: ScanResult, classifier: Optional[ClassifierResult]) -> ModerationVerdict:
    verdict = ModerationVerdict()

    if scan.has_pii:
        verdict.approved = False
        verdict.add_flag(FlagKind.PII_DETECTED)
        verdict.reason = PII_REASON

    classifier_flagged = bool(classifier is not None and classifier.available and classifier.flagged)
    if scan.has_risky or classifier_flagged:
        verdict.approved = False
        verdict.add_flag(FlagKind.HARMFUL_CONTENT)
        # Evaluated after PII, so this reason wins when both fire
        verdict.reason = HARMFUL_REASON

    if scan.has_self_harm:
        verdict.escalated = True
        verdict.add_flag(FlagKind.SELF_HARM_RISK)

    return verdict


async def moderate(text: str, classifier, lexicon_path: Optional[str] = None) -> ModerationVerdict:
    """Scan and classify ``text`` concurrently, then decide.

    Any exception escaping the lexicon load, the scanner, the classifier
    adapter or the decision yields the fail-closed ``MODERATION_ERROR``
    verdict.
    """
    try:
        lexicon = guard.load_lexicon(lexicon_path)
        scan_result, cls_result = await asyncio.gather(
            asyncio.to_thread(guard.scan, text, lexicon),
            classifier.classify(text),
        )
        return decide(scan_result, cls_result)
    except Exception as e:
        logger.error("Moderation error: %s", e, exc_info=True)
        return ModerationVerdict.fail_closed()
