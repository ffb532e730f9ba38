from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FlagKind(str, Enum):
    PII_DETECTED = "PII_DETECTED"
    HARMFUL_CONTENT = "HARMFUL_CONTENT"
    SELF_HARM_RISK = "SELF_HARM_RISK"
    MODERATION_ERROR = "MODERATION_ERROR"


@dataclass(frozen=True)
class ScanResult:
    """Output of the lexical scanner."""

    has_risky: bool = False
    has_pii: bool = False
    has_self_harm: bool = False


@dataclass(frozen=True)
class ClassifierResult:
    """Output of the external moderation classifier.

    ``available=False`` means the classifier gave no signal at all; it is
    neither an approval nor a rejection.
    """

    available: bool
    flagged: bool = False
    categories: List[str] = field(default_factory=list)
    detail: Optional[str] = None

    @classmethod
    def unavailable(cls, detail: Optional[str] = None) -> "ClassifierResult":
        return cls(available=False, detail=detail)


@dataclass
class ModerationVerdict:
    approved: bool = True
    flags: List[FlagKind] = field(default_factory=list)
    escalated: bool = False
    reason: Optional[str] = None

    def add_flag(self, flag: FlagKind) -> None:
        if flag not in self.flags:
            self.flags.append(flag)

    @classmethod
    def fail_closed(cls) -> "ModerationVerdict":
        return cls(
            approved=False,
            flags=[FlagKind.MODERATION_ERROR],
            escalated=False,
            reason="Unable to process content",
        )

    def flag_values(self) -> List[str]:
        return [f.value for f in self.flags]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "approved": self.approved,
            "flags": self.flag_values(),
            "escalated": self.escalated,
            "reason": self.reason,
        }
