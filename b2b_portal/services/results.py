"""
Typed outcomes for the non-fatal checkout steps.

Evidence upload, local recording and notification may degrade without
failing the order. They return these values instead of raising so the
checkout pipeline can carry each outcome explicitly.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class StepStatus(str, Enum):
    OK = 'ok'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass(frozen=True)
class StepResult:
    """Outcome of a best-effort step."""
    status: StepStatus
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value=None) -> 'StepResult':
        return cls(StepStatus.OK, value=value)

    @classmethod
    def skipped(cls, reason: str) -> 'StepResult':
        return cls(StepStatus.SKIPPED, error=reason)

    @classmethod
    def failed(cls, error: str) -> 'StepResult':
        return cls(StepStatus.FAILED, error=error)

    @property
    def succeeded(self) -> bool:
        return self.status is StepStatus.OK


@dataclass(frozen=True)
class EvidenceResult:
    """Outcome of a payment evidence upload: a public URL or a failure marker."""
    filename: str
    url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def uploaded(cls, url: str, filename: str) -> 'EvidenceResult':
        return cls(filename=filename, url=url)

    @classmethod
    def failed(cls, filename: str, error: str) -> 'EvidenceResult':
        return cls(filename=filename, error=error)

    @property
    def succeeded(self) -> bool:
        return self.url is not None
