"""Per-iteration outcome of the agent loop."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutcomeKind(str, Enum):
    CONTINUE = "continue"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass(frozen=True)
class IterationOutcome:
    kind: OutcomeKind
    reason: str = ""

    @classmethod
    def proceed(cls) -> IterationOutcome:
        return cls(OutcomeKind.CONTINUE)

    @classmethod
    def complete(cls, reason: str = "") -> IterationOutcome:
        return cls(OutcomeKind.COMPLETE, reason)

    @classmethod
    def failed(cls, reason: str) -> IterationOutcome:
        return cls(OutcomeKind.FAILED, reason)

    @property
    def is_continue(self) -> bool:
        return self.kind is OutcomeKind.CONTINUE

    @property
    def is_failed(self) -> bool:
        return self.kind is OutcomeKind.FAILED
