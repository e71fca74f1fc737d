from __future__ import annotations

from dataclasses import dataclass

from posturepal.classifier import PostureStatus

BAD_POSTURE_THRESHOLD_MS = 2000


@dataclass(frozen=True)
class GateResult:
    status: PostureStatus
    confirmed: bool
    pending_ms: int = 0


class HysteresisGate:
    """Holds a bad raw status back until it has persisted for the dwell time.

    States map onto the outside world as:
      good                 -> GOOD
      pending(since)       -> GOOD (flicker suppressed)
      confirmed(raw kind)  -> SIT_STRAIGHT / MOVE_BACK
    """

    def __init__(self, dwell_ms: int = BAD_POSTURE_THRESHOLD_MS) -> None:
        self.dwell_ms = dwell_ms
        self.bad_since_ms: int | None = None

    def update(self, raw: PostureStatus, now_ms: int) -> GateResult:
        if not raw.is_bad:
            self.bad_since_ms = None
            return GateResult(PostureStatus.GOOD, confirmed=False)

        if self.bad_since_ms is None:
            self.bad_since_ms = now_ms
        elapsed = now_ms - self.bad_since_ms
        if elapsed < self.dwell_ms:
            return GateResult(PostureStatus.GOOD, confirmed=False, pending_ms=elapsed)
        return GateResult(raw, confirmed=True, pending_ms=elapsed)

    def reset(self) -> None:
        self.bad_since_ms = None
