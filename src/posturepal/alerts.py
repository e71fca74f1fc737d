from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from posturepal.classifier import PostureStatus
from posturepal.notifications import Notifier

logger = logging.getLogger(__name__)

AUDIO_COOLDOWN_MS = 3000
NOTIFICATION_COOLDOWN_MS = 5000

ALERT_MESSAGES: dict[PostureStatus, tuple[str, str]] = {
    PostureStatus.SIT_STRAIGHT: ("Posture Check", "Time to sit up straight!"),
    PostureStatus.MOVE_BACK: ("Too Close to Screen", "Move back from your screen to reduce eye strain."),
}


class SoundPlayer(Protocol):
    def play_tone(self) -> None: ...


@dataclass(frozen=True)
class AlertOutcome:
    sound: bool = False
    notification: bool = False


class AlertDispatcher:
    """Sound and notification channels, each with its own cooldown clock."""

    def __init__(
        self,
        sound: SoundPlayer | None = None,
        notifier: Notifier | None = None,
        sound_enabled: bool = True,
        notifications_enabled: bool = True,
        sound_cooldown_ms: int = AUDIO_COOLDOWN_MS,
        notification_cooldown_ms: int = NOTIFICATION_COOLDOWN_MS,
    ) -> None:
        self.sound = sound
        self.notifier = notifier
        self.sound_enabled = sound_enabled
        self.notifications_enabled = notifications_enabled
        self.sound_cooldown_ms = sound_cooldown_ms
        self.notification_cooldown_ms = notification_cooldown_ms
        self.last_sound_ms: int | None = None
        self.last_notification_ms: int | None = None

    def dispatch(self, status: PostureStatus, now_ms: int, host_visible: bool) -> AlertOutcome:
        if status not in ALERT_MESSAGES:
            return AlertOutcome()
        return AlertOutcome(
            sound=self._fire_sound(now_ms),
            notification=self._fire_notification(status, now_ms, host_visible),
        )

    def _fire_sound(self, now_ms: int) -> bool:
        if not self.sound_enabled or self.sound is None:
            return False
        if self.last_sound_ms is not None and now_ms - self.last_sound_ms < self.sound_cooldown_ms:
            return False
        try:
            self.sound.play_tone()
        except Exception:
            logger.exception("Alert tone playback failed")
            return False
        self.last_sound_ms = now_ms
        return True

    def _fire_notification(self, status: PostureStatus, now_ms: int, host_visible: bool) -> bool:
        if not self.notifications_enabled or self.notifier is None or host_visible:
            return False
        if self.last_notification_ms is not None and now_ms - self.last_notification_ms < self.notification_cooldown_ms:
            return False
        title, body = ALERT_MESSAGES[status]
        try:
            if not self.notifier.permission_granted():
                return False
            self.notifier.notify(title, body)
        except Exception:
            logger.exception("Posture notification failed")
            return False
        logger.info("Notification sent: %s", title)
        self.last_notification_ms = now_ms
        return True

    def reset(self) -> None:
        self.last_sound_ms = None
        self.last_notification_ms = None
