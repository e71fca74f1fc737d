from __future__ import annotations

import logging
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)

APP_NAME = "PosturePal"


TOAST_SCRIPT = """
[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, ContentType = WindowsRuntime]
$xml = [Windows.UI.Notifications.ToastNotificationManager]::GetTemplateContent([Windows.UI.Notifications.ToastTemplateType]::ToastText02)
$txt = $xml.GetElementsByTagName("text")
$txt.Item(0).AppendChild($xml.CreateTextNode("{title}")) | Out-Null
$txt.Item(1).AppendChild($xml.CreateTextNode("{body}")) | Out-Null
$toast = [Windows.UI.Notifications.ToastNotification]::new($xml)
[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier("{app}").Show($toast)
"""


def _quote_safe(text: str) -> str:
    return text.replace('"', "'")


class Notifier:
    """Port for system notifications."""

    def permission_granted(self) -> bool:  # pragma: no cover - interface
        raise NotImplementedError

    def request_permission(self) -> bool:
        return self.permission_granted()

    def notify(self, title: str, body: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


class DesktopNotifier(Notifier):
    """Shells out to the platform notification command.

    macOS uses osascript, Linux uses notify-send and Windows shows a toast
    through PowerShell. Other platforms have no notifications.
    """

    def __init__(self) -> None:
        self._command = self._resolve_command()

    @staticmethod
    def _resolve_command() -> str | None:
        if sys.platform == "darwin":
            return shutil.which("osascript")
        if sys.platform.startswith("linux"):
            return shutil.which("notify-send")
        if sys.platform.startswith("win"):
            return shutil.which("powershell")
        return None

    def permission_granted(self) -> bool:
        return self._command is not None

    def request_permission(self) -> bool:
        if self._command is None:
            logger.warning("No desktop notification command found for platform %s", sys.platform)
            return False
        return True

    def notify(self, title: str, body: str) -> None:
        if self._command is None:
            raise RuntimeError("Desktop notifications are not available on this system")
        if sys.platform == "darwin":
            script = 'display notification "{}" with title "{}"'.format(_quote_safe(body), _quote_safe(title))
            subprocess.Popen([self._command, "-e", script])
        elif sys.platform.startswith("win"):
            script = TOAST_SCRIPT.format(title=_quote_safe(title), body=_quote_safe(body), app=APP_NAME)
            subprocess.Popen(
                [self._command, "-NoProfile", "-Command", script],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        else:
            subprocess.Popen([self._command, "--app-name", APP_NAME, title, body])
