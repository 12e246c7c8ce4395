import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, messaging

from app.config import settings

logger = logging.getLogger(__name__)


class PushSender:
    """
    Firebase Cloud Messaging sender.

    Only initialised when FCM credentials are configured; otherwise every send
    is skipped with a warning. Sending never raises.
    """

    def __init__(self):
        self.messaging = None

        if not settings.fcm_configured:
            logger.warning(
                "FCM credentials not provided. Required: FCM_PROJECT_ID, FCM_PRIVATE_KEY, FCM_CLIENT_EMAIL"
            )
            return

        try:
            credential = credentials.Certificate({
                "type": "service_account",
                "project_id": settings.FCM_PROJECT_ID,
                "private_key": settings.FCM_PRIVATE_KEY.replace("\\n", "\n"),
                "client_email": settings.FCM_CLIENT_EMAIL,
                "token_uri": "https://oauth2.googleapis.com/token",
            })
            firebase_admin.initialize_app(credential)
            self.messaging = messaging
            logger.info("Firebase Admin initialized")
        except Exception:
            logger.exception("Firebase Admin initialization failed")
            self.messaging = None

    def send(
        self,
        device_token: str,
        notification: Dict[str, str],
        data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if not self.messaging:
            logger.warning("FCM not configured, skipping notification")
            return False

        data = {k: str(v) for k, v in (data or {}).items()}

        message = self.messaging.Message(
            token=device_token,
            notification=self.messaging.Notification(
                title=notification["title"],
                body=notification["body"],
            ),
            data={**data, "click_action": "FLUTTER_NOTIFICATION_CLICK"},
            android=self.messaging.AndroidConfig(
                priority="high",
                notification=self.messaging.AndroidNotification(
                    sound="default",
                    channel_id="campus_eats_notifications",
                ),
            ),
        )

        try:
            message_id = self.messaging.send(message)
            logger.info(f"Notification sent successfully: {message_id}")
            return True
        except Exception:
            logger.exception("Failed to send notification")
            return False


_push_sender: Optional[PushSender] = None


def get_push_sender() -> PushSender:
    global _push_sender
    if _push_sender is None:
        _push_sender = PushSender()
    return _push_sender


def set_push_sender(sender) -> None:
    global _push_sender
    _push_sender = sender
