import logging

import httpx

from discharge_tracker.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


class PushNotConfiguredError(RuntimeError):
    pass


def send_via_fcm(
    token: str,
    title: str,
    body: str,
) -> None:
    """
    Send a device push through the FCM HTTP endpoint.

    The android block asks for the custom notification sound and the
    high-importance channel so breach alerts ring through on ward devices.
    """
    if not settings.fcm_server_key:
        raise PushNotConfiguredError("FCM_SERVER_KEY is not configured")

    headers = {
        "Authorization": f"key={settings.fcm_server_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "to": token,
        "priority": "high",
        "notification": {
            "title": title,
            "body": body,
            "sound": "notification",
            "android_channel_id": settings.push_channel_id,
        },
        "android": {
            "priority": "high",
            "notification": {
                "sound": "notification",
                "channel_id": settings.push_channel_id,
                "visibility": "public",
            },
        },
    }
    try:
        response = httpx.post(settings.fcm_endpoint, json=payload, headers=headers, timeout=10.0)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error(f"[PUSH ERROR] Failed to send push: {exc}")
        raise
