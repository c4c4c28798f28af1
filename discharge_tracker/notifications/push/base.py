import logging
from typing import Optional

from discharge_tracker.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def send_push(
    token: str,
    title: str,
    body: str,
    *,
    reason: Optional[str] = None,
) -> None:
    """
    Device push abstraction.

    - If settings.push_enabled is False:
        just log that the push would have been sent (sandbox mode).
    - Otherwise:
        deliver through the FCM client; HTTP failures propagate to the caller.

    `reason` is a free-text label like:
      - "SLA_BREACH"
      - "NEW_TICKET"
    """
    debug_reason = f" [{reason}]" if reason else ""

    if not settings.push_enabled:
        logger.info(f"[PUSH DISABLED{debug_reason}] To: {token[:12]}..., Title: {title!r}, Body: {body!r}")
        return

    from discharge_tracker.notifications.push.fcm_client import send_via_fcm

    send_via_fcm(token, title, body)
    logger.info(f"[PUSH SENT{debug_reason}] To: {token[:12]}..., Title: {title!r}")
