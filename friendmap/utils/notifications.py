import asyncio
import logging
from typing import Dict, List, Optional

from pyfcm import FCMNotification
from pyfcm.errors import FCMError, FCMNotRegisteredError
from requests.exceptions import RequestException

from friendmap.core.config import settings


logger = logging.getLogger(__name__)


class NoopPush:

    enabled = False

    async def send_fcm(self, tokens: List[str], title: str, body: str, data: Optional[dict] = None) -> List[str]:
        return []


class FcmPush:

    enabled = True

    def __init__(self, service_account_file: str, project_id: str) -> None:
        self._client = FCMNotification(service_account_file=service_account_file, project_id=project_id)

    async def send_fcm(self, tokens: List[str], title: str, body: str, data: Optional[dict] = None) -> List[str]:
        """Send to every token; returns the tokens FCM no longer recognizes."""
        if not tokens:
            return []
        # FCM v1 data payload values must be strings
        payload: Dict[str, str] = {k: str(v) for k, v in (data or {}).items()}
        invalid: List[str] = []
        success = 0
        for token in tokens:
            try:
                # pyfcm is sync (requests); keep it off the event loop
                await asyncio.to_thread(
                    self._client.notify,
                    fcm_token=token,
                    notification_title=title,
                    notification_body=body,
                    data_payload=payload,
                )
                success += 1
            except FCMNotRegisteredError:
                invalid.append(token)
            except (FCMError, RequestException):
                # one bad token or network hiccup must not stop the rest
                logger.warning("FCM send failed for token %s...", token[:12], exc_info=True)
        logger.info("FCM sent: %d success, %d failure", success, len(tokens) - success)
        return invalid


_push = None


async def get_push():
    global _push
    if _push is not None:
        return _push
    if not settings.FCM_SERVICE_ACCOUNT_FILE or not settings.FCM_PROJECT_ID:
        logger.warning("FCM_SERVICE_ACCOUNT_FILE / FCM_PROJECT_ID not set; FCM disabled")
        _push = NoopPush()
        return _push
    try:
        _push = FcmPush(settings.FCM_SERVICE_ACCOUNT_FILE, settings.FCM_PROJECT_ID)
        logger.info("FCM initialized")
    except (OSError, ValueError):
        logger.exception("FCM init failed")
        _push = NoopPush()
    return _push
