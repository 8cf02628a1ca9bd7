import logging
import os

import httpx

from app.services.notification_service import PushMessage, UnregisteredToken


logger = logging.getLogger(__name__)

# gateway answers for a token the provider has dropped
UNREGISTERED_STATUSES = {404, 410}


class PushGatewaySender:
    """
    Posts one push message per device token to an HTTP push gateway.

    The gateway fronts the actual provider (FCM/APNs) and answers 404/410
    for tokens that are no longer registered; those surface as
    ``UnregisteredToken`` so the caller can prune them.
    """

    TIMEOUT_SECONDS = 10

    def __init__(self, url: str, api_key: str | None = None, *, client: httpx.Client | None = None):
        if not url:
            raise ValueError("PushGatewaySender requires a gateway url")

        self.url = url.strip()
        self.headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if api_key:
            self.headers["Authorization"] = f"Bearer {api_key.strip()}"

        self.client = client or httpx.Client(timeout=self.TIMEOUT_SECONDS)

    def __call__(self, token: str, message: PushMessage):
        payload = {
            "token": token,
            "notification": {"title": message.title, "body": message.body},
            "data": message.data,
        }
        response = self.client.post(self.url, json=payload, headers=self.headers)

        if response.status_code in UNREGISTERED_STATUSES:
            raise UnregisteredToken(token)
        response.raise_for_status()

    def close(self):
        self.client.close()


def sender_from_env() -> PushGatewaySender | None:
    url = os.getenv("PUSH_GATEWAY_URL", "").strip()
    if not url:
        logger.warning("PUSH_GATEWAY_URL is not set, push delivery disabled")
        return None
    return PushGatewaySender(url, os.getenv("PUSH_GATEWAY_API_KEY", "").strip() or None)
