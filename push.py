"""Expo push transport."""
import logging
import re
from typing import Optional

import httpx

from config import EXPO_PUSH_URL, PUSH_TIMEOUT_SECONDS
from errors import DeliveryWarning

logger = logging.getLogger(__name__)

_EXPO_TOKEN = re.compile(r"^(ExponentPushToken|ExpoPushToken)\[[^\]]+\]$")

HEADERS = {
    "Accept": "application/json",
    "Accept-Encoding": "gzip, deflate",
}


def is_expo_push_token(token: str) -> bool:
    return bool(token) and bool(_EXPO_TOKEN.match(token))


class ExpoPushClient:
    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        timeout: float = PUSH_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    def send(self, token: str, title: str, body: str, payload: Optional[dict] = None) -> bool:
        """
        Deliver one message to one device, a single attempt.

        Returns False for tokens Expo would never accept and for tickets
        that come back with an error. Any failure around the HTTP
        exchange itself surfaces as DeliveryWarning.
        """
        if not is_expo_push_token(token):
            logger.warning("Skipping push to invalid Expo token %r", token)
            return False

        message = {
            "to": token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": payload or {},
            "priority": "high",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(self.url, json=[message], headers=HEADERS)
                response.raise_for_status()
                tickets = response.json().get("data", [])
        except Exception as e:
            raise DeliveryWarning(f"Push to {token} failed: {e}", token=token) from e

        if isinstance(tickets, dict):
            tickets = [tickets]
        delivered = any(
            isinstance(ticket, dict) and ticket.get("status") == "ok" for ticket in tickets
        )
        if not delivered:
            logger.warning("Expo rejected push to %s: %s", token, tickets)
        return delivered


push_client = ExpoPushClient()


def get_push_client() -> ExpoPushClient:
    return push_client
