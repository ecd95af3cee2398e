"""
Coaching agent hook client.

The Clawdbot gateway runs the coaching prompt through its agent and delivers
the reply to Telegram itself; we only POST the prompt and the data payload.
"""
import asyncio
from typing import Any, Dict, Optional

import requests

from stravabridge.delivery.telegram import DeliveryError


class ClawdbotClient:
    """Posts coaching prompts to {gateway_url}/hooks/agent."""

    def __init__(
        self,
        gateway_url: str,
        hook_token: str,
        chat_id: str,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = f"{gateway_url.rstrip('/')}/hooks/agent"
        self.hook_token = hook_token
        self.chat_id = chat_id
        self.timeout = timeout
        self._session = session or requests.Session()

    def build_body(self, message: str, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "message": message,
            "name": "Strava",
            "sessionKey": "hook:strava",
            "wakeMode": "now",
            "deliver": True,
            "channel": "telegram",
            "to": self.chat_id,
        }
        if meta:
            body["meta"] = meta
        return body

    async def send(self, message: str, meta: Optional[Dict[str, Any]] = None) -> None:
        """
        Deliver a prompt to the agent.

        Raises:
            DeliveryError: when no hook token is configured or the POST fails.
        """
        if not self.hook_token:
            raise DeliveryError("Missing CLAWDBOT_HOOK_TOKEN")
        loop = asyncio.get_event_loop()
        await loop.run_in_executor(None, lambda: self._post(self.build_body(message, meta)))

    def _post(self, body: Dict[str, Any]) -> None:
        try:
            resp = self._session.post(
                self.url,
                json=body,
                headers={"Authorization": f"Bearer {self.hook_token}"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise DeliveryError(f"Agent hook POST failed: {exc}") from exc
