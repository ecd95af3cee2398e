"""Direct Telegram delivery of the HTML activity summary."""
import logging
from typing import List, Optional

from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError

from stravabridge.formatting.formatters import chunk_text

logger = logging.getLogger(__name__)


class DeliveryError(Exception):
    """Raised when an outbound message could not be delivered."""


class TelegramSender:
    """Sends HTML messages to one chat, splitting long messages into parts."""

    def __init__(self, token: str, chat_id: str, bot: Optional[Bot] = None):
        self.chat_id = chat_id
        self._bot = bot or Bot(token=token)

    async def send_html(self, html: str) -> List[str]:
        """
        Send `html` as one or more messages.

        Returns:
            The chunks that were sent, in order.

        Raises:
            DeliveryError: if Telegram rejects any chunk.
        """
        parts = chunk_text(html)
        try:
            async with self._bot:
                for part in parts:
                    await self._bot.send_message(
                        chat_id=self.chat_id,
                        text=part,
                        parse_mode=ParseMode.HTML,
                        link_preview_options=LinkPreviewOptions(is_disabled=True),
                    )
        except TelegramError as exc:
            raise DeliveryError(f"Telegram send failed: {exc}") from exc
        logger.info("Sent %d Telegram message(s) to chat %s", len(parts), self.chat_id)
        return parts
