"""Tests for Telegram and agent hook delivery."""
from unittest.mock import AsyncMock, MagicMock

import pytest
import requests
from telegram.constants import ParseMode
from telegram.error import TelegramError

from stravabridge.delivery.clawdbot import ClawdbotClient
from stravabridge.delivery.telegram import DeliveryError, TelegramSender


class TestTelegramSender:
    @pytest.mark.asyncio
    async def test_short_message_sent_once(self):
        bot = AsyncMock()
        sender = TelegramSender("token", "42", bot=bot)

        parts = await sender.send_html("<b>hi</b>")

        assert parts == ["<b>hi</b>"]
        bot.send_message.assert_awaited_once()
        kwargs = bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == "42"
        assert kwargs["text"] == "<b>hi</b>"
        assert kwargs["parse_mode"] == ParseMode.HTML
        assert kwargs["link_preview_options"].is_disabled is True

    @pytest.mark.asyncio
    async def test_long_message_sent_in_parts(self):
        bot = AsyncMock()
        text = "\n".join("x" * 99 for _ in range(80))
        parts = await TelegramSender("token", "42", bot=bot).send_html(text)

        assert len(parts) == 3
        assert bot.send_message.await_count == 3
        sent = [c.kwargs["text"] for c in bot.send_message.call_args_list]
        assert sent == parts
        assert sent[0].startswith("<b>(1/3)</b>\n")

    @pytest.mark.asyncio
    async def test_telegram_error_becomes_delivery_error(self):
        bot = AsyncMock()
        bot.send_message.side_effect = TelegramError("chat not found")
        with pytest.raises(DeliveryError, match="chat not found"):
            await TelegramSender("token", "42", bot=bot).send_html("hi")


class TestClawdbotClient:
    def _client(self, session=None, token="hook-token"):
        return ClawdbotClient(
            "http://gateway:18789/", token, "42", timeout=3.0, session=session or MagicMock(),
        )

    def test_url_and_body(self):
        client = self._client()
        assert client.url == "http://gateway:18789/hooks/agent"
        assert client.build_body("prompt", {"k": 1}) == {
            "message": "prompt",
            "name": "Strava",
            "sessionKey": "hook:strava",
            "wakeMode": "now",
            "deliver": True,
            "channel": "telegram",
            "to": "42",
            "meta": {"k": 1},
        }

    def test_body_without_meta(self):
        assert "meta" not in self._client().build_body("prompt")

    @pytest.mark.asyncio
    async def test_send_posts_with_bearer(self):
        session = MagicMock()
        await self._client(session).send("prompt", {"k": 1})

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args == ("http://gateway:18789/hooks/agent",)
        assert kwargs["headers"] == {"Authorization": "Bearer hook-token"}
        assert kwargs["json"]["message"] == "prompt"
        assert kwargs["timeout"] == 3.0

    @pytest.mark.asyncio
    async def test_missing_token(self):
        session = MagicMock()
        with pytest.raises(DeliveryError, match="CLAWDBOT_HOOK_TOKEN"):
            await self._client(session, token="").send("prompt")
        session.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_failure(self):
        session = MagicMock()
        session.post.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        with pytest.raises(DeliveryError, match="500"):
            await self._client(session).send("prompt")
