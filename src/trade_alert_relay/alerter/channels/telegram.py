"""Telegram Bot API channel implementation."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}/sendMessage"
DEFAULT_TIMEOUT = 10.0


class TelegramChannel:
    """Telegram Bot API channel for sending messages.

    Each send is a single ``sendMessage`` call bounded by ``timeout``;
    failures are reported to the caller and never retried.
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        name: str = "telegram",
        parse_mode: str = "Markdown",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize Telegram channel.

        Args:
            bot_token: Telegram bot token.
            chat_id: Default target chat/channel ID.
            name: Channel name used in logs.
            parse_mode: Telegram parse mode for message text.
            timeout: HTTP request timeout in seconds.
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.name = name
        self.parse_mode = parse_mode
        self.timeout = timeout

        self._api_url = TELEGRAM_API_BASE.format(token=bot_token)

    async def send(
        self,
        text: str,
        *,
        chat_id: int | str | None = None,
        disable_web_page_preview: bool = False,
    ) -> bool:
        """Send a message to Telegram.

        Args:
            text: Message text in the configured parse mode.
            chat_id: Override target chat, e.g. to reply to a user.
            disable_web_page_preview: Suppress link previews.

        Returns:
            True if delivery succeeded, False otherwise.
        """
        payload: dict[str, object] = {
            "chat_id": chat_id if chat_id is not None else self.chat_id,
            "text": text,
            "parse_mode": self.parse_mode,
        }
        if disable_web_page_preview:
            payload["disable_web_page_preview"] = True

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self._api_url, json=payload)
                result = response.json()
        except httpx.TimeoutException:
            logger.error(f"Telegram API timeout on {self.name}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Telegram API error on {self.name}: {e}")
            return False
        except ValueError as e:
            logger.error(f"Telegram API returned invalid JSON on {self.name}: {e}")
            return False

        if result.get("ok"):
            logger.info(f"Telegram message delivered via {self.name}")
            return True

        error_code = result.get("error_code", 0)
        description = result.get("description", "Unknown error")
        logger.error(f"Telegram API error on {self.name}: {error_code} - {description}")
        return False
