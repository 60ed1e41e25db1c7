"""Chat exchange: role-tagged messages in, raw assistant text out."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence

from deepseek_json.dispatcher import RequestDispatcher
from deepseek_json.models import Message

logger = logging.getLogger(__name__)


class ChatBackend(ABC):
    """Anything that can answer a conversation with one assistant reply."""

    @abstractmethod
    async def complete(self, messages: Sequence[Message]) -> str:
        """Send the conversation and return the raw assistant content.

        Args:
            messages: The full history, oldest first.

        Returns:
            The assistant's reply text, unparsed.

        Raises:
            DeepSeekError: On transport, HTTP or body-level failure.
        """
        ...


class ChatExchange(ChatBackend):
    """ChatBackend over a RequestDispatcher, without retries."""

    def __init__(self, dispatcher: RequestDispatcher) -> None:
        self._dispatcher = dispatcher

    async def complete(self, messages: Sequence[Message]) -> str:
        # Snapshot so later appends by the caller cannot leak into this request.
        snapshot = tuple(messages)
        logger.debug("Sending %d messages to %s", len(snapshot), self._dispatcher.config.model)
        return await self._dispatcher.send(snapshot)
