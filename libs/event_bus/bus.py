import asyncio
import json
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

_logger = logging.getLogger(__name__)

STATE_TOPIC = "car.state"


class TopicBus:
    """Best-effort fan-out of JSON messages to websocket subscribers per topic."""

    def __init__(self) -> None:
        self._topics: Dict[str, Set[WebSocket]] = {}
        self._lock = asyncio.Lock()

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def subscribe(self, topic: str, ws: WebSocket) -> None:
        async with self._lock:
            self._topics.setdefault(topic, set()).add(ws)

    async def unsubscribe(self, topic: str, ws: WebSocket) -> None:
        async with self._lock:
            if topic in self._topics:
                self._topics[topic].discard(ws)
                if not self._topics[topic]:
                    del self._topics[topic]

    async def publish(self, topic: str, message: Dict[str, Any]) -> int:
        """Send ``message`` to every subscriber; returns how many received it."""
        async with self._lock:
            conns = list(self._topics.get(topic, set()))
        if not conns:
            return 0
        data = json.dumps(message, ensure_ascii=False)
        dead = []
        for ws in conns:
            try:
                await ws.send_text(data)
            except Exception as e:
                _logger.debug("dropping subscriber on %s: %s", topic, e)
                dead.append(ws)
        if dead:
            async with self._lock:
                for ws in dead:
                    self._topics.get(topic, set()).discard(ws)
        return len(conns) - len(dead)
