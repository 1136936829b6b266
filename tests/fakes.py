"""Deterministic stand-ins for the embedding and chat backends."""
import json
import re
import zlib
from typing import Callable, List, Optional

import httpx

DIMENSION = 256

ROAD_TENDER_ID = "road-maintenance-2024"
DRAFT_TENDER_ID = "bridge-repair-draft"
EMPTY_TENDER_ID = "empty-published"


def words(count: int, prefix: str = "word") -> str:
    """A text of `count` distinct whitespace-separated tokens."""
    return " ".join(f"{prefix}{i}" for i in range(count))


def bag_of_words(text: str, dimension: int = DIMENSION) -> List[float]:
    """Hash each lowercase word into a bucket so shared words mean nearby vectors."""
    vector = [0.0] * dimension
    for word in re.findall(r"[a-z0-9]+", text.lower()):
        vector[zlib.crc32(word.encode()) % dimension] += 1.0
    return vector


class FakeBackend:
    """Answers requests the way an OpenAI-compatible API does and records them."""

    def __init__(self, chat_reply: str = "", dimension: int = DIMENSION):
        self.chat_reply = chat_reply
        self.dimension = dimension
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[Callable[[httpx.Request, dict], httpx.Response]] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        payload = json.loads(request.content)

        if self.fail_with is not None:
            return self.fail_with(request, payload)

        if request.url.path.endswith("/embeddings"):
            embedding = bag_of_words(payload["input"], self.dimension)
            return httpx.Response(200, json={"data": [{"embedding": embedding}]})

        return httpx.Response(
            200,
            json={"choices": [{"message": {"role": "assistant", "content": self.chat_reply}}]},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, path_suffix: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(path_suffix)]

    def payloads(self, path_suffix: str) -> List[dict]:
        return [json.loads(r.content) for r in self.calls(path_suffix)]
