"""
Shared pytest fixtures and configuration for all tests
"""
import asyncio
import io
from typing import Dict, List, Optional, Union

import pytest
from PIL import Image

from redesign_api.utils.images import InlineImage

TEST_STYLES = ["Modern", "Scandinavian", "Industrial", "Bohemian"]


class FakeGenerationGateway:
    """
    In-memory GenerationGateway.

    Each result encodes what was asked for, e.g. ``b"style:Modern|<source bytes>"``
    or ``b"edit:<prompt>|<base bytes>"``, so tests can tell which call produced
    an image. ``failures`` maps a prompt to the exception to raise and
    ``gates`` maps a prompt to an asyncio.Event the call waits on, or to a list
    of events handed out one per call. ``completed`` records every returned
    image in completion order as ``(prompt, image)``.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.failures: Dict[str, Exception] = {}
        self.gates: Dict[str, Union[asyncio.Event, List[asyncio.Event]]] = {}
        self.completed: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _next_gate(self, prompt: str) -> Optional[asyncio.Event]:
        gate = self.gates.get(prompt)
        if isinstance(gate, list):
            return gate.pop(0) if gate else None
        return gate

    async def request_redesign(self, image: InlineImage, prompt: str, is_refinement: bool = False) -> InlineImage:
        self.calls.append((image, prompt, is_refinement))
        gate = self._next_gate(prompt)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            if gate is not None:
                await gate.wait()
            if prompt in self.failures:
                raise self.failures[prompt]
        finally:
            self.in_flight -= 1

        prefix = b"edit:" if is_refinement else b"style:"
        result = InlineImage(data=prefix + prompt.encode() + b"|" + image.data, mime_type="image/png")
        self.completed.append((prompt, result))
        return result

    def prompts(self, is_refinement: Optional[bool] = None) -> List[str]:
        return [prompt for _, prompt, refinement in self.calls if is_refinement is None or refinement == is_refinement]


class FakeConversationGateway:
    """In-memory ConversationGateway replying from a queue of strings or exceptions"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.replies: list = []
        self.gate: Optional[asyncio.Event] = None

    async def send_turn(self, style: str, message: str) -> str:
        self.calls.append((style, message))
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0) if self.replies else f"Great question about {style}!"
        if isinstance(reply, Exception):
            raise reply
        return reply


async def wait_until(predicate, attempts: int = 100):
    """Yield to the event loop until predicate() holds"""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def _encode(color: str, image_format: str) -> bytes:
    img = Image.new("RGB", (64, 48), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def sample_png_bytes():
    """A small, valid PNG room photo"""
    return _encode("beige", "PNG")


@pytest.fixture
def sample_jpeg_bytes():
    return _encode("beige", "JPEG")


@pytest.fixture
def room_image(sample_png_bytes):
    return InlineImage(data=sample_png_bytes, mime_type="image/png")


@pytest.fixture
def generation_gateway():
    return FakeGenerationGateway()


@pytest.fixture
def conversation_gateway():
    return FakeConversationGateway()


@pytest.fixture
def test_styles():
    return list(TEST_STYLES)


@pytest.fixture
def wait_for():
    return wait_until
