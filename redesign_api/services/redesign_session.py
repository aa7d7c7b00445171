"""
Redesign orchestration for one uploaded room photo.

A RedesignSession owns the per-style generated images, the selected style, the
style-scoped conversation and the presentation flags. Upload blocks only on
the first catalog style; the remaining styles are generated one at a time by a
background task. Every gateway result is tagged with the session generation
counter captured when its call started, so results that arrive after a
re-upload are discarded instead of leaking into the new session.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Set

from redesign_api.config.style_definitions import DESIGN_STYLES
from redesign_api.core.errors import RedesignServiceError, classify_provider_error, invalid_request_error
from redesign_api.services.gateways import ConversationGateway, GenerationGateway
from redesign_api.services.reply_classifier import EditImageRequest, classify_reply
from redesign_api.utils.images import InlineImage

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to generate image. Please try again."
EDIT_CONFIRMATION_MESSAGE = "Here is the updated design based on your request."
CHAT_ERROR_MESSAGE = "Sorry, I encountered an error. Please try again."


class SessionPhase(str, Enum):
    """Lifecycle of a room session"""

    EMPTY = "empty"  # No usable upload yet (or the first style failed)
    UPLOADING = "uploading"  # Waiting for the first style
    FIRST_STYLE_READY = "first_style_ready"  # Interactive, background fill not started yet
    BACKGROUND_FILLING = "background_filling"  # Interactive, remaining styles generating
    IDLE = "idle"  # Interactive, background fill finished


class Speaker(str, Enum):
    user = "user"
    assistant = "assistant"


@dataclass
class ConversationTurn:
    speaker: Speaker
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {"speaker": self.speaker.value, "content": self.content, "timestamp": self.timestamp.isoformat()}


@dataclass(frozen=True)
class ChatScope:
    """Chat handle bound to one style; re-created whenever the style scope changes"""

    style: str
    scope_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])


class RedesignSession:
    """State machine for one room session"""

    def __init__(
        self,
        generation_gateway: GenerationGateway,
        conversation_gateway: ConversationGateway,
        styles: Optional[Sequence[str]] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.generation_gateway = generation_gateway
        self.conversation_gateway = conversation_gateway
        self.styles: List[str] = list(DESIGN_STYLES if styles is None else styles)
        if not self.styles:
            raise ValueError("RedesignSession needs at least one style")

        self.phase = SessionPhase.EMPTY
        self.source_image: Optional[InlineImage] = None
        self.generated_images: Dict[str, InlineImage] = {}
        self.current_style: str = self.styles[0]
        self.conversation: List[ConversationTurn] = []
        self.chat_scope: Optional[ChatScope] = None

        # Presentation state
        self.loading_message = ""
        self.error: Optional[str] = None
        self.last_failure: Optional[RedesignServiceError] = None
        self.retry_after_seconds: Optional[int] = None

        self._generation = 0
        self._active_generations = 0
        self._active_chats = 0
        self._background_task: Optional[asyncio.Task] = None
        self._background_tasks: Set[asyncio.Task] = set()

        self.created_at = datetime.now()
        self.last_updated = self.created_at

    # ------------------------------------------------------------------ #
    # Derived state
    # ------------------------------------------------------------------ #

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_generating(self) -> bool:
        """True while an on-demand style generation or a chat edit is outstanding"""
        return self._active_generations > 0

    @property
    def is_chat_loading(self) -> bool:
        return self._active_chats > 0

    @property
    def is_interactive(self) -> bool:
        return self.phase in (SessionPhase.FIRST_STYLE_READY, SessionPhase.BACKGROUND_FILLING, SessionPhase.IDLE)

    @property
    def current_image(self) -> Optional[InlineImage]:
        return self.generated_images.get(self.current_style)

    @property
    def generated_styles(self) -> List[str]:
        return [style for style in self.styles if style in self.generated_images]

    @property
    def pending_styles(self) -> List[str]:
        return [style for style in self.styles if style not in self.generated_images]

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def upload(self, image: InlineImage) -> bool:
        """
        Start a new generation session for an uploaded room photo.

        Returns True once the first style is ready and the session is
        interactive; the remaining styles keep generating in the background.
        Returns False if the first style failed (see ``error`` and
        ``last_failure``) or if a newer upload superseded this one.
        """
        self._generation += 1
        generation = self._generation

        self.source_image = image
        self.generated_images = {}
        self.conversation = []
        self.current_style = self.styles[0]
        self.chat_scope = None
        self._clear_error()
        self.phase = SessionPhase.UPLOADING

        first_style = self.styles[0]
        self.loading_message = f"Generating {first_style} design..."
        self._touch()
        logger.info(f"[{self.session_id[:8]}] Upload started (generation {generation}), generating {first_style}")

        try:
            first_image = await self.generation_gateway.request_redesign(image, first_style, False)
        except Exception as e:
            error = classify_provider_error(e)
            if generation != self._generation:
                return False
            logger.error(f"[{self.session_id[:8]}] First style {first_style} failed ({error.kind.value}): {error.message}")
            self._generation += 1
            self.generated_images = {}
            self.chat_scope = None
            self.phase = SessionPhase.EMPTY
            self.source_image = None
            self.loading_message = ""
            self._record_error(UPLOAD_FAILED_MESSAGE, error)
            return False

        if not self._store_result(first_style, first_image, generation):
            return False

        self.current_style = first_style
        self.conversation = []
        self.chat_scope = ChatScope(first_style)
        self.loading_message = ""
        self.phase = SessionPhase.FIRST_STYLE_READY
        logger.info(f"[{self.session_id[:8]}] {first_style} ready, session interactive")

        self._start_background_fill(image, generation)
        return True

    async def select_style(self, style: str) -> None:
        """Switch the displayed style, generating it on demand if it is not cached"""
        if style not in self.styles:
            raise invalid_request_error(f"Unknown style: {style}")
        if not self.is_interactive:
            raise invalid_request_error("Upload a room photo before selecting a style")

        self.current_style = style
        self.conversation = []
        self.chat_scope = ChatScope(style)
        self._clear_error()
        self._touch()

        if style in self.generated_images or self.source_image is None:
            return

        generation = self._generation
        source_image = self.source_image
        self._active_generations += 1
        try:
            logger.info(f"[{self.session_id[:8]}] Generating {style} on demand")
            result = await self.generation_gateway.request_redesign(source_image, style, False)
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning(f"[{self.session_id[:8]}] On-demand {style} failed ({error.kind.value}): {error.message}")
            if generation == self._generation:
                self._record_error(f"Failed to generate {style} design.", error)
            return
        finally:
            self._active_generations -= 1

        self._store_result(style, result, generation)

    async def send_message(self, text: str) -> None:
        """
        Send a chat message in the current style scope.

        The reply is either appended as an assistant turn or, when it is an
        edit command, applied to the current style's image. Failures become an
        assistant error turn and never a session-level error.
        """
        if not text or not text.strip():
            raise invalid_request_error("message is required")
        if not self.is_interactive or self.chat_scope is None:
            raise invalid_request_error("Upload a room photo before chatting")

        scope = self.chat_scope
        generation = self._generation
        self.conversation.append(ConversationTurn(Speaker.user, text))
        self._touch()

        self._active_chats += 1
        try:
            reply_text = await self.conversation_gateway.send_turn(scope.style, text)
            action = classify_reply(reply_text)
            if isinstance(action, EditImageRequest):
                await self._apply_edit(scope, action.prompt, generation)
            else:
                self._append_assistant_turn(scope, action.text)
        except Exception as e:
            error = classify_provider_error(e)
            logger.warning(f"[{self.session_id[:8]}] Chat failed ({error.kind.value}): {error.message}")
            self._append_assistant_turn(scope, CHAT_ERROR_MESSAGE)
        finally:
            self._active_chats -= 1

    async def wait_for_background(self) -> None:
        """Wait until the current background pre-fill has finished"""
        task = self._background_task
        if task is not None and not task.done():
            await task

    async def close(self) -> None:
        """Stop background work for a discarded session"""
        self._generation += 1
        for task in list(self._background_tasks):
            task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _apply_edit(self, scope: ChatScope, prompt: str, generation: int) -> None:
        current = self.generated_images.get(scope.style)
        if current is None:
            # TODO: decide whether a missing base image should produce an assistant error turn
            logger.info(f"[{self.session_id[:8]}] No {scope.style} image to edit, skipping edit request")
            return

        self._active_generations += 1
        try:
            logger.info(f"[{self.session_id[:8]}] Applying chat edit to {scope.style}")
            edited = await self.generation_gateway.request_redesign(current, prompt, True)
        finally:
            self._active_generations -= 1

        if self._store_result(scope.style, edited, generation):
            self._append_assistant_turn(scope, EDIT_CONFIRMATION_MESSAGE)

    def _start_background_fill(self, image: InlineImage, generation: int) -> None:
        task = asyncio.create_task(self._prefill_remaining_styles(image, generation))
        self._background_task = task
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _prefill_remaining_styles(self, image: InlineImage, generation: int) -> None:
        """Generate every style after the first, strictly one at a time in catalog order"""
        if generation == self._generation:
            self.phase = SessionPhase.BACKGROUND_FILLING

        for style in self.styles[1:]:
            if generation != self._generation:
                logger.info(f"[{self.session_id[:8]}] Background fill for generation {generation} superseded, stopping")
                return
            if style in self.generated_images:
                continue

            try:
                result = await self.generation_gateway.request_redesign(image, style, False)
            except Exception as e:
                error = classify_provider_error(e)
                logger.warning(f"[{self.session_id[:8]}] Background {style} failed ({error.kind.value}), left pending")
                if generation == self._generation and error.retry_after_seconds is not None:
                    self.retry_after_seconds = error.retry_after_seconds
                continue

            self._store_result(style, result, generation)

        if generation == self._generation:
            self.phase = SessionPhase.IDLE
            logger.info(f"[{self.session_id[:8]}] Background fill finished, pending: {self.pending_styles}")

    def _store_result(self, style: str, image: InlineImage, generation: int) -> bool:
        """Insert or overwrite a style's image unless the session was re-uploaded since the call started"""
        if generation != self._generation:
            logger.info(f"[{self.session_id[:8]}] Discarding stale {style} result from generation {generation}")
            return False
        self.generated_images[style] = image
        self._touch()
        return True

    def _append_assistant_turn(self, scope: ChatScope, text: str) -> None:
        """Append a reply only if its chat scope is still the active one"""
        if scope is not self.chat_scope:
            logger.info(f"[{self.session_id[:8]}] Dropping reply for closed {scope.style} conversation")
            return
        self.conversation.append(ConversationTurn(Speaker.assistant, text))
        self._touch()

    def _record_error(self, message: str, error: RedesignServiceError) -> None:
        self.error = message
        self.last_failure = error
        self.retry_after_seconds = error.retry_after_seconds

    def _clear_error(self) -> None:
        self.error = None
        self.last_failure = None
        self.retry_after_seconds = None

    def _touch(self) -> None:
        self.last_updated = datetime.now()

    def to_dict(self, include_images: bool = True, include_original: bool = False) -> Dict[str, Any]:
        """Presentation snapshot of the session"""
        current = self.current_image
        data = {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "styles": list(self.styles),
            "current_style": self.current_style,
            "generated_styles": self.generated_styles,
            "pending_styles": self.pending_styles,
            "conversation": [turn.to_dict() for turn in self.conversation],
            "is_generating": self.is_generating,
            "is_chat_loading": self.is_chat_loading,
            "loading_message": self.loading_message,
            "error": self.error,
            "retry_after_seconds": self.retry_after_seconds,
            "current_image": current.to_data_url() if include_images and current else None,
            "original_image": None,
            "last_updated": self.last_updated.isoformat(),
        }
        if include_original and self.source_image is not None:
            data["original_image"] = self.source_image.to_data_url()
        return data
