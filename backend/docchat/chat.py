import asyncio
import time
from datetime import datetime
from enum import Enum
from typing import List, Optional, Set

from . import config
from .errors import ValidationError
from .logger import get_logger
from .models import MODES, Document, Message

logger = get_logger(__name__)

PERSONA = "You are a document assistant."
LANGUAGE_NOTE = "Note: Detect user language and reply in the same language."


class ChatState(str, Enum):
    IDLE = "idle"
    SENDING = "sending"


def build_system_instruction(doc: Document) -> str:
    return (
        f"{PERSONA}\n"
        f"Context: {doc.content[:config.CONTEXT_CHAR_LIMIT]}\n"
        f"Instruction: {doc.instruction}\n"
        f"{LANGUAGE_NOTE}"
    )


class ChatSession:
    """Message log and send state for one chat view.

    At most one AI request is outstanding at a time; ``submit`` while a request
    is in flight does nothing. Messages live only in memory and are dropped
    when the bound document changes.
    """

    def __init__(self, ai, document: Optional[Document] = None, mode: str = "doc",
                 owner_id: Optional[str] = None):
        self.ai = ai
        self.owner_id = owner_id
        self.document = document
        self.mode = "doc"
        self.set_mode(mode)
        self.state = ChatState.IDLE
        self.messages: List[Message] = []
        self.selected: Set[str] = set()
        self._pending: Optional[asyncio.Task] = None
        self._last_id = 0
        self._generation = 0

    def bind(self, document: Optional[Document]) -> None:
        self._generation += 1
        self.document = document
        self.messages = []
        self.selected = set()

    def set_mode(self, mode: str) -> None:
        if mode not in MODES:
            raise ValidationError(f"Unknown mode '{mode}'")
        self.mode = mode

    def _next_id(self) -> str:
        # Millisecond clock, bumped when two messages land in the same tick
        self._last_id = max(int(time.time() * 1000), self._last_id + 1)
        return str(self._last_id)

    def _append(self, role: str, text: str, source: str) -> Message:
        msg = Message(
            id=self._next_id(),
            role=role,
            text=text,
            timestamp=datetime.now().strftime("%H:%M:%S"),
            source=source,
        )
        self.messages.append(msg)
        return msg

    async def submit(self, prompt: str) -> Optional[Message]:
        """Send ``prompt`` and return the model's reply.

        Returns ``None`` without doing anything when the prompt is blank, no
        document is bound, or a request is already in flight. AI failures
        propagate after the session is back to idle; the user message is kept.
        """
        if not prompt or not prompt.strip():
            return None
        if self.document is None or self.state is ChatState.SENDING:
            return None

        mode = self.mode
        doc = self.document
        generation = self._generation
        history = list(self.messages)
        self._append("user", prompt, mode)
        self.state = ChatState.SENDING
        try:
            self._pending = asyncio.ensure_future(
                self.ai.generate(
                    build_system_instruction(doc),
                    history,
                    prompt,
                    web_search=mode in ("web", "both"),
                )
            )
            text = await self._pending
        except Exception as e:
            logger.warning(f"Chat request failed: {e}")
            raise
        finally:
            self._pending = None
            self.state = ChatState.IDLE

        if self._generation != generation:
            # Rebound while the request was in flight; the reply belongs to the old log
            return None
        return self._append("model", text, mode)

    # ---------- selection ----------

    def toggle_selection(self, message_id: str) -> None:
        if not any(m.id == message_id for m in self.messages):
            raise ValidationError("Unknown message")
        if message_id in self.selected:
            self.selected.discard(message_id)
        else:
            self.selected.add(message_id)

    def cancel_selection(self) -> None:
        self.selected = set()

    def selected_messages(self) -> List[Message]:
        return [m for m in self.messages if m.id in self.selected]

    def delete_selected(self) -> int:
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.id not in self.selected]
        self.selected = set()
        return before - len(self.messages)
