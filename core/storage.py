"""
In-memory conversation and message store
"""
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Any, Iterable
from dataclasses import dataclass, field
from core.logger import setup_logger

logger = setup_logger(__name__)

MESSAGE_ROLES = ("user", "assistant")

class ConversationNotFoundError(KeyError):
    """Raised when a message refers to an unknown conversation"""

@dataclass
class Conversation:
    """Conversation metadata; messages are stored separately"""
    title: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }

@dataclass(frozen=True)
class Message:
    """Single turn in a conversation (immutable once created)"""
    conversation_id: str
    role: str  # 'user' or 'assistant'
    content: str
    audio_url: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "role": self.role,
            "content": self.content,
            "audioUrl": self.audio_url,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_history(self) -> Dict[str, str]:
        """Message in LLM chat format"""
        return {"role": self.role, "content": self.content}

class ConversationStore:
    """
    Keyed in-memory store for conversations and their messages.

    Messages keep insertion order, which is also creation order. Adding or
    removing a message bumps the owning conversation's ``updated_at``.
    """

    def __init__(self):
        self.conversations: Dict[str, Conversation] = {}
        self.messages: Dict[str, Message] = {}
        logger.info("ConversationStore initialized")

    # === Conversations ===

    def list_conversations(self) -> List[Conversation]:
        """All conversations, most recently updated first"""
        return sorted(
            self.conversations.values(),
            key=lambda c: c.updated_at,
            reverse=True
        )

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self.conversations.get(conversation_id)

    def create_conversation(self, title: str) -> Conversation:
        now = datetime.now()
        conversation = Conversation(title=title, created_at=now, updated_at=now)
        self.conversations[conversation.id] = conversation
        logger.info(f"Created conversation: {conversation.id[:8]}")
        return conversation

    def update_conversation(self, conversation_id: str, **changes) -> Optional[Conversation]:
        """Apply field changes (currently only ``title``) and bump ``updated_at``"""
        conversation = self.conversations.get(conversation_id)
        if not conversation:
            return None
        if "title" in changes:
            conversation.title = changes["title"]
        conversation.updated_at = datetime.now()
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation and every message it owns"""
        deleted = self.conversations.pop(conversation_id, None) is not None
        owned = [mid for mid, msg in self.messages.items() if msg.conversation_id == conversation_id]
        for mid in owned:
            del self.messages[mid]
        if deleted:
            logger.info(f"Deleted conversation {conversation_id[:8]} ({len(owned)} messages)")
        return deleted

    # === Messages ===

    def list_messages(self, conversation_id: str) -> List[Message]:
        """Messages of one conversation, oldest first"""
        return [msg for msg in self.messages.values() if msg.conversation_id == conversation_id]

    def create_message(
        self,
        conversation_id: str,
        role: str,
        content: str,
        audio_url: Optional[str] = None
    ) -> Message:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Invalid message role: {role}")

        now = datetime.now()
        message = Message(
            conversation_id=conversation_id,
            role=role,
            content=content,
            audio_url=audio_url,
            timestamp=now
        )
        self.messages[message.id] = message
        conversation.updated_at = now
        logger.debug(f"Conversation {conversation_id[:8]}: added {role} message")
        return message

    def delete_message(self, message_id: str) -> bool:
        message = self.messages.pop(message_id, None)
        if message is None:
            return False
        self._touch(message.conversation_id)
        return True

    def delete_messages(self, message_ids: Iterable[str]) -> bool:
        """Delete several messages; True if at least one was removed"""
        removed = False
        for message_id in message_ids:
            removed = self.delete_message(message_id) or removed
        return removed

    def _touch(self, conversation_id: str):
        conversation = self.conversations.get(conversation_id)
        if conversation:
            conversation.updated_at = datetime.now()
