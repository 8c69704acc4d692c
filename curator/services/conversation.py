"""
Conversation service: chats with a user until their news interests are
understood, then hands back a third-person interest description.
"""
import uuid
from typing import Dict, List, Optional
from curator.models.articles import ChatMessage, ChatReply
from curator.prompts import (
    CHAT_SYSTEM_PROMPT,
    CHAT_WELCOME_MESSAGE,
    CONVERSATION_COMPLETE_MARKER,
    CONVERSATION_COMPLETE_MESSAGE,
    CONVERSATION_FALLBACK_MESSAGE,
)
from curator.services.llm import LLMService, LLMError, llm
from curator.services.logger import logger


class ConversationService:
    def __init__(self, llm_service: Optional[LLMService] = None):
        self.llm = llm_service or llm
        self.sessions: Dict[str, List[ChatMessage]] = {}

    def start_session(self) -> ChatReply:
        session_id = f"chat_{uuid.uuid4().hex[:12]}"
        self.sessions[session_id] = []
        logger.info(f"💬 Chat session started: {session_id}")
        return ChatReply(session_id=session_id, response=CHAT_WELCOME_MESSAGE)

    def build_messages(self, message: str, history: List[ChatMessage]) -> List[Dict[str, str]]:
        messages = [{'role': 'system', 'content': CHAT_SYSTEM_PROMPT}]
        messages.extend({'role': m.role, 'content': m.content} for m in history)
        messages.append({'role': 'user', 'content': message})
        return messages

    @staticmethod
    def is_complete(response: str) -> bool:
        return CONVERSATION_COMPLETE_MARKER in (response or "")

    async def handle_message(self, session_id: str, message: str) -> ChatReply:
        history = self.sessions.setdefault(session_id, [])
        try:
            response = await self.llm.call_with_retry(self.build_messages(message, history))
        except LLMError as e:
            logger.error(f"❌ Conversation generation failed: {e}")
            return ChatReply(session_id=session_id, response=CONVERSATION_FALLBACK_MESSAGE)

        if self.is_complete(response):
            interests = response.replace(CONVERSATION_COMPLETE_MARKER, "").strip()
            logger.info(f"🔄 Conversation complete for {session_id}: {interests[:100]}")
            self.sessions.pop(session_id, None)
            return ChatReply(
                session_id=session_id,
                response=CONVERSATION_COMPLETE_MESSAGE,
                conversation_complete=True,
                user_interests=interests,
            )

        history.append(ChatMessage(role="user", content=message))
        history.append(ChatMessage(role="assistant", content=response))
        return ChatReply(session_id=session_id, response=response)

conversation_service = ConversationService()
