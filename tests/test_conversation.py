from curator.prompts import CHAT_WELCOME_MESSAGE, CONVERSATION_COMPLETE_MESSAGE, CONVERSATION_FALLBACK_MESSAGE
from curator.services.conversation import ConversationService
from curator.services.llm import LLMTimeoutError
from tests.fakes import FakeLLM


async def test_conversation_collects_history_until_complete():
    llm = FakeLLM([
        "What draws you to AI news?",
        "The user follows AI research and chip policy. [CONVERSATION_COMPLETE]",
    ])
    service = ConversationService(llm_service=llm)

    start = service.start_session()
    assert start.response == CHAT_WELCOME_MESSAGE
    assert start.session_id.startswith("chat_")

    first = await service.handle_message(start.session_id, "I like AI")
    assert first.response == "What draws you to AI news?"
    assert not first.conversation_complete
    assert [m.role for m in service.sessions[start.session_id]] == ["user", "assistant"]

    done = await service.handle_message(start.session_id, "Research and policy")
    assert done.conversation_complete
    assert done.response == CONVERSATION_COMPLETE_MESSAGE
    assert done.user_interests == "The user follows AI research and chip policy."
    assert start.session_id not in service.sessions

    # History from the first turn is sent with the second
    second_call = llm.calls[1]["messages"]
    assert [m["role"] for m in second_call] == ["system", "user", "assistant", "user"]


async def test_llm_failure_returns_fallback_reply():
    service = ConversationService(llm_service=FakeLLM([LLMTimeoutError("slow")]))
    session = service.start_session()

    reply = await service.handle_message(session.session_id, "hello")

    assert reply.response == CONVERSATION_FALLBACK_MESSAGE
    assert not reply.conversation_complete
    assert service.sessions[session.session_id] == []
