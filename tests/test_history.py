from datetime import datetime, timedelta, timezone

import pytest

from app.core import models
from app.chat_gateway.history import normalize_history
from app.chat_gateway.store import ConversationStore


def turn(role, content="..."):
    return {"role": role, "content": content}


def test_empty_history():
    assert normalize_history([]) == []


def test_alternating_history_ending_with_assistant_is_kept():
    turns = [turn("user", "q1"), turn("assistant", "a1")]
    assert normalize_history(turns) == turns


def test_consecutive_same_role_turns_keep_the_first():
    turns = [
        turn("user", "q1"),
        turn("user", "q1 again"),
        turn("assistant", "a1"),
        turn("assistant", "a1 again"),
    ]
    assert normalize_history(turns) == [turn("user", "q1"), turn("assistant", "a1")]


def test_trailing_user_turn_is_dropped():
    turns = [turn("user", "q1"), turn("assistant", "a1"), turn("user", "q2")]
    assert normalize_history(turns) == [turn("user", "q1"), turn("assistant", "a1")]


def test_single_user_turn_becomes_empty():
    assert normalize_history([turn("user", "q1")]) == []


@pytest.mark.parametrize(
    "roles",
    [
        ["user", "user", "user"],
        ["assistant", "user", "user", "assistant", "user"],
        ["user", "assistant", "assistant", "user", "assistant", "user", "user"],
        ["assistant", "assistant"],
    ],
)
def test_never_ends_with_user_and_never_repeats_roles(roles):
    result = normalize_history([turn(role) for role in roles])

    assert not result or result[-1]["role"] == "assistant"
    for previous, current in zip(result, result[1:]):
        assert previous["role"] != current["role"]


def test_input_is_not_modified():
    turns = [turn("user"), turn("user")]
    normalize_history(turns)
    assert len(turns) == 2


@pytest.mark.asyncio
async def test_recent_turns_are_scoped_limited_and_chronological(
    db_session, user_id, other_user_id
):
    """Only the latest turns of this user's conversation, oldest first"""
    start = datetime(2026, 10, 1, tzinfo=timezone.utc)
    for i in range(12):
        db_session.add(
            models.ChatMessage(
                id=f"m{i}",
                user_id=user_id,
                conversation_id="conv-1",
                role="user" if i % 2 == 0 else "assistant",
                content=f"turn {i}",
                created_at=start + timedelta(minutes=i),
            )
        )
    # Same conversation id under another user, must never show up
    db_session.add(
        models.ChatMessage(
            id="foreign",
            user_id=other_user_id,
            conversation_id="conv-1",
            role="user",
            content="not yours",
            created_at=start + timedelta(hours=1),
        )
    )
    await db_session.commit()

    turns = await ConversationStore(db_session).recent_turns(
        user_id, "conv-1", limit=10
    )

    assert [t["content"] for t in turns] == [f"turn {i}" for i in range(2, 12)]
