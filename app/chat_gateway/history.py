from typing import Dict, List, Sequence

from app.core.schemas import ChatRole


def normalize_history(turns: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    """
    Repair role alternation of prior turns before they go to the model.

    Only role transitions are kept: a turn with the same role as the previous
    kept turn is dropped. A trailing user turn is dropped as well because the
    synthesizer appends the new user message itself, so the result is either
    empty or ends with an assistant turn.

    Args:
        turns: Chronological {"role", "content"} dicts.

    Returns:
        A new list, the input is not modified.

    Example:
        normalize_history([user, user, assistant, user]) -> [user, assistant]
    """
    cleaned: List[Dict[str, str]] = []
    last_role = None

    for turn in turns:
        if turn["role"] == last_role:
            continue
        cleaned.append({"role": turn["role"], "content": turn["content"]})
        last_role = turn["role"]

    if cleaned and cleaned[-1]["role"] == ChatRole.USER.value:
        cleaned.pop()

    return cleaned
