# lyric-service/app/domain/prompts.py
"""
Prompt data for the candidate selector.

Tuning the few-shot table only requires editing this module and bumping
SELECTION_PROMPT_VERSION; the selector and the pipeline read it as data.
"""
from typing import Dict, List, NamedTuple, Sequence

from app.domain.models import NO_MATCH_SENTINEL

SELECTION_PROMPT_VERSION = "2024-06-v1"

SELECTION_SYSTEM_PROMPT = (
    "You match a person's life question to a Taylor Swift lyric. "
    "You will receive the question and a numbered list of candidate lyrics. "
    "Choose the single candidate that best matches the emotional content of the question "
    "and reply with that lyric exactly as written, with no quotes, numbering or commentary. "
    f"If none of the candidates genuinely fits, reply with exactly: {NO_MATCH_SENTINEL}"
)


class FewShotExample(NamedTuple):
    question: str
    candidates: Sequence[str]
    answer: str


# Exactly three: an empowerment match, a heartbreak match and a deliberate no-match.
FEW_SHOT_EXAMPLES: Sequence[FewShotExample] = (
    FewShotExample(
        question="Everyone keeps underestimating me at work. How do I prove them wrong?",
        candidates=(
            "I could build a castle out of all the bricks they threw at me",
            "Shake it off",
            "We were both young when I first saw you",
        ),
        answer="I could build a castle out of all the bricks they threw at me",
    ),
    FewShotExample(
        question="He said sorry again but I know nothing will change. Why does it still hurt?",
        candidates=(
            "Band-aids don't fix bullet holes",
            "It's nice to have a friend",
            "I'm walking on sunshine",
        ),
        answer="Band-aids don't fix bullet holes",
    ),
    FewShotExample(
        question="What's the capital of Australia?",
        candidates=(
            "Long story short, I survived",
            "This is me trying",
            "You need to calm down",
        ),
        answer=NO_MATCH_SENTINEL,
    ),
)


def format_selection_request(question: str, candidates: Sequence[str]) -> str:
    numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(candidates, start=1))
    return f"Question: {question}\n\nCandidates:\n{numbered}"


def build_selection_messages(question: str, candidates: Sequence[str]) -> List[Dict[str, str]]:
    """System instruction, the three few-shot exchanges, then the live request."""
    messages: List[Dict[str, str]] = [{"role": "system", "content": SELECTION_SYSTEM_PROMPT}]
    for example in FEW_SHOT_EXAMPLES:
        messages.append({"role": "user", "content": format_selection_request(example.question, example.candidates)})
        messages.append({"role": "assistant", "content": example.answer})
    messages.append({"role": "user", "content": format_selection_request(question, candidates)})
    return messages
