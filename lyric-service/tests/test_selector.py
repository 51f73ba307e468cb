import pytest

from app.application.services.selector import Selector, is_no_match
from app.domain.models import Candidate
from app.domain.prompts import FEW_SHOT_EXAMPLES, SELECTION_SYSTEM_PROMPT, build_selection_messages

CANDIDATES = [
    Candidate(text="Band-aids don't fix bullet holes", similarity_score=0.88),
    Candidate(text="All too well, and I was there", similarity_score=0.81),
]


@pytest.mark.parametrize(
    "text", ["no match", "No match", "NO MATCH.", "  no match  ", '"no match"', '“No match.”', '"No match".']
)
def test_sentinel_variants(text):
    assert is_no_match(text) is True


@pytest.mark.parametrize("text", ["no matches here", "Band-aids don't fix bullet holes", ""])
def test_non_sentinel_text(text):
    assert is_no_match(text) is False


def test_messages_carry_three_few_shot_exchanges():
    messages = build_selection_messages("Why does it hurt?", [c.text for c in CANDIDATES])

    assert len(FEW_SHOT_EXAMPLES) == 3
    assert len(messages) == 8
    assert messages[0] == {"role": "system", "content": SELECTION_SYSTEM_PROMPT}
    assert [m["role"] for m in messages[1:7]] == ["user", "assistant"] * 3
    assert messages[6]["content"] == "no match"
    assert messages[-1]["role"] == "user"
    assert "Why does it hurt?" in messages[-1]["content"]
    assert "2. All too well, and I was there" in messages[-1]["content"]


async def test_returns_trimmed_choice(completion):
    completion.reply = "  Band-aids don't fix bullet holes \n"
    outcome = await Selector(completion=completion).select("Why does it hurt?", CANDIDATES)

    assert outcome.is_match
    assert outcome.lyric == "Band-aids don't fix bullet holes"
    call = completion.calls[0]
    assert call["temperature"] == 0.6
    assert call["max_tokens"] == 150
    assert len(call["messages"]) == 8


@pytest.mark.parametrize("reply", ["no match", "No match.", '"no match"', '“No match.”', "", "   \n"])
async def test_sentinel_or_empty_reply_is_no_match(completion, reply):
    completion.reply = reply
    outcome = await Selector(completion=completion).select("What's 2+2?", CANDIDATES)
    assert outcome.is_match is False
    assert outcome.lyric is None


async def test_uncontained_reply_is_trusted_by_default(completion):
    completion.reply = "Shake it off"
    outcome = await Selector(completion=completion).select("q", CANDIDATES)
    assert outcome.lyric == "Shake it off"


async def test_uncontained_reply_is_rejected_when_strict(completion):
    completion.reply = "Shake it off"
    outcome = await Selector(completion=completion, strict_containment=True).select("q", CANDIDATES)
    assert outcome.is_match is False


async def test_quoted_candidate_counts_as_contained_when_strict(completion):
    completion.reply = '"All too well, and I was there"'
    outcome = await Selector(completion=completion, strict_containment=True).select("q", CANDIDATES)
    assert outcome.is_match is True


async def test_completion_errors_propagate(completion):
    from app.domain.exceptions import UpstreamTimeout

    completion.error = UpstreamTimeout("slow", dependency="openai-chat")
    with pytest.raises(UpstreamTimeout):
        await Selector(completion=completion).select("q", CANDIDATES)
