# lyric-service/app/application/services/selector.py
import structlog
from typing import Sequence

from app.application.ports.completion_port import CompletionPort
from app.core.metrics import UNCONTAINED_SELECTIONS_TOTAL
from app.domain.models import Candidate, SelectionOutcome, NO_MATCH_SENTINEL
from app.domain.prompts import build_selection_messages, SELECTION_PROMPT_VERSION

log = structlog.get_logger(__name__)


def _comparable(text: str) -> str:
    return text.strip().strip('"“”').strip().lower()


def is_no_match(text: str) -> bool:
    return _comparable(_comparable(text).rstrip(".")) == NO_MATCH_SENTINEL


class Selector:
    """
    Lets the generative model pick one candidate or reject them all.

    The model's answer is trusted verbatim unless `strict_containment` is set,
    in which case an answer that is not one of the candidates counts as no match.
    """

    def __init__(
        self,
        completion: CompletionPort,
        temperature: float = 0.6,
        max_tokens: int = 150,
        strict_containment: bool = False,
    ):
        self.completion = completion
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.strict_containment = strict_containment

    async def select(self, question: str, candidates: Sequence[Candidate]) -> SelectionOutcome:
        texts = [c.text for c in candidates]
        messages = build_selection_messages(question, texts)

        raw = await self.completion.complete(messages, temperature=self.temperature, max_tokens=self.max_tokens)
        answer = raw.strip()

        select_log = log.bind(prompt_version=SELECTION_PROMPT_VERSION, num_candidates=len(texts))
        if not answer or is_no_match(answer):
            select_log.info("Selector returned no match", empty=not answer)
            return SelectionOutcome.no_match()

        if _comparable(answer) not in {_comparable(t) for t in texts}:
            action = "fallback" if self.strict_containment else "trusted"
            UNCONTAINED_SELECTIONS_TOTAL.labels(action=action).inc()
            select_log.warning("Selector output is not one of the candidates", action=action, answer_length=len(answer))
            if self.strict_containment:
                return SelectionOutcome.no_match()

        select_log.info("Selector chose a lyric")
        return SelectionOutcome(lyric=answer)
