# File: lyric-service/app/infrastructure/llm/openai_chat_adapter.py
import structlog
from typing import Dict, List, Optional
from openai import AsyncOpenAI, APITimeoutError, APIConnectionError, RateLimitError, AuthenticationError, OpenAIError

from app.application.ports.completion_port import CompletionPort
from app.core.metrics import OPENAI_API_DURATION_SECONDS, OPENAI_API_ERRORS_TOTAL
from app.domain.exceptions import UpstreamConfigurationError, UpstreamTimeout, UpstreamUnexpectedError

log = structlog.get_logger(__name__)

DEPENDENCY = "openai-chat"

class OpenAIChatAdapter(CompletionPort):
    """
    Adapter for OpenAI chat completions used by the selector.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model_name: str,
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._model_name = model_name
        if client is None:
            if not api_key:
                raise UpstreamConfigurationError(dependency=DEPENDENCY, setting="LYRIC_OPENAI_API_KEY")
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout_seconds,
                max_retries=0
            )
        self._client = client
        log.info("OpenAIChatAdapter initialized", model_name=self._model_name, timeout_seconds=timeout_seconds)

    async def complete(self, messages: List[Dict[str, str]], temperature: float, max_tokens: int) -> str:
        chat_log = log.bind(adapter="OpenAIChatAdapter", model=self._model_name, num_messages=len(messages))
        try:
            with OPENAI_API_DURATION_SECONDS.labels(operation="chat", model_name=self._model_name).time():
                completion = await self._client.chat.completions.create(
                    model=self._model_name,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
        except APITimeoutError as e:
            chat_log.error("OpenAI API Timeout", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="chat", error_type="timeout").inc()
            raise UpstreamTimeout(f"OpenAI chat completion timed out: {e}", dependency=DEPENDENCY) from e
        except (AuthenticationError, RateLimitError, APIConnectionError) as e:
            error_type = type(e).__name__
            chat_log.error(f"OpenAI API Error: {error_type}", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="chat", error_type=error_type).inc()
            raise UpstreamUnexpectedError(f"OpenAI chat completion failed: {e}", dependency=DEPENDENCY) from e
        except OpenAIError as e:
            error_type = type(e).__name__
            chat_log.error(f"OpenAI API Error: {error_type}", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="chat", error_type=error_type).inc()
            raise UpstreamUnexpectedError(f"OpenAI API error: {e}", dependency=DEPENDENCY) from e

        if not completion.choices:
            OPENAI_API_ERRORS_TOTAL.labels(operation="chat", error_type="malformed_response").inc()
            raise UpstreamUnexpectedError("OpenAI returned no choices.", dependency=DEPENDENCY)

        content = completion.choices[0].message.content
        if content is None:
            OPENAI_API_ERRORS_TOTAL.labels(operation="chat", error_type="malformed_response").inc()
            raise UpstreamUnexpectedError("OpenAI returned a choice without content.", dependency=DEPENDENCY)

        chat_log.debug("Chat completion received", finish_reason=completion.choices[0].finish_reason)
        return content

    async def close(self) -> None:
        await self._client.close()
