# File: lyric-service/app/infrastructure/embedding_models/openai_adapter.py
import structlog
from typing import List, Dict, Any, Optional
from openai import AsyncOpenAI, APITimeoutError, APIConnectionError, RateLimitError, AuthenticationError, OpenAIError

from app.application.ports.embedding_port import EmbeddingPort
from app.core.metrics import OPENAI_API_DURATION_SECONDS, OPENAI_API_ERRORS_TOTAL
from app.domain.exceptions import UpstreamConfigurationError, UpstreamTimeout, UpstreamUnexpectedError
from app.domain.models import EMBEDDING_DIMENSION, EMBEDDING_MODEL_NAME

log = structlog.get_logger(__name__)

DEPENDENCY = "openai-embeddings"

class OpenAIEmbeddingAdapter(EmbeddingPort):
    """
    Adapter for OpenAI's Embedding API, pinned to one model.

    The client is built with max_retries=0: a failed call fails the request.
    """
    _client: AsyncOpenAI
    _model_name: str
    _embedding_dimension: int

    def __init__(
        self,
        api_key: Optional[str],
        base_url: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._model_name = EMBEDDING_MODEL_NAME
        self._embedding_dimension = EMBEDDING_DIMENSION

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
        log.info("OpenAIEmbeddingAdapter initialized", model_name=self._model_name, target_dimension=self._embedding_dimension)

    async def embed(self, text: str) -> List[float]:
        vectors = await self.embed_texts([text])
        if len(vectors) != 1:
            raise UpstreamUnexpectedError(f"Expected 1 embedding, got {len(vectors)}", dependency=DEPENDENCY)
        return vectors[0]

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        embed_log = log.bind(adapter="OpenAIEmbeddingAdapter", num_texts=len(texts), model=self._model_name)
        embed_log.debug("Generating embeddings via OpenAI API...")

        try:
            with OPENAI_API_DURATION_SECONDS.labels(operation="embeddings", model_name=self._model_name).time():
                response = await self._client.embeddings.create(
                    model=self._model_name,
                    input=texts,
                    encoding_format="float",
                )
        except APITimeoutError as e:
            embed_log.error("OpenAI API Timeout", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="embeddings", error_type="timeout").inc()
            raise UpstreamTimeout(f"OpenAI embeddings timed out: {e}", dependency=DEPENDENCY) from e
        except AuthenticationError as e:
            embed_log.error("OpenAI API Authentication Error", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="embeddings", error_type="authentication_error").inc()
            raise UpstreamUnexpectedError(f"OpenAI authentication failed: {e}", dependency=DEPENDENCY) from e
        except RateLimitError as e:
            embed_log.error("OpenAI API Rate Limit Exceeded", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="embeddings", error_type="rate_limit_error").inc()
            raise UpstreamUnexpectedError(f"OpenAI rate limit exceeded: {e}", dependency=DEPENDENCY) from e
        except APIConnectionError as e:
            embed_log.error("OpenAI API Connection Error", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="embeddings", error_type="connection_error").inc()
            raise UpstreamUnexpectedError(f"OpenAI connection error: {e}", dependency=DEPENDENCY) from e
        except OpenAIError as e:
            error_type = type(e).__name__
            embed_log.error(f"OpenAI API Error: {error_type}", error=str(e))
            OPENAI_API_ERRORS_TOTAL.labels(operation="embeddings", error_type=error_type).inc()
            raise UpstreamUnexpectedError(f"OpenAI API error: {e}", dependency=DEPENDENCY) from e

        if not response.data or not all(item.embedding for item in response.data):
            raise UpstreamUnexpectedError("OpenAI API returned no valid embedding data.", dependency=DEPENDENCY)

        embeddings_list = [list(item.embedding) for item in response.data]
        for vector in embeddings_list:
            if len(vector) != self._embedding_dimension:
                raise UpstreamUnexpectedError(
                    f"Embedding has dimension {len(vector)}, expected {self._embedding_dimension}",
                    dependency=DEPENDENCY,
                )
        return embeddings_list

    def get_model_info(self) -> Dict[str, Any]:
        return { "model_name": self._model_name, "dimension": self._embedding_dimension, "provider": "openai" }

    async def close(self) -> None:
        await self._client.close()
