from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError

from app.domain.exceptions import UpstreamConfigurationError, UpstreamTimeout, UpstreamUnexpectedError
from app.domain.models import EMBEDDING_DIMENSION, EMBEDDING_MODEL_NAME
from app.infrastructure.embedding_models.openai_adapter import OpenAIEmbeddingAdapter
from app.infrastructure.llm.openai_chat_adapter import OpenAIChatAdapter

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/test")


def embeddings_response(*vectors):
    return SimpleNamespace(data=[SimpleNamespace(embedding=v) for v in vectors])


def chat_response(*contents):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=c), finish_reason="stop") for c in contents]
    )


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.embeddings.create = AsyncMock(return_value=embeddings_response([0.1] * EMBEDDING_DIMENSION))
    client.chat.completions.create = AsyncMock(return_value=chat_response("Shake it off"))
    client.close = AsyncMock()
    return client


# --- Embeddings ---

def test_embedding_adapter_requires_api_key():
    with pytest.raises(UpstreamConfigurationError) as exc_info:
        OpenAIEmbeddingAdapter(api_key="")
    assert exc_info.value.setting == "LYRIC_OPENAI_API_KEY"


async def test_embed_uses_pinned_model(openai_client):
    adapter = OpenAIEmbeddingAdapter(api_key=None, client=openai_client)
    vector = await adapter.embed("Will this feeling ever pass?")

    assert len(vector) == EMBEDDING_DIMENSION
    kwargs = openai_client.embeddings.create.await_args.kwargs
    assert kwargs["model"] == EMBEDDING_MODEL_NAME
    assert kwargs["input"] == ["Will this feeling ever pass?"]


async def test_embed_rejects_wrong_dimension(openai_client):
    openai_client.embeddings.create.return_value = embeddings_response([0.1] * 3)
    adapter = OpenAIEmbeddingAdapter(api_key=None, client=openai_client)
    with pytest.raises(UpstreamUnexpectedError):
        await adapter.embed("q")


async def test_embed_timeout(openai_client):
    openai_client.embeddings.create.side_effect = APITimeoutError(request=REQUEST)
    adapter = OpenAIEmbeddingAdapter(api_key=None, client=openai_client)
    with pytest.raises(UpstreamTimeout):
        await adapter.embed("q")


async def test_embed_connection_error(openai_client):
    openai_client.embeddings.create.side_effect = APIConnectionError(request=REQUEST)
    adapter = OpenAIEmbeddingAdapter(api_key=None, client=openai_client)
    with pytest.raises(UpstreamUnexpectedError):
        await adapter.embed("q")


async def test_embed_texts_empty_makes_no_call(openai_client):
    adapter = OpenAIEmbeddingAdapter(api_key=None, client=openai_client)
    assert await adapter.embed_texts([]) == []
    openai_client.embeddings.create.assert_not_awaited()


# --- Chat ---

def test_chat_adapter_requires_api_key():
    with pytest.raises(UpstreamConfigurationError):
        OpenAIChatAdapter(api_key=None, model_name="gpt-4o-mini")


async def test_complete_passes_sampling_parameters(openai_client):
    adapter = OpenAIChatAdapter(api_key=None, model_name="gpt-4o-mini", client=openai_client)
    messages = [{"role": "user", "content": "hi"}]

    assert await adapter.complete(messages, temperature=0.6, max_tokens=150) == "Shake it off"
    openai_client.chat.completions.create.assert_awaited_once_with(
        model="gpt-4o-mini", messages=messages, temperature=0.6, max_tokens=150
    )


async def test_complete_empty_content_is_returned(openai_client):
    openai_client.chat.completions.create.return_value = chat_response("")
    adapter = OpenAIChatAdapter(api_key=None, model_name="gpt-4o-mini", client=openai_client)
    assert await adapter.complete([], temperature=0.6, max_tokens=150) == ""


@pytest.mark.parametrize("response", [chat_response(), chat_response(None)])
async def test_complete_malformed_response(openai_client, response):
    openai_client.chat.completions.create.return_value = response
    adapter = OpenAIChatAdapter(api_key=None, model_name="gpt-4o-mini", client=openai_client)
    with pytest.raises(UpstreamUnexpectedError):
        await adapter.complete([], temperature=0.6, max_tokens=150)


async def test_complete_timeout(openai_client):
    openai_client.chat.completions.create.side_effect = APITimeoutError(request=REQUEST)
    adapter = OpenAIChatAdapter(api_key=None, model_name="gpt-4o-mini", client=openai_client)
    with pytest.raises(UpstreamTimeout):
        await adapter.complete([], temperature=0.6, max_tokens=150)


async def test_close_closes_client(openai_client):
    adapter = OpenAIChatAdapter(api_key=None, model_name="gpt-4o-mini", client=openai_client)
    await adapter.close()
    openai_client.close.assert_awaited_once()
