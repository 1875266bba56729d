from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage

from chainport.schema import ChainDefinition, ChainStep


class FakeProviderError(Exception):
    """Stands in for an OpenAI client error carrying an HTTP status."""

    def __init__(self, status_code, message="provider failure"):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_llm(*responses):
    """A chat model whose ainvoke yields ``responses`` in order (exceptions are raised)."""
    llm = MagicMock()
    llm.ainvoke = AsyncMock(side_effect=[
        AIMessage(content=r) if isinstance(r, str) else r for r in responses
    ])
    return llm


def make_chain(*steps, credential="sk-chain", chain_id="1700000000000-abcd1234"):
    return ChainDefinition(
        id=chain_id,
        steps=[
            ChainStep(id=i + 1, instructions=instructions, requiredOutput=required)
            for i, (instructions, required) in enumerate(steps)
        ],
        credential=credential,
        ownerId="user-1",
        ownerEmail="alice@example.com",
        userName="alice",
        createdAt="2024-05-01T12:00:00+00:00",
        endpointUrl=f"https://example.test/api/chains/alice/4000/{chain_id}",
        portNumber=4000,
    )
