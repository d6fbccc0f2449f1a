"""Tests for HTTP-based adapters."""

import asyncio
import json

import pytest

from meal_planner.adapters.openai_meal_client import OpenAIMealClient


class _FakeResponses:
    def __init__(self, output_text: str) -> None:
        self.output_text = output_text
        self.last_payload: dict[str, object] | None = None

    async def create(self, **kwargs):  # type: ignore[no-untyped-def]
        self.last_payload = kwargs
        return type("Resp", (), {"output_text": self.output_text})()


class _FakeOpenAI:
    def __init__(self, output_text: str = json.dumps({"name": "Oats"})) -> None:
        self.responses = _FakeResponses(output_text)
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def test_openai_meal_client_parses_output() -> None:
    fake = _FakeOpenAI()
    client = OpenAIMealClient(client=fake)

    result = asyncio.run(
        client.complete(
            model="gpt-5.2",
            reasoning_effort="medium",
            store=False,
            schema={"type": "object"},
            prompt="Create one breakfast",
        )
    )

    assert result == {"name": "Oats"}
    payload = fake.responses.last_payload
    assert payload is not None
    assert payload["reasoning"] == {"effort": "medium"}
    assert payload["text"]["format"]["strict"] is True


def test_openai_meal_client_omits_empty_reasoning() -> None:
    fake = _FakeOpenAI()
    client = OpenAIMealClient(client=fake)

    asyncio.run(
        client.complete(
            model="gpt-5.2",
            reasoning_effort=None,
            store=False,
            schema={"type": "object"},
            prompt="Create one snack",
        )
    )

    assert fake.responses.last_payload is not None
    assert "reasoning" not in fake.responses.last_payload


def test_openai_meal_client_rejects_empty_output() -> None:
    client = OpenAIMealClient(client=_FakeOpenAI(output_text=""))

    with pytest.raises(RuntimeError, match="empty response"):
        asyncio.run(
            client.complete(
                model="gpt-5.2",
                reasoning_effort=None,
                store=False,
                schema={"type": "object"},
                prompt="Create one lunch",
            )
        )


def test_openai_meal_client_close() -> None:
    fake = _FakeOpenAI()

    asyncio.run(OpenAIMealClient(client=fake).close())

    assert fake.closed
