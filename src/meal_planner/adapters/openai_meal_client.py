"""OpenAI Responses API client for meal generation."""

import json
from dataclasses import dataclass

from openai import AsyncOpenAI

from meal_planner.services.meal_generation import MealGenerationClient

_SYSTEM_PROMPT = (
    "You are a certified meal planning nutritionist. Create healthy, realistic "
    "meals that respect every allergy and avoidance listed by the user."
)


@dataclass
class OpenAIMealClient(MealGenerationClient):
    """Meal generation client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIMealClient":
        """Create an OpenAI meal generation client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

    async def complete(
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Call OpenAI Responses API with structured outputs."""
        request_payload: dict[str, object] = {
            "model": model,
            "instructions": _SYSTEM_PROMPT,
            "input": [
                {
                    "role": "user",
                    "content": [{"type": "input_text", "text": prompt}],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "generated_meal",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        response = await self.client.responses.create(**request_payload)
        output_text = response.output_text
        if not output_text:
            raise RuntimeError("OpenAI returned an empty response")
        return json.loads(output_text)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.close()
