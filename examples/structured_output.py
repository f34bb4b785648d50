"""
This example demonstrates how to get validated structured output from LLMs
by solving a mathematical equation step-by-step.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List

from pydantic import BaseModel

from llm_switchboard import (
    GenerationRequest,
    LLMClient,
    Message,
    Provider,
    StructuredOutputError,
)

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


class Step(BaseModel):
    explanation: str
    output: str


class MathResponse(BaseModel):
    steps: List[Step]
    final_answer: str


async def solve_math_with_json_output(
    client: LLMClient, provider: Provider, model: str, equation: str, *, native: bool = True
):
    """Solve a mathematical equation with structured JSON output."""
    request = GenerationRequest(
        messages=[
            Message.system(
                "You are a mathematical assistant. Solve the given equation step by step."
            ),
            Message.user(f"Solve this equation step by step: {equation}"),
        ],
        provider=provider,
        model=model,
        max_output_tokens=1000,
        params={"temperature": 0.1},
    )

    logger.info(f"Solving '{equation}' with {provider.value} (native={native})")

    try:
        math_response = await client.generate_with_schema(
            request, MathResponse, native=native
        )
    except StructuredOutputError as e:
        logger.error(f"Model output did not match the schema: {e.details()}")
        return None

    print(f"\nSolution for: {equation}")
    print("Steps:")
    for i, step in enumerate(math_response.steps, 1):
        print(f"  {i}. {step.explanation}")
        print(f"     Result: {step.output}")

    print(f"\nFinal Answer: {math_response.final_answer}")

    return math_response


async def main():
    async with LLMClient() as client:
        # Example 1: Linear equation, provider-native structured output
        await solve_math_with_json_output(
            client, Provider.OPENAI, "gpt-4o-mini", "3x + 7 = 16"
        )

        print("\n" + "=" * 50 + "\n")

        # Example 2: Quadratic equation, JSON requested through the prompt
        await solve_math_with_json_output(
            client,
            Provider.ANTHROPIC,
            "claude-3-5-haiku-20241022",
            "x^2 - 5x + 6 = 0",
            native=False,
        )


if __name__ == "__main__":
    asyncio.run(main())
