from __future__ import annotations

import argparse
import asyncio
import logging

from llm_switchboard import (
    FunctionToolExecutor,
    GenerationRequest,
    LLMClient,
    Message,
    Provider,
    ToolDefinition,
)

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)

WEATHER_TOOL = ToolDefinition(
    name="get_weather",
    description="Get the current weather in a given location",
    parameters={
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "City and state, e.g. San Francisco, CA",
            },
            "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
        },
        "required": ["location"],
    },
)

# One tool, two shapes. Providers without union support see send__email and
# send__sms; the executor always receives "send" with "channel" filled in.
SEND_TOOL = ToolDefinition(
    name="send",
    description="Send a short message",
    parameters={
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
        "oneOf": [
            {
                "properties": {"channel": {"const": "email"}, "to": {"type": "string"}},
                "required": ["channel", "to"],
            },
            {
                "properties": {"channel": {"const": "sms"}, "phone": {"type": "string"}},
                "required": ["channel", "phone"],
            },
        ],
    },
)


def get_weather(location: str, unit: str = "celsius") -> str:
    """Stub implementation of get_weather."""
    # imagine we call a real weather API here
    return f"15 °{'C' if unit == 'celsius' else 'F'}, mostly cloudy in {location}"


async def send(text: str, channel: str, **target: str) -> dict[str, object]:
    logger.info("Sending %r via %s to %s", text, channel, target)
    return {"delivered": True, "channel": channel}


async def tool_loop(provider: Provider, model: str) -> None:
    """
    Let the model call tools until it can answer.

    The client runs every requested call concurrently, feeds the results back
    and stops after 10 rounds at most.
    """
    executor = FunctionToolExecutor({"get_weather": get_weather, "send": send})
    request = GenerationRequest(
        messages=[
            Message.user(
                "What's the weather in San Francisco? Text it to +1 555 0100."
            )
        ],
        provider=provider,
        model=model,
    )

    async with LLMClient() as client:
        result = await client.generate_with_tools(
            request, [WEATHER_TOOL, SEND_TOOL], executor
        )

    if result.exhausted:
        logger.warning("Tool budget ran out; best effort answer follows")
    logger.info("%s says: %s", provider.value.capitalize(), result.text)
    logger.info("Usage: %s", result.usage)


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.ANTHROPIC.value,
    )
    parser.add_argument(
        "--model",
        default="claude-3-5-haiku-20241022",  # "gpt-4.1-nano-2025-04-14", "gemini-2.0-flash-lite", "claude-3-5-haiku-20241022"
    )
    args = parser.parse_args()

    asyncio.run(tool_loop(Provider(args.provider), args.model))
