import asyncio

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from llm_switchboard import GenerationResult, Provider, create_llm, get_api_key


async def chat_example_default_client():
    openai_llm = create_llm(Provider.OPENAI, "gpt-4o-mini")
    anthropic_llm = create_llm(Provider.ANTHROPIC, "claude-3-5-haiku-20241022")
    gemini_llm = create_llm(Provider.GEMINI, "gemini-2.0-flash-lite")

    messages = [
        {"role": "system", "content": "You are a helpful assistant."},
        {"role": "user", "content": "What's your name?"},
    ]

    params = {"temperature": 0.7}

    openai_response: GenerationResult = await openai_llm.generate(
        messages, max_output_tokens=1000, params=params
    )
    anthropic_response: GenerationResult = await anthropic_llm.generate(
        messages, max_output_tokens=1000, params=params
    )
    gemini_response: GenerationResult = await gemini_llm.generate(
        messages, max_output_tokens=1000, params=params
    )

    print("OpenAI: ", openai_response.text)
    print("Anthropic: ", anthropic_response.text)
    print("Gemini: ", gemini_response.text)


async def chat_example_pass_client():
    openai_client = AsyncOpenAI(max_retries=3, timeout=10)  # Example OpenAI client
    anthropic_client = AsyncAnthropic()
    gemini_client = AsyncOpenAI(
        api_key=get_api_key(Provider.GEMINI),
        base_url="https://generativelanguage.googleapis.com/v1beta/openai/",
    )

    openai_llm = create_llm(Provider.OPENAI, "gpt-4o-mini", client=openai_client)
    anthropic_llm = create_llm(
        Provider.ANTHROPIC, "claude-3-5-haiku-20241022", client=anthropic_client
    )
    gemini_llm = create_llm(
        Provider.GEMINI, "gemini-2.0-flash-lite", client=gemini_client
    )

    messages = [
        {"role": "system", "content": "You are a helpful assistant."},
        {"role": "user", "content": "Write a haiku about routers."},
    ]

    for llm in (openai_llm, anthropic_llm, gemini_llm):
        print(f"{llm.provider.value}: ", end="")
        async for chunk in llm.generate_stream(messages, max_output_tokens=200):
            print(chunk.text, end="", flush=True)
            if chunk.is_final:
                print(f"\n  usage: {chunk.usage}")
        await llm.aclose()


if __name__ == "__main__":
    asyncio.run(chat_example_default_client())
    asyncio.run(chat_example_pass_client())
