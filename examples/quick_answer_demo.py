"""Minimal demonstration of the quick-answer flow against a local Ollama."""

import asyncio

from assist_core import AssistService


async def main() -> None:
    service = AssistService()
    model = await service.resolve_default_model()
    question = "What is the tallest building in the world?"
    answer = await service.quick_answer(question, model=model)
    print("User:", question)
    print("Assistant:", answer)


if __name__ == "__main__":
    asyncio.run(main())
