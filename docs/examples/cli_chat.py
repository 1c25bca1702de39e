import asyncio
import os
from datetime import datetime
from typing import Annotated, List

from dotenv import load_dotenv
from openai import AsyncOpenAI
from pydantic import Field

from agent_loop_lib import ConversationOrchestrator, OpenAIModelClient, OrchestratorConfig, StatusChannel, ToolRegistry
from agent_loop_lib.agent_core import BaseMessage, setup_logging
from agent_loop_lib.agent_core.tools.execution import StatusEvent

# Load environment variables
load_dotenv()

registry = ToolRegistry()


@registry.tool
def get_current_time(timezone_name: Annotated[str, Field(description="Label of the timezone to report")] = "local") -> str:
    """Returns the current local time."""
    return f"{datetime.now():%H:%M:%S} ({timezone_name})"


@registry.tool(timeout=5.0)
async def add_numbers(
    a: Annotated[float, Field(description="First summand")],
    b: Annotated[float, Field(description="Second summand")],
) -> float:
    """Adds two numbers."""
    return a + b


def print_status(event: StatusEvent) -> None:
    print(f"  [{event.kind}] {event.tool_name} ({event.call_id})")


async def main() -> None:
    """
    Main function to run the CLI chat using OpenAI.
    """
    setup_logging()
    print("Welcome to the CLI Chat (OpenAI)!")

    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        print("Error: OPENAI_API_KEY not found in environment variables.")
        return

    model_client = OpenAIModelClient(client=AsyncOpenAI(api_key=api_key), model_name="gpt-4o-mini")
    print("Using OpenAI.")

    history: List[BaseMessage] = []

    print("\nStart chatting! Type 'exit' or 'quit' to stop.")
    config = OrchestratorConfig()
    async with StatusChannel.from_config(print_status, config) as channel:
        while True:
            user_input = input("\nYou: ").strip()
            if user_input.lower() in ["exit", "quit"]:
                print("Goodbye!")
                break

            if not user_input:
                continue

            orchestrator = ConversationOrchestrator(
                model_client,
                registry,
                channel,
                system_prompt="You are a helpful assistant.",
                config=config,
            )
            try:
                result = await orchestrator.run(user_input, history=history)
                print(f"Assistant: {result.answer}")
                history = result.compact_transcript()

            except Exception as e:
                print(f"An error occurred: {e}")


if __name__ == "__main__":
    asyncio.run(main())
