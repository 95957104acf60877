import asyncio

from movie_agent.models import Message, TextPart
from movie_agent.request_handler import MessageSendParams
from movie_agent.server import startup_application


async def run_turn(handler, text, task_id=None, context_id=None):
    params = MessageSendParams(
        message=Message(
            role="user",
            parts=[TextPart(text=text)],
            task_id=task_id,
            context_id=context_id,
        )
    )
    task = await handler.on_message_send(params)
    print(f"[{task.status.state.value}] {task.status.message.text()}")
    return task


async def test_movie_agent_flow():
    print("Starting smoke test for Movie Agent...")

    handler = startup_application()

    task = await run_turn(handler, "What movies star Tom Hanks?")

    # follow up in the same conversation
    await run_turn(
        handler,
        "What was the budget for the first one you mentioned?",
        context_id=task.context_id,
    )
    return task.status.state.value in {"completed", "input-required"}


if __name__ == "__main__":
    success = asyncio.run(test_movie_agent_flow())
    exit(0 if success else 1)
