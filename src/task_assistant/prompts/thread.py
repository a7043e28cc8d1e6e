"""
Thread summary and direct-answer prompts.

Both take the thread as ``ThreadMessage`` objects and render them as plain
``author: text`` lines; neither uses a response model.
"""

from ..models.message import ThreadMessage

SUMMARY_SYSTEM_PROMPT = """You summarize a chat thread that a task was created from.

Write 2-3 short bullet points covering:
- what is being asked or decided
- who is involved
- any deadline or constraint mentioned

Use the language of the thread. Do not add anything the thread does not say."""


ANSWER_SYSTEM_PROMPT = """You are a helpful assistant in a team chat.

Answer the user's question briefly and concretely, in the language of the
question. Use the earlier thread messages as context. If you do not know the
answer, say so instead of guessing."""


def _thread_line(message: ThreadMessage) -> str:
    author = message.author_id or 'bot'
    return f'{author}: {message.text}'


def build_summary_prompt(thread: list[ThreadMessage]) -> list[dict[str, str]]:
    """
    Build the messages asking for a bullet summary of ``thread``.

    Args:
        thread: Thread messages, oldest first

    Returns:
        List of message dicts for the OpenAI API
    """
    lines = '\n'.join(_thread_line(m) for m in thread)
    return [
        {'role': 'system', 'content': SUMMARY_SYSTEM_PROMPT},
        {'role': 'user', 'content': f'Summarize this thread:\n\n{lines}'},
    ]


def build_answer_prompt(
    question: str,
    history: list[ThreadMessage],
    assistant_user_id: str | None = None,
) -> list[dict[str, str]]:
    """
    Build a conversation for answering ``question``.

    Earlier messages from bots or from the assistant itself become
    ``assistant`` turns; everything else is a ``user`` turn prefixed with its
    author.
    """
    messages = [{'role': 'system', 'content': ANSWER_SYSTEM_PROMPT}]
    for m in history:
        if m.is_bot or (assistant_user_id and m.author_id == assistant_user_id):
            messages.append({'role': 'assistant', 'content': m.text})
        else:
            messages.append({'role': 'user', 'content': _thread_line(m)})
    messages.append({'role': 'user', 'content': question})
    return messages
