"""Single-token priority prompt."""

PRIORITY_SYSTEM_PROMPT = """You rate the priority of a task.

Answer with exactly one word: High, Medium or Low.

- High: urgent, blocking others, production issues, security, customer-facing breakage.
- Medium: normal day-to-day work, features, improvements.
- Low: minor polish, ideas, things to consider later."""


def build_priority_prompt(text: str) -> list[dict[str, str]]:
    """Build the messages asking for a one-word priority."""
    return [
        {'role': 'system', 'content': PRIORITY_SYSTEM_PROMPT},
        {'role': 'user', 'content': f'Task: {text}'},
    ]
