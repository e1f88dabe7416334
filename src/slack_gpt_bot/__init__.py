"""
Slack GPT Bot (Lambda + OpenAI chat completions)

Where: AWS Lambda via Function URL (Slack Events API target).
What:  Verify the event, read recent thread history, ask the model, reply in thread.
Why:   Stateless chat bridge; Slack's own thread history is the conversation memory.
"""

__all__ = [
    "commands",
    "config",
    "deadline",
    "dispatch",
    "errors",
    "events",
    "handler",
    "history",
    "idempotency",
    "llm",
    "logs",
    "models",
    "prompt",
    "secrets",
    "signature",
    "slack",
]
