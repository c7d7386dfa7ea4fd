from app.services.ai.client import (
    AIClientError,
    AIResponse,
    ChatCompletionClient,
    build_ai_client,
)

__all__ = [
    "AIClientError",
    "AIResponse",
    "ChatCompletionClient",
    "build_ai_client",
]
