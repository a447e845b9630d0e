"""Model Gateway: backend adapter, retry policy and response repair."""
from civic_router.llm.backend import Completion, CompletionBackend, GeminiBackend
from civic_router.llm.gateway import ModelGateway
from civic_router.llm.retry import RetryPolicy

__all__ = [
    "Completion",
    "CompletionBackend",
    "GeminiBackend",
    "ModelGateway",
    "RetryPolicy",
]
