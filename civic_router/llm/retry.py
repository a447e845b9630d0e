"""
Retry policy for transient Model Gateway failures.

Exponential backoff with randomized jitter: delay(n) = base * 2**n * (1 + j),
j drawn uniformly from [0, max_jitter]. The policy is a plain value object so
tests can swap in a deterministic one (max_jitter=0, injected rng).
"""
import random
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters for the gateway's bounded retry loop.

    Attributes:
        max_retries: Retries after the initial attempt for transport failures
        json_repair_retries: Re-prompts allowed for malformed output
        base_delay: Delay before the first retry, in seconds
        max_jitter: Upper bound of jitter as a fraction of the delay
    """

    max_retries: int = 5
    json_repair_retries: int = 3
    base_delay: float = 1.0
    max_jitter: float = 0.3
    rng: Callable[[], float] = field(default=random.random, compare=False, repr=False)

    def delay(self, attempt: int) -> float:
        """Backoff before retry number attempt+1 (attempt is 0-based)."""
        backoff = self.base_delay * (2 ** attempt)
        return backoff * (1 + self.rng() * self.max_jitter)

    def should_retry(self, retries_done: int) -> bool:
        return retries_done < self.max_retries

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RetryPolicy":
        retry_config = config.get("llm", {}).get("retry", {})
        return cls(
            max_retries=int(retry_config.get("max_retries", cls.max_retries)),
            json_repair_retries=int(retry_config.get("json_repair_retries", cls.json_repair_retries)),
            base_delay=float(retry_config.get("base_delay", cls.base_delay)),
            max_jitter=float(retry_config.get("max_jitter", cls.max_jitter)),
        )
