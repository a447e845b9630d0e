import copy
import os
from dataclasses import dataclass
from typing import Any

import yaml
from rich.console import Console

console = Console()

DEFAULT_CONFIG: dict[str, Any] = {
    "llm": {
        "gemini": {
            "model": "gemini-2.0-flash",
            "temperature": 0.3,
            "max_output_tokens": 1024,
        },
        "retry": {
            "max_retries": 5,
            "json_repair_retries": 3,
            "base_delay": 1.0,
            "max_jitter": 0.3,
        },
    },
    "routing": {
        "default_city": "Palo Alto",
        "default_state": "CA",
        "guess_confidence": 0.1,
        "fallback_topic": "general issue",
    },
    "dns": {
        "resolver_url": "https://dns.google/resolve",
        "timeout": 5.0,
    },
    "debug": {"llm_responses": False},
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = "config.yaml") -> dict[str, Any]:
    """
    From config.yaml, layered over DEFAULT_CONFIG

    Args:
        config_path: Path to config file (default: config.yaml)

    Returns:
        Configuration dictionary
    """
    try:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
    except FileNotFoundError:
        console.print(f"[yellow]Warning: {config_path} not found. Using default config.[/yellow]")
        return copy.deepcopy(DEFAULT_CONFIG)
    if not isinstance(loaded, dict):
        console.print(f"[red]Error: {config_path} is not a mapping. Using default config.[/red]")
        return copy.deepcopy(DEFAULT_CONFIG)
    return _deep_merge(DEFAULT_CONFIG, loaded)


def get_api_keys() -> dict[str, str]:
    return {
        "gemini": os.getenv("GEMINI_API_KEY", "") or os.getenv("GOOGLE_API_KEY", ""),
    }


@dataclass(frozen=True)
class RoutingSettings:
    """Tunable routing constants."""

    default_city: str = "Palo Alto"
    default_state: str = "CA"
    guess_confidence: float = 0.1
    fallback_topic: str = "general issue"
    dns_resolver_url: str = "https://dns.google/resolve"
    dns_timeout: float = 5.0

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "RoutingSettings":
        routing = config.get("routing", {})
        dns = config.get("dns", {})
        return cls(
            default_city=routing.get("default_city", cls.default_city),
            default_state=routing.get("default_state", cls.default_state),
            guess_confidence=float(routing.get("guess_confidence", cls.guess_confidence)),
            fallback_topic=routing.get("fallback_topic", cls.fallback_topic),
            dns_resolver_url=dns.get("resolver_url", cls.dns_resolver_url),
            dns_timeout=float(dns.get("timeout", cls.dns_timeout)),
        )


DEFAULT_SETTINGS = RoutingSettings()
