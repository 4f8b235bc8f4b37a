"""
Model identifiers.

A model identifier is ``<provider>/<model>`` (the model part may contain
further slashes) or one of the special values that select the caller's
native model.
"""

from typing import Optional, Tuple

from ..core.errors import ConfigurationError
from ..core.registry import SUPPORTED_PROVIDERS

FALLBACK_MODEL = "claude"
SPECIAL_VALUES = ("default", FALLBACK_MODEL)


def split_model_id(model_id: str) -> Optional[Tuple[str, str]]:
    """Split at the first slash; None if either side would be empty."""
    provider, sep, model = model_id.partition("/")
    if not sep or not provider or not model:
        return None
    return provider, model


def is_valid_model_id(model_id: str) -> bool:
    """
    Validate a model identifier.

    Valid forms are ``<provider>/<model>`` with a supported provider, or a
    special value ("default", "claude").
    """
    if not model_id:
        return False
    if model_id in SPECIAL_VALUES:
        return True
    parts = split_model_id(model_id)
    return parts is not None and parts[0] in SUPPORTED_PROVIDERS


def parse_provider(model_id: str) -> Optional[str]:
    """
    Provider of a model identifier.

    Returns "claude" for special values, the provider for valid
    ``<provider>/<model>`` strings, otherwise None.
    """
    if not model_id:
        return None
    if model_id in SPECIAL_VALUES:
        return FALLBACK_MODEL
    parts = split_model_id(model_id)
    if parts is None or parts[0] not in SUPPORTED_PROVIDERS:
        return None
    return parts[0]


def parse_model_string(model_string: str) -> Tuple[str, str]:
    """
    Parse ``<provider>/<model>`` into its two parts.

    Only the first slash separates; ``openrouter/anthropic/claude-3-haiku``
    yields ``("openrouter", "anthropic/claude-3-haiku")``.

    Raises:
        ConfigurationError: If there is no provider/model split or the
            provider is not supported
    """
    parts = split_model_id(model_string or "")
    if parts is None:
        raise ConfigurationError(
            f"Invalid model format: {model_string!r}. Expected: provider/model-name"
        )
    provider, model = parts
    if provider not in SUPPORTED_PROVIDERS:
        raise ConfigurationError(
            f"Unsupported provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}",
            provider=provider,
        )
    return provider, model
