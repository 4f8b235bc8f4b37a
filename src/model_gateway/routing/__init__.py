"""
Model selection: identifiers, configuration files, and the router.
"""

from .identifiers import (
    FALLBACK_MODEL,
    is_valid_model_id,
    parse_model_string,
    parse_provider,
)
from .model_config import ConfigValidation, ModelConfig, ModelSettings
from .model_router import ModelRouter, PromptType

__all__ = [
    "FALLBACK_MODEL",
    "is_valid_model_id",
    "parse_model_string",
    "parse_provider",
    "ConfigValidation",
    "ModelConfig",
    "ModelSettings",
    "ModelRouter",
    "PromptType",
]
