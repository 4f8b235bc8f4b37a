"""
Model router: decides which model identifier governs a prompt.

Precedence, first match wins:
    1. Explicit override (e.g. a CLI flag)
    2. Per-prompt mapping in merged config (Project > User)
    3. Model named in the prompt's own frontmatter
    4. Configured global default, unless it is the fallback sentinel
    5. The fallback sentinel "claude"
"""

import logging
from enum import Enum
from typing import Dict, Optional, Tuple

from .identifiers import FALLBACK_MODEL
from .model_config import ModelConfig, ModelSettings

logger = logging.getLogger(__name__)


class PromptType(str, Enum):
    AGENT = "agent"
    COMMAND = "command"
    SKILL = "skill"
    HOOK = "hook"

    @property
    def config_key(self) -> str:
        """Name of the mapping in model settings."""
        return f"{self.value}s"


CacheKey = Tuple[str, str, Optional[str], Optional[str]]


class ModelRouter:
    """Resolves model identifiers and caches each resolution."""

    def __init__(
        self,
        user_config_dir: str,
        project_dir: str,
        model_config: Optional[ModelConfig] = None,
    ):
        self.user_config_dir = user_config_dir
        self.project_dir = project_dir
        self.model_config = model_config or ModelConfig(user_config_dir)
        self._cache: Dict[CacheKey, str] = {}
        self._settings: Optional[ModelSettings] = None

    def resolve_model(
        self,
        prompt_type: PromptType,
        prompt_name: str,
        cli_override: Optional[str] = None,
        frontmatter_model: Optional[str] = None,
    ) -> str:
        """
        Resolve the model for a prompt.

        Args:
            prompt_type: Kind of prompt (agent, command, skill, hook)
            prompt_name: Prompt name, e.g. "oss:ship"
            cli_override: Caller-supplied model, highest precedence
            frontmatter_model: Model declared by the prompt itself

        Returns:
            ``<provider>/<model>`` or the fallback sentinel
        """
        prompt_type = PromptType(prompt_type)
        key = (prompt_type.value, prompt_name, cli_override, frontmatter_model)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        resolved = self._resolve(prompt_type, prompt_name, cli_override, frontmatter_model)
        self._cache[key] = resolved
        logger.debug(f"Resolved {prompt_type.value} {prompt_name} -> {resolved}")
        return resolved

    def invalidate_cache(self) -> None:
        """Clear cached resolutions and force a config reload on next use."""
        self._cache.clear()
        self._settings = None

    def _resolve(
        self,
        prompt_type: PromptType,
        prompt_name: str,
        cli_override: Optional[str],
        frontmatter_model: Optional[str],
    ) -> str:
        if cli_override:
            return cli_override

        settings = self._get_settings()
        mapped = getattr(settings, prompt_type.config_key).get(prompt_name)
        if mapped:
            return mapped

        if frontmatter_model:
            return frontmatter_model

        if settings.default and settings.default != FALLBACK_MODEL:
            return settings.default

        return FALLBACK_MODEL

    def _get_settings(self) -> ModelSettings:
        if self._settings is None:
            self._settings = self.model_config.get_merged_config(self.project_dir)
        return self._settings
