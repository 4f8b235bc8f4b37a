"""
Model configuration loading.

Reads the user-level and project-level config files and merges them with
precedence: Project > User > Default. Files may be YAML or JSON; both are
read with ``yaml.safe_load``.
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .identifiers import FALLBACK_MODEL, parse_provider

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ("config.yaml", "config.yml", "config.json")
PROJECT_CONFIG_DIR = ".model-gateway"
MAPPING_KEYS = ("agents", "commands", "skills", "hooks")

# Environment variables checked before the config file
ENV_KEY_NAMES = {
    "openrouter": "OPENROUTER_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "ollama": "OLLAMA_BASE_URL",
}

# Providers that run without a credential
NO_KEY_REQUIRED = ("ollama", FALLBACK_MODEL)


class ModelSettings(BaseModel):
    """Model selection settings for every prompt type."""
    default: str = FALLBACK_MODEL
    fallback_enabled: bool = Field(default=True, alias="fallbackEnabled")
    agents: Dict[str, str] = Field(default_factory=dict)
    commands: Dict[str, str] = Field(default_factory=dict)
    skills: Dict[str, str] = Field(default_factory=dict)
    hooks: Dict[str, str] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class ConfigValidation(BaseModel):
    valid: bool
    missing_keys: List[str] = Field(default_factory=list)


class ModelConfig:
    """
    Loads and merges model configuration from user and project configs.

    A missing, unreadable or malformed file is treated as empty.
    """

    def __init__(self, user_config_dir: str):
        """
        Initialize the loader.

        Args:
            user_config_dir: Directory holding the user-level config file
        """
        self.user_config_dir = Path(user_config_dir)
        self._user_config: Dict[str, Any] = {}
        self._project_config: Dict[str, Any] = {}

    def load_user_config(self) -> Dict[str, Any]:
        """Load the user-level config file."""
        self._user_config = _load_config_file(self.user_config_dir)
        return self._user_config

    def load_project_config(self, project_path: str) -> Dict[str, Any]:
        """Load ``<project>/.model-gateway/config.*``."""
        self._project_config = _load_config_file(Path(project_path) / PROJECT_CONFIG_DIR)
        return self._project_config

    def get_merged_config(self, project_path: str) -> ModelSettings:
        """Reload both files and merge them: Project > User > Default."""
        self.load_user_config()
        self.load_project_config(project_path)

        merged: Dict[str, Any] = ModelSettings().model_dump()
        for source in (self._user_config, self._project_config):
            models = source.get("models")
            if isinstance(models, dict):
                _merge_model_settings(merged, models)

        try:
            return ModelSettings.model_validate(merged)
        except PydanticValidationError as e:
            logger.error(f"Invalid model settings, using defaults: {e}")
            return ModelSettings()

    def validate_config(self, project_path: str) -> ConfigValidation:
        """Check that every provider referenced by a mapping has a credential."""
        merged = self.get_merged_config(project_path)

        providers_used = []
        for key in MAPPING_KEYS:
            for model_id in getattr(merged, key).values():
                provider = parse_provider(model_id)
                if provider and provider not in providers_used:
                    providers_used.append(provider)

        missing = [
            p for p in providers_used
            if p not in NO_KEY_REQUIRED and self.get_api_key(p) is None
        ]
        return ConfigValidation(valid=not missing, missing_keys=missing)

    def get_api_key(self, provider: str) -> Optional[str]:
        """
        API key for a provider.

        The environment variable takes precedence over the user config.
        """
        env_name = ENV_KEY_NAMES.get(provider)
        if env_name and os.getenv(env_name):
            return os.getenv(env_name)

        api_keys = self._user_config.get("apiKeys")
        if isinstance(api_keys, dict) and api_keys.get(provider):
            return api_keys[provider]

        # Legacy flat key, e.g. "openrouterApiKey"
        return self._user_config.get(f"{provider}ApiKey") or None


def _load_config_file(directory: Path) -> Dict[str, Any]:
    for name in CONFIG_FILENAMES:
        path = directory / name
        if not path.exists():
            continue
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {path}: top level is not a mapping")
            return {}
        return data
    return {}


def _merge_model_settings(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """
    Merge model settings from source into target, mapping by mapping.

    Entries with the wrong type are logged and skipped so one bad line
    does not discard the rest of the file.
    """
    default = source.get("default")
    if isinstance(default, str) and default:
        target["default"] = default
    elif default is not None:
        logger.warning(f"Ignoring default model {default!r}: model must be a string")

    fallback = source.get("fallbackEnabled", source.get("fallback_enabled"))
    if isinstance(fallback, bool):
        target["fallback_enabled"] = fallback
    elif fallback is not None:
        logger.warning(f"Ignoring fallbackEnabled {fallback!r}: expected true or false")

    for key in MAPPING_KEYS:
        mappings = source.get(key)
        if not isinstance(mappings, dict):
            continue
        for name, model_id in mappings.items():
            if not isinstance(model_id, str) or not model_id:
                logger.warning(f"Ignoring {key} mapping {name!r}: model must be a string")
                continue
            target[key][str(name)] = model_id
