"""
Unit tests for model configuration loading and model routing.
"""
import json

import pytest
import yaml

from model_gateway.routing.model_config import ModelConfig
from model_gateway.routing.model_router import ModelRouter, PromptType


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("OPENROUTER_API_KEY", "GEMINI_API_KEY", "OLLAMA_BASE_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def dirs(tmp_path):
    user_dir = tmp_path / "user"
    project_dir = tmp_path / "project"
    user_dir.mkdir()
    (project_dir / ".model-gateway").mkdir(parents=True)
    return user_dir, project_dir


def write_user_config(user_dir, data):
    (user_dir / "config.json").write_text(json.dumps(data))


def write_project_config(project_dir, data):
    (project_dir / ".model-gateway" / "config.yaml").write_text(yaml.safe_dump(data))


class TestModelConfig:
    """Test config loading and merging."""

    def test_defaults_without_files(self, dirs):
        """Test missing files yield default settings."""
        user_dir, project_dir = dirs
        settings = ModelConfig(str(user_dir)).get_merged_config(str(project_dir))

        assert settings.default == "claude"
        assert settings.fallback_enabled is True
        assert settings.commands == {}

    def test_project_overrides_user(self, dirs):
        """Test project values win for the same key, other keys are kept."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {
            "default": "ollama/llama3",
            "commands": {"oss:ship": "openrouter/openai/gpt-4o", "oss:test": "ollama/codellama"},
        }})
        write_project_config(project_dir, {"models": {
            "commands": {"oss:ship": "ollama/qwen2.5-coder"},
            "fallbackEnabled": False,
        }})

        settings = ModelConfig(str(user_dir)).get_merged_config(str(project_dir))

        assert settings.default == "ollama/llama3"
        assert settings.fallback_enabled is False
        assert settings.commands == {
            "oss:ship": "ollama/qwen2.5-coder",
            "oss:test": "ollama/codellama",
        }

    def test_malformed_file_treated_as_empty(self, dirs):
        """Test an unparseable config does not break loading."""
        user_dir, project_dir = dirs
        (user_dir / "config.yaml").write_text("models: [unclosed")

        settings = ModelConfig(str(user_dir)).get_merged_config(str(project_dir))

        assert settings.default == "claude"

    def test_invalid_entries_skipped(self, dirs):
        """Test entries with non-string models are dropped, valid ones are kept."""
        user_dir, project_dir = dirs
        (user_dir / "config.yaml").write_text(
            "models:\n"
            "  default: 42\n"
            "  fallbackEnabled: sometimes\n"
            "  commands:\n"
            "    oss:ship: ollama/codellama\n"
            "    oss:review:\n"
        )

        settings = ModelConfig(str(user_dir)).get_merged_config(str(project_dir))

        assert settings.default == "claude"
        assert settings.fallback_enabled is True
        assert settings.commands == {"oss:ship": "ollama/codellama"}

    def test_non_mapping_file_treated_as_empty(self, dirs):
        """Test a config whose top level is not a mapping is ignored."""
        user_dir, project_dir = dirs
        (user_dir / "config.json").write_text("[1, 2, 3]")

        assert ModelConfig(str(user_dir)).load_user_config() == {}

    def test_api_key_from_config(self, dirs):
        """Test keys are read from apiKeys."""
        user_dir, _ = dirs
        write_user_config(user_dir, {"apiKeys": {"gemini": "g-from-file"}})
        config = ModelConfig(str(user_dir))
        config.load_user_config()

        assert config.get_api_key("gemini") == "g-from-file"
        assert config.get_api_key("openrouter") is None

    def test_legacy_openrouter_key(self, dirs):
        """Test the legacy flat openrouterApiKey is honoured."""
        user_dir, _ = dirs
        write_user_config(user_dir, {"openrouterApiKey": "sk-or-legacy"})
        config = ModelConfig(str(user_dir))
        config.load_user_config()

        assert config.get_api_key("openrouter") == "sk-or-legacy"

    def test_env_key_takes_precedence(self, dirs, monkeypatch):
        """Test the environment variable wins over the config file."""
        user_dir, _ = dirs
        write_user_config(user_dir, {"apiKeys": {"openrouter": "sk-or-file"}})
        monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-env")
        config = ModelConfig(str(user_dir))
        config.load_user_config()

        assert config.get_api_key("openrouter") == "sk-or-env"

    def test_validate_reports_missing_keys(self, dirs):
        """Test providers without credentials are reported."""
        user_dir, project_dir = dirs
        write_project_config(project_dir, {"models": {
            "agents": {"reviewer": "openrouter/openai/gpt-4o"},
            "skills": {"tdd": "ollama/codellama"},
            "hooks": {"pre-commit": "claude"},
        }})

        result = ModelConfig(str(user_dir)).validate_config(str(project_dir))

        assert result.valid is False
        assert result.missing_keys == ["openrouter"]

    def test_validate_passes_with_keys(self, dirs):
        """Test configuration with every credential present is valid."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"apiKeys": {"openrouter": "sk-or-1"}})
        write_project_config(project_dir, {"models": {
            "agents": {"reviewer": "openrouter/openai/gpt-4o"},
        }})

        result = ModelConfig(str(user_dir)).validate_config(str(project_dir))

        assert result.valid is True
        assert result.missing_keys == []


class TestModelRouter:
    """Test model resolution precedence."""

    def test_config_mapping(self, dirs):
        """Test a per-prompt mapping is used without an override."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"commands": {"oss:ship": "ollama/codellama"}}})
        router = ModelRouter(str(user_dir), str(project_dir))

        assert router.resolve_model(PromptType.COMMAND, "oss:ship") == "ollama/codellama"

    def test_override_wins(self, dirs):
        """Test the caller override beats config contents."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"commands": {"oss:ship": "ollama/codellama"}}})
        router = ModelRouter(str(user_dir), str(project_dir))

        result = router.resolve_model(
            PromptType.COMMAND, "oss:ship", cli_override="openrouter/openai/gpt-4o",
        )

        assert result == "openrouter/openai/gpt-4o"

    def test_config_beats_frontmatter(self, dirs):
        """Test a config mapping beats the prompt's own frontmatter."""
        user_dir, project_dir = dirs
        write_project_config(project_dir, {"models": {"agents": {"reviewer": "ollama/llama3"}}})
        router = ModelRouter(str(user_dir), str(project_dir))

        result = router.resolve_model(
            PromptType.AGENT, "reviewer", frontmatter_model="openrouter/openai/gpt-4o",
        )

        assert result == "ollama/llama3"

    def test_frontmatter_beats_default(self, dirs):
        """Test frontmatter is used when no mapping exists."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"default": "ollama/llama3"}})
        router = ModelRouter(str(user_dir), str(project_dir))

        result = router.resolve_model(PromptType.SKILL, "tdd", frontmatter_model="gemini/gemini-pro")

        assert result == "gemini/gemini-pro"

    def test_global_default(self, dirs):
        """Test the configured default applies to unmapped prompts."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"default": "ollama/llama3"}})
        router = ModelRouter(str(user_dir), str(project_dir))

        assert router.resolve_model(PromptType.HOOK, "post-edit") == "ollama/llama3"

    def test_fallback(self, dirs):
        """Test the fallback sentinel when nothing is configured."""
        user_dir, project_dir = dirs
        router = ModelRouter(str(user_dir), str(project_dir))

        assert router.resolve_model(PromptType.COMMAND, "anything") == "claude"

    def test_prompt_type_by_value(self, dirs):
        """Test prompt types can be passed as plain strings."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"hooks": {"lint": "ollama/codellama"}}})
        router = ModelRouter(str(user_dir), str(project_dir))

        assert router.resolve_model("hook", "lint") == "ollama/codellama"

    def test_mapping_scoped_to_prompt_type(self, dirs):
        """Test a command mapping does not apply to an agent of the same name."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"commands": {"review": "ollama/codellama"}}})
        router = ModelRouter(str(user_dir), str(project_dir))

        assert router.resolve_model(PromptType.AGENT, "review") == "claude"

    def test_resolution_cached_until_invalidated(self, dirs):
        """Test config edits are only seen after invalidate_cache()."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"commands": {"oss:ship": "ollama/codellama"}}})
        router = ModelRouter(str(user_dir), str(project_dir))
        assert router.resolve_model(PromptType.COMMAND, "oss:ship") == "ollama/codellama"

        write_user_config(user_dir, {"models": {"commands": {"oss:ship": "ollama/llama3"}}})
        assert router.resolve_model(PromptType.COMMAND, "oss:ship") == "ollama/codellama"
        # A different key still uses the loaded config.
        assert router.resolve_model(PromptType.COMMAND, "oss:other") == "claude"

        router.invalidate_cache()
        assert router.resolve_model(PromptType.COMMAND, "oss:ship") == "ollama/llama3"

    def test_injected_model_config(self, dirs):
        """Test a caller-provided ModelConfig is used for loading."""
        user_dir, project_dir = dirs
        write_user_config(user_dir, {"models": {"default": "gemini/gemini-pro"}})
        config = ModelConfig(str(user_dir))
        router = ModelRouter("/nonexistent", str(project_dir), model_config=config)

        assert router.resolve_model(PromptType.COMMAND, "x") == "gemini/gemini-pro"

    def test_empty_mapping_does_not_discard_config(self, dirs):
        """Test an empty mapping entry leaves the other settings in effect."""
        user_dir, project_dir = dirs
        (user_dir / "config.yaml").write_text(
            "models:\n"
            "  default: openrouter/openai/gpt-4o\n"
            "  commands:\n"
            "    oss:ship: ollama/codellama\n"
            "    oss:review:\n"
        )
        router = ModelRouter(str(user_dir), str(project_dir))

        assert router.resolve_model(PromptType.COMMAND, "oss:ship") == "ollama/codellama"
        assert router.resolve_model(PromptType.COMMAND, "oss:review") == "openrouter/openai/gpt-4o"
