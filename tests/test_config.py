"""Tests for configuration and per-call options."""

import pytest

from llm_conductor.config import ConductorConfig
from llm_conductor.errors import ConfigurationError
from llm_conductor.params import ChatOptions, RunOptions, merge_chat_options, normalize_options


class TestConductorConfig:
    """Defaults, validation and environment loading."""

    def test_defaults(self):
        """Test documented defaults."""
        config = ConductorConfig()
        assert config.max_token_limit == 4096
        assert config.max_request_limit == 25
        assert config.enable_parallel_tool_calls is True
        assert config.max_concurrent_tool_calls == 3
        assert config.tool_call_delay_ms == 100

    @pytest.mark.parametrize(
        "field, value",
        [
            ("max_token_limit", -1),
            ("max_request_limit", -1),
            ("max_concurrent_tool_calls", 0),
            ("tool_call_delay_ms", -10),
            ("tool_call_timeout", 0),
        ],
    )
    def test_invalid_values(self, field, value):
        """Test out-of-range settings raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ConductorConfig(**{field: value})

    def test_replace_validates(self):
        """Test replace re-runs validation."""
        config = ConductorConfig().replace(max_token_limit=0)
        assert config.max_token_limit == 0
        with pytest.raises(ConfigurationError):
            config.replace(max_request_limit=-3)
        with pytest.raises(ConfigurationError):
            config.replace(no_such_field=1)

    def test_from_env(self):
        """Test settings are parsed from prefixed environment variables."""
        config = ConductorConfig.from_env(
            environ={
                "CONDUCTOR_MAX_TOKEN_LIMIT": "0",
                "CONDUCTOR_ENABLE_PARALLEL_TOOL_CALLS": "false",
                "CONDUCTOR_TEMPERATURE": "0.3",
                "CONDUCTOR_TOOL_CALL_TIMEOUT": "none",
                "UNRELATED": "x",
            }
        )
        assert config.max_token_limit == 0
        assert config.enable_parallel_tool_calls is False
        assert config.temperature == 0.3
        assert config.tool_call_timeout is None
        assert config.max_request_limit == 25

    def test_from_env_bad_value(self):
        """Test unparsable environment values raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ConductorConfig.from_env(environ={"CONDUCTOR_ENABLE_PARALLEL_TOOL_CALLS": "maybe"})


class TestRunOptions:
    def test_normalize_none(self):
        """Test None normalizes to default options."""
        assert normalize_options(None) == RunOptions()

    def test_normalize_mapping(self):
        """Test a mapping normalizes to RunOptions."""
        options = normalize_options({"temperature": 0.2, "function_call_mode": "disabled"})
        assert options.temperature == 0.2
        assert options.function_call_mode == "disabled"

    def test_unknown_keys_rejected(self):
        """Test unknown option keys are rejected."""
        with pytest.raises(ConfigurationError, match="top_p"):
            normalize_options({"temperature": 0.2, "top_p": 0.9})

    def test_invalid_mode(self):
        """Test an unknown function call mode is rejected."""
        with pytest.raises(ConfigurationError):
            RunOptions(function_call_mode="required")

    def test_per_call_values_override_defaults(self):
        """Test per-call values win over instance defaults."""
        defaults = ConductorConfig(temperature=0.7, max_tokens=200)
        merged = merge_chat_options(defaults, RunOptions(temperature=0.1))
        assert merged.temperature == 0.1
        assert merged.max_tokens == 200
        assert merged.tools is None

    def test_chat_options_helpers(self):
        """Test ChatOptions as_dict and copy."""
        tools = [{"type": "function", "function": {"name": "f"}}]
        options = ChatOptions(temperature=0.5, tools=tools)
        assert options.tools_enabled
        assert options.as_dict() == {
            "temperature": 0.5,
            "tools": tools,
            "function_call_mode": "auto",
        }
        disabled = options.copy(function_call_mode="disabled")
        assert not disabled.tools_enabled
        assert options.function_call_mode == "auto"


class TestForcedFunction:
    """The force mode names the tool the backend must call."""

    def test_force_requires_function_name(self):
        """Force mode without a function name is a configuration error."""
        with pytest.raises(ConfigurationError, match="forced_function"):
            RunOptions(function_call_mode="force")
        with pytest.raises(ConfigurationError):
            normalize_options({"function_call_mode": "force"})

    def test_forced_function_is_merged(self):
        """The forced function travels from RunOptions into ChatOptions."""
        run = normalize_options({"function_call_mode": "force", "forced_function": "lookup"})
        merged = merge_chat_options(ConductorConfig(), run)
        assert merged.function_call_mode == "force"
        assert merged.forced_function == "lookup"
        assert merged.copy(function_call_mode="disabled").forced_function == "lookup"
