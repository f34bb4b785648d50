"""Tests for parameter normalization and merging."""

import pytest

from llm_switchboard.params import merge_params, normalize_params, split_extra


class TestParamsNormalization:
    """Test parameter normalization functionality."""

    def test_basic_params_normalization(self):
        """Test basic parameter normalization with core parameters."""
        params = normalize_params(
            {
                "temperature": 0.7,
                "top_p": 0.9,
                "frequency_penalty": 0.5,
                "presence_penalty": 0.2,
                "stream": True,
            }
        )

        assert params["temperature"] == 0.7
        assert params["top_p"] == 0.9
        assert params["frequency_penalty"] == 0.5
        assert params["presence_penalty"] == 0.2
        assert params["stream"] is True

    def test_extra_params_handling(self):
        """Unknown keys are moved into extra."""
        params = normalize_params(
            {"temperature": 0.7, "reasoning_effort": "minimal", "verbosity": "low"}
        )

        assert params["temperature"] == 0.7
        assert params["extra"]["reasoning_effort"] == "minimal"
        assert params["extra"]["verbosity"] == "low"

    def test_none_values_handling(self):
        params = normalize_params({"temperature": None, "reasoning_effort": "minimal"})

        assert params["temperature"] is None
        assert params["extra"]["reasoning_effort"] == "minimal"

        params = normalize_params(None)
        assert params == {"stream": False, "extra": {}}

    def test_existing_extra_dict_merge(self):
        """Explicit extra wins over moved unknown keys."""
        params = normalize_params(
            {
                "reasoning_effort": "minimal",
                "custom": "moved",
                "extra": {"verbosity": "high", "custom": "value"},
            }
        )

        assert params["extra"] == {
            "reasoning_effort": "minimal",
            "verbosity": "high",
            "custom": "value",
        }

    def test_stream_default(self):
        assert normalize_params({"temperature": 0.7})["stream"] is False
        assert normalize_params({"stream": True})["stream"] is True

    def test_tool_choice_is_standard(self):
        tool_choice = {"type": "function", "function": {"name": "test"}}
        params = normalize_params({"tool_choice": tool_choice, "parallel_tool_calls": True})

        assert params["tool_choice"] == tool_choice
        assert params["parallel_tool_calls"] is True
        assert params["extra"] == {}

    @pytest.mark.parametrize("key", ["tools", "response_format", "max_tokens", "messages", "model"])
    def test_request_level_keys_rejected(self, key):
        with pytest.raises(ValueError, match=key):
            normalize_params({key: object()})

    def test_non_dict_rejected(self):
        with pytest.raises(TypeError):
            normalize_params([("temperature", 0.2)])  # type: ignore[arg-type]
        with pytest.raises(TypeError):
            normalize_params({"extra": ["not", "a", "dict"]})

    def test_edge_case_values(self):
        params = normalize_params({"temperature": 0.0, "seed": 0, "stop": []})

        assert params["temperature"] == 0.0
        assert params["seed"] == 0
        assert params["stop"] == []


class TestMergeParams:
    def test_overrides_win(self):
        merged = merge_params(
            {"temperature": 0.2, "extra": {"top_k": 10, "verbosity": "low"}},
            {"temperature": 0.9, "extra": {"top_k": 40}},
        )

        assert merged["temperature"] == 0.9
        assert merged["extra"] == {"top_k": 40, "verbosity": "low"}

    def test_no_overrides(self):
        merged = merge_params({"temperature": 0.2}, None)
        assert merged["temperature"] == 0.2
        assert merged["stream"] is False


def test_split_extra_drops_stream_and_none():
    standard, extra = split_extra(
        normalize_params({"temperature": None, "top_p": 0.5, "stream": True, "top_k": 3})
    )

    assert standard == {"top_p": 0.5}
    assert extra == {"top_k": 3}
