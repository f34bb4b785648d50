"""
Parameter normalization for llm-switchboard.

Public API
- Callers pass a dict as ``GenerationRequest.params`` (or ``params=`` on the
  provider classes).

Contract
- Standard keys work across providers:
  temperature: float
  top_p: float
  stream: bool
  tool_choice: str | dict
  stop: str | list[str]
  user: str
  seed: int

- Provider specific keys go under `extra` and pass through unchanged.
  Examples:
    extra.reasoning_effort: "low" | "medium" | "high"
    extra.top_k: int
    extra.metadata: dict

Unknown top-level keys are moved into extra.
Unknown extra keys are forwarded as-is.

Tools, the output schema and the output token limit are part of the request
itself; passing them through params is rejected so there is one source of
truth for each.
"""

from __future__ import annotations

from typing import Any

STANDARD_KEYS = {
    "temperature",
    "top_p",
    "stream",
    "tool_choice",
    "stop",
    "user",
    "frequency_penalty",
    "presence_penalty",
    "parallel_tool_calls",
    "seed",
}

RESERVED_KEYS = {"messages", "model", "tools", "response_format", "max_tokens"}


def normalize_params(params: dict | None) -> dict:
    """
    Normalize a user-supplied params dict to a single internal shape.

    Returns a dict with only standard keys plus an `extra` dict.
    Defaults:
      stream defaults to False
      extra defaults to {}
    Rules:
      - Keys not in STANDARD_KEYS are moved into extra
      - If the caller already passed an `extra` dict it is merged last
      - None values are kept so adapters can decide to drop them
      - Keys in RESERVED_KEYS raise ValueError

    Example
    -------
    >>> normalize_params({
    ...   "temperature": 0.2,
    ...   "reasoning_effort": "high",
    ...   "extra": {"top_k": 40}
    ... })
    {'temperature': 0.2, 'stream': False,
     'extra': {'reasoning_effort': 'high', 'top_k': 40}}
    """
    if params is None:
        return {"stream": False, "extra": {}}
    if not isinstance(params, dict):
        raise TypeError(f"params must be a dict, got {type(params).__name__}")

    std: dict = {}
    extra: dict = {}

    user_extra = params.get("extra") or {}
    if user_extra and not isinstance(user_extra, dict):
        raise TypeError("params['extra'] must be a dict")

    for key, value in params.items():
        if key == "extra":
            continue
        if key in RESERVED_KEYS:
            raise ValueError(
                f"params[{key!r}] is not allowed; set it on the request instead"
            )
        if key in STANDARD_KEYS:
            std[key] = value
        else:
            extra[key] = value

    std.setdefault("stream", False)

    # moved unknowns first, then user-provided extra wins
    std["extra"] = {**extra, **user_extra}

    return std


def merge_params(defaults: dict | None, overrides: dict | None) -> dict:
    """
    Shallow-merge client defaults with per-call overrides, then normalize.

    Rules:
      - Top-level keys are overwritten by overrides
      - `extra` is merged with overrides winning per key
    """
    base: dict = dict(defaults or {})
    if overrides:
        base_extra = dict(base.get("extra") or {})
        over_extra = dict(overrides.get("extra") or {})

        for k, v in overrides.items():
            if k != "extra":
                base[k] = v

        base["extra"] = {**base_extra, **over_extra}

    return normalize_params(base)


def split_extra(params: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return (standard keys without None values and `stream`, extra)."""
    std = {
        k: v
        for k, v in params.items()
        if k not in ("extra", "stream") and v is not None
    }
    return std, dict(params.get("extra") or {})
