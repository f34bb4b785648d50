"""
Exchange records handed to an optional sink after every generation.

Persisting them is the sink's business; this package ships only an in-memory
sink.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, Optional, Protocol, runtime_checkable

from llm_switchboard.provider import Provider
from llm_switchboard.types.chat import FinishReason, Message, Usage
from llm_switchboard.types.tool import ToolCall, ToolResult

__all__ = [
    "RequestStatus",
    "ExchangeRecord",
    "RecordSink",
    "InMemoryRecordSink",
    "deliver_record",
]

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class RequestStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ExchangeRecord:
    provider: Provider
    model: str
    messages: tuple[Message, ...] = ()
    tool_calls: tuple[ToolCall, ...] = ()
    tool_results: tuple[ToolResult, ...] = ()
    usage: Usage = field(default_factory=Usage)
    finish_reason: Optional[FinishReason] = None
    status: RequestStatus = RequestStatus.PENDING
    latency_ms: Optional[int] = None
    is_streaming: bool = False
    error_message: Optional[str] = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def completed(self, **changes: Any) -> "ExchangeRecord":
        return replace(self, status=RequestStatus.COMPLETED, **changes)

    def failed(self, error: BaseException, **changes: Any) -> "ExchangeRecord":
        return replace(
            self,
            status=RequestStatus.FAILED,
            error_message=str(error) or type(error).__name__,
            **changes,
        )


@runtime_checkable
class RecordSink(Protocol):
    async def record(self, record: ExchangeRecord) -> None:
        ...


class InMemoryRecordSink:
    """Keeps every record in a list; handy for tests and debugging."""

    def __init__(self) -> None:
        self.records: list[ExchangeRecord] = []

    async def record(self, record: ExchangeRecord) -> None:
        self.records.append(record)


async def deliver_record(
    sink: Optional[RecordSink],
    record: ExchangeRecord,
    log: Optional[logging.Logger] = None,
) -> None:
    """Hand *record* to *sink*; a failing sink is logged and otherwise ignored."""
    if sink is None:
        return
    try:
        await sink.record(record)
    except Exception:
        (log or logger).exception(
            "Record sink %s failed for request %s",
            type(sink).__name__,
            record.request_id,
        )
