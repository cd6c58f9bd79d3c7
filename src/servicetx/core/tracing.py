"""
Decision traces for the service transaction checker.

One TraceSpan is recorded per policy check that reaches the certifier.
Spans carry the sender, destination, certifier result, whitelist
outcome and final decision, so fail-open and explicit refusals can be
told apart after the fact.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass(frozen=True)
class TraceSpan:
    name: str
    sender: str
    destination: str
    certified: Optional[bool]
    permitted: bool
    whitelist: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    started_at: str = field(default_factory=now_iso)
    ended_at: str = field(default_factory=now_iso)
    span_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TraceSink:
    def record(self, span: TraceSpan) -> None:
        raise NotImplementedError

    def get_spans(self) -> List[TraceSpan]:
        raise NotImplementedError


class InMemoryTraceSink(TraceSink):
    """Keeps spans in memory, in recording order."""

    def __init__(self) -> None:
        self._spans: List[TraceSpan] = []

    def record(self, span: TraceSpan) -> None:
        self._spans.append(span)

    def get_spans(self) -> List[TraceSpan]:
        return list(self._spans)
