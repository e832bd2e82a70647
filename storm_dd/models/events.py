from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    EXTRACTION_COMPLETED = "extraction_completed"
    PLAN_CREATED = "plan_created"
    SEARCH_STARTED = "search_started"
    SEARCH_RESULT = "search_result"
    SEARCH_DEGRADED = "search_degraded"
    EVIDENCE_AGGREGATED = "evidence_aggregated"
    SYNTHESIS_STARTED = "synthesis_started"
    ANALYSIS_COMPLETE = "analysis_complete"
    ERROR = "error"


@dataclass
class SSEEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    def format(self) -> str:
        return f"event: {self.event.value}\ndata: {json.dumps(self.data, ensure_ascii=False)}\n\n"
