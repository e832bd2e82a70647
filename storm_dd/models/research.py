from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from storm_dd.models.report import SourceCitation

ResearchQuery = str


class DegradedReason(str, Enum):
    PLANNER_CALL_FAILED = "planner_call_failed"
    PLANNER_INVALID_JSON = "planner_invalid_json"
    PLANNER_EMPTY = "planner_empty"
    SEARCH_CREDENTIALS_MISSING = "search_credentials_missing"
    SEARCH_FAILED = "search_failed"


@dataclass(frozen=True, slots=True)
class DocumentExcerpt:
    """Length-capped document text handed to the model calls."""

    text: str

    @classmethod
    def from_text(cls, text: str, *, max_chars: int) -> "DocumentExcerpt":
        return cls(text=text[: max(max_chars, 0)])

    def prefix(self, max_chars: int) -> str:
        return self.text[: max(max_chars, 0)]

    def __len__(self) -> int:
        return len(self.text)


@dataclass(frozen=True, slots=True)
class EvidenceSnippet:
    query: ResearchQuery
    title: str
    url: str
    content: str

    def citation(self) -> SourceCitation:
        return SourceCitation(title=self.title, url=self.url)

    def format(self) -> str:
        return f"Source: {self.title} ({self.url})\nSnippet: {self.content}"


@dataclass(slots=True)
class QueryPlan:
    queries: list[ResearchQuery]
    degraded: DegradedReason | None = None
    error: str | None = None

    @property
    def fell_back(self) -> bool:
        return self.degraded is not None


@dataclass(slots=True)
class PerQueryResult:
    query: ResearchQuery
    context: str = ""
    sources: list[SourceCitation] = field(default_factory=list)
    snippets: list[EvidenceSnippet] = field(default_factory=list)
    answer: str | None = None
    degraded: DegradedReason | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.degraded is None

    @classmethod
    def empty(
        cls,
        query: ResearchQuery,
        reason: DegradedReason,
        error: str | None = None,
    ) -> "PerQueryResult":
        return cls(query=query, degraded=reason, error=error)


@dataclass(slots=True)
class AggregatedEvidence:
    context: str = ""
    sources: list[SourceCitation] = field(default_factory=list)

    @property
    def has_evidence(self) -> bool:
        return bool(self.context.strip())
