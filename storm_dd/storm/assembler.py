from __future__ import annotations

from storm_dd.models.report import SourceCitation, StructuredReport


def assemble(report: StructuredReport, sources: list[SourceCitation]) -> StructuredReport:
    return report.model_copy(update={"search_sources": list(sources)})
