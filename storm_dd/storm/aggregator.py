from __future__ import annotations

from storm_dd.models.report import SourceCitation
from storm_dd.models.research import AggregatedEvidence, PerQueryResult


def perspective_block(result: PerQueryResult) -> str:
    header = f"### Perspective: {result.query}\n"
    if result.answer:
        header += f"Summary: {result.answer}\n"
    return f"{header}{result.context}\n"


def dedupe_sources(results: list[PerQueryResult]) -> list[SourceCitation]:
    """First occurrence of each url wins, walking results in query order."""
    sources: list[SourceCitation] = []
    seen_urls: set[str] = set()
    for result in results:
        for source in result.sources:
            url = source.url.strip()
            if not url or url in seen_urls:
                continue
            seen_urls.add(url)
            sources.append(source)
    return sources


def aggregate(results: list[PerQueryResult]) -> AggregatedEvidence:
    """Fuse per-query evidence into one research context plus a deduplicated source list.

    Only results that actually carry evidence get a perspective block, so a run
    with no usable search results produces an empty context.
    """
    blocks = [perspective_block(result) for result in results if result.context.strip()]
    return AggregatedEvidence(
        context="\n\n".join(blocks),
        sources=dedupe_sources(results),
    )
