from __future__ import annotations

from storm_dd.models.report import SourceCitation
from storm_dd.models.research import DegradedReason, PerQueryResult
from storm_dd.storm.aggregator import aggregate


def _result(query: str, *sources: tuple[str, str]) -> PerQueryResult:
    citations = [SourceCitation(title=title, url=url) for title, url in sources]
    context = "\n---\n".join(f"Source: {c.title} ({c.url})\nSnippet: ..." for c in citations)
    return PerQueryResult(query=query, context=context, sources=citations)


def test_aggregate_labels_each_perspective_in_query_order():
    results = [
        _result("market size", ("A", "https://a.com")),
        _result("competitors", ("B", "https://b.com")),
    ]

    evidence = aggregate(results)

    assert evidence.context.startswith("### Perspective: market size\n")
    assert evidence.context.index("### Perspective: market size") < evidence.context.index(
        "### Perspective: competitors"
    )
    assert evidence.has_evidence


def test_aggregate_dedupes_by_url_keeping_first_title():
    results = [
        _result("q1", ("First title", "https://same.com/report"), ("Other", "https://other.com")),
        _result("q2", ("Second title", "https://same.com/report"), ("New", "https://new.com")),
    ]

    evidence = aggregate(results)

    assert [(s.title, s.url) for s in evidence.sources] == [
        ("First title", "https://same.com/report"),
        ("Other", "https://other.com"),
        ("New", "https://new.com"),
    ]


def test_aggregate_order_depends_only_on_query_order():
    results = [
        _result("q1", ("1a", "https://1a.com"), ("1b", "https://1b.com")),
        _result("q2", ("2a", "https://2a.com")),
        _result("q3", ("3a", "https://3a.com"), ("1b again", "https://1b.com")),
    ]

    first = aggregate(results)
    second = aggregate(list(results))

    assert [s.url for s in first.sources] == [
        "https://1a.com",
        "https://1b.com",
        "https://2a.com",
        "https://3a.com",
    ]
    assert first == second


def test_aggregate_skips_results_without_evidence():
    results = [
        _result("q1", ("A", "https://a.com")),
        PerQueryResult.empty("q2", DegradedReason.SEARCH_FAILED, "boom"),
    ]

    evidence = aggregate(results)

    assert "q2" not in evidence.context
    assert [s.url for s in evidence.sources] == ["https://a.com"]


def test_aggregate_with_no_results_is_empty():
    evidence = aggregate([])

    assert evidence.context == ""
    assert evidence.sources == []
    assert not evidence.has_evidence


def test_aggregate_with_only_degraded_results_is_empty():
    results = [
        PerQueryResult.empty(q, DegradedReason.SEARCH_CREDENTIALS_MISSING) for q in ("q1", "q2", "q3")
    ]

    evidence = aggregate(results)

    assert evidence.context == ""
    assert evidence.sources == []


def test_provider_answer_heads_its_perspective():
    with_answer = _result("market size", ("A", "https://a.com"))
    with_answer.answer = "约 50亿元"
    results = [with_answer, _result("competitors", ("B", "https://b.com"))]

    evidence = aggregate(results)

    assert evidence.context.startswith("### Perspective: market size\nSummary: 约 50亿元\nSource: A")
    assert "### Perspective: competitors\nSource: B" in evidence.context
    assert evidence.context.count("Summary:") == 1


def test_answer_without_snippets_adds_no_perspective():
    result = PerQueryResult(query="q1", answer="an answer but no sources")

    assert aggregate([result]).context == ""
