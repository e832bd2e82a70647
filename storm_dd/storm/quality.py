"""Formatting-contract checks on a parsed report.

Amounts must use Chinese large-number units (万, 亿), and some lists have
minimum lengths. Violations are reported, not enforced: the report is still
valid data.
"""
from __future__ import annotations

import re
from typing import Any, Iterator

from storm_dd.models.report import StructuredReport

MIN_RISKS = 6
MIN_DUE_DILIGENCE_QUESTIONS = 10

ABBREVIATED_AMOUNT = re.compile(
    r"(?<![A-Za-z0-9.,])"
    # 2B/2C business models and 4K/8K resolutions are not amounts.
    r"(?!(?:2[BC]|[48]K)(?![\w-]))"
    r"\d[\d,]*(?:\.\d+)?\s?"
    r"(?:K|M|B|[Bb]n|[Mm]n|[Mm]illion|[Bb]illion|[Tt]rillion)"
    r"(?![\w-])"
)


def find_abbreviated_amounts(text: str) -> list[str]:
    return [match.group(0) for match in ABBREVIATED_AMOUNT.finditer(text)]


def _iter_strings(node: Any, path: str = "") -> Iterator[tuple[str, str]]:
    if isinstance(node, str):
        yield path, node
    elif isinstance(node, dict):
        for key, value in node.items():
            yield from _iter_strings(value, f"{path}.{key}" if path else key)
    elif isinstance(node, list):
        for index, value in enumerate(node):
            yield from _iter_strings(value, f"{path}[{index}]")


def report_quality_issues(report: StructuredReport) -> list[str]:
    issues: list[str] = []

    risk_count = len(report.risk_assessment.risks)
    if risk_count < MIN_RISKS:
        issues.append(f"riskAssessment.risks has {risk_count} entries, expected at least {MIN_RISKS}")

    question_count = len(report.final_recommendation.due_diligence_focus)
    if question_count < MIN_DUE_DILIGENCE_QUESTIONS:
        issues.append(
            f"finalRecommendation.dueDiligenceFocus has {question_count} entries, "
            f"expected at least {MIN_DUE_DILIGENCE_QUESTIONS}"
        )

    payload = report.model_dump(mode="json", by_alias=True, exclude={"search_sources"})
    for path, text in _iter_strings(payload):
        for amount in find_abbreviated_amounts(text):
            issues.append(f"{path} uses abbreviated amount '{amount}'")
    return issues
