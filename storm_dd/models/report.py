"""Investment memo schema produced by the synthesis step.

Field names are snake_case in Python and camelCase on the wire, which is the
shape the model is asked to emit and the shape dashboard/export consumers read.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value.lower() == lowered:
                    return member
        return None


class Verdict(_CaseInsensitiveEnum):
    INVEST = "Invest"
    WATCH = "Watch"
    PASS = "Pass"


class Level(_CaseInsensitiveEnum):
    """Severity / priority scale. Ordered High > Medium > Low."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]


_LEVEL_RANK = {Level.HIGH: 3, Level.MEDIUM: 2, Level.LOW: 1}


class HighlightRating(_CaseInsensitiveEnum):
    HIGH = "High"
    MEDIUM = "Medium"


class Maturity(_CaseInsensitiveEnum):
    EMERGING = "Emerging"
    GROWTH = "Growth"
    MATURE = "Mature"


class ReportModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class SourceCitation(ReportModel):
    title: str
    url: str


class ExecutiveSummary(ReportModel):
    core_viewpoints: list[str]
    preliminary_verdict: Verdict
    verdict_reason: str


class HighlightItem(ReportModel):
    highlight: str
    rating: HighlightRating


class DeepDiveItem(ReportModel):
    summary_points: list[str]
    detailed_content: str
    button_label: str


class BusinessDeepDive(ReportModel):
    technical_solution: DeepDiveItem
    product_portfolio: DeepDiveItem
    commercialization_path: DeepDiveItem
    operational_strengths: DeepDiveItem


class TechTrendItem(ReportModel):
    name: str
    description: str
    maturity: Maturity


class MarketAnalysis(ReportModel):
    market_size: str
    cagr: str
    drivers: list[str]
    customer_segments: list[str]
    regulatory_environment: str
    market_pain_points: list[str]
    tech_trends: list[TechTrendItem]
    summary: str


class PortersForce(ReportModel):
    aspect: str
    strength: Level
    comment: str


class CompetitorScore(ReportModel):
    dimension: str
    company_score: float
    competitor_score: float


class CompetitiveLandscape(ReportModel):
    competitors: list[str]
    moat: str
    porters_five_forces: list[PortersForce]
    summary: str
    competitor_comparison: list[CompetitorScore] = []


class SWOTAnalysis(ReportModel):
    strengths: list[str]
    weaknesses: list[str]
    opportunities: list[str]
    threats: list[str]


class TeamMember(ReportModel):
    name: str
    role: str
    background: str


class CompanyAnalysis(ReportModel):
    name: str
    business_model: str
    product_highlight: str
    team_assessment: str
    team_members: list[TeamMember]


class FinancialChartData(ReportModel):
    year: str
    revenue: float
    profit: float


class KeyMetric(ReportModel):
    label: str
    value: str


class ComparableCompany(ReportModel):
    name: str
    code: str
    valuation: str
    multiples: str
    description: str


class FinancialAnalysis(ReportModel):
    revenue_chart_data: list[FinancialChartData]
    key_metrics: list[KeyMetric]
    valuation_assessment: str
    summary: str
    company_valuation: str
    comparables: list[ComparableCompany]


class GrowthAndCatalysts(ReportModel):
    strategy: str
    catalysts: list[str]


class RiskItem(ReportModel):
    category: str
    risk: str
    impact: str
    severity: Level
    mitigation: str


class RiskAssessment(ReportModel):
    risks: list[RiskItem]
    summary: str


class ExitStrategy(ReportModel):
    paths: list[str]
    timeframe: str
    timeframe_rationale: str
    returns_potential: str
    returns_rationale: str


class DueDiligenceItem(ReportModel):
    question: str
    reasoning: str
    priority: Level


class FinalRecommendation(ReportModel):
    decision: str
    investment_thesis: str
    due_diligence_focus: list[DueDiligenceItem]


class StructuredReport(ReportModel):
    executive_summary: ExecutiveSummary
    investment_highlights: list[HighlightItem]
    business_deep_dive: BusinessDeepDive
    market_analysis: MarketAnalysis
    competitive_landscape: CompetitiveLandscape
    swot_analysis: SWOTAnalysis
    company_analysis: CompanyAnalysis
    financial_analysis: FinancialAnalysis
    growth_and_catalysts: GrowthAndCatalysts
    risk_assessment: RiskAssessment
    exit_strategy: ExitStrategy
    final_recommendation: FinalRecommendation
    search_sources: list[SourceCitation] | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready dict in wire (camelCase) form."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def report_json_schema() -> dict[str, Any]:
    """JSON schema the model must fill; sources are attached afterwards, not generated."""
    schema = StructuredReport.model_json_schema(by_alias=True)
    schema.get("properties", {}).pop("searchSources", None)
    return schema


def sorted_due_diligence(report: StructuredReport) -> list[DueDiligenceItem]:
    items = report.final_recommendation.due_diligence_focus
    return sorted(items, key=lambda item: item.priority.rank, reverse=True)


def sorted_risks(report: StructuredReport) -> list[RiskItem]:
    return sorted(report.risk_assessment.risks, key=lambda item: item.severity.rank, reverse=True)
