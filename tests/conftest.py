from __future__ import annotations

import copy
import json
from typing import Any

import pytest

from storm_dd.config import PipelineConfig, Settings
from storm_dd.llm_client import Completion, Usage


def _deep_dive(label: str) -> dict[str, Any]:
    return {
        "summaryPoints": [f"{label}要点一", f"{label}要点二", f"{label}要点三"],
        "detailedContent": f"{label}的详细说明。",
        "buttonLabel": f"查看{label}详情",
    }


REPORT_PAYLOAD: dict[str, Any] = {
    "executiveSummary": {
        "coreViewpoints": ["市场空间广阔", "团队技术背景扎实"],
        "preliminaryVerdict": "Watch",
        "verdictReason": "市场规模声明与外部数据存在差距，需进一步核实。",
    },
    "investmentHighlights": [
        {"highlight": "核心算法专利 12 项", "rating": "High"},
        {"highlight": "已签约 3 家头部客户", "rating": "Medium"},
    ],
    "businessDeepDive": {
        "technicalSolution": _deep_dive("技术方案"),
        "productPortfolio": _deep_dive("产品矩阵"),
        "commercializationPath": _deep_dive("商业化路径"),
        "operationalStrengths": _deep_dive("运营优势"),
    },
    "marketAnalysis": {
        "marketSize": "50亿元（公司口径），外部报告约 32亿元",
        "cagr": "18%",
        "drivers": ["政策扶持", "成本下降"],
        "customerSegments": ["制造业龙头", "中型工厂"],
        "regulatoryEnvironment": "行业标准仍在制定中。",
        "marketPainPoints": ["人工成本高"],
        "techTrends": [
            {"name": "端侧推理", "description": "模型小型化部署。", "maturity": "Growth"},
        ],
        "summary": "市场处于成长期。",
    },
    "competitiveLandscape": {
        "competitors": ["甲公司", "乙公司"],
        "moat": "数据积累与客户粘性。",
        "portersFiveForces": [
            {"aspect": "新进入者威胁", "strength": "Medium", "comment": "资本门槛中等。"},
        ],
        "summary": "竞争格局分散。",
        "competitorComparison": [
            {"dimension": "技术壁垒", "companyScore": 8, "competitorScore": 6},
        ],
    },
    "swotAnalysis": {
        "strengths": ["技术领先"],
        "weaknesses": ["销售团队薄弱"],
        "opportunities": ["国产替代"],
        "threats": ["巨头入场"],
    },
    "companyAnalysis": {
        "name": "X 公司",
        "businessModel": "软件订阅加硬件销售。",
        "productHighlight": "一体化质检平台。",
        "teamAssessment": "核心团队来自头部企业。",
        "teamMembers": [{"name": "张三", "role": "CEO", "background": "前某上市公司副总裁"}],
    },
    "financialAnalysis": {
        "revenueChartData": [
            {"year": "2023", "revenue": 1200, "profit": -300},
            {"year": "2024", "revenue": 2600, "profit": 100},
        ],
        "keyMetrics": [{"label": "毛利率", "value": "62%"}],
        "valuationAssessment": "估值偏高。",
        "summary": "收入增长迅速。",
        "companyValuation": "8亿元",
        "comparables": [
            {
                "name": "丙公司",
                "code": "688000",
                "valuation": "120亿元",
                "multiples": "PS 15x",
                "description": "同赛道上市公司。",
            }
        ],
    },
    "growthAndCatalysts": {"strategy": "先行业标杆后规模复制。", "catalysts": ["新品发布"]},
    "riskAssessment": {
        "risks": [
            {
                "category": f"类别{i}",
                "risk": f"风险{i}",
                "impact": f"影响{i}",
                "severity": ["High", "Medium", "Low"][i % 3],
                "mitigation": f"应对{i}",
            }
            for i in range(6)
        ],
        "summary": "整体风险可控。",
    },
    "exitStrategy": {
        "paths": ["科创板 IPO", "产业并购"],
        "timeframe": "5-7年",
        "timeframeRationale": "收入规模需达到上市标准。",
        "returnsPotential": "3-5倍",
        "returnsRationale": "参照可比公司估值。",
    },
    "finalRecommendation": {
        "decision": "建议持续跟踪",
        "investmentThesis": "技术壁垒明确，但市场规模有待验证。",
        "dueDiligenceFocus": [
            {
                "question": f"核实问题{i}",
                "reasoning": f"原因{i}",
                "priority": ["Low", "High", "Medium"][i % 3],
            }
            for i in range(10)
        ],
    },
}


@pytest.fixture
def report_payload() -> dict[str, Any]:
    return copy.deepcopy(REPORT_PAYLOAD)


@pytest.fixture
def report_json(report_payload) -> str:
    return json.dumps(report_payload, ensure_ascii=False)


@pytest.fixture
def pipeline_config() -> PipelineConfig:
    source = Settings(
        _env_file=None,
        llm_api_key="sk-test-llm",
        tavily_api_key="tvly-test-key",
    )
    return PipelineConfig.from_settings(source)


class FakeLLMClient:
    """Scripted stand-in for ChatCompletionsClient, keyed by the `caller` argument."""

    def __init__(self, responses: dict[str, Any]):
        self.responses = responses
        self.calls: list[dict[str, Any]] = []

    async def complete(self, messages, **kwargs) -> Completion:
        caller = kwargs.get("caller", "llm")
        self.calls.append({"messages": messages, **kwargs})
        response = self.responses[caller]
        if isinstance(response, Exception):
            raise response
        return Completion(text=response, model=kwargs.get("model") or "fake", usage=Usage(10, 20))

    def calls_for(self, caller: str) -> list[dict[str, Any]]:
        return [call for call in self.calls if call.get("caller") == caller]


@pytest.fixture
def fake_llm():
    def build(*, planner: Any = '{"queries": ["q1", "q2", "q3"]}', synthesis: Any = None) -> FakeLLMClient:
        return FakeLLMClient({"storm.planner": planner, "storm.synthesizer": synthesis})

    return build
