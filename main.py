"""STORM Due Diligence

Simple CLI for analyzing a business plan PDF.
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from storm_dd.config import PipelineConfig, settings
from storm_dd.errors import PipelineError
from storm_dd.storm.pipeline import DueDiligencePipeline


async def run_analysis(path: Path, model: str | None = None, no_search: bool = False) -> dict | None:
    """Run the analysis on the given PDF, printing progress as it goes."""
    print(f"Business plan: {path}")
    print("-" * 50)

    config = PipelineConfig.from_settings(settings, llm_model=model)
    if no_search:
        config = replace(config, tavily_api_key="")
    pipeline = DueDiligencePipeline(config)

    async for event in pipeline.stream_document(path):
        event_type = event.event.value
        data = event.data

        if event_type == "extraction_completed":
            print(f"[*] Extracted {data.get('chars')} chars (excerpt {data.get('excerpt_chars')})")

        elif event_type == "plan_created":
            queries = data.get("queries", [])
            suffix = " (fallback)" if data.get("fallback") else ""
            print(f"\n[*] Research queries{suffix}:")
            for i, query in enumerate(queries, 1):
                print(f"  {i}. {query}")

        elif event_type == "search_result":
            print(f"  [+] {data.get('query')}: {len(data.get('sources', []))} sources")

        elif event_type == "search_degraded":
            print(f"  [-] {data.get('query')}: {data.get('reason')}")

        elif event_type == "synthesis_started":
            print(f"\n[+] Synthesizing report from {data.get('sources_count')} sources...")

        elif event_type == "analysis_complete":
            print(f"\n[*] Analysis complete in {data.get('runtime_ms')}ms")
            return data.get("report")

    return None


def main():
    parser = argparse.ArgumentParser(description="STORM business plan due diligence")
    parser.add_argument("--file", "-f", required=True, help="Business plan PDF")
    parser.add_argument("--model", "-m", help="Model to use (default: from config)")
    parser.add_argument("--no-search", action="store_true", help="Skip external web research")
    parser.add_argument("--output", "-o", help="Write report JSON to this path instead of stdout")

    args = parser.parse_args()

    try:
        report = asyncio.run(run_analysis(Path(args.file), args.model, args.no_search))
    except PipelineError as e:
        print(f"\n[!] Error: {e.user_message} ({e})", file=sys.stderr)
        sys.exit(1)

    payload = json.dumps(report, ensure_ascii=False, indent=2)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Report written to {args.output}")
    else:
        print(payload)


if __name__ == "__main__":
    main()
