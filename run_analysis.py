#!/usr/bin/env python3
"""
ThoughtPolice Analysis Runner

Analyzes one or more Reddit users from the command line and prints the
resulting analyses as JSON. Multiple users run as a sequential batch with a
progress bar.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from dotenv import load_dotenv
from tqdm import tqdm

from thoughtpolice.domain.models import Analysis
from thoughtpolice.foundation.config import load_config
from thoughtpolice.foundation.logging import setup_logging
from thoughtpolice.orchestration import AnalysisContext, AnalysisOrchestrator

load_dotenv()

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run contradiction analyses on Reddit users")
    parser.add_argument("usernames", nargs="*", help="Usernames to analyze (u/ prefix allowed)")
    parser.add_argument("--config", help="YAML configuration file merged over the environment")
    parser.add_argument("--env-file", help="Alternate .env file")
    parser.add_argument("--preview", action="store_true", help="Only print account previews")
    parser.add_argument("--stream", action="store_true", help="Print progress events for a single user")
    parser.add_argument("--health", action="store_true", help="Check collaborator health and exit")
    parser.add_argument("--budget", type=float, help="Override the budget ceiling for this run")
    parser.add_argument("--verbose", "-v", action="store_true", help="Trace every request and stage")
    return parser.parse_args(argv)


def _print_json(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _dump(analysis: Analysis) -> dict:
    return analysis.model_dump(mode="json", by_alias=True)


async def run(args: argparse.Namespace) -> int:
    config = load_config(env_file=args.env_file, yaml_file=args.config)
    setup_logging(
        "DEBUG" if args.verbose else config.log_level,
        structured=config.structured_logging
    )

    context = AnalysisContext.from_config(config)
    orchestrator = AnalysisOrchestrator(context, config=config.analysis)
    orchestrator.set_verbose(args.verbose or config.verbose)

    if args.budget is not None:
        orchestrator.set_budget(args.budget, config.budget.warning_threshold)

    try:
        if args.health:
            report = await orchestrator.health_check()
            _print_json(report)
            return 0 if report["status"] != "unhealthy" else 1

        if not args.usernames:
            logger.error("No usernames given")
            return 2

        if args.preview:
            for username in args.usernames:
                preview = await orchestrator.get_user_preview(username)
                _print_json({"username": username, **preview.model_dump(by_alias=True)})
            return 0

        if args.stream:
            final_stage = None
            async for event in orchestrator.analyze_user_stream(args.usernames[0]):
                _print_json(event.to_dict())
                final_stage = event.stage.value
            return 0 if final_stage == "complete" else 1

        if len(args.usernames) == 1:
            analysis = await orchestrator.analyze_user(args.usernames[0])
            _print_json(_dump(analysis))
            return 0 if analysis.is_completed else 1

        with tqdm(total=len(args.usernames), desc="Users") as pbar:
            def on_result(username: str, analysis: Analysis) -> None:
                pbar.set_postfix(user=username, status=analysis.status.value)
                pbar.update(1)

            results = await orchestrator.analyze_batch(args.usernames, on_result=on_result)

        _print_json({
            "completed": [_dump(a) for a in results],
            "budget": orchestrator.get_budget_stats(),
        })
        return 0 if len(results) == len(args.usernames) else 1
    finally:
        await context.aclose()


def main() -> None:
    args = parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
