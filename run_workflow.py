"""
LexFlow Workflow Runner
=======================
Run one legal query through a freshly built workflow engine:

    python run_workflow.py query.json
    python run_workflow.py query.json --output response.json
    python run_workflow.py --classify "Our supplier missed three deliveries..."

query.json holds the intake fields (content, domain, jurisdiction, urgency,
priority, deadline, client_info, ...). Requires GEMINI_API_KEY; case-law
research additionally needs COURTLISTENER_API_KEY.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from lexflow.core.config import get_settings
from lexflow.core.logging_config import setup_logging
from lexflow.services.legal import (
    LegalAnalysisClient,
    build_workflow_service,
    parse_legal_query,
)

logger = logging.getLogger("lexflow.runner")


async def run_query(query_file: Path, output: Optional[Path] = None) -> int:
    try:
        data = json.loads(query_file.read_text(encoding="utf-8"))
        query = parse_legal_query(data)
    except (OSError, ValueError) as e:
        # pydantic.ValidationError is a ValueError
        logger.error(f"Invalid query file {query_file}: {e}")
        return 2

    service = build_workflow_service()
    task_id = service.add_task(query)
    response = await service.process_next_task()

    if response is None:
        for entry in service.get_case_history(task_id):
            logger.error(f"  {entry.state.value}: {entry.action} {entry.metadata or ''}")
        return 1

    rendered = json.dumps(response.to_dict(), indent=2, ensure_ascii=False)
    if output:
        output.write_text(rendered, encoding="utf-8")
        logger.info(f"Response written to {output}")
    else:
        print(rendered)
    return 0


async def run_classification(content: str) -> int:
    client = LegalAnalysisClient.from_settings()
    classification = await client.analyze_legal_query(content)
    print(json.dumps(classification.to_dict(), indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a legal query through the LexFlow workflow")
    parser.add_argument("query_file", nargs="?", type=Path, help="JSON file with the query fields")
    parser.add_argument("--output", "-o", type=Path, help="Write the response JSON here instead of stdout")
    parser.add_argument("--classify", metavar="TEXT", help="Only suggest domain/jurisdiction/urgency for TEXT")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(
        level=settings.log_level.upper(),
        json_format=settings.log_json_format,
        log_file=Path(settings.log_file) if settings.log_file else None,
    )

    if args.classify:
        return asyncio.run(run_classification(args.classify))
    if not args.query_file:
        parser.error("query_file is required unless --classify is given")
    return asyncio.run(run_query(args.query_file, args.output))


if __name__ == "__main__":
    sys.exit(main())
