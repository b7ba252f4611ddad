"""
Command-line ranking over a JSON task export.

Usage:
    taskrank "urgent payment bug" --tasks tasks.json
    taskrank "p1 overdue s:open" --tasks tasks.json --limit 10 --json
    taskrank "what should I do today" --tasks tasks.json --for-ai

The export is a JSON list of task objects (or {"tasks": [...]}), with the
fields TaskRecord.from_dict understands. Settings come from TASKRANK_* env
vars and .env.local / .env, see RankingConfig.from_env.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import RankingConfig
from .errors import ConfigError, QueryCancelledError
from .expansion import ExpanderFactory
from .logging_config import setup_logging
from .models import RankedTask, RankingResult
from .pipeline import rank_tasks
from .utils import parse_date

logger = logging.getLogger(__name__)


def load_tasks(path: str) -> List[Dict[str, Any]]:
    """
    Read a task export.

    Raises:
        ConfigError: If the file is missing, not JSON, or not a list of objects
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read task export {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Task export {path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("tasks")
    if not isinstance(data, list):
        raise ConfigError(f"Task export {path} must be a list of tasks or {{\"tasks\": [...]}}")

    tasks = [item for item in data if isinstance(item, dict)]
    if len(tasks) != len(data):
        logger.warning(f"Skipped {len(data) - len(tasks)} non-object entries in {path}")
    return tasks


def _task_json(ranked: RankedTask) -> Dict[str, Any]:
    task = ranked.task
    return {
        "text": task.text,
        "score": round(ranked.score, 4),
        "breakdown": {k: round(v, 4) for k, v in asdict(ranked.breakdown).items()},
        "status": task.status,
        "priority": task.priority,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "source_path": task.source_path,
        "line_number": task.line_number,
    }


def _format_line(position: int, ranked: RankedTask) -> str:
    task = ranked.task
    details = [task.status]
    if task.priority is not None:
        details.append(f"p{task.priority}")
    if task.due_date is not None:
        details.append(f"due {task.due_date.isoformat()}")
    location = f"{task.source_path}:{task.line_number}" if task.source_path else ""
    return f"{position:3}. [{ranked.score:6.2f}] {task.text}  ({', '.join(details)}) {location}".rstrip()


def render(result: RankingResult, as_json: bool, for_ai: bool, limit: Optional[int]) -> str:
    items = result.for_ai if for_ai else result.display
    if limit is not None:
        items = items[:limit]

    if as_json:
        return json.dumps(
            {
                "query": result.intent.original_query,
                "keywords": result.intent.keywords,
                "filters": result.intent.filters.to_dict(),
                "expansion_error": result.intent.expansion_error,
                "diagnostics": asdict(result.diagnostics),
                "tasks": [_task_json(r) for r in items],
            },
            ensure_ascii=False,
            indent=2,
        )

    if not items:
        return result.diagnostics.describe()
    lines = [_format_line(i, r) for i, r in enumerate(items, start=1)]
    lines.append(f"-- {result.diagnostics.describe()}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="taskrank", description="Rank and filter tasks for a query")
    parser.add_argument("query", help="Query text, e.g. 'fix login bug p1 due:week'")
    parser.add_argument("--tasks", required=True, help="Path to a JSON task export")
    parser.add_argument("--limit", type=int, default=None, help="Show at most N tasks")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--for-ai", action="store_true", help="Print the larger AI-analysis subset")
    parser.add_argument("--today", default=None, help="Evaluation date (YYYY-MM-DD), default today")
    parser.add_argument("--sort", default=None, help="Tie-break criteria, comma separated")
    parser.add_argument("--no-expand", action="store_true", help="Skip semantic expansion")
    parser.add_argument("--log-file", default=None, help="Write a detailed DEBUG log next to this path")
    parser.add_argument("-v", "--verbose", action="store_true", help="INFO logging on stderr")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(
        log_file=args.log_file,
        console_level=logging.INFO if args.verbose else logging.WARNING,
    )

    today = None
    if args.today:
        today = parse_date(args.today)
        if today is None:
            print(f"Invalid --today value: {args.today}", file=sys.stderr)
            return 2

    try:
        tasks = load_tasks(args.tasks)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        return 2

    config = RankingConfig.from_env()
    expander = None if args.no_expand else ExpanderFactory.create()
    sort_order = args.sort.split(",") if args.sort else None

    try:
        result = asyncio.run(
            rank_tasks(tasks, args.query, config=config, expander=expander, today=today, sort_order=sort_order)
        )
    except QueryCancelledError as e:
        print(f"Query cancelled: {e}", file=sys.stderr)
        return 130
    finally:
        ExpanderFactory.cleanup()

    print(render(result, as_json=args.json, for_ai=args.for_ai, limit=args.limit))
    return 0


if __name__ == "__main__":
    sys.exit(main())
