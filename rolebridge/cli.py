"""
rolebridge command line.

Usage:
    rolebridge serve                              # Run the HTTP service
    rolebridge direct pm-to-dev "需求描述"         # One-shot translation
    rolebridge interactive dev-to-pm -f notes.md  # Analyze, ask, synthesize
    echo "..." | rolebridge direct dev-to-pm -    # Read content from stdin
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from rolebridge.api.config import config
from rolebridge.client.api_client import TranslationApiClient
from rolebridge.client.stream_consumer import ConsumerState, StreamOutcome
from rolebridge.models.translation import AnalysisResult, Answer, Direction

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


def _print_chunk(chunk: str, full_text: str) -> None:
    sys.stdout.write(chunk)
    sys.stdout.flush()


def _read_content(args: argparse.Namespace) -> str:
    if args.file:
        with open(args.file, "r", encoding="utf-8") as f:
            return f.read()
    if args.text == "-" or args.text is None:
        return sys.stdin.read()
    return args.text


def ask_questions(analysis: AnalysisResult) -> List[Answer]:
    """Ask each missing_info question on the terminal.

    A blank answer leaves the question unanswered so its default assumption
    is used.
    """
    print(f"\n意图: {analysis.intent}  (confidence {analysis.confidence_score:.2f})")
    answers: List[Answer] = []
    for item in analysis.missing_info:
        print(f"\n[{item.priority.value}] {item.question}")
        print(f"  原因: {item.reason}")
        for index, option in enumerate(item.options, 1):
            print(f"  {index}. {option}")
        print(f"  默认: {item.default_assumption}")
        reply = input("> ").strip()
        if reply.isdigit() and 1 <= int(reply) <= len(item.options):
            reply = item.options[int(reply) - 1]
        if reply:
            answers.append(Answer(id=item.id, answer=reply))
    print()
    return answers


def _report(outcome: StreamOutcome) -> int:
    if outcome.state is ConsumerState.COMPLETED:
        print()
        return EXIT_OK
    if outcome.state is ConsumerState.CANCELLED:
        print("\nCancelled", file=sys.stderr)
        return EXIT_CANCELLED
    print(f"\nError: {outcome.error}", file=sys.stderr)
    return EXIT_FAILED


async def _run_direct(args: argparse.Namespace) -> int:
    async with TranslationApiClient(base_url=args.server, timeout=args.timeout) as client:
        outcome = await client.direct(
            Direction(args.direction), _read_content(args), on_chunk=_print_chunk
        )
    return _report(outcome)


async def _run_interactive(args: argparse.Namespace) -> int:
    async with TranslationApiClient(base_url=args.server, timeout=args.timeout) as client:
        print("Analyzing...", file=sys.stderr)
        result = await client.interactive(
            Direction(args.direction),
            _read_content(args),
            ask_questions,
            context=args.context or "",
            on_chunk=_print_chunk,
        )
    return _report(result.outcome)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "rolebridge.api.main:app",
        host=args.host,
        port=args.port,
        log_level=config.LOG_LEVEL.lower(),
    )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rolebridge",
        description="Translate between product and engineering language",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    serve.add_argument("--host", default=config.HOST)
    serve.add_argument("--port", type=int, default=config.PORT)

    for name, help_text in (
        ("direct", "One-shot translation"),
        ("interactive", "Analyze, answer questions, then synthesize"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("direction", choices=[d.value for d in Direction])
        sub.add_argument("text", nargs="?", help="Content, or - for stdin")
        sub.add_argument("-f", "--file", help="Read content from a file")
        sub.add_argument(
            "--server",
            default=f"http://{config.HOST}:{config.PORT}",
            help="Base URL of a running rolebridge service",
        )
        sub.add_argument("--timeout", type=float, default=config.LLM_TIMEOUT_SECONDS)
        if name == "interactive":
            sub.add_argument("--context", help="Optional background for the analysis")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        return _serve(args)

    runner = _run_direct if args.command == "direct" else _run_interactive
    try:
        return asyncio.run(runner(args))
    except KeyboardInterrupt:
        print("\nCancelled", file=sys.stderr)
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
