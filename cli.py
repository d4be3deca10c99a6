#!/usr/bin/env python3
"""Command-line interface for the question answering server."""

import sys
import logging
import argparse

from .config import Config


def setup_logging(level: str = "INFO"):
    """Configure logging."""
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler("qaserve.log"),
        ],
    )


def serve(config: Config, args) -> int:
    import uvicorn
    from .server import build_dispatcher, create_app

    dispatcher = build_dispatcher(config)
    app = create_app(dispatcher)
    host = args.host or config.host
    port = args.port or config.port
    print(f"Question server active on {host}:{port}")
    try:
        uvicorn.run(app, host=host, port=port)
    finally:
        dispatcher.shutdown(wait=False)
        dispatcher.pool.close()
    return 0


def ask(config: Config, args) -> int:
    from .pipeline import Pipeline, default_stages

    with Pipeline(default_stages(config)) as pipeline:
        question = pipeline.ask(args.question)

    print(f"\n{'='*80}")
    print(f"Question: {question.raw_text}")
    print(f"Type: {question.qtype.value}  LAT: {question.simple_lat or '-'}")
    print(f"{'='*80}")
    for i, answer in enumerate(question.ranked_answers()[:args.top], 1):
        combined = answer.get_score("combined")
        score = f"{combined:.3f}" if combined is not None else "  -  "
        print(f"{i:>2}. [{score}] {answer.text} ({len(answer.passages)} passages)")
    return 0


def dataset(config: Config, args) -> int:
    from .pipeline import default_stages
    from .questions import QuestionSource, generate_search_dataset
    from .stages import SearchCache

    if not config.search_cache_path:
        print("SEARCH_CACHE_PATH must be set to generate a search dataset")
        return 1

    source = QuestionSource(config.question_db_path)
    questions = list(source.fetch("LIMIT ?", (args.limit,)))
    cache = SearchCache(config.search_cache_path)
    # Query the uncached backends directly so every question is refreshed.
    searchers = [getattr(s, "inner", s) for s in default_stages(config).searchers]
    completed = generate_search_dataset(questions, searchers, cache, workers=args.workers)
    print(f"Stored search results for {completed}/{len(questions)} questions")
    return 0 if completed == len(questions) else 1


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="qaserve - answer questions from multiple search backends"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to .env configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides config)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the WebSocket question server")
    serve_parser.add_argument("--host", type=str, default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.set_defaults(handler=serve)

    ask_parser = subparsers.add_parser("ask", help="Answer a single question")
    ask_parser.add_argument("question", type=str, help="Question text")
    ask_parser.add_argument("--top", type=int, default=10, help="Answers to show")
    ask_parser.set_defaults(handler=ask)

    dataset_parser = subparsers.add_parser("dataset", help="Cache search results for stored questions")
    dataset_parser.add_argument("--limit", type=int, default=50)
    dataset_parser.add_argument("--workers", type=int, default=8)
    dataset_parser.set_defaults(handler=dataset)

    args = parser.parse_args(argv)

    try:
        config = Config.from_env(args.config)
    except ValueError as e:
        print(f"Configuration error: {e}")
        return 1

    setup_logging(args.log_level or config.log_level)
    logger = logging.getLogger(__name__)

    try:
        return args.handler(config, args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 1
    except Exception as e:
        logger.error(f"Command failed: {e}", exc_info=True)
        print(f"\n\nError: {e}")
        print("Check qaserve.log for details.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
