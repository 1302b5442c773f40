"""
Ingestion CLI for sitekb.

Usage:
    python -m ingest.ingest_cli --url https://example.com/ --app docs

Runs one ingestion synchronously (no job queue) and prints the result.
Exit codes: 0 success, 1 hard failure, 2 partial failure.
"""
import argparse
import json
import sys

from ingest.orchestrator import IngestionStatus, ingest_website
from sitekb.config import settings
from sitekb.logging_config import setup_logging


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Crawl a website and index its content into Qdrant"
    )
    parser.add_argument(
        "--url",
        type=str,
        required=True,
        help="Absolute seed URL of the site to ingest",
    )
    parser.add_argument(
        "--app",
        type=str,
        required=True,
        help="Application name (selects the target collection)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full result as JSON",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=settings.log_level,
        help=f"Log level (default: {settings.log_level})",
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.app.strip():
        print("Error: --app must not be empty")
        sys.exit(1)

    result = ingest_website(args.url, args.app.strip())

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(f"\n{result.message}")
        if result.error and result.status != IngestionStatus.HARD_FAILURE:
            print(f"Error: {result.error}")

    if result.status == IngestionStatus.HARD_FAILURE:
        sys.exit(1)

    if result.status == IngestionStatus.PARTIAL_FAILURE:
        sys.exit(2)


if __name__ == "__main__":
    main()
