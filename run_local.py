#!/usr/bin/env python3
"""
Local development server runner.

Runs the ingestion API, the primary consumer and the retry workers in
one uvicorn process. Requires a reachable Redis (REDIS_URL, default
redis://localhost:6379/0).

Usage:
    python run_local.py
    python run_local.py --port 8080
    python run_local.py --reload  # Auto-reload on code changes
"""

import argparse
from pathlib import Path

import uvicorn

project_root = Path(__file__).parent


def main():
    parser = argparse.ArgumentParser(
        description="Run the eventrelay API and delivery workers locally with uvicorn"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port to run the server on (default: 8080)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload on code changes (recommended for development)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level for uvicorn (default: info)"
    )

    args = parser.parse_args()

    print("=" * 60)
    print("Starting eventrelay (Local Development)")
    print("=" * 60)
    print(f"Ingest: http://{args.host}:{args.port}/ingest")
    print(f"Stats: http://{args.host}:{args.port}/stats")
    print(f"Health: http://{args.host}:{args.port}/health")
    print("=" * 60)
    if args.reload:
        print("Auto-reload: ENABLED (code changes will restart server)")
    print()

    # Stay in project root so .env file loads correctly
    uvicorn.run(
        "eventrelay.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
        reload_dirs=[str(project_root / "src")] if args.reload else None
    )


if __name__ == "__main__":
    main()
