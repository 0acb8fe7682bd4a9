#!/usr/bin/env python3
"""
LinkLaunch Submission Worker - Main Entry Point

Usage:
    # Run API server (cron hits POST /process-queue)
    python main.py server

    # Process one batch of pending submissions from the shell
    python main.py process

    # Show submission counts per status
    python main.py status

    # Queue a submission for an existing website/directory pair
    python main.py enqueue --website-id w_123 --directory-id d_456
"""

import sys
import json
import asyncio
import argparse

from dotenv import load_dotenv

# Settings are read from the environment when api.config is imported
load_dotenv()


def check_environment() -> bool:
    """Warn about missing settings. Only CRON_SECRET is required to serve."""
    from api.config import config

    missing = config.validate()
    for item in missing:
        print(f"  - missing {item}")
    return "CRON_SECRET" not in missing


def run_server(host: str, port: int, reload: bool = False):
    """Run the FastAPI server."""
    import uvicorn

    print(f"Starting server on {host}:{port}")
    uvicorn.run(
        "api.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


async def process_once() -> dict:
    """Run a single batch outside the HTTP server."""
    from api.config import config
    from api.database import SubmissionStore
    from api.logging_config import logger, attach_package_loggers
    from api.queue_worker import SubmissionQueueProcessor
    from browser.manager import BrowserManager

    attach_package_loggers(logger)
    store = SubmissionStore(config.DATABASE_PATH)
    await store.init_database()

    manager = BrowserManager.from_config(config)
    processor = SubmissionQueueProcessor(store=store, browser_manager=manager)
    try:
        return await processor.process_batch()
    finally:
        await manager.shutdown()


async def show_status() -> dict:
    from api.config import config
    from api.database import SubmissionStore

    store = SubmissionStore(config.DATABASE_PATH)
    await store.init_database()
    return await store.get_status_counts()


async def enqueue(website_id: str, directory_id: str) -> str:
    from api.config import config
    from api.database import SubmissionStore

    store = SubmissionStore(config.DATABASE_PATH)
    await store.init_database()

    if await store.get_website(website_id) is None:
        raise SystemExit(f"Unknown website: {website_id}")
    if await store.get_directory(directory_id) is None:
        raise SystemExit(f"Unknown directory: {directory_id}")

    return await store.create_submission(website_id, directory_id)


def main():
    """Main entry point."""
    from api.config import config

    parser = argparse.ArgumentParser(
        description="LinkLaunch - automated directory submission worker"
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Server command
    server_parser = subparsers.add_parser('server', help='Run API server')
    server_parser.add_argument('--host', default=config.HOST, help='Host to bind to')
    server_parser.add_argument('--port', type=int, default=config.PORT, help='Port to bind to')
    server_parser.add_argument('--reload', action='store_true', help='Enable auto-reload')

    subparsers.add_parser('process', help='Process one batch of pending submissions')
    subparsers.add_parser('status', help='Show submission counts by status')

    enqueue_parser = subparsers.add_parser('enqueue', help='Queue a submission')
    enqueue_parser.add_argument('--website-id', required=True, help='Website id')
    enqueue_parser.add_argument('--directory-id', required=True, help='Directory id')

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    if args.command == 'server':
        if not check_environment():
            print("CRON_SECRET is required to serve /process-queue")
            sys.exit(1)
        run_server(args.host, args.port, args.reload)

    elif args.command == 'process':
        print(json.dumps(asyncio.run(process_once()), indent=2, default=str))

    elif args.command == 'status':
        print(json.dumps(asyncio.run(show_status()), indent=2))

    elif args.command == 'enqueue':
        submission_id = asyncio.run(enqueue(args.website_id, args.directory_id))
        print(f"Queued submission {submission_id}")


if __name__ == "__main__":
    main()
