from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from machinepool.agent import DEFAULT_METADATA_URL, WorkerAgent
from machinepool.config import get_settings
from machinepool.exceptions import ConfigurationError


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="machinepool",
        description="Lease ephemeral worker machines and keep a buffer of claimable ones.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the broker HTTP API.")
    serve.add_argument("--host", help="Host to bind to (default: MACHINEPOOL_HOST).")
    serve.add_argument("--port", type=int, help="Port to listen on (default: MACHINEPOOL_PORT).")

    agent = commands.add_parser("agent", help="Register this machine and send heartbeats.")
    agent.add_argument(
        "--backend-url",
        default=os.getenv("MACHINEPOOL_BACKEND_URL"),
        help="Broker base URL (default: MACHINEPOOL_BACKEND_URL).",
    )
    agent.add_argument("--metadata-url", default=DEFAULT_METADATA_URL, help="Instance metadata base URL.")
    agent.add_argument("--heartbeat-interval", type=float, default=15.0, help="Seconds between heartbeats.")
    agent.add_argument("--retry-delay", type=float, default=5.0, help="Seconds to wait after a failure.")
    return parser.parse_args(argv)


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc.message} {exc.details}", file=sys.stderr)
        return 2
    uvicorn.run(
        "machinepool.server:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=args.log_level.lower(),
    )
    return 0


def _agent(args: argparse.Namespace) -> int:
    if not args.backend_url:
        print("MACHINEPOOL_BACKEND_URL env missing (or pass --backend-url)", file=sys.stderr)
        return 1

    stop_event = threading.Event()

    def _stop(signum, frame) -> None:
        stop_event.set()

    signal.signal(signal.SIGTERM, _stop)
    signal.signal(signal.SIGINT, _stop)

    with WorkerAgent(
        args.backend_url,
        metadata_url=args.metadata_url,
        heartbeat_interval=args.heartbeat_interval,
        retry_delay=args.retry_delay,
    ) as agent:
        agent.run(stop_event)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.command == "serve":
        return _serve(args)
    return _agent(args)


if __name__ == "__main__":
    raise SystemExit(main())
