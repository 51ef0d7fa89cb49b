#!/usr/bin/env python3
"""
CLI tool to start the EventCore FastAPI web server.

Usage:
    python3 web_server.py                    # Start with defaults
    python3 web_server.py --host 0.0.0.0     # Listen on all interfaces
    python3 web_server.py --port 8080        # Use custom port
    python3 web_server.py --reload           # Enable auto-reload for development
    python3 web_server.py --no-sweep         # Do not start the auto-transition scheduler

Environment Variables:
    EVENTCORE_DB_URL: Database URL (default: local SQLite file)
    EVENTCORE_ENV: Environment (production/development, default: development)
    EVENTCORE_LOG_LEVEL: Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
    EVENTCORE_SWEEP_ENABLED: Start the auto-transition scheduler (default: true)
    EVENTCORE_SWEEP_INTERVAL_SECONDS: Seconds between sweep passes (default: 120)
"""

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace with host, port, reload and sweep flags
    """
    parser = argparse.ArgumentParser(
        description="Start the EventCore FastAPI web server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start development server with auto-reload
  python3 web_server.py --reload

  # Run the API without the background sweep
  python3 web_server.py --no-sweep

Environment Variables:
  EVENTCORE_DB_URL                   Database URL
  EVENTCORE_ENV                      Environment (production/development)
  EVENTCORE_LOG_LEVEL                Log level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
  EVENTCORE_SWEEP_ENABLED            Start the auto-transition scheduler
  EVENTCORE_SWEEP_INTERVAL_SECONDS   Seconds between sweep passes
        """
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind the server to (default: 127.0.0.1). "
             "Use 0.0.0.0 to listen on all interfaces."
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind the server to (default: 8000)"
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development. Not recommended for production."
    )

    parser.add_argument(
        "--no-sweep",
        action="store_true",
        help="Disable the auto-transition scheduler for this process."
    )

    return parser.parse_args()


def main() -> None:
    """
    Main entry point for the web server CLI tool.

    Exit Codes:
        0: Server stopped normally
    """
    args = parse_arguments()

    # Ensure the repo root is on sys.path so "eventcore.src.main" is importable
    repo_root = str(Path(__file__).parent)
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)

    # Explicit environment variables take precedence over eventcore/.env
    load_dotenv(dotenv_path=Path(__file__).parent / "eventcore" / ".env", override=False)

    if args.no_sweep:
        os.environ["EVENTCORE_SWEEP_ENABLED"] = "false"

    import uvicorn

    print("\nStarting EventCore web server...")
    print(f"Host: {args.host}")
    print(f"Port: {args.port}")
    print(f"Auto-reload: {'enabled' if args.reload else 'disabled'}")
    print(f"Auto-transition sweep: {'disabled' if args.no_sweep else 'per settings'}")
    print(f"\nAPI documentation: http://{args.host}:{args.port}/docs")
    print(f"Health check: http://{args.host}:{args.port}/health")
    print("\nPress CTRL+C to stop the server\n")

    try:
        uvicorn.run(
            "eventcore.src.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\n\nServer stopped by user (CTRL+C)")
        sys.exit(0)


if __name__ == "__main__":
    main()
