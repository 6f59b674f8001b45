#!/usr/bin/env python3
"""
Run the draftpod API server.

Usage:
    python scripts/run_api.py
    python scripts/run_api.py --port 9000 --reload
    STORAGE_BACKEND=memory python scripts/run_api.py
"""

import argparse
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import uvicorn

from draftpod.config import settings
from draftpod.logging_config import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the draftpod API server")
    parser.add_argument("--host", default=settings.api_host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.api_port, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", default=settings.api_reload,
                        help="Auto-reload on code changes (development only)")
    args = parser.parse_args()

    configure_logging(settings.log_level, settings.log_format)
    uvicorn.run(
        "draftpod.web.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
