"""Main application entry point."""

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

from treasury.api.app import app
from treasury.services.logging import setup_server_logging

# Load environment variables
load_dotenv()

# Configure logging (with file logging)
setup_server_logging()
logger = logging.getLogger(__name__)


def main() -> None:
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Treasury dues ledger API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    args = parser.parse_args()

    logger.info(f"Starting treasury API on {args.host}:{args.port}")
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    main()
