"""YieldPilot entry point."""

import asyncio
import sys
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from .cli import run_cli


def main() -> None:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))

    config_path = None
    if len(sys.argv) > 2 and sys.argv[1] == "--config":
        config_path = Path(sys.argv[2])

    asyncio.run(run_cli(config_path))


if __name__ == "__main__":
    main()
