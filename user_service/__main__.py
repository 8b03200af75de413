from __future__ import annotations

import argparse
import sys

from user_service.config import get_settings
from user_service.server import check_health, run


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="user_service", description="User lookup HTTP service")
    parser.add_argument("--health-check", action="store_true", help="Probe /health on the configured port and exit")
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.health_check:
        return 0 if check_health(settings) else 1

    run(settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())
