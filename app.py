#!/usr/bin/env python3
"""
Check-in leaderboard server.
Serves the leaderboard, the QR code check-in artifacts and the scan endpoint
that credits a participant once per scanning device.
"""

import argparse
import asyncio
import os
from pathlib import Path

from checkin import CheckinBoardSystem


async def main():
    """Main function with command line interface."""

    parser = argparse.ArgumentParser(
        description="Check-in leaderboard server with QR code scanning",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "3000")),
        help="Web server port (env: PORT)"
    )
    parser.add_argument(
        "--db",
        default=os.getenv("DB_PATH", ".data/data.db"),
        help="SQLite database file path (env: DB_PATH)"
    )
    parser.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH", "checkin_config.json"),
        help="Configuration file path (env: CONFIG_PATH)"
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (env: HOST)"
    )

    args = parser.parse_args()

    config_path = Path(args.config)

    if config_path.exists() and not config_path.is_file():
        print(f"Error: {args.config} exists but is not a file")
        return

    Path(args.db).parent.mkdir(parents=True, exist_ok=True)

    system = CheckinBoardSystem(
        host=args.host,
        port=args.port,
        db_path=args.db,
        config_path=args.config,
    )

    await system.init_db()
    await system.print_leaderboard()
    await system.run()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nServer interrupted")
