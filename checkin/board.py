"""
Main CheckinBoardSystem class that orchestrates all components.
"""

import asyncio
from typing import Optional

import aiohttp_cors
from aiohttp import web, web_runner

from .artifacts import QRArtifactGenerator
from .config import CheckinConfig
from .database import DatabaseManager
from .entries import EntryStore
from .ledger import ScanLedger
from .scanning import ScanEngine
from .web_handlers import WebHandlers, error_middleware


class CheckinBoardSystem:
    """Async check-in leaderboard with a JSON API and web pages."""

    def __init__(
        self,
        host: str = "0.0.0.0",
        port: int = 3000,
        db_path: str = ".data/data.db",
        config_path: str = "checkin_config.json",
        config: Optional[CheckinConfig] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db_path = db_path

        # Load configuration
        self.config = config if config is not None else CheckinConfig(config_path)

        # Initialize components
        self.db = DatabaseManager(db_path, self.config)
        self.entries = EntryStore(self.db)
        self.ledger = ScanLedger(self.db)
        self.engine = ScanEngine(
            self.entries,
            self.ledger,
            dedup_by_origin=self.config.dedup_by_origin,
        )
        self.artifacts = QRArtifactGenerator(self.entries, self.config)
        self.web_handlers = WebHandlers(
            self.entries,
            self.ledger,
            self.engine,
            self.artifacts,
            self.config,
        )

    async def init_db(self) -> None:
        """
        Initialize the database.

        Creates database tables if they do not exist.
        """
        await self.db.init_db()

    async def close(self) -> None:
        """
        Release storage resources.
        """
        await self.db.close()

    def build_app(self) -> web.Application:
        """
        Build the aiohttp application with all routes and CORS.

        @return: Configured application (not yet running)
        """
        app = web.Application(middlewares=[error_middleware])
        handlers = self.web_handlers

        # Setup CORS
        cors = aiohttp_cors.setup(
            app,
            defaults={
                "*": aiohttp_cors.ResourceOptions(
                    allow_credentials=True,
                    expose_headers="*",
                    allow_headers="*",
                    allow_methods="*",
                )
            },
        )

        # Web routes
        app.router.add_get("/", handlers.web_index)
        app.router.add_get("/scan/{entry_id:\\d+}", handlers.web_scan_page)

        # API routes
        app.router.add_post("/api/admin/login", handlers.api_admin_login)
        app.router.add_get("/api/scores", handlers.api_scores)
        app.router.add_post("/api/scan/{entry_id:\\d+}", handlers.api_scan)
        app.router.add_get("/api/entries", handlers.api_list_entries)
        app.router.add_post("/api/entries", handlers.api_create_entry)
        app.router.add_delete("/api/entries/{entry_id:\\d+}", handlers.api_delete_entry)
        app.router.add_post(
            "/api/entries/{entry_id:\\d+}/increment", handlers.api_increment_entry
        )
        app.router.add_get("/api/entries/{entry_id:\\d+}/scans", handlers.api_entry_scans)
        app.router.add_get(
            "/api/entries/{entry_id:\\d+}/qrcode", handlers.api_entry_qrcode
        )

        # Add CORS to all routes
        for route in list(app.router.routes()):
            cors.add(route)

        return app

    async def start_web_server(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
    ) -> web_runner.AppRunner:
        """
        Start the web server.

        @param host: Host address to bind the server to (default uses configured host)
        @param port: Port number to use (default uses configured port)
        @return: AppRunner instance for the web server
        """
        if host is None:
            host = self.host
        if port is None:
            port = self.port

        app_runner = web_runner.AppRunner(self.build_app())
        await app_runner.setup()

        site = web_runner.TCPSite(app_runner, host, port)
        await site.start()

        print(f"Web server running on http://{host}:{port}")
        return app_runner

    async def run(self) -> None:
        """
        Run the web server until cancelled.
        """
        if not self.config.is_admin_enabled():
            if self.config.admin_open:
                print("!" * 60)
                print("WARNING: admin.open is set and no admin password is configured.")
                print("Anyone can create, delete and increment entries.")
                print("!" * 60)
            else:
                print("Warning: no admin password configured, admin routes are disabled")
                print("Set ADMIN_PASSWORD (or admin.open for an open board) to enable them")
        if not self.config.dedup_by_origin:
            print("Warning: dedup_by_origin is off, every scan increments the score")

        runner = await self.start_web_server()

        print(f"\n{self.config.get('board_name')} Running!")
        print(f"Web Interface: http://{self.host}:{self.port}")
        print("\nPress Ctrl+C to stop...\n")

        try:
            await asyncio.Event().wait()
        finally:
            print("\nShutting down server...")
            await runner.cleanup()
            await self.close()

    async def print_leaderboard(self) -> None:
        """
        Print the complete leaderboard to console.

        Delegates to the entry store's print method.
        """
        await self.entries.print_leaderboard()
