"""
Web route handlers for the check-in leaderboard.
"""

import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List

from aiohttp import web
from jinja2 import Environment, FileSystemLoader, select_autoescape

from .artifacts import QRArtifactGenerator
from .entries import EntryStore
from .errors import CheckinError, InvalidInput
from .ledger import ScanLedger
from .models import Entry
from .scanning import ScanEngine

TEMPLATES_PATH = Path(__file__).parent / "templates"

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def error_middleware(
    request: web.Request,
    handler: Handler,
) -> web.StreamResponse:
    """
    Convert domain errors into JSON error responses.

    @param request: Incoming request
    @param handler: Next handler in the chain
    @return: Handler response, or a JSON error with the error's status code
    """
    try:
        return await handler(request)
    except CheckinError as e:
        if e.status >= 500:
            print(f"Error handling {request.method} {request.path}: {e}")
        return web.json_response({"error": str(e)}, status=e.status)


class WebHandlers:
    """Handles web routes and responses."""

    def __init__(
        self,
        entries: EntryStore,
        ledger: ScanLedger,
        engine: ScanEngine,
        artifacts: QRArtifactGenerator,
        config: Any,
        templates_path: str = str(TEMPLATES_PATH),
    ) -> None:
        self.entries = entries
        self.ledger = ledger
        self.engine = engine
        self.artifacts = artifacts
        self.config = config

        self.jinja_env = Environment(
            loader=FileSystemLoader(templates_path),
            autoescape=select_autoescape(["html"]),
            auto_reload=False,  # Disable auto-reload for performance
            cache_size=50,
        )

    # --- Request helpers ---

    def is_privileged(
        self,
        request: web.Request,
    ) -> bool:
        """
        Check the shared-secret admin header.

        @param request: Incoming request
        @return: True if the header matches exactly, or no password is set and admin.open is on
        """
        if not self.config.is_admin_enabled():
            return self.config.admin_open

        header = self.config.get("admin", "header")
        return request.headers.get(header) == self.config.admin_password

    def require_admin(
        self,
        request: web.Request,
    ) -> None:
        """
        Reject requests that fail the admin check.

        @param request: Incoming request
        """
        if not self.is_privileged(request):
            raise web.HTTPUnauthorized(
                text=json.dumps({"error": "Invalid password"}),
                content_type="application/json",
            )

    def scan_origin(
        self,
        request: web.Request,
    ) -> str:
        """
        Identify who is scanning.

        @param request: Incoming request
        @return: First X-Forwarded-For hop when trusted, else the peer address
        """
        if self.config.get("scanning", "trust_forwarded_for"):
            forwarded = request.headers.get("X-Forwarded-For", "")
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

        return request.remote or "unknown"

    @staticmethod
    def base_origin(
        request: web.Request,
    ) -> str:
        """
        Scheme and host the client used to reach us.

        @param request: Incoming request
        @return: e.g. "http://localhost:3000"
        """
        return f"{request.scheme}://{request.host}"

    @staticmethod
    def entry_id(
        request: web.Request,
    ) -> int:
        return int(request.match_info["entry_id"])

    def calculate_ranks_with_ties(
        self,
        leaderboard: List[Entry],
    ) -> List[Dict[str, Any]]:
        """
        Calculate ranks accounting for ties (same scores get same rank).

        @param leaderboard: Entries ordered by score descending
        @return: List of dictionaries with ranking information and tie indicators
        """
        ranked_data = []
        current_rank = 1
        previous_score = None

        for i, entry in enumerate(leaderboard):
            # If this score is different from previous, update rank to current position
            if previous_score is not None and entry.score != previous_score:
                current_rank = i + 1

            is_tied = (i > 0 and leaderboard[i - 1].score == entry.score) or (
                i < len(leaderboard) - 1 and leaderboard[i + 1].score == entry.score
            )

            rank_class = {1: "gold", 2: "silver", 3: "bronze"}.get(current_rank, "")

            ranked_data.append(
                {
                    "rank": current_rank,
                    "rank_class": rank_class,
                    "id": entry.id,
                    "name": entry.name,
                    "score": entry.score,
                    "is_tied": is_tied,
                }
            )

            previous_score = entry.score

        return ranked_data

    # --- HTML pages ---

    async def web_index(
        self,
        _: web.Request,
    ) -> web.Response:
        """
        Leaderboard page.

        @param _: Unused request parameter
        @return: HTTP response with rendered index page
        """
        leaderboard = await self.entries.list_by_score_desc()

        template = self.jinja_env.get_template("index.html")
        html = template.render(
            title="Leaderboard",
            leaderboard=self.calculate_ranks_with_ties(leaderboard),
            config=self.config,
        )
        return web.Response(text=html, content_type="text/html")

    async def web_scan_page(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Page opened by the QR code; it posts the scan to the API.

        @param request: HTTP request object containing the entry id
        @return: HTTP response with rendered scan page
        """
        template = self.jinja_env.get_template("scan.html")
        html = template.render(
            title="Check-in",
            entry_id=self.entry_id(request),
            config=self.config,
        )
        return web.Response(text=html, content_type="text/html")

    # --- JSON API ---

    async def api_admin_login(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Verify the admin password.

        @param request: HTTP request carrying the admin header
        @return: {"ok": true} when the password matches
        """
        self.require_admin(request)
        return web.json_response({"ok": True})

    async def api_scores(
        self,
        _: web.Request,
    ) -> web.Response:
        """
        API endpoint for the leaderboard.

        @param _: Unused request parameter
        @return: JSON list of entries ordered by score
        """
        leaderboard = await self.entries.list_by_score_desc()
        return web.json_response([entry.to_dict() for entry in leaderboard])

    async def api_scan(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Register a scan for an entry.

        @param request: HTTP request object containing the entry id
        @return: JSON of the entry after the scan, 404 if it does not exist
        """
        entry = await self.engine.scan(self.entry_id(request), self.scan_origin(request))
        return web.json_response(entry.to_dict())

    async def api_list_entries(
        self,
        _: web.Request,
    ) -> web.Response:
        """
        API endpoint listing entries by name.

        @param _: Unused request parameter
        @return: JSON list of entries including created_at
        """
        entries = await self.entries.list_by_name_asc()
        return web.json_response([entry.to_dict(include_created=True) for entry in entries])

    async def api_create_entry(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Create an entry (admin).

        @param request: HTTP request with JSON body {"name": ...}
        @return: 201 with the new entry, 400 if the name is blank
        """
        self.require_admin(request)

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidInput("Request body must be JSON") from e

        name = body.get("name") if isinstance(body, dict) else None
        entry = await self.entries.create(name, privileged=True)
        return web.json_response(entry.to_dict(), status=201)

    async def api_delete_entry(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Delete an entry and its scan records (admin).

        @param request: HTTP request object containing the entry id
        @return: {"success": true}, 404 if the entry does not exist
        """
        self.require_admin(request)

        entry_id = self.entry_id(request)
        if not await self.entries.delete(entry_id, privileged=True):
            return web.json_response({"error": f"Entry {entry_id} not found"}, status=404)

        return web.json_response({"success": True})

    async def api_increment_entry(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Add one point to an entry without touching the scan ledger (admin).

        @param request: HTTP request object containing the entry id
        @return: JSON of the updated entry, 404 if it does not exist
        """
        self.require_admin(request)

        entry_id = self.entry_id(request)
        entry = await self.entries.increment_unconditional(entry_id)
        if entry is None:
            return web.json_response({"error": f"Entry {entry_id} not found"}, status=404)

        return web.json_response(entry.to_dict())

    async def api_entry_scans(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        List the scan records of an entry (admin).

        @param request: HTTP request object containing the entry id
        @return: JSON with the entry and its scans
        """
        self.require_admin(request)

        entry_id = self.entry_id(request)
        entry = await self.entries.get_by_id(entry_id)
        if entry is None:
            return web.json_response({"error": f"Entry {entry_id} not found"}, status=404)

        scans = await self.ledger.list_scans(entry_id)
        return web.json_response(
            {
                "entry": entry.to_dict(),
                "scans": [scan.to_dict() for scan in scans],
            }
        )

    async def api_entry_qrcode(
        self,
        request: web.Request,
    ) -> web.Response:
        """
        Render the check-in QR code of an entry as PNG.

        @param request: HTTP request object containing the entry id
        @return: PNG response with a Content-Disposition filename
        """
        artifact = await self.artifacts.generate(
            self.entry_id(request), self.base_origin(request)
        )
        return web.Response(
            body=artifact.png,
            content_type="image/png",
            headers={"Content-Disposition": artifact.content_disposition},
        )
