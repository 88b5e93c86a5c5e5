"""
NutriGuard Safety Engine – Clinical Oversight Middleware
==========================================================
HTTP boundary gate around the Clinical Oversight Scanner.

  request  : CRITICAL clinical content → 403 CLINICAL_OVERSIGHT_BLOCKED
             HIGH clinical content     → X-Clinical-Review-Required header
             either way the content is queued and X-Clinical-Review-Id is set
  response : MEDIUM+ clinical content in a 2xx JSON body → disclaimer wrap
             and X-Clinical-Disclaimer header
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from pipelines.content_pipeline import ContentPipeline

logger = logging.getLogger(__name__)

REVIEW_HEADER = "X-Clinical-Review-Required"
DISCLAIMER_HEADER = "X-Clinical-Disclaimer"
REVIEW_ID_HEADER = "X-Clinical-Review-Id"


def _is_json(content_type: Optional[str]) -> bool:
    return bool(content_type) and "application/json" in content_type.lower()


class ClinicalOversightMiddleware(BaseHTTPMiddleware):
    """Scan JSON request and response bodies for clinical advice."""

    def __init__(
        self,
        app,
        pipeline: ContentPipeline,
        skip_paths: Iterable[str] = (),
    ):
        super().__init__(app)
        self.pipeline = pipeline
        self.skip_paths = tuple(skip_paths)

    async def dispatch(self, request: Request, call_next):
        if not self.pipeline.config.enabled or self._skipped(request.url.path):
            return await call_next(request)

        review_id = None
        if request.method in ("POST", "PUT", "PATCH") and _is_json(
            request.headers.get("content-type")
        ):
            payload = await self._read_json(request)
            if payload is not None:
                screen = self.pipeline.screen_inbound(payload)
                if screen["blocked"]:
                    logger.warning(
                        "Blocked %s %s: critical clinical content",
                        request.method, request.url.path,
                    )
                    return JSONResponse(
                        status_code=403,
                        content=screen["error_body"],
                        headers={REVIEW_ID_HEADER: screen["review"]["review_id"]},
                    )
                if screen["review"]:
                    review_id = screen["review"]["review_id"]

        response = await call_next(request)

        if review_id:
            response.headers[REVIEW_HEADER] = "true"
            response.headers[REVIEW_ID_HEADER] = review_id

        if 200 <= response.status_code < 300 and _is_json(response.headers.get("content-type")):
            response = await self._annotate(response)
        return response

    # ── Helpers ─────────────────────────────────────────────────────────

    def _skipped(self, path: str) -> bool:
        return any(path == p or path.startswith(p.rstrip("/") + "/") for p in self.skip_paths)

    @staticmethod
    async def _read_json(request: Request):
        body = await request.body()
        if not body:
            return None
        try:
            return json.loads(body)
        except ValueError:
            # malformed JSON is left to the endpoint's own validation
            return None

    async def _annotate(self, response: Response) -> Response:
        body = b""
        async for chunk in response.body_iterator:
            body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

        headers = {
            k: v for k, v in response.headers.items() if k.lower() != "content-length"
        }
        try:
            data = json.loads(body) if body else None
        except ValueError:
            data = None

        if data is None:
            return Response(
                content=body,
                status_code=response.status_code,
                headers=headers,
                media_type=response.media_type,
            )

        screen = self.pipeline.screen_outbound(data)
        if screen["disclaimer_added"]:
            headers[DISCLAIMER_HEADER] = "included"
        return JSONResponse(
            content=screen["payload"],
            status_code=response.status_code,
            headers=headers,
        )
