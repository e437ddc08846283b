# docchat/observability/posthog_client.py

"""
PostHog Observability Client

Architecture contract:
- Does NOT replace structured logging
- Uses request_id as distinct_id
- Never blocks or fails API execution
"""

import logging
from typing import Any, Dict, Optional

from posthog import Posthog

from docchat.config import POSTHOG_API_KEY, POSTHOG_HOST

logger = logging.getLogger(__name__)


class PostHogClient:
    """Product analytics wrapper; a no-op when POSTHOG_API_KEY is unset."""

    def __init__(self, api_key: str = POSTHOG_API_KEY, host: str = POSTHOG_HOST):

        self._enabled = False
        self._client: Optional[Posthog] = None

        if not api_key:
            logger.info("PostHog disabled: POSTHOG_API_KEY not set")
            return

        try:

            self._client = Posthog(
                project_api_key=api_key,
                host=host,
                timeout=5,
                flush_interval=1,
            )

            self._enabled = True

            logger.info("PostHog client initialized", extra={"host": host})

        except Exception as e:

            logger.error(
                "PostHog initialization failed",
                extra={"error": str(e)},
            )

    # ==========================================================
    # INTERNAL SAFE TRACK
    # ==========================================================

    def _track(
        self,
        distinct_id: str,
        event: str,
        properties: Optional[Dict[str, Any]] = None,
    ):

        if not self._enabled or not self._client:
            return

        try:

            self._client.capture(
                distinct_id=distinct_id,
                event=event,
                properties=properties or {},
            )

        except Exception as e:

            logger.warning(
                "PostHog tracking failed",
                extra={"event": event, "error": str(e)},
            )

    # ==========================================================
    # EVENTS
    # ==========================================================

    def track_documents_ingested(
        self,
        distinct_id: str,
        files: int,
        succeeded: int,
        chunks: int,
        latency: float,
    ):

        self._track(
            distinct_id,
            "documents_ingested",
            {
                "files": files,
                "succeeded": succeeded,
                "chunks": chunks,
                "latency_seconds": latency,
            },
        )

    def track_query(
        self,
        distinct_id: str,
        question: str,
        accuracy_mode: str,
        context_window: str,
        streamed: bool,
        latency: float,
        sources: int,
        confidence: Optional[int] = None,
    ):

        self._track(
            distinct_id,
            "query_answered",
            {
                "question_length": len(question),
                "accuracy_mode": accuracy_mode,
                "context_window": context_window,
                "streamed": streamed,
                "latency_seconds": latency,
                "sources": sources,
                "confidence": confidence,
            },
        )

    def track_retrieval(
        self,
        distinct_id: str,
        context_window: str,
        chunks_retrieved: int,
        top_score: Optional[float],
    ):

        self._track(
            distinct_id,
            "retrieval_completed",
            {
                "context_window": context_window,
                "chunks_retrieved": chunks_retrieved,
                "top_score": top_score,
            },
        )

    def track_error(
        self,
        distinct_id: str,
        error_type: str,
        error_message: str,
        endpoint: str,
    ):

        self._track(
            distinct_id,
            "system_error",
            {
                "error_type": error_type,
                "error_message": error_message,
                "endpoint": endpoint,
            },
        )

    def shutdown(self):
        """Flush queued events before the process exits."""

        if self._client is not None:
            self._client.shutdown()


# ==============================================================
# GLOBAL SINGLETON
# ==============================================================

posthog_client = PostHogClient()
