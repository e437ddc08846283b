import json
import logging
import os
import threading
from typing import Dict, List, Optional

from docchat.config import METRICS_PATH

logger = logging.getLogger(__name__)


class MetricsTracker:
    """
    Request counters and latency history.

    With a path, the counters are written after every update so they
    survive restarts; without one they live in memory only.
    """

    def __init__(self, path: Optional[str] = METRICS_PATH):

        self._path = path
        self._lock = threading.Lock()

        self._metrics = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_latency": 0.0,
            "avg_latency": 0.0,
            "latencies": [],
        }

        self._load()

    def _load(self):

        if not self._path or not os.path.exists(self._path):
            return

        try:

            with open(self._path, "r") as f:
                data = json.load(f)

            data.setdefault("latencies", [])
            self._metrics.update(data)

        except (OSError, ValueError) as e:
            logger.warning(
                "Metrics file unreadable, starting fresh",
                extra={"path": self._path, "error": str(e)},
            )

    def _save(self):

        if not self._path:
            return

        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with open(self._path, "w") as f:
            json.dump(self._metrics, f, indent=2)

    def record_success(self, latency: float):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["successful_requests"] += 1
            self._metrics["total_latency"] += latency
            self._metrics["avg_latency"] = (
                self._metrics["total_latency"]
                / self._metrics["total_requests"]
            )
            self._metrics["latencies"].append(latency)

            self._save()

    def record_failure(self):

        with self._lock:

            self._metrics["total_requests"] += 1
            self._metrics["failed_requests"] += 1

            self._save()

    def get_metrics(self) -> Dict:

        with self._lock:
            snapshot = dict(self._metrics)

        snapshot["p50_latency"] = self.get_latency_percentile(50)
        snapshot["p95_latency"] = self.get_latency_percentile(95)
        snapshot.pop("latencies", None)

        return snapshot

    def get_latency_percentile(self, percentile: float) -> float:

        with self._lock:
            latencies: List[float] = sorted(self._metrics.get("latencies", []))

        if not latencies:
            return 0.0

        index = int(len(latencies) * percentile / 100)
        index = min(index, len(latencies) - 1)

        return latencies[index]


metrics_tracker = MetricsTracker()
