"""Request and error metrics for the query API."""
import time
import psutil
from collections import defaultdict, deque
from datetime import datetime
from typing import Dict, Optional


class MetricsTracker:
    """Track request/error counts per route and process resource usage."""

    def __init__(self, history: int = 1000):
        """
        Args:
            history: Number of recent requests kept per route
        """
        # {route: deque of (timestamp, status_code)}
        self._requests: Dict[str, deque] = defaultdict(lambda: deque(maxlen=history))

        # {route: deque of (timestamp, error_type)}
        self._errors: Dict[str, deque] = defaultdict(lambda: deque(maxlen=100))

        self._start_time = time.time()

    def record_request(self, route: str, status_code: int) -> None:
        self._requests[route].append((time.time(), status_code))

    def record_error(self, route: str, error_type: str) -> None:
        self._errors[route].append((time.time(), error_type))

    @staticmethod
    def _count(entries, cutoff: float) -> int:
        return sum(1 for ts, _ in entries if ts > cutoff)

    def get_request_rate(self, route: Optional[str] = None, window: int = 60) -> float:
        """Requests per second for a route (or all routes) over the last window."""
        cutoff = time.time() - window
        if route:
            count = self._count(self._requests.get(route, ()), cutoff)
        else:
            count = sum(self._count(reqs, cutoff) for reqs in self._requests.values())
        return count / window if window > 0 else 0

    def get_error_rate(self, route: Optional[str] = None, window: int = 60) -> float:
        cutoff = time.time() - window
        if route:
            count = self._count(self._errors.get(route, ()), cutoff)
        else:
            count = sum(self._count(errs, cutoff) for errs in self._errors.values())
        return count / window if window > 0 else 0

    def get_resource_usage(self) -> dict:
        """Current process CPU and memory usage."""
        try:
            proc = psutil.Process()
            mem = proc.memory_info()
            return {
                "cpu_percent": round(proc.cpu_percent(interval=None), 1),
                "rss_mb": round(mem.rss / 1024 / 1024, 1),
                "threads": proc.num_threads(),
            }
        except psutil.Error as e:
            return {"error": str(e)}

    def get_uptime(self) -> float:
        return time.time() - self._start_time

    def get_endpoint_stats(self) -> dict:
        now = time.time()
        stats = {}
        for route, reqs in self._requests.items():
            stats[route] = {
                "requests_1min": self._count(reqs, now - 60),
                "requests_5min": self._count(reqs, now - 300),
                "errors_1min": self._count(self._errors.get(route, ()), now - 60),
            }
        return stats

    def get_summary(self) -> dict:
        return {
            "timestamp": datetime.now().isoformat(),
            "uptime_seconds": round(self.get_uptime(), 1),
            "request_rate": {
                "1min": round(self.get_request_rate(window=60), 2),
                "5min": round(self.get_request_rate(window=300), 2),
            },
            "error_rate": {
                "1min": round(self.get_error_rate(window=60), 2),
                "5min": round(self.get_error_rate(window=300), 2),
            },
            "resources": self.get_resource_usage(),
            "endpoints": self.get_endpoint_stats(),
        }


__all__ = ["MetricsTracker"]
