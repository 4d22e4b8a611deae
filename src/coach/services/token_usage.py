"""Token usage and cost tracking."""
import threading
import time
from typing import Any, Callable, Dict, Optional

from coach.core.config import settings
from coach.core.logging import logger


class TokenUsageTracker:
    """
    Accumulates token counts and estimated cost across model calls.

    Counters are shared by every request in the process, so updates go
    through a lock.
    """

    def __init__(
        self,
        input_per_million: Optional[float] = None,
        output_per_million: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.input_per_million = (
            input_per_million if input_per_million is not None else settings.pricing.input_per_million
        )
        self.output_per_million = (
            output_per_million if output_per_million is not None else settings.pricing.output_per_million
        )
        self._clock = clock
        self._lock = threading.Lock()
        self.total_input_tokens = 0
        self.total_output_tokens = 0
        self.total_cost = 0.0
        self.calls = 0
        self.last_reset = self._clock()

    def cost_of(self, input_tokens: int, output_tokens: int) -> float:
        """Estimated USD cost of one call."""
        return (
            input_tokens / 1_000_000 * self.input_per_million
            + output_tokens / 1_000_000 * self.output_per_million
        )

    def record(self, input_tokens: int, output_tokens: int) -> float:
        """Add one call's usage. Returns that call's estimated cost."""
        cost = self.cost_of(input_tokens, output_tokens)
        with self._lock:
            self.total_input_tokens += input_tokens
            self.total_output_tokens += output_tokens
            self.total_cost += cost
            self.calls += 1
        logger.debug(f"[Tokens] {input_tokens}in/{output_tokens}out | cost ${cost:.4f}")
        return cost

    def stats(self) -> Dict[str, Any]:
        """Totals since the last reset, with uptime and average cost per hour."""
        with self._lock:
            uptime = max(self._clock() - self.last_reset, 0.0)
            total_cost = self.total_cost
            return {
                "total_input_tokens": self.total_input_tokens,
                "total_output_tokens": self.total_output_tokens,
                "total_cost": total_cost,
                "calls": self.calls,
                "last_reset": self.last_reset,
                "uptime_seconds": uptime,
                "avg_cost_per_hour": (total_cost / uptime) * 3600 if uptime > 0 else 0.0,
            }

    def reset(self) -> Dict[str, Any]:
        """Log a summary, zero the counters and return the final totals."""
        summary = self.stats()
        with self._lock:
            self.total_input_tokens = 0
            self.total_output_tokens = 0
            self.total_cost = 0.0
            self.calls = 0
            self.last_reset = self._clock()
        logger.info(
            f"[Tokens] Summary: ${summary['total_cost']:.2f} | "
            f"tokens {summary['total_input_tokens']}/{summary['total_output_tokens']} "
            f"over {summary['calls']} calls"
        )
        return summary


# Process-wide instance
token_usage = TokenUsageTracker()
