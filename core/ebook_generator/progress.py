"""
Progress Tracking

Per-run progress history with optional callbacks.
"""

import asyncio
from typing import Optional, Callable, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
import json
import logging


@dataclass
class ProgressUpdate:
    """A single progress update"""
    run_id: str
    message: str
    percentage: float
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "message": self.message,
            "percentage": round(self.percentage, 1),
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class ProgressTracker:
    """Track generation progress per run."""

    def __init__(self, max_history: int = 200):
        self.logger = logging.getLogger("EbookGenerator.Progress")
        self.callbacks: Dict[str, Callable] = {}
        self.history: Dict[str, list] = {}
        self.max_history = max_history

    def register_callback(
        self,
        run_id: str,
        callback: Callable[[ProgressUpdate], Any]
    ):
        """Register a callback for progress updates"""
        self.callbacks[run_id] = callback

    def unregister_callback(self, run_id: str):
        self.callbacks.pop(run_id, None)

    async def update(self, run_id: str, message: str, percentage: float):
        """Record a progress update and notify the run's callback."""
        update = ProgressUpdate(run_id=run_id, message=message, percentage=percentage)

        history = self.history.setdefault(run_id, [])
        history.append(update)
        if len(history) > self.max_history:
            del history[: len(history) - self.max_history]

        if run_id in self.callbacks:
            try:
                callback = self.callbacks[run_id]
                if asyncio.iscoroutinefunction(callback):
                    await callback(update)
                else:
                    callback(update)
            except Exception as e:
                self.logger.warning(f"Callback error: {e}")

    def get_history(self, run_id: str) -> list:
        return [u.to_dict() for u in self.history.get(run_id, [])]

    def get_latest(self, run_id: str) -> Optional[dict]:
        """Get latest progress update"""
        history = self.history.get(run_id, [])
        if history:
            return history[-1].to_dict()
        return None

    def clear_history(self, run_id: str):
        self.history.pop(run_id, None)
