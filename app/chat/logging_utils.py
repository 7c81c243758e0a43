"""
Logging utilities for the knowledge-base pipeline and retrieval.

Provides structured JSON logging for:
- Pipeline stages (extract, segment, embed, save)
- Retrieval operations
- Stage timing

Usage:
    from app.chat.logging_utils import log_pipeline_event, PipelineRun

    log_pipeline_event("cache_hit", {"hs_codes": 1200})

    with PipelineRun(trigger="regenerate") as run:
        with run.stage("extract_codes"):
            ...
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


# Configure logger
logger = logging.getLogger("pipeline_runs")
logger.setLevel(logging.INFO)


# JSON formatter for structured logging
class JSONFormatter(logging.Formatter):
    def format(self, record):
        if isinstance(record.msg, dict):
            return json.dumps(record.msg, default=str)
        return super().format(record)


# Add handler if not already present
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    logger.addHandler(handler)


# ============================================================================
# Simple Logging Functions
# ============================================================================

def log_pipeline_event(event_type: str, payload: Dict[str, Any]) -> None:
    """
    Log a pipeline event with structured data.

    Args:
        event_type: Type of event (e.g., "stage", "cache_hit", "retrieval")
        payload: Event data including run_id where available
    """
    event = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event_type": event_type,
        **payload
    }
    logger.info(event)


def log_retrieval(query: str, passage_ids: List[int], scores: List[float], duration_ms: float) -> None:
    """Log a retrieval operation."""
    log_pipeline_event("retrieval", {
        "query": query[:200],
        "num_passages": len(passage_ids),
        "passage_ids": passage_ids[:10],
        "top_score": round(scores[0], 4) if scores else None,
        "duration_ms": round(duration_ms, 2),
    })


# ============================================================================
# PipelineRun Class
# ============================================================================

class PipelineRun:
    """
    Context manager for logging one knowledge-base build.

    Usage:
        with PipelineRun(trigger="startup") as run:
            with run.stage("segment"):
                passages = segment(text)
            run.record("segment", {"chunks": len(passages)})
    """

    def __init__(self, trigger: str, run_id: str = None):
        self.run_id = run_id or str(uuid.uuid4())
        self.trigger = trigger
        self.start_time = None
        self.stages: List[Dict[str, Any]] = []

    def __enter__(self):
        self.start_time = time.time()
        log_pipeline_event("run_start", {"run_id": self.run_id, "trigger": self.trigger})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        duration_ms = (time.time() - self.start_time) * 1000
        log_pipeline_event("run_end", {
            "run_id": self.run_id,
            "trigger": self.trigger,
            "duration_ms": round(duration_ms, 2),
            "error": str(exc_val) if exc_val else None,
            "num_stages": len(self.stages),
        })

    @contextmanager
    def stage(self, name: str):
        """Time a pipeline stage; errors are logged and re-raised."""
        start = time.time()
        error: Optional[str] = None
        try:
            yield
        except Exception as e:
            error = str(e)
            raise
        finally:
            duration_ms = round((time.time() - start) * 1000, 2)
            self.stages.append({"stage": name, "duration_ms": duration_ms})
            log_pipeline_event("stage", {
                "run_id": self.run_id,
                "stage": name,
                "duration_ms": duration_ms,
                "error": error,
            })

    def record(self, name: str, data: Dict[str, Any]) -> None:
        """Attach counters to the run log."""
        log_pipeline_event("stage_result", {"run_id": self.run_id, "stage": name, **data})
