"""
Pipeline event logging utilities for CVPRESS (Tier 2 logging).

Provides uniform interfaces for logging pipeline events to pipeline_events.log.
Every stage of a run appends JSON Lines events here, so a run can be
reconstructed after the fact regardless of which process executed it.

For detailed within-context logging (Tier 1), use cvpress.utils.logger instead.

Usage:
    from cvpress.utils.event_logging import log_pipeline_event, log_state_change

    log_state_change(
        run_id="20251114_123456_v1.2.0",
        old_state="rendering-and-publishing",
        new_state="releasing",
        source="pipeline",
    )

    log_pipeline_event(
        event_type="render_completed",
        run_id="20251114_123456_v1.2.0",
        source="rendering",
        language="en",
    )
"""

import json
import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

from cvpress.utils.timestamp import now_exact

load_dotenv()
LOGS_PATH = Path(os.getenv("LOGS_PATH", "outs/logs"))
PIPELINE_EVENTS_FILE = Path(
    os.getenv("PIPELINE_EVENTS_FILE", str(LOGS_PATH / "pipeline_events.log"))
)

# Event types that move a run between states
MUTATIVE_EVENTS = {"run_started", "state_change"}

STATE_FIELD_BY_EVENT_TYPE = {
    "state_change": "new_state",
    "run_started": "state",
}


def log_pipeline_event(
    event_type: str,
    run_id: str,
    source: str,
    events_file: Optional[Path] = None,
    **extra_fields,
) -> None:
    """
    Log an event to the master pipeline event log.

    Events are appended in JSON Lines format (one JSON object per line),
    which keeps the log streamable and easy to filter by event_type, run_id
    or source.

    Args:
        event_type: Type of event (e.g., "state_change", "render_completed")
        run_id: Pipeline run identifier
        source: Event source (e.g., "rendering", "publishing", "cli")
        events_file: Override for the event log path
        **extra_fields: Additional event-specific fields (must be JSON serializable)
    """
    events_file = Path(events_file or PIPELINE_EVENTS_FILE)
    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "run_id": run_id,
        "source": source,
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event, default=str) + "\n")


def log_state_change(
    run_id: str,
    old_state: str,
    new_state: str,
    source: str,
    events_file: Optional[Path] = None,
    **extra_fields,
) -> None:
    """Log a run state transition."""
    log_pipeline_event(
        event_type="state_change",
        run_id=run_id,
        source=source,
        events_file=events_file,
        old_state=old_state,
        new_state=new_state,
        **extra_fields,
    )


def read_events(events_file: Optional[Path] = None) -> List[Dict]:
    """Read every well-formed event from the log, oldest first."""
    events_file = Path(events_file or PIPELINE_EVENTS_FILE)
    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                events.append(json.loads(line))
            except json.JSONDecodeError:
                # Skip malformed lines
                continue
    return events


def get_recent_events(
    n: int = 10,
    run_id: Optional[str] = None,
    event_type: Optional[str] = None,
    events_file: Optional[Path] = None,
) -> List[Dict]:
    """
    Get the last n events from the pipeline log, optionally filtered.

    Example:
        # Last 20 state changes
        events = get_recent_events(20, event_type="state_change")

        # Last 5 events for a specific run
        events = get_recent_events(5, run_id="20251114_123456_v1.2.0")
    """
    events = read_events(events_file)

    if run_id:
        events = [e for e in events if e.get("run_id") == run_id]

    if event_type:
        events = [e for e in events if e.get("event_type") == event_type]

    return events[-n:] if n > 0 else []


def get_state_from_event(event: Dict) -> str:
    """Extract state from event based on event type."""
    return event[STATE_FIELD_BY_EVENT_TYPE[event["event_type"]]]


def get_run_state(run_id: str, events_file: Optional[Path] = None) -> Optional[str]:
    """
    Deduce the current state of a run from its most recent mutative event.

    Returns:
        State name, or None if the run has never been logged
    """
    state = None
    for event in read_events(events_file):
        if event.get("run_id") == run_id and event.get("event_type") in MUTATIVE_EVENTS:
            state = get_state_from_event(event)
    return state
