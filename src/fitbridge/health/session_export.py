"""Export Google Fit sessions to JSON.

Reads back what a sync created (or anything else recorded in the account)
so runs can be checked, and duplicate sessions from repeated runs spotted.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from loguru import logger

from fitbridge.integrations.google_fit import GoogleFitClient

from .metrics import SLEEP_ACTIVITY_TYPE, WORKOUT_ACTIVITY_TYPES

ACTIVITY_NAMES = {
    0: "Unknown",
    7: "Walking",
    8: "Running",
    1: "Cycling",
    9: "Aerobics",
    10: "Badminton",
    35: "Hiking",
    80: "Strength training",
    82: "Swimming",
    100: "Yoga",
    SLEEP_ACTIVITY_TYPE: "Sleep",
}


def activity_name(activity_type: int) -> str:
    if activity_type in ACTIVITY_NAMES:
        return ACTIVITY_NAMES[activity_type]
    for source_type, fit_type in WORKOUT_ACTIVITY_TYPES.items():
        if fit_type == activity_type:
            return source_type.removeprefix("HKWorkoutActivityType")
    return f"Activity {activity_type}"


def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=UTC).astimezone().isoformat(timespec="seconds")


def summarize_session(session: dict[str, Any]) -> dict[str, Any]:
    start_ms = int(session.get("startTimeMillis", 0))
    end_ms = int(session.get("endTimeMillis", 0))
    activity_type = int(session.get("activityType", 0))
    return {
        "id": session.get("id", ""),
        "name": session.get("name", ""),
        "description": session.get("description", ""),
        "activity_type": activity_type,
        "activity": activity_name(activity_type),
        "start_time_millis": start_ms,
        "end_time_millis": end_ms,
        "start": _iso(start_ms),
        "end": _iso(end_ms),
        "duration_minutes": round((end_ms - start_ms) / 60_000, 1),
        "application": (session.get("application") or {}).get("name", ""),
    }


def export_sessions(client: GoogleFitClient, start_ms: int, end_ms: int) -> list[dict[str, Any]]:
    """Fetch sessions in ``[start_ms, end_ms]`` and flatten them, oldest first."""
    sessions = [summarize_session(s) for s in client.list_sessions(start_ms, end_ms)]
    sessions.sort(key=lambda s: s["start_time_millis"])
    logger.info(f"Fetched {len(sessions)} sessions")
    return sessions


def write_sessions_json(path: str | Path, sessions: list[dict[str, Any]]) -> Path:
    out = Path(path).expanduser()
    out.parent.mkdir(parents=True, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        json.dump(sessions, f, indent=2)
    logger.info(f"Wrote {len(sessions)} sessions to {out}")
    return out
