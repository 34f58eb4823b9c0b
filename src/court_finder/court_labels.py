"""Collect per-court schedules by activating the court tabs on a venue page."""

from __future__ import annotations

import asyncio
import json
import threading
from datetime import date
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Optional, Sequence

import structlog
from playwright.async_api import Error as PlaywrightError

from .models import OpeningHours, TimeSlot
from .opening_hours import opening_hours_from
from .provider import ScheduleParseError
from .schedule import parse_pickup_for_label
from .utils import normalise_whitespace

LOGGER = structlog.get_logger(__name__)

# Numbered court tabs: "第 1 面", "第1面 NO.1", "NO.3", "場地 NO.2", "場地2".
COURT_LABELS_JS = r"""
(limit) => {
    const results = new Set();
    const nodes = Array.from(document.querySelectorAll('a,button,li,span,div'));
    const patterns = [
        /^第\s*\d+\s*面\s*(NO\.?\s*\d+)?$/u,
        /^NO\.?\s*\d+$/iu,
        /^場地\s*NO\.?\s*\d+$/u,
        /^場地\s*\d+$/u
    ];
    for (const el of nodes) {
        const text = (el.textContent || '').trim().replace(/\s+/g, ' ');
        if (!text) continue;
        if (patterns.some(p => p.test(text))) results.add(text);
    }
    return Array.from(results).slice(0, limit);
}
"""

PICKUP_SNAPSHOT_JS = """
() => {
    if (typeof mmDataPickup !== 'undefined' && mmDataPickup.Data) {
        return JSON.stringify({ _C: mmDataPickup._C, Data: mmDataPickup.Data });
    }
    return null;
}
"""


def needs_court_labels(slots: Sequence[TimeSlot]) -> bool:
    """True when a day-level result carries no per-court segmentation."""
    return not slots or all(not slot.label.strip() for slot in slots)


def candidate_labels(*groups: Iterable[Any], limit: int = 30) -> list[str]:
    """Merge label groups in order, dropping blanks and duplicates, capped at ``limit``."""
    seen: set[str] = set()
    labels: list[str] = []
    for group in groups:
        for raw in group:
            label = normalise_whitespace(str(raw))
            if not label or label in seen:
                continue
            seen.add(label)
            labels.append(label)
    return labels[:limit]


def prefer_labeled(slots: Sequence[TimeSlot]) -> list[TimeSlot]:
    """Drop the unlabeled aggregate group when labeled court groups exist."""
    labeled = [slot for slot in slots if slot.label.strip()]
    return labeled if labeled else list(slots)


def merge_hours(primary: OpeningHours, fallback: OpeningHours) -> OpeningHours:
    return OpeningHours(
        start_hour=primary.start_hour if primary.start_hour is not None else fallback.start_hour,
        end_hour=primary.end_hour if primary.end_hour is not None else fallback.end_hour,
    )


class CourtLabelConfig:
    """Court labels configured per venue id in a JSON file.

    The file maps venue ids to label lists, e.g. ``{"163": ["第1面", "第2面"]}``,
    and is reloaded whenever its modification time changes.
    """

    def __init__(self, path: Optional[Path] = None):
        self._explicit = path
        self._lock = threading.Lock()
        self._loaded: Optional[tuple[Path, float]] = None
        self._labels: dict[str, list[str]] = {}

    def resolve_path(self) -> Optional[Path]:
        cwd = Path.cwd()
        candidates = [cwd / "config" / "court_labels.json", cwd / "court_labels.json"]
        if self._explicit is not None:
            candidates.insert(0, self._explicit)
        for candidate in candidates:
            if candidate.is_file():
                return candidate
        return None

    def labels_for(self, venue_id: str) -> list[str]:
        path = self.resolve_path()
        if path is None:
            return []
        self._ensure_loaded(path)
        return list(self._labels.get(venue_id.strip().lower(), []))

    def _ensure_loaded(self, path: Path) -> None:
        with self._lock:
            try:
                mtime = path.stat().st_mtime
                if self._loaded == (path, mtime):
                    return
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                LOGGER.warning("labels.load_failed", path=str(path), error=str(exc))
                return
            if not isinstance(raw, dict):
                LOGGER.warning("labels.invalid_file", path=str(path))
                return
            self._labels = {
                str(key).strip().lower(): [str(label) for label in value]
                for key, value in raw.items()
                if isinstance(value, list)
            }
            self._loaded = (path, mtime)
            LOGGER.info("labels.loaded", path=str(path), venues=len(self._labels))


async def discover_court_labels(page: Any, limit: int) -> list[str]:
    try:
        found = await page.evaluate(COURT_LABELS_JS, limit)
    except PlaywrightError as exc:
        LOGGER.warning("labels.discovery_failed", error=str(exc))
        return []
    return [str(label) for label in found or []]


async def collect_court_slots(
    page: Any,
    day: date,
    *,
    hours: OpeningHours,
    configured: Sequence[str] = (),
    limit: int = 30,
    settle_ms: int = 800,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> list[TimeSlot]:
    """Activate each court label in turn and parse the schedule it renders."""
    discovered = await discover_court_labels(page, limit)
    labels = candidate_labels(configured, discovered, limit=limit)
    LOGGER.info("labels.candidates", count=len(labels), labels=labels)

    collected: list[TimeSlot] = []
    for label in labels:
        try:
            await page.get_by_text(label, exact=False).first.click()
            await sleep(settle_ms / 1000)
            raw = await page.evaluate(PICKUP_SNAPSHOT_JS)
        except PlaywrightError as exc:
            LOGGER.info("labels.activate_failed", label=label, error=str(exc))
            continue
        if not raw:
            continue

        try:
            snapshot = json.loads(raw)
            if not isinstance(snapshot, dict):
                raise ScheduleParseError("pickup snapshot is not an object")
            label_hours = merge_hours(opening_hours_from(snapshot.get("_C")), hours)
            slots = parse_pickup_for_label(snapshot.get("Data"), day, label, label_hours)
        except (json.JSONDecodeError, ScheduleParseError) as exc:
            LOGGER.info("labels.parse_failed", label=label, error=str(exc))
            continue

        LOGGER.info("labels.collected", label=label, slots=len(slots))
        collected.extend(slots)
    return collected
