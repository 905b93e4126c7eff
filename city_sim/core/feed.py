"""
Citizen feed.

A periodic scan turns the city's current condition into short narrative
messages: shortages, uncovered housing, low or high satisfaction, and
recovery notes once a shortage seen on the previous scan has cleared.
Each condition that holds emits at most one message per scan, picked from
its pool with an injected random generator.
"""

import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Deque, Dict, List, Optional, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from ..utils.random import choice

logger = structlog.get_logger()

MESSAGE_POOLS: Dict[str, Tuple[str, ...]] = {
    "goods": (
        "The shops have nothing on the shelves! Build more industry to make goods!",
    ),
    "water": (
        "There isn't enough water... please build a water treatment plant!",
        "The water keeps cutting out... please fix it soon!",
        "No water comes out of the tap... we can't live like this!",
    ),
    "electricity": (
        "We're short on electricity... please build more power plants!",
        "Blackout! The house is pitch dark... we need more power plants!",
        "No power... I can't even watch TV!",
    ),
    "workforce": (
        "Help wanted signs everywhere... there aren't enough workers!",
        "Our factory can barely run with this few people.",
        "The shops are understaffed. We need more residents!",
    ),
    "park": (
        "There's no park nearby, so the kids have nowhere to play!",
        "The park is too far away to visit... please build more!",
        "I wish there was a park where I could play with my friends!",
    ),
    "sad": (
        "This city is kind of boring... isn't there anything fun to do?",
        "Things have been dull lately... how about some events?",
        "Every day is the same... I want something to change!",
    ),
    "happy": (
        "This city is a great place to live! Thank you, mayor!",
        "I'm so glad about the new facilities! Thank you!",
        "I've made lots of friends and every day is fun!",
    ),
}

RECOVERY_MESSAGES: Dict[str, str] = {
    "water": "The water is back and life is comfortable again! Thank you!",
    "electricity": "The blackout is over and everything is bright again! What a relief!",
    "park": "A new park opened and everyone is thrilled!",
}

ICONS = {
    "goods": "shop",
    "water": "trouble",
    "electricity": "trouble",
    "workforce": "trouble",
    "park": "park",
    "sad": "sad",
    "happy": "happy",
    "recovery": "thanks",
}


@dataclass
class FeedEvent:
    text: str
    icon: str
    timestamp: float
    mood: str  # positive | negative

    def to_dict(self) -> dict:
        return asdict(self)


class FeedLog:
    """Most recent feed events, newest first."""

    def __init__(self, max_entries: int = 10):
        self.max_entries = max_entries
        self._events: Deque[FeedEvent] = deque(maxlen=max_entries)

    def __len__(self) -> int:
        return len(self._events)

    def add(self, event: FeedEvent) -> None:
        # appendleft evicts from the right, which holds the oldest event
        self._events.appendleft(event)

    def extend(self, events: List[FeedEvent]) -> None:
        for event in events:
            self.add(event)

    def clear(self) -> None:
        self._events.clear()

    @property
    def events(self) -> List[FeedEvent]:
        return list(self._events)


class FeedOptions(BaseModel):
    """Thresholds for the feed scan."""

    goods_shortage_threshold: int = Field(default=5, description="Goods at or below this are a shortage")
    workforce_slack: int = Field(default=10, description="Tolerated workforce shortfall")
    satisfaction_low: float = Field(default=30, description="Below this citizens complain")
    satisfaction_high: float = Field(default=80, description="Above this citizens cheer")

    @classmethod
    def from_settings(cls, settings) -> "FeedOptions":
        return cls(
            goods_shortage_threshold=settings.goods_shortage_threshold,
            workforce_slack=settings.workforce_slack,
            satisfaction_low=settings.satisfaction_low,
            satisfaction_high=settings.satisfaction_high,
        )


@dataclass
class CitySnapshot:
    """The city figures a feed scan looks at."""

    goods: int
    has_commercial: bool
    water_shortage: float
    electricity_shortage: float
    workforce_required: int
    workforce_assigned: int
    uncovered_residentials: int
    satisfaction: float


class FeedScanner:
    """
    Evaluates feed conditions against a snapshot.

    Remembers which shortages were present on the previous scan so it can
    announce recoveries.
    """

    def __init__(self, options: Optional[FeedOptions] = None, rng: Optional[np.random.Generator] = None):
        self.options = options or FeedOptions()
        self.rng = rng if rng is not None else np.random.default_rng()
        self._previous = {"water": False, "electricity": False, "park": False}

    def _event(self, condition: str, timestamp: float) -> FeedEvent:
        mood = "positive" if condition == "happy" else "negative"
        return FeedEvent(
            text=choice(self.rng, MESSAGE_POOLS[condition]),
            icon=ICONS[condition],
            timestamp=timestamp,
            mood=mood,
        )

    def _recovery(self, condition: str, timestamp: float) -> FeedEvent:
        return FeedEvent(
            text=RECOVERY_MESSAGES[condition],
            icon=ICONS["recovery"],
            timestamp=timestamp,
            mood="positive",
        )

    def scan(self, snapshot: CitySnapshot, now: Optional[float] = None) -> List[FeedEvent]:
        """Return the events for this tick, in evaluation order."""
        timestamp = time.time() if now is None else now
        opts = self.options
        events: List[FeedEvent] = []

        if snapshot.has_commercial and snapshot.goods <= opts.goods_shortage_threshold:
            events.append(self._event("goods", timestamp))

        current = {
            "water": snapshot.water_shortage > 0,
            "electricity": snapshot.electricity_shortage > 0,
            "park": snapshot.uncovered_residentials > 0,
        }

        for resource in ("water", "electricity"):
            if current[resource]:
                events.append(self._event(resource, timestamp))
            elif self._previous[resource]:
                events.append(self._recovery(resource, timestamp))

        shortfall = snapshot.workforce_required - snapshot.workforce_assigned
        if shortfall > opts.workforce_slack:
            events.append(self._event("workforce", timestamp))

        if current["park"]:
            events.append(self._event("park", timestamp))
        elif self._previous["park"]:
            events.append(self._recovery("park", timestamp))

        if snapshot.satisfaction < opts.satisfaction_low:
            events.append(self._event("sad", timestamp))
        elif snapshot.satisfaction > opts.satisfaction_high:
            events.append(self._event("happy", timestamp))

        self._previous = current
        if events:
            logger.debug("Feed scan produced events", count=len(events))
        return events
