"""Step-semantics time indexes over the replay data of one encounter.

Every lookup answers "what was the last known value at time T" with a binary
search, so continuous playback never re-walks a series from the start.
"""

import bisect
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Generic, TypeVar

from hindsight.summary.models import EncounterSummary, HpSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")

FULL_HEALTH_PCT = 100.0


def interpolation_factor(t: float, t0: float, t1: float) -> float:
    """Fraction of the way from t0 to t1, clamped to [0, 1]."""
    if t1 <= t0:
        return 0.0
    return min(1.0, max(0.0, (t - t0) / (t1 - t0)))


def lerp(a: float, b: float, f: float) -> float:
    return a + (b - a) * f


class TimeSeriesIndex(Generic[T]):
    """Sorted ``(time, value)`` samples with greatest-time-<=-T lookup."""

    def __init__(self, samples: Iterable[tuple[float, T]]):
        pairs = list(samples)
        if any(pairs[i][0] > pairs[i + 1][0] for i in range(len(pairs) - 1)):
            logger.debug("Time series out of order, sorting %d samples", len(pairs))
            pairs.sort(key=lambda p: p[0])
        self._times: list[float] = [p[0] for p in pairs]
        self._values: list[T] = [p[1] for p in pairs]

    def __len__(self) -> int:
        return len(self._times)

    def __bool__(self) -> bool:
        return bool(self._times)

    def locate(self, t: float) -> int:
        """Index of the last sample with time <= t, or -1 before the first."""
        return bisect.bisect_right(self._times, t) - 1

    @property
    def values(self) -> list[T]:
        return list(self._values)

    def sample(self, position: int) -> tuple[float, T]:
        return self._times[position], self._values[position]

    def value_at(self, t: float, default: T | None = None) -> T | None:
        position = self.locate(t)
        if position < 0:
            return default
        return self._values[position]

    def bracket(self, t: float) -> tuple[int, int | None]:
        """Positions of the sample in effect at t and of the one after it."""
        position = self.locate(t)
        following = position + 1
        if following >= len(self._times):
            return position, None
        return position, following


@dataclass(frozen=True)
class TickGroup:
    """One sampled tick: ``timeline[start:end]`` all share ``time``."""

    time: float
    start: int
    end: int


class SnapshotIndex:
    """Index over a flat replay timeline grouped by tick time.

    Querying before the first tick yields no entities at all, never
    zero-HP placeholders.
    """

    def __init__(self, timeline: Sequence[HpSnapshot]):
        self._timeline = list(timeline)
        snaps = self._timeline
        if any(snaps[i].time > snaps[i + 1].time for i in range(len(snaps) - 1)):
            logger.debug(
                "Replay timeline out of order, sorting %d snapshots",
                len(self._timeline),
            )
            # sort is stable, so entities keep their order within a tick
            self._timeline.sort(key=lambda s: s.time)
        groups: list[TickGroup] = []
        i = 0
        while i < len(self._timeline):
            tick = self._timeline[i].time
            start = i
            while i < len(self._timeline) and self._timeline[i].time == tick:
                i += 1
            groups.append(TickGroup(time=tick, start=start, end=i))
        self._ticks: TimeSeriesIndex[TickGroup] = TimeSeriesIndex(
            (g.time, g) for g in groups
        )

    def __len__(self) -> int:
        return len(self._ticks)

    @property
    def timeline(self) -> list[HpSnapshot]:
        return self._timeline

    def group(self, tick: TickGroup | None) -> list[HpSnapshot]:
        if tick is None:
            return []
        return self._timeline[tick.start:tick.end]

    def tick_at(self, t: float) -> TickGroup | None:
        return self._ticks.value_at(t)

    def snapshots_at(self, t: float) -> list[HpSnapshot]:
        return self.group(self.tick_at(t))

    def bracket(self, t: float) -> tuple[TickGroup | None, TickGroup | None]:
        current, following = self._ticks.bracket(t)
        if current < 0:
            return None, None
        next_tick = self._ticks.sample(following)[1] if following is not None else None
        return self._ticks.sample(current)[1], next_tick


class BossHpIndex(TimeSeriesIndex[float]):
    """Boss HP % over time; full health before the first sample."""

    def hp_at(self, t: float) -> float:
        return self.value_at(t, FULL_HEALTH_PCT)


class BossPositionIndex(TimeSeriesIndex[tuple[float, float]]):
    """Boss world position over time, interpolated between samples."""

    @classmethod
    def from_samples(
        cls, samples: Iterable[tuple[float, float, float]],
    ) -> "BossPositionIndex":
        return cls((t, (x, y)) for t, x, y in samples)

    def position_at(self, t: float) -> tuple[float, float] | None:
        current, following = self.bracket(t)
        if current < 0:
            return None
        t0, (x, y) = self.sample(current)
        if following is None:
            return x, y
        t1, (nx, ny) = self.sample(following)
        f = interpolation_factor(t, t0, t1)
        return lerp(x, nx, f), lerp(y, ny, f)


@dataclass(frozen=True)
class RosterEntry:
    guid: str
    name: str
    class_name: str
    max_hp: int


def build_roster(timeline: Iterable[HpSnapshot]) -> list[RosterEntry]:
    """Distinct entities in first-seen order, with the largest max HP seen."""
    roster: dict[str, RosterEntry] = {}
    for snap in timeline:
        entry = roster.get(snap.guid)
        if entry is None:
            roster[snap.guid] = RosterEntry(
                guid=snap.guid,
                name=snap.name,
                class_name=snap.class_name,
                max_hp=snap.max_hp,
            )
        elif snap.max_hp > entry.max_hp:
            roster[snap.guid] = replace(entry, max_hp=snap.max_hp)
    return list(roster.values())


@dataclass
class ReplayIndex:
    """All replay indexes for one encounter, built once on load."""

    name: str
    duration_secs: float
    snapshots: SnapshotIndex
    boss_hp: BossHpIndex
    boss_positions: BossPositionIndex
    roster: list[RosterEntry]

    @classmethod
    def from_encounter(cls, encounter: EncounterSummary) -> "ReplayIndex":
        index = cls(
            name=encounter.name,
            duration_secs=encounter.duration_secs,
            snapshots=SnapshotIndex(encounter.replay_timeline),
            boss_hp=BossHpIndex(encounter.boss_hp_timeline),
            boss_positions=BossPositionIndex.from_samples(encounter.boss_positions),
            roster=build_roster(encounter.replay_timeline),
        )
        logger.debug(
            "Built replay index for %r: %d ticks, %d boss HP samples,"
            " %d boss positions, %d entities",
            encounter.name, len(index.snapshots), len(index.boss_hp),
            len(index.boss_positions), len(index.roster),
        )
        return index
