"""Replay package -- re-exports the playback API."""

from hindsight.replay.engine import ReplayController, ReplayEngine, ReplayState
from hindsight.replay.frames import ReplayFrame, build_frame
from hindsight.replay.index import (
    BossHpIndex,
    BossPositionIndex,
    ReplayIndex,
    RosterEntry,
    SnapshotIndex,
    TimeSeriesIndex,
    build_roster,
)
from hindsight.replay.map import MapBounds, to_map_plane

__all__ = [
    "BossHpIndex",
    "BossPositionIndex",
    "MapBounds",
    "ReplayController",
    "ReplayEngine",
    "ReplayFrame",
    "ReplayIndex",
    "ReplayState",
    "RosterEntry",
    "SnapshotIndex",
    "TimeSeriesIndex",
    "build_frame",
    "build_roster",
    "to_map_plane",
]
