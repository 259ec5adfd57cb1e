"""Top-down map projection for replay positions."""

from collections.abc import Iterable
from dataclasses import dataclass

from hindsight.config import get_settings
from hindsight.replay.index import ReplayIndex


def to_map_plane(pos_x: float, pos_y: float) -> tuple[float, float]:
    """World coordinates to the map plane (x east, y down the canvas)."""
    return pos_y, -pos_x


def _world_points(index: ReplayIndex) -> Iterable[tuple[float, float]]:
    for snap in index.snapshots.timeline:
        if snap.has_position:
            yield snap.pos_x, snap.pos_y
    yield from index.boss_positions.values


@dataclass(frozen=True)
class MapBounds:
    """Bounding box and uniform scale that fit every position on a square canvas."""

    size: int
    min_x: float
    min_y: float
    scale: float
    offset_x: float
    offset_y: float
    has_positions: bool

    @classmethod
    def from_index(
        cls,
        index: ReplayIndex,
        size: int | None = None,
        padding: int | None = None,
    ) -> "MapBounds":
        cfg = get_settings().map
        size = cfg.size if size is None else size
        padding = cfg.padding if padding is None else padding

        points = [to_map_plane(x, y) for x, y in _world_points(index)]
        if not points:
            return cls(
                size=size, min_x=0.0, min_y=0.0, scale=1.0,
                offset_x=0.0, offset_y=0.0, has_positions=False,
            )

        xs = [p[0] for p in points]
        ys = [p[1] for p in points]
        min_x, min_y = min(xs), min(ys)
        range_x = (max(xs) - min_x) or 1.0
        range_y = (max(ys) - min_y) or 1.0
        usable = size - 2 * padding
        scale = min(usable / range_x, usable / range_y)
        return cls(
            size=size,
            min_x=min_x,
            min_y=min_y,
            scale=scale,
            offset_x=(size - range_x * scale) / 2,
            offset_y=(size - range_y * scale) / 2,
            has_positions=True,
        )

    def project(self, pos_x: float, pos_y: float) -> tuple[float, float]:
        """World position to canvas pixels."""
        gx, gy = to_map_plane(pos_x, pos_y)
        return (
            self.offset_x + (gx - self.min_x) * self.scale,
            self.offset_y + (gy - self.min_y) * self.scale,
        )
