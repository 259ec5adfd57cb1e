"""Per-frame replay state with interpolation between sampled ticks."""

from pydantic import BaseModel

from hindsight.replay.index import ReplayIndex, interpolation_factor, lerp
from hindsight.summary.models import HpSnapshot


class ReplayFrame(BaseModel):
    time: float
    entities: list[HpSnapshot] = []
    boss_hp_pct: float
    boss_position: tuple[float, float] | None = None


def interpolate_entity(
    current: HpSnapshot,
    following: HpSnapshot | None,
    f: float,
    *,
    interpolate_hp: bool = False,
) -> HpSnapshot:
    """Move one entity ``f`` of the way toward its next sample.

    Entities missing from the next tick, or without a position in either
    sample, hold their last known position.
    """
    update: dict = {}
    if following is not None and current.has_position and following.has_position:
        update["pos_x"] = lerp(current.pos_x, following.pos_x, f)
        update["pos_y"] = lerp(current.pos_y, following.pos_y, f)
    if (
        interpolate_hp
        and following is not None
        and not current.is_dead
        and not following.is_dead
    ):
        update["current_hp"] = round(lerp(current.current_hp, following.current_hp, f))
    return current.model_copy(update=update)


def build_frame(
    index: ReplayIndex, t: float, *, interpolate_hp: bool = False,
) -> ReplayFrame:
    """Game state at time ``t``.

    Entities come from the tick in effect at ``t`` (none before the first
    tick). Boss HP uses step semantics and reads 100% before any sample;
    the boss position is interpolated and ``None`` before any sample.
    """
    current, following = index.snapshots.bracket(t)
    entities: list[HpSnapshot] = []
    if current is not None:
        next_by_guid = {s.guid: s for s in index.snapshots.group(following)}
        f = (
            interpolation_factor(t, current.time, following.time)
            if following is not None else 0.0
        )
        entities = [
            interpolate_entity(
                snap, next_by_guid.get(snap.guid), f,
                interpolate_hp=interpolate_hp,
            )
            for snap in index.snapshots.group(current)
        ]

    return ReplayFrame(
        time=t,
        entities=entities,
        boss_hp_pct=index.boss_hp.hp_at(t),
        boss_position=index.boss_positions.position_at(t),
    )
