"""Recompute player damage for an arbitrary [start, end) second window.

Headline totals come from the per-second damage buckets, which keeps a
window query O(window length). Ability and target detail comes from the raw
ability events. The two are derived independently upstream and may differ
slightly; the totals are never reconciled against the breakdown.
"""

import logging
import math
from collections import defaultdict

from hindsight.pipeline.normalize import effective_duration
from hindsight.summary.models import (
    AbilityBreakdown,
    EncounterSummary,
    PlayerSummary,
    RawAbilityEvent,
    TargetBreakdown,
)
from hindsight.utils import spell_url

logger = logging.getLogger(__name__)


def window_bounds(encounter: EncounterSummary) -> tuple[int, int]:
    """Valid slider range for an encounter, in whole seconds."""
    return 0, max(math.ceil(encounter.duration_secs), 1)


def clamp_window(
    encounter: EncounterSummary, start_sec: int, end_sec: int,
) -> tuple[int, int]:
    """Clamp a window into the encounter; an inverted window collapses to empty."""
    lo, hi = window_bounds(encounter)
    start = min(max(start_sec, lo), hi)
    end = min(max(end_sec, lo), hi)
    if start > end:
        logger.debug(
            "Inverted window [%d, %d) collapsed to [%d, %d)",
            start_sec, end_sec, end, end,
        )
        start = end
    elif (start, end) != (start_sec, end_sec):
        logger.debug(
            "Window [%d, %d) clamped to [%d, %d)",
            start_sec, end_sec, start, end,
        )
    return start, end


def bucket_totals(
    buckets: dict[int, dict[str, int]], start_sec: int, end_sec: int,
) -> dict[str, int]:
    """Sum per-second damage buckets over [start_sec, end_sec) per combatant."""
    totals: dict[str, int] = defaultdict(int)
    for second in range(start_sec, end_sec):
        row = buckets.get(second)
        if not row:
            continue
        for guid, amount in row.items():
            totals[guid] += amount
    return dict(totals)


def ability_breakdowns(
    events: list[RawAbilityEvent], start_sec: float, end_sec: float,
) -> dict[str, list[AbilityBreakdown]]:
    """Rebuild per-combatant ability breakdowns from raw events in the window.

    Abilities keep first-seen order within a combatant until the final sort
    by total amount (descending); targets keep insertion order.
    """
    abilities: dict[str, dict[int, AbilityBreakdown]] = {}
    targets: dict[tuple[str, int], dict[str, TargetBreakdown]] = {}

    for event in events:
        if event.time_offset_secs < start_sec or event.time_offset_secs >= end_sec:
            continue

        by_spell = abilities.setdefault(event.guid, {})
        ability = by_spell.get(event.spell_id)
        if ability is None:
            ability = AbilityBreakdown(
                spell_id=event.spell_id,
                spell_name=event.spell_name,
                spell_school=event.spell_school,
                wowhead_url=spell_url(event.spell_id),
                targets=[],
            )
            by_spell[event.spell_id] = ability
        ability.total_amount += event.amount
        ability.hit_count += 1

        by_target = targets.setdefault((event.guid, event.spell_id), {})
        target = by_target.get(event.target_name)
        if target is None:
            target = TargetBreakdown(target_name=event.target_name)
            by_target[event.target_name] = target
            ability.targets.append(target)
        target.amount += event.amount

    return {
        guid: sorted(by_spell.values(), key=lambda a: a.total_amount, reverse=True)
        for guid, by_spell in abilities.items()
    }


def recompute_window(
    encounter: EncounterSummary, start_sec: int, end_sec: int,
) -> list[PlayerSummary]:
    """Player damage, DPS and ability detail for the window [start_sec, end_sec).

    Every encounter-level player appears in the result (with zero damage if
    idle in the window), sorted by damage done descending. DPS is left
    unrounded. Out-of-range bounds are clamped rather than rejected.
    """
    start, end = clamp_window(encounter, start_sec, end_sec)
    totals = bucket_totals(encounter.time_bucketed_player_damage, start, end)
    detail = ability_breakdowns(encounter.raw_ability_events, start, end)
    duration = effective_duration(end - start)

    players = []
    for player in encounter.players:
        damage = totals.get(player.guid, 0)
        players.append(player.model_copy(
            update={
                "damage_done": damage,
                "dps": damage / duration,
                "abilities": detail.get(player.guid, []),
            },
            deep=True,
        ))

    return sorted(players, key=lambda p: p.damage_done, reverse=True)
