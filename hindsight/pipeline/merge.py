"""Merge per-segment / per-pull statistics into one aggregate view."""

import logging
from dataclasses import dataclass

from hindsight.pipeline.normalize import effective_duration, round_rate
from hindsight.summary.models import (
    AbilityBreakdown,
    BuffUptime,
    DeathEvent,
    EncounterSummary,
    EnemyBreakdown,
    EnemyPlayerDamage,
    KeySegment,
    PlayerSummary,
    TargetBreakdown,
    TrashPull,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Selection:
    """Which sub-encounters to aggregate.

    ``segments`` holds ``KeySegment.index`` values and ``pulls`` holds
    ``TrashPull.pull_index`` values (matched across every segment). Both
    unset means the whole encounter.
    """

    segments: frozenset[int] | None = None
    pulls: frozenset[int] | None = None

    def __post_init__(self):
        if self.segments is not None and self.pulls is not None:
            raise ValueError("Select either segments or pulls, not both")

    @classmethod
    def everything(cls) -> "Selection":
        return cls()

    @classmethod
    def of_segments(cls, indices) -> "Selection":
        return cls(segments=frozenset(indices))

    @classmethod
    def of_pulls(cls, indices) -> "Selection":
        return cls(pulls=frozenset(indices))

    @property
    def is_everything(self) -> bool:
        return self.segments is None and self.pulls is None

    @property
    def is_pull_level(self) -> bool:
        return self.pulls is not None


def selected_units(
    encounter: EncounterSummary, selection: Selection,
) -> list[KeySegment | TrashPull]:
    """Resolve a selection to segments or pulls, in encounter order.

    Indices that match nothing are skipped; a stale filter is a normal
    interactive state, not an error.
    """
    if selection.is_everything:
        return list(encounter.segments)

    units: list[KeySegment | TrashPull] = []
    found: set[int] = set()
    if selection.is_pull_level:
        for segment in encounter.segments:
            for pull in segment.pulls:
                if pull.pull_index in selection.pulls:
                    units.append(pull)
                    found.add(pull.pull_index)
        wanted = selection.pulls
    else:
        for segment in encounter.segments:
            if segment.index in selection.segments:
                units.append(segment)
                found.add(segment.index)
        wanted = selection.segments

    missing = wanted - found
    if missing:
        logger.debug(
            "Ignoring unknown %s indices: %s",
            "pull" if selection.is_pull_level else "segment",
            sorted(missing),
        )
    return units


# ===== Ability / target merging =====

def merge_targets(
    into: list[TargetBreakdown], source: list[TargetBreakdown],
) -> None:
    """Fold ``source`` targets into ``into`` (owned by the caller) by name."""
    by_name = {t.target_name: t for t in into}
    for target in source:
        existing = by_name.get(target.target_name)
        if existing is None:
            copied = target.model_copy()
            into.append(copied)
            by_name[copied.target_name] = copied
        else:
            existing.amount += target.amount


def merge_abilities(
    into: list[AbilityBreakdown], source: list[AbilityBreakdown],
) -> None:
    """Fold ``source`` abilities into ``into`` (owned by the caller).

    Abilities match on ``spell_id``; matched entries add their totals and
    hit counts and merge targets, unmatched ones are appended as copies.
    """
    by_spell = {a.spell_id: a for a in into}
    for ability in source:
        existing = by_spell.get(ability.spell_id)
        if existing is None:
            copied = ability.model_copy(deep=True)
            into.append(copied)
            by_spell[copied.spell_id] = copied
            continue
        existing.total_amount += ability.total_amount
        existing.hit_count += ability.hit_count
        merge_targets(existing.targets, ability.targets)


def rollup_targets(abilities: list[AbilityBreakdown]) -> list[TargetBreakdown]:
    """Per-target totals across all of a player's abilities, largest first."""
    by_target: dict[str, int] = {}
    for ability in abilities:
        for target in ability.targets:
            by_target[target.target_name] = (
                by_target.get(target.target_name, 0) + target.amount
            )
    rows = [
        TargetBreakdown(target_name=name, amount=amount)
        for name, amount in by_target.items()
    ]
    return sorted(rows, key=lambda t: t.amount, reverse=True)


# ===== Player merging =====

def _merge_unit_players(
    units: list[KeySegment | TrashPull],
) -> list[PlayerSummary]:
    merged: dict[str, PlayerSummary] = {}
    for unit in units:
        for player in unit.players:
            existing = merged.get(player.guid)
            if existing is None:
                merged[player.guid] = player.model_copy(deep=True)
                continue
            existing.damage_done += player.damage_done
            existing.healing_done += player.healing_done
            existing.damage_taken += player.damage_taken
            existing.deaths += player.deaths
            merge_abilities(existing.abilities, player.abilities)
            merge_abilities(existing.heal_abilities, player.heal_abilities)
            merge_abilities(
                existing.damage_taken_abilities, player.damage_taken_abilities,
            )

    duration = effective_duration(sum(u.duration_secs for u in units))
    for player in merged.values():
        player.dps = float(round_rate(player.damage_done / duration))
        player.hps = float(round_rate(player.healing_done / duration))

    # sorted() is stable, so equal damage keeps first-seen order
    return sorted(merged.values(), key=lambda p: p.damage_done, reverse=True)


def merge_players(
    encounter: EncounterSummary, selection: Selection,
) -> list[PlayerSummary]:
    """Merge player stats over the selected segments or pulls.

    Returns new objects sorted by damage done (descending, stable). The
    whole-encounter selection returns copies of the encounter-level players
    unchanged; an empty or fully unknown selection returns ``[]``.
    """
    if selection.is_everything:
        return [p.model_copy(deep=True) for p in encounter.players]
    return _merge_unit_players(selected_units(encounter, selection))


# ===== Buff / enemy merging =====

def merge_buff_uptimes(
    sources: list[dict[str, list[BuffUptime]]],
    duration_secs: float,
) -> dict[str, list[BuffUptime]]:
    """Merge per-player buff uptimes from several segments.

    Buffs match on (spell_id, source_name). Uptime seconds add, stacks take
    the max and the uptime-weighted mean, and uptime % is recomputed against
    ``duration_secs``. Timelines are concatenated in source order.
    """
    merged: dict[str, dict[tuple[int, str], BuffUptime]] = {}
    for source in sources:
        for guid, uptimes in source.items():
            per_player = merged.setdefault(guid, {})
            for buff in uptimes:
                key = (buff.spell_id, buff.source_name)
                existing = per_player.get(key)
                if existing is None:
                    per_player[key] = buff.model_copy(deep=True)
                    continue
                total_uptime = existing.uptime_secs + buff.uptime_secs
                if total_uptime > 0:
                    existing.avg_stacks = round(
                        (
                            existing.avg_stacks * existing.uptime_secs
                            + buff.avg_stacks * buff.uptime_secs
                        ) / total_uptime,
                        2,
                    )
                existing.uptime_secs = total_uptime
                existing.max_stacks = max(existing.max_stacks, buff.max_stacks)
                existing.timeline.extend(
                    e.model_copy() for e in buff.timeline
                )

    denom = effective_duration(duration_secs)
    result: dict[str, list[BuffUptime]] = {}
    for guid, per_player in merged.items():
        for buff in per_player.values():
            buff.uptime_pct = min(round(buff.uptime_secs / denom * 100, 1), 100.0)
        result[guid] = sorted(
            per_player.values(), key=lambda b: b.uptime_pct, reverse=True,
        )
    return result


def merge_enemy_breakdowns(
    sources: list[list[EnemyBreakdown]],
) -> list[EnemyBreakdown]:
    """Merge enemy damage summaries by target name, largest first."""
    merged: dict[str, EnemyBreakdown] = {}
    player_rows: dict[str, dict[str, EnemyPlayerDamage]] = {}
    for source in sources:
        for enemy in source:
            existing = merged.get(enemy.target_name)
            if existing is None:
                existing = enemy.model_copy(update={"players": []})
                merged[enemy.target_name] = existing
                player_rows[enemy.target_name] = {}
            else:
                existing.total_damage += enemy.total_damage
                existing.kill_count += enemy.kill_count

            rows = player_rows[enemy.target_name]
            for row in enemy.players:
                current = rows.get(row.player_name)
                if current is None:
                    copied = row.model_copy()
                    rows[row.player_name] = copied
                    existing.players.append(copied)
                else:
                    current.damage += row.damage

    for enemy in merged.values():
        enemy.players.sort(key=lambda r: r.damage, reverse=True)
    return sorted(merged.values(), key=lambda e: e.total_damage, reverse=True)


# ===== Filtered encounter view =====

def filter_encounter(
    encounter: EncounterSummary, selection: Selection,
) -> EncounterSummary:
    """Build a new encounter view restricted to the selected segments/pulls.

    Players are merged, deaths concatenated in selection order, buffs and
    enemies merged (segments only; pulls carry neither), and
    ``duration_secs`` becomes the floored selected duration. When the
    selection contributes no buff or enemy data the encounter-level values
    are kept.
    """
    if selection.is_everything or not encounter.segments:
        return encounter.model_copy(deep=True)

    units = selected_units(encounter, selection)
    duration = effective_duration(sum(u.duration_secs for u in units))

    deaths: list[DeathEvent] = [
        d.model_copy(deep=True) for u in units for d in u.deaths
    ]

    segments = [u for u in units if isinstance(u, KeySegment)]
    buff_sources = [s.buff_uptimes for s in segments if s.buff_uptimes]
    enemy_sources = [s.enemy_breakdowns for s in segments if s.enemy_breakdowns]

    filtered = encounter.model_copy(deep=True)
    filtered.players = _merge_unit_players(units)
    filtered.deaths = deaths
    filtered.duration_secs = duration
    if buff_sources:
        filtered.buff_uptimes = merge_buff_uptimes(buff_sources, duration)
    if enemy_sources:
        filtered.enemy_breakdowns = merge_enemy_breakdowns(enemy_sources)

    logger.debug(
        "Filtered encounter %r to %d units (%.1fs, %d players)",
        encounter.name, len(units), duration, len(filtered.players),
    )
    return filtered


# ===== Duration shares =====

def segment_shares(encounter: EncounterSummary) -> dict[int, float]:
    """Each segment's share of the encounter duration, in percent."""
    total = effective_duration(encounter.duration_secs)
    return {
        s.index: round(s.duration_secs / total * 100, 1)
        for s in encounter.segments
    }


def pull_shares(segment: KeySegment) -> dict[int, float]:
    """Each pull's share of the segment's summed pull time, in percent."""
    total = effective_duration(sum(p.duration_secs for p in segment.pulls))
    return {
        p.pull_index: round(p.duration_secs / total * 100, 1)
        for p in segment.pulls
    }
