"""Shared builders and fixtures for engine tests."""

import pytest

from hindsight.config import get_settings
from hindsight.summary.models import (
    AbilityBreakdown,
    DeathEvent,
    EncounterSummary,
    HpSnapshot,
    KeySegment,
    PlayerSummary,
    TargetBreakdown,
    TrashPull,
)


def make_ability(spell_id, total, targets=None, hits=1, name=None):
    """Ability with optional {target_name: amount} breakdown."""
    return AbilityBreakdown(
        spell_id=spell_id,
        spell_name=name or f"Spell {spell_id}",
        total_amount=total,
        hit_count=hits,
        targets=[
            TargetBreakdown(target_name=t, amount=a)
            for t, a in (targets or {}).items()
        ],
    )


def make_player(guid, damage=0, healing=0, name=None, **kwargs):
    return PlayerSummary(
        guid=guid,
        name=name or guid,
        damage_done=damage,
        healing_done=healing,
        **kwargs,
    )


def make_death(guid, t=0.0):
    return DeathEvent(player_name=guid, player_guid=guid, time_into_fight_secs=t)


def make_pull(pull_index, duration, players=None, deaths=None):
    return TrashPull(
        pull_index=pull_index,
        duration_secs=duration,
        players=players or [],
        deaths=deaths or [],
    )


def make_segment(index, duration, players=None, pulls=None, **kwargs):
    return KeySegment(
        index=index,
        name=f"Segment {index}",
        duration_secs=duration,
        players=players or [],
        pulls=pulls or [],
        **kwargs,
    )


def make_snapshot(t, guid, hp=100, max_hp=100, pos=None, dead=False, **kwargs):
    x, y = pos if pos is not None else (None, None)
    return HpSnapshot(
        time=t,
        guid=guid,
        name=kwargs.pop("name", guid),
        current_hp=hp,
        max_hp=max_hp,
        is_dead=dead,
        pos_x=x,
        pos_y=y,
        **kwargs,
    )


def make_encounter(**kwargs):
    kwargs.setdefault("name", "Test Encounter")
    return EncounterSummary(**kwargs)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are cached process-wide; isolate each test from env changes."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def dungeon():
    """Two trash segments with two pulls each, plus a boss segment."""
    seg0 = make_segment(
        0, 30,
        players=[make_player("A", damage=300), make_player("B", damage=150)],
        pulls=[
            make_pull(0, 10, players=[make_player("A", damage=100)]),
            make_pull(1, 20, players=[
                make_player("A", damage=200),
                make_player("B", damage=150),
            ], deaths=[make_death("B", 25.0)]),
        ],
        deaths=[make_death("B", 25.0)],
    )
    seg1 = make_segment(
        1, 40,
        players=[make_player("A", damage=400), make_player("C", damage=800)],
        pulls=[make_pull(2, 40, players=[
            make_player("A", damage=400),
            make_player("C", damage=800),
        ])],
    )
    boss = make_segment(
        2, 30,
        segment_type="boss",
        players=[make_player("A", damage=600), make_player("B", damage=900)],
        deaths=[make_death("A", 95.0)],
    )
    return make_encounter(
        duration_secs=100,
        players=[
            make_player("A", damage=1300),
            make_player("C", damage=800),
            make_player("B", damage=1050),
        ],
        deaths=[make_death("B", 25.0), make_death("A", 95.0)],
        segments=[seg0, seg1, boss],
    )
