"""Pydantic models for the parsed encounter summary consumed by the engine.

Field names follow the JSON emitted by the log parser, so
``EncounterSummary.model_validate_json(raw)`` accepts its output as-is.
Every model here is treated as an immutable snapshot: engine code copies
(``model_copy(deep=True)``) before changing anything.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class SummaryBaseModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )


class TargetBreakdown(SummaryBaseModel):
    target_name: str
    amount: int = 0


class AbilityBreakdown(SummaryBaseModel):
    spell_id: int
    spell_name: str = ""
    spell_school: int = 0  # bitmask
    total_amount: int = 0
    hit_count: int = 0
    wowhead_url: str = ""
    targets: list[TargetBreakdown] = []


class PlayerSummary(SummaryBaseModel):
    guid: str
    name: str
    class_name: str = ""
    spec_name: str = ""
    role: str = "dps"  # "tank", "healer", "dps"
    damage_done: int = 0
    healing_done: int = 0
    damage_taken: int = 0
    deaths: int = 0
    dps: float = 0.0
    hps: float = 0.0
    abilities: list[AbilityBreakdown] = []
    heal_abilities: list[AbilityBreakdown] = []
    damage_taken_abilities: list[AbilityBreakdown] = []


class RecapEvent(SummaryBaseModel):
    timestamp: str = ""
    time_into_fight_secs: float = 0.0
    event_type: str = "damage"  # "damage", "healing", "buff_applied", "buff_removed"
    amount: int = 0
    spell_name: str = ""
    spell_id: int = 0
    source_name: str = ""
    wowhead_url: str = ""
    current_hp: int = 0
    max_hp: int = 0


class DeathEvent(SummaryBaseModel):
    timestamp: str = ""
    player_name: str
    player_guid: str
    killing_blow_spell: str | None = None
    killing_blow_source: str | None = None
    killing_blow_amount: int | None = None
    overkill: int | None = None
    time_into_fight_secs: float = 0.0
    recap: list[RecapEvent] = []


class BuffEvent(SummaryBaseModel):
    time: float
    event_type: str  # "apply", "remove", "stack"
    stacks: int = 0


class BuffUptime(SummaryBaseModel):
    spell_id: int
    spell_name: str = ""
    source_name: str = ""
    uptime_secs: float = 0.0
    uptime_pct: float = 0.0
    avg_stacks: float = 0.0
    max_stacks: int = 0
    wowhead_url: str = ""
    timeline: list[BuffEvent] = []


class EnemyPlayerDamage(SummaryBaseModel):
    player_name: str
    class_name: str = ""
    damage: int = 0


class EnemyBreakdown(SummaryBaseModel):
    target_name: str
    total_damage: int = 0
    kill_count: int = 0
    mob_type: str = ""
    players: list[EnemyPlayerDamage] = []


class PullEnemy(SummaryBaseModel):
    name: str
    damage_taken: int = 0
    mob_type: str = ""


class TrashPull(SummaryBaseModel):
    pull_index: int
    duration_secs: float = 0.0
    start_time_offset: float = 0.0  # seconds from segment start
    enemies: list[PullEnemy] = []
    players: list[PlayerSummary] = []
    deaths: list[DeathEvent] = []


class KeySegment(SummaryBaseModel):
    segment_type: str = "trash"  # "trash" or "boss"
    name: str = ""
    index: int
    duration_secs: float = 0.0
    start_time: str = ""
    end_time: str = ""
    players: list[PlayerSummary] = []
    deaths: list[DeathEvent] = []
    buff_uptimes: dict[str, list[BuffUptime]] = {}
    enemy_breakdowns: list[EnemyBreakdown] = []
    pulls: list[TrashPull] = []  # empty for boss segments


class BossEncounter(SummaryBaseModel):
    name: str
    encounter_id: int = 0
    success: bool = False
    duration_secs: float = 0.0
    start_time: str = ""
    end_time: str = ""


class PhaseBreakdown(SummaryBaseModel):
    phase_id: int
    start_time_secs: float = 0.0
    end_time_secs: float = 0.0
    enemy_breakdowns: list[EnemyBreakdown] = []


class HpSnapshot(SummaryBaseModel):
    time: float
    guid: str
    name: str = ""
    class_name: str = ""
    current_hp: int = 0
    max_hp: int = 0
    is_dead: bool = False
    pos_x: float | None = None
    pos_y: float | None = None

    @property
    def has_position(self) -> bool:
        return self.pos_x is not None and self.pos_y is not None


RAW_EVENT_FIELDS = (
    "time_offset_secs",
    "guid",
    "spell_id",
    "spell_name",
    "spell_school",
    "amount",
    "target_name",
)


class RawAbilityEvent(SummaryBaseModel):
    """One damage event kept for windowed ability breakdowns.

    The parser emits these as 7-element arrays
    ``[ts, guid, spell_id, spell_name, school, amount, target_name]``;
    the keyed form is accepted too.
    """

    time_offset_secs: float
    guid: str
    spell_id: int
    spell_name: str = ""
    spell_school: int = 0
    amount: int = 0
    target_name: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_array(cls, data: Any) -> Any:
        if isinstance(data, list | tuple):
            if len(data) != len(RAW_EVENT_FIELDS):
                raise ValueError(
                    f"raw ability event needs {len(RAW_EVENT_FIELDS)} fields,"
                    f" got {len(data)}"
                )
            return dict(zip(RAW_EVENT_FIELDS, data, strict=True))
        return data


class EncounterSummary(SummaryBaseModel):
    index: int = 0
    encounter_id: int = 0
    name: str = ""
    difficulty_id: int = 0
    difficulty_name: str = ""
    group_size: int = 0
    success: bool = False
    duration_secs: float = 0.0
    start_time: str = ""
    end_time: str = ""
    key_level: int | None = None
    affixes: list[int] = []
    encounter_type: str = "boss"  # "boss", "mythic_plus", "trash"
    boss_encounters: list[BossEncounter] = []
    players: list[PlayerSummary] = []
    deaths: list[DeathEvent] = []
    segments: list[KeySegment] = []
    buff_uptimes: dict[str, list[BuffUptime]] = {}
    enemy_breakdowns: list[EnemyBreakdown] = []
    boss_hp_pct: float | None = None
    boss_max_hp: int | None = None
    phases: list[PhaseBreakdown] = []
    # JSON object keys arrive as strings ("12"); validation normalizes them
    # to int second offsets so lookups never coerce keys.
    time_bucketed_player_damage: dict[int, dict[str, int]] = {}
    raw_ability_events: list[RawAbilityEvent] = []
    boss_hp_timeline: list[tuple[float, float]] = []
    replay_timeline: list[HpSnapshot] = []
    boss_positions: list[tuple[float, float, float]] = []
