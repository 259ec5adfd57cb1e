from functools import lru_cache

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AggregationConfig(BaseModel):
    min_duration_secs: float = 1.0  # floor for every rate denominator
    spell_url_template: str = "https://www.wowhead.com/spell={spell_id}"


class ReplayConfig(BaseModel):
    speeds: list[float] = [0.5, 1.0, 2.0, 4.0, 8.0]
    default_speed: float = 1.0
    tick_interval_ms: int = 16  # ~60 frames per second
    clock_resolution_secs: float = 0.1  # one slider step
    interpolate_hp: bool = False


class MapConfig(BaseModel):
    size: int = 320
    padding: int = 25


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HINDSIGHT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    debug: bool = False
    log_level: str = "INFO"
    aggregation: AggregationConfig = AggregationConfig()
    replay: ReplayConfig = ReplayConfig()
    map: MapConfig = MapConfig()

    @model_validator(mode="after")
    def _check_cross_field_deps(self):
        if self.aggregation.min_duration_secs <= 0:
            raise ValueError(
                "AGGREGATION__MIN_DURATION_SECS must be > 0"
            )
        if not self.replay.speeds:
            raise ValueError("REPLAY__SPEEDS must not be empty")
        if any(s <= 0 for s in self.replay.speeds):
            raise ValueError("REPLAY__SPEEDS must all be > 0")
        if self.replay.default_speed not in self.replay.speeds:
            raise ValueError(
                "REPLAY__DEFAULT_SPEED must be one of REPLAY__SPEEDS"
            )
        if self.replay.tick_interval_ms <= 0:
            raise ValueError("REPLAY__TICK_INTERVAL_MS must be > 0")
        if self.replay.clock_resolution_secs <= 0:
            raise ValueError("REPLAY__CLOCK_RESOLUTION_SECS must be > 0")
        if self.map.size <= 2 * self.map.padding:
            raise ValueError("MAP__SIZE must exceed twice MAP__PADDING")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
