from hindsight.pipeline.normalize import (
    compute_dps,
    compute_hps,
    effective_duration,
    round_rate,
)


def test_effective_duration_floor():
    assert effective_duration(0) == 1.0
    assert effective_duration(0.4) == 1.0
    assert effective_duration(12.5) == 12.5


def test_effective_duration_respects_settings(monkeypatch):
    monkeypatch.setenv("HINDSIGHT_AGGREGATION__MIN_DURATION_SECS", "5")
    assert effective_duration(2) == 5.0
    assert effective_duration(8) == 8


def test_compute_dps():
    assert compute_dps(1000, 10) == 100.0


def test_compute_dps_zero_duration():
    assert compute_dps(250, 0) == 250.0


def test_compute_hps():
    assert compute_hps(300, 60) == 5.0


def test_round_rate_half_up():
    assert round_rate(2.5) == 3
    assert round_rate(10.5) == 11
    assert round_rate(0.49) == 0
    assert round_rate(0) == 0
