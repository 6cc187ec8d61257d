"""Tests for settings and YAML-backed defaults"""
from fleet_induction.config import (
    get_bay_configuration,
    get_forecast_parameters,
    get_scheduling_config,
    settings,
)


def test_scheduling_defaults_from_yaml():
    config = get_scheduling_config()

    assert config.a_threshold_km == 5000
    assert config.required_in_service == 10
    assert config.w_branding == -1000
    assert config.shunt_cost_by_pos == {}


def test_overrides_accept_both_key_styles():
    config = get_scheduling_config({"REQUIRED_IN_SERVICE": 4, "num_workshop_bays": 1})

    assert config.required_in_service == 4
    assert config.num_workshop_bays == 1


def test_bay_layout_defaults():
    layout = get_bay_configuration()

    assert layout.primary_bays == ["A1", "B1", "C1"]
    assert layout.overflow_bays == ["A3", "B3", "C3"]
    assert layout.bay_positions["C3"] == 9


def test_forecast_parameters_defaults():
    params = get_forecast_parameters()

    assert params.readiness_threshold == 70
    assert params.shunting_penalty == 10
    assert settings.monitor_interval_seconds > 0
