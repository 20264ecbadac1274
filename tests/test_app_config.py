import pytest

from zone2_monitor.app_config import AppConfig
from zone2_monitor.zone_models import DEBOUNCE_INTERVAL, STALENESS_WINDOW, InvalidConfig


def test_defaults():
    config = AppConfig.from_env({})
    assert config.staleness_window == STALENESS_WINDOW
    assert config.debounce_interval == DEBOUNCE_INTERVAL
    assert config.source == "bluetooth"


def test_environment_overrides():
    config = AppConfig.from_env({
        "ZONE2_DEBOUNCE_INTERVAL": "5",
        "ZONE2_STALENESS_WINDOW": "15.5",
        "ZONE2_LOG_LEVEL": "debug",
        "ZONE2_SOURCE": "Simulated",
    })
    assert config.debounce_interval == 5.0
    assert config.staleness_window == 15.5
    assert config.log_level == "DEBUG"
    assert config.source == "simulated"


@pytest.mark.parametrize("env", [
    {"ZONE2_TICK_INTERVAL": "fast"},
    {"ZONE2_STALENESS_WINDOW": "0"},
    {"ZONE2_DEBOUNCE_INTERVAL": "-1"},
])
def test_invalid_values(env):
    with pytest.raises(InvalidConfig):
        AppConfig.from_env(env)


def test_unknown_source_is_rejected():
    with pytest.raises(InvalidConfig):
        AppConfig.from_env({"ZONE2_SOURCE": "ant"})
