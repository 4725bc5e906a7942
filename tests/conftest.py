import pytest
from datetime import date

from trainsched.models import ScheduleInput


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path, monkeypatch):
    """Keep every test away from the real user config directory"""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("TRAINSCHED_CONFIG_DIR", str(config_dir))
    return config_dir


@pytest.fixture
def mon_wed_input():
    """2024-01-01 is a Monday; 2h a day on Mondays and Wednesdays, 5h total"""
    return ScheduleInput(
        start_date=date(2024, 1, 1),
        hours_per_day=2,
        total_hours=5,
        weekdays={1, 3},
    )
