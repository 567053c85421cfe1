"""Tests for settings validation."""

import pytest
from pydantic import ValidationError

from fablecast.config import JOB_TIMEOUT_MARGIN_SECONDS, AppConfig


def test_defaults_leave_room_between_run_ceiling_and_stale_window():
    settings = AppConfig(_env_file=None)
    assert settings.STALE_JOB_MINUTES * 60 > settings.PIPELINE_TIMEOUT_SECONDS + JOB_TIMEOUT_MARGIN_SECONDS


@pytest.mark.parametrize(
    "stale_minutes, pipeline_timeout",
    [
        (15, 3600),
        (10, 540),
        (5, 540),
    ],
)
def test_stale_window_must_outlast_a_running_job(stale_minutes, pipeline_timeout):
    with pytest.raises(ValidationError, match="STALE_JOB_MINUTES"):
        AppConfig(
            _env_file=None,
            STALE_JOB_MINUTES=stale_minutes,
            PIPELINE_TIMEOUT_SECONDS=pipeline_timeout,
        )


def test_long_pipeline_with_matching_stale_window():
    settings = AppConfig(_env_file=None, STALE_JOB_MINUTES=62, PIPELINE_TIMEOUT_SECONDS=3600)
    assert settings.STALE_JOB_MINUTES == 62
