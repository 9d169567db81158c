from __future__ import annotations

import pytest

from actrun.errors import ConfigError
from actrun.settings import DEFAULT_OUTPUT_LIMIT, Settings


def test_defaults_with_empty_environment():
    settings = Settings.from_env({})

    assert settings.workspace == "."
    assert settings.remote == "origin"
    assert settings.token is None
    assert settings.event_name is None
    assert settings.output_limit == DEFAULT_OUTPUT_LIMIT


def test_hosted_ci_variables_are_used():
    settings = Settings.from_env(
        {
            "GITHUB_WORKSPACE": "/ws",
            "GITHUB_TOKEN": "t0k",
            "GITHUB_EVENT_NAME": "pull_request",
            "GITHUB_REF": "refs/pull/7/merge",
            "GITHUB_BASE_REF": "master",
        }
    )

    assert settings.workspace == "/ws"
    assert settings.token == "t0k"
    assert settings.event_name == "pull_request"
    assert settings.base_ref == "master"


def test_actrun_variables_win():
    settings = Settings.from_env(
        {
            "GITHUB_WORKSPACE": "/ws",
            "ACTRUN_WORKSPACE": "/local",
            "GITHUB_TOKEN": "ci",
            "ACTRUN_TOKEN": "mine",
            "ACTRUN_OUTPUT_LIMIT": "120",
            "ACTRUN_REMOTE": "upstream",
        }
    )

    assert settings.workspace == "/local"
    assert settings.token == "mine"
    assert settings.output_limit == 120
    assert settings.remote == "upstream"


@pytest.mark.parametrize("raw", ["lots", "-5"])
def test_unusable_output_limit_is_a_config_error(raw):
    with pytest.raises(ConfigError) as exc:
        Settings.from_env({"ACTRUN_OUTPUT_LIMIT": raw})

    assert "ACTRUN_OUTPUT_LIMIT" in str(exc.value)
