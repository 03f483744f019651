from __future__ import annotations

import pytest

from pytailor.config import TailorConfig
from pytailor.exceptions import TailorConfigError


def test_from_env_reads_tailor_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TAILOR_API_KEY", "env-key")
    monkeypatch.setenv("TAILOR_PROJECT_ID", "tailor-prod")
    monkeypatch.setenv("TAILOR_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("TAILOR_API_TRACE_ENABLED", "yes")

    config = TailorConfig.from_env()

    assert config.api_key == "env-key"
    assert config.poll_interval == 0.5
    assert config.api_trace_enabled is True
    assert config.documents_root == "projects/tailor-prod/databases/(default)/documents"


def test_overrides_take_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TAILOR_API_KEY", "env-key")
    monkeypatch.setenv("TAILOR_PROJECT_ID", "tailor-prod")
    monkeypatch.setenv("TAILOR_POLL_INTERVAL", "not-a-number")

    config = TailorConfig.from_env(project_id="other", poll_interval=3.0, database="staging")

    assert config.project_id == "other"
    assert config.poll_interval == 3.0
    assert config.documents_root == "projects/other/databases/staging/documents"


def test_missing_required_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TAILOR_API_KEY", raising=False)
    monkeypatch.delenv("TAILOR_PROJECT_ID", raising=False)

    with pytest.raises(TailorConfigError, match="api_key"):
        TailorConfig.from_env()
    with pytest.raises(TailorConfigError, match="project_id"):
        TailorConfig(api_key="k", project_id="")


def test_invalid_numbers_are_config_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TAILOR_POLL_INTERVAL", "soon")

    with pytest.raises(TailorConfigError, match="TAILOR_POLL_INTERVAL"):
        TailorConfig.from_env(api_key="k", project_id="p")
    with pytest.raises(TailorConfigError, match="poll_interval"):
        TailorConfig(api_key="k", project_id="p", poll_interval=0)
