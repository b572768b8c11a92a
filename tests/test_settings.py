# tests/test_settings.py
from __future__ import annotations

import pytest

from parci.errors import ConfigError
from parci.settings import DEFAULT_LOG_DIR, Settings


def test_defaults(tmp_path):
    settings = Settings.from_env({"PARCI_WORKSPACE": str(tmp_path)})
    assert settings.workspace == tmp_path.resolve()
    assert str(settings.log_dir) == DEFAULT_LOG_DIR
    assert settings.shell[0] == "bash"
    assert settings.max_workers is None


def test_max_workers_from_env(tmp_path):
    settings = Settings.from_env({"PARCI_WORKSPACE": str(tmp_path), "PARCI_MAX_WORKERS": "3"})
    assert settings.max_workers == 3


@pytest.mark.parametrize("raw", ["lots", "0", "-2", "1.5"])
def test_bad_max_workers_is_a_config_error(tmp_path, raw):
    with pytest.raises(ConfigError, match="PARCI_MAX_WORKERS must be a positive integer"):
        Settings.from_env({"PARCI_WORKSPACE": str(tmp_path), "PARCI_MAX_WORKERS": raw})
