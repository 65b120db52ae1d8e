"""Environment settings and loguru sink configuration."""
from pathlib import Path
import json
import logging
import sys

import pytest
from loguru import logger
from pydantic import ValidationError as SettingsValidationError

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

from utils.logging_config import configure_logging, reset_logging  # type: ignore
from utils.settings import Settings, get_settings  # type: ignore


@pytest.fixture(autouse=True)
def _isolated_logging():
    get_settings.cache_clear()
    reset_logging()
    yield
    reset_logging()
    get_settings.cache_clear()
    logger.remove()
    logger.add(sys.stderr)
    logging.basicConfig(handlers=[], force=True)


def test_settings_defaults():
    s = Settings()
    assert s.log_level == "INFO"
    assert s.json_logging is False
    assert s.enable_timing is True
    assert s.spatial_index_brute_force_limit == 5000
    assert s.default_preset == "literature_default"


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("LABVIZ_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("LABVIZ_VERBOSE_DETECTOR_LOGS", "true")
    monkeypatch.setenv("LABVIZ_SPATIAL_INDEX_BRUTE_FORCE_LIMIT", "100")
    s = get_settings()
    assert s.log_level == "DEBUG"
    assert s.verbose_detector_logs is True
    assert s.spatial_index_brute_force_limit == 100
    assert get_settings() is s


def test_settings_validation(monkeypatch):
    monkeypatch.setenv("LABVIZ_SPATIAL_INDEX_BRUTE_FORCE_LIMIT", "-1")
    with pytest.raises(SettingsValidationError):
        Settings()


def test_json_logs_are_serialized(capsys):
    configure_logging(json_logs=True, level="INFO")
    logger.info("hello sink")
    err = capsys.readouterr().err.strip().splitlines()
    record = json.loads(err[-1])
    assert record["record"]["message"] == "hello sink"
    assert record["record"]["level"]["name"] == "INFO"


def test_plain_logs_and_level(capsys):
    configure_logging(json_logs=False, level="WARNING")
    logger.info("quiet")
    logger.warning("loud")
    err = capsys.readouterr().err
    assert "quiet" not in err
    assert "loud" in err and "WARNING" in err


def test_configure_is_idempotent(capsys):
    configure_logging(json_logs=False, level="INFO")
    configure_logging(json_logs=True, level="INFO")  # ignored until reset
    logger.info("once")
    err = capsys.readouterr().err.strip().splitlines()
    assert len(err) == 1
    assert not err[0].startswith("{")


def test_stdlib_logging_is_forwarded(capsys):
    configure_logging(json_logs=False, level="INFO")
    logging.getLogger("thirdparty").warning("from stdlib")
    assert "from stdlib" in capsys.readouterr().err
