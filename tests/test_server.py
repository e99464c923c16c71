import logging

import pytest

from taskboard.config import ConfigError
from taskboard.logging_setup import _ThirdPartyNoiseFilter
from taskboard.server import _process_port


def _record(name, level):
    return logging.LogRecord(name, level, __file__, 1, "message", None, None)


def test_noise_filter_keeps_service_logs():
    noise_filter = _ThirdPartyNoiseFilter()

    assert noise_filter.filter(_record("taskboard.tasks", logging.DEBUG))
    assert noise_filter.filter(_record("uvicorn.access", logging.INFO))


def test_noise_filter_quiets_third_party_logs():
    noise_filter = _ThirdPartyNoiseFilter()

    assert not noise_filter.filter(_record("httpx", logging.INFO))
    assert noise_filter.filter(_record("httpx", logging.WARNING))
    assert not noise_filter.filter(_record("py.warnings", logging.WARNING))


def test_process_port_parses_valid_port():
    assert _process_port("18170") == 18170


@pytest.mark.parametrize("raw", ["http", "0", "70000"])
def test_process_port_rejects_invalid_values(raw):
    with pytest.raises(ConfigError):
        _process_port(raw)
