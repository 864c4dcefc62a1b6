"""setup_logging 单元测试"""

import json
import logging

import pytest
import structlog
from depsea.logging_config import setup_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    noisy = {name: logging.getLogger(name).level for name in ("httpx", "httpcore")}
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, noisy_level in noisy.items():
        logging.getLogger(name).setLevel(noisy_level)
    structlog.reset_defaults()


def test_json_output_to_stderr(restore_logging, capsys):
    """json 模式输出单行 JSON 到 stderr"""
    setup_logging("json", "INFO")
    structlog.get_logger("depsea.test").info("download_started", total=3)

    captured = capsys.readouterr()
    assert captured.out == ""
    record = json.loads(captured.err.strip().splitlines()[-1])
    assert record["event"] == "download_started"
    assert record["total"] == 3
    assert record["level"] == "info"


def test_level_filters(restore_logging, capsys):
    """低于配置级别的日志被过滤"""
    setup_logging("json", "WARNING")
    log = structlog.get_logger("depsea.test")
    log.info("hidden")
    log.warning("shown")

    err = capsys.readouterr().err
    assert "hidden" not in err
    assert "shown" in err


def test_unknown_level_falls_back_to_warning(restore_logging):
    setup_logging("dev", "CHATTY")
    assert logging.getLogger().level == logging.WARNING


def test_http_client_loggers_quieted(restore_logging, capsys):
    """DEBUG 级别下 httpx 的逐请求日志仍被压到 WARNING"""
    setup_logging("json", "DEBUG")
    logging.getLogger("httpx").info("HTTP Request: GET https://registry.npmjs.org/a")
    structlog.get_logger("depsea.test").debug("artifact_skipped", filename="a-1.0.0.tgz")

    err = capsys.readouterr().err
    assert "HTTP Request" not in err
    assert "artifact_skipped" in err
    assert logging.getLogger("httpx").level == logging.WARNING
