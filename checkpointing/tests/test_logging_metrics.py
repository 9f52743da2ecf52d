"""
Tests for structured logging and Prometheus metrics wiring.
"""

import json
import logging

import pytest
from prometheus_client import REGISTRY
from pythonjsonlogger.json import JsonFormatter

from checkpointing import metrics
from checkpointing.checkpoint import CheckpointStatus, CheckpointStore, RawCheckpoint
from checkpointing.core.errors import IdentityMismatch
from checkpointing.kv import MemoryKVStore
from checkpointing.logging_config import NO_EPOCH, get_logger, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def test_json_logging_carries_epoch(monkeypatch, capsys, restore_root_logger):
    monkeypatch.setenv("CKPT_LOG_FORMAT", "json")
    monkeypatch.setenv("CKPT_LOG_LEVEL", "info")
    setup_logging()

    assert isinstance(logging.getLogger().handlers[0].formatter, JsonFormatter)

    get_logger("checkpointing.test", epoch=42).info("Confirming checkpoint")

    line = capsys.readouterr().err.strip().splitlines()[-1]
    entry = json.loads(line)
    assert entry["message"] == "Confirming checkpoint"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "checkpointing.test"
    assert entry["epoch"] == 42
    assert "timestamp" in entry


def test_text_logging_fills_missing_epoch(monkeypatch, capsys, restore_root_logger):
    monkeypatch.setenv("CKPT_LOG_FORMAT", "text")
    setup_logging()

    logging.getLogger("checkpointing.test").warning("plain record")

    err = capsys.readouterr().err
    assert "plain record" in err
    assert f"[epoch={NO_EPOCH}]" in err


def test_log_level_from_env(monkeypatch, capsys, restore_root_logger):
    monkeypatch.setenv("CKPT_LOG_FORMAT", "text")
    monkeypatch.setenv("CKPT_LOG_LEVEL", "ERROR")
    setup_logging()

    get_logger("checkpointing.test").info("hidden")

    assert "hidden" not in capsys.readouterr().err
    assert logging.getLogger().level == logging.ERROR


def test_metrics_env(monkeypatch):
    monkeypatch.delenv("CKPT_METRICS_ENABLED", raising=False)
    monkeypatch.delenv("CKPT_METRICS_PORT", raising=False)

    assert metrics.metrics_enabled_from_env() is False
    assert metrics.metrics_port_from_env() == 9108

    monkeypatch.setenv("CKPT_METRICS_ENABLED", "TRUE")
    monkeypatch.setenv("CKPT_METRICS_PORT", "9999")

    assert metrics.metrics_enabled_from_env() is True
    assert metrics.metrics_port_from_env() == 9999


def _sample(name, labels=None):
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


def test_store_operations_are_counted():
    metrics.init_metrics()
    metrics.init_metrics()  # second call is a no-op

    created = _sample("ckpt_records_created_total")
    confirmed = _sample("ckpt_status_updates_total", {"status": "CONFIRMED"})
    mismatches = _sample("ckpt_identity_mismatches_total")
    scans = _sample("ckpt_scan_duration_seconds_count", {"status": "UNCHECKPOINTED"})

    store = CheckpointStore(MemoryKVStore())
    ckpt = RawCheckpoint(epoch_num=1, last_commit_hash=b"\x01" * 32)
    store.create(ckpt)
    store.update_status(ckpt, CheckpointStatus.CONFIRMED)
    with pytest.raises(IdentityMismatch):
        store.update_status(RawCheckpoint(epoch_num=1, last_commit_hash=b"\x02" * 32),
                            CheckpointStatus.CONFIRMED)
    store.scan_by_status(CheckpointStatus.UNCHECKPOINTED, lambda r: None)

    assert _sample("ckpt_records_created_total") == created + 1
    assert _sample("ckpt_status_updates_total", {"status": "CONFIRMED"}) == confirmed + 1
    assert _sample("ckpt_identity_mismatches_total") == mismatches + 1
    assert _sample("ckpt_scan_duration_seconds_count", {"status": "UNCHECKPOINTED"}) == scans + 1


def test_start_metrics_server_disabled_is_noop(monkeypatch):
    calls = []
    monkeypatch.setattr(metrics, "start_http_server", lambda *a, **kw: calls.append(a))

    metrics.start_metrics_server(enabled=False, port=9108)

    assert calls == []
