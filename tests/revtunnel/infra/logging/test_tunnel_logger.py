import json
import logging

from dependency_injector import providers

from revtunnel.infra.logging import TunnelLogger, build_human_console_handler, build_json_file_handler


def _read_jsonl(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def test_build_json_file_handler_creates_parent(tmp_path):
    log_file = tmp_path / "nested" / "tunnel.jsonl"

    handler = build_json_file_handler(log_file, level=logging.DEBUG)

    assert handler.level == logging.DEBUG
    assert log_file.parent.is_dir()
    handler.close()


def test_build_human_console_handler():
    handler = build_human_console_handler(level=logging.WARNING)

    assert handler.level == logging.WARNING
    assert handler.formatter is not None


def test_tunnel_logger_writes_structured_events(tmp_path):
    """Keyword fields become top-level JSON keys."""
    provider = providers.Resource(
        TunnelLogger,
        logs_dir=tmp_path,
        file_name="events.jsonl",
        logger_name="revtunnel.test.events",
        level="DEBUG",
    )
    logger = provider()

    logger.info("tunnel_open", type="tunnel_open", proxy_host="h:8123", remote_port=8123)
    logger.warning("tunnel_escalated", type="tunnel_escalated", grace_period=3.0)
    provider.shutdown()

    entries = _read_jsonl(tmp_path / "events.jsonl")
    assert [e["message"] for e in entries] == ["tunnel_open", "tunnel_escalated"]
    assert entries[0]["level"] == "INFO"
    assert entries[0]["logger"] == "revtunnel.test.events"
    assert entries[0]["proxy_host"] == "h:8123"
    assert entries[0]["remote_port"] == 8123
    assert entries[1]["grace_period"] == 3.0


def test_tunnel_logger_respects_level(tmp_path):
    provider = providers.Resource(
        TunnelLogger,
        logs_dir=tmp_path,
        file_name="events.jsonl",
        logger_name="revtunnel.test.level",
        level="WARNING",
    )
    logger = provider()

    logger.debug("tunnel_status", line="debug1: noise")
    logger.info("tunnel_open")
    logger.error("tunnel_open_failed", error="refused")
    provider.shutdown()

    entries = _read_jsonl(tmp_path / "events.jsonl")
    assert [e["message"] for e in entries] == ["tunnel_open_failed"]


def test_child_module_payload_reaches_file(tmp_path):
    """Transport module loggers log through the package logger's handlers."""
    provider = providers.Resource(
        TunnelLogger,
        logs_dir=tmp_path,
        file_name="events.jsonl",
        logger_name="revtunnel.test.parent",
    )
    provider()

    logging.getLogger("revtunnel.test.parent.transport").info(
        "tunnel_exec", extra={"payload": {"type": "tunnel_exec", "cmd": "ssh -N"}}
    )
    provider.shutdown()

    entries = _read_jsonl(tmp_path / "events.jsonl")
    assert entries[0]["message"] == "tunnel_exec"
    assert entries[0]["payload"] == {"type": "tunnel_exec", "cmd": "ssh -N"}


def test_no_file_without_file_name(tmp_path):
    provider = providers.Resource(
        TunnelLogger,
        logs_dir=tmp_path,
        file_name=None,
        logger_name="revtunnel.test.nofile",
    )
    logger = provider()

    logger.info("tunnel_open")
    provider.shutdown()

    assert list(tmp_path.iterdir()) == []


def test_reinit_closes_previous_file_handler(tmp_path):
    """A second init on the same logger releases the first log file."""
    first = providers.Resource(
        TunnelLogger,
        logs_dir=tmp_path,
        file_name="first.jsonl",
        logger_name="revtunnel.test.reinit",
    )
    first()
    stale = logging.getLogger("revtunnel.test.reinit").handlers[0]

    second = providers.Resource(
        TunnelLogger,
        logs_dir=tmp_path,
        file_name="second.jsonl",
        logger_name="revtunnel.test.reinit",
    )
    logger = second()
    logger.info("tunnel_open")

    assert stale.stream is None
    assert logging.getLogger("revtunnel.test.reinit").handlers != [stale]
    second.shutdown()
    assert _read_jsonl(tmp_path / "second.jsonl")[0]["message"] == "tunnel_open"
    assert _read_jsonl(tmp_path / "first.jsonl") == []
