import logging

import pytest
from fastapi.testclient import TestClient

from api import dependencies
from api.main import create_app
from services.log_config_store import LogConfigStore
from shared.config_schema import AppConfig, LoggingConfig


@pytest.fixture
def overridden_app(stub_subsystem, tmp_path):
    """App wired to a stub subsystem without running the lifespan."""

    app = create_app()
    store = LogConfigStore(stub_subsystem, snapshot_timeout=0.5)
    log_path = tmp_path / "fe.warn.log"
    app.dependency_overrides[dependencies.get_log_config_store] = lambda: store
    app.dependency_overrides[dependencies.get_warn_log_path] = lambda: str(log_path)
    return app, log_path


def test_end_to_end_add_verbose_and_tail(tmp_path, restore_logging):
    conf = AppConfig(logging=LoggingConfig(level="WARN", sys_log_dir=str(tmp_path), verbose_modules=["topicA"]))
    lines = [f"W 2024-01-01 line {i}" for i in range(9)] + ["<script>alert(1)</script> & friends"]

    with TestClient(create_app(conf)) as client:
        with (tmp_path / "fe.warn.log").open("a", encoding="utf-8") as f:
            f.write("\n".join(lines) + "\n")

        response = client.get("/log", params={"add_verbose": "topicB"})

    assert response.status_code == 200
    body = response.text
    assert "Level: WARN<br/>" in body
    assert "Verbose Names: topicA,topicB<br/>" in body
    assert "Audit Names: <br/>" in body
    assert f"Log path is: {tmp_path / 'fe.warn.log'}" in body

    positions = [body.index(line) for line in lines[:9]]
    assert positions == sorted(positions)
    assert "&lt;script&gt;alert(1)&lt;/script&gt; &amp; friends" in body
    assert "<script>alert(1)</script>" not in body
    assert logging.getLogger("topicB").level == logging.DEBUG


def test_page_without_edit_shows_snapshot(overridden_app, stub_subsystem):
    app, log_path = overridden_app
    log_path.write_text("only line\n", encoding="utf-8")

    response = TestClient(app).get("/log")

    assert response.status_code == 200
    assert "Verbose Names: topicA<br/>" in response.text
    assert 'name="add_verbose"' in response.text
    assert 'name="del_verbose"' in response.text
    assert "Showing last 10 bytes of log" in response.text
    assert stub_subsystem.set_calls == []


def test_delete_verbose(overridden_app, stub_subsystem):
    app, _ = overridden_app

    response = TestClient(app).get("/log", params={"del_verbose": " topicA "})

    assert "Verbose Names: <br/>" in response.text
    assert stub_subsystem.set_calls == [[]]


def test_same_name_added_and_deleted(overridden_app, stub_subsystem):
    app, _ = overridden_app

    response = TestClient(app).get("/log", params={"add_verbose": "X", "del_verbose": "X"})

    assert "Verbose Names: topicA<br/>" in response.text


def test_request_values_are_logged(overridden_app, caplog):
    app, _ = overridden_app

    with caplog.at_level(logging.INFO, logger="api.routes.log"):
        TestClient(app).get("/log", params={"add_verbose": "topicB"})

    messages = [r.message for r in caplog.records if r.name == "api.routes.log"]
    assert "add verbose name: topicB, del verbose name: None" in messages


def test_missing_log_file_renders_message(overridden_app):
    app, log_path = overridden_app

    response = TestClient(app).get("/log")

    assert response.status_code == 200
    assert f"Couldn&#39;t open log file: {log_path}" in response.text
    assert "Verbose Names: topicA<br/>" in response.text


def test_unreadable_log_renders_message(overridden_app, tmp_path):
    app, _ = overridden_app
    app.dependency_overrides[dependencies.get_warn_log_path] = lambda: str(tmp_path)

    response = TestClient(app).get("/log")

    assert response.status_code == 200
    assert f"Failed to read log file: {tmp_path}" in response.text


def test_config_unavailable_renders_error_block(overridden_app, stub_subsystem):
    app, log_path = overridden_app
    stub_subsystem.read_error = OSError("subsystem down")
    log_path.write_text("still shown\n", encoding="utf-8")

    response = TestClient(app).get("/log")

    assert response.status_code == 200
    assert "Failed to get log configuration: subsystem down" in response.text
    assert "Verbose Names" not in response.text
    assert "still shown" in response.text


def test_update_failure_reports_old_configuration(overridden_app, stub_subsystem):
    app, _ = overridden_app
    stub_subsystem.write_error = ValueError("invalid logger name: '<b>x</b>'")

    response = TestClient(app).get("/log", params={"add_verbose": "<b>x</b>"})

    assert response.status_code == 200
    assert "Failed to update verbose names" in response.text
    assert "&lt;b&gt;x&lt;/b&gt;" in response.text
    assert "<b>x</b>" not in response.text
    assert "Verbose Names: topicA<br/>" in response.text


def test_store_not_initialised_returns_503():
    dependencies.set_log_config_store(None)

    response = TestClient(create_app()).get("/log")

    assert response.status_code == 503
    assert response.json()["code"] == "503"


def test_root_is_not_accepted_as_verbose_name(tmp_path, restore_logging):
    conf = AppConfig(logging=LoggingConfig(level="WARN", sys_log_dir=str(tmp_path)))

    with TestClient(create_app(conf)) as client:
        added = client.get("/log", params={"add_verbose": "root"})
        root_level_after_add = logging.getLogger().level
        deleted = client.get("/log", params={"del_verbose": "root"})

    assert added.status_code == 200
    assert "Failed to update verbose names" in added.text
    assert "Level: WARN<br/>" in added.text
    assert "Verbose Names: <br/>" in added.text
    assert root_level_after_add == logging.WARNING
    assert deleted.status_code == 200
    assert logging.getLogger().level == logging.WARNING
