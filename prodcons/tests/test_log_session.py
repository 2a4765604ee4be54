"""
Tests for the explicit loguru-backed logging handle.
"""
import io
import os
import re

import pytest

from prodcons.core.log_session import LogSession, loguru_level

LINE_RE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[(DEBUG|INFO|WARN|ERROR)\] .+$")


def test_writes_console_and_file(tmp_path):
    log_file = tmp_path / "app.log"
    console = io.StringIO()
    with LogSession("INFO", str(log_file), console=console) as session:
        session.log("INFO", "hello")
        session.log("WARN", "careful")
        session.log("DEBUG", "hidden")
        session.bind(worker="Producer-1").error("bad")

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert all(LINE_RE.match(line) for line in lines)
    assert lines[0].endswith("[INFO] hello")
    assert lines[1].endswith("[WARN] careful")
    assert lines[2].endswith("[ERROR] bad")
    assert "hello" in console.getvalue()
    assert "hidden" not in console.getvalue()


def test_debug_level_lets_everything_through(tmp_path):
    log_file = tmp_path / "debug.log"
    with LogSession("DEBUG", str(log_file), console=io.StringIO()) as session:
        session.log("DEBUG", "verbose")
    assert "[DEBUG] verbose" in log_file.read_text(encoding="utf-8")


def test_file_is_appended(tmp_path):
    log_file = tmp_path / "app.log"
    for msg in ("first", "second"):
        with LogSession("INFO", str(log_file), console=io.StringIO()) as session:
            session.log("INFO", msg)
    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert [line.rsplit(" ", 1)[-1] for line in lines] == ["first", "second"]


def test_close_releases_sinks(tmp_path):
    log_file = tmp_path / "app.log"
    session = LogSession("INFO", str(log_file), console=io.StringIO())
    session.close()
    session.close()
    assert session.closed
    session.log("INFO", "after close")
    assert "after close" not in log_file.read_text(encoding="utf-8")


def test_sessions_are_isolated(tmp_path):
    a_file, b_file = tmp_path / "a.log", tmp_path / "b.log"
    with LogSession("INFO", str(a_file), console=io.StringIO()) as a, \
            LogSession("INFO", str(b_file), console=io.StringIO()) as b:
        a.log("INFO", "from-a")
        b.log("INFO", "from-b")
    assert "from-b" not in a_file.read_text(encoding="utf-8")
    assert "from-a" not in b_file.read_text(encoding="utf-8")


def test_unopenable_file_falls_back_to_console(tmp_path):
    console = io.StringIO()
    # a directory cannot be opened as a log file
    with LogSession("INFO", str(tmp_path), console=console) as session:
        assert session.log_file is None
        session.log("INFO", "still logging")
    out = console.getvalue()
    assert "Failed to open log file" in out
    assert "still logging" in out


def test_no_file_sink():
    console = io.StringIO()
    with LogSession("ERROR", None, console=console) as session:
        session.log("INFO", "quiet")
        session.log("ERROR", "loud")
    assert "quiet" not in console.getvalue()
    assert "[ERROR] loud" in console.getvalue()


@pytest.mark.parametrize("level,expected", [("warn", "WARNING"), ("INFO", "INFO"), ("Debug", "DEBUG")])
def test_loguru_level_mapping(level, expected):
    assert loguru_level(level) == expected


def test_unknown_level_rejected():
    with pytest.raises(ValueError):
        LogSession("TRACE", None, console=io.StringIO())


@pytest.mark.skipif(not os.access("/dev/full", os.W_OK), reason="needs a device that fails every write")
def test_failing_file_writes_never_reach_caller():
    console = io.StringIO()
    # /dev/full opens fine but every write raises ENOSPC
    session = LogSession("INFO", "/dev/full", console=console)
    assert session.log_file == "/dev/full"
    for i in range(3):
        session.log("INFO", f"message {i}")
        session.bind(worker="Producer-1").error(f"problem {i}")
    session.close()
    assert session.closed
    out = console.getvalue()
    assert "message 2" in out
    assert "problem 2" in out
