"""Shared fixtures for gravapi tests."""

from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from gravapi import core, pipeline
from gravapi.executor import CommandRunner


class FakeRunner(CommandRunner):
    """Scripted stand-in for SubprocessRunner.

    execute() returns ``report`` and, when ``response_body`` is set, writes
    it to the path after ``-o`` like httpstat does. pipe() returns
    ``selected``. Every call is recorded.
    """

    def __init__(
        self,
        report="HTTP/1.1 200 OK\n\nDNS Lookup   TCP Connection\n[ 5ms ]     [ 10ms ]",
        selected="",
        response_body=None,
        execute_error=None,
        pipe_error=None,
    ):
        self.report = report
        self.selected = selected
        self.response_body = response_body
        self.execute_error = execute_error
        self.pipe_error = pipe_error
        self.calls = []
        self.pipe_calls = []

    @property
    def invocations(self):
        return len(self.calls) + len(self.pipe_calls)

    @property
    def last_args(self):
        return self.calls[-1][1]

    def execute(self, name, args, verbose=False):
        self.calls.append((name, list(args)))
        if self.execute_error is not None:
            raise self.execute_error
        if self.response_body is not None and "-o" in args:
            Path(args[args.index("-o") + 1]).write_text(self.response_body)
        return self.report

    def pipe(self, producer, consumer, verbose=False):
        self.pipe_calls.append((list(producer), list(consumer)))
        if self.pipe_error is not None:
            raise self.pipe_error
        return self.selected


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_runner():
    return FakeRunner()


@pytest.fixture(autouse=True)
def config_file(tmp_path, monkeypatch):
    """Point the config store at a temp home directory."""
    fake_home = tmp_path / "fake_home"
    fake_home.mkdir()
    path = fake_home / core.CONFIG_FILENAME
    monkeypatch.setattr(core, "CONFIG_FILE", path)
    return path


@pytest.fixture(autouse=True)
def response_file(tmp_path, monkeypatch):
    """Keep the response artifact out of the real temp directory."""
    path = tmp_path / pipeline.RESPONSE_FILENAME
    monkeypatch.setattr(pipeline, "RESPONSE_FILE", path)
    return path


@pytest.fixture
def write_config(config_file):
    def _write(url="https://api.example.com", token="abc"):
        config_file.write_text(yaml.safe_dump({"url": url, "token": token}))
        return config_file

    return _write
