"""Tests for configuration loading and command-line handling."""
import pytest

from logstash_exporter.config import Config, load_config, split_listen_address
from logstash_exporter.main import build_exporters, cli_overrides, parse_args


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LOGSTASH_HOSTS", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return str(path)


def test_defaults():
    """Defaults mirror the classic exporter flags."""
    config = load_config()
    assert isinstance(config, Config)
    assert config.logstash.hosts == ["localhost:9600"]
    assert config.logstash.timeout_s == 5.0
    assert config.web.listen_address == ":9304"
    assert config.web.telemetry_path == "/metrics"
    assert config.global_.namespace == "logstash"
    assert config.global_.field_markers == ["patterns_per_field"]


def test_yaml_file(tmp_path):
    path = write_config(tmp_path, """
global:
  log_level: DEBUG
  max_depth: 10
logstash:
  hosts: [ls1:9600, ls2:9600]
  timeout_s: 2.5
web:
  listen_address: "127.0.0.1:9999"
""")
    config = load_config(path)
    assert config.global_.log_level == "DEBUG"
    assert config.global_.max_depth == 10
    assert config.logstash.hosts == ["ls1:9600", "ls2:9600"]
    assert config.logstash.timeout_s == 2.5
    assert config.web.bind() == ("127.0.0.1", 9999)


def test_empty_file(tmp_path):
    config = load_config(write_config(tmp_path, ""))
    assert config.logstash.hosts == ["localhost:9600"]


def test_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/config.yaml")


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LOGSTASH_HOSTS", "a:1, b:2")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    config = load_config(write_config(tmp_path, "logstash:\n  hosts: [x:1]\n"))
    assert config.logstash.hosts == ["a:1", "b:2"]
    assert config.global_.log_level == "warning"


def test_cli_overrides_win(monkeypatch):
    monkeypatch.setenv("LOGSTASH_HOSTS", "env:1")
    args = parse_args([
        "--logstash.host", "cli1:9600",
        "--logstash.host", "cli2:9600",
        "--logstash.timeout", "1.5",
        "--web.listen-address", ":9400",
        "--web.telemetry-path", "/stats",
    ])
    config = load_config(args.config, overrides=cli_overrides(args))
    assert config.logstash.hosts == ["cli1:9600", "cli2:9600"]
    assert config.logstash.timeout_s == 1.5
    assert config.web.bind() == ("0.0.0.0", 9400)
    assert config.web.telemetry_path == "/stats"


def test_no_flags_no_overrides():
    assert cli_overrides(parse_args([])) == {}


@pytest.mark.parametrize("raw", [
    {"logstash": {"hosts": []}},
    {"logstash": {"hosts": ["a:1", "a:1"]}},
    {"logstash": {"timeout_s": 0}},
    {"web": {"telemetry_path": "metrics"}},
    {"global": {"namespace": "bad-name"}},
    {"global": {"max_depth": 0}},
])
def test_validation_errors(raw):
    with pytest.raises(ValueError):
        load_config(overrides=raw)


def test_split_listen_address():
    assert split_listen_address(":9304") == ("0.0.0.0", 9304)
    assert split_listen_address("localhost:80") == ("localhost", 80)
    assert split_listen_address("[::1]:9304") == ("::1", 9304)
    with pytest.raises(ValueError):
        split_listen_address("9304")
    with pytest.raises(ValueError):
        split_listen_address("host:http")


def test_build_exporters_single_host():
    registry, exporters = build_exporters(load_config())
    assert len(exporters) == 1
    assert exporters[0].labels == {}
    assert exporters[0].fetcher.uri == "http://localhost:9600/_node/stats"


def test_build_exporters_multi_host():
    config = load_config(overrides={"logstash": {"hosts": ["a:1", "b:2"], "timeout_s": 3}})
    registry, exporters = build_exporters(config)
    assert [e.labels for e in exporters] == [{"instance": "a:1"}, {"instance": "b:2"}]
    assert all(e.fetcher.timeout == 3.0 for e in exporters)
