"""Tests for the command line entry point."""

import json

import pytest

from tftmeta.cli import main
from tftmeta.config import Config

from helpers import provider_match, provider_participant


@pytest.fixture(autouse=True)
def restore_config():
    yield
    Config.reload()


@pytest.fixture
def sqlite_config(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, 'DATABASE_URL', f"sqlite:///{tmp_path}/cli.db")
    monkeypatch.setattr(Config, 'REDIS_URL', None)
    return tmp_path


def test_validate_config_reports_problems(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv('DEFAULT_REGION', 'kr')
    env_file = tmp_path / '.env'
    env_file.write_text("DEFAULT_REGION=mars\n")

    assert main(['validate-config', '--env-file', str(env_file)]) == 1

    assert "DEFAULT_REGION" in capsys.readouterr().err


def test_validate_config_verbose(capsys):
    assert main(['validate-config', '--verbose']) == 0

    out = capsys.readouterr().out
    assert "Configuration is valid" in out
    assert '"environment"' in out


def test_migrate_ingest_and_snapshot(sqlite_config, capsys):
    matches = [
        provider_match(f"KR_{i}", [provider_participant(p) for p in range(1, 9)])
        for i in range(2)
    ]
    data_file = sqlite_config / 'matches.json'
    data_file.write_text(json.dumps(matches))

    assert main(['migrate']) == 0
    assert main(['ingest', str(data_file), '--patch', '15.2c', '--region', 'kr', '--tier', 'CHALLENGER']) == 0
    capsys.readouterr()

    assert main(['snapshot', '--patch', '15.2c', '--region', 'kr', '--tier', 'CHALLENGER']) == 0
    out = capsys.readouterr().out
    snapshot = json.loads(out[out.index('{'):])

    assert snapshot['patch'] == '15.2c'
    assert snapshot['region'] == 'kr'
    assert snapshot['total_games'] == 16
    assert snapshot['top_traits'][0]['play_rate'] == 100.0


def test_ingest_rejects_unknown_region(sqlite_config, capsys):
    data_file = sqlite_config / 'matches.json'
    data_file.write_text("[]")

    assert main(['ingest', str(data_file), '--patch', '15.2c', '--region', 'mars', '--tier', 'CHALLENGER']) == 1
    assert "Error" in capsys.readouterr().err
