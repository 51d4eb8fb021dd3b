"""Tests for the schema management CLI."""

import manage
import pytest


class _RecordingDomain:
    def __init__(self, name):
        self.name = name
        self.initialized = False

    def init(self):
        self.initialized = True


@pytest.fixture
def recorded(monkeypatch):
    calls = []
    domains = {name: _RecordingDomain(name) for name in manage.DOMAIN_NAMES}

    monkeypatch.setattr(manage, "_domains", lambda names: {n: domains[n] for n in (names or manage.DOMAIN_NAMES)})
    monkeypatch.setattr(manage, "setup_db", lambda domain: calls.append(("setup", domain.name)))
    monkeypatch.setattr(manage, "drop_db", lambda domain: calls.append(("drop", domain.name)))
    return calls, domains


def test_setup_db_covers_every_domain_by_default(recorded):
    calls, domains = recorded

    manage.main(["setup-db"])

    assert calls == [("setup", "shipping"), ("setup", "returns")]
    assert all(domain.initialized for domain in domains.values())


def test_drop_db_for_one_domain(recorded):
    calls, domains = recorded

    manage.main(["drop-db", "--domain", "returns"])

    assert calls == [("drop", "returns")]
    assert domains["shipping"].initialized is False


def test_unknown_domain_is_rejected(recorded):
    with pytest.raises(SystemExit) as exc:
        manage.main(["setup-db", "--domain", "ordering"])
    assert exc.value.code == 2


def test_command_is_required():
    with pytest.raises(SystemExit) as exc:
        manage.main([])
    assert exc.value.code == 2
