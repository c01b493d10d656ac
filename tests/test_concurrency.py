import threading
import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base, configure_sqlite
import models  # noqa: F401
from models import Match, MatchStatus, RegistryEntry, ACTIVE_STATUSES
from core import registry as player_registry
from core.escrow import EscrowEngine
from core.exceptions import GameAlreadyInProgress
from core.match_manager import MatchManager
from services import ledger_service


@pytest.fixture()
def file_sessions(tmp_path):
    """Sessions on a file-backed SQLite database, one connection per thread"""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'ledger.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    configure_sqlite(file_engine)
    Base.metadata.create_all(bind=file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

    db = factory()
    try:
        player_registry.initialize_registry(db, fee_percent=5, fixed_bet=100, owner="owner")
        for identity in ("A", "B", "C"):
            ledger_service.deposit(identity, 1000, db)
        db.commit()
        MatchManager.create_or_join(db, "A")
    finally:
        db.close()

    yield factory
    file_engine.dispose()


@pytest.fixture()
def slow_stake(monkeypatch):
    """Hold every stake collection long enough for a second joiner to read the match"""
    original = EscrowEngine.collect_stake

    def delayed(db, registry, match, player):
        time.sleep(0.2)
        return original(db, registry, match, player)

    monkeypatch.setattr(EscrowEngine, "collect_stake", staticmethod(delayed))


def _join_concurrently(factory, players):
    results, errors = {}, []
    start = threading.Barrier(len(players))

    def join(index, player):
        db = factory()
        try:
            start.wait()
            match, created = MatchManager.create_or_join(db, player)
            results[index] = (player, match.number, created)
        except Exception as e:
            errors.append(e)
        finally:
            db.close()

    threads = [
        threading.Thread(target=join, args=(index, player))
        for index, player in enumerate(players)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return list(results.values()), errors


def _assert_registry_consistent(db):
    for entry in db.query(RegistryEntry).all():
        match = db.get(Match, entry.match_number)
        assert match.status in ACTIVE_STATUSES
        assert entry.player in match.players


def test_concurrent_joins_fill_one_match_each(file_sessions, slow_stake):
    results, errors = _join_concurrently(file_sessions, ["B", "C"])
    assert errors == []
    assert len(results) == 2

    joined = [player for player, number, created in results if not created]
    opened = [player for player, number, created in results if created]
    assert len(joined) == 1 and len(opened) == 1

    db = file_sessions()
    try:
        first = db.get(Match, 1)
        assert first.status == MatchStatus.IN_PROGRESS
        assert first.players == ["A", joined[0]]
        assert first.pot == 200

        second = db.get(Match, 2)
        assert second.status == MatchStatus.WAITING
        assert second.player_one == opened[0]
        assert second.pot == 100

        assert dict(player_registry.active_players(db)) == {"A": 1, joined[0]: 1, opened[0]: 2}
        assert player_registry.get_registry(db).match_count == 2
        # Every debited stake sits in exactly one pot
        balances = sum(ledger_service.get_balance(p, db) for p in ("A", "B", "C"))
        assert balances + first.pot + second.pot == 3000
        _assert_registry_consistent(db)
    finally:
        db.close()


def test_concurrent_duplicate_join_registers_once(file_sessions, slow_stake):
    results, errors = _join_concurrently(file_sessions, ["B", "B"])

    assert len(results) == 1
    assert len(errors) == 1
    assert isinstance(errors[0], GameAlreadyInProgress)

    db = file_sessions()
    try:
        assert ledger_service.get_balance("B", db) == 900
        assert db.get(Match, 1).players == ["A", "B"]
        assert db.get(Match, 2) is None
        _assert_registry_consistent(db)
    finally:
        db.close()
