import pytest

from core import registry as player_registry
from core.exceptions import (
    GameAlreadyInProgress,
    RegistryAlreadyInitialized,
    RegistryInconsistency,
    RegistryNotInitialized,
    TicTacToeLedgerException,
)
from models import Match


def _add_match(db, number):
    db.add(Match(number=number, player_one="A"))
    db.flush()


def test_initialize_sets_counter_to_one(ledger):
    registry = player_registry.get_registry(ledger)
    assert registry.match_count == 1
    assert registry.fee_percent == 5
    assert registry.fixed_bet == 100
    assert registry.owner == "owner"
    assert registry.fee_balance == 0


def test_initialize_twice_fails(ledger):
    with pytest.raises(RegistryAlreadyInitialized):
        player_registry.initialize_registry(ledger)


def test_initialize_defaults_from_settings(db):
    registry = player_registry.initialize_registry(db)
    assert registry.match_count == 1
    assert registry.fee_percent == 5
    assert registry.owner == "ledger-owner"
    assert registry.charge_fee_on_waiting_cancel is False


def test_get_registry_before_initialize(db):
    with pytest.raises(RegistryNotInitialized):
        player_registry.get_registry(db)


def test_lookup_after_register(ledger):
    _add_match(ledger, 1)
    player_registry.register(ledger, "A", 1)
    assert player_registry.lookup(ledger, "A") == 1
    assert player_registry.lookup(ledger, "B") is None


def test_register_duplicate_player_rejected(ledger):
    _add_match(ledger, 1)
    _add_match(ledger, 2)
    player_registry.register(ledger, "A", 1)
    with pytest.raises(GameAlreadyInProgress):
        player_registry.register(ledger, "A", 2)
    assert player_registry.active_players(ledger) == [("A", 1)]


def test_unregister_all_removes_every_player_of_match(ledger):
    _add_match(ledger, 1)
    _add_match(ledger, 2)
    player_registry.register(ledger, "A", 1)
    player_registry.register(ledger, "B", 1)
    player_registry.register(ledger, "C", 2)

    removed = player_registry.unregister_all(ledger, 1)

    assert sorted(removed) == ["A", "B"]
    assert player_registry.lookup(ledger, "A") is None
    assert player_registry.lookup(ledger, "B") is None
    assert player_registry.lookup(ledger, "C") == 2


def test_unregister_all_without_entries_is_internal_error(ledger):
    with pytest.raises(RegistryInconsistency) as exc_info:
        player_registry.unregister_all(ledger, 42)
    # Not a caller-facing error
    assert not isinstance(exc_info.value, TicTacToeLedgerException)
    assert exc_info.value.match_number == 42


def test_player_can_register_again_after_unregister(ledger):
    _add_match(ledger, 1)
    _add_match(ledger, 2)
    player_registry.register(ledger, "A", 1)
    player_registry.unregister_all(ledger, 1)
    player_registry.register(ledger, "A", 2)
    assert player_registry.lookup(ledger, "A") == 2
