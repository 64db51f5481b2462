"""PetStore — sqlite persistence of the JSON pet record."""

import json
from dataclasses import replace
from datetime import timedelta

import pytest

from oosan.pet import FIRST_DAY_LOG, HEALTHY, INITIAL_LOG, WEAK, create_initial_state
from oosan.pet_store import DEFAULT_KEY, PetStore


@pytest.fixture
def store(tmp_path):
    store = PetStore(tmp_path / "pets.sqlite")
    yield store
    store.close()


def insert_raw(store, key, payload):
    store.connection.execute(
        "INSERT INTO pet_states (key, state, updated_at) VALUES (?, ?, ?)",
        (key, payload, "2024-01-01T00:00:00+00:00"),
    )
    store.connection.commit()


def test_load_missing_returns_none(store):
    assert store.load() is None
    assert store.load("guild:1") is None


def test_save_then_load(store, today):
    state = replace(create_initial_state(today), size_factor=1.25, condition=WEAK)
    assert store.save(state, "guild:1")
    assert store.load("guild:1") == state
    assert store.load() is None


def test_save_overwrites(store, today):
    store.save(create_initial_state(today))
    updated = replace(create_initial_state(today), latest_log="updated")
    store.save(updated)
    assert store.load().latest_log == "updated"


def test_persisted_layout(store, today):
    store.save(create_initial_state(today))
    row = store.connection.execute(
        "SELECT state FROM pet_states WHERE key = ?", (DEFAULT_KEY,)
    ).fetchone()
    assert json.loads(row["state"]) == {
        "startDate": today.isoformat(),
        "lastVisitDate": today.isoformat(),
        "lastGrowthDate": today.isoformat(),
        "sizeFactor": 1.0,
        "condition": "healthy",
        "latestLog": INITIAL_LOG,
    }


def test_unparseable_record_reads_as_absent(store):
    insert_raw(store, DEFAULT_KEY, "{not json")
    assert store.load() is None


def test_incomplete_record_reads_as_absent(store):
    insert_raw(store, DEFAULT_KEY, json.dumps({"startDate": "2024-01-01"}))
    assert store.load() is None


def test_reopen_keeps_state(tmp_path, today):
    path = tmp_path / "pets.sqlite"
    first = PetStore(path)
    first.save(create_initial_state(today), "guild:7")
    first.close()
    second = PetStore(path)
    assert second.load("guild:7") == create_initial_state(today)
    second.close()


def test_delete(store, today):
    store.save(create_initial_state(today))
    assert store.delete() is True
    assert store.load() is None
    assert store.delete() is False


def test_activate_creates_initial_state(store, today, fixed_random):
    result = store.activate(today=today, rng=fixed_random(0.5))
    assert result.state.start_date == today
    assert result.state.condition == HEALTHY
    assert result.state.latest_log == FIRST_DAY_LOG
    assert store.load() == result.state


def test_activate_replaces_malformed_state(store, today, fixed_random):
    insert_raw(store, DEFAULT_KEY, "[]")
    result = store.activate(today=today, rng=fixed_random(0.5))
    assert result.state == replace(create_initial_state(today), latest_log=FIRST_DAY_LOG)


def test_activate_applies_elapsed_days(store, today, fixed_random):
    earlier = today - timedelta(days=3)
    store.save(create_initial_state(earlier), "guild:2")
    result = store.activate("guild:2", today=today, rng=fixed_random(0.0))
    assert result.state.condition == WEAK
    assert result.state.last_visit_date == today
    assert store.load("guild:2").condition == WEAK


def test_activate_twice_same_day(store, today, fixed_random):
    store.save(create_initial_state(today - timedelta(days=2)))
    first = store.activate(today=today, rng=fixed_random(0.5)).state
    second = store.activate(today=today, rng=fixed_random(0.9)).state
    assert second.size_factor == first.size_factor
    assert store.load() == second


def test_activate_survives_storage_failure(tmp_path, today, fixed_random, caplog):
    store = PetStore(tmp_path / "pets.sqlite")
    store.close()
    result = store.activate(today=today, rng=fixed_random(0.5))
    assert result.state.condition == HEALTHY
    assert result.state.latest_log == FIRST_DAY_LOG
    assert "Failed to save" in caplog.text


def test_save_reports_failure(tmp_path, today):
    store = PetStore(tmp_path / "pets.sqlite")
    store.close()
    assert store.save(create_initial_state(today)) is False
    assert store.delete() is False


@pytest.mark.parametrize("size", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_size_reads_as_absent(store, today, size):
    payload = json.dumps(create_initial_state(today).to_record())
    insert_raw(store, DEFAULT_KEY, payload.replace('"sizeFactor": 1.0', f'"sizeFactor": {size}'))
    assert store.load() is None
