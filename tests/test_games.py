import pytest
import anyio
from datetime import datetime, timezone
from sqlmodel import Session, select
from sqlalchemy import func
from guessdb import crud, models
from guessdb.errors import NotFound
from guessdb.init_db import create_db_engine


def make_account(db, username="alice"):
    return anyio.run(db.create_account, username, "pw1")


def test_record_game_then_get_game(db):
    alice = make_account(db)
    rec = db.record_game(models.NewGame(secret=42, account_id=alice.id, guesses=[10, 50, 42]))
    got = db.get_game(rec.id)
    assert got.secret == 42
    assert got.completed is True
    assert got.completed_at is not None
    assert got.username == "alice"
    assert got.guesses == [10, 50, 42]
    assert rec == got


def test_add_game_starts_incomplete(db):
    alice = make_account(db)
    g = db.add_game(7, alice.id)
    assert g.id is not None and g.completed is False and g.completed_at is None
    assert db.get_games() == []


def test_add_game_unknown_account(db):
    with pytest.raises(NotFound):
        db.add_game(7, 999)


def test_update_game_naive_completed_at_read_as_utc(db):
    alice = make_account(db)
    g = db.add_game(3, alice.id)
    g.completed = True
    g.completed_at = datetime(2026, 10, 1, 12, 0, 0)
    updated = db.update_game(g)
    expected = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)
    assert updated.completed is True
    assert updated.completed_at == expected
    assert updated.completed_at.tzinfo is not None
    got = db.get_game(g.id)
    assert got.completed is True and got.completed_at == expected
    assert [r.id for r in db.get_games()] == [g.id]


def test_update_game_aware_completed_at_round_trips(db):
    alice = make_account(db)
    g = db.add_game(3, alice.id)
    when = datetime(2026, 10, 2, 8, 30, 15, tzinfo=timezone.utc)
    g.completed = True
    g.completed_at = when
    updated = db.update_game(g)
    assert updated.completed_at == when
    assert db.get_game(g.id).completed_at == when


def test_record_game_completed_at_is_utc(db):
    alice = make_account(db)
    before = datetime.now(timezone.utc)
    rec = db.record_game(models.NewGame(secret=2, account_id=alice.id, guesses=[2]))
    assert rec.completed_at.tzinfo is not None
    assert rec.completed_at >= before.replace(microsecond=0)


def test_update_game_never_creates(db):
    ghost = models.GamePublic(id=12345, secret=1, completed=True, completed_at=datetime.now(timezone.utc), account_id=1)
    with pytest.raises(NotFound):
        db.update_game(ghost)
    assert db.get_games() == []


def test_guesses_ordered_by_time_not_insertion(db):
    alice = make_account(db)
    g = db.add_game(20, alice.id)
    db.add_guess(g.id, 30, ts=3000)
    db.add_guess(g.id, 10, ts=1000)
    db.add_guess(g.id, 20, ts=2000)
    assert db.get_game(g.id).guesses == [10, 20, 30]


def test_add_guess_stamps_time(db):
    alice = make_account(db)
    g = db.add_game(5, alice.id)
    before = crud.now_ms()
    guess = db.add_guess(g.id, 4)
    assert guess.game_id == g.id and guess.value == 4
    assert guess.time >= before


def test_add_guess_unknown_game(db):
    with pytest.raises(NotFound):
        db.add_guess(404, 1)


def test_get_game_unknown(db):
    with pytest.raises(NotFound) as exc:
        db.get_game(404)
    assert exc.value.kind == "game" and exc.value.key == 404


def test_get_games_only_completed(db):
    alice = make_account(db)
    bob = make_account(db, "bob")
    r1 = db.record_game(models.NewGame(secret=1, account_id=alice.id, guesses=[5, 1]))
    db.add_game(2, alice.id)
    r2 = db.record_game(models.NewGame(secret=9, account_id=bob.id, guesses=[9]))
    games = db.get_games()
    assert [g.id for g in games] == [r1.id, r2.id]
    assert all(g.completed for g in games)
    assert games[0].username == "alice" and games[0].guesses == [5, 1]
    assert games[1].username == "bob" and games[1].guesses == [9]


def test_record_game_rolls_back_on_failure(db, db_path, monkeypatch):
    alice = make_account(db)
    real_insert = crud._insert_guess
    calls = {"n": 0}

    def flaky(session, game_id, value, ts=None):
        calls["n"] += 1
        if calls["n"] == 2:
            raise RuntimeError("disk hiccup")
        return real_insert(session, game_id, value, ts)

    monkeypatch.setattr(crud, "_insert_guess", flaky)
    with pytest.raises(RuntimeError):
        db.record_game(models.NewGame(secret=42, account_id=alice.id, guesses=[10, 50, 42]))

    engine = create_db_engine(db_path)
    with Session(engine) as s:
        assert s.exec(select(func.count()).select_from(models.Game)).one() == 0
        assert s.exec(select(func.count()).select_from(models.Guess)).one() == 0
    engine.dispose()


def test_record_game_unknown_account(db):
    with pytest.raises(NotFound):
        db.record_game(models.NewGame(secret=1, account_id=77, guesses=[1]))
    assert db.get_games() == []


def test_records_are_plain_data(db):
    alice = make_account(db)
    rec = db.record_game(models.NewGame(secret=4, account_id=alice.id, guesses=[2, 4]))
    data = rec.model_dump()
    assert data["guesses"] == [2, 4] and data["username"] == "alice"
    assert '"secret":4' in rec.model_dump_json()


def test_in_memory_store():
    from guessdb.store import GuessDatabase
    db = GuessDatabase(":memory:")
    try:
        alice = make_account(db)
        rec = db.record_game(models.NewGame(secret=6, account_id=alice.id, guesses=[3, 6]))
        assert db.get_game(rec.id).guesses == [3, 6]
    finally:
        db.close()
