import sys
from pathlib import Path
import pytest

# Ensure project root is on sys.path so tests can import the `guessdb` package
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


@pytest.fixture
def db_path(tmp_path):
	return str(tmp_path / 'guess.db')


@pytest.fixture
def db(db_path):
	from guessdb.store import GuessDatabase
	store = GuessDatabase(db_path)
	yield store
	store.close()
