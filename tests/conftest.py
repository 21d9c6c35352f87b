import copy

import pytest

from trappist_swarm.app import create_app
from trappist_swarm.colony_engine import create_queen, create_worker
from trappist_swarm.entity_ids import IdGenerator
from trappist_swarm.game_factory import create_new_game
from trappist_swarm.models import db as _db
from trappist_swarm.save_normalizer import canonical_world

NOW_MS = 1_700_000_000_000


@pytest.fixture(scope='session')
def canonical():
    """The generated system, shared by every test. Never mutate it."""
    return canonical_world()


@pytest.fixture
def world(canonical):
    """A private copy of the generated system."""
    return copy.deepcopy(canonical)


@pytest.fixture
def asimov(world):
    return next(planet for planet in world if planet['id'] == 'asimov')


@pytest.fixture
def ids():
    return IdGenerator()


@pytest.fixture
def queen(ids):
    return create_queen('asimov-zone-0', ids)


@pytest.fixture
def make_worker(queen, ids):
    def _make(**overrides):
        worker = create_worker(queen['id'], ids)
        for key, value in overrides.items():
            if key == 'cargo':
                worker['cargo']['current'] = value
            elif key == 'foraging':
                worker['skills']['foraging'] = value
            else:
                worker[key] = value
        return worker
    return _make


@pytest.fixture
def new_game(world):
    return create_new_game(NOW_MS, planets=world)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()
