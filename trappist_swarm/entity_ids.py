"""Monotonic entity identifiers for queens, workers and log entries.

Ids are plain strings (``queen-1``, ``worker-2``, ``log-3``) so the game
state stays JSON-serializable. The counter lives in the game state itself
under ``next_entity_id``; a reloaded save keeps handing out fresh ids and a
new game always produces the same sequence.
"""

COUNTER_KEY = 'next_entity_id'


class IdGenerator:
    """Hands out ``<prefix>-<n>`` ids from a counter stored in a dict."""

    def __init__(self, store=None):
        self._store = store if store is not None else {}
        self._store.setdefault(COUNTER_KEY, 1)

    @property
    def next_value(self):
        return self._store[COUNTER_KEY]

    def next_id(self, prefix):
        value = self._store[COUNTER_KEY]
        self._store[COUNTER_KEY] = value + 1
        return f'{prefix}-{value}'

    def __repr__(self):
        return f'IdGenerator(next={self.next_value})'


def id_generator_for(game_data):
    """Build a generator bound to a game state's persisted counter."""
    return IdGenerator(game_data)
