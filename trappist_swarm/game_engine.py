"""Game engine facade over one game state dict."""
import copy
import logging
import time

from trappist_swarm.colony_engine import calculate_swarm_aggregates, set_queen_directive, toggle_egg_production
from trappist_swarm.config import Config
from trappist_swarm.entity_ids import COUNTER_KEY
from trappist_swarm.game_factory import create_new_game
from trappist_swarm.population import calculate_equilibrium
from trappist_swarm.save_normalizer import canonical_world, normalize_planets_from_save
from trappist_swarm.tick_scheduler import apply_tick, process_catch_up, prune_history

logger = logging.getLogger(__name__)


def current_time_ms():
    return int(time.time() * 1000)


class GameEngine:
    """Owns the game state for one session and applies ticks and actions to it."""

    def __init__(self, session_id, config=None, game_data=None, now_ms=None):
        """Initialize game engine.

        A new game is created unless game_data is given.
        """
        self.session_id = session_id
        self.config = config or {}
        if game_data is None:
            now_ms = now_ms if now_ms is not None else current_time_ms()
            game_data = create_new_game(now_ms, planets=copy.deepcopy(canonical_world()))
        self.game_data = game_data

    @classmethod
    def load_from_session(cls, session):
        """Load game engine from a stored session, repairing the saved world."""
        if not session.game_state:
            return cls(session.id, session.game_config)

        game_data = copy.deepcopy(session.game_state)
        game_data.setdefault('created_at', 0)
        game_data.setdefault('game_time', 0)
        game_data.setdefault('last_tick_timestamp', current_time_ms())
        game_data.setdefault('is_paused', False)
        game_data.setdefault('home_planet_id', Config.HOME_PLANET_ID)
        game_data.setdefault('daily_stats', [])
        game_data.setdefault('log', [])
        game_data.setdefault(COUNTER_KEY, 1)

        swarm = game_data.setdefault('swarm', {})
        swarm.setdefault('queens', [])
        swarm.setdefault('workers', [])

        game_data['planets'] = normalize_planets_from_save(game_data.get('planets'))
        return cls(session.id, session.game_config, game_data=game_data)

    @property
    def game_time(self):
        return self.game_data['game_time']

    @property
    def day(self):
        return self.game_data['game_time'] // Config.TICKS_PER_DAY

    def get_state(self):
        """Get current game state plus derived swarm figures."""
        swarm = self.game_data['swarm']
        aggregates = calculate_swarm_aggregates(swarm)
        state = dict(self.game_data)
        state.update({
            'session_id': self.session_id,
            'day': self.day,
            'aggregates': aggregates,
            'equilibrium': calculate_equilibrium(swarm['workers'], swarm['queens'], aggregates['efficiency']),
        })
        return state

    def to_save(self):
        """The persistable game state, without derived fields."""
        return self.game_data

    def apply_tick(self, now_ms=None):
        result = apply_tick(self.game_data, now_ms if now_ms is not None else current_time_ms())
        self._record(result)
        return result

    def catch_up(self, now_ms=None):
        result = process_catch_up(self.game_data, now_ms if now_ms is not None else current_time_ms())
        self._record(result)
        return result

    def _record(self, result):
        self.game_data['log'].extend(result.log_entries)
        prune_history(self.game_data)

    def perform_action(self, action_type, action_data, now_ms=None):
        """Perform a game action.

        Raises:
            ValueError: for unknown actions or invalid action data
        """
        action_data = action_data or {}
        if action_type == 'set_directive':
            return self._set_directive(action_data)
        elif action_type == 'toggle_egg_production':
            return self._toggle_egg_production(action_data)
        elif action_type == 'set_paused':
            return self._set_paused(action_data, now_ms if now_ms is not None else current_time_ms())
        else:
            raise ValueError(f"Unknown action type: {action_type}")

    def _select_queens(self, action_data):
        queens = self.game_data['swarm']['queens']
        queen_id = action_data.get('queen_id')
        if queen_id is None:
            return queens
        selected = [queen for queen in queens if queen['id'] == queen_id]
        if not selected:
            raise ValueError(f"Unknown queen: {queen_id}")
        return selected

    def _set_directive(self, action_data):
        """Set the directive of one queen (queen_id) or of every queen."""
        directive = action_data.get('directive')
        queens = self._select_queens(action_data)
        for queen in queens:
            set_queen_directive(queen, directive, issued_at=self.game_time)
        return {'success': True, 'directive': directive, 'queens': [queen['id'] for queen in queens]}

    def _toggle_egg_production(self, action_data):
        enabled = bool(action_data.get('enabled', True))
        queens = self._select_queens(action_data)
        for queen in queens:
            toggle_egg_production(queen, enabled)
        return {'success': True, 'enabled': enabled, 'queens': [queen['id'] for queen in queens]}

    def _set_paused(self, action_data, now_ms):
        paused = bool(action_data.get('paused', True))
        if self.game_data['is_paused'] and not paused:
            # Time spent paused is not simulated
            self.game_data['last_tick_timestamp'] = now_ms
        self.game_data['is_paused'] = paused
        logger.debug("Session %s paused=%s", self.session_id, paused)
        return {'success': True, 'is_paused': paused}
