"""New-game setup."""
import logging

from trappist_swarm.colony_engine import create_queen, set_queen_directive, toggle_egg_production
from trappist_swarm.config import Config
from trappist_swarm.entity_ids import COUNTER_KEY, IdGenerator
from trappist_swarm.world_generator import generate_trappist1_system, get_starting_zone

logger = logging.getLogger(__name__)


def create_new_game(now_ms, planets=None):
    """
    Build the state for a fresh game.

    The first zone of the home planet starts conquered and hosts a single
    queen that is already gathering with egg production switched on.

    Args:
        now_ms: Wall-clock time in milliseconds; ticks are measured from here
        planets: Generated world to use; a new one is generated when omitted

    Returns:
        game_data dict
    """
    if planets is None:
        planets = generate_trappist1_system()

    ids = IdGenerator()
    start_zone = get_starting_zone(planets)

    queen = create_queen(start_zone['id'], ids)
    set_queen_directive(queen, 'gather_biomass')
    toggle_egg_production(queen, True)

    logger.info("New game on %s, queen %s in zone %s", Config.HOME_PLANET_ID, queen['id'], start_zone['id'])

    return {
        'created_at': now_ms,
        'game_time': 0,
        'last_tick_timestamp': now_ms,
        'is_paused': False,
        'home_planet_id': Config.HOME_PLANET_ID,
        'planets': planets,
        'swarm': {'queens': [queen], 'workers': []},
        'daily_stats': [],
        'log': [],
        COUNTER_KEY: ids.next_value,
    }
