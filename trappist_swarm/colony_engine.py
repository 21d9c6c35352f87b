"""Queen and worker behaviour: orders, gathering and egg production.

Queens and workers are plain dicts and refer to each other only by id
(``worker['queen_id']``). Every function here mutates the records it is
given and returns a small result dict describing what happened.
"""
import logging
from enum import Enum

from trappist_swarm.config import Config
from trappist_swarm.population import (
    calculate_coordination_efficiency,
    calculate_neural_load,
    calculate_total_neural_capacity,
)
from trappist_swarm.progression import FOOD_SURFACE_LICHEN

logger = logging.getLogger(__name__)


class OrderType(str, Enum):
    """Orders a worker can hold.

    Only GATHER_BIOMASS and IDLE do anything yet. EXPLORE_ZONE, COMBAT and
    BUILD_STRUCTURE are accepted and resolve to an idle worker.
    """
    GATHER_BIOMASS = 'gather_biomass'
    IDLE = 'idle'
    EXPLORE_ZONE = 'explore_zone'
    COMBAT = 'combat'
    BUILD_STRUCTURE = 'build_structure'

    @classmethod
    def parse(cls, value):
        """Return the member for value, or None if it is not an order type."""
        try:
            return cls(value)
        except ValueError:
            return None


PLACEHOLDER_ORDERS = frozenset({OrderType.EXPLORE_ZONE, OrderType.COMBAT, OrderType.BUILD_STRUCTURE})

QUEEN_DIRECTIVES = ('gather_biomass', 'idle')

WORKER_STATES = ('self_maintenance', 'gathering', 'idle_empty', 'idle_cargo_full')
IDLE_WORKER_STATES = ('idle_empty', 'idle_cargo_full')

LOG_ENTRY_TYPES = ('worker_hatched', 'worker_died', 'queen_died', 'egg_laid', 'zone_conquered', 'daily_summary')

GATHER_ORDER_PRIORITY = 10
IDLE_ORDER_PRIORITY = 1
FILLER_ORDER_PRIORITY = 0


def make_order(order_type, priority, issued_at=0):
    return {'type': OrderType(order_type).value, 'priority': priority, 'issued_at': issued_at}


# ============================================================================
# Queens
# ============================================================================

def create_queen(zone_id, ids):
    """
    Create a queen living in zone_id.

    Args:
        zone_id: Home zone of the queen
        ids: IdGenerator used for the queen id

    Returns:
        Queen dict with full energy, idle directive and an empty queue
    """
    return {
        'id': ids.next_id('queen'),
        'location_zone_id': zone_id,
        'neural_capacity': Config.QUEEN_BASE_CAPACITY,
        'directive': 'idle',
        'command_queue': [],
        'egg_production': {
            'enabled': False,
            'in_progress': False,
            'progress': 0,
            'ticks_remaining': 0,
        },
        'energy': {'current': Config.QUEEN_ENERGY_MAX, 'max': Config.QUEEN_ENERGY_MAX},
    }


def regenerate_command_queue(queen, issued_at=0):
    """Rebuild the queue: one order per unit of neural capacity."""
    if queen['directive'] == 'gather_biomass':
        order_type, priority = OrderType.GATHER_BIOMASS, GATHER_ORDER_PRIORITY
    else:
        order_type, priority = OrderType.IDLE, IDLE_ORDER_PRIORITY

    queen['command_queue'] = [
        make_order(order_type, priority, issued_at) for _ in range(queen['neural_capacity'])
    ]


def set_queen_directive(queen, directive, issued_at=0):
    if directive not in QUEEN_DIRECTIVES:
        raise ValueError(f"Unknown directive: {directive}")
    queen['directive'] = directive
    regenerate_command_queue(queen, issued_at)


def toggle_egg_production(queen, enabled):
    queen['egg_production']['enabled'] = bool(enabled)


def can_queen_accept_biomass(queen):
    return queen['energy']['current'] < queen['energy']['max']


def queen_receive_biomass(queen, amount):
    queen['energy']['current'] = min(queen['energy']['current'] + amount, queen['energy']['max'])


# ============================================================================
# Workers
# ============================================================================

def create_worker(queen_id, ids):
    """Create a fresh worker: full health, empty cargo, no skill."""
    return {
        'id': ids.next_id('worker'),
        'queen_id': queen_id,
        'state': 'idle_empty',
        'health': Config.WORKER_HEALTH_MAX,
        'cargo': {'current': 0, 'max': Config.WORKER_CARGO_MAX},
        'skills': {'foraging': 0, 'mastery': {FOOD_SURFACE_LICHEN: 0}},
        'order': None,
    }


def process_egg_production(queen, ids):
    """
    Advance a queen's egg by one tick.

    An idle queen with enough energy pays for a new egg and starts the
    countdown; the tick that starts an egg does not count down. When the
    countdown reaches zero the worker hatches.

    Returns:
        The hatched worker, or None
    """
    eggs = queen['egg_production']
    if not eggs['enabled']:
        return None

    if not eggs['in_progress']:
        if queen['energy']['current'] >= Config.EGG_COST:
            queen['energy']['current'] -= Config.EGG_COST
            eggs['in_progress'] = True
            eggs['progress'] = 0
            eggs['ticks_remaining'] = Config.TOTAL_SPAWN_TICKS
        return None

    eggs['ticks_remaining'] -= 1
    total = Config.TOTAL_SPAWN_TICKS
    eggs['progress'] = (total - eggs['ticks_remaining']) / total * 100

    if eggs['ticks_remaining'] <= 0:
        eggs['in_progress'] = False
        eggs['progress'] = 0
        eggs['ticks_remaining'] = 0
        return create_worker(queen['id'], ids)

    return None


def assign_orders(queen, workers, issued_at=0):
    """
    Hand the queen's queued orders to her idle workers, best foragers first.

    Workers beyond the queue length get a low-priority idle order. Ties in
    skill keep list order.

    Returns:
        Number of workers given an order from the queue
    """
    available = [
        worker for worker in workers
        if worker['queen_id'] == queen['id'] and worker['state'] in IDLE_WORKER_STATES
    ]
    if not available:
        return 0

    available.sort(key=lambda worker: worker['skills']['foraging'], reverse=True)
    queue = queen['command_queue']
    assigned = min(len(available), len(queue))

    for worker, order in zip(available[:assigned], queue):
        worker['order'] = dict(order)
        if order['type'] == OrderType.GATHER_BIOMASS.value:
            worker['state'] = 'gathering'
        elif order['type'] == OrderType.IDLE.value:
            worker['state'] = 'idle_empty'

    for worker in available[assigned:]:
        worker['order'] = make_order(OrderType.IDLE, FILLER_ORDER_PRIORITY, issued_at)
        worker['state'] = 'idle_empty'

    logger.debug("Queen %s assigned %d orders to %d idle workers", queen['id'], assigned, len(available))
    return assigned


def process_worker_tick(worker, queen):
    """
    Resolve one tick for a worker.

    Self-maintenance comes first: the worker burns cargo to stay healthy or,
    with nothing to burn, takes starvation damage. A worker that survives
    then carries out its order.

    Returns:
        Dict with biomass_gathered, biomass_delivered, died and
        starvation_damage
    """
    result = {
        'biomass_gathered': 0.0,
        'biomass_delivered': 0.0,
        'died': False,
        'starvation_damage': False,
    }

    cargo = worker['cargo']
    if cargo['current'] >= Config.WORKER_UPKEEP_ENERGY:
        cargo['current'] -= Config.WORKER_UPKEEP_ENERGY
        worker['state'] = 'self_maintenance'
    else:
        worker['health'] -= Config.WORKER_STARVATION_DAMAGE
        result['starvation_damage'] = True
        if worker['health'] <= 0:
            result['died'] = True
            return result

    order = worker.get('order')
    if not order:
        worker['state'] = 'idle_empty'
        return result

    order_type = OrderType.parse(order.get('type'))
    if order_type is OrderType.GATHER_BIOMASS:
        _process_gather_order(worker, queen, result)
    elif order_type is OrderType.IDLE:
        worker['state'] = 'idle_cargo_full' if cargo['current'] > 0 else 'idle_empty'
    elif order_type in PLACEHOLDER_ORDERS:
        worker['state'] = 'idle_empty'
    else:
        logger.warning("Worker %s holds unknown order type %r", worker['id'], order.get('type'))
        worker['state'] = 'idle_empty'

    return result


def _process_gather_order(worker, queen, result):
    cargo = worker['cargo']
    if cargo['current'] < cargo['max']:
        skills = worker['skills']
        rate = (Config.BASE_GATHER_RATE *
                (1 + skills['foraging'] / 100) *
                (1 + skills['mastery'].get(FOOD_SURFACE_LICHEN, 0) / 200))
        cargo['current'] = min(cargo['current'] + rate, cargo['max'])
        result['biomass_gathered'] = rate
        worker['state'] = 'gathering'
        return

    if can_queen_accept_biomass(queen):
        queen_receive_biomass(queen, cargo['current'])
        result['biomass_delivered'] = cargo['current']
        cargo['current'] = 0
        worker['state'] = 'gathering'
    else:
        worker['state'] = 'idle_cargo_full'


# ============================================================================
# Aggregates and log entries
# ============================================================================

def calculate_swarm_aggregates(swarm):
    """Counts, neural load and efficiency for the whole swarm."""
    workers = swarm['workers']
    capacity = calculate_total_neural_capacity(swarm['queens'])
    load = calculate_neural_load(len(workers), capacity)

    worker_states = {state: 0 for state in WORKER_STATES}
    for worker in workers:
        if worker['state'] in worker_states:
            worker_states[worker['state']] += 1

    return {
        'total_workers': len(workers),
        'total_queens': len(swarm['queens']),
        'neural_capacity': capacity,
        'neural_load': load,
        'efficiency': calculate_coordination_efficiency(load),
        'worker_states': worker_states,
    }


def create_log_entry(entry_type, message, ids, timestamp=0, data=None):
    if entry_type not in LOG_ENTRY_TYPES:
        raise ValueError(f"Unknown log entry type: {entry_type}")
    return {
        'id': ids.next_id('log'),
        'timestamp': timestamp,
        'type': entry_type,
        'message': message,
        'data': data or {},
    }
