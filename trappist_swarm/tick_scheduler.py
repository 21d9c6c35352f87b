"""Tick scheduler: advances the simulation one game-second at a time.

``apply_tick`` replays the wall-clock time elapsed since the last call, one
tick per second, capped at one game day per call. ``process_catch_up``
handles longer absences with a bulk approximation that moves the
population toward equilibrium without simulating every tick.
"""
import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List

from trappist_swarm.colony_engine import (
    assign_orders,
    create_log_entry,
    create_worker,
    process_egg_production,
    process_worker_tick,
)
from trappist_swarm.config import Config
from trappist_swarm.entity_ids import id_generator_for
from trappist_swarm.orbital_mechanics import update_planet_positions
from trappist_swarm.population import (
    calculate_coordination_efficiency,
    calculate_energy_balance,
    calculate_neural_load,
    calculate_total_neural_capacity,
    create_daily_summary,
    format_daily_summary,
    resolve_starvation,
)
from trappist_swarm.progression import FOOD_SURFACE_LICHEN, gain_foraging_skill, gain_mastery_xp

logger = logging.getLogger(__name__)

MS_PER_TICK = 1000


@dataclass
class TickResult:
    """What happened during one apply_tick / process_catch_up call."""

    workers_hatched: int = 0
    workers_died: int = 0
    queens_died: int = 0
    eggs_laid: int = 0
    net_energy: float = 0.0
    log_entries: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def elapsed_ticks(game_data, now_ms):
    return math.floor((now_ms - game_data['last_tick_timestamp']) / MS_PER_TICK)


def apply_tick(game_data, now_ms):
    """
    Advance the game to wall-clock time now_ms.

    At most one game day of ticks is processed; any remaining elapsed time
    is dropped. Appends a daily summary when the game day rolls over.

    Args:
        game_data: Game state dict, mutated in place
        now_ms: Current wall-clock time in milliseconds

    Returns:
        TickResult with counts and the log entries produced
    """
    result = TickResult()

    if game_data.get('is_paused'):
        game_data['last_tick_timestamp'] = now_ms
        return result

    elapsed = elapsed_ticks(game_data, now_ms)
    if elapsed <= 0:
        return result

    ticks = min(elapsed, Config.TICKS_PER_DAY)
    if ticks < elapsed:
        logger.debug("Dropping %d ticks beyond the per-call cap", elapsed - ticks)

    ids = id_generator_for(game_data)
    for _ in range(ticks):
        _process_single_tick(game_data, ids, result, now_ms)
        game_data['game_time'] += 1

    game_data['last_tick_timestamp'] = now_ms
    _record_day_rollover(game_data, ids, result, now_ms)
    return result


def _process_single_tick(game_data, ids, result, now_ms):
    swarm = game_data['swarm']
    game_time = game_data['game_time']

    update_planet_positions(game_data['planets'], game_time)

    # Queens: upkeep, eggs, orders. Dead queens are dropped after the loop.
    dead_queens = set()
    for queen in swarm['queens']:
        if queen['energy']['current'] >= Config.QUEEN_UPKEEP:
            queen['energy']['current'] -= Config.QUEEN_UPKEEP
        else:
            dead_queens.add(queen['id'])
            result.queens_died += 1
            result.log_entries.append(create_log_entry(
                'queen_died', 'Queen died from starvation', ids, now_ms, {'queen_id': queen['id']}))
            logger.info("Queen %s died from starvation at tick %d", queen['id'], game_time)
            continue

        if queen['egg_production']['enabled']:
            hatched = process_egg_production(queen, ids)
            if hatched is not None:
                swarm['workers'].append(hatched)
                result.workers_hatched += 1
                result.eggs_laid += 1
                result.log_entries.append(create_log_entry(
                    'worker_hatched', 'New worker hatched', ids, now_ms, {'worker_id': hatched['id']}))

        if game_time % Config.ORDER_REEVALUATION_INTERVAL == 0:
            assign_orders(queen, swarm['workers'], issued_at=game_time)

    if dead_queens:
        swarm['queens'] = [queen for queen in swarm['queens'] if queen['id'] not in dead_queens]

    # Workers: decay, act, learn. Removals are applied after the loop.
    queens_by_id = {queen['id']: queen for queen in swarm['queens']}
    dead_workers = set()
    for worker in swarm['workers']:
        queen = queens_by_id.get(worker['queen_id'])
        if queen is None:
            dead_workers.add(worker['id'])
            continue

        worker['health'] -= Config.WORKER_HEALTH_DECAY
        if worker['health'] <= 0:
            dead_workers.add(worker['id'])
            result.workers_died += 1
            continue

        outcome = process_worker_tick(worker, queen)
        if outcome['died']:
            dead_workers.add(worker['id'])
            result.workers_died += 1
            result.log_entries.append(create_log_entry(
                'worker_died', 'Worker died from starvation', ids, now_ms, {'worker_id': worker['id']}))
        elif outcome['biomass_gathered'] > 0:
            gain_foraging_skill(worker, outcome['biomass_gathered'])
            gain_mastery_xp(worker, FOOD_SURFACE_LICHEN, outcome['biomass_gathered'])

    if dead_workers:
        swarm['workers'] = [worker for worker in swarm['workers'] if worker['id'] not in dead_workers]

    # Population pass
    capacity = calculate_total_neural_capacity(swarm['queens'])
    efficiency = calculate_coordination_efficiency(calculate_neural_load(len(swarm['workers']), capacity))
    balance = calculate_energy_balance(swarm['workers'], swarm['queens'], efficiency)
    result.net_energy += balance['net']

    if balance['deficit'] > 0:
        starvation = resolve_starvation(swarm, balance['deficit'])
        result.workers_died += starvation['deaths']


def _record_day_rollover(game_data, ids, result, now_ms):
    current_day = game_data['game_time'] // Config.TICKS_PER_DAY
    daily_stats = game_data['daily_stats']
    last_day = daily_stats[-1]['day'] if daily_stats else -1
    if current_day <= last_day:
        return

    summary = create_daily_summary(
        current_day,
        game_data,
        {'workers': result.workers_died, 'queens': result.queens_died},
        result.workers_hatched,
        result.eggs_laid,
        result.net_energy,
    )
    daily_stats.append(summary)
    result.log_entries.append(create_log_entry(
        'daily_summary', format_daily_summary(summary), ids, now_ms, {'summary': summary}))
    logger.info("Day %d summary recorded (%d workers)", current_day, summary['peak_workers'])


def process_catch_up(game_data, now_ms):
    """
    Advance the game after an absence of any length.

    Up to one game day of elapsed time is simulated tick by tick. Longer
    gaps take the bulk approximation in _process_batched_catch_up, which
    does not reproduce tick-accurate results.
    """
    if game_data.get('is_paused'):
        return apply_tick(game_data, now_ms)

    elapsed = elapsed_ticks(game_data, now_ms)
    if elapsed <= 0:
        return TickResult()

    if elapsed > Config.TICKS_PER_DAY:
        return _process_batched_catch_up(game_data, now_ms, elapsed)

    return apply_tick(game_data, now_ms)


def _process_batched_catch_up(game_data, now_ms, elapsed):
    result = TickResult()
    swarm = game_data['swarm']
    ids = id_generator_for(game_data)

    days_elapsed = elapsed / Config.TICKS_PER_DAY
    capacity = calculate_total_neural_capacity(swarm['queens'])
    target = math.floor(capacity * Config.EQUILIBRIUM_LOAD)
    current = len(swarm['workers'])

    if current < target:
        # Newcomers belong to the first queen; the tail is trimmed on a crash
        growth = math.floor((target - current) * Config.CATCH_UP_GROWTH_RATE * days_elapsed)
        if swarm['queens']:
            queen_id = swarm['queens'][0]['id']
            for _ in range(growth):
                swarm['workers'].append(create_worker(queen_id, ids))
                result.workers_hatched += 1
    elif current > target * Config.CATCH_UP_CRASH_THRESHOLD:
        deaths = min(math.floor((current - target) * Config.CATCH_UP_CRASH_RATE * days_elapsed), current)
        swarm['workers'] = swarm['workers'][:current - deaths]
        result.workers_died += deaths

    game_data['game_time'] += elapsed
    game_data['last_tick_timestamp'] = now_ms

    daily_stats = game_data['daily_stats']
    last_day = daily_stats[-1]['day'] if daily_stats else 0
    for day in range(last_day + 1, last_day + math.floor(days_elapsed) + 1):
        daily_stats.append(create_daily_summary(
            day,
            game_data,
            {'workers': result.workers_died, 'queens': 0},
            result.workers_hatched,
            result.eggs_laid,
            result.net_energy,
        ))

    population = len(swarm['workers'])
    result.log_entries.append(create_log_entry(
        'daily_summary',
        f"Caught up on {math.floor(days_elapsed)} days. Population: {population} workers",
        ids,
        now_ms,
        {'days_elapsed': days_elapsed, 'current_workers': population},
    ))
    logger.info("Batched catch-up over %.2f days: %d -> %d workers", days_elapsed, current, population)
    return result


def prune_history(game_data, stats_window=Config.DAILY_STATS_WINDOW, log_window=Config.LOG_WINDOW):
    """Keep only the trailing windows of daily stats and log entries."""
    if len(game_data['daily_stats']) > stats_window:
        game_data['daily_stats'] = game_data['daily_stats'][-stats_window:]
    if len(game_data['log']) > log_window:
        game_data['log'] = game_data['log'][-log_window:]
