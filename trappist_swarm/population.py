"""Population dynamics: neural capacity, energy balance and starvation.

Queens provide neural capacity. Once workers outnumber it, coordination
efficiency falls off as 1/load^4, which caps how far a swarm can grow.
"""
import logging
import math

from trappist_swarm.config import Config

logger = logging.getLogger(__name__)

STARVING_HEALTH_THRESHOLD = 50
EQUILIBRIUM_DAILY_CHANGE = 10  # workers per day assumed by the estimate


def calculate_total_neural_capacity(queens):
    return sum(queen['neural_capacity'] for queen in queens)


def calculate_neural_load(total_workers, neural_capacity):
    if neural_capacity == 0:
        return 0
    return total_workers / neural_capacity


def calculate_coordination_efficiency(neural_load):
    """Full efficiency up to a load of 1, then 1/load^OVERLOAD_EXPONENT."""
    if neural_load <= 1:
        return 1.0
    return 1.0 / neural_load ** Config.OVERLOAD_EXPONENT


def calculate_metabolic_rates(workers, queens):
    worker_upkeep = len(workers) * Config.WORKER_UPKEEP_ENERGY
    queen_upkeep = len(queens) * Config.QUEEN_UPKEEP
    return {
        'worker_upkeep': worker_upkeep,
        'queen_upkeep': queen_upkeep,
        'total_upkeep': worker_upkeep + queen_upkeep,
    }


def calculate_worker_production(workers):
    """Estimated biomass gathered this tick by workers in the gathering state."""
    return sum(
        Config.BASE_GATHER_RATE * (1 + worker['skills']['foraging'] / 100)
        for worker in workers
        if worker['state'] == 'gathering'
    )


def calculate_energy_balance(workers, queens, efficiency):
    production = calculate_worker_production(workers) * efficiency
    consumption = calculate_metabolic_rates(workers, queens)['total_upkeep']
    net = production - consumption
    return {
        'production': production,
        'consumption': consumption,
        'net': net,
        'deficit': -net if net < 0 else 0,
        'surplus': net if net > 0 else 0,
    }


def calculate_starvation_deaths(workers, energy_deficit):
    """
    Work out which workers starve for a given energy deficit.

    The weakest workers die first; equal health keeps list order.

    Args:
        workers: Current workers
        energy_deficit: Positive shortfall from calculate_energy_balance

    Returns:
        Dict with deaths, victims (worker dicts), biomass_recovered and
        workers_starving
    """
    result = {'deaths': 0, 'victims': [], 'biomass_recovered': 0.0, 'workers_starving': 0}
    if energy_deficit <= 0:
        return result

    potential = min(len(workers),
                    Config.STARVATION_COEFFICIENT * energy_deficit / Config.WORKER_UPKEEP_ENERGY)
    victims = sorted(workers, key=lambda worker: worker['health'])[:math.floor(potential)]

    result['deaths'] = len(victims)
    result['victims'] = victims
    result['biomass_recovered'] = len(victims) * Config.WORKER_SPAWN_COST * Config.RECYCLE_EFFICIENCY
    result['workers_starving'] = sum(1 for worker in workers if worker['health'] < STARVING_HEALTH_THRESHOLD)
    return result


def resolve_starvation(swarm, energy_deficit):
    """
    Remove starved workers and recycle them into queen energy.

    Recovered biomass is split evenly between queens, each capped at her max.

    Returns:
        The result of calculate_starvation_deaths
    """
    starvation = calculate_starvation_deaths(swarm['workers'], energy_deficit)
    if not starvation['deaths']:
        return starvation

    dead_ids = {worker['id'] for worker in starvation['victims']}
    swarm['workers'] = [worker for worker in swarm['workers'] if worker['id'] not in dead_ids]

    queens = swarm['queens']
    if queens and starvation['biomass_recovered'] > 0:
        share = starvation['biomass_recovered'] / len(queens)
        for queen in queens:
            queen['energy']['current'] = min(queen['energy']['current'] + share, queen['energy']['max'])

    logger.debug("Starvation culled %d workers (deficit %.3f)", starvation['deaths'], energy_deficit)
    return starvation


def calculate_equilibrium(workers, queens, current_efficiency):
    """
    Rough estimate of where the population is heading.

    The target is 1.2x neural capacity; days to reach it assume a fixed
    change of ten workers per day. Advisory only.
    """
    capacity = calculate_total_neural_capacity(queens)
    net = calculate_energy_balance(workers, queens, current_efficiency)['net']

    if net > Config.EQUILIBRIUM_TREND_THRESHOLD:
        trend = 'growing'
    elif net < -Config.EQUILIBRIUM_TREND_THRESHOLD:
        trend = 'shrinking'
    else:
        trend = 'stable'

    target = math.floor(capacity * Config.EQUILIBRIUM_LOAD)
    current = len(workers)
    return {
        'stable': trend == 'stable',
        'target_population': target,
        'current_population': current,
        'trend': trend,
        'estimated_days_to_equilibrium': 0 if trend == 'stable' else abs(current - target) / EQUILIBRIUM_DAILY_CHANGE,
    }


def create_daily_summary(day, game_data, deaths, hatches, eggs, net_energy):
    """Snapshot the swarm at the end of a day."""
    swarm = game_data['swarm']
    workers = swarm['workers']
    capacity = calculate_total_neural_capacity(swarm['queens'])
    efficiency = calculate_coordination_efficiency(calculate_neural_load(len(workers), capacity))

    return {
        'day': day,
        'workers_died': deaths['workers'],
        'queens_died': deaths['queens'],
        'workers_hatched': hatches,
        'eggs_laid': eggs,
        'net_energy': net_energy,
        'peak_workers': len(workers),
        'efficiency': efficiency,
    }


def _round_half_up(value):
    return math.floor(value + 0.5)


def _plural(count, word):
    return f"{count} {word}{'' if count == 1 else 's'}"


def format_daily_summary(summary):
    lines = [f"Day {summary['day']} Summary:"]

    if summary['eggs_laid'] > 0:
        lines.append(f"• {_plural(summary['eggs_laid'], 'egg')} laid")
    if summary['workers_hatched'] > 0:
        lines.append(f"• {_plural(summary['workers_hatched'], 'worker')} hatched")
    if summary['workers_died'] > 0:
        lines.append(f"• {_plural(summary['workers_died'], 'worker')} died (starvation)")
    if summary['queens_died'] > 0:
        lines.append(f"• {summary['queens_died']} QUEEN died (starvation)")
        lines.append('• ⚠️ CRITICAL: Swarm collapse imminent')

    efficiency_pct = _round_half_up(summary['efficiency'] * 100)
    lines.append(f"• Population: {summary['peak_workers']} workers ({efficiency_pct}% efficiency)")
    sign = '+' if summary['net_energy'] > 0 else ''
    lines.append(f"• Net energy: {sign}{_round_half_up(summary['net_energy'])}")

    return '\n'.join(lines)
