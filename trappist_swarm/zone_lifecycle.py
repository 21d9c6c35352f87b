"""Zone lifecycle state machine and biomass depletion."""
import logging
import math

from trappist_swarm.config import Config

logger = logging.getLogger(__name__)

ZONE_STATES = ('unexplored', 'exploring', 'combating', 'converting', 'harvesting', 'saturated')

STATE_DISPLAY_NAMES = {
    'unexplored': 'Unexplored',
    'exploring': 'Exploring',
    'combating': 'Combatting Predators',
    'converting': 'Converting Ecosystem',
    'harvesting': 'Active Harvest',
    'saturated': 'Saturated',
}

STATE_DESCRIPTIONS = {
    'unexplored': 'Unknown territory. Send workers to explore.',
    'exploring': 'Mapping terrain and identifying resources.',
    'combating': 'Fighting native resistance.',
    'converting': 'Establishing swarm presence.',
    'harvesting': 'Active biomass extraction.',
    'saturated': 'Maximum extraction reached. Minimal regrowth.',
}

# (min, max, label) - inclusive bounds
PREDATOR_STRENGTH_LABELS = [
    (1, 2, 'Scattered Resistance'),
    (3, 6, 'Minor Friction'),
    (7, 15, 'Localized Defenses'),
    (16, 35, 'Established Presence'),
    (36, 80, 'Dominant Ecosystem'),
    (81, 180, 'Aggressive Biome'),
    (181, 400, 'Fortified Territory'),
    (401, 900, 'Hostile Dominance'),
    (901, 2000, 'Extreme Resistance'),
    (2001, math.inf, 'Perfected Defense'),
]

PROGRESS_COMPLETE = 100
EXPLORATION_BASE_RATE = 0.5
CONVERSION_BASE_RATE = 0.2
REGROWTH_FRACTION = 0.01  # of biomass_rate, per depletion call
BIOMASS_CAP_MULTIPLIER = 1000


def has_active_predators(zone):
    predators = zone.get('predators')
    return bool(predators) and not predators.get('defeated') and predators.get('strength', 0) > 0


def advance_zone_state(zone):
    """
    Move a zone to its next lifecycle state when its current one is done.

    Progress resets to 0 on every transition except harvesting -> saturated,
    which is driven by biomass running out and pins progress at 100.

    Returns:
        True if the zone changed state
    """
    state = zone['state']

    if state == 'harvesting':
        if zone['biomass_available'] <= 0:
            zone['state'] = 'saturated'
            zone['progress'] = PROGRESS_COMPLETE
            logger.info("Zone %s saturated", zone['id'])
            return True
        return False

    if state == 'saturated' or zone['progress'] < PROGRESS_COMPLETE:
        return False

    if state == 'unexplored':
        zone['state'] = 'exploring'
    elif state == 'exploring':
        zone['state'] = 'combating' if has_active_predators(zone) else 'converting'
    elif state == 'combating':
        zone['state'] = 'converting'
    elif state == 'converting':
        zone['state'] = 'harvesting'
    else:
        return False

    zone['progress'] = 0
    return True


def add_zone_progress(zone, amount):
    zone['progress'] = min(PROGRESS_COMPLETE, zone['progress'] + amount)


def deplete_zone_biomass(zone, amount):
    """
    Draw biomass from a zone, then apply one step of regrowth.

    Regrowth is 1% of the zone's rate, capped at 1000x the rate (the
    generated starting amount).

    Returns:
        The amount actually drawn
    """
    drawn = min(amount, zone['biomass_available'])
    zone['biomass_available'] -= drawn
    zone['biomass_available'] = min(
        zone['biomass_available'] + zone['biomass_rate'] * REGROWTH_FRACTION,
        zone['biomass_rate'] * BIOMASS_CAP_MULTIPLIER,
    )
    return drawn


def get_zone_biomass_percentage(zone):
    max_biomass = zone['biomass_rate'] * BIOMASS_CAP_MULTIPLIER
    if max_biomass <= 0:
        return 0
    return zone['biomass_available'] / max_biomass * 100


def get_predator_strength_label(strength):
    for low, high, label in PREDATOR_STRENGTH_LABELS:
        if low <= strength <= high:
            return label
    return 'Unknown'


def get_zone_info(zone):
    """Summary of a zone for display."""
    predators = zone.get('predators')
    return {
        'id': zone['id'],
        'name': zone['name'],
        'state': zone['state'],
        'progress': zone['progress'],
        'biomass_available': zone['biomass_available'],
        'biomass_percentage': get_zone_biomass_percentage(zone),
        'workers_assigned': len(zone.get('assigned_workers', [])),
        'predator_strength': predators['strength'] if predators else None,
        'predator_label': get_predator_strength_label(predators['strength']) if predators else None,
    }


def get_state_display_name(state):
    return STATE_DISPLAY_NAMES.get(state, state)


def get_state_description(state):
    return STATE_DESCRIPTIONS.get(state, '')


# ============================================================================
# Worker assignment
# ============================================================================

def assign_worker_to_zone(worker, zone):
    if worker['id'] not in zone['assigned_workers']:
        zone['assigned_workers'].append(worker['id'])
        worker['assigned_zone_id'] = zone['id']


def unassign_worker_from_zone(worker, zone):
    if worker['id'] in zone['assigned_workers']:
        zone['assigned_workers'].remove(worker['id'])
    worker['assigned_zone_id'] = None


def get_zone_workers(zone, workers):
    assigned = set(zone['assigned_workers'])
    return [worker for worker in workers if worker['id'] in assigned]


# ============================================================================
# Work rates
# ============================================================================

def _crowding_efficiency(worker_count):
    # Linear up to four workers, logarithmic beyond
    return min(worker_count, 4 + math.log2(max(1, worker_count - 3)))


def calculate_exploration_progress(zone, worker_count):
    return EXPLORATION_BASE_RATE * _crowding_efficiency(worker_count)


def calculate_conversion_progress(zone, worker_count):
    return CONVERSION_BASE_RATE * _crowding_efficiency(worker_count)


def apply_zone_work(zone, worker_count):
    """
    Apply one tick of work from worker_count workers to a zone.

    Exploring and fighting use the exploration rate, converting uses the
    conversion rate and a harvesting zone gives up biomass. Defeating the
    predators and finishing conversion are recorded on the zone.

    Returns:
        Dict with progress_added, biomass_drawn and advanced
    """
    result = {'progress_added': 0.0, 'biomass_drawn': 0.0, 'advanced': False}
    if worker_count <= 0:
        return result

    state = zone['state']
    if state in ('unexplored', 'exploring', 'combating'):
        result['progress_added'] = calculate_exploration_progress(zone, worker_count)
    elif state == 'converting':
        result['progress_added'] = calculate_conversion_progress(zone, worker_count)
    elif state == 'harvesting':
        result['biomass_drawn'] = deplete_zone_biomass(zone, Config.BASE_GATHER_RATE * worker_count)

    if result['progress_added']:
        add_zone_progress(zone, result['progress_added'])

    result['advanced'] = advance_zone_state(zone)
    if result['advanced']:
        if state == 'combating':
            zone['predators']['defeated'] = True
        elif state == 'converting':
            zone['owned_by_swarm'] = True
        logger.debug("Zone %s advanced %s -> %s", zone['id'], state, zone['state'])

    return result
