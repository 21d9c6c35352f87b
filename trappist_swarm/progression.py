"""Foraging skill and food mastery progression.

Skill (0-100) grows with diminishing returns and only from food actually
gathered. Mastery is tracked as raw XP per food type and read back as a
level through a cumulative table covering levels 1-99.
"""
from trappist_swarm.config import Config

FOOD_SURFACE_LICHEN = 'surface_lichen'

SKILL_RATE_SCALE = 1724
SKILL_CURVE_K = 5
SKILL_CURVE_P = 3.2
SKILL_ACTIVITY_MULTIPLIER = 10
SKILL_GAIN_DIVISOR = 1_000_000
SKILL_MAX = 100

MASTERY_XP_PER_UNIT = 10
MASTERY_MAX_LEVEL = 99
MASTERY_99_XP = 13034431

FORAGING_RANKS = [
    {'min': 0, 'max': 5, 'name': 'Untrained', 'description': 'Learning basic extraction'},
    {'min': 5, 'max': 12, 'name': 'Green', 'description': 'Novice forager'},
    {'min': 12, 'max': 20, 'name': 'Novice', 'description': 'Competent at basic gathering'},
    {'min': 20, 'max': 30, 'name': 'Apprentice', 'description': 'Developing technique'},
    {'min': 30, 'max': 40, 'name': 'Competent', 'description': 'Reliable gatherer'},
    {'min': 40, 'max': 55, 'name': 'Able', 'description': 'Skilled extraction'},
    {'min': 55, 'max': 70, 'name': 'Proficient', 'description': 'Efficient forager'},
    {'min': 70, 'max': 83, 'name': 'Skilled', 'description': 'Expert gatherer'},
    {'min': 83, 'max': 95, 'name': 'Expert', 'description': 'Master of biomass extraction'},
    {'min': 95, 'max': 100, 'name': 'Master', 'description': 'Perfected the art of foraging'},
]

# (minimum mastery level, energy yield bonus), highest first
MASTERY_ENERGY_BONUSES = ((99, 1.0), (75, 0.5), (50, 0.25), (25, 0.1))


def calculate_skill_gain_rate(current_skill):
    return SKILL_RATE_SCALE / (1 + current_skill / SKILL_CURVE_K) ** SKILL_CURVE_P


def gain_foraging_skill(worker, food_gathered):
    """Raise a worker's foraging skill in proportion to food gathered."""
    gain = (calculate_skill_gain_rate(worker['skills']['foraging']) *
            food_gathered * SKILL_ACTIVITY_MULTIPLIER / SKILL_GAIN_DIVISOR)
    worker['skills']['foraging'] = min(SKILL_MAX, worker['skills']['foraging'] + gain)
    return gain


def _build_mastery_xp_table():
    # Index = level; index 0 unused
    table = [0.0]
    cumulative = 0.0
    for level in range(1, MASTERY_MAX_LEVEL + 1):
        cumulative += (level - 1) + 300 * 2 ** ((level - 1) / 7)
        table.append(cumulative)
    return table


MASTERY_XP_TABLE = _build_mastery_xp_table()


def get_mastery_level(xp):
    for level in range(MASTERY_MAX_LEVEL, 0, -1):
        if xp >= MASTERY_XP_TABLE[level]:
            return level
    return 0


def get_mastery_xp_for_level(level):
    if 1 <= level <= MASTERY_MAX_LEVEL:
        return MASTERY_XP_TABLE[level]
    return 0


def gain_mastery_xp(worker, food_type, food_gathered):
    xp = food_gathered * MASTERY_XP_PER_UNIT
    mastery = worker['skills']['mastery']
    mastery[food_type] = mastery.get(food_type, 0) + xp
    return xp


def calculate_gather_rate(worker, zone_biomass_rate, neural_efficiency):
    """
    Per-tick gather rate for a worker on a zone.

    Args:
        worker: Worker dict
        zone_biomass_rate: The zone's biomass_rate
        neural_efficiency: Swarm coordination efficiency (0-1)

    Returns:
        Dict with 'rate' and the 'modifiers' that produced it
    """
    skill_bonus = 1 + worker['skills']['foraging'] / 100
    mastery_bonus = 1 + worker['skills']['mastery'].get(FOOD_SURFACE_LICHEN, 0) / 200
    zone_efficiency = min(1, zone_biomass_rate / Config.BASE_GATHER_RATE)

    return {
        'rate': Config.BASE_GATHER_RATE * skill_bonus * mastery_bonus * zone_efficiency * neural_efficiency,
        'modifiers': {
            'skill_bonus': skill_bonus,
            'mastery_bonus': mastery_bonus,
            'zone_efficiency': zone_efficiency,
            'neural_efficiency': neural_efficiency,
        },
    }


def _find_rank(skill):
    for rank in FORAGING_RANKS:
        if rank['min'] <= skill < rank['max']:
            return rank
    # The top rank includes its upper bound
    if skill == FORAGING_RANKS[-1]['max']:
        return FORAGING_RANKS[-1]
    return None


def get_foraging_rank(skill):
    rank = _find_rank(skill)
    return rank['name'] if rank else 'Unknown'


def get_foraging_rank_description(skill):
    rank = _find_rank(skill)
    return rank['description'] if rank else ''


def get_mastery_energy_bonus(mastery_level):
    for threshold, bonus in MASTERY_ENERGY_BONUSES:
        if mastery_level >= threshold:
            return bonus
    return 0


def get_mastery_progress(xp):
    """Fraction of the way to level 99, in [0, 1]."""
    return min(1.0, max(0.0, xp / MASTERY_99_XP))
