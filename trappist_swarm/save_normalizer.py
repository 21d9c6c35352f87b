"""Reconcile saved planets against a freshly generated canonical world.

Player progress on a zone (state, progress, biomass, any extra runtime
fields) is kept as saved. Structural fields that are missing or not finite
are taken from the canonical template instead, so a damaged save always
loads into a world that satisfies the generator's invariants.
"""
import copy
import logging
import math
from functools import lru_cache

from trappist_swarm.game_data_loader import MAX_ECCENTRICITY
from trappist_swarm.world_generator import (
    ATMOSPHERE_LEVELS,
    BIOMES,
    GAS_KEYS,
    INSOLATION_BANDS,
    TEMPERATURE_ZONE_NAMES,
    TERRAIN_TYPES,
    generate_trappist1_system,
    normalize_gas_fractions,
)
from trappist_swarm.zone_lifecycle import ZONE_STATES

logger = logging.getLogger(__name__)

DEFAULT_MOON_DISTANCE = 10000


@lru_cache(maxsize=1)
def canonical_world():
    """The generated world, built once per process. Treat as read-only."""
    return generate_trappist1_system()


def is_finite_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def finite_or(value, fallback):
    return value if is_finite_number(value) else fallback


def positive_or(value, fallback):
    return value if is_finite_number(value) and value > 0 else fallback


def boolean_or(value, fallback):
    return value if isinstance(value, bool) else fallback


def string_or(value, fallback):
    return value if isinstance(value, str) else fallback


def string_list_or(value, fallback):
    if not isinstance(value, list):
        return list(fallback)
    strings = [entry for entry in value if isinstance(entry, str)]
    return strings if strings else list(fallback)


def choice_or(value, allowed, fallback):
    return value if value in allowed else fallback


def predators_or(value, fallback):
    """Saved predators field by field; anything that is not a dict falls back whole."""
    if not isinstance(value, dict):
        return dict(fallback)
    return {
        'strength': finite_or(value.get('strength'), fallback['strength']),
        'defeated': boolean_or(value.get('defeated'), fallback['defeated']),
    }


def gas_fractions_or(value, fallback):
    """Saved gases if all five fractions are finite (re-normalized), else fallback."""
    if not isinstance(value, dict):
        return dict(fallback)
    if not all(is_finite_number(value.get(key)) for key in GAS_KEYS):
        return dict(fallback)
    return normalize_gas_fractions({key: value[key] for key in GAS_KEYS})


def normalize_zone(loaded_zone, template_zone):
    """
    Merge one saved zone over its canonical template.

    Args:
        loaded_zone: Zone dict from the save, or None if absent
        template_zone: Canonical zone with the same id

    Returns:
        New zone dict
    """
    if not isinstance(loaded_zone, dict):
        return copy.deepcopy(template_zone)

    zone = copy.deepcopy(template_zone)
    zone.update(copy.deepcopy(loaded_zone))

    for key in ('hex_q', 'hex_r', 'hex_s', 'temperature_kelvin', 'progress',
                'biomass_rate', 'biomass_available', 'atmospheric_mass',
                'continent_index', 'region_index', 'zone_index'):
        zone[key] = finite_or(loaded_zone.get(key), template_zone[key])

    for key in ('name', 'planet_id', 'continent_id', 'region_id'):
        zone[key] = string_or(loaded_zone.get(key), template_zone[key])

    zone['state'] = choice_or(loaded_zone.get('state'), ZONE_STATES, template_zone['state'])
    zone['terrain_type'] = choice_or(loaded_zone.get('terrain_type'), TERRAIN_TYPES, template_zone['terrain_type'])
    zone['temperature_zone'] = choice_or(loaded_zone.get('temperature_zone'), TEMPERATURE_ZONE_NAMES,
                                         template_zone['temperature_zone'])
    zone['atmosphere'] = choice_or(loaded_zone.get('atmosphere'), ATMOSPHERE_LEVELS, template_zone['atmosphere'])
    zone['predators'] = predators_or(loaded_zone.get('predators'), template_zone['predators'])

    assigned = loaded_zone.get('assigned_workers')
    if isinstance(assigned, list):
        zone['assigned_workers'] = [worker_id for worker_id in assigned if isinstance(worker_id, str)]
    else:
        zone['assigned_workers'] = list(template_zone['assigned_workers'])

    # A zone the swarm has moved into is owned unless the save says otherwise
    owned_fallback = True if zone['state'] != 'unexplored' else template_zone['owned_by_swarm']
    zone['owned_by_swarm'] = boolean_or(loaded_zone.get('owned_by_swarm'), owned_fallback)
    zone['has_mineral_vein'] = boolean_or(loaded_zone.get('has_mineral_vein'), template_zone['has_mineral_vein'])

    zone['insolation_band'] = choice_or(loaded_zone.get('insolation_band'), INSOLATION_BANDS,
                                        template_zone['insolation_band'])
    zone['biome'] = choice_or(loaded_zone.get('biome'), BIOMES, template_zone['biome'])
    zone['atmospheric_gases'] = gas_fractions_or(loaded_zone.get('atmospheric_gases'),
                                                 template_zone['atmospheric_gases'])
    zone['neighbor_ids'] = string_list_or(loaded_zone.get('neighbor_ids'), template_zone['neighbor_ids'])
    return zone


def normalize_moons(loaded_moons, template_moons):
    """Moons are matched by position; bad entries fall back field by field."""
    if not isinstance(loaded_moons, list):
        return copy.deepcopy(template_moons)

    moons = []
    for index, moon in enumerate(loaded_moons):
        moon = moon if isinstance(moon, dict) else {}
        template = template_moons[index] if index < len(template_moons) else {}
        moon_id = moon.get('id')
        name = moon.get('name')
        moons.append({
            'id': moon_id if isinstance(moon_id, str) else template.get('id', f'moon-{index}'),
            'name': name if isinstance(name, str) else template.get('name', f'Moon {index + 1}'),
            'distance': finite_or(moon.get('distance'), template.get('distance', DEFAULT_MOON_DISTANCE)),
        })
    return moons


def normalize_planet(loaded_planet, template_planet):
    if not isinstance(loaded_planet, dict):
        return copy.deepcopy(template_planet)

    loaded_zones = loaded_planet.get('zones')
    if not isinstance(loaded_zones, list):
        loaded_zones = []
    loaded_zone_by_id = {zone.get('id'): zone for zone in loaded_zones if isinstance(zone, dict)}

    planet = copy.deepcopy(template_planet)
    planet.update(copy.deepcopy(loaded_planet))

    for key in ('initial_angle_rad', 'x', 'y'):
        planet[key] = finite_or(loaded_planet.get(key), template_planet[key])
    for key in ('distance_au', 'orbital_period'):
        planet[key] = positive_or(loaded_planet.get(key), template_planet[key])

    # The Kepler solver only converges for near-circular orbits
    eccentricity = loaded_planet.get('eccentricity')
    if not (is_finite_number(eccentricity) and 0 <= eccentricity < MAX_ECCENTRICITY):
        eccentricity = template_planet['eccentricity']
    planet['eccentricity'] = eccentricity

    for key in ('name', 'trappist_id', 'description'):
        planet[key] = string_or(loaded_planet.get(key), template_planet[key])
    for key in ('accessible', 'discovered'):
        planet[key] = boolean_or(loaded_planet.get(key), template_planet[key])

    day_length = finite_or(loaded_planet.get('day_length_ticks'), template_planet['day_length_ticks'])
    planet['day_length_ticks'] = max(1, math.floor(day_length + 0.5))

    planet['zones'] = [
        normalize_zone(loaded_zone_by_id.get(template_zone['id']), template_zone)
        for template_zone in template_planet['zones']
    ]
    planet['moons'] = normalize_moons(loaded_planet.get('moons'), template_planet['moons'])
    return planet


def normalize_planets_from_save(loaded_planets, canonical=None):
    """
    Rebuild the planet list from a save.

    The canonical world decides which planets and zones exist and in what
    order; saved planets and zones are matched to it by id. Saved entries
    with no canonical counterpart are dropped.

    Args:
        loaded_planets: Planet list from a save (may be damaged or partial)
        canonical: Pre-generated canonical world; canonical_world() when omitted

    Returns:
        New planet list; neither input is modified
    """
    if canonical is None:
        canonical = canonical_world()
    if not isinstance(loaded_planets, list):
        logger.warning("Saved planets are not a list; using the canonical world")
        loaded_planets = []

    loaded_by_id = {planet.get('id'): planet for planet in loaded_planets if isinstance(planet, dict)}
    missing = [planet['id'] for planet in canonical if planet['id'] not in loaded_by_id]
    if missing:
        logger.info("Save is missing planets %s; filled from the canonical world", ', '.join(missing))

    return [normalize_planet(loaded_by_id.get(template['id']), template) for template in canonical]
