"""Deterministic generation of the TRAPPIST-1 planets and their zones.

Every planet is generated from its id alone: a linear-congruential RNG is
seeded from the id, and spatial fields come from an integer hash of the hex
coordinates. Generating the system twice yields identical zones.

Each planet surface is an irregular, connected blob of hexes carved out of a
larger hex disk. Zones then get an environment derived from their position:
the star-facing side (low ``q``) is light and hot, the far side dark and
frozen, with a terminator band between.
"""
import logging
import math

from trappist_swarm.config import Config
from trappist_swarm.game_data_loader import get_game_data_loader
from trappist_swarm.orbital_mechanics import get_orbital_solver

logger = logging.getLogger(__name__)


HEX_DIRECTIONS = ((1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1))

INSOLATION_BANDS = ('light', 'terminator', 'dark')
BIOMES = (
    'sunscorch',
    'temperate-basin',
    'twilight-marsh',
    'night-ice',
    'mineral-ridge',
    'barren-plain',
)
GAS_KEYS = ('n2', 'co2', 'o2', 'ch4', 'inert')

ZONE_ADJECTIVES = [
    'Fertile', 'Vibrant', 'Dormant', 'Pulsing', 'Resonant',
    'Silent', 'Hungry', 'Generous', 'Hostile', 'Welcoming',
    'Deep', 'Surface', 'Outer', 'Inner', 'Prime',
    'Secondary', 'Nascent', 'Ancient', 'Shifting', 'Stable',
]
ZONE_NOUNS = [
    'Essence', 'Biomass', 'Vitality', 'Resonance', 'Pulse',
    'Thrum', 'Bloom', 'Nexus', 'Lattice', 'Matrix',
    'Core', 'Heart', 'Cradle', 'Crucible', 'Wellspring',
    'Breach', 'Threshold', 'Vantage', 'Reach', 'Hollow',
]

# Temperature thresholds (Kelvin)
ATMOSPHERE_THICK_K = 250
ATMOSPHERE_THIN_K = 150
TEMPERATURE_ZONES = ((340, 'hot'), (285, 'warm'), (240, 'temperate'), (160, 'cold'))
TEMPERATURE_ZONE_NAMES = ('hot', 'warm', 'temperate', 'cold', 'frozen')
ATMOSPHERE_LEVELS = ('thick', 'thin', 'none')
TERRAIN_TYPES = ('soil', 'liquid', 'ice')

BAND_TEMPERATURE_OFFSET = {'light': 65, 'terminator': -15, 'dark': -95}

ZONES_PER_CONTINENT = 64
ZONES_PER_REGION = 8

_UINT32 = 0xFFFFFFFF


class SeededRandom:
    """Linear-congruential generator producing floats in [0, 1].

    The state is explicit, so two generators built from the same seed always
    produce the same sequence.
    """

    MULTIPLIER = 1103515245
    INCREMENT = 12345
    MODULUS_MASK = 0x7FFFFFFF

    def __init__(self, seed):
        self.state = seed

    def advance(self):
        self.state = (self.state * self.MULTIPLIER + self.INCREMENT) & self.MODULUS_MASK
        return self.state / self.MODULUS_MASK


def planet_seed(planet_id):
    """Seed derived from a planet's identity."""
    return ord(planet_id[0]) * 1000 + len(planet_id)


def coordinate_noise(q, r, seed):
    """Hash a lattice point to a float in [0, 1]."""
    h = (q * 374761393 + r * 668265263 + seed * 362437) & _UINT32
    h = ((h ^ (h >> 13)) * 1274126177) & _UINT32
    h ^= h >> 16
    return h / _UINT32


def hex_neighbors(q, r):
    """Axial coordinates of the six neighbours of a hex."""
    return [(q + dq, r + dr) for dq, dr in HEX_DIRECTIONS]


def hex_distance(a, b):
    """Hex-grid distance between two axial coordinates."""
    return (abs(a[0] - b[0]) + abs(a[0] + a[1] - b[0] - b[1]) + abs(a[1] - b[1])) // 2


def generate_zone_name(seed):
    adjective = ZONE_ADJECTIVES[seed % len(ZONE_ADJECTIVES)]
    noun = ZONE_NOUNS[(seed // len(ZONE_ADJECTIVES)) % len(ZONE_NOUNS)]
    return f'{adjective} {noun}'


# ============================================================================
# Hex blob carving
# ============================================================================

def _count_selected_neighbors(key, selected):
    return sum(1 for neighbor in hex_neighbors(*key) if neighbor in selected)


def _connected_component(start, selected):
    """Flood fill from start across selected hexes."""
    visited = set()
    stack = [start]
    while stack:
        key = stack.pop()
        if key in visited or key not in selected:
            continue
        visited.add(key)
        for neighbor in hex_neighbors(*key):
            if neighbor not in visited and neighbor in selected:
                stack.append(neighbor)
    return visited


def _largest_connected_component(selected):
    unvisited = set(selected)
    largest = set()
    for key in sorted(selected):
        if key not in unvisited:
            continue
        component = _connected_component(key, selected)
        unvisited -= component
        if len(component) > len(largest):
            largest = component
    return largest


def _can_remove_without_disconnect(key, selected):
    if key not in selected or len(selected) <= 1:
        return False
    remaining = selected - {key}
    start = next((n for n in hex_neighbors(*key) if n in remaining), None)
    if start is None:
        return False
    return len(_connected_component(start, remaining)) == len(remaining)


def _score_canvas(canvas_radius, rng):
    """Score every hex of the canvas disk; higher scores carve first."""
    lobes = []
    for _ in range(4):
        angle = rng.advance() * math.pi * 2
        dist = canvas_radius * (0.25 + rng.advance() * 0.55)
        lobes.append({
            'q': math.cos(angle) * dist,
            'r': math.sin(angle) * dist,
            'sigma': canvas_radius * (0.28 + rng.advance() * 0.18),
            'weight': 0.75 + rng.advance() * 0.5,
        })

    scores = {}
    for q in range(-canvas_radius, canvas_radius + 1):
        for r in range(-canvas_radius, canvas_radius + 1):
            s = -q - r
            dist = max(abs(q), abs(r), abs(s))
            if dist > canvas_radius:
                continue

            warp_q = (coordinate_noise(q, r, 907) - 0.5) * 6 + \
                (coordinate_noise(q * 2, r * 2, 941) - 0.5) * 2.5
            warp_r = (coordinate_noise(q, r, 1031) - 0.5) * 6 + \
                (coordinate_noise(q * 2, r * 2, 1117) - 0.5) * 2.5

            low = coordinate_noise(math.floor((q + warp_q) * 0.32),
                                   math.floor((r + warp_r) * 0.32), 1301)
            mid = coordinate_noise(math.floor((q + warp_q) * 0.75),
                                   math.floor((r + warp_r) * 0.75), 1459)
            ridge = 1 - abs(mid * 2 - 1)
            jag = coordinate_noise(q * 3, r * 3, 1597)

            lobe_influence = 0.0
            for lobe in lobes:
                dq = q - lobe['q']
                dr = r - lobe['r']
                influence = math.exp(-(dq * dq + dr * dr) / (2 * lobe['sigma'] ** 2))
                lobe_influence = max(lobe_influence, influence * lobe['weight'])

            radial_penalty = (dist / canvas_radius) ** 1.6 * 0.72
            scores[(q, r)] = (low * 0.62 + ridge * 0.2 + lobe_influence * 0.46 +
                              jag * 0.08 - radial_penalty)
    return scores


def generate_organic_hex_blob(target_count, rng):
    """
    Carve a connected, irregular set of hexes out of a hex-disk canvas.

    Args:
        target_count: Number of hexes wanted
        rng: SeededRandom driving lobe placement and growth choices

    Returns:
        List of (q, r, s) tuples, sorted by (q, r)
    """
    canvas_radius = max(18, math.ceil(math.sqrt(target_count) * 1.9))
    scores = _score_canvas(canvas_radius, rng)

    candidates = sorted(scores, key=lambda key: (-scores[key], key))
    preselect = min(len(candidates), max(target_count + 80, int(target_count * 1.5)))
    selected = _largest_connected_component(set(candidates[:preselect]))

    # Trim thin edges, keeping the blob connected
    for _ in range(3):
        removable = sorted(
            (key for key in selected if _count_selected_neighbors(key, selected) <= 3),
            key=lambda key: (scores[key], key),
        )
        removals = min(int(target_count * 0.08), max(0, len(selected) - target_count))
        removed = 0
        for key in removable:
            if removed >= removals:
                break
            if not _can_remove_without_disconnect(key, selected):
                continue
            selected.discard(key)
            removed += 1

    # Grow along the frontier, favouring hexes that touch two selected cells
    while len(selected) < target_count:
        frontier = {}
        for key in selected:
            for neighbor in hex_neighbors(*key):
                if neighbor in selected or neighbor not in scores:
                    continue
                edge_bias = 0.35 - abs(_count_selected_neighbors(neighbor, selected) - 2) * 0.16
                candidate_score = scores[neighbor] + edge_bias
                if candidate_score > frontier.get(neighbor, -math.inf):
                    frontier[neighbor] = candidate_score

        if not frontier:
            break

        options = sorted(frontier.items(), key=lambda item: (-item[1], item[0]))[:8]
        weights = [max(0.0001, weight + 1) for _, weight in options]
        roll = rng.advance() * sum(weights)
        chosen = options[0][0]
        for (key, _), weight in zip(options, weights):
            roll -= weight
            if roll <= 0:
                chosen = key
                break
        selected.add(chosen)

    while len(selected) > target_count:
        before = len(selected)
        removable = sorted(
            (key for key in selected if _count_selected_neighbors(key, selected) <= 4),
            key=lambda key: (scores[key], key),
        )
        for key in removable:
            if len(selected) <= target_count:
                break
            if _can_remove_without_disconnect(key, selected):
                selected.discard(key)
        if len(selected) == before:
            logger.debug("Blob trimming stalled at %d hexes (target %d)", before, target_count)
            break

    return [(q, r, -q - r) for q, r in sorted(selected)]


def shuffle_positions(positions, rng):
    """Fisher-Yates shuffle driven by the seeded RNG."""
    shuffled = list(positions)
    for i in range(len(shuffled) - 1, 0, -1):
        j = min(i, int(rng.advance() * (i + 1)))
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def smooth_field(positions, values, passes):
    """Average each value with its present neighbours, `passes` times."""
    current = values
    for _ in range(passes):
        smoothed = {}
        for key in positions:
            total = current.get(key, 0.0)
            count = 1
            for neighbor in hex_neighbors(*key):
                if neighbor in current:
                    total += current[neighbor]
                    count += 1
            smoothed[key] = total / count
        current = smoothed
    return current


# ============================================================================
# Environment
# ============================================================================

def get_insolation_band(signal):
    if signal <= -0.33:
        return 'light'
    if signal >= 0.33:
        return 'dark'
    return 'terminator'


def calculate_temperature(band, latitude, base_temperature, rng):
    """Return (temperature zone, Kelvin) for a zone."""
    kelvin = base_temperature + BAND_TEMPERATURE_OFFSET[band]
    kelvin += (1 - min(1, abs(latitude))) * 30
    kelvin += (rng.advance() - 0.5) * 25

    for threshold, name in TEMPERATURE_ZONES:
        if kelvin >= threshold:
            return name, kelvin
    return 'frozen', kelvin


def derive_atmosphere(kelvin):
    if kelvin >= ATMOSPHERE_THICK_K:
        return 'thick'
    if kelvin >= ATMOSPHERE_THIN_K:
        return 'thin'
    return 'none'


def choose_biome(band, temperature_zone, moisture, mineral):
    if mineral > 0.77:
        return 'mineral-ridge'
    if band == 'light' and temperature_zone == 'hot':
        return 'sunscorch'
    if band == 'dark' and temperature_zone in ('cold', 'frozen'):
        return 'night-ice'
    if moisture > 0.62 and band != 'light':
        return 'twilight-marsh'
    if moisture > 0.5:
        return 'temperate-basin'
    return 'barren-plain'


def select_terrain(biome, temperature_zone, moisture, rng):
    roll = rng.advance()

    if biome == 'night-ice':
        return 'ice' if roll < 0.82 else 'soil'
    if biome == 'sunscorch':
        return 'soil' if roll < 0.9 else 'ice'
    if biome == 'twilight-marsh':
        if roll < 0.52:
            return 'liquid'
        return 'soil' if roll < 0.9 else 'ice'
    if biome == 'temperate-basin':
        if roll < 0.32:
            return 'liquid'
        return 'soil' if roll < 0.88 else 'ice'

    if temperature_zone == 'frozen':
        return 'ice'
    if moisture > 0.7 and roll < 0.35:
        return 'liquid'
    return 'soil' if roll < 0.82 else 'ice'


def normalize_gas_fractions(gases):
    """Clamp negatives and rescale the five fractions to sum to 1."""
    raw = {key: max(0.0, gases.get(key, 0.0)) for key in GAS_KEYS}
    total = sum(raw.values())
    if total <= 0:
        return {'n2': 1.0, 'co2': 0.0, 'o2': 0.0, 'ch4': 0.0, 'inert': 0.0}
    return {key: value / total for key, value in raw.items()}


def create_atmospheric_gases(planet_def, band, terrain, biome, rng):
    gases = dict(planet_def['gas_profile'])

    if band == 'light':
        gases['co2'] += 0.02
        gases['ch4'] -= 0.015
        gases['o2'] += 0.01
    elif band == 'dark':
        gases['ch4'] += 0.03
        gases['o2'] -= 0.015

    if terrain == 'liquid':
        gases['o2'] += 0.01
    if biome == 'mineral-ridge':
        gases['inert'] += 0.02
    if biome == 'night-ice':
        gases['co2'] += 0.01

    gases['co2'] += (rng.advance() - 0.5) * 0.01
    gases['ch4'] += (rng.advance() - 0.5) * 0.008
    gases['o2'] += (rng.advance() - 0.5) * 0.006

    return normalize_gas_fractions(gases)


def estimate_atmospheric_mass(planet_def, kelvin, atmosphere, band, terrain, rng):
    mass = planet_def['atmospheric_mass_base']

    if atmosphere == 'thick':
        mass *= 1.1
    elif atmosphere == 'thin':
        mass *= 0.85
    else:
        mass *= 0.3

    if band == 'light':
        mass *= 0.95
    elif band == 'dark':
        mass *= 1.05
    if terrain == 'liquid':
        mass *= 1.08
    if kelvin < 130:
        mass *= 0.75

    mass *= 0.9 + rng.advance() * 0.2
    return max(0.05, mass)


def calculate_biomass_rate(planet_def, temperature_zone, terrain, biome, atmosphere, rng):
    rate = planet_def['base_biomass_rate']

    rate *= {'temperate': 1.2, 'hot': 0.8, 'cold': 0.6, 'frozen': 0.2}.get(temperature_zone, 1.0)
    rate *= {'liquid': 1.3, 'ice': 0.5}.get(terrain, 1.0)
    rate *= {'twilight-marsh': 1.2, 'sunscorch': 0.75,
             'night-ice': 0.6, 'mineral-ridge': 0.9}.get(biome, 1.0)
    rate *= {'thick': 1.2, 'thin': 0.8, 'none': 0.4}[atmosphere]

    return rate * (0.8 + rng.advance() * 0.4)


def calculate_predator_strength(planet_def, temperature_zone, terrain, has_vein, rng):
    strength = planet_def['predator_base_strength']
    if temperature_zone == 'hot':
        strength *= 1.3
    elif temperature_zone == 'frozen':
        strength *= 0.7
    if terrain == 'liquid':
        strength *= 1.2
    if has_vein:
        strength *= 1.1
    return math.floor(strength * (0.8 + rng.advance() * 0.4))


# ============================================================================
# Planets and zones
# ============================================================================

def generate_zones(planet_def, target_count=Config.ZONE_TARGET_COUNT):
    """
    Generate the zones of one planet.

    Args:
        planet_def: Planet definition from the game data table
        target_count: Number of zones to carve

    Returns:
        List of zone dicts with neighbor_ids filled in
    """
    planet_id = planet_def['id']
    id_length = len(planet_id)
    id_char = ord(planet_id[0])
    rng = SeededRandom(planet_seed(planet_id))

    positions = shuffle_positions(generate_organic_hex_blob(target_count, rng), rng)
    keys = [(q, r) for q, r, _ in positions]

    qs = [q for q, _ in keys]
    rs = [r for _, r in keys]
    mid_q = (min(qs) + max(qs)) / 2
    span_q = max(1, (max(qs) - min(qs)) / 2)
    mid_r = (min(rs) + max(rs)) / 2
    span_r = max(1, (max(rs) - min(rs)) / 2)

    moisture_raw = {}
    mineral_raw = {}
    for q, r in keys:
        moisture_raw[(q, r)] = (
            0.65 * coordinate_noise(q, r, 11 + id_length) +
            0.35 * coordinate_noise(math.floor(q * 0.5), math.floor(r * 0.5), 29 + id_char)
        )
        mineral_base = (
            0.5 * coordinate_noise(q, r, 73 + id_length) +
            0.5 * coordinate_noise(math.floor(q * 0.35), math.floor(r * 0.35), 131 + id_char)
        )
        mineral_raw[(q, r)] = 1 - abs(mineral_base * 2 - 1)

    moisture_field = smooth_field(keys, moisture_raw, 2)
    mineral_field = smooth_field(keys, mineral_raw, 2)

    zones = []
    for index, (q, r, s) in enumerate(positions):
        normalized_q = (q - mid_q) / span_q
        latitude = (r - mid_r) / span_r
        signal = (normalized_q + latitude * 0.08 +
                  (coordinate_noise(q, r, 1709 + id_char) - 0.5) * 0.22)
        band = get_insolation_band(signal)
        temperature_zone, kelvin = calculate_temperature(
            band, latitude, planet_def['base_temperature_k'], rng)

        moisture = moisture_field.get((q, r), 0.5)
        mineral = mineral_field.get((q, r), 0.5)
        biome = choose_biome(band, temperature_zone, moisture, mineral)
        atmosphere = derive_atmosphere(kelvin)
        terrain = select_terrain(biome, temperature_zone, moisture, rng)
        atmospheric_mass = estimate_atmospheric_mass(planet_def, kelvin, atmosphere, band, terrain, rng)
        gases = create_atmospheric_gases(planet_def, band, terrain, biome, rng)
        has_vein = mineral > 0.72

        biomass_rate = calculate_biomass_rate(planet_def, temperature_zone, terrain, biome, atmosphere, rng)
        predator_strength = calculate_predator_strength(planet_def, temperature_zone, terrain, has_vein, rng)

        continent_index = index // ZONES_PER_CONTINENT
        region_index = (index % ZONES_PER_CONTINENT) // ZONES_PER_REGION
        zones.append({
            'id': f'{planet_id}-zone-{index}',
            'name': generate_zone_name(index),
            'planet_id': planet_id,
            'continent_id': f'{planet_id}-continent-{continent_index}',
            'region_id': f'{planet_id}-region-{region_index}',
            'state': 'unexplored',
            'progress': 0,
            'owned_by_swarm': False,
            'biomass_rate': biomass_rate,
            'biomass_available': math.floor(biomass_rate * 1000),
            'predators': {'strength': predator_strength, 'defeated': False},
            'assigned_workers': [],
            'hex_q': q,
            'hex_r': r,
            'hex_s': s,
            'terrain_type': terrain,
            'temperature_zone': temperature_zone,
            'temperature_kelvin': round(kelvin),
            'atmosphere': atmosphere,
            'insolation_band': band,
            'biome': biome,
            'has_mineral_vein': has_vein,
            'atmospheric_mass': atmospheric_mass,
            'atmospheric_gases': gases,
            'neighbor_ids': [],
            'continent_index': continent_index,
            'region_index': region_index,
            'zone_index': index % ZONES_PER_REGION,
        })

    zone_by_coord = {(zone['hex_q'], zone['hex_r']): zone for zone in zones}
    for zone in zones:
        for neighbor_key in hex_neighbors(zone['hex_q'], zone['hex_r']):
            neighbor = zone_by_coord.get(neighbor_key)
            if neighbor is not None:
                zone['neighbor_ids'].append(neighbor['id'])

    return zones


def generate_moons(planet_id, count, names=None):
    names = names if names is not None else get_game_data_loader().get_moon_names()
    return [
        {
            'id': f'{planet_id}-moon-{i}',
            'name': names[i] if i < len(names) else f'Moon {i + 1}',
            'distance': 10000 + i * 5000,
        }
        for i in range(count)
    ]


def generate_planet(planet_def, index, planet_count, target_count=Config.ZONE_TARGET_COUNT):
    """Build one planet record, positioned at game time 0."""
    initial_angle = index / planet_count * math.pi * 2
    x, y = get_orbital_solver().get_planet_position(
        planet_def['distance_au'],
        planet_def['orbital_period_days'],
        planet_def['eccentricity'],
        initial_angle,
        0,
    )
    # Tidally locked: the planet day is its orbital period, compressed 6x
    day_length_ticks = round(planet_def['orbital_period_days'] * 24 / 6 * Config.TICKS_PER_HOUR)

    return {
        'id': planet_def['id'],
        'name': f"{planet_def['name']} ({planet_def['trappist_id']})",
        'trappist_id': planet_def['trappist_id'],
        'description': planet_def['description'],
        'distance_au': planet_def['distance_au'],
        'orbital_period': planet_def['orbital_period_days'],
        'eccentricity': planet_def['eccentricity'],
        'initial_angle_rad': initial_angle,
        'day_length_ticks': day_length_ticks,
        'discovered': True,
        'accessible': planet_def['id'] == Config.HOME_PLANET_ID,
        'zones': generate_zones(planet_def, target_count),
        'moons': generate_moons(planet_def['id'], planet_def['moon_count']),
        'x': x,
        'y': y,
    }


def generate_trappist1_system(target_count=Config.ZONE_TARGET_COUNT):
    """Generate all seven planets with their zones and moons."""
    definitions = get_game_data_loader().get_planet_definitions()
    planets = [
        generate_planet(planet_def, index, len(definitions), target_count)
        for index, planet_def in enumerate(definitions)
    ]
    logger.debug("Generated %d planets with %d zones",
                 len(planets), sum(len(p['zones']) for p in planets))
    return planets


def get_planet(planets, planet_id):
    for planet in planets:
        if planet['id'] == planet_id:
            return planet
    return None


def get_zone(planets, zone_id):
    for planet in planets:
        for zone in planet['zones']:
            if zone['id'] == zone_id:
                return zone
    return None


def get_starting_zone(planets):
    """Auto-conquer and return the first zone of the home planet."""
    home = get_planet(planets, Config.HOME_PLANET_ID)
    if home is None:
        raise ValueError(f"Home planet not found: {Config.HOME_PLANET_ID}")

    zone = home['zones'][0]
    zone['state'] = 'harvesting'
    zone['progress'] = 100
    zone['owned_by_swarm'] = True
    zone['predators'] = {'strength': 0, 'defeated': True}
    return zone
