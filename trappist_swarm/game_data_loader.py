"""Game data loader for the TRAPPIST-1 planet table."""
import json
import math
from pathlib import Path

REQUIRED_PLANET_FIELDS = (
    'id', 'name', 'trappist_id', 'distance_au', 'orbital_period_days',
    'eccentricity', 'base_biomass_rate', 'predator_base_strength', 'moon_count',
)

GAS_KEYS = ('n2', 'co2', 'o2', 'ch4', 'inert')
EXPECTED_PLANET_COUNT = 7
MAX_ECCENTRICITY = 0.1

# Used when a planet entry omits its environmental profile
DEFAULT_BASE_TEMPERATURE_K = 250
DEFAULT_ATMOSPHERIC_MASS_BASE = 1.0
DEFAULT_GAS_PROFILE = {'n2': 0.72, 'co2': 0.13, 'o2': 0.05, 'ch4': 0.03, 'inert': 0.07}


class GameDataLoader:
    """Loads and caches game data from JSON files."""

    def __init__(self, data_dir=None):
        """Initialize the data loader."""
        if data_dir is None:
            # Assume we're running from project root
            self.data_dir = Path(__file__).parent.parent / 'game_data'
        else:
            self.data_dir = Path(data_dir)

        self._planets = None
        self._moon_names = None

    def load_system(self):
        """Load the planet definitions, in orbital order."""
        if self._planets is None:
            file_path = self.data_dir / 'trappist1_system.json'
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)

            planets = []
            for entry in data['planets']:
                planet = dict(entry)
                planet.setdefault('description', '')
                planet.setdefault('base_temperature_k', DEFAULT_BASE_TEMPERATURE_K)
                planet.setdefault('atmospheric_mass_base', DEFAULT_ATMOSPHERIC_MASS_BASE)
                planet['gas_profile'] = {**DEFAULT_GAS_PROFILE, **planet.get('gas_profile', {})}
                planets.append(planet)

            self._planets = planets
            self._moon_names = list(data.get('moon_names', []))
        return self._planets

    def get_planet_definitions(self):
        """Get all planet definitions."""
        return self.load_system()

    def get_planet_definition(self, planet_id):
        """Get a planet definition by ID."""
        for planet in self.load_system():
            if planet['id'] == planet_id:
                return planet
        return None

    def get_moon_names(self):
        """Get the names handed out to moons, by orbit index."""
        if self._moon_names is None:
            self.load_system()
        return self._moon_names

    def validate_data(self):
        """Validate loaded data structure."""
        errors = []

        planets = self.load_system()
        if not planets:
            errors.append("No planets loaded")
        elif len(planets) != EXPECTED_PLANET_COUNT:
            errors.append(f"Expected {EXPECTED_PLANET_COUNT} planets, found {len(planets)}")

        planet_ids = [p.get('id') for p in planets]
        if len(planet_ids) != len(set(planet_ids)):
            errors.append("Duplicate planet IDs found")

        for planet in planets:
            planet_id = planet.get('id', '?')
            missing = [field for field in REQUIRED_PLANET_FIELDS if field not in planet]
            if missing:
                errors.append(f"Planet {planet_id} missing fields: {', '.join(missing)}")
                continue
            if not 0 <= planet['eccentricity'] < MAX_ECCENTRICITY:
                errors.append(f"Planet {planet_id} eccentricity out of range: {planet['eccentricity']}")
            if planet['orbital_period_days'] <= 0:
                errors.append(f"Planet {planet_id} has non-positive orbital period")
            if not all(math.isfinite(planet['gas_profile'][key]) for key in GAS_KEYS):
                errors.append(f"Planet {planet_id} has a non-finite gas profile")

        if len(self.get_moon_names()) < max((p.get('moon_count', 0) for p in planets), default=0):
            errors.append("Not enough moon names for the largest moon count")

        return errors

# Global instance
_game_data_loader = None

def get_game_data_loader(data_dir=None):
    """Get or create the global game data loader instance."""
    global _game_data_loader
    if _game_data_loader is None:
        _game_data_loader = GameDataLoader(data_dir)
    return _game_data_loader
