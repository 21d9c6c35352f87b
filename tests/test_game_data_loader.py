"""Tests for loading and validating the planet table."""
import json

from trappist_swarm.game_data_loader import DEFAULT_GAS_PROFILE, GameDataLoader, get_game_data_loader


def planet_entry(planet_id, **overrides):
    entry = {
        'id': planet_id,
        'name': planet_id.title(),
        'trappist_id': 'x',
        'distance_au': 0.02,
        'orbital_period_days': 3.0,
        'eccentricity': 0.01,
        'base_biomass_rate': 0.2,
        'predator_base_strength': 50,
        'moon_count': 1,
    }
    entry.update(overrides)
    return entry


def write_system(tmp_path, planets, moon_names=('Alpha', 'Beta')):
    (tmp_path / 'trappist1_system.json').write_text(
        json.dumps({'planets': planets, 'moon_names': list(moon_names)}), encoding='utf-8')
    return GameDataLoader(tmp_path)


class TestGameDataLoader:
    def test_bundled_table_is_valid(self):
        loader = get_game_data_loader()
        assert loader.validate_data() == []
        assert [planet['id'] for planet in loader.get_planet_definitions()][0] == 'roche'
        assert loader.get_planet_definition('asimov')['trappist_id'] == 'e'
        assert loader.get_planet_definition('pluto') is None

    def test_defaults_filled(self, tmp_path):
        loader = write_system(tmp_path, [planet_entry('a', gas_profile={'n2': 0.5})])
        planet = loader.get_planet_definition('a')
        assert planet['description'] == ''
        assert planet['gas_profile'] == {**DEFAULT_GAS_PROFILE, 'n2': 0.5}

    def test_problems_reported(self, tmp_path):
        planets = [
            planet_entry('a', eccentricity=0.2),
            planet_entry('a', orbital_period_days=0),
            planet_entry('c', moon_count=3),
            {'id': 'd'},
        ]
        errors = write_system(tmp_path, planets).validate_data()
        assert 'Expected 7 planets, found 4' in errors
        assert 'Duplicate planet IDs found' in errors
        assert any('eccentricity out of range' in error for error in errors)
        assert any('non-positive orbital period' in error for error in errors)
        assert any(error.startswith('Planet d missing fields') for error in errors)
        assert 'Not enough moon names for the largest moon count' in errors
