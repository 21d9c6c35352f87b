"""Tests for repairing saved planets against the canonical world."""
import copy
import logging

import pytest

from trappist_swarm.save_normalizer import (
    boolean_or,
    choice_or,
    finite_or,
    gas_fractions_or,
    is_finite_number,
    normalize_moons,
    normalize_planets_from_save,
    normalize_zone,
    positive_or,
    predators_or,
    string_list_or,
    string_or,
)
from trappist_swarm.zone_lifecycle import get_zone_info


@pytest.fixture
def template_zone(canonical):
    return canonical[3]['zones'][7]


class TestValueHelpers:
    @pytest.mark.parametrize('value,expected', [
        (1, True),
        (0.5, True),
        (-3, True),
        (float('nan'), False),
        (float('inf'), False),
        (None, False),
        ('4', False),
        (True, False),
    ])
    def test_is_finite_number(self, value, expected):
        assert is_finite_number(value) is expected

    def test_finite_or(self):
        assert finite_or(2.5, 9) == 2.5
        assert finite_or(float('nan'), 9) == 9
        assert finite_or(None, 9) == 9

    def test_boolean_or(self):
        assert boolean_or(False, True) is False
        assert boolean_or(0, True) is True

    def test_string_list_or(self):
        assert string_list_or(['a', 3, 'b'], ['x']) == ['a', 'b']
        assert string_list_or([1, 2], ['x']) == ['x']
        assert string_list_or('a', ['x']) == ['x']

    def test_positive_or(self):
        assert positive_or(0.5, 9) == 0.5
        assert positive_or(0, 9) == 9
        assert positive_or(-2, 9) == 9

    def test_string_or(self):
        assert string_or('Ridge', 'x') == 'Ridge'
        assert string_or(None, 'x') == 'x'

    def test_predators_or(self):
        fallback = {'strength': 12, 'defeated': False}
        assert predators_or({'strength': 3, 'defeated': True}, fallback) == {'strength': 3, 'defeated': True}
        assert predators_or({'strength': None}, fallback) == fallback
        assert predators_or(None, fallback) == fallback

    def test_choice_or(self):
        assert choice_or('dark', ('light', 'dark'), 'light') == 'dark'
        assert choice_or('dusk', ('light', 'dark'), 'light') == 'light'

    def test_gas_fractions_or(self):
        fallback = {'n2': 1.0, 'co2': 0.0, 'o2': 0.0, 'ch4': 0.0, 'inert': 0.0}
        gases = gas_fractions_or({'n2': 2, 'co2': 2, 'o2': 0, 'ch4': 0, 'inert': 0}, fallback)
        assert gases == pytest.approx({'n2': 0.5, 'co2': 0.5, 'o2': 0.0, 'ch4': 0.0, 'inert': 0.0})
        assert gas_fractions_or({'n2': 1.0}, fallback) == fallback
        assert gas_fractions_or({'n2': float('nan'), 'co2': 0, 'o2': 0, 'ch4': 0, 'inert': 0}, fallback) == fallback
        assert gas_fractions_or('air', fallback) == fallback


class TestNormalizeZone:
    def test_missing_zone_uses_template(self, template_zone):
        zone = normalize_zone(None, template_zone)
        assert zone == template_zone
        assert zone is not template_zone

    def test_progress_kept(self, template_zone):
        saved = dict(copy.deepcopy(template_zone), state='converting', progress=42.5,
                     biomass_available=12, assigned_workers=['worker-3'])
        zone = normalize_zone(saved, template_zone)
        assert zone['state'] == 'converting'
        assert zone['progress'] == 42.5
        assert zone['biomass_available'] == 12
        assert zone['assigned_workers'] == ['worker-3']

    def test_corrupted_numbers_restored(self, template_zone):
        saved = dict(copy.deepcopy(template_zone), hex_q=None, temperature_kelvin=float('nan'), progress='lots')
        zone = normalize_zone(saved, template_zone)
        assert zone['hex_q'] == template_zone['hex_q']
        assert zone['temperature_kelvin'] == template_zone['temperature_kelvin']
        assert zone['progress'] == template_zone['progress']

    def test_bad_enums_restored(self, template_zone):
        saved = dict(copy.deepcopy(template_zone), biome='lava_lake', insolation_band=7, neighbor_ids=None,
                     atmospheric_gases={'n2': 1})
        zone = normalize_zone(saved, template_zone)
        assert zone['biome'] == template_zone['biome']
        assert zone['insolation_band'] == template_zone['insolation_band']
        assert zone['neighbor_ids'] == template_zone['neighbor_ids']
        assert zone['atmospheric_gases'] == template_zone['atmospheric_gases']

    def test_null_structure_restored(self, template_zone):
        nulls = ('name', 'planet_id', 'continent_id', 'region_id', 'state',
                 'terrain_type', 'temperature_zone', 'atmosphere', 'predators', 'assigned_workers')
        saved = dict(copy.deepcopy(template_zone), **{key: None for key in nulls})
        zone = normalize_zone(saved, template_zone)
        for key in nulls:
            assert zone[key] == template_zone[key], key

    def test_unknown_labels_restored(self, template_zone):
        saved = dict(copy.deepcopy(template_zone), terrain_type='lava', temperature_zone=3,
                     atmosphere='soup', state='sleeping', name=['Ridge'])
        zone = normalize_zone(saved, template_zone)
        assert zone['terrain_type'] == template_zone['terrain_type']
        assert zone['temperature_zone'] == template_zone['temperature_zone']
        assert zone['atmosphere'] == template_zone['atmosphere']
        assert zone['state'] == template_zone['state']
        assert zone['name'] == template_zone['name']

    def test_damaged_workers_and_predators_still_display(self, template_zone):
        saved = dict(copy.deepcopy(template_zone), state='combating',
                     assigned_workers=None, predators={'strength': None, 'defeated': 'no'})
        zone = normalize_zone(saved, template_zone)

        info = get_zone_info(zone)
        assert info['workers_assigned'] == 0
        assert info['predator_strength'] == template_zone['predators']['strength']
        assert info['predator_label'] != 'Unknown'
        assert zone['predators']['defeated'] is False

    def test_assigned_workers_kept_as_strings(self, template_zone):
        saved = dict(copy.deepcopy(template_zone), assigned_workers=['worker-4', 7, None])
        assert normalize_zone(saved, template_zone)['assigned_workers'] == ['worker-4']

    def test_ownership_defaults(self, template_zone):
        assert normalize_zone({'state': 'harvesting'}, template_zone)['owned_by_swarm'] is True
        assert normalize_zone({'state': 'unexplored'}, template_zone)['owned_by_swarm'] is False
        assert normalize_zone({'state': 'harvesting', 'owned_by_swarm': False}, template_zone)['owned_by_swarm'] is False

    def test_template_untouched(self, template_zone):
        before = copy.deepcopy(template_zone)
        zone = normalize_zone({'state': 'harvesting'}, template_zone)
        zone['neighbor_ids'].append('extra')
        zone['atmospheric_gases']['n2'] = 42
        assert template_zone == before


class TestNormalizeMoons:
    def test_by_position(self):
        template = [{'id': 'x-moon-0', 'name': 'Alpha', 'distance': 10000}]
        moons = normalize_moons([{'name': 'Renamed'}, None], template)
        assert moons == [
            {'id': 'x-moon-0', 'name': 'Renamed', 'distance': 10000},
            {'id': 'moon-1', 'name': 'Moon 2', 'distance': 10000},
        ]

    def test_not_a_list(self):
        template = [{'id': 'x-moon-0', 'name': 'Alpha', 'distance': 10000}]
        assert normalize_moons(None, template) == template


class TestNormalizePlanets:
    def test_clean_save_round_trips(self, world, canonical):
        planets = normalize_planets_from_save(world, canonical)
        for saved, loaded in zip(world, planets):
            saved_zones, loaded_zones = saved.pop('zones'), loaded.pop('zones')
            assert loaded == saved
            for saved_zone, loaded_zone in zip(saved_zones, loaded_zones):
                # Gas fractions are re-normalized on load
                assert loaded_zone.pop('atmospheric_gases') == pytest.approx(saved_zone.pop('atmospheric_gases'))
                assert loaded_zone == saved_zone

    def test_garbage_rebuilds_canonical(self, canonical, caplog):
        with caplog.at_level(logging.WARNING, logger='trappist_swarm.save_normalizer'):
            planets = normalize_planets_from_save('not planets', canonical)
        assert planets == canonical
        assert planets[0] is not canonical[0]
        assert 'not a list' in caplog.text

    def test_missing_planets_filled_in_order(self, world, canonical):
        partial = [world[5], world[1]]
        planets = normalize_planets_from_save(partial, canonical)
        assert [planet['id'] for planet in planets] == [planet['id'] for planet in canonical]

    def test_unknown_planets_dropped(self, world, canonical):
        planets = normalize_planets_from_save(world + [{'id': 'vulcan', 'zones': []}], canonical)
        assert 'vulcan' not in [planet['id'] for planet in planets]

    def test_zones_matched_by_id(self, world, canonical):
        asimov = world[3]
        asimov['zones'] = list(reversed(asimov['zones']))[:10]
        asimov['zones'][0]['state'] = 'saturated'
        saved_id = asimov['zones'][0]['id']

        planets = normalize_planets_from_save(world, canonical)
        zones = planets[3]['zones']
        assert [zone['id'] for zone in zones] == [zone['id'] for zone in canonical[3]['zones']]
        assert next(zone for zone in zones if zone['id'] == saved_id)['state'] == 'saturated'

    def test_planet_fields_repaired(self, world, canonical):
        world[2]['eccentricity'] = float('nan')
        world[2]['day_length_ticks'] = 0.2
        world[4]['day_length_ticks'] = 'long'
        world[0]['day_length_ticks'] = 7.5
        planets = normalize_planets_from_save(world, canonical)
        assert planets[2]['eccentricity'] == canonical[2]['eccentricity']
        assert planets[2]['day_length_ticks'] == 1
        assert planets[4]['day_length_ticks'] == canonical[4]['day_length_ticks']
        assert planets[0]['day_length_ticks'] == 8

    def test_orbits_kept_solvable(self, world, canonical):
        world[6]['eccentricity'] = 0.95
        world[5]['eccentricity'] = -0.01
        world[4]['orbital_period'] = 0
        world[3]['distance_au'] = -1.5
        world[1]['eccentricity'] = 0.05
        planets = normalize_planets_from_save(world, canonical)
        assert planets[6]['eccentricity'] == canonical[6]['eccentricity']
        assert planets[5]['eccentricity'] == canonical[5]['eccentricity']
        assert planets[4]['orbital_period'] == canonical[4]['orbital_period']
        assert planets[3]['distance_au'] == canonical[3]['distance_au']
        assert planets[1]['eccentricity'] == 0.05

    def test_null_planet_labels_restored(self, world, canonical):
        world[2].update(name=None, trappist_id=None, accessible=None, discovered='yes')
        world[3]['accessible'] = False
        planets = normalize_planets_from_save(world, canonical)
        assert planets[2]['name'] == canonical[2]['name']
        assert planets[2]['trappist_id'] == canonical[2]['trappist_id']
        assert planets[2]['accessible'] is canonical[2]['accessible']
        assert planets[2]['discovered'] is True
        assert planets[3]['accessible'] is False

    def test_corrupted_hex_with_progress(self, world, canonical):
        zone = world[3]['zones'][12]
        zone.update(state='harvesting', progress=72, biomass_available=4321, hex_q=float('nan'), nest='deep')

        loaded = normalize_planets_from_save(world, canonical)[3]['zones'][12]

        assert loaded['state'] == 'harvesting'
        assert loaded['progress'] == 72
        assert loaded['biomass_available'] == 4321
        assert loaded['nest'] == 'deep'
        assert loaded['hex_q'] == canonical[3]['zones'][12]['hex_q']
        assert loaded['hex_q'] + loaded['hex_r'] + loaded['hex_s'] == 0

    def test_inputs_not_mutated(self, world, canonical):
        world[3]['zones'][0]['hex_q'] = None
        saved = copy.deepcopy(world)
        pristine = copy.deepcopy(canonical)
        planets = normalize_planets_from_save(world, canonical)
        planets[3]['zones'][0]['progress'] = 77
        assert world == saved
        assert canonical == pristine
