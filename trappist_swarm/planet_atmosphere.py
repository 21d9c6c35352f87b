"""Planet-wide atmosphere summary built from per-zone gas columns."""
from trappist_swarm.world_generator import GAS_KEYS, INSOLATION_BANDS, normalize_gas_fractions

ATMOSPHERE_ORDER = ('thick', 'thin', 'none')
TOP_CONTRIBUTORS = 8


def _dominant_atmosphere(states):
    """Most common atmosphere state; ties go to the denser state."""
    dominant = 'none'
    best = -1
    for state in ATMOSPHERE_ORDER:
        count = states.count(state)
        if count > best:
            best = count
            dominant = state
    return dominant


def derive_planet_atmosphere(planet):
    """
    Summarize a planet's atmosphere.

    Args:
        planet: Planet dict with generated zones

    Returns:
        Dict with total_mass, pressure_index, composition (normalized,
        mass-weighted), composition_mass, band_summaries and top_contributors
    """
    zones = planet['zones']
    total_mass = sum(max(0.0, zone['atmospheric_mass']) for zone in zones)

    composition_mass = {key: 0.0 for key in GAS_KEYS}
    for zone in zones:
        zone_mass = max(0.0, zone['atmospheric_mass'])
        for key in GAS_KEYS:
            composition_mass[key] += zone_mass * zone['atmospheric_gases'][key]

    band_summaries = []
    for band in INSOLATION_BANDS:
        band_zones = [zone for zone in zones if zone['insolation_band'] == band]
        band_mass = sum(zone['atmospheric_mass'] for zone in band_zones)
        band_summaries.append({
            'band': band,
            'zones': len(band_zones),
            'total_mass': band_mass,
            'mass_share': band_mass / total_mass if total_mass > 0 else 0,
            'average_mass': band_mass / len(band_zones) if band_zones else 0,
            'dominant_atmosphere': _dominant_atmosphere([zone['atmosphere'] for zone in band_zones]),
        })

    heaviest = sorted(zones, key=lambda zone: zone['atmospheric_mass'], reverse=True)
    top_contributors = [
        {
            'zone_id': zone['id'],
            'zone_name': zone['name'],
            'band': zone['insolation_band'],
            'biome': zone['biome'],
            'mass': zone['atmospheric_mass'],
            'mass_share': zone['atmospheric_mass'] / total_mass if total_mass > 0 else 0,
        }
        for zone in heaviest[:TOP_CONTRIBUTORS]
    ]

    return {
        'total_mass': total_mass,
        'pressure_index': total_mass / len(zones) if zones else 0,
        'composition': normalize_gas_fractions(composition_mass),
        'composition_mass': composition_mass,
        'band_summaries': band_summaries,
        'top_contributors': top_contributors,
    }
