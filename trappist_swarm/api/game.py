"""Game API endpoints."""
from flask import Blueprint, request, jsonify
from trappist_swarm.models import db, GameSession, SessionAction
from trappist_swarm.game_engine import GameEngine
from trappist_swarm.planet_atmosphere import derive_planet_atmosphere
from trappist_swarm.save_normalizer import normalize_planets_from_save
from trappist_swarm.world_generator import get_planet
from trappist_swarm.zone_lifecycle import get_zone_info

game_bp = Blueprint('game', __name__)

def _request_time(data):
    """Optional client clock (ms); the server clock is used when absent."""
    now_ms = data.get('now_ms')
    if now_ms is None:
        return None
    if isinstance(now_ms, bool) or not isinstance(now_ms, (int, float)):
        raise ValueError('now_ms must be a number')
    return now_ms

@game_bp.route('/start', methods=['POST'])
def start_game():
    """Start a new game session."""
    data = request.get_json(silent=True) or {}
    config = data.get('config', {})

    session = GameSession(game_config=config)
    db.session.add(session)
    db.session.commit()

    engine = GameEngine(session.id, config)
    session.game_state = engine.to_save()
    db.session.commit()

    return jsonify({
        'session_id': session.id,
        'game_state': engine.get_state()
    }), 201

@game_bp.route('/state/<int:session_id>', methods=['GET'])
def get_game_state(session_id):
    """Get current game state."""
    session = db.get_or_404(GameSession, session_id)
    engine = GameEngine.load_from_session(session)
    return jsonify({'game_state': engine.get_state()})

@game_bp.route('/planet/<int:session_id>/<planet_id>', methods=['GET'])
def get_planet_details(session_id, planet_id):
    """Get one planet with its atmosphere summary and zone details."""
    session = db.get_or_404(GameSession, session_id)
    engine = GameEngine.load_from_session(session)

    planet = get_planet(engine.game_data['planets'], planet_id)
    if planet is None:
        return jsonify({'error': f'Unknown planet: {planet_id}'}), 404

    summary = {key: value for key, value in planet.items() if key != 'zones'}
    return jsonify({
        'planet': summary,
        'atmosphere': derive_planet_atmosphere(planet),
        'zones': [get_zone_info(zone) for zone in planet['zones']]
    })

def _advance(catch_up):
    data = request.get_json(silent=True)
    if not data or not data.get('session_id'):
        return jsonify({'error': 'Missing session_id'}), 400

    session = db.get_or_404(GameSession, data['session_id'])
    try:
        now_ms = _request_time(data)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    engine = GameEngine.load_from_session(session)
    result = engine.catch_up(now_ms) if catch_up else engine.apply_tick(now_ms)

    session.game_state = engine.to_save()
    db.session.commit()

    return jsonify({
        'game_state': engine.get_state(),
        'result': result.to_dict()
    })

@game_bp.route('/tick', methods=['POST'])
def tick_game():
    """Advance the simulation up to one game day."""
    return _advance(catch_up=False)

@game_bp.route('/catch_up', methods=['POST'])
def catch_up_game():
    """Advance the simulation over any gap, approximating gaps over a day."""
    return _advance(catch_up=True)

@game_bp.route('/action', methods=['POST'])
def game_action():
    """Perform a player action (set_directive, toggle_egg_production, set_paused)."""
    data = request.get_json(silent=True)
    if not data or not data.get('session_id'):
        return jsonify({'error': 'Missing session_id'}), 400

    session = db.get_or_404(GameSession, data['session_id'])
    engine = GameEngine.load_from_session(session)

    action_type = data.get('action_type')
    action_data = data.get('action_data') or {}

    try:
        result = engine.perform_action(action_type, action_data)
    except ValueError as e:
        db.session.rollback()
        return jsonify({'error': str(e)}), 400

    db.session.add(SessionAction(
        session_id=session.id,
        action_type=action_type,
        action_data=action_data,
        game_time=engine.game_time
    ))
    session.game_state = engine.to_save()
    db.session.commit()

    return jsonify({
        'success': True,
        'game_state': engine.get_state(),
        'result': result
    })

@game_bp.route('/save', methods=['POST'])
def save_game():
    """Store a client-side game state, repairing its planets first."""
    data = request.get_json(silent=True)

    if not data or not data.get('session_id'):
        return jsonify({'error': 'Missing session_id'}), 400

    session = db.get_or_404(GameSession, data['session_id'])

    game_state = data.get('game_state')
    if not isinstance(game_state, dict):
        return jsonify({'error': 'Missing game_state'}), 400

    game_state['planets'] = normalize_planets_from_save(game_state.get('planets'))
    session.game_state = game_state
    db.session.commit()
    return jsonify({'success': True, 'message': 'Game state saved'})
