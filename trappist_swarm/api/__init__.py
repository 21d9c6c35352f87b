"""API blueprints for the swarm service."""
from trappist_swarm.api.game import game_bp

__all__ = ['game_bp']
