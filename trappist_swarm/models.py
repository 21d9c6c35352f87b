"""Database models for stored swarm sessions."""
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

class GameSession(db.Model):
    """Game session model."""
    __tablename__ = 'game_sessions'

    id = db.Column(db.Integer, primary_key=True)
    started_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    game_config = db.Column(db.JSON, default=dict)
    game_state = db.Column(db.JSON, default=dict)  # Full game_data snapshot

    actions = db.relationship('SessionAction', backref='session', lazy=True, cascade='all, delete-orphan',
                              order_by='SessionAction.id')

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'started_at': self.started_at.isoformat(),
            'game_config': self.game_config,
            'game_state': self.game_state
        }

class SessionAction(db.Model):
    """Player actions applied to a session, in order."""
    __tablename__ = 'session_actions'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('game_sessions.id'), nullable=False, index=True)
    action_type = db.Column(db.String(50), nullable=False)  # set_directive, toggle_egg_production, set_paused
    action_data = db.Column(db.JSON, nullable=False)
    game_time = db.Column(db.Integer, nullable=False, index=True)  # ticks when applied
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'session_id': self.session_id,
            'action_type': self.action_type,
            'action_data': self.action_data,
            'game_time': self.game_time,
            'created_at': self.created_at.isoformat()
        }
