"""Flask application entry point."""
from flask import Flask
from flask_cors import CORS
from flask_migrate import Migrate
import os

from trappist_swarm.config import config
from trappist_swarm.logging_config import configure_logging
from trappist_swarm.models import db
from trappist_swarm.game_data_loader import get_game_data_loader

def create_app(config_name=None):
    """Create and configure Flask application."""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(config[config_name])

    configure_logging(app.config['LOG_LEVEL'])

    # Initialize extensions
    db.init_app(app)
    CORS(app)
    Migrate(app, db)

    # Validate the planet table
    with app.app_context():
        data_loader = get_game_data_loader()
        errors = data_loader.validate_data()
        if errors:
            app.logger.warning(f"Game data validation warnings: {errors}")

    # Register blueprints
    from trappist_swarm.api import game_bp
    app.register_blueprint(game_bp, url_prefix='/api/game')

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return {'error': 'Not found'}, 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return {'error': 'Internal server error'}, 500

    return app

if __name__ == '__main__':
    app = create_app()
    port = int(os.environ.get('PORT', 5001))
    app.run(debug=True, host='0.0.0.0', port=port)
