#!/usr/bin/env python3
"""Run script for the TRAPPIST-1 swarm game server."""
import os

from trappist_swarm.app import create_app

if __name__ == '__main__':
    app = create_app('development')

    # Initialize database
    with app.app_context():
        from trappist_swarm.models import db
        db.create_all()
        app.logger.info("Database initialized.")

    port = int(os.environ.get('PORT', 5001))
    app.logger.info(f"Starting swarm game server on http://localhost:{port}")
    app.run(debug=True, host='0.0.0.0', port=port)
