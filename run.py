#!/usr/bin/env python3
"""
ShipGate Application Entry Point
"""
import os
import logging
from shipgate import create_app

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

# Get configuration from environment
config_name = os.getenv('FLASK_CONFIG', 'development')

# Create application
app = create_app(config_name)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5001)),
        debug=app.config.get('DEBUG', False),
        use_reloader=False
    )
