"""
Poster Composer - Flask Backend
"""
import os
from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv

# Environment first: LOG_DIR/LOG_LEVEL and POSTER_* are read at import time
load_dotenv()

from logging_config import setup_logging, get_logger

setup_logging()
logger = get_logger('app')

from compose_routes import compose_bp
from poster_config import PlacementConfig

MAX_UPLOAD_MB = int(os.getenv('MAX_UPLOAD_MB', '32'))

app = Flask(__name__)
CORS(app)

app.config['PLACEMENT'] = PlacementConfig.from_env()
app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024

app.register_blueprint(compose_bp)


@app.errorhandler(413)
def upload_too_large(e):
    return jsonify({'error': f'Upload exceeds {MAX_UPLOAD_MB}MB'}), 413


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({'status': 'ok', 'message': 'Poster Composer API is running'})


if __name__ == '__main__':
    port = int(os.getenv('PORT', '5000'))
    logger.info(f"Starting Poster Composer API on port {port}")
    app.run(host='0.0.0.0', port=port, debug=False)
