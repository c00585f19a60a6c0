#!/usr/bin/env python3
"""
Flask web application for the cube puzzle geometry generator
Serves cubie meshes as JSON for live previews and as STL downloads
"""

from flask import Flask, request, send_file, jsonify
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import os
import io
import logging
import sys
import time
from functools import wraps

from puzzle import (
    GeoConfig,
    DEFAULTS,
    PARTS,
    PRESETS,
    BLOCK_TYPES,
    COLOR_SCHEMES,
    SOLID_COLORS,
    build_part,
)

# Import configuration
from config import get_config

# Initialize Flask app
app = Flask(__name__)

# Load configuration
config_class = get_config()
app.config.from_object(config_class)
config_class.init_app(app)

# Request parameter name -> (GeoConfig field, min, max)
NUMERIC_PARAMETERS = {
    'roundedness': ('block_r', 0.0, 1.0),
    'bevel_width': ('bevel_w', 0.0, 1.0),
    'face_cover': ('face_cover', 0.0, 1.0),
    'face_radius': ('face_r', 0.0, 1.0),
    'face_edge_radius': ('face_edge_r', 0.0, 1.0),
    'ring_width': ('face_ring_w', 0.0, 1.0),
    'extrude': ('face_extrude', 0.0, 0.5),
    'spread': ('spread', 1.0, 2.0),
}

# Parts small enough to return as JSON
MESH_PARTS = ['body', 'sticker', 'cubie']


# Initialize logging
def setup_logging():
    """Configure application logging"""
    log_level = getattr(logging, app.config['LOG_LEVEL'].upper(), logging.INFO)

    # Create formatter
    formatter = logging.Formatter(
        '[%(asctime)s] %(levelname)s in %(module)s: %(message)s'
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    # Configure app logger
    app.logger.setLevel(log_level)
    app.logger.addHandler(console_handler)

    # File handler if specified
    if app.config.get('LOG_FILE'):
        file_handler = logging.FileHandler(app.config['LOG_FILE'])
        file_handler.setFormatter(formatter)
        app.logger.addHandler(file_handler)

    # Suppress werkzeug logs in production
    if not app.config.get('DEBUG'):
        logging.getLogger('werkzeug').setLevel(logging.WARNING)

setup_logging()

# Initialize CORS if enabled
if app.config.get('CORS_ENABLED'):
    CORS(app, origins=app.config.get('CORS_ORIGINS', '*'))
    app.logger.info(f"CORS enabled for origins: {app.config.get('CORS_ORIGINS')}")

# Initialize rate limiter if enabled
limiter = None
if app.config.get('RATELIMIT_ENABLED'):
    limiter = Limiter(
        app=app,
        key_func=get_remote_address,
        storage_uri=app.config.get('RATELIMIT_STORAGE_URL', 'memory://'),
        default_limits=[app.config.get('RATELIMIT_DEFAULT', '60 per minute')]
    )
    app.logger.info("Rate limiting enabled")


def request_parameters():
    """JSON body of the current request, or an empty dict"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_position(value):
    """Validate a cubie grid position given as a list of three -1/0/1 values"""
    if value is None:
        return (1, 1, 1)
    if not isinstance(value, (list, tuple)) or len(value) != 3:
        raise ValueError('Position must be a list of three integers')
    if any(p not in (-1, 0, 1) for p in value):
        raise ValueError('Position values must be -1, 0 or 1')
    return tuple(int(p) for p in value)


def config_from_parameters(params):
    """Build a GeoConfig from a preset plus request overrides"""
    overrides = {}
    for name, (field, _, _) in NUMERIC_PARAMETERS.items():
        if params.get(name) is not None:
            overrides[field] = float(params[name])
    for name in ('block_type', 'color_scheme', 'body_color'):
        if params.get(name) is not None:
            overrides[name] = params[name]
    if params.get('add_stickers') is not None:
        overrides['add_stickers'] = bool(params['add_stickers'])

    preset = params.get('preset') or app.config.get('DEFAULT_PRESET', 'default')
    return GeoConfig.from_preset(preset, **overrides)


# Utility decorators
def log_request(f):
    """Decorator to log requests"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        start_time = time.time()
        try:
            result = f(*args, **kwargs)
            duration = time.time() - start_time
            app.logger.info(f"{request.method} {request.path} completed in {duration:.2f}s")
            return result
        except Exception as e:
            duration = time.time() - start_time
            app.logger.error(f"{request.method} {request.path} failed in {duration:.2f}s: {str(e)}")
            raise
    return decorated_function


def validate_parameters(f):
    """Decorator to validate input parameters"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        params = request_parameters()
        try:
            for name, (_, low, high) in NUMERIC_PARAMETERS.items():
                if params.get(name) is None:
                    continue
                value = float(params[name])
                if not (low <= value <= high):
                    return jsonify({'error': f'{name} must be between {low} and {high}'}), 400

            if params.get('preset') is not None and params['preset'] not in PRESETS:
                return jsonify({'error': f"Unknown preset: {params['preset']}"}), 400
            if params.get('block_type') is not None and params['block_type'] not in BLOCK_TYPES:
                return jsonify({'error': f"Invalid block type: {params['block_type']}"}), 400
            if params.get('color_scheme') is not None and params['color_scheme'] not in COLOR_SCHEMES:
                return jsonify({'error': f"Unknown color scheme: {params['color_scheme']}"}), 400
            if params.get('body_color') is not None and params['body_color'] not in SOLID_COLORS:
                return jsonify({'error': f"Unknown body color: {params['body_color']}"}), 400

            parse_position(params.get('position'))

            return f(*args, **kwargs)
        except (ValueError, TypeError) as e:
            return jsonify({'error': f'Invalid parameter value: {str(e)}'}), 400

    return decorated_function


# Routes
@app.route('/health')
def health_check():
    """Health check endpoint for monitoring"""
    return jsonify({
        'status': 'healthy',
        'service': 'cube-geometry',
    }), 200


@app.route('/api/info')
def get_info():
    """Return defaults, presets, parts and color schemes"""
    return jsonify({
        'parts': PARTS,
        'block_types': BLOCK_TYPES,
        'defaults': DEFAULTS,
        'default_preset': app.config.get('DEFAULT_PRESET', 'default'),
        'presets': {name: GeoConfig.from_preset(name).to_dict() for name in PRESETS},
        'color_schemes': {name: dict(colors) for name, colors in COLOR_SCHEMES.items()},
        'solid_colors': SOLID_COLORS,
        'limits': {
            'max_output_triangles': app.config.get('MAX_OUTPUT_TRIANGLES'),
        },
    })


@app.route('/api/mesh', methods=['POST'])
@log_request
@validate_parameters
def mesh_json():
    """Return one part of one cubie as JSON mesh data"""
    params = request_parameters()
    part = params.get('part', 'cubie')
    if part not in MESH_PARTS:
        return jsonify({'error': f'Part must be one of {MESH_PARTS}'}), 400

    try:
        geo = config_from_parameters(params)
        position = parse_position(params.get('position'))
        result = build_part(geo, part, position)
    except ValueError as e:
        app.logger.warning(f"Mesh request rejected: {str(e)}")
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        app.logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return jsonify({'error': 'Internal server error. Please try again.'}), 500

    include_normals = bool(params.get('normals', True))
    app.logger.info(f"Built {part} at {position}: {result.triangle_count} triangles")
    return jsonify({
        'part': part,
        'position': list(position),
        'config': geo.to_dict(),
        'mesh': result.to_dict(include_normals=include_normals),
    })


@app.route('/api/export', methods=['POST'])
@log_request
@validate_parameters
def export_stl():
    """Build a part or the whole puzzle and return it as an STL download"""

    # Apply rate limiting to the export endpoint
    if limiter and app.config.get('RATELIMIT_ENABLED'):
        try:
            limiter.limit(app.config.get('RATELIMIT_PROCESSING', '10 per minute'))(lambda: None)()
        except Exception:
            return jsonify({'error': 'Rate limit exceeded. Please try again later.'}), 429

    params = request_parameters()
    part = params.get('part', 'puzzle')
    if part not in PARTS:
        return jsonify({'error': f'Part must be one of {PARTS}'}), 400
    ascii_stl = bool(params.get('ascii', False))

    try:
        geo = config_from_parameters(params)
        position = parse_position(params.get('position'))

        app.logger.info(f"Export request - part={part}, position={position}, config={geo.to_dict()}")
        result = build_part(geo, part, position)

        max_triangles = app.config.get('MAX_OUTPUT_TRIANGLES', 2_000_000)
        if result.triangle_count > max_triangles:
            app.logger.warning(f"Export rejected: {result.triangle_count:,} triangles > {max_triangles:,}")
            return jsonify({
                'error': f'Output has {result.triangle_count} triangles, limit is {max_triangles}',
            }), 400

        output_filename = f'{part}.stl'
        output_data = result.stl_bytes(name=part, ascii=ascii_stl)
    except ValueError as e:
        app.logger.warning(f"Export rejected: {str(e)}")
        return jsonify({'error': str(e)}), 400
    except MemoryError:
        app.logger.error("Out of memory during export")
        return jsonify({'error': 'Out of memory. Try a lower roundedness or fewer stickers.'}), 500
    except Exception as e:
        app.logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return jsonify({'error': 'Internal server error. Please try again.'}), 500

    app.logger.info(f"Exported {part} - output size: {len(output_data) / 1024:.1f} KB")

    response = send_file(
        io.BytesIO(output_data),
        mimetype='application/octet-stream',
        as_attachment=True,
        download_name=output_filename
    )
    response.headers['X-Triangle-Count'] = str(result.triangle_count)
    response.headers['X-Vertex-Count'] = str(result.vertex_count)
    return response


# Error handlers
@app.errorhandler(404)
def not_found(error):
    """Handle 404 errors"""
    return jsonify({'error': 'Not found'}), 404


@app.errorhandler(413)
def request_entity_too_large(error):
    """Handle request too large errors"""
    max_size_kb = app.config['MAX_CONTENT_LENGTH'] / 1024
    return jsonify({'error': f'Request too large. Maximum size is {max_size_kb:.0f}KB'}), 413


@app.errorhandler(500)
def internal_error(error):
    """Handle 500 errors"""
    app.logger.error(f"Internal error: {error}")
    return jsonify({'error': 'Internal server error'}), 500


# Application factory pattern support
def create_app(config_name=None):
    """Application factory for testing and production"""
    if config_name:
        selected = get_config(config_name)
        app.config.from_object(selected)
        selected.init_app(app)
    return app


if __name__ == '__main__':
    # Development server
    port = int(os.environ.get('PORT', 8000))
    app.logger.info(f"Starting development server on port {port}")
    app.logger.info(f"Access the API at: http://localhost:{port}/api/info")
    app.run(host='0.0.0.0', port=port, debug=app.config.get('DEBUG', False))
