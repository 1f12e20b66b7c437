# system_mapper/api.py
import json
import logging
from typing import Any, Dict, Optional

import redis
from flask import Blueprint, Flask, current_app, jsonify, make_response, render_template, request
from flask_cors import CORS  # For Cross-Origin Resource Sharing
from werkzeug.exceptions import HTTPException

from . import __version__
from .config import DefaultConfig, configure_logging, cors_origins
from .storage import MapStore, bootstrap_default_map, connect
from .systemmap import utc_now_iso
from .render import build_render_graph
from .transfer import dumps_export, export_filename
from .commands_core import (
    CommandStatus,
    list_maps_action,
    get_map_action,
    create_map_action,
    update_map_metadata_action,
    delete_map_action,
    add_node_action,
    update_node_action,
    delete_node_action,
    delete_link_action,
    node_connections_action,
    all_connections_action,
    check_map_action,
    import_map_action,
)

logger = logging.getLogger(__name__)

STORE_EXTENSION = "map_store"

HTTP_STATUS = {
    CommandStatus.NOT_FOUND: 404,
    CommandStatus.ALREADY_EXISTS: 400,
    CommandStatus.LIMIT_EXCEEDED: 400,
    CommandStatus.VALIDATION_ERROR: 400,
    CommandStatus.STORE_UNAVAILABLE: 500,
    CommandStatus.ERROR: 500,
}

api = Blueprint("api", __name__)


def _json_error(msg: str, status: int = 500):
    return make_response(jsonify({"error": str(msg)}), int(status))


def _failure(status: str, msg: str):
    return _json_error(msg, HTTP_STATUS.get(status, 500))


def _store() -> MapStore:
    return current_app.extensions[STORE_EXTENSION]


def _body() -> Dict[str, Any]:
    """The JSON request body; anything that is not a JSON object counts as empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _limits() -> Dict[str, int]:
    return {
        "max_maps": int(current_app.config["MAX_MAPS"]),
        "max_nodes": int(current_app.config["MAX_NODES_PER_MAP"]),
    }


# --- Map endpoints ---

@api.route('/api/maps', methods=['GET'])
def api_list_maps():
    status, summaries, msg = list_maps_action(_store())
    if status != CommandStatus.SUCCESS:
        return _failure(status, "Failed to fetch maps")
    return jsonify(summaries), 200


@api.route('/api/maps', methods=['POST'])
def api_create_map():
    data = _body()
    status, system_map, msg = create_map_action(
        _store(),
        name=data.get('name'),
        description=data.get('description'),
        nodes=data.get('nodes'),
        links=data.get('links'),
        **_limits(),
    )
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(system_map.to_dict()), 201


@api.route('/api/maps/import', methods=['POST'])
def api_import_map():
    upload = request.files.get('file')
    if upload is not None:
        try:
            document = json.loads(upload.read().decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            return _json_error(f"Uploaded file is not valid JSON: {e}", 400)
    else:
        document = request.get_json(silent=True)
        if document is None:
            return _json_error("Request body must be a JSON map document", 400)

    status, system_map, msg = import_map_action(_store(), document, **_limits())
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    logger.info("Map imported as %s", system_map.id)
    return jsonify(system_map.to_dict()), 201


@api.route('/api/maps/<map_id>', methods=['GET'])
def api_get_map(map_id: str):
    status, system_map, msg = get_map_action(_store(), map_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(system_map.to_dict()), 200


@api.route('/api/maps/<map_id>', methods=['PUT'])
def api_update_map(map_id: str):
    data = _body()
    status, summary, msg = update_map_metadata_action(
        _store(), map_id, name=data.get('name'), description=data.get('description'))
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(summary), 200


@api.route('/api/maps/<map_id>', methods=['DELETE'])
def api_delete_map(map_id: str):
    status, _, msg = delete_map_action(_store(), map_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return '', 204


@api.route('/api/maps/<map_id>/export', methods=['GET'])
def api_export_map(map_id: str):
    status, system_map, msg = get_map_action(_store(), map_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    response = make_response(dumps_export(system_map), 200)
    response.headers['Content-Type'] = 'application/json; charset=utf-8'
    response.headers['Content-Disposition'] = f'attachment; filename="{export_filename(system_map)}"'
    return response


@api.route('/api/maps/<map_id>/graph', methods=['GET'])
def api_render_graph(map_id: str):
    status, system_map, msg = get_map_action(_store(), map_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(build_render_graph(system_map)), 200


# --- Node endpoints ---

@api.route('/api/maps/<map_id>/nodes', methods=['POST'])
def api_add_node(map_id: str):
    data = _body()
    status, node, msg = add_node_action(
        _store(), map_id,
        node_id=data.get('id'),
        group=data.get('group'),
        description=data.get('description'),
        attributes=data.get('attributes'),
        parent_nodes=data.get('parentNodes'),
        max_nodes=_limits()["max_nodes"],
    )
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(node.to_dict()), 201


@api.route('/api/maps/<map_id>/nodes/<node_id>', methods=['PUT'])
def api_update_node(map_id: str, node_id: str):
    status, node, msg = update_node_action(_store(), map_id, node_id, _body())
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(node.to_dict()), 200


@api.route('/api/maps/<map_id>/nodes/<node_id>', methods=['DELETE'])
def api_delete_node(map_id: str, node_id: str):
    status, _, msg = delete_node_action(_store(), map_id, node_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return '', 204


@api.route('/api/maps/<map_id>/nodes/<node_id>/connections', methods=['GET'])
def api_node_connections(map_id: str, node_id: str):
    status, report, msg = node_connections_action(_store(), map_id, node_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(report), 200


# --- Connection endpoints ---

@api.route('/api/maps/<map_id>/connections', methods=['GET'])
def api_all_connections(map_id: str):
    status, data, msg = all_connections_action(_store(), map_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(data), 200


@api.route('/api/maps/<map_id>/check', methods=['GET'])
def api_check_map(map_id: str):
    status, report, msg = check_map_action(_store(), map_id)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(report), 200


@api.route('/api/maps/<map_id>/connections', methods=['DELETE'])
def api_delete_connection(map_id: str):
    data = _body()
    source, target = data.get('source'), data.get('target')
    if not source or not target:
        return _json_error("Source and target are required", 400)

    status, result, msg = delete_link_action(_store(), map_id, source, target)
    if status != CommandStatus.SUCCESS:
        return _failure(status, msg)
    return jsonify(result), 200


# --- Pages and health ---

@api.route('/', methods=['GET'])
def index_page():
    return current_app.send_static_file('index.html')


@api.route('/embed', methods=['GET'])
def embed_page():
    map_id = request.args.get('map', 'default')
    show_watermark = (request.args.get('watermark') != 'false'
                      and bool(current_app.config['EMBED_WATERMARK']))
    return render_template('embed.html', map_id=map_id, show_watermark=show_watermark)


@api.route('/health', methods=['GET'])
def health_check():
    """Reports whether the backing store answers a ping."""
    try:
        _store().ping()
    except redis.exceptions.RedisError as e:
        return jsonify({"status": "unhealthy", "timestamp": utc_now_iso(), "error": str(e)}), 503
    return jsonify({
        "status": "healthy",
        "timestamp": utc_now_iso(),
        "version": __version__,
        "store": "connected",
    }), 200


def _register_error_handlers(app: Flask):
    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        if e.code == 404:
            return _json_error("Not found", 404)
        return _json_error(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(e: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return _json_error("Internal server error", 500)


def create_app(config: Optional[Dict[str, Any]] = None, redis_client: Optional[redis.Redis] = None) -> Flask:
    """
    Builds the Flask application.
    - config: overrides for DefaultConfig keys.
    - redis_client: an existing client to use instead of connecting to REDIS_URL.
    The default map is seeded here if the store has no maps list yet.
    """
    app = Flask(__name__)
    app.config.from_object(DefaultConfig)
    if config:
        app.config.update(config)
    app.json.sort_keys = False

    configure_logging(app.config['LOG_LEVEL'])
    CORS(app, origins=cors_origins(app.config['CORS_ORIGINS']),
         methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
         allow_headers=['Content-Type', 'Authorization'])

    client = redis_client if redis_client is not None else connect(app.config['REDIS_URL'])
    store = MapStore(client)
    app.extensions[STORE_EXTENSION] = store

    if app.config['LOG_REQUESTS']:
        @app.before_request
        def log_request():
            logger.info("%s %s from %s", request.method, request.path, request.remote_addr)

    app.register_blueprint(api)
    _register_error_handlers(app)

    bootstrap_default_map(store, app.config['DEFAULT_MAP_NAME'])
    return app


if __name__ == '__main__':
    application = create_app()
    logger.info("System Mapper running on http://localhost:3000")
    application.run(debug=False, host='0.0.0.0', port=3000)
