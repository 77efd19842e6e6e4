# --- START OF FILE web_api.py ---

"""
Small JSON API over the dataset verbs, served by waitress (or the Flask
development server in debug mode).

Every response uses one envelope:
    {"status": "success", "data": ...}
    {"status": "error", "error": "...", "details": "...", "kind": "not-found"}
"""

import logging
import sys
import traceback

from flask import Flask, jsonify, request

import constants
import zfs_core
from models import Dataset, Property
from zfs_errors import ErrorKind, ZfsClassifiedError, ZfsError
from zfs_runner import CommandRunner

app = Flask(__name__)
app.logger.addHandler(logging.StreamHandler(sys.stderr))
app.logger.setLevel(logging.INFO)

HTTP_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.INVALID_NAME: 400,
    ErrorKind.INVALID_PROPERTY: 400,
}


def _property_to_dict(prop: Property) -> dict:
    return {
        'value': prop.value,
        'source': prop.source.value,
        'inherited_from': prop.inherited_from,
    }


def _dataset_to_dict(dataset: Dataset) -> dict:
    return {
        'name': dataset.name,
        'properties': {name: _property_to_dict(prop) for name, prop in dataset.properties.items()},
    }


def _get_runner() -> CommandRunner:
    runner = getattr(app, 'zfs_runner', None)
    if runner is None:
        app.logger.error("No CommandRunner attached to the Flask app.")
        raise ZfsError("ZFS runner not initialized.")
    return runner


def _handle_zfs_call(func, *args, **kwargs):
    """Runs a zfs_core function with the app's runner and wraps the result or error as JSON."""
    try:
        result = func(_get_runner(), *args, **kwargs)
    except ZfsClassifiedError as e:
        status_code = HTTP_STATUS_BY_KIND.get(e.kind, 500)
        app.logger.error(f"ZFS call '{func.__name__}' failed: {e}")
        return jsonify(status="error", error=str(e), details=e.diagnostic, kind=e.kind.value), status_code
    except ZfsError as e:
        app.logger.error(f"ZFS call '{func.__name__}' failed: {e}")
        app.logger.debug(traceback.format_exc())
        return jsonify(status="error", error=str(e), details="", kind=None), 500

    if isinstance(result, Dataset):
        data = _dataset_to_dict(result)
    elif isinstance(result, list) and result and isinstance(result[0], Dataset):
        data = [_dataset_to_dict(ds) for ds in result]
    elif isinstance(result, Property):
        data = _property_to_dict(result)
    else:
        data = result
    return jsonify(status="success", data=data)


# --- API Routes ---

@app.route('/api/health')
def api_health():
    return jsonify(status="success", data={'runner': getattr(app, 'zfs_runner', None) is not None})


@app.route('/api/datasets')
def list_datasets():
    """All datasets, or those below ?root=."""
    root = request.args.get('root') or None
    return _handle_zfs_call(zfs_core.list_datasets, root=root)


@app.route('/api/datasets/<path:name>/properties')
def get_properties(name):
    return _handle_zfs_call(zfs_core.get_dataset, name)


@app.route('/api/datasets/<path:name>/snapshots')
def list_snapshots(name):
    return _handle_zfs_call(zfs_core.list_snapshots, name)


@app.route('/api/snapshots', methods=['POST'])
def create_snapshot():
    if not request.is_json:
        return jsonify(status="error", error="Request must be JSON", details="", kind=None), 400
    data = request.get_json()
    if not isinstance(data, dict):
        return jsonify(status="error", error="Request body must be a JSON object", details="", kind=None), 400
    dataset = data.get('dataset')
    name = data.get('name')
    if not dataset or not name:
        return jsonify(status="error", error="'dataset' and 'name' are required", details="", kind=None), 400
    return _handle_zfs_call(zfs_core.create_snapshot, dataset, name, recursive=bool(data.get('recursive', False)))


# --- Main Execution ---
def run_web_api(runner: CommandRunner, host=constants.DEFAULT_WEB_HOST, port=constants.DEFAULT_WEB_PORT, debug=False):
    """Runs the API with waitress, or the Flask development server when debugging."""
    app.zfs_runner = runner
    if debug:
        logging.basicConfig(level=logging.DEBUG, format='%(levelname)s:%(name)s:%(message)s')
        app.logger.setLevel(logging.DEBUG)
        print(f"WEB_API: Debug mode enabled. Running Flask development server on http://{host}:{port}", file=sys.stderr)
        app.run(host=host, port=port, debug=True)
        return

    from waitress import serve
    logging.basicConfig(level=logging.INFO, format='%(levelname)s:%(name)s:%(message)s')
    print(f"WEB_API: Running Waitress server on http://{host}:{port}", file=sys.stderr)
    serve(app, host=host, port=port, threads=constants.WEB_SERVER_THREADS)

# --- END OF FILE web_api.py ---
