#!/usr/bin/env python3
"""Local development server for ElementQuote Python functions.

Mimics the Firebase Functions emulator URLs so the web app can call the
pricing endpoints without deploying.

Usage:
    cd functions
    source venv/bin/activate
    python serve_local.py

Routes (POST):
- /<project>/europe-north1/calculate_pricing
- /<project>/europe-north1/reconcile_costs
- /<project>/europe-north1/add_cost_entry
- /<project>/europe-north1/delete_cost_entry
- /<project>/europe-north1/transition_quotation_status
- /<project>/europe-north1/analyze_invoice
"""

import os

# Set environment for local development
os.environ.setdefault('FUNCTIONS_EMULATOR', 'true')
os.environ.setdefault('GCLOUD_PROJECT', 'elementquote-dev')
os.environ.setdefault('FIRESTORE_EMULATOR_HOST', '127.0.0.1:8081')

from flask import Flask, request, jsonify
from flask_cors import CORS

# Import the main module after setting env vars
import main

FUNCTION_NAMES = [
    "calculate_pricing",
    "reconcile_costs",
    "add_cost_entry",
    "delete_cost_entry",
    "transition_quotation_status",
    "analyze_invoice",
]

URL_PREFIX = f"/{os.environ['GCLOUD_PROJECT']}/europe-north1"


class LocalRequest:
    """Wraps the Flask request in the shape the function handlers read."""

    def __init__(self, flask_request):
        self._request = flask_request
        self._json_data = None
        self.method = flask_request.method
        self.headers = dict(flask_request.headers)

    def get_json(self, force=False):
        if self._json_data is None:
            self._json_data = self._request.get_json(force=force) or {}
        return self._json_data


def wrap_firebase_function(firebase_fn):
    """Adapt a Firebase HTTP function to a Flask view."""
    def view():
        response = firebase_fn(LocalRequest(request))
        return response.get_data(), response.status_code, dict(response.headers)
    return view


def create_app() -> Flask:
    app = Flask(__name__)
    CORS(app)

    for name in FUNCTION_NAMES:
        app.add_url_rule(
            f"{URL_PREFIX}/{name}",
            endpoint=name,
            view_func=wrap_firebase_function(getattr(main, name)),
            methods=['POST', 'OPTIONS'],
        )

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({'status': 'ok', 'service': 'elementquote-python-functions'})

    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5002))
    print(f"""
╔════════════════════════════════════════════════════════════════╗
║  ElementQuote Python Functions - Local Development Server      ║
╠════════════════════════════════════════════════════════════════╣
║  Server running on: http://127.0.0.1:{port}
║  Endpoints: POST {URL_PREFIX}/<function>
╚════════════════════════════════════════════════════════════════╝
""")
    for name in FUNCTION_NAMES:
        print(f"  • {name}")
    create_app().run(host='127.0.0.1', port=port, debug=True)
