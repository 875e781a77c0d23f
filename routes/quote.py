"""
Custom service quote routes.

The customer fills in a custom service request over several steps. Each
step PATCHes only the fields it collected; the request lives in the Flask
session until it is submitted or reset.

Handles:
- GET    /api/quote/custom-service         - Current request
- PATCH  /api/quote/custom-service         - Set any subset of fields
- DELETE /api/quote/custom-service         - Reset to blank
- POST   /api/quote/custom-service/submit  - Validate and queue for checkout
"""

from flask import Blueprint, jsonify, request, session

from services import service_intake


quote_bp = Blueprint("quote", __name__, url_prefix="/api/quote")


@quote_bp.route("/custom-service", methods=["GET"])
def get_request():
    return jsonify(service_intake.load_request(session).to_dict())


@quote_bp.route("/custom-service", methods=["PATCH"])
def update_request():
    changes = request.get_json(silent=True) or {}
    service_request = service_intake.apply_changes(service_intake.load_request(session), changes)
    service_intake.save_request(session, service_request)
    return jsonify(service_request.to_dict())


@quote_bp.route("/custom-service", methods=["DELETE"])
def reset_request():
    service_request = service_intake.load_request(session)
    service_request.reset()
    service_intake.save_request(session, service_request)
    return jsonify(service_request.to_dict())


@quote_bp.route("/custom-service/submit", methods=["POST"])
def submit_request():
    data = request.get_json(silent=True) or {}
    line = service_intake.submit_request(session, data.get("description", ""))
    return jsonify({
        "success": True,
        "service": line.to_dict(),
        "pending_services": len(service_intake.pending_lines(session)),
    }), 201
