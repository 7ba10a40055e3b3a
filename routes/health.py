from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from models import db

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.get("")
def health():
    return jsonify(status="ok"), 200


@health_bp.get("/db")
def db_health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("Database connectivity check failed")
        return jsonify(database="unavailable"), 500
    return jsonify(database="ok"), 200
