# CORS configuration
import logging
import os

from flask import request
from flask_cors import CORS

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
]


def configure_cors(app):
    # Extra origins (e.g. the deployed frontend) come from CORS_ORIGINS, comma-separated
    extra = [o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()]
    CORS(app, resources={
        r"/api/*": {
            "origins": DEFAULT_ORIGINS + extra,
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"],
        }
    })

    @app.after_request
    def log_cors(response):
        origin = request.headers.get("Origin")
        if origin:
            logger.debug(f"CORS - Origin: {origin} {request.method} -> {response.status_code}")
        return response

    return app
