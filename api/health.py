from flask import Blueprint

from models import storage

bp = Blueprint("health", __name__)


@bp.get("/health")
def health():
    """
    Health check, including a database round trip
    ---
    tags:
      - Health
    responses:
      200:
        description: API and database are up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            database:
              type: string
              example: ok
      503:
        description: Database unreachable
    """
    if not storage.ping():
        return {"status": "degraded", "database": "unreachable"}, 503
    return {"status": "ok", "database": "ok"}, 200
