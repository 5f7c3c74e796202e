"""Map casegraph errors onto JSON error responses."""

import logging

from flask import jsonify

from ...errors import InvalidQuery, InvalidRelation, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)


def error_response(e: Exception, context: str):
    """JSON ``{"error": ...}`` with the status code for ``e``.

    Must be called from inside an ``except`` block so unexpected errors are
    logged with their traceback.
    """
    if isinstance(e, (InvalidQuery, InvalidRelation, ValueError)):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, NotFound):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, StoreUnavailable):
        logger.error(f"{context}: {e}")
        return jsonify({"error": str(e)}), 503
    logger.exception(context)
    return jsonify({"error": str(e)}), 500
