import logging
import os

import eventlet

eventlet.monkey_patch()

from wingman import create_app
from wingman.extensions import socketio

app = create_app()
logger = logging.getLogger("wingman")


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5050))
    host = os.environ.get("HOST", "0.0.0.0")

    logger.info("Starting Wingman on http://%s:%s", host, port)

    socketio.run(
        app,
        host=host,
        port=port,
        debug=False,
        allow_unsafe_werkzeug=True,
    )
