from flask_socketio import SocketIO
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()
# Browser clients connect from the separately served frontend.
socketio = SocketIO(async_mode="eventlet", cors_allowed_origins="*")
