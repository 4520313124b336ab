# Overview: Flask extension instances shared by the models, repositories and create_app.

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()

# Batch mode lets Alembic alter SQLite tables (dev database) by copy-and-move
migrate = Migrate(render_as_batch=True)
