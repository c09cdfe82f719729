"""
ChangeDesk — IT Change Request Tracker
Database models package.

The SQLAlchemy handle is created here without an app; the application
factory binds it with ``db.init_app(app)``.

Tables:
    - users             (models.user)
    - change_requests   (models.change_request)
    - schema_version    (models.schema)
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
