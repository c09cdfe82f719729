"""
Schema version bookkeeping.

A single-row table records the schema version the database was last
upgraded to. ``RecordStore.initialize`` compares it with
``SCHEMA_VERSION`` and runs the pending upgrade steps in order.
"""

from datetime import datetime, timezone

from changedesk.models import db

SCHEMA_VERSION = 1


class SchemaVersion(db.Model):
    __tablename__ = "schema_version"

    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False, default=0)
    upgraded_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
