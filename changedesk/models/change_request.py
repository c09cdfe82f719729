"""
ChangeRequest model — a proposed IT system modification tracked through
the approval workflow.

State machine (REQUEST_TRANSITIONS):
    Pending  → Reviewed            (mark_reviewed: admin opened the request)
    Pending  → Approved | Rejected (approve / reject)
    Reviewed → Approved | Rejected (approve / reject)
    Approved, Rejected             (terminal)

The ``id`` is an opaque string (epoch millis + random suffix) assigned at
creation; ``request_date`` is set once and never changed.
"""

from datetime import datetime, timezone

from changedesk.models import db

# ── Status / priority vocabularies ───────────────────────────────────────

STATUS_PENDING = "Pending"
STATUS_REVIEWED = "Reviewed"
STATUS_APPROVED = "Approved"
STATUS_REJECTED = "Rejected"

REQUEST_STATUSES = (STATUS_PENDING, STATUS_REVIEWED, STATUS_APPROVED, STATUS_REJECTED)
TERMINAL_STATUSES = frozenset({STATUS_APPROVED, STATUS_REJECTED})

# Filter options offered to the list view ("All" disables the filter)
STATUS_ALL = "All"
STATUS_OPTIONS = (STATUS_ALL,) + REQUEST_STATUSES

PRIORITIES = ("Low", "Medium", "High", "Critical")

REQUEST_TRANSITIONS = {
    "mark_reviewed": {"from": [STATUS_PENDING], "to": STATUS_REVIEWED},
    "approve": {"from": [STATUS_PENDING, STATUS_REVIEWED], "to": STATUS_APPROVED},
    "reject": {"from": [STATUS_PENDING, STATUS_REVIEWED], "to": STATUS_REJECTED},
}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a timestamp as ISO-8601 UTC with millisecond precision.

    SQLite hands back naive datetimes; those are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix accepted) into aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class ChangeRequest(db.Model):
    __tablename__ = "change_requests"

    id = db.Column(db.String(64), primary_key=True)
    title = db.Column(db.String(300), nullable=False)
    system = db.Column(db.String(200), nullable=False)
    requester = db.Column(db.String(200), nullable=False)  # User.name, not a FK
    department = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    impact = db.Column(db.Text, nullable=False)
    priority = db.Column(db.String(20), nullable=False)  # Low, Medium, High, Critical
    request_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utc_now)
    implementation_date = db.Column(db.String(40), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    summary = db.Column(db.Text, nullable=False, default="")
    remarks = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.Index("ix_change_requests_requester", "requester"),
        db.Index("ix_change_requests_status", "status"),
        db.Index("ix_change_requests_request_date", "request_date"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self):
        d = {
            "id": self.id,
            "title": self.title,
            "system": self.system,
            "requester": self.requester,
            "department": self.department,
            "description": self.description,
            "reason": self.reason,
            "impact": self.impact,
            "priority": self.priority,
            "requestDate": to_iso(self.request_date),
            "implementationDate": self.implementation_date,
            "status": self.status,
            "summary": self.summary,
        }
        if self.remarks is not None:
            d["remarks"] = self.remarks
        return d

    def __repr__(self):
        return f"<ChangeRequest {self.id} [{self.status}]>"
