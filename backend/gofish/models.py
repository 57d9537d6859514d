from gofish import db
import json


class SessionSnapshot(db.Model):
    """Single-row table holding every live session as one JSON document."""
    __tablename__ = 'session_snapshot'
    id = db.Column(db.Integer, primary_key=True)
    document = db.Column(db.Text, nullable=False, default='{}')
    updated_at = db.Column(db.Float, nullable=True)

    def to_dict(self):
        try:
            return json.loads(self.document or '{}')
        except ValueError:
            return {}
