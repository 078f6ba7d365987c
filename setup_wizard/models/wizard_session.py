from datetime import datetime
from ..extensions import db

class WizardSession(db.Model):
    __tablename__ = "wizard_sessions"

    id = db.Column(db.Integer, primary_key=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    config_name = db.Column(db.String(128), nullable=False, index=True)

    status = db.Column(db.String(32), default="loading", nullable=False)

    step = db.Column(db.Integer, default=1, nullable=False)

    state = db.Column(db.JSON, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<WizardSession {self.id} {self.config_name} status={self.status} step={self.step}>"
