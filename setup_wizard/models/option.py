import logging
from datetime import datetime
from typing import Any

from ..extensions import db

logger = logging.getLogger(__name__)


class Option(db.Model):
    __tablename__ = "options"

    name = db.Column(db.String(191), primary_key=True)

    value = db.Column(db.JSON, nullable=True)

    autoload = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<Option {self.name}>"


class OptionStore:
    """Host settings store backed by the ``options`` table. Every write commits."""

    def get(self, key: str, default: Any = None) -> Any:
        option = db.session.get(Option, key)
        if option is None:
            return default
        return option.value

    def set(self, key: str, value: Any) -> None:
        option = db.session.get(Option, key)
        if option is None:
            option = Option(name=key)
            db.session.add(option)
        option.value = value
        db.session.commit()

    def add(self, key: str, value: Any, autoload: bool = True) -> bool:
        if db.session.get(Option, key) is not None:
            return False
        db.session.add(Option(name=key, value=value, autoload=autoload))
        db.session.commit()
        return True

    def delete(self, key: str) -> bool:
        option = db.session.get(Option, key)
        if option is None:
            return False
        db.session.delete(option)
        db.session.commit()
        return True

    def __contains__(self, key: str) -> bool:
        return db.session.get(Option, key) is not None
