"""Pytest configuration and fixtures."""

import pytest

from setup_wizard import create_app
from setup_wizard.config import TestConfig
from setup_wizard.extensions import db, setup as wizard
from setup_wizard.models import Role, User

DEMO = {
    "name": "demo",
    "title": "Demo setup",
    "skip_url": "/setup/",
    "steps": {
        1: {"name": {"type": "TextControl", "label": "Name", "required": True}},
        2: {"agree": {"type": "CheckboxControl", "label": "Agree", "required": True}},
    },
}

CONTACT = {
    "name": "contact",
    "forward_url": "/setup/",
    "steps": {
        "1": {
            "email": {"type": "TextControl", "label": "Email", "required": True, "validation_callback": "email"},
            "phone": {"type": "TextControl", "label": "Phone"},
        },
        "2": {"done": {"type": "Text", "text": "<p>All set.</p>"}},
    },
}

IMPORT = {
    "name": "import",
    "steps": {
        "1": {"site": {"type": "TextControl", "label": "Site", "required": True}},
        "2": {"progress": {"type": "ProgressBar", "label": "Importing"}},
    },
}

DYNAMIC = {
    "name": "dynamic",
    "update_fields": True,
    "steps": {
        "1": {"intro": {"type": "Text", "text": "Hello"}},
        "2": {"plan": {"type": "RadioControl", "label": "Plan", "required": True,
                       "options": [{"value": "free", "label": "Free"}, {"value": "pro", "label": "Pro"}]}},
        "3": {"thanks": {"type": "Text", "text": "Thanks"}},
    },
}

CONFIGURATIONS = [DEMO, CONTACT, IMPORT, DYNAMIC]


@pytest.fixture
def app():
    app = create_app(TestConfig, configurations=CONFIGURATIONS)
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
    wizard.filters.clear()


@pytest.fixture
def client(app):
    return app.test_client()


def _create_user(app, email, role):
    with app.app_context():
        user = User(email=email, role=role)
        user.set_password("correct horse")
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture
def admin_id(app):
    return _create_user(app, "admin@example.com", Role.ADMIN)


@pytest.fixture
def editor_id(app):
    return _create_user(app, "editor@example.com", Role.EDITOR)


def login(client, user_id):
    with client.session_transaction() as sess:
        sess["_user_id"] = str(user_id)
        sess["_fresh"] = True
    return client


@pytest.fixture
def admin_client(client, admin_id):
    return login(client, admin_id)


@pytest.fixture
def editor_client(client, editor_id):
    return login(client, editor_id)


class CSRFConfig(TestConfig):
    WTF_CSRF_ENABLED = True


@pytest.fixture
def csrf_client():
    app = create_app(CSRFConfig, configurations=CONFIGURATIONS)
    with app.app_context():
        db.create_all()
    user_id = _create_user(app, "admin@example.com", Role.ADMIN)

    yield login(app.test_client(), user_id)

    with app.app_context():
        db.session.remove()
        db.drop_all()
