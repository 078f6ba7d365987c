from setup_wizard.extensions import db
from setup_wizard.models import User


def test_login_redirects_to_setup_index(client, admin_id):
    response = client.post("/auth/login", data={"email": "Admin@Example.com ", "password": "correct horse"})
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/setup/")
    assert client.get("/setup/").status_code == 200


def test_login_follows_local_next_only(client, admin_id):
    ok = client.post("/auth/login?next=/setup/demo", data={"email": "admin@example.com", "password": "correct horse"})
    assert ok.headers["Location"].endswith("/setup/demo")
    client.post("/auth/logout")

    off_site = client.post("/auth/login?next=//evil.example/",
                           data={"email": "admin@example.com", "password": "correct horse"})
    assert "evil.example" not in off_site.headers["Location"]


def test_wrong_password(client, admin_id):
    response = client.post("/auth/login", data={"email": "admin@example.com", "password": "wrong"})
    assert response.status_code == 401
    assert b"Invalid email or password." in response.data


def test_disabled_account(app, client, admin_id):
    with app.app_context():
        db.session.get(User, admin_id).is_active = False
        db.session.commit()
    response = client.post("/auth/login", data={"email": "admin@example.com", "password": "correct horse"})
    assert response.status_code == 403


def test_logout(admin_client):
    response = admin_client.post("/auth/logout")
    assert response.status_code == 302
    assert admin_client.get("/setup/v1/fields/demo").status_code == 401
