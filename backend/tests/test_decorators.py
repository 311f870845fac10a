import pytest
from flask import Flask
from flask_jwt_extended import JWTManager, create_access_token
from app.decorators.auth import admin_required


@pytest.fixture()
def guarded_app():
    app = Flask('guarded')
    app.config['JWT_SECRET_KEY'] = 'guard-secret'
    JWTManager(app)

    @app.get('/admin-only')
    @admin_required
    def admin_only():
        return {'ok': True}

    return app


def _headers(app, identity, claims):
    with app.app_context():
        token = create_access_token(identity=identity, additional_claims=claims)
    return {'Authorization': f'Bearer {token}'}


def test_admin_required_uses_role_claim(guarded_app):
    client = guarded_app.test_client()
    admin = _headers(guarded_app, 'admin', {'role': 'Admin', 'permissions': {}, 'module_access': []})
    # a manager holding every granular permission is still not an admin
    manager = _headers(guarded_app, '5', {'role': 'Manager', 'permissions': {'view-materials': {'view': True}},
                                          'module_access': ['view-materials']})
    assert client.get('/admin-only', headers=admin).status_code == 200
    assert client.get('/admin-only', headers=manager).status_code == 403
    assert client.get('/admin-only').status_code == 401
