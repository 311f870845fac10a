from tests.test_utils_seed import ADMIN_EMAIL, ADMIN_PASSWORD, admin_headers, auth_headers, ensure_user, login, set_access


def test_login_and_me(client):
    ensure_user('auth_me@example.com', name='Auth Me')
    token = login(client, 'auth_me@example.com')
    me = client.get('/iam/auth/me', headers=auth_headers(token))
    assert me.status_code == 200
    body = me.get_json()
    assert body['email'] == 'auth_me@example.com'
    assert body['role'] == 'Manager'
    assert body['clonedFrom'] is None
    # stored documents are returned in normalized form
    assert body['permissions']['view-materials'] == {'view': False, 'edit': False, 'add': False, 'delete': False, 'view-report': False}


def test_login_returns_profile(client):
    ensure_user('auth_profile@example.com')
    resp = client.post('/iam/auth/login', json={'email': 'auth_profile@example.com', 'password': 'pw'})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['access_token']
    assert body['user']['username'] == 'auth_profile'


def test_login_rejects_bad_credentials(client):
    ensure_user('auth_bad@example.com')
    resp = client.post('/iam/auth/login', json={'email': 'auth_bad@example.com', 'password': 'nope'})
    assert resp.status_code == 401
    assert resp.get_json()['error']['detail'] == 'Invalid email or password'
    resp = client.post('/iam/auth/login', json={'email': 'nobody@example.com', 'password': 'pw'})
    assert resp.status_code == 401


def test_login_requires_email_and_password(client):
    resp = client.post('/iam/auth/login', json={'email': 'x@example.com'})
    assert resp.status_code == 400


def test_builtin_admin_login(client):
    resp = client.post('/iam/auth/login', json={'email': ADMIN_EMAIL, 'password': ADMIN_PASSWORD})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['user']['role'] == 'Admin'
    me = client.get('/iam/auth/me', headers=auth_headers(body['access_token']))
    assert me.status_code == 200
    assert me.get_json()['email'] == ADMIN_EMAIL


def test_builtin_admin_wrong_password(client):
    resp = client.post('/iam/auth/login', json={'email': ADMIN_EMAIL, 'password': 'wrong'})
    assert resp.status_code == 401


def test_me_requires_token(client):
    assert client.get('/iam/auth/me').status_code == 401


def test_navigation_reflects_current_store(client):
    user = ensure_user('auth_nav@example.com')
    headers = auth_headers(login(client, 'auth_nav@example.com'))
    assert client.get('/iam/auth/navigation', headers=headers).get_json()['sections'] == {}
    # edits apply without re-login
    set_access(user, permissions={'stock-alerts': {'view': True}}, module_access=['view-fg-dcs'])
    body = client.get('/iam/auth/navigation', headers=headers).get_json()
    assert body['role'] == 'Manager'
    assert body['sections'] == {'packing': ['stock-alerts'], 'finished-goods': ['view-fg-dcs']}


def test_navigation_admin_sees_every_section(client):
    body = client.get('/iam/auth/navigation', headers=admin_headers(client)).get_json()
    assert body['role'] == 'Admin'
    assert set(body['sections']) == {'packing', 'finished-goods', 'stock', 'product'}


def test_check_endpoint(client):
    ensure_user('auth_check@example.com', permissions={'view-materials': {'view': True}})
    headers = auth_headers(login(client, 'auth_check@example.com'))
    body = client.get('/iam/auth/check?module=view-materials&action=edit', headers=headers).get_json()
    assert body == {'module': 'view-materials', 'visible': True, 'action': 'edit', 'allowed': False, 'disabled': True}
    body = client.get('/iam/auth/check?module=stock-alerts', headers=headers).get_json()
    assert body == {'module': 'stock-alerts', 'visible': False}
    assert client.get('/iam/auth/check', headers=headers).status_code == 400
