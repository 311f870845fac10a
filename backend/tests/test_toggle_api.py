from tests.test_utils_seed import admin_headers, manager_headers


def test_toggle_action_draft(client):
    headers = admin_headers(client)
    resp = client.post('/settings/permissions/toggle', json={
        'permissions': {}, 'scope': 'action', 'submodule': 'stock-alerts', 'action': 'create-po',
    }, headers=headers)
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['permissions'] == {'stock-alerts': {'view': False, 'add-stock': False, 'create-po': True}}
    assert body['selection']['sections']['packing']['submodules']['stock-alerts'] == 'indeterminate'


def test_toggle_section_tie_break_via_api(client):
    headers = admin_headers(client)
    draft = {'product-details': {'edit': True, 'view-report': True}}
    body = client.post('/settings/permissions/toggle', json={
        'permissions': draft, 'scope': 'section', 'section': 'product',
    }, headers=headers).get_json()
    assert body['selection']['sections']['product']['state'] == 'checked'
    body = client.post('/settings/permissions/toggle', json={
        'permissions': body['permissions'], 'scope': 'section', 'section': 'product',
    }, headers=headers).get_json()
    assert body['selection']['sections']['product']['state'] == 'unchecked'


def test_toggle_all_via_api(client):
    headers = admin_headers(client)
    body = client.post('/settings/permissions/toggle', json={'scope': 'all'}, headers=headers).get_json()
    assert body['selection']['state'] == 'checked'


def test_toggle_rejects_bad_input(client):
    headers = admin_headers(client)
    url = '/settings/permissions/toggle'
    assert client.post(url, json={'scope': 'everything'}, headers=headers).status_code == 400
    assert client.post(url, json={'scope': 'action', 'submodule': 'stock-alerts'}, headers=headers).status_code == 400
    assert client.post(url, json={'scope': 'submodule', 'submodule': 'ghost'}, headers=headers).status_code == 400
    assert client.post(url, json={'scope': 'section', 'section': 'finance'}, headers=headers).status_code == 400
    assert client.post(url, json={'scope': 'all', 'permissions': []}, headers=headers).status_code == 400


def test_toggle_requires_admin(client):
    headers = manager_headers(client, 'toggle_mgr@example.com')
    assert client.post('/settings/permissions/toggle', json={'scope': 'all'}, headers=headers).status_code == 403


def test_toggle_rejects_unregistered_action(client):
    headers = admin_headers(client)
    url = '/settings/permissions/toggle'
    for action in ('launch-missiles', 5):
        resp = client.post(url, json={
            'permissions': {}, 'scope': 'action', 'submodule': 'view-materials', 'action': action,
        }, headers=headers)
        assert resp.status_code == 400, resp.get_json()
        assert resp.get_json()['error']['status'] == 400
