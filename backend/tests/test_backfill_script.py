import json
from app import get_db
from scripts.backfill_permissions import backfill, build_grant_map, find_problems, main
from tests.test_utils_seed import ensure_user


def test_find_problems_reports_shape_issues(app_ctx):
    user = ensure_user('bf_problems@example.com', permissions={
        'view-materials': {'view': 'yes', 'approve': True},
        'retired-module': {'view': True},
    })
    problems = find_problems(user)
    assert "unregistered submodule 'retired-module'" in problems
    assert "unregistered action 'view-materials.approve'" in problems
    assert "non-boolean value for 'view-materials.view'" in problems
    assert any(p.startswith("missing submodule 'jobber-unit'") for p in problems)


def test_normalized_user_has_no_problems(client, app_ctx):
    from tests.test_utils_seed import admin_headers
    resp = client.post('/managers', json={
        'name': 'Clean', 'username': 'bf_clean', 'email': 'bf_clean@example.com', 'password': 'secret1',
    }, headers=admin_headers(client))
    from app.models.authz import User
    user = get_db().get(User, resp.get_json()['id'])
    assert find_problems(user) == []


def test_backfill_normalizes_and_defaults_role(app_ctx):
    user = ensure_user('bf_fix@example.com', role='', permissions={'jobber-unit': {'edit': True}})
    session = get_db()
    backfill(session)
    session.commit()
    session.refresh(user)
    assert user.role == 'Manager'
    assert user.permissions['jobber-unit'] == {'view-report': False, 'send-material': False, 'edit': True}
    assert find_problems(user) == []
    grants = build_grant_map(session)
    assert grants['bf_fix@example.com']['granted'] == {'jobber-unit': ['edit']}


def test_backfill_keeps_legacy_access(app_ctx):
    from app.services.permissions import has_permission
    user = ensure_user('bf_legacy@example.com', module_access=['view-materials', 'view-fg-grns'],
                       permissions={'stock-alerts': {'view': True}})
    assert has_permission(user, 'view-materials', 'delete')
    session = get_db()
    backfill(session)
    session.commit()
    session.refresh(user)
    assert has_permission(user, 'view-materials', 'delete')
    assert user.permissions['view-materials']['delete'] is True
    assert has_permission(user, 'view-fg-grns', 'view')
    assert not has_permission(user, 'stock-alerts', 'create-po')
    assert user.module_access == ['view-materials', 'view-fg-grns']

def test_main_dry_run_exports_json(app_instance, tmp_path, capsys):
    user_id = ensure_user('bf_dry@example.com', permissions={'product-dc': {'view-invoice': True}}).id
    out = tmp_path / 'grants.json'
    assert main(['--dry-run', '--export-json', str(out)], app=app_instance) == 0
    payload = json.loads(out.read_text())
    assert payload['meta']['dry_run'] is True
    assert payload['meta']['structure_version'] == 1
    assert len(payload['meta']['grants_checksum_sha256']) == 64
    assert payload['users']['bf_dry@example.com']['granted'] == {'product-dc': ['view-invoice']}
    assert '[DRY-RUN]' in capsys.readouterr().out
    from app.models.authz import User
    # rolled back; main() closes its session so re-read the row
    stored = get_db().get(User, user_id)
    assert stored.permissions == {'product-dc': {'view-invoice': True}}
