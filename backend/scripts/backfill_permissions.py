#!/usr/bin/env python
"""Idempotent backfill of manager permission documents.

Brings every stored ``permissions`` document to the full registered shape (all submodules and
actions present, unknown keys dropped, non-True values stored as False) and defaults missing
roles to Manager. Legacy ``module_access`` lists are left as they are.

Usage:
    python backend/scripts/backfill_permissions.py               # backfill and commit
    python backend/scripts/backfill_permissions.py --dry-run     # run logic then rollback (no DB changes)
    python backend/scripts/backfill_permissions.py --validate    # exit 2 if any stored document is off-shape
    python backend/scripts/backfill_permissions.py --show        # print user -> granted action counts
    python backend/scripts/backfill_permissions.py --export-json grants.json
"""
from __future__ import annotations
import os, sys, argparse, textwrap, json, hashlib
from sqlalchemy import select, inspect

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from app import create_app, get_db  # type: ignore
from app.constants.permissions import ROLE_MANAGER, ROLES
from app.models.authz import Base, User
import app.models.audit  # noqa: F401
from app.services.permissions import granted_actions, normalize_module_access, normalize_permissions
from app.services.registry import resolve_registry


def find_problems(user: User):
    """Describe how a stored row differs from its normalized form."""
    problems = []
    reg = resolve_registry()
    if not user.role:
        problems.append('missing role')
    elif user.role not in ROLES:
        problems.append(f"invalid role '{user.role}'")
    raw = user.permissions
    if raw is None:
        problems.append('permissions missing')
        return problems
    if not isinstance(raw, dict):
        problems.append(f"permissions is {type(raw).__name__}, expected object")
        return problems
    for key, entry in raw.items():
        if not reg.has_submodule(key):
            problems.append(f"unregistered submodule '{key}'")
            continue
        if not isinstance(entry, dict):
            problems.append(f"entry for '{key}' is not an object")
            continue
        for action, value in entry.items():
            if action not in reg.actions_of(key):
                problems.append(f"unregistered action '{key}.{action}'")
            elif not isinstance(value, bool):
                problems.append(f"non-boolean value for '{key}.{action}'")
    for sub in reg.iter_submodules():
        entry = raw.get(sub.id)
        if not isinstance(entry, dict):
            if sub.id not in raw:
                problems.append(f"missing submodule '{sub.id}'")
            continue
        missing = [a for a in sub.actions if a not in entry]
        if missing:
            problems.append(f"missing actions for '{sub.id}': {', '.join(missing)}")
    return problems


def carry_legacy_grants(user: User):
    """Stored store plus explicit all-True entries for legacy modules that have no granular entry.

    Once normalized every registered submodule has an entry, which would shadow the legacy list.
    """
    reg = resolve_registry()
    raw = dict(user.permissions) if isinstance(user.permissions, dict) else {}
    for module_id in normalize_module_access(user.module_access):
        if reg.has_submodule(module_id) and raw.get(module_id) is None:
            raw[module_id] = {a: True for a in reg.actions_of(module_id)}
    return raw


def backfill(session):
    """Normalize every row; return (roles_defaulted, documents_changed)."""
    roles_defaulted = 0
    changed = 0
    for user in session.execute(select(User).order_by(User.id)).scalars().all():
        if not user.role:
            user.role = ROLE_MANAGER
            roles_defaulted += 1
        normalized = normalize_permissions(carry_legacy_grants(user))
        if normalized != user.permissions:
            user.permissions = normalized
            changed += 1
        access = normalize_module_access(user.module_access)
        if access != user.module_access:
            user.module_access = access
    session.flush()
    return roles_defaulted, changed


def build_grant_map(session):
    mapping = {}
    for user in session.execute(select(User).order_by(User.id)).scalars().all():
        mapping[user.email] = {
            'role': user.role,
            'granted': granted_actions(user.permissions),
            'module_access': normalize_module_access(user.module_access),
        }
    return mapping


def print_summary(grant_map):
    if not grant_map:
        print("[INFO] No users present.")
        return
    email_w = max(len(e) for e in grant_map)
    print(f"{'User'.ljust(email_w)} | Role    | Granted | Legacy modules")
    print('-' * (email_w + 40))
    for email, row in grant_map.items():
        count = sum(len(v) for v in row['granted'].values())
        print(f"{email.ljust(email_w)} | {str(row['role']).ljust(7)} | {str(count).rjust(7)} | {', '.join(row['module_access'])}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Backfill granular manager permissions to the registered structure",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  backfill: backfill_permissions.py\n  dry run: backfill_permissions.py --dry-run\n  check only: backfill_permissions.py --validate --dry-run\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--validate', action='store_true', help='Report stored documents that are off-shape (before backfill); exits 2 on problems')
    p.add_argument('--show', action='store_true', help='Print per-user granted action counts after backfill')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export user->granted actions JSON (to FILE or stdout if omitted)')
    return p.parse_args(argv)


def ensure_schema(session):
    # lightweight fallback if migrations were not run yet; prefer alembic upgrade
    engine = session.get_bind()
    if not inspect(engine).has_table('users'):
        Base.metadata.create_all(engine)


def main(argv=None, app=None):
    args = parse_args(argv)
    app = app or create_app()
    with app.app_context():
        session = get_db()
        ensure_schema(session)
        try:
            if args.validate:
                problems = []
                for user in session.execute(select(User).order_by(User.id)).scalars().all():
                    problems.extend(f"{user.email}: {p}" for p in find_problems(user))
                if problems:
                    print('\n[VALIDATION] FAIL:')
                    for p in problems:
                        print(' -', p)
                    session.rollback()
                    return 2
                print('[VALIDATION] OK: All permission documents match the registered structure.')
            roles_defaulted, changed = backfill(session)
            grant_map = build_grant_map(session)
            if args.dry_run:
                session.rollback()
                print(f"[DRY-RUN] (rolled back) Documents would change: {changed}, Roles would default: {roles_defaulted}")
            else:
                session.commit()
                print(f"[DONE] Documents changed: {changed}, Roles defaulted: {roles_defaulted}")
            if args.show:
                print('\nGranted Action Summary:')
                print_summary(grant_map)
            if args.export_json is not None:
                # Deterministic checksum for change detection
                canonical = json.dumps(grant_map, sort_keys=True, separators=(',', ':'))
                checksum = hashlib.sha256(canonical.encode('utf-8')).hexdigest()
                payload = {
                    'users': grant_map,
                    'meta': {
                        'structure_version': resolve_registry().version,
                        'users_total': len(grant_map),
                        'grants_checksum_sha256': checksum,
                        'dry_run': args.dry_run,
                    }
                }
                if args.export_json == '-':
                    print(json.dumps(payload, indent=2, sort_keys=True))
                else:
                    with open(args.export_json, 'w', encoding='utf-8') as f:
                        json.dump(payload, f, indent=2, sort_keys=True)
                    print(f"[INFO] Exported JSON to {args.export_json}")
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
    return 0


if __name__ == '__main__':
    sys.exit(main())
