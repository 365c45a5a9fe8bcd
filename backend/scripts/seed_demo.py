#!/usr/bin/env python
"""Idempotent seed script for the demo accounts and a starter stock list.

Usage:
    python backend/scripts/seed_demo.py                # seed normally
    python backend/scripts/seed_demo.py --dry-run      # run logic then rollback (no DB changes)
    python backend/scripts/seed_demo.py --no-stock     # accounts only
    python backend/scripts/seed_demo.py --show-users   # print accounts after seeding
"""
from __future__ import annotations
import os, sys, argparse, textwrap

# Allow running from repo root
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from itdesk import create_app, get_store  # noqa: E402
from itdesk.constants.demo import DEMO_ACCOUNTS, DEMO_PASSWORD, DEMO_STOCK  # noqa: E402
from itdesk.datastore import Base  # noqa: E402
from itdesk.services.session import (  # noqa: E402
    hash_password, normalize_email, parse_domain_rewrites, domain_rewriting_normalizer,
)
from itdesk.services.stock_ledger import StockLedger  # noqa: E402


class _DryRun(Exception):
    pass


def ensure_demo_users(store, normalizer=normalize_email):
    """Create missing demo accounts; returns the number created."""
    created = 0
    for account in DEMO_ACCOUNTS:
        email = normalizer(account['email'])
        if store.select_one('custom_users', {'email': email}) is not None:
            continue
        store.insert('custom_users', {
            'email': email,
            'name': account['name'],
            'password_hash': hash_password(DEMO_PASSWORD),
            'role': account['role'].value,
            'permissions': sorted(p.value for p in account['permissions']),
            'department': account.get('department'),
        })
        created += 1
    return created


def ensure_demo_stock(ledger: StockLedger):
    """Create demo stock items missing by name; opening quantities go through the ledger."""
    existing = {r['name'] for r in ledger.list_items()}
    created = 0
    for item in DEMO_STOCK:
        if item['name'] in existing:
            continue
        ledger.create_item(dict(item), created_by='seed')
        created += 1
    return created


def print_users(store):
    rows = store.select('custom_users', ordering=['role', 'email'])
    if not rows:
        print('[INFO] No users present.')
        return
    email_w = max(len(r['email']) for r in rows)
    print(f"{'Email'.ljust(email_w)} | Role     | Permissions")
    print('-' * (email_w + 40))
    for r in rows:
        print(f"{r['email'].ljust(email_w)} | {r['role'].ljust(8)} | {len(r.get('permissions') or [])}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed demo accounts & stock",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_demo.py\n  dry run: seed_demo.py --dry-run\n  show users: seed_demo.py --show-users\n""")
    )
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--no-stock', action='store_true', help='Skip the demo stock items')
    p.add_argument('--show-users', action='store_true', help='Print accounts after seeding')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        store = get_store()
        # lightweight bootstrap when migrations have not been run yet
        Base.metadata.create_all(store.session.get_bind())
        rewrites = parse_domain_rewrites(app.config['EMAIL_DOMAIN_REWRITES'])
        normalizer = domain_rewriting_normalizer(rewrites) if rewrites else normalize_email
        users = items = 0
        try:
            with store.transaction():
                users = ensure_demo_users(store, normalizer)
                if not args.no_stock:
                    items = ensure_demo_stock(StockLedger(store))
                if args.show_users:
                    print_users(store)
                if args.dry_run:
                    raise _DryRun()
        except _DryRun:
            print(f"[DRY-RUN] (rolled back) Users would create: {users}, Stock items would create: {items}")
            return 0
        print(f"[DONE] Users created: {users}, Stock items created: {items}")
        print(f"[INFO] Demo password for every account: {DEMO_PASSWORD}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
