#!/usr/bin/env python
"""Idempotent seed script for department approvers and the President account.

Usage:
    python scripts/seed_approvers.py               # create or update directory accounts
    python scripts/seed_approvers.py --dry-run     # run logic then rollback (no DB changes)
    python scripts/seed_approvers.py --show        # print the approver table after seeding
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select, text

# Allow running from repo root
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from procureflow import create_app, get_db  # type: ignore
from procureflow.constants.approvers import APPROVER_DIRECTORY
from procureflow.models.user import User


def ensure_approvers(session, domain: str, password: str):
    created = updated = 0
    for name, local, department, role in APPROVER_DIRECTORY:
        email = f'{local}@{domain}'.lower()
        user = session.execute(select(User).where(User.email==email)).scalar_one_or_none()
        if user is None:
            user = User(name=name, email=email, password_hash='', role=role, department=department, is_active=True)
            user.set_password(password)
            session.add(user)
            created += 1
        else:
            user.name = name
            user.role = role
            user.department = department
            user.is_active = True
            updated += 1
    return created, updated


def print_approvers(session):
    rows = session.execute(select(User).where(User.role!='REQUESTER').order_by(User.department)).scalars().all()
    if not rows:
        print('[INFO] No approvers present.')
        return
    dept_w = max(len(u.department or '') for u in rows)
    print(f"{'Department'.ljust(dept_w)} | Role        | Email")
    print('-' * (dept_w + 50))
    for u in rows:
        print(f"{(u.department or '').ljust(dept_w)} | {u.role.ljust(11)} | {u.email}")


def parse_args():
    p = argparse.ArgumentParser(
        description='Seed department approvers',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed_approvers.py\n  dry run: seed_approvers.py --dry-run\n  show: seed_approvers.py --show\n""")
    )
    p.add_argument('--show', action='store_true', help='Print approver accounts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args()


def main():
    args = parse_args()
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(text('SELECT 1 FROM users LIMIT 1'))
        except Exception:
            session.rollback()
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            from procureflow.models.user import Base
            import procureflow.models.audit  # noqa: F401
            import procureflow.models.notification  # noqa: F401
            import procureflow.models.service_request  # noqa: F401
            import procureflow.models.job_order  # noqa: F401
            import procureflow.models.purchase_order  # noqa: F401
            import procureflow.models.receiving_report  # noqa: F401
            Base.metadata.create_all(session.get_bind())
        domain = os.getenv('SEED_EMAIL_DOMAIN', 'example.com')
        password = os.getenv('SEED_APPROVER_PASSWORD', 'ChangeMe123!')
        created, updated = ensure_approvers(session, domain, password)
        if args.dry_run:
            session.rollback()
            print(f'[DRY-RUN] (rolled back) Approvers would create: {created}, update: {updated}')
        else:
            session.commit()
            print(f'[DONE] Approvers created: {created}, updated: {updated}')
        if args.show:
            print_approvers(session)


if __name__ == '__main__':
    main()
