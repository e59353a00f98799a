"""Static approver directory: one provisioned account per department head plus the President.

Consumed by scripts/seed_approvers.py. Emails are placeholders; deployments
override the domain with SEED_EMAIL_DOMAIN.
"""
from procureflow.constants.departments import ROLE_APPROVER, ROLE_SUPER_ADMIN

APPROVER_DIRECTORY = [
    # (name, email local part, department label, role)
    ('IT Head', 'it.head', 'IT Department', ROLE_APPROVER),
    ('Maintenance Head', 'maintenance.head', 'Maintenance', ROLE_APPROVER),
    ('Operations Head', 'operations.head', 'Operations', ROLE_APPROVER),
    ('Finance Head', 'finance.head', 'Finance', ROLE_APPROVER),
    ('Purchasing Manager', 'purchasing', 'Purchasing', ROLE_APPROVER),
    ('Accounting Head', 'accounting.head', 'Accounting', ROLE_APPROVER),
    ('General Services Head', 'general.services', 'General Services', ROLE_APPROVER),
    ('President', 'president', 'President', ROLE_SUPER_ADMIN),
]
