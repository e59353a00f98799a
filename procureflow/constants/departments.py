"""Canonical departments, account roles, ledger roles and the service category table.

Department labels arrive as free text ("IT", "IT Department", "it department ").
Every ingress point runs them through ``canonical_department`` so comparisons are
made between normalized keys, never raw strings.
"""
from __future__ import annotations
import enum
import re
from typing import Dict, List, Optional

_SUFFIX_RE = re.compile(r'\s*department$')


class Department(str, enum.Enum):
    IT = 'it'
    MAINTENANCE = 'maintenance'
    ACCOUNTING = 'accounting'
    GENERAL_SERVICES = 'general services'
    OPERATIONS = 'operations'
    FINANCE = 'finance'
    PURCHASING = 'purchasing'
    PRESIDENT = 'president'

    @property
    def label(self) -> str:
        if self is Department.IT:
            return 'IT'
        return ' '.join(w.capitalize() for w in self.value.split(' '))


def normalize_department(raw: Optional[str]) -> str:
    """Lowercase, trim and strip a trailing literal 'department'."""
    if not raw:
        return ''
    return _SUFFIX_RE.sub('', raw.strip().lower()).strip()


def canonical_department(raw: Optional[str]) -> Optional[Department]:
    """Return the enumerated department for a free-text label, None if unknown."""
    key = normalize_department(raw)
    try:
        return Department(key)
    except ValueError:
        return None


def same_department(a: Optional[str], b: Optional[str]) -> bool:
    na, nb = normalize_department(a), normalize_department(b)
    return bool(na) and na == nb


# Account roles (stored on User)
ROLE_REQUESTER = 'REQUESTER'
ROLE_APPROVER = 'APPROVER'
ROLE_ADMIN = 'ADMIN'
ROLE_SUPER_ADMIN = 'SUPER_ADMIN'
# Legacy literal accepted by the President gate
ROLE_MANAGEMENT = 'MANAGEMENT'
ACCOUNT_ROLES = (ROLE_REQUESTER, ROLE_APPROVER, ROLE_ADMIN, ROLE_SUPER_ADMIN, ROLE_MANAGEMENT)
ADMIN_ROLES = (ROLE_ADMIN, ROLE_SUPER_ADMIN)

# Ledger roles (stamped on approval records)
LEDGER_DEPARTMENT_HEAD = 'DEPARTMENT_HEAD'
LEDGER_FINANCE = 'FINANCE'
LEDGER_MANAGEMENT = 'MANAGEMENT'
LEDGER_PURCHASING = 'PURCHASING'
LEDGER_OPERATIONS = 'OPERATIONS'
LEDGER_ROLES = (LEDGER_DEPARTMENT_HEAD, LEDGER_FINANCE, LEDGER_MANAGEMENT, LEDGER_PURCHASING, LEDGER_OPERATIONS)

# Service categories
CATEGORY_TECHNICAL_SUPPORT = 'Technical Support'
CATEGORY_FACILITY_MAINTENANCE = 'Facility Maintenance'
CATEGORY_ACCOUNT_BILLING = 'Account/Billing Inquiry'
CATEGORY_GENERAL_INQUIRY = 'General Inquiry'
CATEGORY_OTHER = 'Other'

SERVICE_CATEGORY_DEPARTMENTS: Dict[str, List[Department]] = {
    CATEGORY_TECHNICAL_SUPPORT: [Department.IT],
    CATEGORY_FACILITY_MAINTENANCE: [Department.MAINTENANCE],
    CATEGORY_ACCOUNT_BILLING: [Department.ACCOUNTING],
    CATEGORY_GENERAL_INQUIRY: [Department.GENERAL_SERVICES],
    CATEGORY_OTHER: [Department.OPERATIONS],
}
ALL_CATEGORIES = tuple(SERVICE_CATEGORY_DEPARTMENTS)


def handling_departments(service_category: Optional[str]) -> List[Department]:
    """Departments authorized to act on a category. Unmapped categories fall to Operations."""
    return list(SERVICE_CATEGORY_DEPARTMENTS.get(service_category or '', [Department.OPERATIONS]))


def categories_for_department(raw: Optional[str]) -> List[str]:
    dept = canonical_department(raw)
    if dept is None:
        return []
    if dept is Department.PRESIDENT:
        return list(ALL_CATEGORIES)
    return [cat for cat, depts in SERVICE_CATEGORY_DEPARTMENTS.items() if dept in depts]


def handling_label(service_category: Optional[str]) -> str:
    """Human label of the first handling department, used as a notification recipient."""
    return handling_departments(service_category)[0].label


__all__ = [
    'Department', 'normalize_department', 'canonical_department', 'same_department',
    'handling_departments', 'categories_for_department', 'handling_label',
    'ACCOUNT_ROLES', 'ADMIN_ROLES', 'LEDGER_ROLES', 'ALL_CATEGORIES',
]
