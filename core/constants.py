# core/constants.py

from django.db import models


class Role(models.TextChoices):
    """User role constants for RBAC (ordered lowest to highest)"""
    PATIENT = 'patient', 'Patient'
    PARTNER = 'partner', 'Partner'
    STAFF = 'staff', 'Staff'
    ADMIN = 'admin', 'Administrator'
    SUPER_ADMIN = 'super_admin', 'Super Administrator'


ROLE_RANK = {
    Role.PATIENT: 1,
    Role.PARTNER: 2,
    Role.STAFF: 3,
    Role.ADMIN: 4,
    Role.SUPER_ADMIN: 5,
}

# Unknown roles never satisfy a rank check
UNKNOWN_ROLE_RANK = 0
UNKNOWN_REQUIRED_RANK = 999

PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


def role_rank(role):
    return ROLE_RANK.get(role, UNKNOWN_ROLE_RANK)


def required_rank(role):
    return ROLE_RANK.get(role, UNKNOWN_REQUIRED_RANK)


class StaffPermission(models.TextChoices):
    """Permission strings a staff profile may hold"""
    MANAGE_APPOINTMENTS = 'manage_appointments', 'Manage appointments'
    PROCESS_PAYMENTS = 'process_payments', 'Process payments'
    VIEW_REPORTS = 'view_reports', 'View reports'
    MANAGE_DOCUMENTS = 'manage_documents', 'Manage documents'
    MANAGE_USERS = 'manage_users', 'Manage users'
    SYSTEM_SETTINGS = 'system_settings', 'System settings'


class StaffRole(models.TextChoices):
    FRONT_DESK = 'front_desk', 'Front Desk'
    BACK_OFFICE = 'back_office', 'Back Office'
    ADMIN = 'admin', 'Admin'


class AuditActions(models.TextChoices):
    """Audit log action types"""
    CREATE = 'create', 'Create'
    UPDATE = 'update', 'Update'
    DELETE = 'delete', 'Delete'
    LOGIN = 'login', 'Login'
    LOGOUT = 'logout', 'Logout'
    ACCESS = 'access', 'Access'


class AuditEntities:
    """Target entity labels used in the audit trail"""
    USERS = 'Users'
    STAFF_MEMBERS = 'Staff_Members'
    REFERRALS = 'Referrals'
    AUDIT_LOGS = 'Audit_Logs'


class ReferralStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'
    CANCELLED = 'cancelled', 'Cancelled'


# Flat referral commission
DEFAULT_COMMISSION = '10.00'

REDACTED = '[REDACTED]'
