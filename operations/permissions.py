"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin"}
CLINICAL_ROLES = {"admin", "doctor", "nurse"}
STAFF_ROLES = {"admin", "doctor", "nurse", "receptionist", "pharmacist"}
PHARMACY_ROLES = {"admin", "pharmacist"}


def _role_of(request) -> str | None:
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) in ADMIN_ROLES


class IsDoctorRole(BasePermission):
    """Allow access only to doctors."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) == "doctor"


class IsClinicalStaff(BasePermission):
    """Doctors, nurses and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) in CLINICAL_ROLES


class IsHospitalStaff(BasePermission):
    """Any non-patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) in STAFF_ROLES


class IsPharmacyRole(BasePermission):
    """Pharmacists and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role_of(request) in PHARMACY_ROLES

