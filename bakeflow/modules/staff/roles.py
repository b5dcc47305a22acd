"""Typed role/department capability registry for step assignment.

Workflow templates carry role and department names as JSON strings. They are
resolved once into :class:`Capability` values here; everything downstream
compares enums, never raw strings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from bakeflow.exceptions import ConfigurationException
from bakeflow.models.enums import Department, StaffRole

logger = logging.getLogger(__name__)

# Alternate spellings seen in authored templates
_ROLE_ALIASES: dict[str, StaffRole] = {
    "quality_control": StaffRole.QUALITY_INSPECTOR,
    "qc": StaffRole.QUALITY_INSPECTOR,
    "packaging": StaffRole.PACKER,
    "decorating": StaffRole.DECORATOR,
}

_DEPARTMENT_ALIASES: dict[str, Department] = {
    "qc": Department.QUALITY_CONTROL,
    "quality": Department.QUALITY_CONTROL,
}


@dataclass(frozen=True, slots=True)
class Capability:
    """What a user must be to work a step: a role, optionally within a department."""

    role: StaffRole
    department: Department | None = None

    def allows(self, role: StaffRole, department: Department | None) -> bool:
        if role != self.role:
            return False
        return self.department is None or department == self.department


def parse_role(value: str | StaffRole) -> StaffRole:
    if isinstance(value, StaffRole):
        return value
    key = value.strip().lower()
    if key in _ROLE_ALIASES:
        return _ROLE_ALIASES[key]
    try:
        return StaffRole(key.upper())
    except ValueError:
        raise ConfigurationException(f"Unknown staff role '{value}'") from None


def parse_department(value: str | Department | None) -> Department | None:
    if value is None or isinstance(value, Department):
        return value
    key = value.strip().lower()
    if not key:
        return None
    if key in _DEPARTMENT_ALIASES:
        return _DEPARTMENT_ALIASES[key]
    try:
        return Department(key.upper())
    except ValueError:
        raise ConfigurationException(f"Unknown department '{value}'") from None


def capability_for_step(step_definition: dict) -> Capability:
    """Resolve a workflow step definition into its required capability."""
    role = step_definition.get("assigned_role")
    if not role:
        raise ConfigurationException(
            f"Workflow step '{step_definition.get('step_name', '?')}' has no assigned_role"
        )
    return Capability(
        role=parse_role(role),
        department=parse_department(
            step_definition.get("required_department") or step_definition.get("department")
        ),
    )
