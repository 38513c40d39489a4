"""Core HR module — Employee, Department, Designation models, schemas and services."""

from hrms.core_hr.models import Department, Designation, Employee

__all__ = ["Employee", "Department", "Designation"]
