"""HRMS backend — employees, attendance, leave, payroll, roles and menus."""
