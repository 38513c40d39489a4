"""Payroll module — deduction rules, payroll computation and generation."""
