"""Payroll subsystem — employee roster, oblivious routing, pending payments."""

from paygram.payroll.core import PayrollCore
from paygram.payroll.router import RoutedAmounts, route_salary

__all__ = ["PayrollCore", "RoutedAmounts", "route_salary"]
