"""
Labor rate resolution.

An employee's own hourly rate wins; otherwise the company settings rate;
otherwise the configured default.  A missing, zero or negative rate at any
level counts as "not set".
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from costing_kernel.selectors.base import BaseSelector
from costing_modules.project_costs.models import LaborRates
from costing_modules.project_costs.orm import CompanySettingsModel, EmployeeModel


def _is_set(rate: Decimal | None) -> bool:
    return rate is not None and rate > 0


class SettingsRateProvider(BaseSelector[EmployeeModel]):
    """Reads company settings and employees into a ``LaborRates`` snapshot."""

    def __init__(self, session, default_rate: Decimal):
        super().__init__(session)
        self._default_rate = default_rate

    def labor_rates(self, owner_id: UUID) -> LaborRates:
        settings_rate = self.session.execute(
            select(CompanySettingsModel.hourly_rate).where(
                CompanySettingsModel.owner_id == owner_id
            )
        ).scalar_one_or_none()
        default_rate = settings_rate if _is_set(settings_rate) else self._default_rate

        employees = self.session.execute(
            select(EmployeeModel.name, EmployeeModel.hourly_rate).where(
                EmployeeModel.owner_id == owner_id
            )
        ).all()
        employee_rates = {
            name: rate for name, rate in employees if _is_set(rate)
        }
        return LaborRates(default_rate=default_rate, employee_rates=employee_rates)
