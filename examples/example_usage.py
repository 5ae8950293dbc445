"""Example: call the service layer directly, without Flask.

Controllers stay thin; the payroll and evaluation rules live in services.
"""

import importlib

from config import get_settings_module

from src.people_ops.people_ops.container import build_container


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG)
    cost = container.payroll_auto_calc_service.calculate_total_employee_cost(
        tenant_id="demo", employee_id="emp-1", period="2025-03", base_salary=500000
    )
    print(cost.to_dict())


if __name__ == "__main__":
    main()
