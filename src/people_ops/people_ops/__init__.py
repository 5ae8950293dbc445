"""People Ops package.

Multi-tenant HR core organized by feature modules (payroll, evaluations,
permissions, notifications, ...) with a thin Flask controller layer over
service and repository layers.
"""
