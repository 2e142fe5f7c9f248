"""
backoffice.labor — Compensation rules, time-punch processing, labor costing
and payroll.

Import surface::

    from backoffice.labor.compensation import calculate_daily_labor_cost
    from backoffice.labor.punches      import parse_work_periods
    from backoffice.labor.costs        import calculate_scheduled_labor_cost
    from backoffice.labor.payroll      import calculate_payroll_period
"""
