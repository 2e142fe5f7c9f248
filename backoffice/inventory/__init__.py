"""
backoffice.inventory — Recipe deductions, inventory valuation and count variance.
"""
