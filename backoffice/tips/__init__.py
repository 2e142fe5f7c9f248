"""
backoffice.tips — Tip splitting and percentage contribution pools.
"""
