"""
backoffice.finance — Period P&L metrics, recurring expense detection,
check amounts and bank statement import.
"""
