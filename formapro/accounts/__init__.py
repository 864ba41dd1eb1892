"""
Accounts

Login and identity endpoints for administrators, companies and employees.
"""
