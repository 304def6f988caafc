"""
Result reporting for NPI Match.
"""
