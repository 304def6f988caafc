"""
NPPES registry access for NPI Match.
"""
