"""
Data ingestion and validation for NPI Match.
"""
