"""
Matching engine for NPI Match.

Implements the two-phase exact/wildcard registry search and the
zip-code disambiguation used to select a single NPPES provider.
"""
