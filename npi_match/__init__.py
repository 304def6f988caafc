"""
NPI Match - Healthcare Provider NPI Matching Engine

Matches provider records from a spreadsheet against the public NPPES
registry and attaches a National Provider Identifier with supporting
metadata to each input row.
"""

__version__ = "1.0.0"
__author__ = "NPI Match Team"
