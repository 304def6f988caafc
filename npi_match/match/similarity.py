"""
Similarity scoring for NPI Match.

Levenshtein-based name similarity and the binary zip-code check used to
pick one provider out of several registry candidates.
"""

from typing import List, Optional, Tuple
from Levenshtein import distance as levenshtein_distance

from ..models import Address


def string_similarity(str1: Optional[str], str2: Optional[str]) -> float:
    """
    Calculate case-insensitive string similarity using Levenshtein distance.

    Args:
        str1: First string
        str2: Second string

    Returns:
        Similarity ratio between 0 and 1
    """
    str1 = str1 or ""
    str2 = str2 or ""

    # Zero distance over zero length
    if not str1 and not str2:
        return 1.0
    if not str1 or not str2:
        return 0.0

    str1 = str(str1).lower()
    str2 = str(str2).lower()

    distance = levenshtein_distance(str1, str2)
    max_len = max(len(str1), len(str2))

    return 1.0 - (distance / max_len)


def name_similarity(first_name: str, last_name: str,
                    candidate_first: str, candidate_last: str) -> float:
    """Average of first-name and last-name similarity."""
    return (string_similarity(first_name, candidate_first) +
            string_similarity(last_name, candidate_last)) / 2


def find_matching_address(provider_zip: str,
                          addresses: Optional[List[Address]]) -> Optional[Address]:
    """
    Find the first address whose postal code equals the provider zip.

    Postal codes are compared as strings after trimming surrounding
    whitespace; "12345" does not match "12345-6789".

    Args:
        provider_zip: Provider's zip code from the input row
        addresses: Addresses listed on the registry record

    Returns:
        Matching address, or None
    """
    if not addresses or not provider_zip:
        return None

    for address in addresses:
        if provider_zip == (address.postal_code or "").strip():
            return address
    return None


def check_address_match(provider_zip: str,
                        addresses: Optional[List[Address]]) -> Tuple[float, Optional[str]]:
    """
    Check if provider zip matches any address in an NPI record.

    Args:
        provider_zip: Provider's zip code
        addresses: List of addresses from the NPI record

    Returns:
        Tuple of (match score, address type); (1.0, purpose) on a match,
        otherwise (0.0, None)
    """
    address = find_matching_address(provider_zip, addresses)
    if address is None:
        return 0.0, None
    return 1.0, address.address_purpose
