"""
Provider matcher for NPI Match.

Resolves one input record to at most one NPPES provider: an exact name
search, a wildcard fallback when the exact search finds nothing, and a
zip-code check to choose between multiple candidates.
"""

import logging
from typing import List, Optional, Tuple

from ..models import Address, CandidateProvider, InputRecord, MatchMethod, MatchResult
from ..registry.nppes_client import NPPESClient
from .similarity import check_address_match, find_matching_address, name_similarity

logger = logging.getLogger(__name__)


class NPPESMatcher:
    """
    Matches input provider records against the NPPES registry.

    Holds no per-row state; every call to ``match_record`` is independent.
    Registry calls are strictly sequential and each is followed by the
    client's rate-limit delay.
    """

    def __init__(self, client: NPPESClient):
        """
        Initialize matcher with a registry client.

        Args:
            client: Registry client used for searches and rate-limit pauses
        """
        self.client = client

    def search_candidates(self, record: InputRecord) -> Tuple[List[CandidateProvider], Optional[MatchMethod]]:
        """
        Run the exact search, falling back to a wildcard search.

        Args:
            record: Input provider record

        Returns:
            Tuple of (candidates from the phase used, search method or None)
        """
        exact_matches = self.client.search_provider(record.first_name, record.last_name, exact=True)
        self.client.delay()

        if exact_matches:
            return exact_matches, MatchMethod.EXACT

        wildcard_matches = self.client.search_provider(record.first_name, record.last_name, exact=False)
        self.client.delay()

        if wildcard_matches:
            return wildcard_matches, MatchMethod.WILDCARD
        return [], None

    def select_candidate(self, record: InputRecord, matches: List[CandidateProvider]
                         ) -> Tuple[Optional[CandidateProvider], float, Optional[Address], Optional[str]]:
        """
        Pick the best candidate for a record.

        A single candidate is taken as is. Among several, the first one
        with an address in the record's zip code wins; when none has one,
        nothing is selected.

        Args:
            record: Input provider record
            matches: Candidates from the registry search

        Returns:
            Tuple of (candidate, score, matched address, address type)
        """
        if not matches:
            return None, 0.0, None, None

        if len(matches) == 1:
            candidate = matches[0]
            address = candidate.first_address
            return candidate, 1.0, address, address.address_purpose if address else None

        best_match = None
        best_score = 0.0
        best_address_type = None

        for candidate in matches:
            score, address_type = check_address_match(record.zip_code, candidate.addresses)

            # Strictly greater, so the first of tied candidates is kept
            if score > best_score:
                best_match = candidate
                best_score = score
                best_address_type = address_type

        if best_match is None:
            return None, 0.0, None, None

        best_address = find_matching_address(record.zip_code, best_match.addresses)
        return best_match, best_score, best_address, best_address_type

    def match_record(self, record: InputRecord) -> MatchResult:
        """
        Match a single input record against the registry.

        Args:
            record: Input provider record

        Returns:
            MatchResult for the record
        """
        matches, method = self.search_candidates(record)

        if len(matches) > 1:
            method = method.with_zip()

        candidate, score, address, address_type = self.select_candidate(record, matches)

        if candidate is None:
            if matches:
                logger.info(f"{len(matches)} candidates for {record.display_name} "
                            f"but none in zip {record.zip_code or '<blank>'}")
            return self._no_match(record, len(matches))

        # Zip-selected candidates report the address that matched
        reported_address = address or candidate.first_address
        taxonomy = candidate.first_taxonomy

        return MatchResult(
            original_index=record.index,
            npi=candidate.npi,
            method=method,
            total_matches=len(matches),
            score=score,
            address_type=address_type,
            name_match=name_similarity(record.first_name, record.last_name,
                                       candidate.first_name, candidate.last_name),
            matched_name=candidate.display_name,
            matched_address=reported_address.address_1 if reported_address else None,
            matched_zip=reported_address.postal_code if reported_address else None,
            matched_taxonomy=taxonomy.desc if taxonomy else None,
            original_name=record.display_name,
            original_zip=record.zip_code,
        )

    def _no_match(self, record: InputRecord, total_matches: int) -> MatchResult:
        return MatchResult(
            original_index=record.index,
            npi=None,
            method=MatchMethod.NO_MATCH,
            total_matches=total_matches,
            score=0.0,
            address_type=None,
            name_match=0.0,
            matched_name=None,
            matched_address=None,
            matched_zip=None,
            matched_taxonomy=None,
            original_name=record.display_name,
            original_zip=record.zip_code,
        )
