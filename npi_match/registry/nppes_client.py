"""
NPPES registry client for NPI Match.

Queries the public CMS NPI Registry API by provider name and normalizes
the JSON response into candidate provider records. Failures never escape
the client: they are logged, reported through an optional callback, and
degrade to an empty candidate list.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional
import requests

from ..models import Address, AddressPurpose, CandidateProvider, Taxonomy

logger = logging.getLogger(__name__)

NPPES_BASE_URL = "https://npiregistry.cms.hhs.gov/api/"


class RegistryResponseError(ValueError):
    """Raised when a registry payload does not have the expected shape."""
    pass


class NPPESClient:
    """
    Rate-limited client for the NPPES provider registry.

    Callers must invoke ``delay()`` after every search, successful or not,
    to respect the registry's implicit rate limit.
    """

    def __init__(self, config: Optional[Dict] = None,
                 on_error: Optional[Callable[[str, Exception], None]] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize registry client with configuration.

        Args:
            config: Registry configuration section
            on_error: Callback receiving (message, exception) for failed searches
            session: HTTP session to reuse (a new one is created if omitted)
            sleep: Blocking sleep function used by ``delay()``
        """
        config = config or {}
        self.base_url = config.get("base_url", NPPES_BASE_URL)
        self.version = str(config.get("version", "2.1"))
        self.limit = int(config.get("limit", 20))
        self.skip = int(config.get("skip", 0))
        self.timeout = config.get("timeout", 30)
        self.rate_limit_delay = float(config.get("rate_limit_delay", 0.5))
        self.user_agent = config.get("user_agent", "npi-match/1.0")

        self.on_error = on_error
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})
        self._sleep = sleep

        self.request_count = 0
        self.failed_requests = 0

        logger.info(f"Initialized NPPESClient for {self.base_url}")

    def build_search_params(self, first_name: str, last_name: str,
                            exact: bool = True) -> Dict[str, Any]:
        """
        Build query parameters for a name search.

        Args:
            first_name: Provider's first name
            last_name: Provider's last name
            exact: If true, names are sent as given; otherwise wrapped in wildcards

        Returns:
            Query parameter dictionary
        """
        if exact:
            first_name_param = first_name
            last_name_param = last_name
        else:
            first_name_param = f"*{first_name}*" if first_name else "*"
            last_name_param = f"*{last_name}*" if last_name else "*"

        return {
            "version": self.version,
            "first_name": first_name_param,
            "last_name": last_name_param,
            "limit": self.limit,
            "skip": self.skip,
        }

    def search_provider(self, first_name: str, last_name: str,
                        exact: bool = True) -> List[CandidateProvider]:
        """
        Search for a provider in the NPPES registry.

        Args:
            first_name: Provider's first name
            last_name: Provider's last name
            exact: If true, performs exact match; if false, uses wildcard

        Returns:
            List of matching providers (empty on no results or any failure)
        """
        params = self.build_search_params(first_name, last_name, exact)
        self.request_count += 1

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
            candidates = self.parse_response(payload)
        except (requests.exceptions.RequestException, ValueError) as e:
            self._report_failure(first_name, last_name, e)
            return []

        logger.debug(f"Registry returned {len(candidates)} candidates for "
                     f"{params['first_name']} {params['last_name']}")
        return candidates

    def parse_response(self, payload: Any) -> List[CandidateProvider]:
        """
        Normalize a registry JSON payload into candidate providers.

        Args:
            payload: Decoded JSON response body

        Returns:
            List of candidate providers

        Raises:
            RegistryResponseError: If the payload is malformed or reports errors
        """
        if not isinstance(payload, dict):
            raise RegistryResponseError("Registry response is not a JSON object")

        errors = payload.get("Errors")
        if errors:
            if not isinstance(errors, list):
                raise RegistryResponseError(f"Registry reported errors: {errors}")
            descriptions = [str(err.get("description", "unknown error")) if isinstance(err, dict) else str(err)
                            for err in errors]
            raise RegistryResponseError(f"Registry reported errors: {'; '.join(descriptions)}")

        if payload.get("result_count") == 0:
            return []

        results = payload.get("results")
        if not isinstance(results, list):
            raise RegistryResponseError("Registry response has no results list")

        return [self._parse_provider(result) for result in results]

    def _parse_provider(self, result: Any) -> CandidateProvider:
        """Convert a single registry result into a CandidateProvider."""
        if not isinstance(result, dict) or result.get("number") in (None, ""):
            raise RegistryResponseError("Registry result is missing an NPI number")

        basic = result.get("basic") or {}
        if not isinstance(basic, dict):
            raise RegistryResponseError(f"Malformed basic section on NPI {result['number']}")

        raw_addresses = result.get("addresses") or []
        raw_taxonomies = result.get("taxonomies") or []
        if not isinstance(raw_addresses, list) or not isinstance(raw_taxonomies, list):
            raise RegistryResponseError(f"Malformed address or taxonomy list on NPI {result['number']}")

        addresses = []
        for addr in raw_addresses:
            if not isinstance(addr, dict):
                raise RegistryResponseError(f"Malformed address on NPI {result['number']}")
            purpose = addr.get("address_purpose")
            if purpose and purpose not in AddressPurpose.__members__:
                logger.debug(f"Unrecognized address purpose {purpose} on NPI {result['number']}")
            addresses.append(Address(
                address_1=str(addr.get("address_1") or ""),
                postal_code=str(addr.get("postal_code") or ""),
                address_purpose=purpose,
            ))

        taxonomies = [
            Taxonomy(
                desc=str(tax.get("desc") or ""),
                code=tax.get("code"),
                primary=bool(tax.get("primary", False)),
            )
            for tax in raw_taxonomies
            if isinstance(tax, dict)
        ]

        return CandidateProvider(
            npi=str(result["number"]),
            first_name=str(basic.get("first_name") or ""),
            last_name=str(basic.get("last_name") or ""),
            addresses=addresses,
            taxonomies=taxonomies,
        )

    def _report_failure(self, first_name: str, last_name: str, error: Exception):
        """Record a failed search and notify the error callback."""
        self.failed_requests += 1
        message = f"Error searching for {first_name} {last_name}: {error}"
        logger.error(message)

        if self.on_error:
            self.on_error(message, error)

    def delay(self):
        """Pause between registry calls to avoid rate limiting."""
        self._sleep(self.rate_limit_delay)

    def close(self):
        """Close the underlying HTTP session."""
        self.session.close()
