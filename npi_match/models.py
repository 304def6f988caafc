"""
Record types for NPI Match.

Input rows, registry candidates and per-row match results, plus the
fixed vocabularies used for match methods and address purposes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class AddressPurpose(str, Enum):
    """Role of an address in an NPPES record."""

    LOCATION = "LOCATION"
    MAILING = "MAILING"
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"


class MatchMethod(str, Enum):
    """How a provider match was found."""

    EXACT = "EXACT"
    EXACT_WITH_ZIP = "EXACT_WITH_ZIP"
    WILDCARD = "WILDCARD"
    WILDCARD_WITH_ZIP = "WILDCARD_WITH_ZIP"
    NO_MATCH = "NO_MATCH"

    def with_zip(self) -> "MatchMethod":
        """Return the zip-disambiguated variant of a search method."""
        if self == MatchMethod.EXACT:
            return MatchMethod.EXACT_WITH_ZIP
        if self == MatchMethod.WILDCARD:
            return MatchMethod.WILDCARD_WITH_ZIP
        return self


# Output column names, in the order downstream consumers expect them
RESULT_COLUMNS = [
    "Original Index",
    "NPI",
    "Match Method",
    "Total Matches Found",
    "Final Match Score",
    "Address Type",
    "Name Match",
    "Matched Provider Name",
    "Matched Address",
    "Matched Zip",
    "Matched Taxonomy",
    "Original Name",
    "Original Zip",
]


@dataclass(frozen=True)
class InputRecord:
    """One provider row read from the input spreadsheet."""

    index: int
    first_name: str
    last_name: str
    zip_code: str
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Address:
    address_1: str = ""
    postal_code: str = ""
    address_purpose: Optional[str] = None


@dataclass
class Taxonomy:
    desc: str = ""
    code: Optional[str] = None
    primary: bool = False


@dataclass
class CandidateProvider:
    """
    A provider returned by the registry for one search.

    Built fresh for every query and never shared between input rows.
    """

    npi: str
    first_name: str = ""
    last_name: str = ""
    addresses: List[Address] = field(default_factory=list)
    taxonomies: List[Taxonomy] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def first_address(self) -> Optional[Address]:
        return self.addresses[0] if self.addresses else None

    @property
    def first_taxonomy(self) -> Optional[Taxonomy]:
        return self.taxonomies[0] if self.taxonomies else None


@dataclass
class MatchResult:
    """
    Match decision for a single input record.

    ``method`` is NO_MATCH exactly when ``npi`` is None.
    """

    original_index: int
    npi: Optional[str]
    method: MatchMethod
    total_matches: int
    score: float
    address_type: Optional[str]
    name_match: float
    matched_name: Optional[str]
    matched_address: Optional[str]
    matched_zip: Optional[str]
    matched_taxonomy: Optional[str]
    original_name: str
    original_zip: str

    @property
    def is_match(self) -> bool:
        return self.npi is not None

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the result to an output row.

        Returns:
            Dictionary keyed by the output column names
        """
        values = [
            self.original_index,
            self.npi,
            self.method.value,
            self.total_matches,
            self.score,
            self.address_type,
            self.name_match,
            self.matched_name,
            self.matched_address,
            self.matched_zip,
            self.matched_taxonomy,
            self.original_name,
            self.original_zip,
        ]
        return dict(zip(RESULT_COLUMNS, values))
