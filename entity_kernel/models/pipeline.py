"""Intermediate results passed between pipeline stages."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from entity_kernel.models.operation import EntityCandidate


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = []       # "<field>: <reason>"
    fields: List[str] = []       # offending field names, in error order


class MatchTier(str, Enum):
    EXACT = "exact"
    SUBSTRING = "substring"
    TOKEN = "token"
    SIMILARITY = "similarity"
    NONE = "none"


class ResolutionResult(BaseModel):
    """Outcome of fuzzy name resolution over a user's entities."""
    match: Optional[EntityCandidate] = None
    alternatives: List[EntityCandidate] = []
    tier: MatchTier = MatchTier.NONE
    ambiguous_matches: List[EntityCandidate] = []

    @property
    def is_ambiguous(self) -> bool:
        return len(self.ambiguous_matches) > 1


class TargetStatus(str, Enum):
    NOT_REQUIRED = "not_required"        # create / view
    FOUND = "found"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"
    MISSING_REFERENCE = "missing_reference"


class TargetResolution(BaseModel):
    """A handler's answer to "which entity does this operation mean?"."""
    status: TargetStatus
    candidate: Optional[EntityCandidate] = None
    options: List[EntityCandidate] = []
    alternatives: List[EntityCandidate] = []
    query: Optional[str] = None
    tier: MatchTier = MatchTier.NONE
    preview: Optional[str] = None        # shown in delete confirmations
