"""
Privacy policy data models.

A PrivacyPolicy is resolved once at startup from the privacy directives in
system.conf and then shared read-only by every request handler.

Thread Safety:
    - CategoryPolicy and PrivacyPolicy are frozen dataclasses (immutable)
    - Attribute sets are frozensets, safe for concurrent membership tests
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, FrozenSet, List, Optional, Tuple, Union


class PrivacyCategory(Enum):
    """Object categories that carry privacy-sensitive attributes."""

    DOCUMENT = "document"
    JOB = "job"
    SUBSCRIPTION = "subscription"


class PrivacyScope(Enum):
    """
    Who the privacy attributes are hidden from.

    ALL:     hidden from every requester, including the owner
    DEFAULT: hidden from everyone except the owner
    """

    ALL = "all"
    DEFAULT = "default"

    @classmethod
    def from_keyword(cls, keyword: str) -> "PrivacyScope":
        """
        Look up a scope by its directive keyword (case-insensitive).

        Raises:
            ValueError: If the keyword is not a known scope
        """
        for scope in cls:
            if scope.value == keyword.lower():
                return scope
        raise ValueError(f'Unknown privacy scope "{keyword}"')


@dataclass(frozen=True)
class CategoryPolicy:
    """Resolved privacy policy for one category."""

    category: PrivacyCategory
    """Which object type this policy applies to."""

    scope: PrivacyScope
    """Who the attributes are hidden from."""

    attributes: FrozenSet[str]
    """Attribute names withheld from requesters outside the scope."""

    advertised: Tuple[str, ...]
    """Value of <category>-privacy-attributes reported to clients."""

    def hides(self, name: str, requester: Optional[str] = None, owner: Optional[str] = None) -> bool:
        """
        Whether attribute `name` must be omitted for this requester.

        Args:
            name: Attribute name about to be returned
            requester: Authenticated user making the request (None if anonymous)
            owner: User that owns the job/document/subscription

        Returns:
            True if the attribute is private for this requester
        """
        if name not in self.attributes:
            return False
        if self.scope is PrivacyScope.ALL:
            return True
        return requester is None or requester != owner

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "category": self.category.value,
            "scope": self.scope.value,
            "advertised": list(self.advertised),
            "attributes": sorted(self.attributes),
        }


@dataclass(frozen=True)
class PrivacyPolicy:
    """Privacy policy for documents, jobs and subscriptions."""

    document: CategoryPolicy
    job: CategoryPolicy
    subscription: CategoryPolicy

    def for_category(self, category: PrivacyCategory) -> CategoryPolicy:
        """Return the policy for a category."""
        return getattr(self, category.value)

    def advertised_attributes(self) -> Dict[str, Union[str, List[str]]]:
        """
        Printer attributes describing the active policy.

        Returns:
            Dict with <category>-privacy-attributes (list of keywords, omitted
            when the operator's list resolved to nothing) and
            <category>-privacy-scope for each category.
        """
        attrs: Dict[str, Union[str, List[str]]] = {}
        for category in PrivacyCategory:
            policy = self.for_category(category)
            if policy.advertised:
                attrs[f"{category.value}-privacy-attributes"] = list(policy.advertised)
            attrs[f"{category.value}-privacy-scope"] = policy.scope.value
        return attrs

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {category.value: self.for_category(category).to_dict() for category in PrivacyCategory}
