"""
Privacy Policy Resolver

Expands the <Category>PrivacyAttributes / <Category>PrivacyScope directives
into the attribute sets the serving layer redacts, plus the keyword list
advertised to clients in <category>-privacy-attributes.

Attribute values:
- "none":    nothing is private
- "all":     every description and template attribute is private
- otherwise: comma-separated list of aliases and attribute names
    default                  -> description + template tables
    <category>-description   -> description table
    <category>-template      -> template table
    anything else            -> that attribute name, verbatim

Unknown names are accepted as-is so operators can list draft attributes.
"""

from typing import FrozenSet, List, Set, Tuple

from core.exceptions import ConfigurationError
from logging_config import get_logger
from models.privacy import CategoryPolicy, PrivacyCategory, PrivacyPolicy, PrivacyScope
from models.server_config import ServerConfig
from modules.privacy_tables import get_tables

logger = get_logger(__name__)

NONE = "none"
ALL = "all"
DEFAULT = "default"


def resolve_attributes(category: PrivacyCategory, attributes: str) -> Tuple[FrozenSet[str], Tuple[str, ...]]:
    """
    Expand one category's privacy attribute string.

    Args:
        category: Category whose alias tables apply
        attributes: Raw directive value, e.g. "default" or "job-name,job-state"

    Returns:
        (attribute set, advertised keywords)
    """
    tables = get_tables(category)
    description = tables["description"]
    template = tables["template"]

    if attributes == NONE:
        return frozenset(), (NONE,)

    if attributes == ALL:
        return description | template, (ALL,)

    expanded: Set[str] = set()
    advertised: List[str] = []

    for token in attributes.split(","):
        token = token.strip()
        if not token or token in (ALL, NONE):
            continue

        advertised.append(token)

        if token == DEFAULT:
            expanded |= description
            expanded |= template
        elif token == f"{category.value}-description":
            expanded |= description
        elif token == f"{category.value}-template":
            expanded |= template
        else:
            expanded.add(token)

    return frozenset(expanded), tuple(advertised)


def resolve_category(category: PrivacyCategory, scope: str, attributes: str) -> CategoryPolicy:
    """
    Build the policy for one category.

    Raises:
        ValueError: If scope is not a PrivacyScope keyword
    """
    attribute_set, advertised = resolve_attributes(category, attributes)
    policy = CategoryPolicy(
        category=category,
        scope=PrivacyScope.from_keyword(scope),
        attributes=attribute_set,
        advertised=advertised,
    )
    logger.debug(
        f"{category.value} privacy: scope={policy.scope.value}, "
        f"advertised={','.join(advertised) or '(nothing)'}, {len(attribute_set)} attributes"
    )
    return policy


def build_privacy_policy(config: ServerConfig) -> PrivacyPolicy:
    """
    Resolve the privacy policy from a finalized configuration.

    Args:
        config: ServerConfig after finalize_configuration()

    Returns:
        Immutable PrivacyPolicy

    Raises:
        ConfigurationError: If the configuration has not been finalized
    """
    if not config.is_finalized:
        raise ConfigurationError("Server configuration must be finalized before resolving privacy")

    policies = {}
    for category in PrivacyCategory:
        directive = config.privacy(category)
        policies[category.value] = resolve_category(
            category, directive.scope.value, directive.attributes.value
        )

    return PrivacyPolicy(**policies)
