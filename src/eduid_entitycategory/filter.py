"""
Rewrite the attributes requested by a service provider based on the entity categories it belongs to.

This filter does NOT remove anything from the attributes released to the service, it only changes the list of
attributes the service is considered to have requested. Something else (an attribute limiting filter or policy)
has to use that list to actually restrict what is released.
"""

import logging
from collections.abc import Mapping, Sequence, Set
from dataclasses import dataclass
from typing import Any, TypeAlias

from saml2.mdstore import ENTITY_CATEGORY

from eduid_entitycategory.config import CategoryPolicy, is_positional_key

__author__ = "lundberg"

logger = logging.getLogger(__name__)

# Either a plain list (or set) of attribute names, or a mapping where the attribute name is the key (named
# entries) or the value (positional entries, integer or digit-string keys).
RequestedAttributes: TypeAlias = Sequence[str] | Set[str] | Mapping[str | int, Any]


@dataclass(frozen=True)
class RequestedAttribute:
    name: str
    key: str | int | None  # None for entries of a plain list or set
    value: Any


@dataclass
class Destination:
    """The service provider a response is being prepared for."""

    entity_id: str | None = None
    # Entity attributes from metadata, e.g. {'http://macedir.org/entity-category': [...]}
    entity_attributes: Mapping[str, Sequence[str]] | None = None
    attributes: RequestedAttributes | None = None

    @property
    def entity_categories(self) -> Sequence[str] | None:
        if not isinstance(self.entity_attributes, Mapping):
            return None
        categories = self.entity_attributes.get(ENTITY_CATEGORY)
        if isinstance(categories, str):
            return [categories]
        return categories


def normalise_requested_attributes(requested: RequestedAttributes) -> list[RequestedAttribute]:
    if isinstance(requested, Mapping):
        res = []
        for key, value in requested.items():
            if is_positional_key(key):
                res.append(RequestedAttribute(name=str(value), key=key, value=value))
            else:
                res.append(RequestedAttribute(name=key, key=key, value=value))
        return res
    return [RequestedAttribute(name=str(value), key=None, value=value) for value in requested]


def _serialise_requested_attributes(
    original: RequestedAttributes, entries: list[RequestedAttribute]
) -> RequestedAttributes:
    if isinstance(original, Mapping):
        return {entry.key: entry.value for entry in entries}
    values = [entry.value for entry in entries]
    if isinstance(original, frozenset):
        return frozenset(values)
    if isinstance(original, Set):
        return set(values)
    if isinstance(original, tuple):
        return tuple(values)
    return values


def _known_categories(policy: CategoryPolicy, categories: Sequence[str]) -> list[tuple[str, ...]]:
    res = []
    for category in categories:
        if not isinstance(category, str):
            logger.debug(f"Skipping malformed entity category {category!r}")
            continue
        allowed = policy.allowed_attributes(category)
        if allowed is None:
            logger.debug(f"Skipping unknown entity category {category}")
            continue
        res.append(allowed)
    return res


def default_attributes(policy: CategoryPolicy, categories: Sequence[str]) -> list[str]:
    """All attributes allowed by any of the known categories, without duplicates."""
    res: list[str] = []
    for allowed in _known_categories(policy, categories):
        for attr in allowed:
            if attr not in res:
                res.append(attr)
    return res


def is_justified(policy: CategoryPolicy, attr_name: str, categories: Sequence[str]) -> bool:
    if policy.allow_requested_attributes:
        return True
    return any(attr_name in allowed for allowed in _known_categories(policy, categories))


def apply_policy(
    policy: CategoryPolicy, categories: Sequence[str] | None, requested: RequestedAttributes | None
) -> RequestedAttributes | None:
    """
    Compute the new requested attributes for a service provider.

    :param policy: The entity category policy
    :param categories: Entity categories declared by the service provider, None if it declares none
    :param requested: The attributes requested by the service provider, None if it requested nothing

    :return: The new requested attributes. The input is never modified.
    """
    if isinstance(categories, str):
        categories = [categories]
    if not categories:
        logger.debug("No entity categories declared, nothing to do")
        return requested
    if not isinstance(categories, Sequence):
        logger.debug(f"Ignoring malformed entity categories: {categories!r}")
        return requested

    if requested is None:
        if not policy.default:
            return None
        # service providers requesting no attributes get everything their categories allow
        res = default_attributes(policy, categories)
        logger.debug(f"No attributes requested, using attributes allowed by entity categories {categories}: {res}")
        return res

    if isinstance(requested, str | bytes) or not isinstance(requested, Mapping | Sequence | Set):
        logger.debug(f"Ignoring malformed requested attributes: {requested!r}")
        return requested

    keep = []
    for entry in normalise_requested_attributes(requested):
        if is_justified(policy, entry.name, categories):
            keep.append(entry)
            continue
        if policy.strict:
            logger.info(f"Removing requested attribute {entry.name}, not allowed by entity categories {categories}")
            continue
        logger.debug(f"Attribute {entry.name} not allowed by entity categories, leaving it to the attribute limit")
        keep.append(entry)

    return _serialise_requested_attributes(requested, keep)


class EntityCategoryFilter:
    """
    Authentication processing filter modifying the requested attributes of a destination
    depending on the entity categories it belongs to.
    """

    def __init__(self, config: Mapping[str, Any] | Sequence[Any]):
        self.policy = CategoryPolicy.from_config(config)
        logger.info(
            f"Entity category filter starting with categories {list(self.policy.categories)}, "
            f"default: {self.policy.default}, strict: {self.policy.strict}, "
            f"allowRequestedAttributes: {self.policy.allow_requested_attributes}"
        )

    def process(self, destination: Destination) -> Destination:
        if not isinstance(destination.entity_attributes, Mapping):
            # something weird going on, but abort anyway
            logger.debug(f"No entity attributes for destination {destination.entity_id}")
            return destination

        categories = destination.entity_categories
        if categories is None:
            logger.debug(f"Destination {destination.entity_id} has entity attributes, but no entity categories")
            return destination

        destination.attributes = apply_policy(self.policy, categories, destination.attributes)
        return destination

    def process_request(self, request: dict[str, Any]) -> None:
        """
        Process a request in the form

            {'Destination': {'entityid': ..., 'EntityAttributes': {...}, 'attributes': [...]}}

        The requested attributes of the destination are updated in place.
        """
        _destination = request.get("Destination")
        if not isinstance(_destination, dict):
            logger.debug("Request has no destination")
            return

        destination = Destination(
            entity_id=_destination.get("entityid"),
            entity_attributes=_destination.get("EntityAttributes"),
            attributes=_destination.get("attributes"),
        )
        self.process(destination)
        if destination.attributes is not None:
            _destination["attributes"] = destination.attributes
