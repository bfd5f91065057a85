"""
Configuration handling for the entity category filter.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any, NewType

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from eduid_entitycategory.exceptions import (
    InvalidCategoryAttributeList,
    InvalidOptionType,
    MissingCategoryIdentifier,
)

__author__ = "lundberg"

logger = logging.getLogger(__name__)

EntityCategory = NewType("EntityCategory", str)

# Options that are switches rather than categories
RESERVED_OPTIONS = ("default", "strict", "allowRequestedAttributes")


class CategoryPolicy(BaseModel):
    """
    The attribute release policy for a set of entity categories.

    Built from a configuration mapping like

        default: false
        strict: true
        allowRequestedAttributes: false
        http://refeds.org/category/research-and-scholarship:
          - eduPersonPrincipalName
          - mail
          - displayName

    where every key that isn't one of the switches is a category identifier.
    Use `CategoryPolicy.from_config()` to get the configuration errors from
    eduid_entitycategory.exceptions instead of pydantic validation errors.
    """

    categories: Mapping[EntityCategory, tuple[str, ...]] = Field(default={}, validate_default=True)
    # release the attributes of all matched categories to services not requesting any attributes
    default: StrictBool = False
    # remove requested attributes not allowed by any of the (known) categories of the service
    strict: StrictBool = True
    # treat every attribute the service requested as allowed
    allow_requested_attributes: StrictBool = Field(default=False, alias="allowRequestedAttributes")
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("categories", mode="after")
    @classmethod
    def _read_only_categories(
        cls, v: Mapping[EntityCategory, tuple[str, ...]]
    ) -> Mapping[EntityCategory, tuple[str, ...]]:
        # the policy is shared by all requests
        return MappingProxyType(dict(v))

    @classmethod
    def from_config(cls, config: Mapping[str, Any] | Sequence[Any]) -> CategoryPolicy:
        if not isinstance(config, Mapping):
            # a plain list only holds values, none of which has a category identifier
            if isinstance(config, Sequence) and not isinstance(config, str) and config:
                raise MissingCategoryIdentifier(f"Unspecified allowed attributes for the '{config[0]}' category.")
            config = {}

        options: dict[str, bool] = {}
        categories: dict[EntityCategory, tuple[str, ...]] = {}
        for index, value in config.items():
            if index in RESERVED_OPTIONS:
                if not isinstance(value, bool):
                    raise InvalidOptionType(f"The '{index}' configuration option must have a boolean value.")
                options[index] = value
                continue

            if is_positional_key(index):
                raise MissingCategoryIdentifier(f"Unspecified allowed attributes for the '{value}' category.")

            if not _is_attribute_list(value):
                raise InvalidCategoryAttributeList(
                    f"Allowed attributes for category '{index}' is not a list of attribute names."
                )

            categories[EntityCategory(index)] = tuple(value)

        policy = cls(categories=categories, **options)
        logger.debug(f"Loaded entity category policy: {policy}")
        return policy

    def allowed_attributes(self, category: str) -> tuple[str, ...] | None:
        """Return the attributes allowed for a category, or None if the category isn't configured."""
        if not isinstance(category, str):
            return None
        return self.categories.get(EntityCategory(category))


def is_positional_key(index: Any) -> bool:
    return not isinstance(index, str) or index.isdigit()


def _is_attribute_list(value: Any) -> bool:
    if isinstance(value, str | bytes) or not isinstance(value, Sequence):
        return False
    return all(isinstance(x, str) for x in value)
