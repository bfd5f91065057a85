from eduid_entitycategory.config import CategoryPolicy
from eduid_entitycategory.exceptions import (
    BadConfiguration,
    InvalidCategoryAttributeList,
    InvalidCategoryConfiguration,
    InvalidOptionType,
    MissingCategoryIdentifier,
)
from eduid_entitycategory.filter import Destination, EntityCategoryFilter, apply_policy

__all__ = [
    "BadConfiguration",
    "CategoryPolicy",
    "Destination",
    "EntityCategoryFilter",
    "InvalidCategoryAttributeList",
    "InvalidCategoryConfiguration",
    "InvalidOptionType",
    "MissingCategoryIdentifier",
    "apply_policy",
]
