import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import satosa.context
import satosa.internal
from saml2.mdstore import MetadataStore
from satosa.context import Context
from satosa.exception import SATOSAConfigurationError
from satosa.micro_services.base import RequestMicroService

from eduid_entitycategory.exceptions import BadConfiguration
from eduid_entitycategory.filter import Destination, EntityCategoryFilter

__author__ = "lundberg"

logger = logging.getLogger(__name__)


class EntityCategoryAttributes(RequestMicroService):
    """
    Rewrite the requested attributes of the service provider depending on the entity categories
    it declares in its metadata.

    Attributes are not removed from the response by this micro service, that is left to the
    attribute release policy of the frontend (or another micro service) using the requested attributes.

    ```yaml
    module: eduid_entitycategory.microservice.EntityCategoryAttributes
    name: EntityCategoryAttributes
    config:
        default: true
        strict: true
        allowRequestedAttributes: false
        http://refeds.org/category/research-and-scholarship:
            - edupersonprincipalname
            - mail
            - displayname
            - givenname
            - sn
    ```
    """

    def __init__(self, config: Mapping[str, Any], internal_attributes: dict[str, Any], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        try:
            self.filter = EntityCategoryFilter(config)
        except BadConfiguration as e:
            raise SATOSAConfigurationError(f"The configuration for this plugin is not valid: {e}") from e

    def process(
        self, context: satosa.context.Context, data: satosa.internal.InternalData
    ) -> satosa.internal.InternalData:
        if not isinstance(data.requester, str):
            return super().process(context, data)

        metadata = [context.internal_data.get(Context.KEY_METADATA_STORE)]
        destination = Destination(
            entity_id=data.requester,
            entity_attributes=get_entity_attributes(data.requester, metadata),
            # SATOSA initialises the attributes to an empty dict, meaning nothing was requested
            attributes=data.attributes or None,
        )
        logger.debug(f"Requested attributes for {data.requester}: {destination.attributes}")
        self.filter.process(destination)
        if destination.attributes is not None:
            data.attributes = destination.attributes
        logger.debug(f"Requested attributes after applying entity categories: {data.attributes}")

        return super().process(context, data)


def get_entity_attributes(
    entity_id: str, metadata: Iterable[MetadataStore | None]
) -> dict[str, list[str]] | None:
    """
    Collect the entity attributes for an entity from all available metadata.

    Return None if the entity has no entity attributes at all.
    """
    res: dict[str, list[str]] = {}
    for _this_md in metadata:
        if _this_md is None:
            continue
        try:
            _attrs: Mapping[str, Sequence[str]] = _this_md.entity_attributes(entity_id)
        except KeyError:
            _attrs = {}
        for name, values in _attrs.items():
            if isinstance(values, str) or not isinstance(values, Sequence):
                values = [values]
            res[name] = [*res.get(name, []), *(x for x in values if x not in res.get(name, []))]
    logger.debug(f"Entity attributes for {entity_id}: {res}")
    return res or None
