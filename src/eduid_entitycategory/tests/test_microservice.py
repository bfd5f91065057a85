import unittest
from collections.abc import Mapping
from typing import Any

from saml2.mdstore import ENTITY_CATEGORY
from satosa.context import Context
from satosa.exception import SATOSAConfigurationError
from satosa.internal import AuthenticationInformation, InternalData

from eduid_entitycategory.exceptions import InvalidOptionType
from eduid_entitycategory.microservice import EntityCategoryAttributes, get_entity_attributes

__author__ = "lundberg"

ASSURANCE_CERTIFICATION = "urn:oasis:names:tc:SAML:attribute:assurance-certification"
RANDS = "http://refeds.org/category/research-and-scholarship"
RANDS_SP = "https://rands.example.com/sp"
OTHER_SP = "https://other.example.com/sp"


class FakeMetadata:
    def __init__(self, entity_attributes: Mapping[str, Mapping[str, list[str]]]):
        self._entity_attributes = entity_attributes

    def entity_attributes(self, entity_id: str) -> Mapping[str, list[str]]:
        return self._entity_attributes[entity_id]


class TestEntityCategoryAttributes(unittest.TestCase):
    def setUp(self) -> None:
        self.metadata = FakeMetadata(
            {
                RANDS_SP: {ENTITY_CATEGORY: [RANDS]},
                OTHER_SP: {ASSURANCE_CERTIFICATION: ["https://refeds.org/sirtfi"]},
            }
        )

    def _service(self, config: Mapping[str, Any]) -> EntityCategoryAttributes:
        service = EntityCategoryAttributes(
            config=config,
            internal_attributes={},
            name="test_entity_category",
            base_url="https://satosa.example.com",
        )
        service.next = lambda ctx, data: data
        return service

    def _context(self) -> Context:
        ctx = Context()
        ctx.state = dict()
        ctx.internal_data[Context.KEY_METADATA_STORE] = self.metadata
        return ctx

    def _data(self, requester: str, attributes: Any = None) -> InternalData:
        return InternalData(auth_info=AuthenticationInformation(), requester=requester, attributes=attributes)

    def test_strict(self) -> None:
        service = self._service({RANDS: ["mail", "displayname"]})
        data = service.process(self._context(), self._data(RANDS_SP, ["mail", "edupersonprincipalname"]))
        assert data.attributes == ["mail"]

    def test_not_strict(self) -> None:
        service = self._service({"strict": False, RANDS: ["mail", "displayname"]})
        data = service.process(self._context(), self._data(RANDS_SP, ["mail", "edupersonprincipalname"]))
        assert data.attributes == ["mail", "edupersonprincipalname"]

    def test_default(self) -> None:
        service = self._service({"default": True, RANDS: ["mail", "displayname"]})
        data = service.process(self._context(), self._data(RANDS_SP))
        assert data.attributes == ["mail", "displayname"]

    def test_nothing_requested_no_default(self) -> None:
        service = self._service({RANDS: ["mail", "displayname"]})
        data = service.process(self._context(), self._data(RANDS_SP))
        assert data.attributes == {}

    def test_no_entity_categories(self) -> None:
        service = self._service({"default": True, RANDS: ["mail"]})
        data = service.process(self._context(), self._data(OTHER_SP, ["edupersonprincipalname"]))
        assert data.attributes == ["edupersonprincipalname"]

    def test_unknown_requester(self) -> None:
        service = self._service({"default": True, RANDS: ["mail"]})
        data = service.process(self._context(), self._data("https://unknown.example.com/sp", ["sn"]))
        assert data.attributes == ["sn"]

    def test_no_metadata(self) -> None:
        service = self._service({RANDS: ["mail"]})
        ctx = Context()
        ctx.state = dict()
        data = service.process(ctx, self._data(RANDS_SP, ["sn"]))
        assert data.attributes == ["sn"]

    def test_invalid_config(self) -> None:
        with self.assertRaises(SATOSAConfigurationError) as cm:
            self._service({"strict": "yes"})
        assert isinstance(cm.exception.__cause__, InvalidOptionType)


class TestGetEntityAttributes(unittest.TestCase):
    def test_merge(self) -> None:
        md1 = FakeMetadata({RANDS_SP: {ENTITY_CATEGORY: [RANDS]}})
        md2 = FakeMetadata({RANDS_SP: {ENTITY_CATEGORY: [RANDS, "urn:other"]}})
        res = get_entity_attributes(RANDS_SP, [md1, None, md2])
        assert res == {ENTITY_CATEGORY: [RANDS, "urn:other"]}

    def test_unknown_entity(self) -> None:
        md = FakeMetadata({RANDS_SP: {ENTITY_CATEGORY: [RANDS]}})
        assert get_entity_attributes(OTHER_SP, [md]) is None
