"""Pytest configuration for the entire test suite."""

import logging


def pytest_configure(config):
    """Show the decisions of the entity category filter when tests fail."""
    logging.getLogger("eduid_entitycategory").setLevel(logging.DEBUG)
    logging.getLogger("saml2").setLevel(logging.WARNING)
