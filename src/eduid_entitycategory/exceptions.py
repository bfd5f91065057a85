__author__ = "lundberg"


class BadConfiguration(Exception):
    def __init__(self, message: str):
        Exception.__init__(self)
        self.value = message

    def __str__(self) -> str:
        return self.value


class InvalidOptionType(BadConfiguration):
    """One of the boolean switches was given a value that is not a boolean."""


class InvalidCategoryConfiguration(BadConfiguration):
    pass


class MissingCategoryIdentifier(InvalidCategoryConfiguration):
    """A list of attributes was configured without the category it belongs to."""


class InvalidCategoryAttributeList(InvalidCategoryConfiguration):
    """The allowed attributes for a category is not a list of attribute names."""
