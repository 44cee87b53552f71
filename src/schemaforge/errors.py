"""Exception taxonomy for schemaforge.

Components raise these internally; the public facade (``schemaforge.api``)
and the conversion pipeline catch them and return result objects carrying
a single readable ``error`` message.
"""


class SchemaForgeError(Exception):
    """
    Base exception for all schemaforge errors
    """
    pass


class ParseError(SchemaForgeError):
    """
    Raised when DDL, JSON or a config document cannot be parsed
    """
    pass


class UnsupportedConversion(SchemaForgeError):
    """
    Raised when an output format cannot be produced from the given input
    """
    pass


class DetectionAmbiguous(SchemaForgeError):
    """
    Raised internally when input matches no known format.

    The detector resolves this to ``SourceFormat.UNKNOWN`` and never lets it
    escape.
    """
    pass
