"""Errors raised by the message parsers."""


class ParseError(ValueError):
    """A message could not be parsed.

    ``format`` is the format tag the caller asked for, ``detail`` the
    underlying reason. ``str(err)`` is the human-readable message.
    """

    def __init__(self, fmt, detail, message=None):
        self.format = fmt
        self.detail = detail
        super().__init__(message or detail)


class UnsupportedFormat(ParseError):
    """Unknown format tag, or no format could be detected."""


class SizeLimitExceeded(ParseError):
    """Input is above the parser's byte ceiling."""


class MalformedInput(ParseError):
    """Input is not valid JSON/XML for the requested format."""
