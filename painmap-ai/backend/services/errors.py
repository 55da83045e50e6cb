class GeminiError(Exception):
    """Base class for Analysis Gateway failures."""


class GeminiConfigError(GeminiError):
    """No API credential configured."""


class GeminiRequestError(GeminiError):
    """The request could not be built: no markers, a blank question or an image that is not valid base64."""


class GeminiTransportError(GeminiError):
    """The Gemini client call itself failed."""


class InvalidResponseFormat(GeminiError):
    """The reply did not contain the expected JSON shape."""
