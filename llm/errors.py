"""Errors raised by text-generation clients."""


class GenerationFailure(Exception):
    """The text-generation service could not produce a reply."""


class AuthError(GenerationFailure):
    """Credentials were rejected by the provider."""


class RateLimited(GenerationFailure):
    """The provider throttled the request."""


class GenerationTimeout(GenerationFailure):
    """The provider did not answer within the configured timeout."""


class GenerationUnavailable(GenerationFailure):
    """Client is not initialised or the provider returned nothing usable."""
