"""Token lifecycle failures surfaced to route handlers and the data client.

Messages are deliberately generic; vendor detail stays in the logs.
"""


class TokenExchangeError(Exception):
    """The authorization code could not be turned into tokens."""


class TokenRefreshError(Exception):
    """The access token could not be renewed."""


class NoRefreshTokenError(TokenRefreshError):
    """Nothing is stored to refresh from."""


__all__ = ["NoRefreshTokenError", "TokenExchangeError", "TokenRefreshError"]
