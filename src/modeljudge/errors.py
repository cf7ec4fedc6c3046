"""Exception types shared across Model Judge."""


class ModelJudgeError(Exception):
    """Base class for all Model Judge errors"""


class ValidationError(ModelJudgeError):
    """Caller supplied empty or malformed input"""


class PersistenceError(ModelJudgeError):
    """The database could not be read or written"""


class AuthError(ModelJudgeError):
    """Missing, expired or invalid credentials"""


class UnverifiedAccountError(AuthError):
    """Login attempted before the email address was verified"""


class ConflictError(ModelJudgeError):
    """A unique resource (e.g. an email address) already exists"""


class NotFoundError(ModelJudgeError):
    """The requested resource does not exist for this owner"""
