"""Error taxonomy shared by the core and its adapters."""


class NotifyError(Exception):
    """Base class for all github_notify errors."""


class NotFoundError(NotifyError):
    """The referenced item or comment is gone or no longer accessible."""


class TransientError(NotifyError):
    """A network, rate-limit or server failure worth retrying next cycle."""


class MalformedReferenceError(NotifyError):
    """An upstream URL did not match any known shape."""


class ConfigError(NotifyError):
    """Required configuration is missing or invalid."""


class AccountNotFoundError(NotifyError):
    """The requested monitored account does not exist."""
