class ConfigError(RuntimeError):
    """A required setting is missing or unusable."""


class AuthError(Exception):
    """The hosted auth provider rejected a request."""

    def __init__(self, message: str, status: int = None):
        super().__init__(message)
        self.message = message
        self.status = status


class NotFoundError(LookupError):
    pass


class ProxyExhausted(Exception):
    """Every generation endpoint failed. `failures` keeps the attempts in order."""

    def __init__(self, failures):
        self.failures = list(failures)
        last = self.failures[-1] if self.failures else 'no endpoints configured'
        super().__init__(f'All generation endpoints failed. Last error: {last}')

    @property
    def last_error(self):
        return self.failures[-1] if self.failures else None
