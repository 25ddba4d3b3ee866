class NotFoundError(LookupError):
    pass


class InvalidInputError(ValueError):
    pass


class ForbiddenError(PermissionError):
    pass


class IntegrationError(RuntimeError):
    pass


class UnauthorizedError(Exception):
    pass


class NotConfiguredError(IntegrationError):
    pass
