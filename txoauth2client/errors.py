# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" All errors raised by the authorized client repository. """


class AuthorizedClientError(Exception):
    """
    Base class of all errors of the authorized client repository.
    If retryable is True, the caller may repeat the failed operation.
    """
    retryable = False


class PreconditionError(AuthorizedClientError, ValueError):
    """
    The caller passed malformed arguments to the repository.
    This is a programming error and retrying the operation won't help.
    """
    pass


class InvalidRegistrationIdError(PreconditionError):
    """ The client registration id is missing, empty or not a string. """

    def __init__(self, registrationId):
        super(InvalidRegistrationIdError, self).__init__(
            'Expected a non-empty registration id string, got {id!r}'.format(id=registrationId))
        self.registrationId = registrationId


class UnknownRegistrationError(PreconditionError):
    """ The client registration id does not belong to a configured client registration. """

    def __init__(self, registrationId):
        super(UnknownRegistrationError, self).__init__(
            'No client registration with id "{id}" exists'.format(id=registrationId))
        self.registrationId = registrationId


class InvalidPrincipalError(PreconditionError):
    """ The principal is missing, anonymous or has no usable name. """

    def __init__(self, principal, reason='The principal does not have a name'):
        super(InvalidPrincipalError, self).__init__(
            '{reason}: {principal!r}'.format(reason=reason, principal=principal))
        self.principal = principal


class InvalidAuthorizedClientError(PreconditionError):
    """ The object passed to saveAuthorizedClient is not a valid authorized client. """
    pass


class MissingRequestError(PreconditionError):
    """ The storage keeps its records in the request, but no request was given. """

    def __init__(self, storage):
        super(MissingRequestError, self).__init__(
            'The {name} requires a request'.format(name=type(storage).__name__))


class StorageError(AuthorizedClientError):
    """
    The storage backend failed to execute an operation.
    The original exception is available as cause.
    """
    retryable = True

    def __init__(self, message, cause=None):
        super(StorageError, self).__init__(message)
        self.cause = cause


class ConcurrentModificationError(StorageError):
    """
    A storage backend with optimistic concurrency detected that the record
    was changed by another writer while the operation was executing.
    """
    pass
