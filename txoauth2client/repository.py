# Copyright (c) Sebastian Scholz
# See LICENSE for details.
"""
The authorized client repository.

It persists the authorized clients between requests, so a user only has to go through the
authorization flow of a client registration once. Authorized clients are addressed by the
registration id and the name of the principal who authorized the client.
"""

import logging

from twisted.internet.defer import Deferred, DeferredLock, fail, maybeDeferred
from twisted.internet.threads import blockingCallFromThread

from txoauth2client.client import AuthorizedClient
from txoauth2client.errors import AuthorizedClientError, InvalidAuthorizedClientError, \
    InvalidRegistrationIdError, StorageError, UnknownRegistrationError
from txoauth2client.principal import getPrincipalName
from txoauth2client.util import isNonEmptyStr


class AuthorizedClientRepository(object):
    """
    Loads, saves and removes authorized clients in a storage backend.

    Every operation returns a Deferred. Operations on the same
    (registrationId, principalName) key are executed one after another in the order
    they were issued, so each of them sees the complete result of the previous ones.
    Operations on different keys never wait for each other.

    Errors are never swallowed, the returned Deferred fails with:
     - a PreconditionError if the arguments are invalid. These are programming errors.
     - a StorageError if the storage failed. The caller may retry the operation.
    A missing authorized client is not an error, loadAuthorizedClient returns None.

    If the Deferred of an operation is cancelled while it waits for an earlier operation
    on the same key, the operation is not executed. If it has already reached the storage,
    the storage operation is completed, but the Deferred fails with a CancelledError.

    The repository must be used from the reactor thread,
    see BlockingAuthorizedClientRepository for other threads.
    """
    _logger = logging.getLogger('txOauth2Client')

    def __init__(self, storage, registrations=None):
        """
        :param storage: The AuthorizedClientStorage that stores the authorized clients.
        :param registrations: Optional ClientRegistrations. If given, only authorized clients
                              of a known registration can be loaded, saved or removed.
        """
        super(AuthorizedClientRepository, self).__init__()
        self.storage = storage
        self.registrations = registrations
        self._locks = {}

    def loadAuthorizedClient(self, registrationId, principal, request):
        """
        Load the authorized client of the registration that was authorized by the principal.

        :param registrationId: The id of the client registration.
        :param principal: The principal who authorized the client.
        :param request: The current request.
        :return: A Deferred that fires with the AuthorizedClient or None.
        """
        try:
            key = self._getKey(registrationId, principal)
        except AuthorizedClientError:
            return fail()
        return self._execute(key, 'load', self.storage.get, key, request)

    def saveAuthorizedClient(self, authorizedClient, principal, request):
        """
        Save the authorized client for the principal, replacing any authorized client
        previously saved for the same registration and principal.
        The repository does not check that the client was actually authorized
        by the principal, that is the responsibility of the caller.

        :param authorizedClient: The AuthorizedClient to save.
        :param principal: The principal who authorized the client.
        :param request: The current request.
        :return: A Deferred that fires with None once the authorized client is saved.
        """
        try:
            if not isinstance(authorizedClient, AuthorizedClient):
                raise InvalidAuthorizedClientError(
                    'Expected an AuthorizedClient, got ' + str(type(authorizedClient)))
            if authorizedClient.accessToken is None:
                raise InvalidAuthorizedClientError('The authorized client has no access token')
            key = self._getKey(authorizedClient.registrationId, principal)
        except AuthorizedClientError:
            return fail()
        self._logger.debug('Saving authorized client %r', key)
        deferred = self._execute(key, 'save', self.storage.put, key, authorizedClient, request)
        return deferred.addCallback(lambda _: None)

    def removeAuthorizedClient(self, registrationId, principal, request):
        """
        Remove the authorized client of the registration that was authorized by the principal.
        Removing an authorized client that does not exist succeeds.

        :param registrationId: The id of the client registration.
        :param principal: The principal who authorized the client.
        :param request: The current request.
        :return: A Deferred that fires with None once the authorized client is removed.
        """
        try:
            key = self._getKey(registrationId, principal)
        except AuthorizedClientError:
            return fail()
        self._logger.debug('Removing authorized client %r', key)
        deferred = self._execute(key, 'remove', self.storage.delete, key, request)
        return deferred.addCallback(lambda _: None)

    def _getKey(self, registrationId, principal):
        """
        :raises PreconditionError: If the registration id or the principal is invalid.
        :raises StorageError: If the client registrations could not be read.
        :param registrationId: The id of the client registration.
        :param principal: The principal.
        :return: The (registrationId, principalName) key.
        """
        try:
            if not isNonEmptyStr(registrationId):
                raise InvalidRegistrationIdError(registrationId)
            if self.registrations is not None \
                    and not self._hasRegistration(registrationId):
                raise UnknownRegistrationError(registrationId)
            return registrationId, getPrincipalName(principal)
        except AuthorizedClientError as error:
            self._logger.debug('Rejected authorized client key: %s', error)
            raise

    def _hasRegistration(self, registrationId):
        """
        :raises StorageError: If the client registrations could not be read.
        :param registrationId: The id of the client registration.
        :return: Whether the client registration exists.
        """
        try:
            return self.registrations.hasRegistration(registrationId)
        except Exception as error:
            self._logger.warning('Failed to look up the client registration %r: %s',
                                 registrationId, error)
            raise StorageError('Failed to look up the client registration', error) from error

    def _execute(self, key, operation, function, *args):
        """
        Execute the storage function while holding the lock of the key.

        :param key: The key of the authorized client.
        :param operation: The name of the operation for logging.
        :param function: The storage function.
        :param args: The arguments to the storage function.
        :return: A Deferred that fires with the result of the storage function.
        """
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = DeferredLock()

        def execute(_):
            result = Deferred()
            storageDeferred = maybeDeferred(function, *args)
            storageDeferred.addErrback(self._storageFailed, key, operation)
            storageDeferred.addBoth(self._release, key, lock)
            storageDeferred.chainDeferred(result)
            return result

        def cancelled(failure):
            self._releaseIfIdle(key, lock)
            return failure

        return lock.acquire().addCallbacks(execute, cancelled)

    def _storageFailed(self, failure, key, operation):
        """ Convert a failure of the storage into a StorageError. """
        if failure.check(AuthorizedClientError):
            self._logger.warning('Failed to %s the authorized client %r: %s',
                                 operation, key, failure.value)
            return failure
        self._logger.warning('Storage failed to %s the authorized client %r: %s',
                             operation, key, failure.getErrorMessage())
        raise StorageError('Failed to {operation} the authorized client'.format(
            operation=operation), failure.value) from failure.value

    def _release(self, result, key, lock):
        lock.release()
        self._releaseIfIdle(key, lock)
        return result

    def _releaseIfIdle(self, key, lock):
        """ Forget the lock of the key when no operation holds it or waits for it. """
        if not lock.locked and not lock.waiting and self._locks.get(key) is lock:
            del self._locks[key]


class BlockingAuthorizedClientRepository(object):
    """
    A blocking view of an AuthorizedClientRepository for code running in threads
    other than the reactor thread, e.g. in a WSGI application or deferToThread.
    Every call blocks until the operation in the reactor thread has finished
    and raises the error of the operation, if it failed.
    Must not be called from the reactor thread.
    """

    def __init__(self, repository, reactor=None):
        """
        :param repository: The AuthorizedClientRepository.
        :param reactor: The running reactor, defaults to the global reactor.
        """
        super(BlockingAuthorizedClientRepository, self).__init__()
        if reactor is None:
            from twisted.internet import reactor
        self.repository = repository
        self._reactor = reactor

    def loadAuthorizedClient(self, registrationId, principal, request=None):
        """ See AuthorizedClientRepository.loadAuthorizedClient. """
        return blockingCallFromThread(self._reactor, self.repository.loadAuthorizedClient,
                                      registrationId, principal, request)

    def saveAuthorizedClient(self, authorizedClient, principal, request=None):
        """ See AuthorizedClientRepository.saveAuthorizedClient. """
        blockingCallFromThread(self._reactor, self.repository.saveAuthorizedClient,
                               authorizedClient, principal, request)

    def removeAuthorizedClient(self, registrationId, principal, request=None):
        """ See AuthorizedClientRepository.removeAuthorizedClient. """
        blockingCallFromThread(self._reactor, self.repository.removeAuthorizedClient,
                               registrationId, principal, request)
