# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" Implementations to some of the abstract classes used by this module. """

import logging
import os

from configparser import RawConfigParser

from twisted.internet.defer import inlineCallbacks, maybeDeferred
from twisted.internet.task import LoopingCall
from twisted.python.components import registerAdapter
from twisted.python.failure import Failure
from twisted.web.server import Session
from zope.interface import Attribute, Interface, implementer

from txoauth2client.errors import MissingRequestError
from txoauth2client.registrations import ClientRegistrations, ClientRegistration
from txoauth2client.storage import AuthorizedClientStorage


class ConfigParserClientRegistrations(ClientRegistrations):
    """ A ClientRegistrations using a ConfigParser. """
    _configParser = None
    path = None

    def __init__(self, path):
        """
        Initialize a new ConfigParserClientRegistrations which loads and stores
        it's registrations from the given path.
        :param path: Path to a config file to load and store registrations.
        """
        super(ConfigParserClientRegistrations, self).__init__()
        self._configParser = RawConfigParser()
        self.path = os.path.abspath(path)
        self._configParser.read(self.path)

    def getRegistration(self, registrationId):
        """
        Return the client registration with the given registration id.
        :raises KeyError: If no registration with the given id exists.
        :param registrationId: The id of the registration.
        :return: A ClientRegistration object.
        """
        sectionName = 'registration_' + registrationId
        if not self._configParser.has_section(sectionName):
            raise KeyError('No client registration with id "{id}" exists'.format(
                id=registrationId))
        return ClientRegistration(
            registrationId,
            clientId=self._configParser.get(sectionName, 'client_id'),
            authorizationUri=self._configParser.get(sectionName, 'authorization_uri'),
            tokenUri=self._configParser.get(sectionName, 'token_uri'),
            scope=self._configParser.get(sectionName, 'scope', fallback=''))

    def addRegistration(self, registration):
        """
        Add a new or update an existing registration
        and save it to the config file.
        :param registration: The ClientRegistration to update or add.
        """
        sectionName = 'registration_' + registration.id
        if not self._configParser.has_section(sectionName):
            self._configParser.add_section(sectionName)
        self._configParser.set(sectionName, 'client_id', registration.clientId)
        self._configParser.set(sectionName, 'authorization_uri', registration.authorizationUri)
        self._configParser.set(sectionName, 'token_uri', registration.tokenUri)
        self._configParser.set(sectionName, 'scope', ' '.join(sorted(registration.scope)))
        if not os.path.exists(os.path.dirname(self.path)):
            os.makedirs(os.path.dirname(self.path))
        with open(self.path, 'w') as configFile:
            self._configParser.write(configFile)


class DictAuthorizedClientStorage(AuthorizedClientStorage):
    """
    This storage keeps the authorized clients in a dict and does not implement any type
    of persistence, so the users have to authorize the clients again after a server restart.

    If a lifetime is given, a record expires that many seconds after it was saved.
    Expired records are dropped when they are read, by removeExpired
    or periodically after startExpiring was called.
    """
    _logger = logging.getLogger('txOauth2Client')

    def __init__(self, lifetime=None, clock=None):
        """
        :param lifetime: The lifetime of a record in seconds or None for an unlimited lifetime.
        :param clock: The IReactorTime used to measure the lifetime, defaults to the reactor.
        """
        super(DictAuthorizedClientStorage, self).__init__()
        if lifetime is not None and lifetime <= 0:
            raise ValueError('The lifetime must be positive or None')
        if clock is None:
            from twisted.internet import reactor as clock
        self.lifetime = lifetime
        self._clock = clock
        self._records = {}
        self._expireCall = None

    def get(self, key, request):
        entry = self._records.get(key)
        if entry is None or self._checkExpire(key, entry):
            return None
        return entry[0]

    def put(self, key, authorizedClient, request):
        expireTime = None if self.lifetime is None else self._clock.seconds() + self.lifetime
        self._records[key] = (authorizedClient, expireTime)

    def delete(self, key, request):
        self._records.pop(key, None)

    def removeExpired(self):
        """
        Remove all records whose lifetime has passed.
        :return: The number of removed records.
        """
        expiredKeys = [key for key, entry in list(self._records.items())
                       if self._isExpired(entry)]
        for key in expiredKeys:
            del self._records[key]
        if expiredKeys:
            self._logger.info('Removed %d expired authorized clients', len(expiredKeys))
        return len(expiredKeys)

    def startExpiring(self, interval):
        """
        Periodically remove expired records.
        :raises RuntimeError: If the records are already expired periodically.
        :param interval: The seconds between two removals.
        :return: A Deferred that fires when stopExpiring is called.
        """
        if self._expireCall is not None:
            raise RuntimeError('The storage is already removing expired records')
        self._expireCall = LoopingCall(self.removeExpired)
        self._expireCall.clock = self._clock
        return self._expireCall.start(interval, now=False)

    def stopExpiring(self):
        """ Stop removing expired records periodically. """
        if self._expireCall is not None:
            self._expireCall.stop()
            self._expireCall = None

    def clear(self):
        """ Remove all records. """
        self._records.clear()

    def __len__(self):
        return len(self._records)

    def _isExpired(self, entry):
        expireTime = entry[1]
        return expireTime is not None and self._clock.seconds() >= expireTime

    def _checkExpire(self, key, entry):
        """
        Check if a record has expired and remove it if necessary.
        :param key: The key of the record.
        :param entry: The stored entry of the record.
        :return: True if the record has expired.
        """
        if not self._isExpired(entry):
            return False
        if self._records.get(key) is entry:
            del self._records[key]
        return True


class ISessionAuthorizedClients(Interface):
    """ The authorized clients stored in a web session. """
    records = Attribute('A dict mapping (registrationId, principalName) to authorized clients.')


@implementer(ISessionAuthorizedClients)
class SessionAuthorizedClients(object):
    """ The session component holding the authorized clients of a session. """

    def __init__(self, session):
        super(SessionAuthorizedClients, self).__init__()
        self.records = {}


registerAdapter(SessionAuthorizedClients, Session, ISessionAuthorizedClients)


class SessionAuthorizedClientStorage(AuthorizedClientStorage):
    """
    This storage keeps the authorized clients in the web session of the request.
    The records are lost when the session expires. Records are still keyed by the
    principal name, so a different user logging in within the same session
    does not see the authorized clients of the previous user.
    Every operation uses request.getSession(), which starts a session if the request
    does not belong to one yet.
    """

    def get(self, key, request):
        return self._getRecords(request).get(key)

    def put(self, key, authorizedClient, request):
        self._getRecords(request)[key] = authorizedClient

    def delete(self, key, request):
        self._getRecords(request).pop(key, None)

    def _getRecords(self, request):
        """
        :raises MissingRequestError: If no request was given.
        :param request: The request.
        :return: The dict of records in the session of the request.
        """
        if request is None:
            raise MissingRequestError(self)
        return ISessionAuthorizedClients(request.getSession()).records


class ChainedAuthorizedClientStorage(AuthorizedClientStorage):
    """
    A storage that delegates to a chain of storages.

    A record is loaded from the first storage in the chain that has it. If warm is True,
    a record found further down the chain is also put into the storages before it,
    e.g. to fill an in-memory storage from a slower shared one.
    Records are saved to and removed from every storage in the chain in order.
    If one of the storages fails, the storages that were already changed are restored
    to their previous record before the error is passed on.
    """
    _logger = logging.getLogger('txOauth2Client')

    def __init__(self, storages, warm=False):
        """
        :raises ValueError: If the chain is empty.
        :param storages: A list of AuthorizedClientStorage.
        :param warm: Whether to copy records found later in the chain to the earlier storages.
        """
        super(ChainedAuthorizedClientStorage, self).__init__()
        if len(storages) == 0:
            raise ValueError('Expected at least one storage in the chain')
        self.storages = list(storages)
        self.warm = warm

    @inlineCallbacks
    def get(self, key, request):
        for index, storage in enumerate(self.storages):
            authorizedClient = yield maybeDeferred(storage.get, key, request)
            if authorizedClient is not None:
                if self.warm:
                    for previousStorage in self.storages[:index]:
                        yield maybeDeferred(previousStorage.put, key, authorizedClient, request)
                return authorizedClient
        return None

    def put(self, key, authorizedClient, request):
        return self._applyToAll(
            key, request, lambda storage: storage.put(key, authorizedClient, request))

    def delete(self, key, request):
        return self._applyToAll(key, request, lambda storage: storage.delete(key, request))

    @inlineCallbacks
    def _applyToAll(self, key, request, operation):
        """
        Apply the operation to every storage in the chain. If it fails for one storage,
        the storages before it are restored to the record they held before.
        :param key: The key of the record.
        :param request: The current request.
        :param operation: A function that applies the change to the given storage.
        """
        previousRecords = []
        try:
            for storage in self.storages:
                previousRecord = yield maybeDeferred(storage.get, key, request)
                previousRecords.append((storage, previousRecord))
                yield maybeDeferred(operation, storage)
        except Exception:
            failure = Failure()
            yield self._restore(key, request, previousRecords)
            failure.raiseException()

    @inlineCallbacks
    def _restore(self, key, request, previousRecords):
        """
        Write the previous records back into their storages, the last changed storage first.
        :param key: The key of the record.
        :param request: The current request.
        :param previousRecords: A list of (storage, record) with the record before the change.
        """
        for storage, previousRecord in reversed(previousRecords):
            try:
                if previousRecord is None:
                    yield maybeDeferred(storage.delete, key, request)
                else:
                    yield maybeDeferred(storage.put, key, previousRecord, request)
            except Exception as error:  # pylint: disable=broad-except
                self._logger.error('Failed to restore the authorized client %r in %r: %s',
                                   key, storage, error)
