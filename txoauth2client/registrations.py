# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" Classes for representing the client registrations known to this server. """

from abc import ABCMeta, abstractmethod

from txoauth2client.util import isNonEmptyStr, normalizeScope


class ClientRegistration(object):
    """
    This class represents a client registration.

    A client registration is the configuration of this server as a client of an
    external authorization server: the client id it was given and the endpoints
    it talks to. The registration id is the local name of the registration
    (e.g. 'github') and part of the key of every authorized client.
    """

    def __init__(self, registrationId, clientId, authorizationUri, tokenUri, scope=None):
        """
        :raises ValueError: If one of the argument is not of the expected type.
        :param registrationId: The local id of this registration.
        :param clientId: The client id assigned by the authorization server.
        :param authorizationUri: The authorization endpoint of the authorization server.
        :param tokenUri: The token endpoint of the authorization server.
        :param scope: The default scope requested with this registration.
        """
        super(ClientRegistration, self).__init__()
        for name, value in (('registrationId', registrationId), ('clientId', clientId),
                            ('authorizationUri', authorizationUri), ('tokenUri', tokenUri)):
            if not isNonEmptyStr(value):
                raise ValueError('Expected {name} to be a non-empty string, got {value!r}'
                                 .format(name=name, value=value))
        self.id = registrationId  # pylint: disable=invalid-name
        self.clientId = clientId
        self.authorizationUri = authorizationUri
        self.tokenUri = tokenUri
        self.scope = normalizeScope(scope)


class ClientRegistrations(metaclass=ABCMeta):
    """
    This class's purpose is to give access to the
    client registrations via their registration id.
    """

    @abstractmethod
    def getRegistration(self, registrationId):
        """
        Return the ClientRegistration with the given registration id.
        :raises KeyError: If no registration with the given id exists.
        :param registrationId: The registration id.
        :return: The ClientRegistration object.
        """
        raise NotImplementedError()

    def hasRegistration(self, registrationId):
        """
        :param registrationId: The registration id.
        :return: True if a registration with the given id exists.
        """
        try:
            self.getRegistration(registrationId)
        except KeyError:
            return False
        return True
