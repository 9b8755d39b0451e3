# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" Classes for representing authorized clients and their tokens. """

import time

from txoauth2client.util import isNonEmptyStr, isTimestamp, normalizeScope


class _Token(object):
    """ Common base of access and refresh tokens. """
    __slots__ = ('_tokenValue', '_issuedAt', '_expiresAt')

    def __init__(self, tokenValue, issuedAt=None, expiresAt=None):
        """
        :raises ValueError: If one of the arguments is not of the expected type
                            or the token expires before it was issued.
        :param tokenValue: The opaque token string.
        :param issuedAt: The seconds since the epoch when the token was issued or None.
        :param expiresAt: The seconds since the epoch when the token expires
                          or None if it does not expire.
        """
        super(_Token, self).__init__()
        if not isNonEmptyStr(tokenValue):
            raise ValueError('Expected the token value to be a non-empty string, got '
                             + str(type(tokenValue)))
        for name, value in (('issuedAt', issuedAt), ('expiresAt', expiresAt)):
            if value is not None and not isTimestamp(value):
                raise ValueError('Expected {name} to be a number, got {type}'.format(
                    name=name, type=type(value)))
        if issuedAt is not None and expiresAt is not None and expiresAt < issuedAt:
            raise ValueError('The token can not expire before it was issued')
        self._tokenValue = tokenValue
        self._issuedAt = issuedAt
        self._expiresAt = expiresAt

    @property
    def tokenValue(self):
        """ The opaque token string. """
        return self._tokenValue

    @property
    def issuedAt(self):
        """ The seconds since the epoch when the token was issued or None. """
        return self._issuedAt

    @property
    def expiresAt(self):
        """ The seconds since the epoch when the token expires or None. """
        return self._expiresAt

    def isExpired(self, now=None, clockSkew=0):
        """
        :param now: The current time in seconds since the epoch, defaults to time.time().
        :param clockSkew: Seconds by which the token is considered expired early.
        :return: True if the token has an expiration time that has passed.
        """
        if self._expiresAt is None:
            return False
        if now is None:
            now = time.time()
        return now + clockSkew >= self._expiresAt

    def _fields(self):
        return self._tokenValue, self._issuedAt, self._expiresAt

    def __eq__(self, other):
        if type(other) is not type(self):
            return NotImplemented
        return self._fields() == other._fields()  # pylint: disable=protected-access

    def __hash__(self):
        return hash((type(self),) + self._fields())

    def __repr__(self):
        # The token value is secret.
        return '<{cls} expiresAt={expiresAt!r}>'.format(
            cls=type(self).__name__, expiresAt=self._expiresAt)


class AccessToken(_Token):
    """
    An access token that was issued by an authorization server to a client.
    See https://tools.ietf.org/html/rfc6749#section-1.4
    """
    __slots__ = ('_scope', '_tokenType')

    def __init__(self, tokenValue, issuedAt=None, expiresAt=None, scope=None, tokenType='Bearer'):
        """
        :raises ValueError: If one of the arguments is not of the expected type.
        :param tokenValue: The opaque token string.
        :param issuedAt: The seconds since the epoch when the token was issued or None.
        :param expiresAt: The seconds since the epoch when the token expires or None.
        :param scope: The scope granted to the token as a list, a set
                      or a space separated string.
        :param tokenType: The type of the token.
        """
        super(AccessToken, self).__init__(tokenValue, issuedAt, expiresAt)
        if not isNonEmptyStr(tokenType):
            raise ValueError('Expected the token type to be a non-empty string, got '
                             + str(type(tokenType)))
        self._scope = normalizeScope(scope)
        self._tokenType = tokenType

    @property
    def scope(self):
        """ The scope of the token as a frozenset. """
        return self._scope

    @property
    def tokenType(self):
        """ The token type, usually 'Bearer'. """
        return self._tokenType

    def _fields(self):
        return super(AccessToken, self)._fields() + (self._scope, self._tokenType)


class RefreshToken(_Token):
    """
    A refresh token which can be used to obtain a new access token.
    See https://tools.ietf.org/html/rfc6749#section-1.5
    """
    __slots__ = ()


class AuthorizedClient(object):
    """
    This class represents an authorized client.

    An authorized client binds the access token that was obtained for a client registration
    to the resource owner (the principal) who granted the authorization. It is addressed
    by the pair of its registration id and principal name.
    Instances are immutable, use withAccessToken to create an updated record.
    """
    __slots__ = ('_registrationId', '_principalName', '_accessToken', '_refreshToken')

    def __init__(self, registrationId, principalName, accessToken, refreshToken=None):
        """
        :raises ValueError: If one of the argument is not of the expected type.
        :param registrationId: The id of the client registration.
        :param principalName: The name of the resource owner.
        :param accessToken: The AccessToken.
        :param refreshToken: An optional RefreshToken.
        """
        super(AuthorizedClient, self).__init__()
        if not isNonEmptyStr(registrationId):
            raise ValueError('Expected the registrationId to be a non-empty string, got '
                             + repr(registrationId))
        if not isNonEmptyStr(principalName):
            raise ValueError('Expected the principalName to be a non-empty string, got '
                             + repr(principalName))
        if not isinstance(accessToken, AccessToken):
            raise ValueError('Expected accessToken to be of type AccessToken, got '
                             + str(type(accessToken)))
        if refreshToken is not None and not isinstance(refreshToken, RefreshToken):
            raise ValueError('Expected refreshToken to be of type RefreshToken, got '
                             + str(type(refreshToken)))
        self._registrationId = registrationId
        self._principalName = principalName
        self._accessToken = accessToken
        self._refreshToken = refreshToken

    @property
    def registrationId(self):
        """ The id of the client registration. """
        return self._registrationId

    @property
    def principalName(self):
        """ The name of the resource owner. """
        return self._principalName

    @property
    def accessToken(self):
        """ The access token. """
        return self._accessToken

    @property
    def refreshToken(self):
        """ The refresh token or None. """
        return self._refreshToken

    def withAccessToken(self, accessToken, refreshToken=None):
        """
        Create a copy of this authorized client with a new access token.
        :param accessToken: The new AccessToken.
        :param refreshToken: The new RefreshToken, if None the current one is kept.
        :return: A new AuthorizedClient for the same registration and principal.
        """
        if refreshToken is None:
            refreshToken = self._refreshToken
        return AuthorizedClient(self._registrationId, self._principalName,
                                accessToken, refreshToken)

    def _fields(self):
        return self._registrationId, self._principalName, self._accessToken, self._refreshToken

    def __eq__(self, other):
        if not isinstance(other, AuthorizedClient):
            return NotImplemented
        return self._fields() == other._fields()  # pylint: disable=protected-access

    def __hash__(self):
        return hash(self._fields())

    def __repr__(self):
        return '<AuthorizedClient registrationId={id!r} principalName={name!r}>'.format(
            id=self._registrationId, name=self._principalName)
