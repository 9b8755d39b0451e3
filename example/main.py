# Copyright (c) Sebastian Scholz
# See LICENSE for details.
"""
This is an example of how to use the authorized client repository with twisted.
It should not be used without modification in a real server and is meant as a starting point
to integrate the repository into your own server.

The server does not talk to a real authorization server. The /callback resource pretends that
the authorization flow has been completed and receives the token as query parameters.
"""

import json
import logging
import os
import time

from twisted.internet import reactor, endpoints
from twisted.python.components import registerAdapter
from twisted.web.resource import Resource
from twisted.web.server import NOT_DONE_YET, Session, Site
from zope.interface import Attribute, Interface, implementer

from txoauth2client import AccessToken, AuthorizedClient, AuthorizedClientRepository, \
    Principal, RefreshToken
from txoauth2client.imp import ConfigParserClientRegistrations, DictAuthorizedClientStorage
from txoauth2client.registrations import ClientRegistration


class ISessionUser(Interface):
    """ The user that logged in with a session. """
    principal = Attribute('The Principal of the user or None.')


@implementer(ISessionUser)
class SessionUser(object):
    """ The user of a session, None until the login. """
    def __init__(self, session):
        self.principal = None


registerAdapter(SessionUser, Session, ISessionUser)


def getPrincipal(request):
    """
    :param request: The request.
    :return: The principal that logged in with the session of the request or None.
    """
    return ISessionUser(request.getSession()).principal


def getArgument(request, name):
    """
    :param request: The request.
    :param name: The name of the query argument.
    :return: The value of the argument as a string or None.
    """
    values = request.args.get(name.encode('utf-8'))
    return None if not values else values[0].decode('utf-8')


def writeJson(request, data, code=200):
    """
    Write the data as json to the request and finish it.
    :param request: The request.
    :param data: The data to write.
    :param code: The response code.
    """
    request.setResponseCode(code)
    request.setHeader(b'Content-Type', b'application/json;charset=UTF-8')
    request.write(json.dumps(data).encode('utf-8'))
    request.finish()


class LoginPage(Resource):
    """
    Logs in the user given in the 'user' argument. A real server would authenticate
    the user, e.g. with twisted.cred, before remembering the avatar id in the session.
    """
    isLeaf = True

    def render_GET(self, request):  # pylint: disable=invalid-name,no-self-use
        """ Remember the user in the session. """
        name = getArgument(request, 'user')
        if not name:
            request.setResponseCode(400)
            return b'Missing user'
        ISessionUser(request.getSession()).principal = Principal(name)
        return b'Logged in'


class CallbackPage(Resource):
    """
    The redirect target of the authorization flow. It saves the authorized client
    for the user that is logged in.
    """
    isLeaf = True

    def __init__(self, repository):
        super(CallbackPage, self).__init__()
        self._repository = repository

    def render_GET(self, request):  # pylint: disable=invalid-name
        """ Save the authorized client from the query arguments. """
        principal = getPrincipal(request)
        if principal is None:
            request.setResponseCode(401)
            return b'Please log in first'
        now = time.time()
        refreshToken = getArgument(request, 'refresh_token')
        try:
            authorizedClient = AuthorizedClient(
                getArgument(request, 'registration'), principal.name,
                AccessToken(getArgument(request, 'access_token'), issuedAt=now,
                            expiresAt=now + int(getArgument(request, 'expires_in') or 3600),
                            scope=getArgument(request, 'scope')),
                None if refreshToken is None else RefreshToken(refreshToken, issuedAt=now))
        except ValueError as error:
            writeJson(request, {'error': 'invalid_request', 'error_description': str(error)}, 400)
            return NOT_DONE_YET
        deferred = self._repository.saveAuthorizedClient(authorizedClient, principal, request)
        deferred.addCallback(
            lambda _: writeJson(request, {'saved': authorizedClient.registrationId}))
        deferred.addErrback(self._onError, request)
        return NOT_DONE_YET

    @staticmethod
    def _onError(failure, request):
        logging.getLogger('txOauth2Client').error(
            'Failed to save the authorized client: %s', failure.getErrorMessage())
        writeJson(request, {'error': 'server_error'}, 500)


class ProfilePage(Resource):
    """
    This represents a resource that needs an access token of an external service.
    If there is no usable authorized client, the user is asked to authorize the client.
    Errors while loading the authorized client are handled the same way.
    """
    isLeaf = True

    def __init__(self, repository):
        super(ProfilePage, self).__init__()
        self._repository = repository

    def render_GET(self, request):  # pylint: disable=invalid-name
        """ Describe the access token of the logged in user. """
        principal = getPrincipal(request)
        if principal is None:
            request.setResponseCode(401)
            return b'Please log in first'
        registrationId = getArgument(request, 'registration')
        deferred = self._repository.loadAuthorizedClient(registrationId, principal, request)
        deferred.addCallback(self._onLoaded, request, registrationId)
        deferred.addErrback(self._onError, request, registrationId)
        return NOT_DONE_YET

    @staticmethod
    def _onLoaded(authorizedClient, request, registrationId):
        if authorizedClient is None or authorizedClient.accessToken.isExpired():
            writeJson(request, {'authorize': registrationId}, 401)
            return
        writeJson(request, {
            'registration': authorizedClient.registrationId,
            'user': authorizedClient.principalName,
            'token_type': authorizedClient.accessToken.tokenType,
            'scope': sorted(authorizedClient.accessToken.scope),
        })

    @staticmethod
    def _onError(failure, request, registrationId):
        logging.getLogger('txOauth2Client').warning(
            'Failed to load the authorized client: %s', failure.getErrorMessage())
        writeJson(request, {'authorize': registrationId}, 401)


class LogoutPage(Resource):
    """ Removes the authorized client of the logged in user. """
    isLeaf = True

    def __init__(self, repository):
        super(LogoutPage, self).__init__()
        self._repository = repository

    def render_GET(self, request):  # pylint: disable=invalid-name
        """ Remove the authorized client. """
        principal = getPrincipal(request)
        if principal is None:
            request.setResponseCode(401)
            return b'Please log in first'
        deferred = self._repository.removeAuthorizedClient(
            getArgument(request, 'registration'), principal, request)
        deferred.addCallback(lambda _: writeJson(request, {'removed': True}))
        deferred.addErrback(lambda failure: writeJson(
            request, {'error': failure.getErrorMessage()}, 400))
        return NOT_DONE_YET


def getTestRegistration():
    """
    :return: A client registration to use for this example.
    """
    return ClientRegistration(
        'github', clientId='example-client', scope=['read:user'],
        authorizationUri='https://github.com/login/oauth/authorize',
        tokenUri='https://github.com/login/oauth/access_token')


def setupRegistrations():
    """
    Setup the client registrations with a test registration.
    :return: The client registrations
    """
    registrationsPath = os.path.join(os.path.dirname(__file__), 'registrations')
    registrations = ConfigParserClientRegistrations(registrationsPath)
    registrations.addRegistration(getTestRegistration())
    return registrations


def setupTestServerResource(storage=None):
    """
    Setup a test server with the login, callback, profile and logout resources.
    :param storage: The storage for the authorized clients, defaults to an in-memory storage.
    :return: The root resource of the test server
    """
    if storage is None:
        storage = DictAuthorizedClientStorage(lifetime=14 * 24 * 3600)
    repository = AuthorizedClientRepository(storage, registrations=setupRegistrations())
    root = Resource()
    root.putChild(b'login', LoginPage())
    root.putChild(b'callback', CallbackPage(repository))
    root.putChild(b'profile', ProfilePage(repository))
    root.putChild(b'logout', LogoutPage(repository))
    return root


def main():
    """
    Run a test server at localhost:8880.
    """
    logging.basicConfig(level=logging.DEBUG)
    factory = Site(setupTestServerResource())
    endpoint = endpoints.TCP4ServerEndpoint(reactor, 8880)
    endpoint.listen(factory)
    # noinspection PyUnresolvedReferences
    reactor.run()


if __name__ == '__main__':
    main()
