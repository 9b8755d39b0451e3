import time

from urllib.parse import urlparse, parse_qs

from twisted.trial.unittest import TestCase
from twisted.internet.defer import Deferred, succeed
from twisted.internet.task import Clock
from twisted.web import server
from twisted.web.test.requesthelper import DummyRequest

from txoauth2client.client import AuthorizedClient, AccessToken, RefreshToken
from txoauth2client.registrations import ClientRegistrations, ClientRegistration
from txoauth2client.storage import AuthorizedClientStorage


class classProperty(object):
    """ @property for class variables. """
    def __init__(self, func):
        self.func = classmethod(func)

    def __get__(self, *args):
        # noinspection PyCallingNonCallable
        return self.func.__get__(*args)()


class TwistedTestCase(TestCase):
    """ An abstract base class for the test cases. """
    longMessage = True

    @classProperty
    def __test__(self):
        return not (self.__name__.startswith('Abstract') or self.__name__ == 'TwistedTestCase')


def createSession(uid=b'session'):
    """
    :param uid: The id of the session.
    :return: A new web session that is not attached to a site.
    """
    return server.Session(site=None, uid=uid, reactor=Clock())


class MockRequest(DummyRequest):
    """ A request that can be used for testing. """
    def __init__(self, method, url, arguments=None, headers=None, session=None):
        url = ensureByteString(url)
        method = ensureByteString(method)
        parsedUrl = urlparse(url)
        super(MockRequest, self).__init__(parsedUrl.path.split(b'/'), session=session)
        self.uri = url
        self.method = method
        if headers is not None:
            for key, value in headers.items():
                self.requestHeaders.addRawHeader(key, value)
        if arguments is not None:
            for key, value in arguments.items():
                self.addArg(key, value)
        for key, value in parse_qs(parsedUrl.query).items():
            self.addArg(key, value)

    def addArg(self, name, value):
        """
        Add an argument to the request.

        :param name: The name of the argument
        :param value: The value of the argument.
        """
        name = ensureByteString(name)
        if isinstance(value, list):
            for val in value:
                self.addArg(name, val)
        elif name in self.args:
            self.args[name].append(ensureByteString(value))
        else:
            super(MockRequest, self).addArg(name, ensureByteString(value))

    def getResponse(self):
        """
        :return: The data that has been written to the request as a response.
        """
        return b''.join(self.written)

    def getResponseHeader(self, name):
        """
        :param name: The name of the response header.
        :return: The value of the response header.
        """
        return self.responseHeaders.getRawHeaders(name.lower(), [None])[0]


class MockSite(server.Site):
    """ A site that can be used for testing. """
    def makeRequest(self, request):
        """
        Render the resource for the request.

        :param request: The request.
        :return: A Deferred that fires when the request is finished.
        """
        resource = self.getResourceFor(request)
        return self._render(resource, request)

    @staticmethod
    def _render(resource, request):
        """
        Execute the rendering of a request.

        :param resource: The resource to render.
        :param request: The request.
        :return: The result.
        """
        result = resource.render(request)
        if isinstance(result, bytes):
            request.write(result)
            request.finish()
            return succeed(None)
        elif result is server.NOT_DONE_YET:
            if request.finished:
                return succeed(result)
            else:
                return request.notifyFinish()
        else:
            raise ValueError("Unexpected return value: {result!r}".format(result=result))


class MockRegistrations(ClientRegistrations):
    """ Client registrations that can be used for tests. """

    def __init__(self, registrationIds=('github',)):
        super(MockRegistrations, self).__init__()
        self._registrations = {registrationId: getTestRegistration(registrationId)
                               for registrationId in registrationIds}

    def getRegistration(self, registrationId):
        return self._registrations[registrationId]


class PendingAuthorizedClientStorage(AuthorizedClientStorage):
    """
    A storage whose operations only take effect when the test completes them.
    Each operation returns a Deferred and is queued until completeNext or failNext is called.
    """

    def __init__(self):
        super(PendingAuthorizedClientStorage, self).__init__()
        self.records = {}
        self.pending = []

    def get(self, key, request):
        return self._enqueue('get', key, lambda: self.records.get(key))

    def put(self, key, authorizedClient, request):
        return self._enqueue('put', key, lambda: self.records.__setitem__(key, authorizedClient))

    def delete(self, key, request):
        return self._enqueue('delete', key, lambda: self.records.pop(key, None))

    def pendingOperations(self):
        """
        :return: A list of (operation, key) of the operations that were not completed yet.
        """
        return [(operation, key) for operation, key, _, _ in self.pending]

    def completeNext(self):
        """
        Apply the oldest pending operation and fire its Deferred.
        :return: The name of the operation.
        """
        operation, _, deferred, apply = self.pending.pop(0)
        deferred.callback(apply())
        return operation

    def failNext(self, error):
        """
        Fail the oldest pending operation without applying it.
        :param error: The exception to fail the operation with.
        :return: The name of the operation.
        """
        operation, _, deferred, _ = self.pending.pop(0)
        deferred.errback(error)
        return operation

    def _enqueue(self, operation, key, apply):
        deferred = Deferred()
        self.pending.append((operation, key, deferred, apply))
        return deferred


class FailingAuthorizedClientStorage(AuthorizedClientStorage):
    """ A storage where every operation raises the given error. """

    def __init__(self, error):
        super(FailingAuthorizedClientStorage, self).__init__()
        self.error = error
        self.calls = 0

    def get(self, key, request):
        return self._fail()

    def put(self, key, authorizedClient, request):
        return self._fail()

    def delete(self, key, request):
        return self._fail()

    def _fail(self):
        self.calls += 1
        raise self.error


def getTestRegistration(registrationId='github'):
    """
    :param registrationId: The registration id.
    :return: A client registration that can be used in the tests.
    """
    return ClientRegistration(
        registrationId, clientId=registrationId + 'ClientId', scope=['read', 'write'],
        authorizationUri='https://auth.nonexistent/authorize',
        tokenUri='https://auth.nonexistent/token')


def getTestAuthorizedClient(registrationId='github', principalName='alice', token='tok-1',
                            lifetime=3600, scope=('read',), refreshToken=None):
    """
    :param registrationId: The registration id of the authorized client.
    :param principalName: The name of the principal who authorized the client.
    :param token: The access token value.
    :param lifetime: The lifetime of the access token in seconds or None.
    :param scope: The scope of the access token.
    :param refreshToken: An optional refresh token value.
    :return: An authorized client that can be used in the tests.
    """
    now = int(time.time())
    return AuthorizedClient(
        registrationId, principalName,
        AccessToken(token, issuedAt=now, expiresAt=None if lifetime is None else now + lifetime,
                    scope=scope),
        None if refreshToken is None else RefreshToken(refreshToken, issuedAt=now))


def assertAuthorizedClientEquals(testCase, authorizedClient, expectedClient, message):
    """
    Assert that the authorized client equals the expected authorized client.
    :param testCase: The current test case.
    :param authorizedClient: The authorized client to compare.
    :param expectedClient: The authorized client to compare the first one against.
    :param message: The assertion message.
    """
    if message.endswith('.'):
        message = message[:-1]
    testCase.assertIsNotNone(authorizedClient, msg=message + ': Got no authorized client')
    for name in ['registrationId', 'principalName', 'accessToken', 'refreshToken']:
        testCase.assertEqual(
            getattr(expectedClient, name), getattr(authorizedClient, name),
            msg=message + ': Attribute "{name}" differs from expected value'.format(name=name))
    for name in ['tokenValue', 'issuedAt', 'expiresAt', 'scope', 'tokenType']:
        testCase.assertEqual(
            getattr(expectedClient.accessToken, name), getattr(authorizedClient.accessToken, name),
            msg=message + ': Access token attribute "{name}" differs from expected value'
                          .format(name=name))


def ensureByteString(string):
    """
    :param string: A string.
    :return: The string as a byte string.
    """
    return string if isinstance(string, bytes) else string.encode('utf-8')
