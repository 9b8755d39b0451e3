""" Client registration tests. """

import os
import shutil

from tempfile import NamedTemporaryFile, mkdtemp

from txoauth2client.imp import ConfigParserClientRegistrations
from txoauth2client.registrations import ClientRegistration

from tests import TwistedTestCase, MockRegistrations, getTestRegistration


class Abstract:
    """ Wrapper for the abstract ClientRegistrationsTest to hide it during test discovery. """

    class ClientRegistrationsTest(TwistedTestCase):
        """
        An abstract test case for ClientRegistrations implementations. A subclass must
        call setupRegistrations with an instance of the registrations to test.
        """
        _REGISTRATIONS = None
        _VALID_REGISTRATIONS = [getTestRegistration('github'), getTestRegistration('google')]

        @classmethod
        def setupRegistrations(cls, registrations):
            """
            Set the registrations implementation to use for the tests.
            The registrations must contain all _VALID_REGISTRATIONS.
            :param registrations: The registrations implementation to test.
            """
            cls._REGISTRATIONS = registrations

        def testGetRegistration(self):
            """ Test the retrieval of registrations. """
            for validRegistration in self._VALID_REGISTRATIONS:
                registration = self._REGISTRATIONS.getRegistration(validRegistration.id)
                self.assertIsInstance(registration, ClientRegistration)
                for name in ['id', 'clientId', 'authorizationUri', 'tokenUri', 'scope']:
                    self.assertEqual(
                        getattr(validRegistration, name), getattr(registration, name),
                        msg='Attribute "{name}" differs from the expected value'.format(name=name))

        def testGetNonExistentRegistration(self):
            """ Test handling of requests for registrations that do not exist. """
            self.assertRaises(KeyError, self._REGISTRATIONS.getRegistration, 'nonExistentId')

        def testHasRegistration(self):
            """ Test that hasRegistration reports the known registrations. """
            for validRegistration in self._VALID_REGISTRATIONS:
                self.assertTrue(self._REGISTRATIONS.hasRegistration(validRegistration.id))
            self.assertFalse(self._REGISTRATIONS.hasRegistration('nonExistentId'))


class MockRegistrationsTest(Abstract.ClientRegistrationsTest):
    """ Test the MockRegistrations used by the other tests. """

    def setUp(self):
        super(MockRegistrationsTest, self).setUp()
        self.setupRegistrations(MockRegistrations(['github', 'google']))


class ConfigParserClientRegistrationsTest(Abstract.ClientRegistrationsTest):
    """ Test the ConfigParserClientRegistrations. """

    def setUp(self):
        super(ConfigParserClientRegistrationsTest, self).setUp()
        with NamedTemporaryFile(suffix='.ini', delete=False) as tempFile:
            self.registrationsPath = tempFile.name
        registrations = ConfigParserClientRegistrations(self.registrationsPath)
        for registration in self._VALID_REGISTRATIONS:
            registrations.addRegistration(registration)
        self.setupRegistrations(ConfigParserClientRegistrations(self.registrationsPath))

    def tearDown(self):
        os.unlink(self.registrationsPath)
        super(ConfigParserClientRegistrationsTest, self).tearDown()

    def testAddRegistration(self):
        """ Test that a registration can be added and updated. """
        registration = ClientRegistration(
            'gitlab', 'gitlabClientId', 'https://gitlab.nonexistent/oauth/authorize',
            'https://gitlab.nonexistent/oauth/token', scope='api read_user')
        self._REGISTRATIONS.addRegistration(registration)
        self.assertEqual(frozenset(['api', 'read_user']),
                         self._REGISTRATIONS.getRegistration('gitlab').scope)
        updatedRegistration = ClientRegistration(
            'gitlab', 'newClientId', registration.authorizationUri, registration.tokenUri)
        self._REGISTRATIONS.addRegistration(updatedRegistration)
        storedRegistration = self._REGISTRATIONS.getRegistration('gitlab')
        self.assertEqual('newClientId', storedRegistration.clientId)
        self.assertEqual(frozenset(), storedRegistration.scope)
        self.assertEqual(
            'newClientId', ConfigParserClientRegistrations(self.registrationsPath)
            .getRegistration('gitlab').clientId,
            msg='Expected the registration to be written to the config file.')

    def testWritingInNonexistentDirectory(self):
        """ Test that the registrations can be written to a location that doesn't exist. """
        tempDir = mkdtemp()
        try:
            registrations = ConfigParserClientRegistrations(
                os.path.join(tempDir, 'nonexistentDir', 'test.ini'))
            try:
                registrations.addRegistration(self._VALID_REGISTRATIONS[0])
            except IOError as error:
                self.fail('Expected the ConfigParserClientRegistrations to write to a location '
                          'that does not exist, but got an error: {msg}'.format(msg=error))
        finally:
            shutil.rmtree(tempDir, ignore_errors=True)


class ClientRegistrationTest(TwistedTestCase):
    """ Tests the ClientRegistration object. """

    def testRejectsInvalidArguments(self):
        """ Test that all string attributes of a registration are required. """
        arguments = ['github', 'clientId', 'https://auth.nonexistent', 'https://token.nonexistent']
        for index in range(len(arguments)):
            for invalidValue in [None, '', b'value', 1]:
                invalidArguments = list(arguments)
                invalidArguments[index] = invalidValue
                self.assertRaises(ValueError, ClientRegistration, *invalidArguments)
