# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" The storage backend interface of the authorized client repository. """

from abc import ABCMeta, abstractmethod


class AuthorizedClientStorage(metaclass=ABCMeta):
    """
    An object that stores authorized clients for the AuthorizedClientRepository.

    Records are addressed by a key, a tuple of (registrationId, principalName).
    The repository validates the key and serializes all operations on the same key,
    so a storage only needs to guarantee that a record is written and read as a whole.
    Each method may either return its result directly or return a Deferred.
    Errors must be raised (or errbacked), the repository reports them to the caller.
    """

    @abstractmethod
    def get(self, key, request):
        """
        :param key: The (registrationId, principalName) key of the record.
        :param request: The request during which the record is loaded.
        :return: The AuthorizedClient stored at the key, or None if there is none
                 or it has expired.
        """
        raise NotImplementedError()

    @abstractmethod
    def put(self, key, authorizedClient, request):
        """
        Store the authorized client at the key, replacing any previous record.

        :param key: The (registrationId, principalName) key of the record.
        :param authorizedClient: The AuthorizedClient to store.
        :param request: The request during which the record is saved.
        """
        raise NotImplementedError()

    @abstractmethod
    def delete(self, key, request):
        """
        Remove the record at the key. Must not fail if there is no such record.

        :param key: The (registrationId, principalName) key of the record.
        :param request: The request during which the record is removed.
        """
        raise NotImplementedError()
