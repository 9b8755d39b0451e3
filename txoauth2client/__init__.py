# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" Allows persisting OAuth2 authorized clients between requests with twisted. """

from .client import AuthorizedClient, AccessToken, RefreshToken
from .principal import Principal
from .repository import AuthorizedClientRepository, BlockingAuthorizedClientRepository

__all__ = ['AuthorizedClient', 'AccessToken', 'RefreshToken', 'Principal',
           'AuthorizedClientRepository', 'BlockingAuthorizedClientRepository',
           'client', 'errors', 'imp', 'principal', 'registrations', 'repository', 'storage']
