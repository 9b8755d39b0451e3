# Copyright (c) Sebastian Scholz
# See LICENSE for details.
"""
Helpers to extract the name of the resource owner from a principal.

Authorized clients are keyed by the name of the principal, not by the principal object,
because the same user produces a new principal object on every login.
"""

from twisted.cred.checkers import ANONYMOUS

from txoauth2client.errors import InvalidPrincipalError
from txoauth2client.util import isAnyStr


class Principal(object):
    """ A minimal principal that only carries a name. """

    def __init__(self, name):
        """
        :raises ValueError: If the name is not a non-empty string.
        :param name: The name of the principal.
        """
        super(Principal, self).__init__()
        if not isAnyStr(name) or len(name) == 0:
            raise ValueError('Expected the name to be a non-empty string, got ' + repr(name))
        self.name = name

    def __eq__(self, other):
        if not isinstance(other, Principal):
            return NotImplemented
        return self.name == other.name

    def __hash__(self):
        return hash(self.name)

    def __repr__(self):
        return '<Principal name={name!r}>'.format(name=self.name)


def getPrincipalName(principal):
    """
    Return the name of the principal that is used as part of the authorized client key.
    The principal can be any object with a name attribute or an avatar id
    (a text or byte string) as produced by a twisted.cred credentials checker.

    :raises InvalidPrincipalError: If the principal is None, anonymous
                                   or does not have a non-empty name.
    :param principal: The principal.
    :return: The name of the principal as a text string.
    """
    if principal is None:
        raise InvalidPrincipalError(principal, 'A principal is required')
    if principal is ANONYMOUS:
        raise InvalidPrincipalError(principal, 'The anonymous principal can not own a client')
    name = principal if isinstance(principal, (str, bytes)) else getattr(principal, 'name', None)
    if isinstance(name, bytes):
        try:
            name = name.decode('utf-8')
        except UnicodeDecodeError:
            raise InvalidPrincipalError(principal, 'The principal name is not valid utf-8')
    if not isAnyStr(name) or len(name) == 0:
        raise InvalidPrincipalError(principal)
    return name
