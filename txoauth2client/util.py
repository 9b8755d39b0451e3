# Copyright (c) Sebastian Scholz
# See LICENSE for details.
""" Utility methods. """


def isAnyStr(val):
    """
    :param val: The value to check
    :return: If it is a text string.
    """
    return isinstance(val, str)


def isNonEmptyStr(val):
    """
    :param val: The value to check
    :return: If it is a text string with at least one character.
    """
    return isAnyStr(val) and len(val) != 0


def isTimestamp(val):
    """
    :param val: The value to check
    :return: If it is a number that can be used as seconds since the epoch.
    """
    return isinstance(val, (int, float)) and not isinstance(val, bool)


def normalizeScope(scope):
    """
    Convert a scope into a frozenset of scope strings.
    :raises ValueError: If the scope contains a value that is not a string.
    :param scope: None, a space separated scope string or an iterable of scope strings.
    :return: The scope as a frozenset.
    """
    if scope is None:
        return frozenset()
    if isAnyStr(scope):
        scope = scope.split()
    scope = list(scope)
    for scopeItem in scope:
        if not isNonEmptyStr(scopeItem):
            raise ValueError('Expected the scope to only contain non-empty strings, got '
                             + repr(scopeItem))
    return frozenset(scope)
