from __future__ import annotations


class FlatFlowError(Exception):
    pass


class AuthorizationError(FlatFlowError, PermissionError):
    pass


class GroupNotFoundError(FlatFlowError, LookupError):
    pass


class SplitError(FlatFlowError, ValueError):
    pass


class AmountParseError(FlatFlowError, ValueError):
    pass
