"""Exceptions raised by the Rebate Engine."""


class RebateEngineError(Exception):
    """Base class for errors raised by the engine."""


class RuleLookupError(RebateEngineError):
    """A rule repository could not answer a lookup.

    Any adjustment or resolution that hits this error fails as a whole;
    callers never receive a partially adjusted quote list.
    """
