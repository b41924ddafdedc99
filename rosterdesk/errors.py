from __future__ import annotations


class RosterError(Exception):
    pass


class ValidationFailure(RosterError):
    pass


class FetchFailure(RosterError):
    pass


class SaveFailure(RosterError):
    pass


class PublishFailure(SaveFailure):
    pass


class NotFound(RosterError):
    pass
