"""Scheduler exceptions."""


class SchedulerError(Exception):
    """Base class for scheduler failures."""


class NoBackendsAvailableError(SchedulerError):
    """No execution hosts are known, so nothing can be assigned."""


class RegistrationError(SchedulerError):
    """The scheduler could not register with the membership feed."""
