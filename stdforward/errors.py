class StdForwardError(Exception):
    """Base class for stream forwarding errors."""


class InterceptionError(StdForwardError):
    """The process-global stream could not be redirected into a pipe."""


class ForwarderClosedError(StdForwardError):
    pass


class ConsumerClosedError(StdForwardError):
    pass


class ConsumerExistsError(StdForwardError):
    """Another consumer is already registered under the requested id."""
