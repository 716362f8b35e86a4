class RelayError(Exception):
    def __init__(self, message: str, session_id: str = None):
        super().__init__(message)
        self.session_id = session_id


class MalformedMessage(RelayError):
    pass


class UpstreamConfigurationError(RelayError):
    pass


class UpstreamSendError(RelayError):
    pass


class UpstreamStreamError(RelayError):
    pass


class TransportError(RelayError):
    pass


class CloseError(RelayError):
    pass
