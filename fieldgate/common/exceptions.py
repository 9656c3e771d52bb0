"""
Custom Exception Classes for the fieldgate gateway

Hierarchical exception structure shared by the registry, invoker,
polling manager and dispatcher. Each class carries a short ``code``
that travels with the Outcome built from it.
"""


class GatewayError(Exception):
    """Base exception for all gateway errors"""

    code = "gateway_error"

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(GatewayError):
    """Configuration-related errors"""

    code = "config_error"

    def __init__(self, message: str, recoverable: bool = False):
        super().__init__(f"Config Error: {message}", recoverable)


class AlreadyConnectedError(GatewayError):
    """Informational: a connection for this key already exists"""

    code = "already_connected"

    def __init__(self, address: str | None = None, slave_id: int | None = None):
        self.address = address
        self.slave_id = slave_id
        super().__init__("device already connected")


class NotConnectedError(GatewayError):
    """Operation addressed to a missing or disconnected device"""

    code = "not_connected"

    def __init__(self, address: str | None = None, slave_id: int | None = None):
        self.address = address
        self.slave_id = slave_id
        super().__init__("device not connected")


class UnsupportedMethodError(GatewayError):
    """Method name outside the transport's capability set"""

    code = "unsupported_method"

    def __init__(self, method_name: str):
        self.method_name = method_name
        super().__init__(f"method not supported: {method_name}")


class TransportError(GatewayError):
    """Underlying open/close/read/write call failed"""

    code = "transport_failure"

    def __init__(
        self,
        message: str,
        address: str | None = None,
        slave_id: int | None = None,
    ):
        self.address = address
        self.slave_id = slave_id
        super().__init__(message)


class UnknownTargetError(GatewayError):
    """Dispatcher could not resolve the driver or method name"""

    code = "unknown_target"

    def __init__(self, driver_name: str, method_name: str):
        self.driver_name = driver_name
        self.method_name = method_name
        super().__init__(f"unknown command or method: {driver_name}.{method_name}")


class InvalidParamsError(GatewayError):
    """Params are neither an ordered sequence nor a named mapping"""

    code = "invalid_params"

    def __init__(self, message: str = "invalid params format"):
        super().__init__(message)


class NoSuchIntervalError(GatewayError):
    """Removal requested for a poll key that does not exist"""

    code = "no_such_interval"

    def __init__(self, key: str | None = None):
        self.key = key
        super().__init__("no interval found")
