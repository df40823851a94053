"""
Inspector exception types.

Analyzers catch these and turn them into tagged fallback results; only the
HTTP layer ever reports an error to the caller.
"""


class UpstreamUnavailable(Exception):
    """External API could not be reached or returned an unusable response"""

    def __init__(self, service: str, message: str, status_code: int = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class OneInchAPIError(UpstreamUnavailable):
    """1inch quote/swap call failed"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__("1inch", message, status_code)


class EtherscanAPIError(UpstreamUnavailable):
    """Etherscan source/bytecode call failed"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__("etherscan", message, status_code)


class SimulationError(Exception):
    """Forge process could not start or exited with an error"""

    def __init__(self, message: str, exit_code: int = None, stderr: str = ""):
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class SimulationTimeout(SimulationError):
    """Forge process exceeded the wall-clock bound"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"Simulation timed out after {timeout:g}s")


class SimulationParseError(Exception):
    """Forge output carried neither a gas nor a slippage figure"""
    pass
