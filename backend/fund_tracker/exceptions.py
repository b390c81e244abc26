"""Exceptions raised by the upstream data clients."""


class FundDataError(RuntimeError):
    """An upstream fund data request failed, timed out or returned garbage."""

    def __init__(self, message: str, fund_code: str | None = None):
        super().__init__(message)
        self.fund_code = fund_code
