"""
Error kinds raised by the rate acquisition layer.

Every error is constructed where the failure happens. `public_message` is safe to show to
end users; the raw detail (upstream status/body, transport exception text) stays on the
instance for logging only.
"""

from __future__ import annotations


class ConverterError(RuntimeError):
    status_code: int = 500
    public_message: str = "Conversion failed. Please try again later."

    @property
    def kind(self) -> str:
        return type(self).__name__


class InvalidCurrencyCodeError(ConverterError):
    status_code = 400
    public_message = "Invalid currency code."

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Invalid currency code: {code}")


class IdenticalCurrencyError(ConverterError):
    status_code = 400
    public_message = "Source and target currencies must be different."

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Source and target currency are both {code}")


class CurrencyNotFoundError(ConverterError):
    status_code = 400
    public_message = "This currency is currently not available for conversion."

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Currency '{code}' not found in exchange rates")


class UpstreamError(ConverterError):
    status_code = 502
    public_message = "The exchange rate service is unavailable. Please try again later."

    def __init__(self, status: int, body: str, *, url: str | None = None) -> None:
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"Upstream request failed: {status} - {body[:200]}")


class MalformedResponseError(ConverterError):
    status_code = 502
    public_message = "The exchange rate service returned an unexpected response."

    def __init__(self, detail: str, *, url: str | None = None) -> None:
        self.detail = detail
        self.url = url
        super().__init__(f"Invalid response from upstream: {detail}")


class NetworkError(ConverterError):
    status_code = 503
    public_message = "Unable to connect to the exchange rate service. Please check your connection and try again."

    def __init__(self, detail: str, *, url: str | None = None) -> None:
        self.detail = detail
        self.url = url
        super().__init__(f"Network error: {detail}")
