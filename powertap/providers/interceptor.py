from __future__ import annotations

import logging
import time

import httpx


logger = logging.getLogger("powertap.http")

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _connection_descriptor(url: httpx.URL) -> str:
    port = url.port or _DEFAULT_PORTS.get(url.scheme, 0)
    return f"{url.scheme}://{url.host}:{port}"


def _format_headers(headers: httpx.Headers) -> str:
    return "\n".join(f"{name}: {value}" for name, value in headers.multi_items())


def _decode(body: bytes) -> str:
    return body.decode("utf-8", errors="replace")


class LoggingTransport(httpx.BaseTransport):
    """Records every request/response pair that passes through ``inner`` at DEBUG.

    The response body is read once and the response is rebuilt over an
    in-memory stream, so the caller still sees every byte the server sent.
    Failures while recording are swallowed.
    """

    def __init__(self, inner: httpx.BaseTransport) -> None:
        self._inner = inner

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        started_at = time.perf_counter()
        self._record_request(request)

        response = self._inner.handle_request(request)
        if not response.is_stream_consumed:
            response = self._buffer(request, response)
        duration_ms = (time.perf_counter() - started_at) * 1000

        self._record_response(request, response, duration_ms)
        return response

    @staticmethod
    def _buffer(request: httpx.Request, response: httpx.Response) -> httpx.Response:
        try:
            raw_body = b"".join(response.iter_raw())
        finally:
            response.close()
        # Rebuilt over the raw bytes so content-encoding is decoded exactly once.
        return httpx.Response(
            status_code=response.status_code,
            headers=response.headers,
            content=raw_body,
            request=request,
            extensions=response.extensions,
        )

    def close(self) -> None:
        self._inner.close()

    def _record_request(self, request: httpx.Request) -> None:
        try:
            logger.debug(
                "Sending request %s %s on %s\n%s",
                request.method,
                request.url,
                _connection_descriptor(request.url),
                _format_headers(request.headers),
                extra={"method": request.method, "url": str(request.url)},
            )
            if request.method.upper() == "POST":
                # read() buffers the content; the transmitted stream is untouched.
                logger.debug("Request body: %s", _decode(request.read()))
        except Exception:  # noqa: BLE001
            self._swallow("request")

    def _record_response(self, request: httpx.Request, response: httpx.Response, duration_ms: float) -> None:
        try:
            logger.debug(
                "Received response for %s in %.1fms\n%s %s\n%s",
                request.url,
                duration_ms,
                response.status_code,
                response.reason_phrase,
                _format_headers(response.headers),
                extra={
                    "method": request.method,
                    "url": str(request.url),
                    "status_code": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                },
            )
            logger.debug("Response body: %s", _decode(response.content))
        except Exception:  # noqa: BLE001
            self._swallow("response")

    @staticmethod
    def _swallow(stage: str) -> None:
        try:
            logger.debug("Diagnostic %s logging failed.", stage, exc_info=True)
        except Exception:  # noqa: BLE001
            pass
