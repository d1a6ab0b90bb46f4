"""Sony Bravia REST IP control client.

Only the handful of operations needed to power a TV on and off and to switch
its input are implemented. Each operation is a small request class that knows
its service, method and parameters, and how to turn the ``result`` part of a
response into a typed value.

Protocol reference:
https://pro-bravia.sony.net/develop/integrate/rest-api/spec/index.html
"""

import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional

from .config import DEFAULT_TIMEOUT, PSK_HEADER
from .exceptions import (
    BraviaError,
    HTTPStatusError,
    InvalidResponseError,
    ProtocolError,
    TransportError,
)
from .inputs import ExternalInput, InputMap

_LOGGER = logging.getLogger(__name__)


class PowerStatus(Enum):
    """TV power state as reported by getPowerStatus."""
    ACTIVE = "active"
    STANDBY = "standby"


@dataclass(frozen=True)
class PlayingContent:
    """Currently selected input as reported by getPlayingContentInfo."""

    uri: str
    source: str = ""
    title: str = ""


class Request:
    """Base class for a single REST IP control call."""

    service: ClassVar[str]
    method: ClassVar[str]
    version: ClassVar[str] = "1.0"
    result_required: ClassVar[bool] = False

    def params(self) -> Optional[Dict[str, Any]]:
        return None

    def payload(self) -> Dict[str, Any]:
        params = self.params()
        return {
            "method": self.method,
            "version": self.version,
            "id": 1,  # 0 is invalid, the value is otherwise unused
            "params": [] if params is None else [params],
        }

    def parse(self, result: List[Any]) -> Any:
        return None


@dataclass(frozen=True)
class GetPowerStatus(Request):
    service: ClassVar[str] = "system"
    method: ClassVar[str] = "getPowerStatus"
    result_required: ClassVar[bool] = True

    def parse(self, result: List[Any]) -> PowerStatus:
        status = _first_object(result).get("status")
        try:
            return PowerStatus(status)
        except ValueError:
            raise ValueError(f"unknown power status: {status!r}") from None


@dataclass(frozen=True)
class SetPowerStatus(Request):
    status: bool
    service: ClassVar[str] = "system"
    method: ClassVar[str] = "setPowerStatus"

    def params(self) -> Dict[str, Any]:
        return {"status": self.status}


@dataclass(frozen=True)
class GetPlayingContentInfo(Request):
    service: ClassVar[str] = "avContent"
    method: ClassVar[str] = "getPlayingContentInfo"
    result_required: ClassVar[bool] = True

    def parse(self, result: List[Any]) -> PlayingContent:
        info = _first_object(result)
        uri = info.get("uri")
        if not isinstance(uri, str):
            raise ValueError("playing content has no uri")
        return PlayingContent(
            uri=uri,
            source=str(info.get("source", "")),
            title=str(info.get("title", "")),
        )


@dataclass(frozen=True)
class GetExternalInputsStatus(Request):
    service: ClassVar[str] = "avContent"
    method: ClassVar[str] = "getCurrentExternalInputsStatus"
    result_required: ClassVar[bool] = True

    def parse(self, result: List[Any]) -> List[ExternalInput]:
        # The input list is nested: {"result": [[{...}, {...}]]}
        if not result or not isinstance(result[0], list):
            raise ValueError("expected a list of inputs")
        inputs = []
        for item in result[0]:
            if not isinstance(item, dict) or not isinstance(item.get("uri"), str):
                raise ValueError(f"malformed input entry: {item!r}")
            inputs.append(ExternalInput(
                uri=item["uri"],
                label=str(item.get("label") or ""),
                title=str(item.get("title") or ""),
                connection=bool(item.get("connection", False)),
            ))
        return inputs


@dataclass(frozen=True)
class SetPlayContent(Request):
    uri: str
    service: ClassVar[str] = "avContent"
    method: ClassVar[str] = "setPlayContent"

    def params(self) -> Dict[str, Any]:
        return {"uri": self.uri}


def _first_object(result: List[Any]) -> Dict[str, Any]:
    if not result or not isinstance(result[0], dict):
        raise ValueError("expected an object as the first result")
    return result[0]


class BraviaClient:
    """Client for a Sony Bravia TV using the REST IP control protocol.

    Calls are synchronous and never retried. The pre-shared key is sent in
    plain text with every request when one is configured.
    """

    def __init__(self, hostname: str, psk: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        """Initialize the client.

        Args:
            hostname: TV hostname or IP address
            psk: Pre-shared key configured on the TV, or None/empty for none
            timeout: Per-request timeout in seconds
        """
        self.hostname = hostname
        self.psk = psk or None
        self.timeout = timeout
        self.base_url = f"http://{hostname}/sony"

    def __repr__(self) -> str:
        return f"BraviaClient({self.hostname!r})"

    def power_status(self) -> PowerStatus:
        """Get whether the TV is on (active) or off (standby)."""
        return self.call(GetPowerStatus())

    def set_power_status(self, status: bool) -> None:
        """Turn the TV on (True) or off (False)."""
        self.call(SetPowerStatus(status))

    def selected_input(self) -> str:
        """Get the URI of the currently selected input.

        The TV rejects this with a protocol error when it is in standby.
        """
        return self.call(GetPlayingContentInfo()).uri

    def inputs(self) -> InputMap:
        """Get all external inputs, indexed by URI and by label."""
        return InputMap(self.call(GetExternalInputsStatus()))

    def set_input(self, uri: str) -> None:
        """Select the input with the given URI."""
        self.call(SetPlayContent(uri))

    def call(self, request: Request) -> Any:
        """Execute a request and return its parsed result.

        Raises:
            TransportError: the HTTP exchange failed or timed out
            HTTPStatusError: the TV returned a status other than 200
            ProtocolError: the response carried an error code
            InvalidResponseError: the response could not be decoded
        """
        context = {
            "service": request.service,
            "method": request.method,
            "params": request.params(),
        }
        body = self._post(request, context)
        return self._decode(request, body, context)

    def _post(self, request: Request, context: Dict[str, Any]) -> bytes:
        url = f"{self.base_url}/{request.service}"
        data = json.dumps(request.payload()).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if self.psk:
            headers[PSK_HEADER] = self.psk

        _LOGGER.debug("POST %s %s params=%s", url, request.method, context["params"])
        http_request = urllib.request.Request(url, data=data, headers=headers, method="POST")
        try:
            with urllib.request.urlopen(http_request, timeout=self.timeout) as response:
                status = response.status
                reason = getattr(response, "reason", "")
                body = response.read()
        except urllib.error.HTTPError as e:
            raise HTTPStatusError(e.code, str(e.reason or ""), context) from e
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            raise TransportError(f"{request.method} request to {self.hostname} failed: {e}", context) from e

        if status != 200:
            raise HTTPStatusError(status, reason or "", context)
        return body

    def _decode(self, request: Request, body: bytes, context: Dict[str, Any]) -> Any:
        try:
            response = json.loads(body)
        except ValueError as e:
            raise InvalidResponseError(f"response is not valid JSON: {e}", body, context) from e
        if not isinstance(response, dict):
            raise InvalidResponseError("response is not a JSON object", body, context)

        error = response.get("error")
        if error is not None:
            raise _protocol_error(error, body, context)

        result = response.get("result")
        if result is None:
            if request.result_required:
                raise InvalidResponseError(f"{request.method} returned no result", body, context)
            return None
        if not isinstance(result, list):
            raise InvalidResponseError("result is not a list", body, context)

        try:
            return request.parse(result)
        except ValueError as e:
            raise InvalidResponseError(f"unexpected {request.method} result: {e}", body, context) from e


def _protocol_error(error: Any, body: bytes, context: Dict[str, Any]) -> BraviaError:
    if not isinstance(error, list) or len(error) != 2:
        return InvalidResponseError("wrong number of error parameters", body, context)
    code, message = error
    # bool is an int subclass but is never a valid error code
    if isinstance(code, bool) or not isinstance(code, (int, float)):
        return InvalidResponseError("first error parameter is not a number", body, context)
    if not isinstance(message, str):
        return InvalidResponseError("second error parameter is not a string", body, context)
    return ProtocolError(int(code), message, context)
