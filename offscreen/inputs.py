"""TV input lookup by URI and by label.

Inputs are identified on the TV by URIs like ``extInput:hdmi?port=2``. Each
may have a user-assigned label of at most seven characters, which is how this
host finds "its" input.
"""

import logging
import socket
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .exceptions import InputNotFoundError

_LOGGER = logging.getLogger(__name__)

INPUT_URI_PREFIX = "extInput:"
MAX_LABEL_LENGTH = 7


@dataclass(frozen=True)
class ExternalInput:
    """An external input of the TV."""

    uri: str
    label: str = ""
    title: str = ""
    connection: bool = False


class InputMap:
    """Inputs of a TV indexed both by URI and by label.

    The two directions are kept in separate tables so a label that happens to
    look like a URI can never shadow a real URI.
    """

    def __init__(self, inputs: Iterable[ExternalInput] = ()):
        self._by_uri: Dict[str, ExternalInput] = {}
        self._by_label: Dict[str, str] = {}
        for item in inputs:
            self._by_uri[item.uri] = item
            if item.label:
                self._by_label[item.label] = item.uri

    def __len__(self) -> int:
        return len(self._by_uri)

    def __contains__(self, uri: object) -> bool:
        return uri in self._by_uri

    def label_for(self, uri: str) -> Optional[str]:
        """Return the label of the input with the given URI, if it has one."""
        item = self._by_uri.get(uri)
        if item is None or not item.label:
            return None
        return item.label

    def uri_for(self, label: str) -> Optional[str]:
        """Return the URI of the input with the given label."""
        return self._by_label.get(label)

    def external_inputs(self) -> List[ExternalInput]:
        """Return the external inputs sorted by URI."""
        return [
            self._by_uri[uri]
            for uri in sorted(self._by_uri)
            if uri.startswith(INPUT_URI_PREFIX)
        ]

    def resolve(self, label_or_uri: str) -> str:
        """Return the URI for a label, or the argument itself if no label matches."""
        return self._by_label.get(label_or_uri, label_or_uri)


def truncate_label(name: str) -> str:
    """Shorten a name to fit a TV input label.

    Names longer than seven characters keep their first six characters and
    their last one (palantir -> palantr).
    """
    if len(name) <= MAX_LABEL_LENGTH:
        return name
    return name[:MAX_LABEL_LENGTH - 1] + name[-1]


def default_input_label() -> str:
    """Return the input label for this host: its short hostname, truncated."""
    hostname = socket.gethostname().split(".", 1)[0]
    return truncate_label(hostname)


def resolve_input_uri(client, label_or_uri: str) -> str:
    """Resolve an input label to the URI of that input on the TV.

    Args:
        client: BraviaClient used to list the TV's inputs
        label_or_uri: Input label, or a URI which is returned unchanged

    Returns:
        Input URI

    Raises:
        InputNotFoundError: if no input carries the label
    """
    if label_or_uri.startswith(INPUT_URI_PREFIX):
        return label_or_uri

    uri = client.inputs().uri_for(label_or_uri)
    if uri is None:
        raise InputNotFoundError(label_or_uri)
    _LOGGER.debug("Input %r is %s", label_or_uri, uri)
    return uri
