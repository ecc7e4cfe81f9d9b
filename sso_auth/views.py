"""
Failure response for legacy SAML 1.0 ticket-validation clients.

Clients of the SOAP-bound validation endpoint expect a fixed envelope even
when validation fails. The envelope is written contiguously, exactly as
legacy clients have always received it:

    <?xml version="1.0" encoding="UTF-8"?><SOAP-ENV:Envelope
    xmlns:SOAP-ENV="http://schemas.xmlsoap.org/soap/envelope/"><SOAP-ENV:Header/>
    <SOAP-ENV:Body>...</SOAP-ENV:Body></SOAP-ENV:Envelope>

The body slot is empty unless a payload builder is configured.
"""

import codecs
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional
from xml.sax.saxutils import escape

from fastapi import Response

from .handlers.base import AuthFailure

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "UTF-8"

SOAP_ENVELOPE_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_ENVELOPE_OPEN = (
    f'<SOAP-ENV:Envelope xmlns:SOAP-ENV="{SOAP_ENVELOPE_NS}"><SOAP-ENV:Header/><SOAP-ENV:Body>'
)
SOAP_ENVELOPE_CLOSE = "</SOAP-ENV:Body></SOAP-ENV:Envelope>"

PayloadBuilder = Callable[[str], str]


def saml_failure_payload(description: str) -> str:
    """SAML 1.0 Response carrying a Responder status and the failure description."""
    issue_instant = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return (
        '<samlp:Response xmlns:samlp="urn:oasis:names:tc:SAML:1.0:protocol"'
        f' MajorVersion="1" MinorVersion="1" ResponseID="_{uuid.uuid4().hex}"'
        f' IssueInstant="{issue_instant}">'
        '<samlp:Status><samlp:StatusCode Value="samlp:Responder"/>'
        f"<samlp:StatusMessage>{escape(description)}</samlp:StatusMessage>"
        "</samlp:Status></samlp:Response>"
    )


@dataclass(frozen=True)
class RenderedResponse:
    content_type: str
    body: str


class SamlFailureResponseView:
    """Renders a terminal validation failure into the SOAP envelope.

    ``encoding`` drives both the Content-Type charset and the XML declaration,
    so the two can never disagree.
    """

    def __init__(
        self,
        encoding: str = DEFAULT_ENCODING,
        payload_builder: Optional[PayloadBuilder] = None,
    ):
        if not encoding:
            raise ValueError("encoding cannot be empty")
        try:
            codecs.lookup(encoding)
        except LookupError:
            raise ValueError(f"Unknown encoding {encoding!r}")
        self.encoding = encoding
        self.payload_builder = payload_builder

    @property
    def content_type(self) -> str:
        return f"text/xml; charset={self.encoding}"

    def _build_payload(self, description: str) -> str:
        if self.payload_builder is None:
            return ""
        try:
            payload = self.payload_builder(description)
        except Exception:
            # the envelope must stay well formed whatever the payload does
            logger.exception("Failed to build failure payload; rendering empty body")
            return ""
        if not isinstance(payload, str):
            logger.error(
                "Failure payload builder returned %s; rendering empty body", type(payload).__name__
            )
            return ""
        return payload

    def render(self, description: str) -> RenderedResponse:
        body = (
            f'<?xml version="1.0" encoding="{self.encoding}"?>'
            + SOAP_ENVELOPE_OPEN
            + self._build_payload(description or "")
            + SOAP_ENVELOPE_CLOSE
        )
        return RenderedResponse(content_type=self.content_type, body=body)

    def render_failure(self, failure: AuthFailure) -> RenderedResponse:
        return self.render(failure.description)

    def to_response(self, description: str, status_code: int = 200) -> Response:
        rendered = self.render(description)
        return Response(
            content=rendered.body.encode(self.encoding, errors="xmlcharrefreplace"),
            status_code=status_code,
            headers={"Content-Type": rendered.content_type},
        )
