"""Transparent reverse proxy to the upstream API.

Requests under the proxy prefix are forwarded with the prefix stripped.
The upstream answer is classified once, by its Content-Type, into a JSON
or a binary payload and rendered back to the caller unchanged.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import parse_qsl

import aiohttp
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

BODYLESS_METHODS = {"GET", "HEAD"}
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


@dataclass
class JsonPayload:
    status_code: int
    value: Any


@dataclass
class BinaryPayload:
    status_code: int
    body: bytes
    content_type: str


ProxyPayload = Union[JsonPayload, BinaryPayload]


class UpstreamError(Exception):
    """The upstream API could not be reached or sent an unreadable response."""


def string_query_params(items: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """Keep only parameters that carry a single string value.
    
    Repeated keys and bracketed keys (``a[b]=1``) describe lists and
    objects rather than strings and are dropped.
    """
    items = list(items)
    counts: Dict[str, int] = {}
    for key, _ in items:
        counts[key] = counts.get(key, 0) + 1
    
    return [
        (key, value) for key, value in items
        if counts[key] == 1 and '[' not in key and isinstance(value, str)
    ]


class ReverseProxy:
    """Forwards requests to ``upstream_origin`` over a shared aiohttp session."""
    
    def __init__(self, session: aiohttp.ClientSession, upstream_origin: str, user_agent: str):
        self.session = session
        self.upstream_origin = upstream_origin.rstrip('/')
        self.user_agent = user_agent
    
    def build_url(self, path: str) -> str:
        """Upstream URL for ``path`` (the part after the proxy prefix)."""
        if not path.startswith('/'):
            path = '/' + path
        return self.upstream_origin + path
    
    @staticmethod
    def encode_body(body: Optional[bytes], content_type: Optional[str] = None) -> Optional[str]:
        """Serialize the inbound body as JSON; ``None`` when there is nothing to send.

        Form bodies become a JSON object of their fields. A body that is
        neither form data nor JSON is sent as an empty object.
        """
        if not body or not body.strip():
            return None

        text = body.decode('utf-8', errors='replace')
        if content_type and 'application/x-www-form-urlencoded' in content_type.lower():
            return json.dumps(dict(parse_qsl(text, keep_blank_values=True)))
        try:
            return json.dumps(json.loads(text))
        except ValueError:
            logger.debug("Inbound body is not JSON, forwarding an empty object")
            return "{}"

    async def forward(self, method: str, path: str,
                      params: Iterable[Tuple[str, str]] = (),
                      body: Optional[bytes] = None,
                      content_type: Optional[str] = None) -> ProxyPayload:
        """Send one request upstream and classify the answer.

        ``path`` is used as given, so it must already be percent-encoded.

        Raises:
            UpstreamError: transport failure or undecodable JSON response
        """
        method = method.upper()
        url = self.build_url(path)
        headers = {'User-Agent': self.user_agent}
        data = None

        if method not in BODYLESS_METHODS:
            data = self.encode_body(body, content_type)
            if data is not None:
                headers['Content-Type'] = 'application/json'
        
        try:
            async with self.session.request(
                method, url,
                params=string_query_params(params),
                data=data,
                headers=headers
            ) as response:
                upstream_type = response.headers.get('Content-Type', '')
                
                if 'application/json' in upstream_type and method != 'HEAD':
                    value = await response.json(content_type=None)
                    return JsonPayload(status_code=response.status, value=value)
                
                content = await response.read()
                return BinaryPayload(status_code=response.status, body=content, content_type=upstream_type)
        
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise UpstreamError(str(e) or type(e).__name__) from e


def render_payload(payload: ProxyPayload, headers: Dict[str, str]) -> Response:
    """Turn a classified upstream answer into the response sent to the caller."""
    if isinstance(payload, JsonPayload):
        return JSONResponse(content=payload.value, status_code=payload.status_code, headers=headers)
    
    return Response(
        content=payload.body,
        status_code=payload.status_code,
        headers=headers,
        media_type=payload.content_type or None
    )


def proxy_error(message: str, service: str, headers: Dict[str, str]) -> JSONResponse:
    """Synthetic error body for requests that never got an upstream answer."""
    return JSONResponse(
        content={'error': True, 'message': message, 'service': service},
        status_code=502,
        headers=headers
    )
