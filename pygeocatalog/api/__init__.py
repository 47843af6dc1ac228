# =================================================================
#
# Authors: pygeocatalog development team
#
# Copyright (c) 2024 pygeocatalog development team
#
# Permission is hereby granted, free of charge, to any person
# obtaining a copy of this software and associated documentation
# files (the "Software"), to deal in the Software without
# restriction, including without limitation the rights to use,
# copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the
# Software is furnished to do so, subject to the following
# conditions:
#
# The above copyright notice and this permission notice shall be
# included in all copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND,
# EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES
# OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND
# NONINFRINGEMENT. IN NO EVENT SHALL THE AUTHORS OR COPYRIGHT
# HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY,
# WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING
# FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR
# OTHER DEALINGS IN THE SOFTWARE.
#
# =================================================================

"""
Root level code of pygeocatalog, parsing content provided by web framework.
Returns content from the catalog and sets responses.
"""

from http import HTTPStatus
import json
import logging
import sys
from typing import Any, Optional, Tuple

from pygeocatalog import __version__
from pygeocatalog.catalog import get_catalog
from pygeocatalog.error import GenericError, ValidationFailure
from pygeocatalog.log import setup_logger
from pygeocatalog.util import get_base_url, str2bool, to_json

LOGGER = logging.getLogger(__name__)

#: Return headers for requests (e.g:X-Powered-By)
HEADERS = {
    'Content-Type': 'application/json',
    'X-Powered-By': f'pygeocatalog {__version__}'
}

CHARSET = ['utf-8']
F_JSON = 'json'

#: Formats allowed for ?f= requests
FORMAT_TYPES = {
    F_JSON: 'application/json'
}

#: Accept header values which do not select a format
WILDCARD_TYPES = ('*/*', 'application/*')


class APIRequest:
    """
    Wraps an incoming Flask (or Werkzeug) request: query parameters,
    negotiated format, request headers and body.

    :param request: The Flask Request instance.
    """

    def __init__(self, request):
        self._data = b''
        self._args = getattr(request, 'args', None) or {}
        self._method = getattr(request, 'method', 'GET').upper()
        self._headers = dict(request.headers.items())
        self._format = self._negotiate_format()

    @classmethod
    def from_flask(cls, request) -> 'APIRequest':
        """Factory class method creating an `APIRequest` with data"""
        api_req = cls(request)
        api_req._data = request.data
        return api_req

    def _negotiate_format(self) -> Optional[str]:
        """
        Pick the response format, from the `f` query parameter first and
        then from the first explicit MIME type of the `Accept` header

        :returns: format name, MIME type, or `None` if not specified
        """

        format_ = (self._args.get('f') or '').strip().lower()
        if format_:
            return format_

        accept = self._get_header('Accept') or ''
        for value in accept.split(','):
            mime_type = value.split(';')[0].strip()
            if not mime_type or mime_type in WILDCARD_TYPES:
                continue
            return next((fmt for fmt, mime in FORMAT_TYPES.items()
                         if mime == mime_type), mime_type)

        return None

    def _get_header(self, name: str) -> Optional[str]:
        return next((value for key, value in self._headers.items()
                     if key.lower() == name.lower()), None)

    @property
    def data(self) -> bytes:
        """Request body"""
        return self._data

    @property
    def params(self) -> dict:
        """Request query parameters"""
        return self._args

    @property
    def method(self) -> str:
        return self._method

    @property
    def format(self) -> Optional[str]:
        """
        Requested response format

        :returns: Format name or None
        """

        return self._format

    @property
    def headers(self) -> dict:
        return self._headers

    @property
    def content_type(self) -> Optional[str]:
        """MIME type of the request body, without parameters"""

        value = self._get_header('Content-Type')
        if not value:
            return None
        return value.split(';')[0].strip().lower()

    def is_valid(self) -> bool:
        """
        Whether the requested format (if any) can be produced

        :returns: bool
        """

        return not self._format or self._format in FORMAT_TYPES

    def get_param_bool(self, name: str, default: bool = False) -> bool:
        """
        Returns a query parameter as boolean

        :param name: query parameter name
        :param default: value if the parameter is absent

        :returns: bool
        """

        value = self._args.get(name)
        if value is None:
            return default
        return str2bool(value)

    def get_json(self) -> Any:
        """
        Decode the request body as JSON

        :raises `ValueError`: if the body is not valid JSON
        :returns: decoded body
        """

        data = self._data
        if isinstance(data, bytes):
            data = data.decode(CHARSET[0])
        return json.loads(data)

    def get_response_headers(self, **custom_headers) -> dict:
        """
        Build the headers of a response

        :param custom_headers: headers added to the defaults

        :returns: A header dict
        """

        return dict(HEADERS, **custom_headers)


class API:
    """API object"""

    def __init__(self, config, catalog=None):
        """
        constructor

        :param config: configuration dict
        :param catalog: catalog object (built from `config` if `None`)

        :returns: `pygeocatalog.api.API` instance
        """

        self.config = config
        self.base_url = get_base_url(config)

        server = config['server']
        CHARSET[0] = server.get('encoding', 'utf-8')
        self.pretty_print = server.setdefault('pretty_print', False)

        setup_logger(config['logging'])

        self.catalog = catalog if catalog is not None \
            else get_catalog(config)
        LOGGER.info(f'Catalog {type(self.catalog).__name__} loaded')

    def get_exception(self, status, headers, format_, code,
                      description, errors=None) -> Tuple[dict, int, str]:
        """
        Build an error response, logging the error

        :param status: HTTP status code
        :param headers: dict of HTTP response headers
        :param format_: requested format (responses are always JSON)
        :param code: exception code (e.g. `NotFound`)
        :param description: exception description
        :param errors: optional list of itemized errors

        :returns: tuple of headers, status, and message
        """

        exc_info = sys.exc_info()
        LOGGER.error(description,
                     exc_info=exc_info if exc_info[0] is not None else None)

        exception = {
            'code': code,
            'type': code,
            'description': description
        }
        if errors:
            exception['errors'] = errors

        headers['Content-Type'] = FORMAT_TYPES[F_JSON]

        return headers, status, to_json(exception, self.pretty_print)

    def get_error_response(self, request: APIRequest, headers: dict,
                           err: GenericError) -> Tuple[dict, int, str]:
        """
        Render a catalog or datastore error

        :param request: An APIRequest instance.
        :param headers: dict of HTTP response headers
        :param err: `GenericError` instance

        :returns: tuple of headers, status, and message
        """

        errors = err.errors if isinstance(err, ValidationFailure) else None
        return self.get_exception(
            err.http_status_code, headers, request.format,
            err.ogc_exception_code, err.message, errors)

    def get_format_exception(self, request) -> Tuple[dict, int, str]:
        """
        Render the error of an unsupported format

        :param request: An APIRequest instance.

        :returns: tuple of headers, status, and message
        """

        return self.get_exception(
            HTTPStatus.BAD_REQUEST, request.get_response_headers(),
            request.format, 'InvalidParameterValue',
            f'Invalid format: {request.format}')
