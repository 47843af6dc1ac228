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

import logging
import os.path
from contextlib import contextmanager

from flask.testing import FlaskClient
from werkzeug.test import create_environ
from werkzeug.wrappers import Request
from werkzeug.datastructures import ImmutableMultiDict

from pygeocatalog.api import APIRequest

LOGGER = logging.getLogger(__name__)


def get_test_file_path(filename: str) -> str:
    """helper function to open test file safely"""

    if os.path.isfile(filename):
        return filename
    else:
        return f'tests/{filename}'


def mock_request(params: dict = None, data=None, method: str = 'GET',
                 **headers) -> Request:
    """
    Mocks a Request object so it can be turned into an APIRequest.

    :param params: Optional query parameter dict for the request.
                   Will be set to {} if omitted.
    :param data: Optional data/body to send with the request.
                 Can be text/bytes or a JSON dictionary.
    :param method: HTTP method of the request.
    :param headers: Optional request environ keys to set
                    (e.g. `CONTENT_TYPE`, `HTTP_ACCEPT`).
    :returns: A Werkzeug Request instance.
    """
    params = params or {}
    if isinstance(data, dict):
        environ = create_environ(base_url='http://localhost:5000/rest/',
                                 method=method, json=data)
    else:
        environ = create_environ(base_url='http://localhost:5000/rest/',
                                 method=method, data=data)
    environ.update(headers)
    request = Request(environ)
    request.args = ImmutableMultiDict(params.items())  # noqa
    return request


def mock_api_request(params: dict | None = None, data=None,
                     method: str = 'GET', **headers) -> APIRequest:
    """
    Mocks an APIRequest

    :param params: Optional query parameter dict for the request.
                   Will be set to {} if omitted.
    :param data: Optional data/body to send with the request.
                 Can be text/bytes or a JSON dictionary.
    :param method: HTTP method of the request.
    :param headers: Optional request environ keys to set.
    :returns: APIRequest instance
    """
    return APIRequest.from_flask(
        mock_request(params=params, data=data, method=method, **headers))


@contextmanager
def mock_flask(config: dict, **kwargs) -> FlaskClient:
    """
    Mocks a Flask client so we can test the API routing.

    :param config: configuration `dict` of the application.
    :param kwargs: options passed to the Flask test client.
    """

    from pygeocatalog.flask_app import make_wsgi_app

    app = make_wsgi_app(config=config)
    client = app.test_client(**kwargs)
    try:
        yield client
    finally:
        app.config['PYGEOCATALOG_API'].catalog.resource_pool.dispose()
        del client
