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

"""Flask module providing the route paths to the api"""

from typing import Union

import click
from flask import Blueprint, Flask, Request, Response, make_response, request

from pygeocatalog.api import API, APIRequest
import pygeocatalog.api.featuretypes as featuretypes_api
from pygeocatalog.config import get_config


def make_wsgi_app(config_location: str = None, config: dict = None,
                  catalog=None) -> Flask:
    """
    Create a WSGI application

    :param config_location: location of the pygeocatalog config file
    :param config: configuration `dict`, loaded from `config_location`
                   (or `PYGEOCATALOG_CONFIG`) if `None`
    :param catalog: catalog object, built from the configuration if `None`

    :returns: Flask WSGI application
    """

    if config is None:
        config = get_config(config_path=config_location)

    app = Flask(__name__)
    app.url_map.strict_slashes = False

    root_path = config['server'].get('root_path', 'rest').strip('/')
    blueprint = Blueprint('pygeocatalog', __name__,
                          url_prefix=f'/{root_path}' if root_path else '')

    api_ = API(config, catalog)
    app.config['PYGEOCATALOG_API'] = api_

    def execute_from_flask(api_function: callable, request: Request,
                           *args) -> Response:
        """
        Executes API function from Flask

        :param api_function: API function
        :param request: request object
        :param *args: variable length additional arguments

        :returns: A Response instance
        """

        api_request = APIRequest.from_flask(request)

        content: Union[str, bytes]

        if not api_request.is_valid():
            headers, status, content = api_.get_format_exception(api_request)
        else:
            headers, status, content = api_function(api_, api_request, *args)

        response = make_response(content, status)

        if headers:
            response.headers = headers
        return response

    def dispatch(workspace: str, datastore: Union[str, None],
                 featuretype: Union[str, None]) -> Response:
        if featuretype is None:
            if request.method == 'GET':
                return execute_from_flask(
                    featuretypes_api.get_feature_types, request,
                    workspace, datastore)
            return execute_from_flask(
                featuretypes_api.post_feature_type, request,
                workspace, datastore)

        api_functions = {
            'GET': featuretypes_api.get_feature_type,
            'PUT': featuretypes_api.put_feature_type,
            'DELETE': featuretypes_api.delete_feature_type
        }
        return execute_from_flask(
            api_functions[request.method], request,
            workspace, datastore, featuretype)

    @blueprint.route('/workspaces/<workspace>/featuretypes',
                     methods=['GET', 'POST'])
    @blueprint.route('/workspaces/<workspace>/featuretypes.json',
                     methods=['GET', 'POST'])
    @blueprint.route('/workspaces/<workspace>/datastores/<datastore>/featuretypes',  # noqa
                     methods=['GET', 'POST'])
    @blueprint.route('/workspaces/<workspace>/datastores/<datastore>/featuretypes.json',  # noqa
                     methods=['GET', 'POST'])
    def featuretypes(workspace: str, datastore: str = None) -> Response:
        """
        Feature types endpoint

        :param workspace: workspace name
        :param datastore: datastore name

        :returns: HTTP response
        """

        return dispatch(workspace, datastore, None)

    @blueprint.route('/workspaces/<workspace>/featuretypes/<featuretype>',
                     methods=['GET', 'PUT', 'DELETE'])
    @blueprint.route('/workspaces/<workspace>/datastores/<datastore>/featuretypes/<featuretype>',  # noqa
                     methods=['GET', 'PUT', 'DELETE'])
    def featuretype(workspace: str, featuretype: str,
                    datastore: str = None) -> Response:
        """
        Feature type endpoint

        :param workspace: workspace name
        :param featuretype: feature type name (a `.json` suffix is ignored)
        :param datastore: datastore name

        :returns: HTTP response
        """

        if featuretype.endswith('.json'):
            featuretype = featuretype[:-len('.json')]

        return dispatch(workspace, datastore, featuretype)

    app.register_blueprint(blueprint)

    return app


def create_app() -> Flask:
    """Application factory reading the `PYGEOCATALOG_CONFIG` file"""

    return make_wsgi_app()


@click.command()
@click.pass_context
@click.option('--debug', '-d', default=False, is_flag=True, help='debug')
def serve(ctx: click.Context, debug: bool = False) -> None:
    """
    Serve pygeocatalog via Flask. Runs pygeocatalog
    as a flask server. Not recommend for production.

    :param debug: `bool` of whether to run in debug mode

    :returns: void
    """

    config = get_config()
    app = make_wsgi_app(config=config)
    app.run(debug=debug, host=config['server']['bind']['host'],
            port=config['server']['bind']['port'])


if __name__ == '__main__':  # run locally, for testing
    serve()
