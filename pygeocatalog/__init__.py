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

__version__ = '0.3.0'

import click

from pygeocatalog.config import config


@click.group()
@click.version_option(version=__version__)
def cli():
    pass


@cli.command()
@click.option('--debug', '-d', default=False, is_flag=True, help='debug')
@click.pass_context
def serve(ctx, debug):
    """Run the catalog REST server with Flask (not for production)"""

    from pygeocatalog.flask_app import serve as serve_flask
    ctx.invoke(serve_flask, debug=debug)


cli.add_command(config)
