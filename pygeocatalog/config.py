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

"""Configuration loading and validation"""

import json
import logging
import os
from pathlib import Path
from typing import Union

import click
from jsonschema import validate as jsonschema_validate
from jsonschema.exceptions import ValidationError
import yaml

from pygeocatalog.util import THISDIR, to_json, yaml_load

LOGGER = logging.getLogger(__name__)

SCHEMA_FILE = THISDIR / 'schemas' / 'config' / 'pygeocatalog-config-0.x.yml'


def get_config(raw: bool = False,
               config_path: Union[str, Path, None] = None) -> dict:
    """
    Get pygeocatalog configuration

    :param raw: `bool` of whether to skip environment variable
                interpolation
    :param config_path: optional path to configuration file, defaults to
                        the `PYGEOCATALOG_CONFIG` environment variable

    :returns: `dict` of pygeocatalog configuration
    """

    config_path = config_path or os.environ.get('PYGEOCATALOG_CONFIG')
    if not config_path:
        raise RuntimeError('PYGEOCATALOG_CONFIG environment variable not set')

    LOGGER.debug(f'Loading configuration from {config_path}')
    with Path(config_path).open(encoding='utf8') as fh:
        return yaml.safe_load(fh) if raw else yaml_load(fh)


def load_schema() -> dict:
    """
    Read the configuration JSON schema

    :returns: `dict` of JSON schema
    """

    with SCHEMA_FILE.open(encoding='utf8') as fh:
        return yaml_load(fh)


def validate_config(instance_dict: dict) -> bool:
    """
    Validate pygeocatalog configuration against the configuration schema

    :param instance_dict: dict of configuration

    :raises `jsonschema.exceptions.ValidationError`: if invalid
    :returns: `bool` of validation
    """

    jsonschema_validate(json.loads(to_json(instance_dict)), load_schema())

    return True


@click.group()
def config():
    """Configuration management"""
    pass


@config.command()
@click.option('--config', '-c', 'config_file', required=True,
              type=click.Path(exists=True, dir_okay=False),
              help='configuration file')
def validate(config_file):
    """Validate configuration"""

    click.echo(f'Validating {config_file}')
    try:
        validate_config(get_config(config_path=config_file))
    except ValidationError as err:
        raise click.ClickException(f'Invalid configuration: {err.message}')

    click.echo('Valid configuration')
