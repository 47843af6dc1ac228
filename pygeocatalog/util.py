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

"""Generic util functions used in the code"""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
import json
import logging
import os
from pathlib import Path, PurePath
import re
from typing import Any, IO, Union
import uuid

import yaml


LOGGER = logging.getLogger(__name__)

THISDIR = Path(__file__).parent.resolve()

#: `${VAR}` or `${VAR:-default}` placeholders in configuration values
ENV_VAR_PATTERN = re.compile(r'\$\{(?P<name>\w+)(?::-(?P<default>[^}]*))?\}')

TRUE_VALUES = ('yes', 'true', 't', '1', 'on')


def get_typed_value(value: str) -> Union[bool, float, int, str]:
    """
    Derive true type from data value

    Values with leading zeros (e.g. `0123`) are kept as strings.

    :param value: value

    :returns: value as a native Python data type
    """

    if value.lower() in ('true', 'false'):
        return str2bool(value)

    if '.' in value:
        try:
            return float(value)
        except ValueError:
            return value

    if len(value) > 1 and value.startswith('0'):
        return value

    try:
        return int(value)
    except ValueError:
        return value


def _interpolate_env(value: str) -> str:
    """
    Replace environment variable placeholders in a string

    :param value: raw configuration value

    :raises `EnvironmentError`: if a variable is unset and has no default
    :returns: interpolated string
    """

    def replace(match: re.Match) -> str:
        name = match.group('name')
        env_value = os.getenv(name)
        if env_value is not None:
            return env_value
        if match.group('default') is not None:
            return match.group('default')
        raise EnvironmentError(
            f'Could not find the {name!r} environment variable')

    return ENV_VAR_PATTERN.sub(replace, value)


def yaml_load(fh: IO) -> dict:
    """
    serializes a YAML files into a pyyaml object, interpolating
    environment variables in plain scalar values

    :param fh: file handle

    :returns: `dict` representation of YAML
    """

    class EnvVarLoader(yaml.SafeLoader):
        pass

    def env_constructor(loader, node):
        return get_typed_value(_interpolate_env(node.value))

    EnvVarLoader.add_implicit_resolver(
        '!env', re.compile(rf'.*{ENV_VAR_PATTERN.pattern}'), None)
    EnvVarLoader.add_constructor('!env', env_constructor)

    return yaml.load(fh, Loader=EnvVarLoader)


def str2bool(value: Union[bool, str, None]) -> bool:
    """
    helper function to return Python boolean

    :param value: value to be evaluated

    :returns: `bool` of whether the value is boolean-ish
    """

    if isinstance(value, bool):
        return value

    return str(value or '').strip().lower() in TRUE_VALUES


def to_json(dict_: dict, pretty: bool = False) -> str:
    """
    Serialize dict to json

    :param dict_: `dict` of JSON representation
    :param pretty: `bool` of whether to prettify JSON (default is `False`)

    :returns: JSON string representation
    """

    return json.dumps(dict_, default=json_serial,
                      indent=4 if pretty else None, separators=(',', ':'))


def json_serial(obj: Any) -> Union[str, float]:
    """
    helper function to convert types unknown to the `json` module

    :param obj: `object` to be evaluated

    :returns: JSON serializable value
    """

    if isinstance(obj, (date, datetime, time)):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return float(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (PurePath, uuid.UUID)):
        return str(obj)

    msg = f'{obj} type {type(obj)} not serializable'
    LOGGER.error(msg)
    raise TypeError(msg)


def url_join(*parts: str) -> str:
    """
    Join a URL from a base URL and path fragments, ignoring empty
    fragments and surrounding slashes

    :param parts: list of parts to join

    :returns: str of resulting URL
    """

    return '/'.join(p.strip().strip('/') for p in parts).rstrip('/')


def get_base_url(config: dict) -> str:
    """
    Get the URL the REST resources are published under

    :param config: configuration `dict`

    :returns: server URL joined with `server.root_path` (default `rest`)
    """

    return url_join(config['server']['url'],
                    config['server'].get('root_path', 'rest'))
