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

import os
from copy import deepcopy

from click.testing import CliRunner
from jsonschema.exceptions import ValidationError
import pytest

from pygeocatalog import cli
from pygeocatalog.config import get_config, validate_config
from pygeocatalog.util import yaml_load

from tests.util import get_test_file_path


@pytest.fixture()
def config():
    with open(get_test_file_path('pygeocatalog-test-config.yml')) as fh:
        return yaml_load(fh)


def test_config_envvars():
    os.environ['PYGEOCATALOG_PORT'] = '5001'

    with open(get_test_file_path('pygeocatalog-test-config-envvars.yml')) as fh:  # noqa
        config = yaml_load(fh)

    assert isinstance(config, dict)
    assert config['server']['bind']['port'] == 5001
    assert config['server']['url'] == 'http://localhost:5001'
    assert config['server']['root_path'] == 'rest'
    assert config['catalog']['connection'] == ':memory:'

    os.environ.pop('PYGEOCATALOG_PORT')

    with pytest.raises(EnvironmentError):
        with open(get_test_file_path('pygeocatalog-test-config-envvars.yml')) as fh:  # noqa
            yaml_load(fh)


def test_validate_config(config):
    assert validate_config(config)

    with pytest.raises(ValidationError):
        validate_config({'foo': 'bar'})

    for section in ('server', 'logging', 'catalog'):
        cfg_copy = deepcopy(config)
        cfg_copy.pop(section)
        with pytest.raises(ValidationError):
            validate_config(cfg_copy)

    cfg_copy = deepcopy(config)
    cfg_copy['logging']['level'] = 'VERBOSE'
    with pytest.raises(ValidationError):
        validate_config(cfg_copy)

    cfg_copy = deepcopy(config)
    cfg_copy['workspaces']['topp']['datastores']['bad name'] = {
        'type': 'SQLite', 'data': 'x.db'}
    with pytest.raises(ValidationError):
        validate_config(cfg_copy)

    cfg_copy = deepcopy(config)
    cfg_copy['workspaces']['topp']['datastores']['states_db'].pop('data')
    with pytest.raises(ValidationError):
        validate_config(cfg_copy)


def test_get_config(monkeypatch):
    path = get_test_file_path('pygeocatalog-test-config.yml')

    config = get_config(config_path=path)
    assert config['catalog']['name'] == 'TinyDB'

    monkeypatch.setenv('PYGEOCATALOG_CONFIG', path)
    assert get_config() == config

    monkeypatch.delenv('PYGEOCATALOG_CONFIG')
    with pytest.raises(RuntimeError):
        get_config()


def test_get_config_raw(monkeypatch):
    monkeypatch.delenv('PYGEOCATALOG_PORT', raising=False)
    path = get_test_file_path('pygeocatalog-test-config-envvars.yml')

    config = get_config(raw=True, config_path=path)
    assert config['server']['bind']['port'] == '${PYGEOCATALOG_PORT}'


def test_validate_command():
    runner = CliRunner()

    result = runner.invoke(cli, ['config', 'validate', '-c',
                                 get_test_file_path(
                                     'pygeocatalog-test-config.yml')])
    assert result.exit_code == 0
    assert 'Valid configuration' in result.output

    result = runner.invoke(cli, ['config', 'validate'])
    assert result.exit_code != 0
