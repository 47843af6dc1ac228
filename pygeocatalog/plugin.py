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

"""Plugin loader for catalog backends and datastore drivers"""

import importlib
import logging
from typing import Any

LOGGER = logging.getLogger(__name__)

#: Core plugins, by plugin type and short name
PLUGINS = {
    'catalog': {
        'TinyDB': 'pygeocatalog.catalog.tinydb_.TinyDBCatalog'
    },
    'datastore': {
        'GeoJSON': 'pygeocatalog.datastore.geojson.GeoJSONDataAccess',
        'PostgreSQL': 'pygeocatalog.datastore.sql.PostgreSQLDataStore',
        'SQLite': 'pygeocatalog.datastore.sql.SQLiteDataStore'
    }
}


def get_plugin_class_path(plugin_type: str, name: str) -> str:
    """
    Resolve the dotted class path of a plugin

    :param plugin_type: type of plugin (catalog, datastore)
    :param name: short name of a core plugin, or dotted class path

    :raises `InvalidPluginError`: if the type or name is unknown
    :returns: `str` of dotted class path
    """

    try:
        plugins = PLUGINS[plugin_type]
    except KeyError:
        msg = f'Plugin type {plugin_type} not found'
        LOGGER.error(msg)
        raise InvalidPluginError(msg)

    if '.' in name:
        return name

    try:
        return plugins[name]
    except KeyError:
        msg = f'{plugin_type} plugin {name} not found (available: ' \
              f"{', '.join(sorted(plugins))})"
        LOGGER.error(msg)
        raise InvalidPluginError(msg)


def load_plugin(plugin_type: str, plugin_def: dict) -> Any:
    """
    loads plugin by name

    :param plugin_type: type of plugin (catalog, datastore)
    :param plugin_def: plugin definition, `name` selecting the plugin

    :returns: plugin object
    """

    class_path = get_plugin_class_path(plugin_type, plugin_def['name'])
    packagename, classname = class_path.rsplit('.', 1)

    LOGGER.debug(f'Loading {plugin_type} plugin {classname} '
                 f'from {packagename}')

    try:
        class_ = getattr(importlib.import_module(packagename), classname)
    except (ImportError, AttributeError) as err:
        msg = f'Could not load plugin {class_path}: {err}'
        LOGGER.error(msg)
        raise InvalidPluginError(msg)

    return class_(plugin_def)


class InvalidPluginError(Exception):
    """Invalid plugin"""
    pass
