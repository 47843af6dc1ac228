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
from typing import Dict

from pygeocatalog.catalog.base import BaseCatalog
from pygeocatalog.models.catalog import (
    DataStoreInfo, NamespaceInfo, WorkspaceInfo
)
from pygeocatalog.plugin import load_plugin

LOGGER = logging.getLogger(__name__)

DEFAULT_CATALOG = {
    'name': 'TinyDB',
    'connection': ':memory:'
}


def get_catalog(config: Dict) -> BaseCatalog:
    """Instantiate the catalog from the supplied configuration.

    :param config: pygeocatalog configuration

    :returns: The pygeocatalog catalog object
    """

    catalog_def = dict(config.get('catalog') or DEFAULT_CATALOG)
    catalog = load_plugin('catalog', catalog_def)
    LOGGER.info(f'Using catalog {catalog!r}')

    bootstrap_catalog(catalog, config.get('workspaces') or {})
    return catalog


def bootstrap_catalog(catalog: BaseCatalog, workspaces: Dict) -> None:
    """
    Register the workspaces, namespaces and datastores declared in the
    configuration which are not yet in the catalog

    :param catalog: catalog object
    :param workspaces: `dict` of workspace definitions keyed by name

    :returns: `None`
    """

    for ws_name, ws_def in workspaces.items():
        ws_def = ws_def or {}

        if catalog.get_workspace_by_name(ws_name) is None:
            LOGGER.debug(f'Adding workspace {ws_name}')
            workspace = WorkspaceInfo(name=ws_name,
                                      isolated=ws_def.get('isolated', False))
            catalog.validate(workspace, True).throw_if_invalid()
            catalog.add(workspace)

        if catalog.get_namespace_by_prefix(ws_name) is None:
            namespace = NamespaceInfo(
                prefix=ws_name, uri=ws_def.get('uri', ws_name),
                isolated=ws_def.get('isolated', False))
            catalog.validate(namespace, True).throw_if_invalid()
            catalog.add(namespace)

        if ws_def.get('default') or catalog.get_default_workspace() is None:
            catalog.set_default('workspace', ws_name)

        datastores = ws_def.get('datastores') or {}
        for ds_name, ds_def in datastores.items():
            if catalog.get_datastore_by_name(ws_name, ds_name) is None:
                LOGGER.debug(f'Adding datastore {ws_name}:{ds_name}')
                connection_parameters = {'data': ds_def['data']}
                if ds_def.get('options'):
                    connection_parameters['options'] = ds_def['options']

                store = DataStoreInfo(
                    name=ds_name, workspace=ws_name, type=ds_def['type'],
                    description=ds_def.get('description'),
                    enabled=ds_def.get('enabled', True),
                    connection_parameters=connection_parameters)
                catalog.validate(store, True).throw_if_invalid()
                catalog.add(store)

            if (ds_def.get('default') or
                    catalog.get_default('datastore', ws_name) is None):
                catalog.set_default('datastore', ds_name, ws_name)
