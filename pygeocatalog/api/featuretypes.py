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

"""Feature type resources of workspaces and datastores"""

from http import HTTPStatus
import logging
from typing import Optional, Tuple

from pydantic import ValidationError

from pygeocatalog.api import API, APIRequest, FORMAT_TYPES, F_JSON
from pygeocatalog.catalog.builder import CatalogBuilder
from pygeocatalog.datastore.base import DataAccessError
from pygeocatalog.encoders import (
    EncodingContext, encode_feature_type, encode_feature_type_list,
    encode_name_list
)
from pygeocatalog.error import (
    BadRequestError, ForbiddenError, GenericError, NotFoundError
)
from pygeocatalog.models.catalog import (
    DataStoreInfo, FeatureTypeInfo, StoreReference
)
from pygeocatalog.util import to_json, url_join

LOGGER = logging.getLogger(__name__)

LIST_CONFIGURED = 'configured'
LIST_AVAILABLE = 'available'
LIST_AVAILABLE_WITH_GEOM = 'available_with_geom'

LIST_MODES = (LIST_CONFIGURED, LIST_AVAILABLE, LIST_AVAILABLE_WITH_GEOM)


def get_existing_datastore(catalog, workspace: str,
                           datastore: Optional[str]) -> DataStoreInfo:
    """
    Resolve the datastore of a request path

    :param catalog: catalog object
    :param workspace: workspace name
    :param datastore: datastore name, default store of the workspace
                      if `None`

    :raises `NotFoundError`: if the datastore does not exist
    :returns: `DataStoreInfo`
    """

    store = catalog.get_datastore_by_name(workspace, datastore)
    if store is None:
        raise NotFoundError(f'No such data store: {workspace},{datastore}')
    return store


def get_existing_feature_type(catalog, workspace: str,
                              datastore: Optional[str],
                              featuretype: str) -> FeatureTypeInfo:
    """
    Resolve the feature type of a request path

    :param catalog: catalog object
    :param workspace: workspace name
    :param datastore: datastore name, default store of the workspace
                      if `None`
    :param featuretype: feature type name

    :raises `NotFoundError`: if the datastore or feature type
                             does not exist
    :returns: `FeatureTypeInfo`
    """

    store = get_existing_datastore(catalog, workspace, datastore)
    ft = catalog.get_feature_type_by_datastore(store, featuretype)

    if ft is None and datastore is None:
        raise NotFoundError(
            f'No such feature type: {workspace},{featuretype}')
    elif ft is None:
        raise NotFoundError(
            f'No such feature type: {workspace},{datastore},{featuretype}')

    return ft


def parse_feature_type(request: APIRequest) -> FeatureTypeInfo:
    """
    Decode the feature type sent in a request body

    The record may be sent bare or wrapped as `{"featureType": {...}}`.

    :param request: A request object

    :raises `BadRequestError`: if the body is not a valid feature type
    :returns: `FeatureTypeInfo` (only supplied fields are set)
    """

    try:
        data = request.get_json()
    except (UnicodeDecodeError, ValueError) as err:
        LOGGER.debug(err)
        raise BadRequestError('Invalid JSON in request body')

    if isinstance(data, dict) and 'featureType' in data:
        data = data['featureType']

    if not isinstance(data, dict):
        raise BadRequestError('Feature type must be a JSON object')

    try:
        return FeatureTypeInfo.model_validate(data)
    except ValidationError as err:
        LOGGER.debug(err)
        msg = '; '.join(
            f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
            for e in err.errors())
        raise BadRequestError(f'Invalid feature type: {msg}')


def _check_body(api: API, request: APIRequest,
                headers: dict) -> Optional[Tuple[dict, int, str]]:
    """error response for a missing or non JSON body, `None` if valid"""

    if not request.data:
        msg = 'No data found'
        return api.get_exception(
            HTTPStatus.BAD_REQUEST, headers, request.format,
            'MissingParameterValue', msg)

    content_type = request.content_type
    if content_type is not None and content_type not in (
            FORMAT_TYPES[F_JSON], 'text/json'):
        msg = f'Unsupported content type: {content_type}'
        return api.get_exception(
            HTTPStatus.UNSUPPORTED_MEDIA_TYPE, headers, request.format,
            'InvalidParameterValue', msg)

    return None


def get_feature_types(api: API, request: APIRequest, workspace: str,
                      datastore: Optional[str] = None
                      ) -> Tuple[dict, int, str]:
    """
    List the feature types of a workspace or datastore

    :param request: A request object
    :param workspace: workspace name
    :param datastore: datastore name

    :returns: tuple of headers, status code, content
    """

    if not request.is_valid():
        return api.get_format_exception(request)

    headers = request.get_response_headers()

    list_ = (request.params.get('list') or LIST_CONFIGURED).lower()
    if list_ not in LIST_MODES:
        msg = f"Invalid list value: {list_} (expected one of " \
              f"{', '.join(LIST_MODES)})"
        return api.get_exception(
            HTTPStatus.BAD_REQUEST, headers, request.format,
            'InvalidParameterValue', msg)

    catalog = api.catalog

    try:
        if list_ == LIST_CONFIGURED:
            if catalog.get_workspace_by_name(workspace) is None:
                raise NotFoundError(f'No such workspace: {workspace}')

            if datastore is not None:
                store = get_existing_datastore(catalog, workspace, datastore)
                featuretypes = catalog.get_feature_types_by_datastore(store)
            else:
                featuretypes = catalog.get_feature_types_by_namespace(
                    workspace)

            context = EncodingContext(catalog, api.base_url, request.method,
                                      workspace, datastore)
            content = encode_feature_type_list(context, featuretypes)
        else:
            store = get_existing_datastore(catalog, workspace, datastore)
            content = encode_name_list(get_available_type_names(
                catalog, store, list_ == LIST_AVAILABLE_WITH_GEOM))
    except GenericError as err:
        return api.get_error_response(request, headers, err)

    return headers, HTTPStatus.OK, to_json(content, api.pretty_print)


def get_available_type_names(catalog, store: DataStoreInfo,
                             with_geometry: bool = False) -> list:
    """
    List the native types of a datastore not yet published as
    feature types

    :param catalog: catalog object
    :param store: `DataStoreInfo`
    :param with_geometry: whether to skip types without a geometry

    :raises `NotFoundError`: if the type names cannot be listed
    :returns: `list` of native type names
    """

    configured = set()
    for ft in catalog.get_feature_types_by_datastore(store):
        configured.update(name for name in (ft.name, ft.native_name) if name)

    try:
        data_access = catalog.resource_pool.get_data_access(store)
        type_names = data_access.get_type_names()
    except DataAccessError as err:
        LOGGER.error(err)
        raise NotFoundError(f'Could not load datastore: {store.name}')

    available = []
    for type_name in type_names:
        if type_name in configured:
            continue

        if with_geometry:
            try:
                schema = data_access.get_schema(type_name)
            except DataAccessError as err:
                LOGGER.warning(
                    f'Unable to load schema for feature type {type_name}: '
                    f'{err}')
            else:
                if schema.geometry_descriptor is None:
                    continue

        available.append(type_name)

    return available


def post_feature_type(api: API, request: APIRequest, workspace: str,
                      datastore: Optional[str] = None
                      ) -> Tuple[dict, int, str]:
    """
    Publish a new feature type, creating its native schema if needed

    :param request: A request object
    :param workspace: workspace name
    :param datastore: datastore name

    :returns: tuple of headers, status code, content
    """

    if not request.is_valid():
        return api.get_format_exception(request)

    headers = request.get_response_headers()

    error = _check_body(api, request, headers)
    if error is not None:
        return error

    catalog = api.catalog

    try:
        store = get_existing_datastore(catalog, workspace, datastore)
        ft = parse_feature_type(request)

        # ensure the store matches up
        if ft.store is not None:
            if (ft.store.name != store.name or
                    ft.store.workspace not in (None, store.workspace)):
                raise ForbiddenError(
                    f'Expected datastore {store.name} but client '
                    f'specified {ft.store}')
        else:
            ft.store = StoreReference.of(store)

        # ensure workspace/namespace matches up
        if ft.namespace is not None:
            if ft.namespace != workspace:
                raise ForbiddenError(
                    f'Expected workspace {workspace} but client '
                    f'specified {ft.namespace}')
        else:
            namespace = catalog.get_namespace_by_prefix(workspace)
            ft.namespace = namespace.prefix if namespace else workspace

        ft.enabled = True

        data_access = catalog.resource_pool.get_data_access(store)
        if data_access.supports_schema_creation and not ft.is_virtual:
            create_native_schema(catalog, data_access, ft)

        builder = CatalogBuilder(catalog, store)
        builder.init_feature_type(ft)

        try:
            source = catalog.resource_pool.get_data_access(
                store).get_feature_source(ft.native_name)
            builder.setup_metadata(ft, source)
        except Exception as err:
            LOGGER.warning(
                f'Metadata lookup failed for {ft.qualified_name}: {err}')

        if ft.store is None:
            ft.store = StoreReference.of(store)
        if ft.namespace != workspace:
            LOGGER.warning(
                f'Namespace {ft.namespace} does not match workspace '
                f'{workspace}, overriding')
            ft.namespace = workspace

        catalog.validate(ft, True).throw_if_invalid()
        catalog.add(ft)

        layer = builder.build_layer(ft)
        result = catalog.validate(layer, True)
        if not result.is_valid:
            catalog.remove(ft)
            result.throw_if_invalid()
        catalog.add(layer)
    except GenericError as err:
        return api.get_error_response(request, headers, err)

    LOGGER.info(f'POST feature type {store.name},{ft.name}')

    headers['Location'] = url_join(
        api.base_url, 'workspaces', workspace, 'datastores', store.name,
        'featuretypes', ft.name)

    return headers, HTTPStatus.CREATED, ''


def create_native_schema(catalog, data_access,
                         featuretype: FeatureTypeInfo) -> None:
    """
    Create the native schema of a new feature type unless it exists

    :param catalog: catalog object
    :param data_access: `BaseDataAccess` of the store
    :param featuretype: `FeatureTypeInfo` from the client, updated in place

    :returns: `None`
    """

    type_name = featuretype.native_name or featuretype.name
    type_names = data_access.get_type_names()

    if type_name in type_names:
        LOGGER.debug(f'Native type {type_name} exists')
        return

    schema = CatalogBuilder(catalog).build_schema(
        featuretype, data_access.reserved_attribute_names)
    data_access.create_schema(schema)

    # attributes are recomputed from the created schema
    featuretype.attributes = []

    type_names = data_access.get_type_names()
    if (featuretype.name and featuretype.name not in type_names and
            featuretype.name.upper() in type_names):
        featuretype.native_name = featuretype.name.lower()


def get_feature_type(api: API, request: APIRequest, workspace: str,
                     datastore: Optional[str],
                     featuretype: str) -> Tuple[dict, int, str]:
    """
    Get a feature type

    :param request: A request object
    :param workspace: workspace name
    :param datastore: datastore name
    :param featuretype: feature type name

    :returns: tuple of headers, status code, content
    """

    if not request.is_valid():
        return api.get_format_exception(request)

    headers = request.get_response_headers()
    catalog = api.catalog

    try:
        ft = get_existing_feature_type(catalog, workspace, datastore,
                                       featuretype)
    except NotFoundError as err:
        if request.get_param_bool('quietOnNotFound'):
            LOGGER.debug(err)
            return headers, HTTPStatus.NOT_FOUND, ''
        return api.get_error_response(request, headers, err)

    context = EncodingContext(catalog, api.base_url, request.method,
                              workspace, datastore, featuretype)
    try:
        content = encode_feature_type(context, ft)
    except GenericError as err:
        return api.get_error_response(request, headers, err)

    return headers, HTTPStatus.OK, to_json(content, api.pretty_print)


def put_feature_type(api: API, request: APIRequest, workspace: str,
                     datastore: Optional[str],
                     featuretype: str) -> Tuple[dict, int, str]:
    """
    Update a feature type

    :param request: A request object
    :param workspace: workspace name
    :param datastore: datastore name
    :param featuretype: feature type name

    :returns: tuple of headers, status code, content
    """

    if not request.is_valid():
        return api.get_format_exception(request)

    headers = request.get_response_headers()

    error = _check_body(api, request, headers)
    if error is not None:
        return error

    catalog = api.catalog

    try:
        ft = get_existing_feature_type(catalog, workspace, datastore,
                                       featuretype)
        update = parse_feature_type(request)

        store = catalog.resource_pool.get_store(ft)
        parameters_check = dict(store.connection_parameters)

        builder = CatalogBuilder(catalog, store)
        calculated = builder.calculate_optional_fields(
            update, ft, request.params.get('recalculate'))
        ft = builder.update_feature_type(ft, update, calculated)

        catalog.validate(ft, False).throw_if_invalid()
        catalog.save(ft)
        catalog.resource_pool.clear(ft)

        store = catalog.resource_pool.get_store(ft)
    except GenericError as err:
        return api.get_error_response(request, headers, err)

    if not ft.is_virtual and store.connection_parameters == parameters_check:
        LOGGER.info(f'PUT feature type {datastore},{featuretype} '
                    'updated metadata only')
    else:
        LOGGER.info(f'PUT feature type {datastore},{featuretype} '
                    'updated metadata and data access')
        catalog.resource_pool.clear(store)

    return headers, HTTPStatus.OK, ''


def delete_feature_type(api: API, request: APIRequest, workspace: str,
                        datastore: Optional[str],
                        featuretype: str) -> Tuple[dict, int, str]:
    """
    Delete a feature type

    :param request: A request object
    :param workspace: workspace name
    :param datastore: datastore name
    :param featuretype: feature type name

    :returns: tuple of headers, status code, content
    """

    if not request.is_valid():
        return api.get_format_exception(request)

    headers = request.get_response_headers()
    catalog = api.catalog

    try:
        ft = get_existing_feature_type(catalog, workspace, datastore,
                                       featuretype)
        layers = catalog.get_layers(ft)

        if request.get_param_bool('recurse'):
            for layer in layers:
                catalog.remove(layer)
                LOGGER.info(f'DELETE layer {layer.name}')
        elif layers:
            raise ForbiddenError('feature type referenced by layer(s)')

        catalog.remove(ft)
        catalog.resource_pool.clear(ft)
    except GenericError as err:
        return api.get_error_response(request, headers, err)

    LOGGER.info(f'DELETE feature type {datastore},{featuretype}')

    return headers, HTTPStatus.OK, ''
