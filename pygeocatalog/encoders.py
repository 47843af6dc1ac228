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

"""JSON encoding of catalog objects

Each catalog object type registers an `EncoderCallback` which resolves
the objects it references, renders it as a reference (name and link)
and adds computed fields to its full encoding.

Workspace, namespace and datastore links follow the REST layout of the
catalog; this service only serves the feature type resources below them.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, List, Optional, Type

from pygeocatalog.models.catalog import (
    CatalogModel, DataStoreInfo, FeatureTypeInfo, NamespaceInfo,
    StoreReference, WorkspaceInfo
)
from pygeocatalog.util import url_join

LOGGER = logging.getLogger(__name__)

#: attribute fields rendered only when not encoding a GET response
ATTRIBUTE_DETAILS = ('length',)


@dataclass
class EncodingContext:
    """Request scoped values needed to encode catalog objects"""

    catalog: Any
    base_url: str
    method: str = 'GET'
    workspace: Optional[str] = None
    datastore: Optional[str] = None
    featuretype: Optional[str] = None

    def link(self, *parts: str) -> str:
        return url_join(self.base_url, *parts)


class EncoderCallback:
    """Encoding hooks of a catalog object type"""

    root_name = None

    def resolve_referenced_object(self, context: EncodingContext,
                                  reference: Any) -> Optional[CatalogModel]:
        """
        Look up the object a reference points to

        :param context: `EncodingContext`
        :param reference: reference value as held by the referencing object

        :returns: catalog object, or `None` if it cannot be resolved
        """

        return None

    def post_encode_reference(self, context: EncodingContext,
                              obj: CatalogModel) -> dict:
        """
        Render an object referenced from another one

        :param context: `EncodingContext`
        :param obj: referenced catalog object

        :returns: `dict` with the name and link of the object
        """

        return {'name': getattr(obj, 'name', None)}

    def post_encode_extra_fields(self, context: EncodingContext,
                                 obj: CatalogModel, encoded: dict) -> None:
        """
        Add computed fields to an encoded object

        :param context: `EncodingContext`
        :param obj: catalog object
        :param encoded: `dict` encoding of the object, updated in place

        :returns: `None`
        """

        pass


class WorkspaceEncoder(EncoderCallback):
    root_name = 'workspace'

    def resolve_referenced_object(self, context, reference):
        return context.catalog.get_workspace_by_name(reference)

    def post_encode_reference(self, context, obj):
        return {
            'name': obj.name,
            'href': context.link('workspaces', f'{obj.name}.json')
        }


class NamespaceEncoder(EncoderCallback):
    root_name = 'namespace'

    def resolve_referenced_object(self, context, reference):
        return context.catalog.get_namespace_by_prefix(reference)

    def post_encode_reference(self, context, obj):
        return {
            'name': obj.prefix,
            'href': context.link('namespaces', f'{obj.prefix}.json')
        }


class DataStoreEncoder(EncoderCallback):
    root_name = 'dataStore'

    def resolve_referenced_object(self, context, reference):
        workspace, name = reference
        return context.catalog.get_datastore_by_name(workspace, name)

    def post_encode_reference(self, context, obj):
        return {
            'name': obj.key,
            'href': context.link('workspaces', obj.workspace,
                                 'datastores', f'{obj.name}.json')
        }


class FeatureTypeEncoder(EncoderCallback):
    root_name = 'featureType'

    def post_encode_reference(self, context, obj):
        parts = ['workspaces', obj.namespace]
        if context.datastore is not None:
            parts.extend(['datastores', context.datastore])
        return {
            'name': obj.name,
            'href': context.link(*parts, 'featuretypes', f'{obj.name}.json')
        }

    def post_encode_extra_fields(self, context, obj, encoded):
        attributes = context.catalog.resource_pool.get_attributes(obj)

        exclude = set(ATTRIBUTE_DETAILS) if context.method == 'GET' else set()
        encoded['attributes'] = {
            'attribute': [
                a.model_dump(by_alias=True, mode='json', exclude_none=True,
                             exclude=exclude)
                for a in attributes
            ]
        }


ENCODERS: Dict[Type[CatalogModel], EncoderCallback] = {}


def register_encoder(model: Type[CatalogModel],
                     callback: EncoderCallback) -> None:
    """
    Register the encoding hooks of a catalog object type

    :param model: catalog model class
    :param callback: `EncoderCallback` instance

    :returns: `None`
    """

    LOGGER.debug(f'Registering {type(callback).__name__} for '
                 f'{model.__name__}')
    ENCODERS[model] = callback


register_encoder(WorkspaceInfo, WorkspaceEncoder())
register_encoder(NamespaceInfo, NamespaceEncoder())
register_encoder(DataStoreInfo, DataStoreEncoder())
register_encoder(FeatureTypeInfo, FeatureTypeEncoder())


def _reference(context: EncodingContext, model: Type[CatalogModel],
               reference: Any, fallback: str) -> dict:
    callback = ENCODERS[model]
    obj = callback.resolve_referenced_object(context, reference)
    if obj is None:
        LOGGER.warning(f'Unresolved {model.__name__} reference {fallback}')
        return {'name': fallback}
    return callback.post_encode_reference(context, obj)


def encode_feature_type(context: EncodingContext,
                        featuretype: FeatureTypeInfo) -> dict:
    """
    Encode a feature type with references to its namespace and store

    :param context: `EncodingContext`
    :param featuretype: `FeatureTypeInfo`

    :returns: `dict` of `{"featureType": {...}}`
    """

    callback = ENCODERS[FeatureTypeInfo]

    encoded = featuretype.model_dump(
        by_alias=True, mode='json', exclude_none=True,
        exclude={'attributes', 'namespace', 'store'})

    if featuretype.namespace:
        encoded['namespace'] = _reference(
            context, NamespaceInfo, featuretype.namespace,
            featuretype.namespace)

    if featuretype.store is not None:
        ref = featuretype.store
        workspace = ref.workspace or featuretype.namespace
        encoded['store'] = _reference(
            context, DataStoreInfo, (workspace, ref.name),
            str(StoreReference(workspace=workspace, name=ref.name)))
        encoded['store']['@class'] = 'dataStore'

    encoded['keywords'] = {'string': featuretype.keywords}
    encoded['metadata'] = {
        'entry': [{'@key': key, '$': value}
                  for key, value in featuretype.metadata.items()]
    }

    callback.post_encode_extra_fields(context, featuretype, encoded)

    return {callback.root_name: encoded}


def encode_feature_type_list(context: EncodingContext,
                             featuretypes: List[FeatureTypeInfo]) -> dict:
    """
    Encode a list of feature types as references

    :param context: `EncodingContext`
    :param featuretypes: `list` of `FeatureTypeInfo`

    :returns: `dict` of `{"featureTypes": {"featureType": [...]}}`
    """

    callback = ENCODERS[FeatureTypeInfo]

    return {
        'featureTypes': {
            'featureType': [callback.post_encode_reference(context, ft)
                            for ft in featuretypes]
        }
    }


def encode_name_list(names: List[str]) -> dict:
    return {'list': {'string': list(names)}}
