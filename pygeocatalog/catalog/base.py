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
import re
from typing import List, Optional, Type, Union

from pygeocatalog.catalog.pool import ResourcePool
from pygeocatalog.error import ValidationFailure
from pygeocatalog.models.catalog import (
    CatalogModel, DataStoreInfo, FeatureTypeInfo, LayerInfo, NamespaceInfo,
    WorkspaceInfo
)

LOGGER = logging.getLogger(__name__)

INVALID_NAME_CHARS = re.compile(r'[\s:/]')

CatalogObject = Union[WorkspaceInfo, NamespaceInfo, DataStoreInfo,
                      FeatureTypeInfo, LayerInfo]


class ValidationResult:
    """Outcome of validating a catalog object"""

    def __init__(self, errors: List[str] = None):
        self.errors = list(errors or [])

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def throw_if_invalid(self) -> None:
        """
        Raise the collected violations

        :raises `ValidationFailure`: if any violation was recorded

        :returns: `None`
        """

        if self.errors:
            raise ValidationFailure(self.errors)

    def __repr__(self):
        return f'<ValidationResult> {self.errors}'


class BaseCatalog:
    """generic Catalog ABC"""

    def __init__(self, catalog_def: dict):
        """
        Initialize object

        :param catalog_def: catalog definition

        :returns: `pygeocatalog.catalog.base.BaseCatalog`
        """

        self.name = catalog_def['name']
        self.connection = catalog_def.get('connection')
        self.resource_pool = ResourcePool(self)

    def find(self, model: Type[CatalogModel], **criteria) -> list:
        """
        Query stored objects of a given type

        :param model: catalog model class
        :param criteria: field values the objects must match

        :returns: `list` of model instances
        """

        raise NotImplementedError()

    def add(self, obj: CatalogObject) -> None:
        """
        Add an object to the catalog

        :param obj: catalog object

        :returns: `None`
        """

        raise NotImplementedError()

    def save(self, obj: CatalogObject) -> None:
        """
        Persist changes to an existing object

        :param obj: catalog object

        :raises `NotFoundError`: if the object is not in the catalog
        :returns: `None`
        """

        raise NotImplementedError()

    def remove(self, obj: CatalogObject) -> None:
        """
        Remove an object from the catalog

        :param obj: catalog object

        :returns: `None`
        """

        raise NotImplementedError()

    def get_default(self, kind: str, workspace: str = None) -> Optional[str]:
        """
        Get the name of a default object

        :param kind: `workspace` or `datastore`
        :param workspace: workspace name (datastores only)

        :returns: name of the default object, if set
        """

        raise NotImplementedError()

    def set_default(self, kind: str, name: str,
                    workspace: str = None) -> None:
        """
        Flag an object as default

        :param kind: `workspace` or `datastore`
        :param name: name of the default object
        :param workspace: workspace name (datastores only)

        :returns: `None`
        """

        raise NotImplementedError()

    def _find_one(self, model: Type[CatalogModel], **criteria):
        results = self.find(model, **criteria)
        return results[0] if results else None

    def get_workspaces(self) -> List[WorkspaceInfo]:
        return self.find(WorkspaceInfo)

    def get_workspace_by_name(self, name: str) -> Optional[WorkspaceInfo]:
        return self._find_one(WorkspaceInfo, name=name)

    def get_default_workspace(self) -> Optional[WorkspaceInfo]:
        name = self.get_default('workspace')
        return self.get_workspace_by_name(name) if name else None

    def set_default_workspace(self, workspace: WorkspaceInfo) -> None:
        self.set_default('workspace', workspace.name)

    def get_namespace_by_prefix(self, prefix: str) -> Optional[NamespaceInfo]:
        return self._find_one(NamespaceInfo, prefix=prefix)

    def get_datastores_by_workspace(self, workspace: str
                                    ) -> List[DataStoreInfo]:
        return self.find(DataStoreInfo, workspace=workspace)

    def get_datastore_by_name(self, workspace: str,
                              name: str = None) -> Optional[DataStoreInfo]:
        """
        Get a datastore of a workspace

        :param workspace: workspace name
        :param name: datastore name, the default datastore of the
                     workspace is returned if `None`

        :returns: `DataStoreInfo`, or `None` if not found
        """

        if name is None:
            return self.get_default_datastore(workspace)

        return self._find_one(DataStoreInfo, workspace=workspace, name=name)

    def get_default_datastore(self, workspace: str
                              ) -> Optional[DataStoreInfo]:
        name = self.get_default('datastore', workspace)
        if name is None:
            return None
        return self._find_one(DataStoreInfo, workspace=workspace, name=name)

    def set_default_datastore(self, store: DataStoreInfo) -> None:
        self.set_default('datastore', store.name, store.workspace)

    def get_feature_type(self, id_: str) -> Optional[FeatureTypeInfo]:
        return self._find_one(FeatureTypeInfo, id=id_)

    def get_feature_types_by_namespace(self, namespace: str
                                       ) -> List[FeatureTypeInfo]:
        return self.find(FeatureTypeInfo, namespace=namespace)

    def get_feature_type_by_name(self, namespace: str,
                                 name: str) -> Optional[FeatureTypeInfo]:
        return self._find_one(FeatureTypeInfo, namespace=namespace, name=name)

    def get_feature_types_by_datastore(self, store: DataStoreInfo
                                       ) -> List[FeatureTypeInfo]:
        """
        Get the feature types published from a datastore

        :param store: `DataStoreInfo`

        :returns: `list` of `FeatureTypeInfo`
        """

        return [
            ft for ft in self.find(FeatureTypeInfo)
            if ft.store is not None and ft.store.name == store.name and
            (ft.store.workspace or ft.namespace) == store.workspace
        ]

    def get_feature_type_by_datastore(self, store: DataStoreInfo,
                                      name: str) -> Optional[FeatureTypeInfo]:
        return next((ft for ft in self.get_feature_types_by_datastore(store)
                     if ft.name == name), None)

    def get_layers(self, featuretype: FeatureTypeInfo) -> List[LayerInfo]:
        return self.find(LayerInfo, resource=featuretype.id)

    def get_layer_by_name(self, name: str,
                          namespace: str = None) -> Optional[LayerInfo]:
        """
        Get a layer by name

        :param name: layer name
        :param namespace: namespace prefix of the published resource,
                          any namespace if `None`

        :returns: `LayerInfo` or `None`
        """

        for layer in self.find(LayerInfo, name=name):
            if namespace is None:
                return layer
            resource = self.get_feature_type(layer.resource)
            if resource is not None and resource.namespace == namespace:
                return layer
        return None

    def validate(self, obj: CatalogObject,
                 is_new: bool = False) -> ValidationResult:
        """
        Check a catalog object against the catalog invariants

        :param obj: catalog object
        :param is_new: whether the object is about to be added

        :returns: `ValidationResult`
        """

        validators = {
            WorkspaceInfo: self._validate_workspace,
            NamespaceInfo: self._validate_namespace,
            DataStoreInfo: self._validate_datastore,
            FeatureTypeInfo: self._validate_feature_type,
            LayerInfo: self._validate_layer
        }

        try:
            validator = validators[type(obj)]
        except KeyError:
            raise TypeError(f'Cannot validate {type(obj).__name__}')

        result = ValidationResult(validator(obj, is_new))
        if not result.is_valid:
            LOGGER.debug(f'Validation errors: {result.errors}')
        return result

    @staticmethod
    def _is_other(existing, obj, is_new: bool) -> bool:
        return existing is not None and (is_new or existing.id != obj.id)

    def _validate_workspace(self, workspace: WorkspaceInfo,
                            is_new: bool) -> List[str]:
        errors = _check_name(workspace.name, 'Workspace')
        if self._is_other(self.get_workspace_by_name(workspace.name),
                          workspace, is_new):
            errors.append(f'Workspace named {workspace.name} already exists')
        return errors

    def _validate_namespace(self, namespace: NamespaceInfo,
                            is_new: bool) -> List[str]:
        errors = _check_name(namespace.prefix, 'Namespace prefix')
        if not namespace.uri:
            errors.append('Namespace uri must not be empty')
        if self._is_other(self.get_namespace_by_prefix(namespace.prefix),
                          namespace, is_new):
            errors.append(
                f'Namespace with prefix {namespace.prefix} already exists')
        return errors

    def _validate_datastore(self, store: DataStoreInfo,
                            is_new: bool) -> List[str]:
        errors = _check_name(store.name, 'Data store')
        if self.get_workspace_by_name(store.workspace) is None:
            errors.append(f'No such workspace: {store.workspace}')
        elif self._is_other(
                self.get_datastore_by_name(store.workspace, store.name),
                store, is_new):
            errors.append(f'Data store named {store.name} already exists '
                          f'in workspace {store.workspace}')
        return errors

    def _validate_feature_type(self, featuretype: FeatureTypeInfo,
                               is_new: bool) -> List[str]:
        errors = _check_name(featuretype.name, 'Feature type')

        store = None
        if featuretype.store is None:
            errors.append('Feature type must be part of a store')
        else:
            ref = featuretype.store
            store = self.get_datastore_by_name(
                ref.workspace or featuretype.namespace, ref.name)
            if store is None:
                errors.append(f'No such data store: {ref}')

        namespace = None
        if not featuretype.namespace:
            errors.append('Feature type must be part of a namespace')
        else:
            namespace = self.get_namespace_by_prefix(featuretype.namespace)
            if namespace is None:
                errors.append(f'No such namespace: {featuretype.namespace}')

        if store is not None and namespace is not None:
            if store.workspace != namespace.prefix:
                errors.append(
                    f'Data store workspace {store.workspace} does not match '
                    f'namespace {namespace.prefix}')

        if featuretype.name and namespace is not None:
            existing = self.get_feature_type_by_name(namespace.prefix,
                                                     featuretype.name)
            if self._is_other(existing, featuretype, is_new):
                errors.append(
                    f'Resource named {featuretype.name} already exists '
                    f'in namespace {namespace.prefix}')

        return errors

    def _validate_layer(self, layer: LayerInfo, is_new: bool) -> List[str]:
        errors = _check_name(layer.name, 'Layer')
        resource = None
        if layer.resource:
            resource = self.get_feature_type(layer.resource)
        if resource is None:
            errors.append(f'Layer {layer.name} must reference a resource')
            return errors

        existing = self.get_layer_by_name(layer.name, resource.namespace)
        if self._is_other(existing, layer, is_new):
            errors.append(f'Layer named {layer.name} already exists '
                          f'in namespace {resource.namespace}')
        return errors

    def __repr__(self):
        return f'<BaseCatalog> {self.name}'


def _check_name(name: Optional[str], label: str) -> List[str]:
    if not name or not name.strip():
        return [f'{label} name must not be empty']
    if INVALID_NAME_CHARS.search(name):
        return [f'{label} name {name!r} contains invalid characters']
    return []
