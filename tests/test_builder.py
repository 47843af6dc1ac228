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

import pytest

from pygeocatalog.catalog.builder import CatalogBuilder
from pygeocatalog.error import BadRequestError
from pygeocatalog.models.catalog import (
    AttributeTypeInfo, BoundingBox, FeatureTypeInfo, ProjectionPolicy,
    StoreReference
)

from tests.conftest import STATES_BOUNDS


@pytest.fixture()
def builder(catalog):
    return CatalogBuilder(catalog,
                          catalog.get_datastore_by_name('topp', 'states_db'))


@pytest.fixture()
def states(catalog, builder):
    ft = FeatureTypeInfo(name='states')
    builder.init_feature_type(ft)
    builder.setup_metadata(ft, catalog.resource_pool.get_feature_source(ft))
    return ft


def test_build_schema(builder):
    ft = FeatureTypeInfo.model_validate({
        'name': 'poi',
        'srs': 'EPSG:3857',
        'attributes': {'attribute': [
            {'name': 'geom', 'binding': 'org.locationtech.jts.geom.Point'},
            {'name': 'label', 'binding': 'java.lang.String', 'length': 25},
            {'name': 'rank', 'binding': 'java.lang.Integer', 'length': 0,
             'nillable': False}
        ]}
    })

    schema = builder.build_schema(ft)

    assert schema.name == 'poi'
    assert schema.crs == 'EPSG:3857'
    assert [(a.name, a.binding, a.length) for a in schema.attributes] == [
        ('geom', 'point', None),
        ('label', 'string', 25),
        ('rank', 'integer', None)
    ]
    assert not schema.attributes[2].nillable
    assert schema.geometry_descriptor.name == 'geom'

    ft.native_name = 'POI'
    ft.native_crs = 'EPSG:4326'
    schema = builder.build_schema(ft)
    assert schema.name == 'POI'
    assert schema.crs == 'EPSG:4326'


def test_build_schema_incomplete(builder):
    with pytest.raises(BadRequestError) as error:
        builder.build_schema(FeatureTypeInfo(
            attributes=[AttributeTypeInfo(name='a')]))
    assert 'no name was specified' in error.value.message

    with pytest.raises(BadRequestError) as error:
        builder.build_schema(FeatureTypeInfo(name='poi'))
    assert 'no attributes were specified' in error.value.message


def test_build_schema_attribute_names(builder):
    ft = FeatureTypeInfo(name='poi', attributes=[
        AttributeTypeInfo(name='FID', binding='integer'),
        AttributeTypeInfo(name='geom', binding='point')])

    assert builder.build_schema(ft).attributes[0].name == 'FID'

    with pytest.raises(BadRequestError) as error:
        builder.build_schema(ft, ('fid',))
    assert error.value.message == 'Attribute name FID is reserved'

    ft.attributes = [AttributeTypeInfo(name='geom', binding='point'),
                     AttributeTypeInfo(name='Geom', binding='string')]
    with pytest.raises(BadRequestError) as error:
        builder.build_schema(ft)
    assert error.value.message == 'Duplicate attribute name Geom'


def test_build_schema_unknown_crs(builder):
    ft = FeatureTypeInfo(name='poi', native_crs='EPSG:999999',
                         attributes=[AttributeTypeInfo(name='geom',
                                                       binding='point')])

    with pytest.raises(BadRequestError) as error:
        builder.build_schema(ft)
    assert error.value.message == 'Unknown CRS: EPSG:999999'


def test_init_feature_type(builder):
    ft = FeatureTypeInfo(name='states')
    builder.init_feature_type(ft)

    assert ft.native_name == 'states'
    assert ft.title == 'states'
    assert ft.namespace == 'topp'
    assert ft.store == StoreReference(workspace='topp', name='states_db')

    ft = FeatureTypeInfo(native_name='states', title='US States',
                         namespace='ne',
                         store=StoreReference(name='other'))
    builder.init_feature_type(ft)

    assert ft.name == 'states'
    assert ft.title == 'US States'
    assert ft.namespace == 'ne'
    assert ft.store.name == 'other'

    ft = FeatureTypeInfo(name='states')
    CatalogBuilder(builder.catalog).init_feature_type(ft)
    assert ft.store is None
    assert ft.namespace is None


def test_setup_metadata(states):
    assert states.native_crs == 'EPSG:4326'
    assert states.srs == 'EPSG:4326'
    assert states.projection_policy == ProjectionPolicy.NONE
    assert [a.name for a in states.attributes] == \
        ['the_geom', 'state_name', 'persons']

    assert states.native_bounding_box.to_list() == list(STATES_BOUNDS)
    assert states.native_bounding_box.crs == 'EPSG:4326'
    assert states.lat_lon_bounding_box.to_list() == list(STATES_BOUNDS)
    assert states.lat_lon_bounding_box.crs == 'EPSG:4326'


def test_setup_metadata_keeps_values(catalog, builder):
    bbox = BoundingBox(minx=0, miny=0, maxx=1, maxy=1, crs='EPSG:4326')
    ft = FeatureTypeInfo(name='states', srs='EPSG:3857',
                         native_bounding_box=bbox,
                         attributes=[AttributeTypeInfo(name='persons',
                                                       binding='integer')])
    builder.init_feature_type(ft)
    builder.setup_metadata(ft, catalog.resource_pool.get_feature_source(ft))

    assert ft.srs == 'EPSG:3857'
    assert ft.native_crs == 'EPSG:4326'
    assert ft.projection_policy == ProjectionPolicy.REPROJECT_TO_DECLARED
    assert [a.name for a in ft.attributes] == ['persons']
    assert ft.native_bounding_box == bbox
    assert ft.lat_lon_bounding_box.to_list() == [0, 0, 1, 1]


def test_setup_metadata_without_geometry(catalog, builder):
    ft = FeatureTypeInfo(name='census_stats')
    builder.init_feature_type(ft)
    builder.setup_metadata(ft, catalog.resource_pool.get_feature_source(ft))

    assert ft.native_crs is None
    assert ft.srs is None
    assert ft.native_bounding_box is None
    assert ft.lat_lon_bounding_box is None


@pytest.mark.parametrize('srs,native_crs,policy', [
    ('EPSG:3857', None, ProjectionPolicy.FORCE_DECLARED),
    ('EPSG:3857', 'EPSG:4326', ProjectionPolicy.REPROJECT_TO_DECLARED),
    ('EPSG:4326', 'EPSG:4326', ProjectionPolicy.NONE),
    (None, None, ProjectionPolicy.NONE)
])
def test_default_policy(srs, native_crs, policy):
    ft = FeatureTypeInfo(name='a', srs=srs, native_crs=native_crs)
    assert CatalogBuilder._default_policy(ft) == policy


def test_get_effective_crs():
    ft = FeatureTypeInfo(name='a', srs='EPSG:3857', native_crs='EPSG:4326',
                         projection_policy='FORCE_DECLARED')
    assert CatalogBuilder.get_effective_crs(ft) == 'EPSG:3857'

    ft.projection_policy = ProjectionPolicy.REPROJECT_TO_DECLARED
    assert CatalogBuilder.get_effective_crs(ft) == 'EPSG:4326'

    ft.native_crs = None
    assert CatalogBuilder.get_effective_crs(ft) == 'EPSG:3857'


def test_get_lat_lon_bounds():
    assert CatalogBuilder.get_lat_lon_bounds(None) is None

    bbox = BoundingBox(minx=0, miny=0, maxx=1, maxy=1)
    assert CatalogBuilder.get_lat_lon_bounds(bbox).to_list() == [0, 0, 1, 1]

    bbox = BoundingBox(minx=0, miny=0, maxx=111319.490793,
                       maxy=111325.142866, crs='EPSG:3857')
    latlon = CatalogBuilder.get_lat_lon_bounds(bbox)
    assert latlon.crs == 'EPSG:4326'
    assert latlon.to_list() == pytest.approx([0, 0, 1, 1], abs=1e-6)


def test_calculate_nothing(builder, states):
    update = FeatureTypeInfo(title='New title')
    assert builder.calculate_optional_fields(update, states) == {}

    # unchanged values do not trigger recalculation
    update = FeatureTypeInfo(srs='EPSG:4326', projection_policy='NONE')
    assert builder.calculate_optional_fields(update, states) == {}

    update = FeatureTypeInfo(srs='EPSG:3857')
    assert builder.calculate_optional_fields(update, states, '') == {}


def test_calculate_changed_interpretation(builder, states):
    update = FeatureTypeInfo(srs='EPSG:3857',
                             projection_policy='FORCE_DECLARED')

    calculated = builder.calculate_optional_fields(update, states)

    assert sorted(calculated) == \
        ['lat_lon_bounding_box', 'native_bounding_box']
    native = calculated['native_bounding_box']
    assert native.to_list() == list(STATES_BOUNDS)
    assert native.crs == 'EPSG:3857'
    latlon = calculated['lat_lon_bounding_box']
    assert latlon.crs == 'EPSG:4326'
    assert latlon.maxx < 1


def test_calculate_with_supplied_boxes(builder, states):
    bbox = BoundingBox(minx=0, miny=0, maxx=2, maxy=2, crs='EPSG:4326')

    update = FeatureTypeInfo(native_bounding_box=bbox)
    calculated = builder.calculate_optional_fields(update, states)
    assert list(calculated) == ['lat_lon_bounding_box']
    assert calculated['lat_lon_bounding_box'].to_list() == [0, 0, 2, 2]

    update = FeatureTypeInfo(srs='EPSG:3857', lat_lon_bounding_box=bbox)
    calculated = builder.calculate_optional_fields(update, states)
    assert list(calculated) == ['native_bounding_box']

    update = FeatureTypeInfo(srs='EPSG:3857', native_bounding_box=bbox,
                             lat_lon_bounding_box=bbox)
    assert builder.calculate_optional_fields(update, states) == {}


def test_calculate_explicit(builder, states):
    update = FeatureTypeInfo(title='New title')

    calculated = builder.calculate_optional_fields(
        update, states, 'nativebbox')
    assert list(calculated) == ['native_bounding_box']

    calculated = builder.calculate_optional_fields(
        update, states, ' LatLonBBox, nativebbox ')
    assert sorted(calculated) == \
        ['lat_lon_bounding_box', 'native_bounding_box']

    with pytest.raises(BadRequestError) as error:
        builder.calculate_optional_fields(update, states, 'nativebbox,foo')
    assert error.value.message == 'Cannot recalculate foo'


def test_calculate_invalid_crs(builder, states):
    update = FeatureTypeInfo(srs='EPSG:999999',
                             projection_policy='FORCE_DECLARED')

    with pytest.raises(BadRequestError):
        builder.calculate_optional_fields(update, states)


def test_update_feature_type(states):
    bbox = BoundingBox(minx=0, miny=0, maxx=2, maxy=2, crs='EPSG:4326')
    update = FeatureTypeInfo(title='New title', enabled=False)

    merged = CatalogBuilder.update_feature_type(
        states, update, {'lat_lon_bounding_box': bbox})

    assert merged.id == states.id
    assert merged.title == 'New title'
    assert merged.enabled is False
    assert merged.name == 'states'
    assert merged.srs == 'EPSG:4326'
    assert merged.lat_lon_bounding_box == bbox

    assert states.title == 'states'
    assert states.enabled is True


def test_build_layer(builder, states):
    layer = builder.build_layer(states)

    assert layer.name == 'states'
    assert layer.resource == states.id
    assert layer.default_style == 'polygon'


@pytest.mark.parametrize('bindings,style', [
    ([], 'generic'),
    (['string', 'integer'], 'generic'),
    (['string', 'point'], 'point'),
    (['multilinestring'], 'line'),
    (['polygon', 'point'], 'polygon'),
    (['geometry'], 'generic')
])
def test_get_default_style(bindings, style):
    attributes = [AttributeTypeInfo(name=f'a{i}', binding=binding)
                  for i, binding in enumerate(bindings)]
    assert CatalogBuilder.get_default_style(attributes) == style
