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

import json

import pytest
from shapely.geometry import LineString, Polygon
from sqlalchemy import MetaData, Table

from pygeocatalog.api import API
from pygeocatalog.datastore.base import AttributeDescriptor, FeatureTypeSchema
from pygeocatalog.datastore.sql import SQLiteDataStore, get_engine

STATES = [
    {'state_name': 'Westland', 'persons': 1200,
     'the_geom': Polygon([(-10, 30), (-5, 30), (-5, 35), (-10, 35)])},
    {'state_name': 'Eastland', 'persons': 800,
     'the_geom': Polygon([(0, 40), (5, 40), (5, 45), (0, 45)])}
]

#: bounds of all STATES geometries
STATES_BOUNDS = (-10.0, 30.0, 5.0, 45.0)

CITIES = {
    'type': 'FeatureCollection',
    'features': [{
        'type': 'Feature',
        'geometry': {'type': 'Point', 'coordinates': [12.5, 41.9]},
        'properties': {'name': 'Rome', 'population': 2873000,
                       'founded': '0753-04-21'}
    }, {
        'type': 'Feature',
        'geometry': {'type': 'Point', 'coordinates': [-3.7, 40.4]},
        'properties': {'name': 'Madrid', 'population': 3223000.5,
                       'capital': True}
    }]
}

STATIONS = {
    'type': 'FeatureCollection',
    'features': [{
        'type': 'Feature',
        'geometry': None,
        'properties': {'code': 'A1', 'elevation': 120}
    }]
}


def create_sqlite_db(path, uppercase: bool = False) -> str:
    """create a test database holding `states`, `roads` and
    `census_stats` tables"""

    store = SQLiteDataStore({
        'name': 'SQLite',
        'data': str(path),
        'options': {'uppercase_identifiers': uppercase}
    })

    store.create_schema(FeatureTypeSchema(
        name='states', crs='EPSG:4326', attributes=[
            AttributeDescriptor('the_geom', 'multipolygon'),
            AttributeDescriptor('state_name', 'string', length=50),
            AttributeDescriptor('persons', 'integer')
        ]))
    store.create_schema(FeatureTypeSchema(
        name='roads', crs='EPSG:4326', attributes=[
            AttributeDescriptor('geom', 'linestring'),
            AttributeDescriptor('label', 'string')
        ]))
    store.create_schema(FeatureTypeSchema(
        name='census_stats', attributes=[
            AttributeDescriptor('region', 'string', nillable=False),
            AttributeDescriptor('total', 'float')
        ]))

    engine = get_engine(store.get_connection_url())
    metadata = MetaData()

    states = Table(store._identifier('states'), metadata,
                   autoload_with=engine)
    roads = Table(store._identifier('roads'), metadata,
                  autoload_with=engine)

    with engine.begin() as conn:
        for row in STATES:
            conn.execute(states.insert().values({
                store._identifier('state_name'): row['state_name'],
                store._identifier('persons'): row['persons'],
                store._identifier('the_geom'): row['the_geom'].wkb
            }))
        conn.execute(roads.insert().values({
            store._identifier('label'): 'A1',
            store._identifier('geom'): LineString([(0, 0), (1, 1)]).wkb
        }))

    store.dispose()
    return str(path)


@pytest.fixture()
def sqlite_db(tmp_path):
    return create_sqlite_db(tmp_path / 'topp.db')


@pytest.fixture()
def sqlite_db_copy(tmp_path):
    return create_sqlite_db(tmp_path / 'topp_copy.db')


@pytest.fixture()
def sqlite_db_upper(tmp_path):
    return create_sqlite_db(tmp_path / 'upper.db', uppercase=True)


@pytest.fixture()
def geojson_dir(tmp_path):
    directory = tmp_path / 'geojson'
    directory.mkdir()

    with (directory / 'cities.geojson').open('w') as fh:
        json.dump(CITIES, fh)
    with (directory / 'stations.json').open('w') as fh:
        json.dump(STATIONS, fh)
    (directory / 'README.txt').write_text('not a type')

    return str(directory)


@pytest.fixture()
def config(sqlite_db, sqlite_db_copy, sqlite_db_upper, geojson_dir):
    return {
        'server': {
            'bind': {'host': '0.0.0.0', 'port': 5000},
            'url': 'http://localhost:5000',
            'root_path': 'rest',
            'pretty_print': False
        },
        'logging': {'level': 'DEBUG'},
        'catalog': {'name': 'TinyDB', 'connection': ':memory:'},
        'workspaces': {
            'topp': {
                'uri': 'http://www.openplans.org/topp',
                'default': True,
                'datastores': {
                    'states_db': {
                        'type': 'SQLite', 'data': sqlite_db, 'default': True
                    },
                    'states_copy': {'type': 'SQLite', 'data': sqlite_db_copy},
                    'upper_db': {
                        'type': 'SQLite', 'data': sqlite_db_upper,
                        'options': {'uppercase_identifiers': True}
                    }
                }
            },
            'ne': {
                'uri': 'http://www.naturalearthdata.com',
                'datastores': {
                    'natural_earth': {'type': 'GeoJSON', 'data': geojson_dir}
                }
            }
        }
    }


@pytest.fixture()
def api_(config):
    api = API(config)
    yield api
    api.catalog.resource_pool.dispose()


@pytest.fixture()
def catalog(api_):
    return api_.catalog
