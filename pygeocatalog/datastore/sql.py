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

"""SQL datastores backed by SQLAlchemy

Geometries are stored as WKB in binary columns; a registry table
records the geometry column, geometry type and SRID of each table.
"""

import datetime
from decimal import Decimal
import functools
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from pyproj.exceptions import CRSError
import shapely.wkb
from shapely.errors import ShapelyError
from sqlalchemy import (
    Boolean, Column, Date, DateTime, Float, Integer, LargeBinary, MetaData,
    String, Table, create_engine, func, inspect, select
)
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import NoSuchTableError, OperationalError, SQLAlchemyError

from pygeocatalog.crs import get_srid
from pygeocatalog.datastore.base import (
    AttributeDescriptor, BaseDataAccess, DataAccessConnectionError,
    DataAccessError, DataAccessTypeNotFoundError, FeatureTypeSchema
)
from pygeocatalog.util import str2bool

LOGGER = logging.getLogger(__name__)

GEOMETRY_REGISTRY = 'geometry_columns_registry'
PRIMARY_KEY_COLUMN = 'fid'

BINDING_COLUMN_TYPES = {
    'string': String,
    'integer': Integer,
    'float': Float,
    'boolean': Boolean,
    'date': Date,
    'datetime': DateTime
}

PYTHON_TYPE_BINDINGS = {
    bool: 'boolean',
    datetime.date: 'date',
    datetime.datetime: 'datetime',
    Decimal: 'float',
    float: 'float',
    int: 'integer',
    str: 'string'
}


@functools.cache
def get_engine(conn_str: str, **connect_args) -> Engine:
    """
    Get SQL Alchemy engine.

    :param conn_str: connection URL
    :param connect_args: custom connection arguments to pass to
                         create_engine()

    :returns: SQL Alchemy engine
    """

    engine = create_engine(
        conn_str, connect_args=connect_args, pool_pre_ping=True
    )

    LOGGER.debug(f'Created engine for {repr(engine.url)}.')
    return engine


class GenericSQLDataStore(BaseDataAccess):
    """
    Schema creating datastore for SQL databases, inherited from
    to create specific stores for different databases
    """

    reserved_attribute_names = (PRIMARY_KEY_COLUMN,)

    def __init__(self, store_def: dict):
        """
        GenericSQLDataStore Class constructor

        :param store_def: datastore definition. `data` holds the
                          connection URL or connection parameters

        :returns: pygeocatalog.datastore.sql.GenericSQLDataStore
        """

        super().__init__(store_def)

        self.db_schema = self.options.get('schema')
        self.uppercase_identifiers = str2bool(
            self.options.get('uppercase_identifiers', False))

        self._engine = get_engine(self.get_connection_url())
        self._registry = Table(
            GEOMETRY_REGISTRY, MetaData(schema=self.db_schema),
            Column('f_table_name', String(255), primary_key=True),
            Column('f_geometry_column', String(255), nullable=False),
            Column('geometry_type', String(30), nullable=False),
            Column('srid', Integer)
        )

    def get_connection_url(self) -> str:
        """
        Build the SQLAlchemy connection URL from `data`

        :returns: connection URL
        """

        raise NotImplementedError()

    def get_type_names(self) -> List[str]:
        try:
            names = inspect(self._engine).get_table_names(
                schema=self.db_schema)
        except OperationalError as err:
            LOGGER.error(err)
            raise DataAccessConnectionError(
                f'Could not connect to {repr(self._engine.url)}')

        return [name for name in names if name != GEOMETRY_REGISTRY]

    def resolve_type_name(self, type_name: str) -> str:
        """
        Match a type name against the tables of the database.
        Unquoted identifiers may be folded by the database, so the match
        falls back to a case insensitive comparison.
        """

        names = self.get_type_names()
        if type_name in names:
            return type_name

        for name in names:
            if name.lower() == type_name.lower():
                LOGGER.debug(f'Matched {type_name} to table {name}')
                return name

        raise DataAccessTypeNotFoundError(
            f'No such table {type_name} in {self.name} store')

    def get_schema(self, type_name: str) -> FeatureTypeSchema:
        table_name = self.resolve_type_name(type_name)
        geometry_columns = self._get_geometry_columns()

        try:
            inspector = inspect(self._engine)
            columns = inspector.get_columns(table_name,
                                            schema=self.db_schema)
            primary_keys = inspector.get_pk_constraint(
                table_name, schema=self.db_schema)['constrained_columns']
        except SQLAlchemyError as err:
            LOGGER.error(err)
            raise DataAccessError(f'Could not read table {table_name}')

        schema = FeatureTypeSchema(name=table_name)

        geometry_column = geometry_columns.get(table_name)
        if geometry_column is not None and geometry_column['srid']:
            schema.crs = f"EPSG:{geometry_column['srid']}"

        for column in columns:
            if column['name'] in primary_keys:
                continue

            if (geometry_column is not None and
                    column['name'] == geometry_column['f_geometry_column']):
                binding = geometry_column['geometry_type']
            else:
                binding = self._column_type_to_binding(column['type'])

            schema.attributes.append(AttributeDescriptor(
                name=column['name'],
                binding=binding,
                nillable=column.get('nullable', True),
                length=getattr(column['type'], 'length', None)
            ))

        return schema

    def create_schema(self, schema: FeatureTypeSchema) -> None:
        table_name = self._identifier(schema.name)

        if table_name in self.get_type_names():
            raise DataAccessError(f'Table {table_name} already exists')

        LOGGER.debug(f'Creating table {table_name}')
        try:
            table, geometry = self._build_table(table_name, schema)
            srid = None
            if geometry is not None and schema.crs:
                srid = get_srid(schema.crs)

            with self._engine.begin() as conn:
                self._registry.create(conn, checkfirst=True)
                table.create(conn)
                if geometry is not None:
                    conn.execute(self._registry.insert().values(
                        f_table_name=table_name,
                        f_geometry_column=self._identifier(geometry.name),
                        geometry_type=geometry.binding,
                        srid=srid
                    ))
        except (SQLAlchemyError, CRSError, KeyError) as err:
            LOGGER.error(err)
            raise DataAccessError(f'Could not create table {table_name}')

    def _build_table(self, table_name: str, schema: FeatureTypeSchema):
        metadata = MetaData(schema=self.db_schema)
        columns = [Column(self._identifier(PRIMARY_KEY_COLUMN), Integer,
                          primary_key=True, autoincrement=True)]
        geometry = None

        for attribute in schema.attributes:
            if attribute.is_geometry:
                column_type = LargeBinary
                if geometry is None:
                    geometry = attribute
            elif attribute.binding == 'string' and attribute.length:
                column_type = String(attribute.length)
            else:
                column_type = BINDING_COLUMN_TYPES[attribute.binding]

            columns.append(Column(self._identifier(attribute.name),
                                  column_type, nullable=attribute.nillable))

        return Table(table_name, metadata, *columns), geometry

    def get_bounds(self, type_name: str
                   ) -> Optional[Tuple[float, float, float, float]]:
        table_name = self.resolve_type_name(type_name)
        geometry_column = self._get_geometry_columns().get(table_name)
        if geometry_column is None:
            return None

        table = self._reflect(table_name)
        column = table.c[geometry_column['f_geometry_column']]

        bounds = None
        try:
            with self._engine.connect() as conn:
                for (wkb,) in conn.execute(select(column).where(
                        column.is_not(None))):
                    minx, miny, maxx, maxy = \
                        shapely.wkb.loads(bytes(wkb)).bounds
                    if bounds is None:
                        bounds = [minx, miny, maxx, maxy]
                    else:
                        bounds = [min(bounds[0], minx), min(bounds[1], miny),
                                  max(bounds[2], maxx), max(bounds[3], maxy)]
        except (SQLAlchemyError, ShapelyError) as err:
            LOGGER.error(err)
            raise DataAccessError(f'Could not compute bounds of {table_name}')

        return tuple(bounds) if bounds else None

    def get_count(self, type_name: str) -> int:
        table = self._reflect(self.resolve_type_name(type_name))
        try:
            with self._engine.connect() as conn:
                return conn.execute(
                    select(func.count()).select_from(table)).scalar_one()
        except SQLAlchemyError as err:
            LOGGER.error(err)
            raise DataAccessError(f'Could not count features of {table.name}')

    def dispose(self) -> None:
        LOGGER.debug(f'Disposing connections of {repr(self._engine.url)}')
        self._engine.dispose()

    def _identifier(self, name: str) -> str:
        if self.uppercase_identifiers:
            return name.upper()
        return name

    def _reflect(self, table_name: str) -> Table:
        try:
            return Table(table_name, MetaData(schema=self.db_schema),
                         autoload_with=self._engine)
        except NoSuchTableError:
            raise DataAccessTypeNotFoundError(f'No such table {table_name}')
        except SQLAlchemyError as err:
            LOGGER.error(err)
            raise DataAccessError(f'Could not read table {table_name}')

    def _get_geometry_columns(self) -> dict:
        """registry rows keyed by table name"""

        if not inspect(self._engine).has_table(GEOMETRY_REGISTRY,
                                               schema=self.db_schema):
            LOGGER.debug('No geometry registry found')
            return {}

        with self._engine.connect() as conn:
            rows = conn.execute(select(self._registry)).mappings().all()

        return {row['f_table_name']: dict(row) for row in rows}

    @staticmethod
    def _column_type_to_binding(column_type) -> str:
        try:
            python_type = column_type.python_type
        except NotImplementedError:
            LOGGER.warning(f'Unsupported column type {column_type}')
            return 'string'

        try:
            return PYTHON_TYPE_BINDINGS[python_type]
        except KeyError:
            LOGGER.warning(f'Unsupported column type {column_type}')
            return 'string'

    def __repr__(self):
        return f'<GenericSQLDataStore> {self.name}'


class SQLiteDataStore(GenericSQLDataStore):
    """A datastore for SQLite database files"""

    def get_connection_url(self) -> str:
        if str(self.data).startswith('sqlite:'):
            return str(self.data)

        return f'sqlite:///{Path(self.data).resolve()}'

    def __repr__(self):
        return f'<SQLiteDataStore> {self.data}'


class PostgreSQLDataStore(GenericSQLDataStore):
    """A datastore for PostgreSQL databases"""

    default_port = 5432

    def __init__(self, store_def: dict):
        options = dict(store_def.get('options') or {})
        options.setdefault('schema', 'public')
        super().__init__(dict(store_def, options=options))

    def get_connection_url(self) -> str:
        if isinstance(self.data, str):
            return self.data

        url = URL.create(
            drivername='postgresql+psycopg2',
            username=self.data.get('user'),
            password=self.data.get('password'),
            host=self.data.get('host'),
            port=int(self.data.get('port', self.default_port)),
            database=self.data.get('dbname') or self.data.get('database')
        )
        return url.render_as_string(hide_password=False)

    def __repr__(self):
        return f'<PostgreSQLDataStore> {self.name}'
