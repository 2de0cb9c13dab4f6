"""MariaDB.

Wire compatible with MySQL and shares its error-code ranges.
"""

from __future__ import annotations

from dbsource.sources.dialects.base import Dialect
from dbsource.sources.dialects.mysql import MYSQL, MYSQL_TYPE_CODES, mysql_field_handler

MARIADB_DOC_URL = "https://mariadb.com/kb/en/mariadb-error-codes/"

MARIADB = Dialect(
    name="mariadb",
    drivername="mariadb+pymysql",
    paramstyle=MYSQL.paramstyle,
    error_classifier=MYSQL.error_classifier.with_overrides(
        name="mariadb", documentation_link=MARIADB_DOC_URL
    ),
    type_codes=MYSQL_TYPE_CODES,
    default_port=3306,
    field_handler=mysql_field_handler,
)
