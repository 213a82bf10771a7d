"""Apply a DataScopeFilter to a SQLAlchemy select.

The access-control core only describes the filter; this is where it
becomes WHERE clauses. Unknown field names are a programming error.
"""

from sqlalchemy import Select, false

from app.auth.policy import DataScopeFilter
from app.errors import ConfigurationError


def apply_scope(stmt: Select, model, scope: DataScopeFilter) -> Select:
    if scope.deny_all:
        return stmt.where(false())
    for field_name, value in scope.constraints.items():
        column = getattr(model, field_name, None)
        if column is None:
            raise ConfigurationError(
                f"Scope field {field_name!r} does not exist on {model.__name__}"
            )
        stmt = stmt.where(column == value)
    return stmt
