import datasette
from .config import enabled_databases, ensure_schema
from .engine import start_engines
from .routes import get_routes

@datasette.hookimpl
def startup(datasette):
    async def inner():
        enabled = enabled_databases(datasette)
        for db_name in enabled:
            await ensure_schema(datasette.databases[db_name])

        if enabled:
            start_engines(datasette)

    return inner

@datasette.hookimpl
def register_routes(datasette):
    return get_routes(datasette)
