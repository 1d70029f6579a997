import asyncio
import functools
from datasette import Response
from .config import enabled_databases
from .engine import get_engine

async def run_sync(fn, *args):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args))

def engine_or_404(request):
    engine = get_engine(request.url_vars['db'])
    if engine is None:
        return None, Response.json({'result': False, 'error': 'search engine is not enabled for this database'}, status=404)
    return engine, None

async def search_engine_start_indexing(datasette, request):
    if request.method != 'POST':
        return Response('Unexpected method', status=405)

    engine, error = engine_or_404(request)
    if error:
        return error

    rv = await run_sync(engine.start_indexing)
    return Response.json(rv.to_dict())

async def search_engine_stop_indexing(datasette, request):
    if request.method != 'POST':
        return Response('Unexpected method', status=405)

    engine, error = engine_or_404(request)
    if error:
        return error

    rv = await run_sync(engine.stop_indexing)
    return Response.json(rv.to_dict())

async def search_engine_index_page(datasette, request):
    if request.method != 'POST':
        return Response('Unexpected method', status=405)

    engine, error = engine_or_404(request)
    if error:
        return error

    form = await request.post_vars()
    url = (form.get('url') or '').strip()
    if not url:
        return Response.json({'result': False, 'error': 'url is required'}, status=400)

    rv = await run_sync(engine.index_page, url)
    return Response.json(rv.to_dict())

async def search_engine_search(datasette, request):
    if request.method != 'GET':
        return Response('Unexpected method', status=405)

    engine, error = engine_or_404(request)
    if error:
        return error

    try:
        offset = int(request.args.get('offset') or 0)
        limit = int(request.args.get('limit') or 20)
    except ValueError:
        return Response.json({'result': False, 'error': 'offset and limit must be integers'}, status=400)

    if offset < 0 or limit < 1:
        return Response.json({'result': False, 'error': 'offset must be >= 0 and limit >= 1'}, status=400)

    query = request.args.get('query') or ''
    site = request.args.get('site') or None

    rv = await run_sync(engine.search, query, site, offset, limit)
    return Response.json(rv.to_dict())

async def search_engine_statistics(datasette, request):
    if request.method != 'GET':
        return Response('Unexpected method', status=405)

    engine, error = engine_or_404(request)
    if error:
        return error

    return Response.json(await run_sync(engine.statistics))

def get_routes(datasette):
    routes = []

    for db in enabled_databases(datasette):
        routes.append((r"^/(?P<db>{})/-/search-engine/start-indexing$".format(db), search_engine_start_indexing))
        routes.append((r"^/(?P<db>{})/-/search-engine/stop-indexing$".format(db), search_engine_stop_indexing))
        routes.append((r"^/(?P<db>{})/-/search-engine/index-page$".format(db), search_engine_index_page))
        routes.append((r"^/(?P<db>{})/-/search-engine/search$".format(db), search_engine_search))
        routes.append((r"^/(?P<db>{})/-/search-engine/statistics$".format(db), search_engine_statistics))

    return routes
