from datetime import datetime, timezone
from .schema import INDEXING

def status_time_millis(status_time):
    # status_time is written by sqlite's strftime('%Y-%m-%d %H:%M:%f'), in UTC.
    try:
        dt = datetime.strptime(status_time, '%Y-%m-%d %H:%M:%S.%f')
    except (TypeError, ValueError):
        return None

    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)

def get_statistics(storage, indexing=False):
    sites = storage.all_sites()

    total = {
        'sites': len(sites),
        'pages': 0,
        'lemmas': 0,
        'indexing': indexing or any(site.status == INDEXING for site in sites),
    }

    detailed = []
    for site in sites:
        pages = storage.count_pages(site.id)
        lemmas = storage.count_lemmas(site.id)
        total['pages'] += pages
        total['lemmas'] += lemmas

        detailed.append({
            'url': site.url,
            'name': site.name,
            'status': site.status,
            'statusTime': status_time_millis(site.status_time),
            'error': site.last_error or '',
            'pages': pages,
            'lemmas': lemmas,
        })

    return {
        'result': True,
        'statistics': {
            'total': total,
            'detailed': detailed,
        }
    }
