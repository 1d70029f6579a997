from ..hookspecs import hookimpl
from ..errors import FetchError, FetchTimeoutError, TlsError, UnsupportedContentTypeError
from datetime import datetime
import ssl
import httpx

client = httpx.Client(follow_redirects=True)

def is_html_content_type(content_type):
    mime = content_type.split(';')[0].strip().lower()
    return not mime or mime.startswith('text/') or mime in ('application/xml', 'application/xhtml+xml') or mime.endswith('+xml')

def is_tls_error(e):
    cause = e.__cause__ or e.__context__
    return isinstance(cause, ssl.SSLError) or '[SSL' in str(e)

@hookimpl(trylast=True)
def fetch_url(url, request_headers, timeout):
    fetched_at = datetime.utcnow().isoformat(sep=' ')
    try:
        response = client.get(url, headers=request_headers, timeout=timeout)
    except httpx.TimeoutException as e:
        return FetchTimeoutError(url, repr(e))
    except httpx.ConnectError as e:
        if is_tls_error(e):
            return TlsError(url, str(e))
        return FetchError(url, repr(e))
    except httpx.HTTPError as e:
        return FetchError(url, repr(e))

    content_type = response.headers.get('content-type', '')
    if not is_html_content_type(content_type):
        return UnsupportedContentTypeError(url, content_type)

    headers = []
    for k, v in response.headers.items():
        headers.append([k, v])
    return {
        'fetched_at': fetched_at,
        'headers': headers,
        'url': str(response.url),
        'status_code': response.status_code,
        'text': response.text,
    }
