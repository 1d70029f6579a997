from collections import namedtuple

class ApiResponse(namedtuple('ApiResponse', ['result', 'error'], defaults=(None, ))):
    def to_dict(self):
        rv = {'result': self.result}
        if self.error is not None:
            rv['error'] = self.error
        return rv

class SearchItem(namedtuple('SearchItem', ['site', 'site_name', 'uri', 'title', 'snippet', 'relevance'])):
    def to_dict(self):
        return {
            'site': self.site,
            'siteName': self.site_name,
            'uri': self.uri,
            'title': self.title,
            'snippet': self.snippet,
            'relevance': self.relevance,
        }

class SearchResponse(namedtuple('SearchResponse', ['result', 'count', 'data', 'error'], defaults=(0, (), None))):
    def to_dict(self):
        if not self.result:
            return {'result': False, 'error': self.error}

        return {
            'result': True,
            'count': self.count,
            'data': [item.to_dict() for item in self.data],
        }
