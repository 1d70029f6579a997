import importlib
import pluggy
import sys
from . import hookspecs

DEFAULT_PLUGINS = (
    "datasette_search_engine.plugins.fetch_url",
    "datasette_search_engine.plugins.discover_html_links",
    "datasette_search_engine.plugins.discover_same_site",
    "datasette_search_engine.plugins.discover_deny",
)

pm = pluggy.PluginManager("datasette_search_engine")
pm.add_hookspecs(hookspecs)

if not hasattr(sys, "_called_from_test"):
    # Only load plugins if not running tests
    pm.load_setuptools_entrypoints("datasette_search_engine")

# Load default plugins
for plugin in DEFAULT_PLUGINS:
    mod = importlib.import_module(plugin)
    pm.register(mod, plugin)
