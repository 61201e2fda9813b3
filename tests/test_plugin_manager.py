from fastapi import FastAPI

from livedesk.plugins import PluginManager, init_plugins
from livedesk.utils.methods import methods


def test_discovers_all_plugins():
    manager = PluginManager()
    manager.discover()

    assert sorted(manager.discovered_routers) == ["apps", "methods"]
    assert sorted(manager.method_modules) == ["livechat"]
    assert manager.metadata["livechat"]["name"] == "livechat"
    assert "livechat:setCustomField" in methods.names()


def test_excluded_plugins_are_not_mounted():
    app = FastAPI()

    manager = init_plugins(app, excluded_plugins=["apps"])

    paths = {route.path for route in app.routes}
    assert "/methods/{method_name}" in paths
    assert not any(path.startswith("/apps") for path in paths)
    assert app.state.plugin_manager is manager
