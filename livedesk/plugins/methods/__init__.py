"""Dispatcher for remote methods registered by other plugins."""

PLUGIN_METADATA = {
    "name": "methods",
    "version": "1.0.0",
    "description": "Calls named remote methods with positional params.",
    "author": "livedesk",
}
