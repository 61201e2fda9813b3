"""Installation, configuration and inspection of third-party Apps."""

PLUGIN_METADATA = {
    "name": "apps",
    "version": "1.0.0",
    "description": "REST API for installing, updating and configuring Apps.",
    "author": "livedesk",
}
