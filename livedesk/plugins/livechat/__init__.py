"""Livechat remote methods."""

PLUGIN_METADATA = {
    "name": "livechat",
    "version": "1.0.0",
    "description": "Remote methods writing livechat visitor and room data.",
    "author": "livedesk",
}
