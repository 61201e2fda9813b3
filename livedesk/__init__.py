"""LiveDesk: Apps management API and livechat remote methods."""

__version__ = "1.0.0"
