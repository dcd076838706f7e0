import os
import sys

# --- Configuration ---
MAC_GD_URL = "https://cdn.rigby.host/GeometryDash.app.zip"
WIN_GD_URL = "https://cdn.rigby.host/GeometryDash.zip"
GDPS_URL_TEMPLATE = "https://gdps.rigby.host/{}/db////"
SERVER_API_URL = "https://api.rigby.host/gdps/{}/fetch"

# Archives are hundreds of MB, give the download minutes.
DOWNLOAD_TIMEOUT = 600
API_TIMEOUT = 300
# Menu labels must not hold up the menu
LABEL_TIMEOUT = 10

APP_IDENTIFIER = "host.rigby.launcher"
CACHE_SUBDIR = "GeometryDash"
SERVERS_SUBDIR = "servers"
TEMP_ARCHIVE = "temp_gd.zip"

USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"


class StorageRoots:
    """Where base installs are cached and server copies are staged."""

    def __init__(self, data_root, cache_root):
        self.data_root = os.path.abspath(data_root)
        self.cache_root = os.path.abspath(cache_root)

    @property
    def servers_dir(self):
        return os.path.join(self.data_root, SERVERS_SUBDIR)

    @property
    def game_cache(self):
        return os.path.join(self.cache_root, CACHE_SUBDIR)

    def server_dir(self, server_id):
        return os.path.join(self.servers_dir, server_id)

    def __repr__(self):
        return f"StorageRoots(data_root={self.data_root!r}, cache_root={self.cache_root!r})"


def _platform_dirs(platform=None):
    platform = platform or sys.platform
    home = os.path.expanduser("~")

    if platform.startswith("win"):
        data = os.environ.get("APPDATA") or os.path.join(home, "AppData", "Roaming")
        cache = os.environ.get("LOCALAPPDATA") or os.path.join(home, "AppData", "Local")
    elif platform == "darwin":
        data = os.path.join(home, "Library", "Application Support")
        cache = os.path.join(home, "Library", "Caches")
    else:
        data = os.environ.get("XDG_DATA_HOME") or os.path.join(home, ".local", "share")
        cache = os.environ.get("XDG_CACHE_HOME") or os.path.join(home, ".cache")

    return os.path.join(data, APP_IDENTIFIER), os.path.join(cache, APP_IDENTIFIER)


def default_roots(data_dir=None, cache_dir=None, platform=None):
    """
    Resolve storage roots. Explicit arguments win, then the
    GDPS_DATA_DIR / GDPS_CACHE_DIR environment variables, then the
    per-OS application data and cache directories.
    """
    default_data, default_cache = _platform_dirs(platform)
    data_root = data_dir or os.environ.get("GDPS_DATA_DIR") or default_data
    cache_root = cache_dir or os.environ.get("GDPS_CACHE_DIR") or default_cache
    return StorageRoots(data_root, cache_root)
