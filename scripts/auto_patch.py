#!/usr/bin/env python3
"""
Auto-patching utility for Geometry Dash private servers.
Downloads the base client once, makes a copy per server, points the copy
at the server's database URL and launches it.
"""
import argparse
import contextlib
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor

import requests

from check_server import describe_server, fetch_server_info
from clientPatcher import pad_endpoint, patch_binary
from config import GDPS_URL_TEMPLATE, default_roots
from errors import InvalidServerId, PatcherError
from layout import detect_layout
from os_integration import launch_game, resign_app
from setup_game import ensure_base_installation
from stage_server import stage_for_server


def gdps_url(server_id):
    return GDPS_URL_TEMPLATE.format(server_id)


def validate_server_id(server_id):
    """The ID names a directory, so it has to be one plain path component."""
    server_id = (server_id or "").strip()
    if not server_id:
        raise InvalidServerId("Server ID is empty")
    if server_id in (".", "..") or "/" in server_id or "\\" in server_id or "\x00" in server_id:
        raise InvalidServerId(f"Invalid server ID: {server_id!r}")
    return server_id


class KeyedLocks:
    """
    One lock per key, created on first use and dropped once nobody holds
    or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, holders and waiters]
        self._locks = {}

    def __len__(self):
        with self._guard:
            return len(self._locks)

    @contextlib.contextmanager
    def hold(self, key):
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class GameManager:
    """Runs patch and run requests. At most one request per server ID at a time."""

    def __init__(self, roots=None, layout=None, http=requests):
        self.roots = roots or default_roots()
        self.layout = layout or detect_layout()
        self.http = http
        self._locks = KeyedLocks()
        self._executor = None

    def patch(self, server_id):
        server_id = validate_server_id(server_id)
        url = gdps_url(server_id)
        # Refuse oversized URLs before anything is downloaded or copied
        pad_endpoint(url)

        print(f"[*] Starting patch for server {server_id} ({url})")
        with self._locks.hold(server_id):
            base_path, _ = ensure_base_installation(self.roots, self.layout, http=self.http)
            binary_path = stage_for_server(self.roots, self.layout, base_path, server_id)
            patch_binary(binary_path, url)

            if self.layout.needs_signing:
                # <bundle>/Contents/MacOS/<binary>
                bundle_path = os.path.dirname(os.path.dirname(os.path.dirname(binary_path)))
                resign_app(bundle_path)

        print(f"[+] Server {server_id} patched successfully")
        return server_id

    def run(self, server_id):
        server_id = validate_server_id(server_id)
        with self._locks.hold(server_id):
            return launch_game(self.roots, self.layout, server_id)

    def list_profiles(self):
        servers_dir = self.roots.servers_dir
        if not os.path.isdir(servers_dir):
            return []
        return sorted(
            name for name in os.listdir(servers_dir)
            if os.path.isdir(os.path.join(servers_dir, name))
        )

    def submit(self, fn, *args):
        """Runs fn on the worker thread and returns its future."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="gdps")
        return self._executor.submit(fn, *args)

    def shutdown(self):
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None


def main(argv=None):
    parser = argparse.ArgumentParser(description="Geometry Dash private server patcher")
    parser.add_argument("--data-dir", help="Application data directory (server copies)")
    parser.add_argument("--cache-dir", help="Application cache directory (base install)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_patch = sub.add_parser("patch", help="Install a copy of the game for a server")
    p_patch.add_argument("server_id")
    p_run = sub.add_parser("run", help="Launch the copy installed for a server")
    p_run.add_argument("server_id")
    sub.add_parser("list", help="List installed servers")
    p_info = sub.add_parser("info", help="Look up a server in the directory")
    p_info.add_argument("server_id")

    args = parser.parse_args(argv)
    manager = GameManager(default_roots(args.data_dir, args.cache_dir))

    try:
        if args.command == "patch":
            manager.patch(args.server_id)
        elif args.command == "run":
            manager.run(args.server_id)
        elif args.command == "list":
            for server_id in manager.list_profiles():
                print(server_id)
        elif args.command == "info":
            print(describe_server(fetch_server_info(args.server_id, http=manager.http)))
    except PatcherError as e:
        print(f"[!] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
